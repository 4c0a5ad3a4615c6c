"""Tests for the price list and history reports."""

from datetime import datetime

import pytest

from ledger import GameRecord
from reports import Reports, format_history, NO_EVENT, NO_HISTORY


def record(order_type, day, star_cost=1, stars=2, game_id="G1"):
    return GameRecord(
        created_at=datetime(2024, 5, day, 12, 0),
        star_cost=star_cost,
        game_id=game_id,
        stars=stars,
        final_rank="钻石",
        order_type=order_type
    )


def test_empty_history():
    assert format_history([]) == NO_HISTORY


def test_history_groups_and_totals():
    text = format_history([
        record("陪玩", 2, star_cost=3, stars=4, game_id="G2"),
        record("陪玩", 1, star_cost=2, stars=1, game_id="G1"),
        record("代练", 3, star_cost=5, stars=6, game_id="G3"),
    ])
    play, boost = text.split("代练:")
    assert play.startswith("陪玩:\n♥♥总使用星卷: 5♥♥\n🚗🚗总摘星: 5🚗🚗\n")
    assert play.index("G2--4星") < play.index("G1--1星")
    assert "♥♥总使用星卷: 5♥♥" in boost
    assert "2024-05-03 12:00:00(使用5星卷)\nG3--6星[钻石]$已结束" in boost


@pytest.mark.asyncio
async def test_price_list(ledger):
    reports = Reports(ledger)
    assert await reports.price_list() == NO_EVENT

    ledger.set_current_event("今晚八点 决赛")
    assert await reports.price_list() == "今晚八点 决赛"


@pytest.mark.asyncio
async def test_history_for_unknown_player(ledger):
    assert await Reports(ledger).history("路人") == NO_HISTORY


@pytest.mark.asyncio
async def test_history_orders_newest_first(ledger):
    ledger.add_game_record("老王", record("陪玩", 1, game_id="OLD"))
    ledger.add_game_record("老王", record("陪玩", 9, game_id="NEW"))
    text = await Reports(ledger).history("老王")
    assert text.index("NEW--") < text.index("OLD--")

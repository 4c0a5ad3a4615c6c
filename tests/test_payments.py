"""Tests for redemption code issuing and settlement."""

import asyncio
from decimal import Decimal

import pytest

from catalog import TradeCatalog, ValidationError, TradeItemNotFoundError, SoldOutError
from payments import (
    PaymentCodeIssuer, PaymentError, CodeNotFoundError, CodeAlreadyUsedError,
    AmountMismatchError
)


@pytest.mark.asyncio
async def test_issue_and_lookup(issuer):
    code = await issuer.issue(Decimal("5.00"))
    assert len(code) == 12
    assert code.isdigit()

    assert await issuer.lookup_unused_by_amount(Decimal("5.00")) == code

    await issuer.redeem(code)
    with pytest.raises(CodeNotFoundError):
        await issuer.lookup_unused_by_amount(Decimal("5.00"))


@pytest.mark.asyncio
async def test_lookup_returns_oldest_code(issuer):
    first = await issuer.issue(Decimal("10"))
    await issuer.issue(Decimal("10"))
    assert await issuer.lookup_unused_by_amount(Decimal("10")) == first


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1")])
async def test_issue_rejects_non_positive_amount(issuer, amount):
    with pytest.raises(ValidationError):
        await issuer.issue(amount)


@pytest.mark.asyncio
async def test_issue_regenerates_on_collision(ledger, catalog, monkeypatch):
    issuer = PaymentCodeIssuer(ledger, catalog, code_digits=6, max_attempts=3)
    await ledger.insert_code("111111", Decimal("1"))

    codes = iter(["111111", "222222"])
    monkeypatch.setattr(issuer, "_generate_code", lambda: next(codes))
    assert await issuer.issue(Decimal("2")) == "222222"


@pytest.mark.asyncio
async def test_issue_gives_up_after_max_attempts(ledger, catalog, monkeypatch):
    issuer = PaymentCodeIssuer(ledger, catalog, code_digits=6, max_attempts=2)
    await ledger.insert_code("111111", Decimal("1"))

    monkeypatch.setattr(issuer, "_generate_code", lambda: "111111")
    with pytest.raises(PaymentError):
        await issuer.issue(Decimal("2"))


@pytest.mark.asyncio
async def test_redeem(issuer):
    code = await issuer.issue(Decimal("8.5"))
    assert await issuer.redeem(code) == Decimal("8.5")

    with pytest.raises(CodeAlreadyUsedError):
        await issuer.redeem(code)

    with pytest.raises(CodeNotFoundError):
        await issuer.redeem("000")


@pytest.mark.asyncio
async def test_concurrent_redeem_succeeds_once(yielding_ledger):
    """Interleaved redeems of one code: exactly one wins, the rest see it used."""
    issuer = PaymentCodeIssuer(yielding_ledger, TradeCatalog(yielding_ledger))
    code = await issuer.issue(Decimal("5"))

    results = await asyncio.gather(
        *[issuer.redeem(code) for _ in range(10)],
        return_exceptions=True
    )
    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert successes == [Decimal("5")]
    assert len(failures) == 9
    assert all(isinstance(f, CodeAlreadyUsedError) for f in failures)


@pytest.mark.asyncio
async def test_settle_group_trade(issuer, catalog):
    item_id = await catalog.create("老王", "手办", None, Decimal("50"), 2)
    await catalog.bind(item_id, "group-1")
    code = await issuer.issue(Decimal("50"))

    item = await issuer.settle_group_trade("group-1", code, "小李")
    assert item.id == item_id
    assert item.quantity == 1
    assert item.buyers == ["小李"]

    stored = await catalog.get_by_id(item_id)
    assert stored.quantity == 1
    assert stored.buyers == ["小李"]
    with pytest.raises(CodeAlreadyUsedError):
        await issuer.redeem(code)


@pytest.mark.asyncio
async def test_settle_amount_mismatch_consumes_nothing(issuer, catalog, ledger):
    item_id = await catalog.create("老王", "手办", None, Decimal("50"), 1)
    await catalog.bind(item_id, "group-1")
    code = await issuer.issue(Decimal("40"))

    with pytest.raises(AmountMismatchError):
        await issuer.settle_group_trade("group-1", code, "小李")

    assert not (await ledger.get_code(code)).used
    assert (await catalog.get_by_id(item_id)).quantity == 1


@pytest.mark.asyncio
async def test_settle_sold_out_rolls_back_code(issuer, catalog, ledger):
    item_id = await catalog.create("老王", "手办", None, Decimal("50"), 1)
    await catalog.bind(item_id, "group-1")
    await catalog.decrement_for_buyer(item_id, "先来的")
    code = await issuer.issue(Decimal("50"))

    with pytest.raises(SoldOutError):
        await issuer.settle_group_trade("group-1", code, "小李")

    assert not (await ledger.get_code(code)).used


@pytest.mark.asyncio
async def test_settle_without_bound_item(issuer):
    code = await issuer.issue(Decimal("50"))
    with pytest.raises(TradeItemNotFoundError):
        await issuer.settle_group_trade("group-9", code, "小李")


@pytest.mark.asyncio
async def test_settle_unknown_code(issuer, catalog):
    item_id = await catalog.create("老王", "手办", None, Decimal("50"), 1)
    await catalog.bind(item_id, "group-1")
    with pytest.raises(CodeNotFoundError):
        await issuer.settle_group_trade("group-1", "999", "小李")

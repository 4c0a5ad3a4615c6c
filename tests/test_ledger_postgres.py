"""Integration tests for the PostgreSQL/CockroachDB ledger.

Set CHATMARKET_TEST_DB_URL to a disposable database to run them. All tables
in that database are dropped.
"""

import asyncio
import os
from decimal import Decimal

import pytest
import pytest_asyncio

from catalog import TradeCatalog, SoldOutError
from database.exceptions import DuplicateCodeError
from ledger import open_ledger
from payments import PaymentCodeIssuer, AmountMismatchError, CodeAlreadyUsedError

DB_URL = os.environ.get('CHATMARKET_TEST_DB_URL')

pytestmark = pytest.mark.skipif(not DB_URL, reason="CHATMARKET_TEST_DB_URL not set")


@pytest_asyncio.fixture
async def pg_ledger():
    """Ledger over a freshly recreated schema."""
    async with open_ledger(DB_URL, force_recreate=True) as ledger:
        yield ledger


@pytest.mark.asyncio
async def test_trade_item_roundtrip(pg_ledger):
    item_id = await pg_ledger.insert_trade_item("老王", "手办", "", Decimal("50.00"), 2)
    item = await pg_ledger.get_trade_item(item_id)
    assert item.name == "手办"
    assert item.price == Decimal("50.00")
    assert item.buyers == []

    assert await pg_ledger.decrement_quantity(item_id, "小李") == 1
    assert (await pg_ledger.get_trade_item(item_id)).buyers == ["小李"]


@pytest.mark.asyncio
async def test_concurrent_decrements(pg_ledger):
    catalog = TradeCatalog(pg_ledger)
    item_id = await catalog.create("老王", "手办", None, Decimal("50"), 3)

    results = await asyncio.gather(
        *[catalog.decrement_for_buyer(item_id, f"buyer-{i}") for i in range(4)],
        return_exceptions=True
    )
    assert sorted(r for r in results if isinstance(r, int)) == [0, 1, 2]
    assert sum(isinstance(r, SoldOutError) for r in results) == 1


@pytest.mark.asyncio
async def test_duplicate_code(pg_ledger):
    await pg_ledger.insert_code("123456", Decimal("5"))
    with pytest.raises(DuplicateCodeError):
        await pg_ledger.insert_code("123456", Decimal("5"))


@pytest.mark.asyncio
async def test_claim_code_once(pg_ledger):
    await pg_ledger.insert_code("123456", Decimal("5"))
    claims = await asyncio.gather(*[pg_ledger.claim_code("123456") for _ in range(5)])
    assert sum(claim is not None for claim in claims) == 1


@pytest.mark.asyncio
async def test_settle_rolls_back_on_mismatch(pg_ledger):
    catalog = TradeCatalog(pg_ledger)
    issuer = PaymentCodeIssuer(pg_ledger, catalog)
    item_id = await catalog.create("老王", "手办", None, Decimal("50"), 1)
    await catalog.bind(item_id, "group-1")

    code = await issuer.issue(Decimal("40"))
    with pytest.raises(AmountMismatchError):
        await issuer.settle_group_trade("group-1", code, "小李")
    assert not (await pg_ledger.get_code(code)).used

    code = await issuer.issue(Decimal("50"))
    item = await issuer.settle_group_trade("group-1", code, "小李")
    assert item.quantity == 0
    with pytest.raises(CodeAlreadyUsedError):
        await issuer.redeem(code)

"""Ledger module for trade items and redemption codes.

This module provides:
- The Ledger interface every component talks to
- A PostgreSQL/CockroachDB implementation over asyncpg
- An in-process implementation for memory:// URLs
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from database import connect
from .base import Ledger
from .memory import MemoryLedger
from .postgres import PostgresLedger
from .models import TradeItem, RedemptionCode, GameRecord

logger = logging.getLogger(__name__)

MEMORY_SCHEME = 'memory://'


@asynccontextmanager
async def open_ledger(db_url: str, force_recreate: bool = False) -> AsyncIterator[Ledger]:
    """Open the ledger named by db_url for the lifetime of the block."""
    if db_url.startswith(MEMORY_SCHEME):
        logger.info("Using in-memory ledger")
        ledger = MemoryLedger()
        try:
            yield ledger
        finally:
            await ledger.close()
        return

    async with connect(db_url, force_recreate=force_recreate) as pool:
        logger.info("Database ledger ready")
        yield PostgresLedger(pool)


__all__ = [
    'Ledger', 'MemoryLedger', 'PostgresLedger', 'open_ledger',
    'TradeItem', 'RedemptionCode', 'GameRecord'
]

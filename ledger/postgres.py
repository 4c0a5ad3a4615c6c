"""PostgreSQL/CockroachDB ledger backed by an asyncpg pool."""
import functools
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator, Dict, List, Optional

import asyncpg

from database.exceptions import DatabaseError, DuplicateCodeError, StorageError
from .base import Ledger
from .models import TradeItem, RedemptionCode, GameRecord

logger = logging.getLogger(__name__)

ITEM_COLUMNS = '''
    id, seller, COALESCE(venue_id, '') AS venue_id, item_name AS name,
    COALESCE(description, '') AS description, price, quantity,
    COALESCE(image_ref, '') AS image_ref, created_at
'''

CODE_COLUMNS = 'id, code, amount, used, created_at, used_at'


def wraps_db_errors(func):
    """Re-raise driver failures as DatabaseError."""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except StorageError:
            raise
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"{func.__name__} failed: {e}")
            raise DatabaseError(f"{func.__name__} failed: {e}") from e
    return wrapper


class PostgresLedger(Ledger):
    """Ledger that runs every statement through asyncpg."""

    def __init__(self, pool: asyncpg.Pool, conn: Optional[asyncpg.Connection] = None):
        """Initialize the ledger.

        Args:
            pool: Database pool
            conn: Connection the ledger is bound to inside a transaction
        """
        self.pool = pool
        self._conn = conn

    @asynccontextmanager
    async def _acquire(self) -> AsyncIterator[asyncpg.Connection]:
        if self._conn is not None:
            yield self._conn
        else:
            async with self.pool.acquire() as conn:
                yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["PostgresLedger"]:
        if self._conn is not None:
            async with self._conn.transaction():
                yield self
            return

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield PostgresLedger(self.pool, conn)

    async def _attach_buyers(self, conn, rows) -> List[TradeItem]:
        if not rows:
            return []
        buyers: Dict[int, List[str]] = {row['id']: [] for row in rows}
        buyer_rows = await conn.fetch(
            '''
            SELECT item_id, buyer FROM trade_item_buyers
            WHERE item_id = ANY($1::INT8[])
            ORDER BY id
            ''',
            list(buyers)
        )
        for buyer_row in buyer_rows:
            buyers[buyer_row['item_id']].append(buyer_row['buyer'])
        return [TradeItem(**dict(row), buyers=buyers[row['id']]) for row in rows]

    async def _fetch_item(self, conn, where: str, *args) -> Optional[TradeItem]:
        row = await conn.fetchrow(
            f'SELECT {ITEM_COLUMNS} FROM trade_items WHERE {where} ORDER BY id LIMIT 1',
            *args
        )
        if not row:
            return None
        items = await self._attach_buyers(conn, [row])
        return items[0]

    # Trade items
    @wraps_db_errors
    async def insert_trade_item(self, seller, name, description, price, quantity) -> int:
        async with self._acquire() as conn:
            item_id = await conn.fetchval(
                '''
                INSERT INTO trade_items (
                    seller, venue_id, item_name, description, price, quantity, image_ref
                ) VALUES ($1, '', $2, $3, $4, $5, '')
                RETURNING id
                ''',
                seller, name, description or '', Decimal(price), quantity
            )
            logger.info(f"Inserted trade item {item_id} for seller {seller}")
            return item_id

    @wraps_db_errors
    async def get_trade_item(self, item_id: int) -> Optional[TradeItem]:
        async with self._acquire() as conn:
            return await self._fetch_item(conn, 'id = $1', item_id)

    @wraps_db_errors
    async def get_trade_item_by_venue(self, venue_id: str) -> Optional[TradeItem]:
        if not venue_id:
            return None
        async with self._acquire() as conn:
            return await self._fetch_item(conn, 'venue_id = $1', venue_id)

    @wraps_db_errors
    async def find_pending_image_item(self, seller: str) -> Optional[TradeItem]:
        async with self._acquire() as conn:
            return await self._fetch_item(
                conn,
                "seller = $1 AND COALESCE(image_ref, '') = ''",
                seller
            )

    @wraps_db_errors
    async def set_image_if_empty(self, item_id: int, image_ref: str) -> bool:
        async with self._acquire() as conn:
            updated = await conn.fetchval(
                '''
                UPDATE trade_items
                SET image_ref = $2, updated_at = now()
                WHERE id = $1 AND COALESCE(image_ref, '') = ''
                RETURNING id
                ''',
                item_id, image_ref
            )
            return updated is not None

    @wraps_db_errors
    async def bind_venue(self, item_id: int, venue_id: str) -> Optional[str]:
        async with self._acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    "SELECT COALESCE(venue_id, '') AS venue_id FROM trade_items WHERE id = $1 FOR UPDATE",
                    item_id
                )
                if not row:
                    return None

                await conn.execute(
                    '''
                    UPDATE trade_items SET venue_id = '', updated_at = now()
                    WHERE venue_id = $2 AND id <> $1
                    ''',
                    item_id, venue_id
                )
                await conn.execute(
                    'UPDATE trade_items SET venue_id = $2, updated_at = now() WHERE id = $1',
                    item_id, venue_id
                )
                return row['venue_id']

    @wraps_db_errors
    async def decrement_quantity(self, item_id: int, buyer: str) -> Optional[int]:
        async with self._acquire() as conn:
            async with conn.transaction():
                remaining = await conn.fetchval(
                    '''
                    UPDATE trade_items
                    SET quantity = quantity - 1, updated_at = now()
                    WHERE id = $1 AND quantity > 0
                    RETURNING quantity
                    ''',
                    item_id
                )
                if remaining is None:
                    return None

                await conn.execute(
                    'INSERT INTO trade_item_buyers (item_id, buyer) VALUES ($1, $2)',
                    item_id, buyer
                )
                return remaining

    @wraps_db_errors
    async def list_trade_items_by_seller(self, seller: str) -> List[TradeItem]:
        async with self._acquire() as conn:
            rows = await conn.fetch(
                f'''
                SELECT {ITEM_COLUMNS} FROM trade_items
                WHERE seller = $1 AND quantity > 0
                ORDER BY id
                ''',
                seller
            )
            return await self._attach_buyers(conn, rows)

    @wraps_db_errors
    async def list_available_trade_items(self, name_filter: Optional[str] = None) -> List[TradeItem]:
        async with self._acquire() as conn:
            if name_filter:
                rows = await conn.fetch(
                    f'''
                    SELECT {ITEM_COLUMNS} FROM trade_items
                    WHERE quantity > 0 AND strpos(item_name, $1) > 0
                    ORDER BY id
                    ''',
                    name_filter
                )
            else:
                rows = await conn.fetch(
                    f'SELECT {ITEM_COLUMNS} FROM trade_items WHERE quantity > 0 ORDER BY id'
                )
            return await self._attach_buyers(conn, rows)

    # Redemption codes
    @wraps_db_errors
    async def insert_code(self, code: str, amount: Decimal) -> RedemptionCode:
        async with self._acquire() as conn:
            try:
                row = await conn.fetchrow(
                    f'''
                    INSERT INTO redemption_codes (code, amount, used)
                    VALUES ($1, $2, false)
                    RETURNING {CODE_COLUMNS}
                    ''',
                    code, Decimal(amount)
                )
            except asyncpg.UniqueViolationError as e:
                raise DuplicateCodeError(f"Redemption code {code} already exists") from e
            return RedemptionCode(**dict(row))

    @wraps_db_errors
    async def get_code(self, code: str) -> Optional[RedemptionCode]:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                f'SELECT {CODE_COLUMNS} FROM redemption_codes WHERE code = $1',
                code
            )
            return RedemptionCode(**dict(row)) if row else None

    @wraps_db_errors
    async def find_unused_code_by_amount(self, amount: Decimal) -> Optional[RedemptionCode]:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                f'''
                SELECT {CODE_COLUMNS} FROM redemption_codes
                WHERE amount = $1 AND used = false
                ORDER BY id
                LIMIT 1
                ''',
                Decimal(amount)
            )
            return RedemptionCode(**dict(row)) if row else None

    @wraps_db_errors
    async def claim_code(self, code: str) -> Optional[RedemptionCode]:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                f'''
                UPDATE redemption_codes
                SET used = true, used_at = now()
                WHERE code = $1 AND used = false
                RETURNING {CODE_COLUMNS}
                ''',
                code
            )
            return RedemptionCode(**dict(row)) if row else None

    # Reports
    @wraps_db_errors
    async def get_current_event(self) -> Optional[str]:
        async with self._acquire() as conn:
            return await conn.fetchval(
                'SELECT event_text FROM current_event WHERE id = 1'
            )

    @wraps_db_errors
    async def get_game_history(self, nickname: str) -> List[GameRecord]:
        async with self._acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT created_at, star_cost, game_id, stars,
                       COALESCE(final_rank, '') AS final_rank, is_active, order_type
                FROM game_history
                WHERE nickname = $1
                ORDER BY order_type, created_at DESC
                ''',
                nickname
            )
            return [GameRecord(**dict(row)) for row in rows]

    async def ping(self) -> bool:
        try:
            async with self._acquire() as conn:
                await conn.fetchval('SELECT 1')
            return True
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.warning(f"Ledger ping failed: {e}")
            return False

"""In-process ledger used for local runs (db_url = memory://) and tests.

Statements never suspend, so each one is atomic with respect to other
asyncio tasks. Transactions are serialized on a lock and restore a snapshot
of the tables when the block raises.
"""
import asyncio
import copy
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import AsyncIterator, Dict, List, Optional, Any

from database.exceptions import DuplicateCodeError
from .base import Ledger
from .models import TradeItem, RedemptionCode, GameRecord

logger = logging.getLogger(__name__)


class MemoryLedger(Ledger):
    """Ledger backed by dictionaries."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._items: Dict[int, Dict[str, Any]] = {}
        self._buyers: Dict[int, List[str]] = {}
        self._codes: Dict[str, Dict[str, Any]] = {}
        self._next_item_id = 1
        self._next_code_id = 1
        self.current_event: Optional[str] = None
        self.game_history: Dict[str, List[GameRecord]] = {}

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["MemoryLedger"]:
        async with self._lock:
            snapshot = self._snapshot()
            try:
                yield self
            except BaseException:
                self._restore(snapshot)
                raise

    def _snapshot(self) -> Dict[str, Any]:
        return {
            'items': copy.deepcopy(self._items),
            'buyers': copy.deepcopy(self._buyers),
            'codes': copy.deepcopy(self._codes),
            'next_item_id': self._next_item_id,
            'next_code_id': self._next_code_id
        }

    def _restore(self, snapshot: Dict[str, Any]) -> None:
        self._items = snapshot['items']
        self._buyers = snapshot['buyers']
        self._codes = snapshot['codes']
        self._next_item_id = snapshot['next_item_id']
        self._next_code_id = snapshot['next_code_id']
        logger.debug("Rolled back memory ledger transaction")

    def _item(self, row: Dict[str, Any]) -> TradeItem:
        return TradeItem(**row, buyers=list(self._buyers.get(row['id'], [])))

    # Trade items
    async def insert_trade_item(self, seller, name, description, price, quantity) -> int:
        item_id = self._next_item_id
        self._next_item_id += 1
        self._items[item_id] = {
            'id': item_id,
            'seller': seller,
            'venue_id': '',
            'name': name,
            'description': description or '',
            'price': Decimal(price),
            'quantity': quantity,
            'image_ref': '',
            'created_at': datetime.now()
        }
        self._buyers[item_id] = []
        return item_id

    async def get_trade_item(self, item_id: int) -> Optional[TradeItem]:
        row = self._items.get(item_id)
        return self._item(row) if row else None

    async def get_trade_item_by_venue(self, venue_id: str) -> Optional[TradeItem]:
        for item_id in sorted(self._items):
            row = self._items[item_id]
            if venue_id and row['venue_id'] == venue_id:
                return self._item(row)
        return None

    async def find_pending_image_item(self, seller: str) -> Optional[TradeItem]:
        for item_id in sorted(self._items):
            row = self._items[item_id]
            if row['seller'] == seller and not row['image_ref']:
                return self._item(row)
        return None

    async def set_image_if_empty(self, item_id: int, image_ref: str) -> bool:
        row = self._items.get(item_id)
        if row is None or row['image_ref']:
            return False
        row['image_ref'] = image_ref
        return True

    async def bind_venue(self, item_id: int, venue_id: str) -> Optional[str]:
        row = self._items.get(item_id)
        if row is None:
            return None
        previous = row['venue_id']
        for other in self._items.values():
            if other['id'] != item_id and other['venue_id'] == venue_id:
                other['venue_id'] = ''
        row['venue_id'] = venue_id
        return previous

    async def decrement_quantity(self, item_id: int, buyer: str) -> Optional[int]:
        row = self._items.get(item_id)
        if row is None or row['quantity'] <= 0:
            return None
        row['quantity'] -= 1
        self._buyers[item_id].append(buyer)
        return row['quantity']

    async def list_trade_items_by_seller(self, seller: str) -> List[TradeItem]:
        return [
            self._item(self._items[item_id])
            for item_id in sorted(self._items)
            if self._items[item_id]['seller'] == seller and self._items[item_id]['quantity'] > 0
        ]

    async def list_available_trade_items(self, name_filter: Optional[str] = None) -> List[TradeItem]:
        return [
            self._item(self._items[item_id])
            for item_id in sorted(self._items)
            if self._items[item_id]['quantity'] > 0
            and (not name_filter or name_filter in self._items[item_id]['name'])
        ]

    # Redemption codes
    async def insert_code(self, code: str, amount: Decimal) -> RedemptionCode:
        if code in self._codes:
            raise DuplicateCodeError(f"Redemption code {code} already exists")
        row = {
            'id': self._next_code_id,
            'code': code,
            'amount': Decimal(amount),
            'used': False,
            'created_at': datetime.now(),
            'used_at': None
        }
        self._next_code_id += 1
        self._codes[code] = row
        return RedemptionCode(**row)

    async def get_code(self, code: str) -> Optional[RedemptionCode]:
        row = self._codes.get(code)
        return RedemptionCode(**row) if row else None

    async def find_unused_code_by_amount(self, amount: Decimal) -> Optional[RedemptionCode]:
        candidates = [
            row for row in self._codes.values()
            if not row['used'] and row['amount'] == amount
        ]
        if not candidates:
            return None
        return RedemptionCode(**min(candidates, key=lambda row: row['id']))

    async def claim_code(self, code: str) -> Optional[RedemptionCode]:
        row = self._codes.get(code)
        if row is None or row['used']:
            return None
        row['used'] = True
        row['used_at'] = datetime.now()
        return RedemptionCode(**row)

    # Reports
    async def get_current_event(self) -> Optional[str]:
        return self.current_event

    async def get_game_history(self, nickname: str) -> List[GameRecord]:
        records = self.game_history.get(nickname, [])
        # Stable sorts: newest first, then grouped by order type
        records = sorted(records, key=lambda r: r.created_at, reverse=True)
        return sorted(records, key=lambda r: r.order_type)

    def set_current_event(self, event_text: Optional[str]) -> None:
        self.current_event = event_text

    def add_game_record(self, nickname: str, record: GameRecord) -> None:
        self.game_history.setdefault(nickname, []).append(record)

"""Ledger interface.

The ledger is the single source of truth for trade items and redemption
codes. Every statement the engine relies on is a method here; conditional
mutations (decrement, claim, image attach) are single atomic statements so
callers never read-then-write.
"""
from decimal import Decimal
from typing import AsyncContextManager, List, Optional

from .models import TradeItem, RedemptionCode, GameRecord


class Ledger:
    """Ledger interface."""

    def transaction(self) -> AsyncContextManager["Ledger"]:
        """Open a transaction scope.

        Yields a ledger whose statements all run in one transaction. Leaving
        the block with an exception rolls every statement back.
        """
        raise NotImplementedError

    # Trade items
    async def insert_trade_item(
        self,
        seller: str,
        name: str,
        description: str,
        price: Decimal,
        quantity: int
    ) -> int:
        """Insert a trade item with empty venue, buyers and image. Returns its id."""
        raise NotImplementedError

    async def get_trade_item(self, item_id: int) -> Optional[TradeItem]:
        """Get trade item by id, including its buyers."""
        raise NotImplementedError

    async def get_trade_item_by_venue(self, venue_id: str) -> Optional[TradeItem]:
        """Get the trade item bound to a venue."""
        raise NotImplementedError

    async def find_pending_image_item(self, seller: str) -> Optional[TradeItem]:
        """Get the seller's lowest-id item that has no image yet."""
        raise NotImplementedError

    async def set_image_if_empty(self, item_id: int, image_ref: str) -> bool:
        """Set the image reference only while it is still empty."""
        raise NotImplementedError

    async def bind_venue(self, item_id: int, venue_id: str) -> Optional[str]:
        """Bind an item to a venue, unbinding any other item from that venue.

        Returns the item's previous venue id ("" when it had none), or None
        when the item does not exist.
        """
        raise NotImplementedError

    async def decrement_quantity(self, item_id: int, buyer: str) -> Optional[int]:
        """Decrement quantity by one and append the buyer, only when quantity > 0.

        Returns the remaining quantity, or None when nothing was updated.
        """
        raise NotImplementedError

    async def list_trade_items_by_seller(self, seller: str) -> List[TradeItem]:
        """List a seller's items with quantity > 0."""
        raise NotImplementedError

    async def list_available_trade_items(self, name_filter: Optional[str] = None) -> List[TradeItem]:
        """List items with quantity > 0, optionally containing name_filter in the name."""
        raise NotImplementedError

    # Redemption codes
    async def insert_code(self, code: str, amount: Decimal) -> RedemptionCode:
        """Insert an unused code.

        Raises:
            DuplicateCodeError: If the code string already exists
        """
        raise NotImplementedError

    async def get_code(self, code: str) -> Optional[RedemptionCode]:
        raise NotImplementedError

    async def find_unused_code_by_amount(self, amount: Decimal) -> Optional[RedemptionCode]:
        """Get the lowest-id unused code with exactly this amount."""
        raise NotImplementedError

    async def claim_code(self, code: str) -> Optional[RedemptionCode]:
        """Mark an unused code as used. Returns None when it is absent or already used."""
        raise NotImplementedError

    # Reports
    async def get_current_event(self) -> Optional[str]:
        raise NotImplementedError

    async def get_game_history(self, nickname: str) -> List[GameRecord]:
        """Get a player's game records ordered by order type, newest first."""
        raise NotImplementedError

    async def ping(self) -> bool:
        """Check that the ledger can serve statements."""
        return True

    async def close(self) -> None:
        """Release resources held by the ledger."""
        return None

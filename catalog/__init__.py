"""Catalog module for managing trade items.

This module provides functionality for:
- Creating trade items and attaching their images
- Binding items to the group chat (venue) where they are traded
- Recording purchases against the remaining quantity
- Listing and looking up items
"""

import logging
from decimal import Decimal
from typing import List, Optional

from blobs import BlobStore
from ledger import Ledger, TradeItem

logger = logging.getLogger(__name__)

# Storage bounds: prices are DECIMAL(18, 2), quantities INT8
PRICE_STEP = Decimal("0.01")
PRICE_LIMIT = Decimal(10) ** 16
MAX_QUANTITY = 2 ** 63 - 1


class CatalogError(Exception):
    """Base exception for catalog operations."""
    pass


class ValidationError(CatalogError, ValueError):
    """Raised when trade item fields are invalid."""
    pass


class TradeItemNotFoundError(CatalogError, LookupError):
    """Raised when a trade item is not found."""
    def __init__(self, item_id: Optional[int] = None):
        self.item_id = item_id
        if item_id is None:
            super().__init__("当前群聊没有绑定交易品")
        else:
            super().__init__(f"交易品{item_id}号不存在")


class PendingImageNotFoundError(CatalogError, LookupError):
    """Raised when a seller has no item waiting for an image."""
    def __init__(self, seller: str):
        self.seller = seller
        super().__init__("未找到待添加图片的交易品。")


class SoldOutError(CatalogError):
    """Raised when a trade item has no quantity left."""
    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__("交易品已售罄")


class TradeCatalog:
    """Manager class for trade item operations."""

    def __init__(self, ledger: Ledger, blob_store: Optional[BlobStore] = None):
        """Initialize the catalog.

        Args:
            ledger: Ledger holding the trade items
            blob_store: Store for item images. Required for image operations.
        """
        self.ledger = ledger
        self.blob_store = blob_store

    def with_ledger(self, ledger: Ledger) -> "TradeCatalog":
        """Return a catalog running its statements on another ledger (e.g. a transaction)."""
        return TradeCatalog(ledger, self.blob_store)

    async def create(
        self,
        seller: str,
        name: str,
        description: Optional[str],
        price: Decimal,
        quantity: int = 1
    ) -> int:
        """Create a new trade item.

        Args:
            seller: Seller identity
            name: Item name
            description: Optional description
            price: Unit price, must be positive
            quantity: Units for sale, at least 1

        Returns:
            The new item id

        Raises:
            ValidationError: If any field is invalid
        """
        if not seller:
            raise ValidationError("卖家名称不能为空。")
        if not name:
            raise ValidationError("交易品名称不能为空。")
        try:
            price = Decimal(price)
        except (ArithmeticError, TypeError, ValueError):
            raise ValidationError("价格格式不正确。请确保是数字。")
        if not price.is_finite() or price <= 0:
            raise ValidationError("价格必须大于0。")
        if price >= PRICE_LIMIT:
            raise ValidationError("价格超出允许范围。")
        if price != price.quantize(PRICE_STEP):
            raise ValidationError("价格最多保留两位小数。")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationError("数量必须至少为1。")
        if quantity > MAX_QUANTITY:
            raise ValidationError("数量超出允许范围。")

        item_id = await self.ledger.insert_trade_item(
            seller, name, description or "", price, quantity
        )
        logger.info(f"Created trade item {item_id} ({name}) for {seller}: price={price} quantity={quantity}")
        return item_id

    async def pending_image_item(self, seller: str) -> Optional[TradeItem]:
        """Get the seller's lowest-id item still waiting for an image."""
        return await self.ledger.find_pending_image_item(seller)

    async def attach_image(self, seller: str, image_bytes: bytes) -> TradeItem:
        """Attach an image to the seller's pending item.

        The image is stored once. If another message attaches an image to
        the same item first, the next pending item receives it instead.

        Raises:
            PendingImageNotFoundError: If the seller has no pending item
        """
        item = await self.ledger.find_pending_image_item(seller)
        if item is None:
            raise PendingImageNotFoundError(seller)

        if self.blob_store is None:
            raise CatalogError("No blob store configured for images")
        reference = await self.blob_store.store(image_bytes)

        while item is not None:
            if await self.ledger.set_image_if_empty(item.id, reference):
                logger.info(f"Attached image {reference} to trade item {item.id}")
                return item.model_copy(update={'image_ref': reference})
            logger.debug(f"Trade item {item.id} received an image concurrently")
            item = await self.ledger.find_pending_image_item(seller)

        raise PendingImageNotFoundError(seller)

    async def bind(self, item_id: int, venue_id: str) -> TradeItem:
        """Bind an item to a venue.

        Rebinding overwrites the previous venue. Any other item bound to the
        same venue is unbound.

        Raises:
            TradeItemNotFoundError: If the item does not exist
        """
        previous = await self.ledger.bind_venue(item_id, venue_id)
        if previous is None:
            raise TradeItemNotFoundError(item_id)
        if previous and previous != venue_id:
            logger.warning(f"Trade item {item_id} rebound from venue {previous} to {venue_id}")
        else:
            logger.info(f"Trade item {item_id} bound to venue {venue_id}")
        return await self.get_by_id(item_id)

    async def decrement_for_buyer(self, item_id: int, buyer: str) -> int:
        """Record one purchase.

        Returns:
            Remaining quantity

        Raises:
            TradeItemNotFoundError: If the item does not exist
            SoldOutError: If no quantity is left
        """
        remaining = await self.ledger.decrement_quantity(item_id, buyer)
        if remaining is None:
            if await self.ledger.get_trade_item(item_id) is None:
                raise TradeItemNotFoundError(item_id)
            raise SoldOutError(item_id)
        logger.info(f"Trade item {item_id} sold to {buyer}, {remaining} left")
        return remaining

    async def list_for_seller(self, seller: str) -> List[TradeItem]:
        return await self.ledger.list_trade_items_by_seller(seller)

    async def list_available(self, name_filter: Optional[str] = None) -> List[TradeItem]:
        return await self.ledger.list_available_trade_items(name_filter)

    async def get_by_id(self, item_id: int) -> Optional[TradeItem]:
        return await self.ledger.get_trade_item(item_id)

    async def get_by_venue(self, venue_id: str) -> Optional[TradeItem]:
        return await self.ledger.get_trade_item_by_venue(venue_id)

    async def load_image(self, item: TradeItem) -> Optional[bytes]:
        """Load the item's image, if it has one."""
        if not item.image_ref or self.blob_store is None:
            return None
        return await self.blob_store.load(item.image_ref)


__all__ = [
    'TradeCatalog', 'CatalogError', 'ValidationError', 'TradeItemNotFoundError',
    'PendingImageNotFoundError', 'SoldOutError', 'PRICE_STEP', 'PRICE_LIMIT', 'MAX_QUANTITY'
]

"""Conversation routing.

Each inbound message is parsed into one command and dispatched to its
handler. Failures are contained per message: a failing message is logged
and never takes the service down.
"""
import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional, Type

from catalog import (
    TradeCatalog, CatalogError, ValidationError, TradeItemNotFoundError,
    PendingImageNotFoundError
)
from commands import (
    parse, Command, ShowPriceList, ShowHistory, ShowHelp, AttachImage,
    NotifyTransfer, RechargeByAmount, CreateTradeItem, ListMyTradeItems,
    ListTradeZone, ShowTradeItem, StartTrade, RedeemCode, Malformed
)
from database.exceptions import StorageError
from gateway import MessagingGateway, InboundMessage, Identity
from payments import PaymentCodeIssuer, PaymentError, CodeNotFoundError
from reports import Reports
from . import replies

logger = logging.getLogger(__name__)

Handler = Callable[[InboundMessage, Command, Identity], Awaitable[None]]


class ConversationRouter:
    """Routes parsed chat commands to the catalog, issuer and reports."""

    def __init__(
        self,
        gateway: MessagingGateway,
        catalog: TradeCatalog,
        issuer: PaymentCodeIssuer,
        reports: Reports,
        contact_card_path: Optional[str] = None
    ):
        """Initialize the router.

        Args:
            gateway: Messaging gateway used for replies
            catalog: Trade item catalog
            issuer: Redemption code issuer
            reports: Report generator
            contact_card_path: Image sent to a group when a trade starts
        """
        self.gateway = gateway
        self.catalog = catalog
        self.issuer = issuer
        self.reports = reports
        self.contact_card_path = contact_card_path

        self._handlers: Dict[Type[Command], Handler] = {
            ShowPriceList: self._show_price_list,
            ShowHistory: self._show_history,
            ShowHelp: self._show_help,
            AttachImage: self._attach_image,
            NotifyTransfer: self._notify_transfer,
            RechargeByAmount: self._recharge_by_amount,
            CreateTradeItem: self._create_trade_item,
            ListMyTradeItems: self._list_my_trade_items,
            ListTradeZone: self._list_trade_zone,
            ShowTradeItem: self._show_trade_item,
            StartTrade: self._start_trade,
            RedeemCode: self._redeem_code,
            Malformed: self._malformed,
        }

    async def handle(self, message: InboundMessage) -> Optional[Command]:
        """Handle one inbound message.

        Returns:
            The parsed command, or None if handling failed before parsing
        """
        command = None
        try:
            command = parse(message.content, message.is_group, message.kind)
            handler = self._handlers.get(type(command))
            if handler is None:
                return command

            identity = await self.gateway.current_sender_identity(message)
            logger.info(
                f"Handling {type(command).__name__} from {identity.nickname} "
                f"in {'group' if message.is_group else 'private'} chat {message.chat_id}"
            )
            await handler(message, command, identity)

        except StorageError as e:
            logger.error(f"Storage failure while handling message {message.message_id}: {e}")
            await self._reply_safely(message.chat_id, replies.SYSTEM_BUSY)
        except Exception:
            logger.exception(f"Unexpected error while handling message {message.message_id}")

        return command

    async def _reply(self, message: InboundMessage, text: str) -> None:
        await self.gateway.send_text(message.chat_id, text)

    async def _reply_safely(self, target_id: str, text: str) -> None:
        try:
            await self.gateway.send_text(target_id, text)
        except Exception as e:
            logger.error(f"Failed to send reply to {target_id}: {e}")

    async def _send_item_image(self, message: InboundMessage, item) -> None:
        data = await self.catalog.load_image(item)
        if data:
            await self.gateway.send_image(message.chat_id, data)

    async def _is_administered_group(self, chat_id: str) -> bool:
        groups = await self.gateway.list_groups()
        return any(group.id == chat_id for group in groups)

    # Reports
    async def _show_price_list(self, message, command, identity) -> None:
        await self._reply(message, await self.reports.price_list())

    async def _show_history(self, message, command, identity) -> None:
        await self._reply(message, await self.reports.history(identity.nickname))

    async def _show_help(self, message, command, identity) -> None:
        await self._reply(message, replies.HELP_TEXT)

    # Trade items
    async def _attach_image(self, message, command, identity) -> None:
        seller = identity.nickname
        if await self.catalog.pending_image_item(seller) is None:
            await self._pending_image_missing(message, seller)
            return

        data = await self.gateway.fetch_picture(message)
        try:
            item = await self.catalog.attach_image(seller, data)
        except PendingImageNotFoundError:
            await self._pending_image_missing(message, seller)
            return

        await self._reply(message, replies.image_attached(item, message.is_group))

    async def _pending_image_missing(self, message, seller: str) -> None:
        if message.is_group:
            logger.info(f"No trade item waiting for an image from {seller}")
        else:
            await self._reply(message, replies.PENDING_IMAGE_NOT_FOUND)

    async def _create_trade_item(self, message, command: CreateTradeItem, identity) -> None:
        seller = command.seller if command.seller is not None else identity.nickname
        try:
            await self.catalog.create(
                seller,
                command.name,
                command.description,
                command.price,
                command.quantity
            )
        except ValidationError as e:
            await self._reply(message, replies.create_failed(e))
            return
        await self._reply(message, replies.item_created(command.name))

    async def _list_my_trade_items(self, message, command, identity) -> None:
        items = await self.catalog.list_for_seller(identity.nickname)
        if not items:
            await self._reply(message, replies.NO_ITEMS_FOR_SELLER)
            return

        for item in items:
            await self._reply(message, replies.seller_item(item))
            await self._send_item_image(message, item)

    async def _list_trade_zone(self, message, command: ListTradeZone, identity) -> None:
        items = await self.catalog.list_available(command.name_filter)
        if not items:
            await self._reply(message, replies.NO_ITEMS_AVAILABLE)
            return
        await self._reply(message, replies.trade_zone(items))

    async def _show_trade_item(self, message, command: ShowTradeItem, identity) -> None:
        item = await self.catalog.get_by_id(command.item_id)
        if item is None:
            await self._reply(message, replies.ITEM_NOT_FOUND)
            return

        await self._reply(message, replies.trade_item(item))
        await self._send_item_image(message, item)
        await self._reply(message, replies.SCAN_TO_JOIN)

    async def _start_trade(self, message, command: StartTrade, identity) -> None:
        try:
            await self.catalog.bind(command.item_id, message.chat_id)
        except TradeItemNotFoundError:
            await self._reply(message, replies.BIND_FAILED)
            return

        await self._reply(message, replies.TRADE_STARTED)
        await self.gateway.send_text(
            identity.user_id,
            replies.trade_started_private(command.price, command.name)
        )
        await self._send_contact_card(message)

    async def _send_contact_card(self, message) -> None:
        if not self.contact_card_path:
            logger.warning("No contact card configured, skipping image")
            return
        try:
            data = await asyncio.to_thread(Path(self.contact_card_path).read_bytes)
            await self.gateway.send_image(message.chat_id, data)
        except Exception as e:
            logger.error(f"Failed to send contact card: {e}")
            await self._reply(message, replies.SEND_IMAGE_FAILED)

    # Payments
    async def _notify_transfer(self, message, command: NotifyTransfer, identity) -> None:
        logger.info(f"Transfer of {command.amount} received in chat {message.chat_id}")
        if message.is_group:
            if await self._is_administered_group(message.chat_id):
                return
            if command.amount > 0:
                await self._reply(message, replies.transfer_received(command.amount))
            return

        if command.amount <= 0:
            return
        code = await self.issuer.issue(command.amount)
        await self._reply(message, replies.redemption_code(code))
        await self._reply(message, replies.COPY_CODE_HINT)

    async def _recharge_by_amount(self, message, command: RechargeByAmount, identity) -> None:
        try:
            code = await self.issuer.lookup_unused_by_amount(command.amount)
        except CodeNotFoundError:
            await self._reply(message, replies.RECHARGE_NOT_FOUND)
            return
        await self._reply(message, replies.recharge_code(code))

    async def _redeem_code(self, message, command: RedeemCode, identity) -> None:
        if await self._is_administered_group(message.chat_id):
            return

        try:
            if await self.catalog.get_by_venue(message.chat_id) is not None:
                item = await self.issuer.settle_group_trade(
                    message.chat_id, command.code, identity.nickname
                )
                amount = item.price
            else:
                amount = await self.issuer.redeem(command.code)
        except (PaymentError, CatalogError) as e:
            await self._reply(message, replies.redeem_failed(e))
            return

        await self._reply(message, replies.transfer_received(amount))

    async def _malformed(self, message, command: Malformed, identity) -> None:
        await self._reply(message, command.reason)


__all__ = ['ConversationRouter']

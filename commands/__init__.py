"""Command parsing for chat messages.

This module turns the text of an inbound chat message into exactly one
typed command. Rules are tried in order and the first match wins. Private
chats and group chats have separate rule tables.
"""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, List, Optional, Tuple

from pydantic import BaseModel

from catalog import PRICE_STEP, PRICE_LIMIT, MAX_QUANTITY
from gateway import MessageKind
from .transfer import extract_transfer_amount

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = '，'


class Command(BaseModel):
    """Base class for parsed commands."""
    pass


class ShowPriceList(Command):
    pass


class ShowHistory(Command):
    pass


class ShowHelp(Command):
    pass


class AttachImage(Command):
    pass


class NotifyTransfer(Command):
    amount: Decimal


class RechargeByAmount(Command):
    amount: Decimal


class CreateTradeItem(Command):
    # None in group chats, where the sender is the seller
    seller: Optional[str] = None
    name: str
    price: Decimal
    quantity: int = 1
    description: Optional[str] = None


class ListMyTradeItems(Command):
    pass


class ListTradeZone(Command):
    name_filter: Optional[str] = None


class ShowTradeItem(Command):
    item_id: int


class StartTrade(Command):
    item_id: int
    name: str
    price: Decimal
    description: str = ""


class RedeemCode(Command):
    code: str


class Malformed(Command):
    reason: str


class NoMatch(Command):
    pass


# Reasons shown to the user for malformed commands
PRIVATE_CREATE_USAGE = "交易品信息不完整，请按照格式输入：'交易，卖家名称，名称，价格[，数量][，描述]'"
GROUP_CREATE_USAGE = "交易品信息不完整，请按照格式输入：'交易，名称，价格[，数量][，描述]'"
BAD_PRICE = "价格格式不正确。请确保是数字。"
NON_POSITIVE_PRICE = "价格必须大于0。"
PRICE_TOO_PRECISE = "价格最多保留两位小数。"
PRICE_TOO_LARGE = "价格超出允许范围。"
BAD_QUANTITY = "数量格式不正确。请确保是整数。"
NON_POSITIVE_QUANTITY = "数量必须至少为1。"
QUANTITY_TOO_LARGE = "数量超出允许范围。"
EMPTY_NAME = "交易品名称不能为空。"
EMPTY_SELLER = "卖家名称不能为空。"
BAD_RECHARGE = "无法解析金额，请确保格式正确。例如：充值100"
BAD_TRADE_ID = "指令格式错误，请按照 '交易[交易品ID]号' 的格式输入。"

TRADE_ID_PATTERN = re.compile(r'交易\d+')
SHOW_TRADE_PATTERN = re.compile(r'交易(\d+)号')
RECHARGE_PATTERN = re.compile(r'充值(\d+(\.\d+)?)')
START_TRADE_PATTERN = re.compile(
    r'开始交易(\d+)号，名称：(.+)，价格：(\d+(\.\d+)?)，描述：\s*(.*)',
    re.DOTALL
)
REDEEM_CODE_PATTERN = re.compile(r'兑换码：(\d+)')
QUANTITY_PATTERN = re.compile(r'[0-9]+')

Matcher = Callable[[str], Any]
Constructor = Callable[[str, Any], Command]
Rule = Tuple[Matcher, Constructor]


class FieldError(ValueError):
    """Raised when a command field cannot be converted."""
    pass


def exact(word: str) -> Matcher:
    return lambda text: text == word


def prefix(word: str) -> Matcher:
    return lambda text: text.startswith(word)


def parse_price(text: str) -> Decimal:
    """Convert a price field to a positive Decimal with at most two places.

    Raises:
        FieldError: With the reason to show the user
    """
    try:
        price = Decimal(text.strip())
    except InvalidOperation:
        raise FieldError(BAD_PRICE)
    if not price.is_finite():
        raise FieldError(BAD_PRICE)
    if price <= 0:
        raise FieldError(NON_POSITIVE_PRICE)
    if price >= PRICE_LIMIT:
        raise FieldError(PRICE_TOO_LARGE)
    if price != price.quantize(PRICE_STEP):
        raise FieldError(PRICE_TOO_PRECISE)
    return price


def parse_quantity(text: str) -> int:
    text = text.strip()
    if not QUANTITY_PATTERN.fullmatch(text):
        raise FieldError(BAD_QUANTITY)
    quantity = int(text)
    if quantity < 1:
        raise FieldError(NON_POSITIVE_QUANTITY)
    if quantity > MAX_QUANTITY:
        raise FieldError(QUANTITY_TOO_LARGE)
    return quantity


def build_create(seller: Optional[str], fields: List[str]) -> Command:
    """Build CreateTradeItem from name, price and the optional quantity and description."""
    name = fields[0].strip()
    if seller is not None and not seller:
        return Malformed(reason=EMPTY_SELLER)
    if not name:
        return Malformed(reason=EMPTY_NAME)

    try:
        price = parse_price(fields[1])
        quantity = parse_quantity(fields[2]) if len(fields) > 2 else 1
    except FieldError as e:
        return Malformed(reason=str(e))

    description = fields[3].strip() if len(fields) > 3 else None
    return CreateTradeItem(
        seller=seller,
        name=name,
        price=price,
        quantity=quantity,
        description=description or None
    )


def private_create(text: str, _) -> Command:
    parts = text.split(FIELD_SEPARATOR)
    if not 4 <= len(parts) <= 6:
        return Malformed(reason=PRIVATE_CREATE_USAGE)
    return build_create(parts[1].strip(), parts[2:])


def group_create(text: str, _) -> Command:
    parts = text.split(FIELD_SEPARATOR)
    if not 3 <= len(parts) <= 5:
        return Malformed(reason=GROUP_CREATE_USAGE)
    return build_create(None, parts[1:])


def recharge(text: str, _) -> Command:
    match = RECHARGE_PATTERN.search(text)
    if not match:
        return Malformed(reason=BAD_RECHARGE)
    try:
        return RechargeByAmount(amount=Decimal(match.group(1)))
    except InvalidOperation:
        return Malformed(reason=BAD_RECHARGE)


def trade_zone(text: str, _) -> Command:
    name_filter = None
    if text.startswith('交易区：'):
        name_filter = text[len('交易区：'):].strip() or None
    return ListTradeZone(name_filter=name_filter)


def show_trade(text: str, _) -> Command:
    match = SHOW_TRADE_PATTERN.match(text)
    if not match:
        return Malformed(reason=BAD_TRADE_ID)
    return ShowTradeItem(item_id=int(match.group(1)))


def start_trade(text: str, match) -> Command:
    return StartTrade(
        item_id=int(match.group(1)),
        name=match.group(2),
        price=Decimal(match.group(3)),
        description=match.group(5)
    )


def redeem_code(text: str, match) -> Command:
    return RedeemCode(code=match.group(1))


PRIVATE_RULES: List[Rule] = [
    (exact('价格表'), lambda text, _: ShowPriceList()),
    (exact('我的历史'), lambda text, _: ShowHistory()),
    (exact('帮助'), lambda text, _: ShowHelp()),
    (prefix('充值'), recharge),
    (prefix('我的交易品'), lambda text, _: ListMyTradeItems()),
    (prefix('交易区'), trade_zone),
    (TRADE_ID_PATTERN.match, show_trade),
    (prefix('交易'), private_create),
]

GROUP_RULES: List[Rule] = [
    (prefix('我的交易'), lambda text, _: ListMyTradeItems()),
    (prefix('交易区'), trade_zone),
    (TRADE_ID_PATTERN.match, show_trade),
    (prefix('交易'), group_create),
    (START_TRADE_PATTERN.fullmatch, start_trade),
    (REDEEM_CODE_PATTERN.fullmatch, redeem_code),
]


def parse(raw_text: str, is_group: bool, kind: MessageKind = MessageKind.TEXT) -> Command:
    """Parse one inbound message into a command.

    Args:
        raw_text: Message content
        is_group: Whether the message was posted in a group chat
        kind: Message kind reported by the gateway

    Returns:
        The matching command, Malformed when a rule matched but its fields
        are invalid, or NoMatch
    """
    if kind == MessageKind.PICTURE:
        return AttachImage()
    if kind == MessageKind.TRANSFER:
        return NotifyTransfer(amount=extract_transfer_amount(raw_text))

    text = (raw_text or '').strip()
    rules = GROUP_RULES if is_group else PRIVATE_RULES
    for matcher, constructor in rules:
        match = matcher(text)
        if match:
            command = constructor(text, match)
            logger.debug(f"Parsed {type(command).__name__} from message")
            return command
    return NoMatch()


__all__ = [
    'parse', 'extract_transfer_amount',
    'Command', 'ShowPriceList', 'ShowHistory', 'ShowHelp', 'AttachImage',
    'NotifyTransfer', 'RechargeByAmount', 'CreateTradeItem', 'ListMyTradeItems',
    'ListTradeZone', 'ShowTradeItem', 'StartTrade', 'RedeemCode', 'Malformed',
    'NoMatch'
]

"""Payments module for redemption codes.

A redemption code is issued when a user transfers money to the bot account
and is later redeemed in the group chat where the trade takes place.
"""
import logging
import secrets
from decimal import Decimal
from typing import Optional

from catalog import TradeCatalog, TradeItemNotFoundError, ValidationError
from database.exceptions import DuplicateCodeError
from ledger import Ledger, RedemptionCode, TradeItem

logger = logging.getLogger(__name__)

DEFAULT_CODE_DIGITS = 12
DEFAULT_MAX_ATTEMPTS = 5


class PaymentError(Exception):
    """Base class for payment-related errors."""
    pass


class CodeNotFoundError(PaymentError, LookupError):
    """Raised when a redemption code does not exist."""
    def __init__(self, code: Optional[str] = None):
        self.code = code
        super().__init__("充值码不存在")


class CodeAlreadyUsedError(PaymentError):
    """Raised when a redemption code was already redeemed."""
    def __init__(self, code: str):
        self.code = code
        super().__init__("充值码已被使用")


class AmountMismatchError(PaymentError):
    """Raised when a code's amount differs from the item price."""
    def __init__(self, amount: Decimal, price: Decimal):
        self.amount = amount
        self.price = price
        super().__init__(f"兑换码金额 {amount:.2f} 与交易品价格 {price:.2f} 不匹配")


class PaymentCodeIssuer:
    """Manages redemption code operations."""

    def __init__(
        self,
        ledger: Ledger,
        catalog: TradeCatalog,
        code_digits: int = DEFAULT_CODE_DIGITS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS
    ) -> None:
        self.ledger = ledger
        self.catalog = catalog
        self.code_digits = code_digits
        self.max_attempts = max_attempts

    def _generate_code(self) -> str:
        return ''.join(secrets.choice('0123456789') for _ in range(self.code_digits))

    async def issue(self, amount: Decimal) -> str:
        """Issue a new unused code for a transferred amount.

        Args:
            amount: Transferred amount, must be positive

        Returns:
            The code string

        Raises:
            ValidationError: If amount is not positive
            PaymentError: If no unique code could be generated
        """
        amount = Decimal(amount)
        if not amount.is_finite() or amount <= 0:
            raise ValidationError("金额必须大于0。")

        for attempt in range(1, self.max_attempts + 1):
            code = self._generate_code()
            try:
                await self.ledger.insert_code(code, amount)
            except DuplicateCodeError:
                logger.warning(f"Generated duplicate redemption code (attempt {attempt}/{self.max_attempts})")
                continue
            logger.info(f"Issued redemption code for amount {amount}")
            return code

        raise PaymentError(f"Failed to generate a unique code after {self.max_attempts} attempts")

    async def lookup_unused_by_amount(self, amount: Decimal) -> str:
        """Get the oldest unused code with exactly this amount.

        Raises:
            CodeNotFoundError: If there is none
        """
        record = await self.ledger.find_unused_code_by_amount(Decimal(amount))
        if record is None:
            raise CodeNotFoundError()
        return record.code

    async def _claim(self, ledger: Ledger, code: str) -> RedemptionCode:
        record = await ledger.claim_code(code)
        if record is not None:
            return record
        # The claim matched nothing: tell a missing code from a used one
        if await ledger.get_code(code) is None:
            raise CodeNotFoundError(code)
        raise CodeAlreadyUsedError(code)

    async def redeem(self, code: str) -> Decimal:
        """Mark a code as used.

        Returns:
            The code's amount

        Raises:
            CodeNotFoundError: If the code does not exist
            CodeAlreadyUsedError: If the code was already redeemed
        """
        record = await self._claim(self.ledger, code)
        logger.info(f"Redeemed code {code} for amount {record.amount}")
        return record.amount

    async def settle_group_trade(self, venue_id: str, code: str, buyer: str) -> TradeItem:
        """Redeem a code against the item bound to a venue.

        The code is consumed and the quantity decremented in one
        transaction. On any failure neither change is kept.

        Returns:
            The item after the purchase

        Raises:
            CodeNotFoundError: If the code does not exist
            CodeAlreadyUsedError: If the code was already redeemed
            TradeItemNotFoundError: If no item is bound to the venue
            AmountMismatchError: If the code amount differs from the item price
            SoldOutError: If the item has no quantity left
        """
        async with self.ledger.transaction() as tx:
            record = await tx.get_code(code)
            if record is None:
                raise CodeNotFoundError(code)
            if record.used:
                raise CodeAlreadyUsedError(code)

            item = await tx.get_trade_item_by_venue(venue_id)
            if item is None:
                raise TradeItemNotFoundError()
            if record.amount != item.price:
                raise AmountMismatchError(record.amount, item.price)

            await self._claim(tx, code)
            remaining = await self.catalog.with_ledger(tx).decrement_for_buyer(item.id, buyer)

        logger.info(
            f"Settled trade item {item.id} in venue {venue_id} for {buyer} "
            f"with code {code}, {remaining} left"
        )
        return item.model_copy(update={
            'quantity': remaining,
            'buyers': item.buyers + [buyer]
        })


__all__ = [
    'PaymentCodeIssuer', 'PaymentError', 'CodeNotFoundError',
    'CodeAlreadyUsedError', 'AmountMismatchError'
]

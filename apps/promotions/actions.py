"""
Promotion actions: what a promotion does once it applies.

An action crosses a scope (whole order vs. each eligible item) with a discount
type (fixed amount vs. percentage). It is immutable once built.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from django.conf import settings

from apps.common.constants import MAX_DISCOUNT_AMOUNT_CENTS
from apps.common.types import DomainError, Err, Money, Ok, Percentage, Result

from .errors import PromotionActionErrors


class PromotionType(Enum):
    """Scope of the discount"""

    ORDER_DISCOUNT = "order_discount"
    ITEM_DISCOUNT = "item_discount"


class DiscountType(Enum):
    """How the discount value is interpreted"""

    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"

    @classmethod
    def parse(cls, raw: DiscountType | str | None) -> DiscountType | None:
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            try:
                return cls(raw.strip().lower())
            except ValueError:
                return None
        return None


DiscountValue = Money | Percentage | Decimal | int | float | str


@dataclass(frozen=True)
class PromotionAction:
    """
    Declared monetary effect of a promotion.

    Exactly one of ``amount`` (FIXED_AMOUNT) or ``percentage`` (PERCENTAGE) is
    populated. Use ``create_order_discount`` / ``create_item_discount``.
    """

    type: PromotionType
    discount_type: DiscountType
    amount: Money | None = None
    percentage: Percentage | None = None

    def __post_init__(self) -> None:
        if self.discount_type is DiscountType.FIXED_AMOUNT:
            if self.amount is None or self.percentage is not None:
                raise ValueError("Fixed amount actions carry an amount and no percentage")
        elif self.discount_type is DiscountType.PERCENTAGE:
            if self.percentage is None or self.amount is not None:
                raise ValueError("Percentage actions carry a percentage and no amount")

    # ---------------------------------------------------------------------------
    # Factories
    # ---------------------------------------------------------------------------

    @classmethod
    def create_order_discount(
        cls,
        discount_type: DiscountType | str,
        value: DiscountValue,
        currency: str | None = None,
    ) -> Result[PromotionAction, DomainError]:
        """Discount applied once against the order subtotal."""
        return cls._create(PromotionType.ORDER_DISCOUNT, discount_type, value, currency)

    @classmethod
    def create_item_discount(
        cls,
        discount_type: DiscountType | str,
        value: DiscountValue,
        currency: str | None = None,
    ) -> Result[PromotionAction, DomainError]:
        """Discount applied independently to each eligible line item."""
        return cls._create(PromotionType.ITEM_DISCOUNT, discount_type, value, currency)

    @classmethod
    def _create(
        cls,
        scope: PromotionType,
        discount_type: DiscountType | str,
        value: DiscountValue,
        currency: str | None,
    ) -> Result[PromotionAction, DomainError]:
        parsed_type = DiscountType.parse(discount_type)
        if parsed_type is None:
            return Err(PromotionActionErrors.INVALID_DISCOUNT_TYPE)

        if parsed_type is DiscountType.PERCENTAGE:
            percentage_result = _to_percentage(value)
            if percentage_result.is_err():
                return percentage_result
            return Ok(cls(type=scope, discount_type=parsed_type, percentage=percentage_result.unwrap()))

        amount_result = _to_money(value, currency)
        if amount_result.is_err():
            return amount_result
        return Ok(cls(type=scope, discount_type=parsed_type, amount=amount_result.unwrap()))

    # ---------------------------------------------------------------------------
    # Calculation
    # ---------------------------------------------------------------------------

    @property
    def currency(self) -> str | None:
        """Currency a fixed amount is denominated in; percentages are currency-neutral."""
        return self.amount.currency if self.amount is not None else None

    def calculate(self, base_amount: Money) -> Money:
        """
        Discount produced against ``base_amount``.

        Fixed amounts never exceed the base; percentages truncate toward zero
        so the granted discount never exceeds the configured rate.
        """
        if self.discount_type is DiscountType.FIXED_AMOUNT and self.amount is not None:
            return self.amount.min(base_amount)
        if self.discount_type is DiscountType.PERCENTAGE and self.percentage is not None:
            return base_amount.apply_percentage(self.percentage)
        raise ValueError(f"Unsupported discount type: {self.discount_type!r}")

    @property
    def description(self) -> str:
        if self.percentage is not None:
            return f"{self.percentage} off"
        return f"{self.amount} off"


def _to_percentage(value: DiscountValue) -> Result[Percentage, DomainError]:
    if isinstance(value, Percentage):
        percentage = value
    elif isinstance(value, Money) or isinstance(value, bool):
        return Err(PromotionActionErrors.INVALID_PERCENTAGE_VALUE)
    else:
        try:
            percentage = Percentage.parse(value)
        except ValueError:
            return Err(PromotionActionErrors.INVALID_PERCENTAGE_VALUE)

    if not percentage.is_valid_rate:
        return Err(PromotionActionErrors.INVALID_PERCENTAGE_VALUE)
    return Ok(percentage)


def _to_money(value: DiscountValue, currency: str | None) -> Result[Money, DomainError]:
    if isinstance(value, Money):
        money = value
    elif isinstance(value, int) and not isinstance(value, bool):
        if value < 0:
            return Err(PromotionActionErrors.INVALID_FIXED_AMOUNT_VALUE)
        try:
            money = Money(value, currency or settings.DEFAULT_CURRENCY)
        except ValueError:
            return Err(PromotionActionErrors.INVALID_FIXED_AMOUNT_VALUE)
    else:
        return Err(PromotionActionErrors.INVALID_FIXED_AMOUNT_VALUE)

    if money.amount > MAX_DISCOUNT_AMOUNT_CENTS:
        return Err(PromotionActionErrors.AMOUNT_TOO_LARGE)
    return Ok(money)

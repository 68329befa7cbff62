"""
Promotion calculation engine.

Decides whether a promotion applies to an order snapshot, which line items
are eligible, and what adjustments result. The calculator is stateless and
never mutates the promotion or the order: callers apply the returned
adjustments and count usage inside their own transaction.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from django.utils import timezone

from apps.common.types import DomainError, Err, Money, Ok, Result

from .actions import DiscountType, PromotionType
from .errors import PromotionCalculationErrors, PromotionErrors
from .promotion import Promotion
from .snapshots import LineItemSnapshot, OrderSnapshot

logger = logging.getLogger(__name__)


# ===============================================================================
# Data Classes for Results
# ===============================================================================


@dataclass(frozen=True)
class PromotionAdjustment:
    """
    One computed discount.

    Attributes:
        description: Human-readable label (e.g., "Summer Sale (20% off)").
        amount: Discount magnitude; the caller subtracts it when applying.
        line_item_id: Line the discount belongs to, or None for the order total.
    """

    description: str
    amount: Money
    line_item_id: str | None = None

    @property
    def signed_amount(self) -> int:
        """Delta to add to the order total, in minor units."""
        return -self.amount.amount

    @property
    def is_order_level(self) -> bool:
        return self.line_item_id is None


@dataclass(frozen=True)
class PromotionCalculationResult:
    """
    Outcome of evaluating one promotion against one order.

    An empty ``adjustments`` tuple means the promotion does not apply (or
    applies with zero effect); it is not an error.
    """

    promotion_id: uuid.UUID
    adjustments: tuple[PromotionAdjustment, ...] = ()

    @property
    def is_applicable(self) -> bool:
        return bool(self.adjustments)

    @property
    def total_cents(self) -> int:
        return sum(adjustment.amount.amount for adjustment in self.adjustments)


@dataclass(frozen=True)
class PromotionCalculationContext:
    """Per-call working set; built fresh for every calculation and never stored."""

    promotion: Promotion
    order: OrderSnapshot
    eligible_items: tuple[LineItemSnapshot, ...]
    now: datetime


# ===============================================================================
# Calculator
# ===============================================================================


class PromotionCalculator:
    """
    Stateless orchestration of admission checks, rule evaluation and
    adjustment computation.
    """

    @classmethod
    def calculate(
        cls,
        promotion: Promotion | None,
        order: OrderSnapshot | None,
        now: datetime | None = None,
    ) -> Result[PromotionCalculationResult, DomainError]:
        """
        Calculate the adjustments ``promotion`` produces for ``order``.

        Returns Err only for malformed input (missing order/promotion, empty
        order, promotion failing ``validate()``). Every "does not apply today"
        condition returns Ok with no adjustments.
        """
        if promotion is None:
            return Err(PromotionErrors.REQUIRED)
        if order is None:
            return Err(PromotionCalculationErrors.ORDER_REQUIRED)
        if order.is_empty:
            return Err(PromotionCalculationErrors.EMPTY_ORDER)

        validation = promotion.validate()
        if validation.is_err():
            return Err(validation.unwrap_err()[0])
        if promotion.action is None:
            return Err(PromotionErrors.ACTION_REQUIRED)

        now = now or timezone.now()
        not_applicable = Ok(PromotionCalculationResult(promotion_id=promotion.id))

        reason = cls._admission_failure(promotion, order, now)
        if reason:
            logger.debug(
                "Promotion %s not applicable to order %s: %s",
                promotion.id,
                order.id,
                reason,
                extra={"promotion_id": str(promotion.id), "order_id": order.id, "reason": reason},
            )
            return not_applicable

        if not promotion.rules_match_policy.combine(rule.evaluate(order) for rule in promotion.rules):
            logger.debug("Promotion %s rules not satisfied by order %s", promotion.id, order.id)
            return not_applicable

        context = PromotionCalculationContext(
            promotion=promotion,
            order=order,
            eligible_items=cls._select_eligible_items(promotion, order),
            now=now,
        )

        if promotion.action.type is PromotionType.ORDER_DISCOUNT:
            adjustments = cls._order_adjustments(context)
        elif promotion.action.type is PromotionType.ITEM_DISCOUNT:
            adjustments = cls._item_adjustments(context)
        else:
            raise ValueError(f"Unsupported promotion type: {promotion.action.type!r}")

        return Ok(PromotionCalculationResult(promotion_id=promotion.id, adjustments=tuple(adjustments)))

    # ---------------------------------------------------------------------------
    # Admission
    # ---------------------------------------------------------------------------

    @staticmethod
    def _admission_failure(promotion: Promotion, order: OrderSnapshot, now: datetime) -> str:
        """Return a short reason the promotion is inadmissible, or "" when admissible."""
        if not promotion.active:
            return "inactive"
        if not promotion.has_started(now):
            return "not started"
        if promotion.is_expired(now):
            return "expired"
        if promotion.is_usage_limit_reached:
            return "usage limit reached"

        action = promotion.action
        if (
            action is not None
            and action.discount_type is DiscountType.FIXED_AMOUNT
            and action.currency != order.currency
        ):
            return f"currency mismatch ({action.currency} vs {order.currency})"

        if promotion.minimum_order_cents is not None and order.subtotal.amount < promotion.minimum_order_cents:
            return f"subtotal {order.subtotal.amount} below minimum {promotion.minimum_order_cents}"
        return ""

    # ---------------------------------------------------------------------------
    # Eligibility
    # ---------------------------------------------------------------------------

    @staticmethod
    def _select_eligible_items(promotion: Promotion, order: OrderSnapshot) -> tuple[LineItemSnapshot, ...]:
        """
        Line items satisfying the item-scoped rules under the match policy.
        With no item-scoped rules every line item is eligible.
        """
        item_rules = promotion.item_rules
        if not item_rules:
            return order.line_items
        policy = promotion.rules_match_policy
        return tuple(
            item
            for item in order.line_items
            if policy.combine(rule.evaluate(order, item) for rule in item_rules)
        )

    # ---------------------------------------------------------------------------
    # Adjustments
    # ---------------------------------------------------------------------------

    @staticmethod
    def _describe(promotion: Promotion) -> str:
        if promotion.action is None:
            return promotion.name
        return f"{promotion.name} ({promotion.action.description})"

    @classmethod
    def _order_adjustments(cls, context: PromotionCalculationContext) -> list[PromotionAdjustment]:
        promotion = context.promotion
        amount = promotion.action.calculate(context.order.subtotal)

        cap = promotion.maximum_discount_cents
        if cap is not None and amount.amount > cap:
            amount = Money(cap, amount.currency)

        if amount.is_zero:
            return []
        return [PromotionAdjustment(description=cls._describe(promotion), amount=amount)]

    @classmethod
    def _item_adjustments(cls, context: PromotionCalculationContext) -> list[PromotionAdjustment]:
        promotion = context.promotion
        raw: list[tuple[LineItemSnapshot, int]] = []
        for item in context.eligible_items:
            discount = promotion.action.calculate(item.subtotal)
            if not discount.is_zero:
                raw.append((item, discount.amount))

        if not raw:
            return []

        amounts = [amount for _, amount in raw]
        cap = promotion.maximum_discount_cents
        if cap is not None and sum(amounts) > cap:
            amounts = scale_to_cap(amounts, cap)

        description = cls._describe(promotion)
        return [
            PromotionAdjustment(
                description=description,
                amount=Money(amount, item.currency),
                line_item_id=item.id,
            )
            for (item, _), amount in zip(raw, amounts, strict=True)
            if amount > 0
        ]


def scale_to_cap(amounts: list[int], cap: int) -> list[int]:
    """
    Scale integer amounts down proportionally so they sum to exactly ``cap``.

    Each share is truncated. The truncation residual is handed out in order to
    the amounts that still have room, so no share ever exceeds its input.
    """
    total = sum(amounts)
    if total <= cap:
        return list(amounts)
    scaled = [amount * cap // total for amount in amounts]
    residual = cap - sum(scaled)
    for index, amount in enumerate(amounts):
        if residual == 0:
            break
        extra = min(amount - scaled[index], residual)
        scaled[index] += extra
        residual -= extra
    return scaled

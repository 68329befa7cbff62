"""
Promotion application services.

Orchestrates the pure domain (Promotion aggregate + PromotionCalculator) with
persistence: row locking when a promotion is redeemed, audit trail writes and
candidate lookup for an order.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from django.db import transaction
from django.utils import timezone

from apps.common.types import DomainError, Err, Ok, Result, ValidationErrors

from .actions import PromotionAction
from .calculator import PromotionCalculationResult, PromotionCalculator
from .errors import PromotionCalculationErrors, PromotionErrors
from .models import PromotionAuditLog, PromotionRecord
from .promotion import MatchPolicy, Promotion
from .repository import PromotionRepository
from .rules import PromotionRule, RuleType
from .snapshots import OrderSnapshot

logger = logging.getLogger(__name__)


# ===============================================================================
# Redemption Service
# ===============================================================================


class PromotionApplicationService:
    """
    Evaluate and redeem promotions against order snapshots.
    """

    @classmethod
    def evaluate(
        cls,
        promotion_id: uuid.UUID,
        order: OrderSnapshot,
        now: datetime | None = None,
    ) -> Result[PromotionCalculationResult, DomainError]:
        """Preview one promotion without counting usage."""
        loaded = PromotionRepository.get(promotion_id)
        if loaded.is_err():
            return loaded
        return PromotionCalculator.calculate(loaded.unwrap(), order, now=now)

    @classmethod
    def evaluate_candidates(
        cls,
        order: OrderSnapshot,
        code: str | None = None,
        now: datetime | None = None,
    ) -> list[PromotionCalculationResult]:
        """
        Applicable promotions for ``order``, largest total discount first.

        Code-only promotions are considered only when ``code`` matches them.
        Ties keep creation order.
        """
        now = now or timezone.now()
        results: list[PromotionCalculationResult] = []
        for promotion in PromotionRepository.list_candidates(now, code=code):
            calculation = PromotionCalculator.calculate(promotion, order, now=now)
            if calculation.is_err():
                logger.warning(
                    "Skipping promotion %s for order %s: %s",
                    promotion.id,
                    order.id,
                    calculation.unwrap_err(),
                    extra={"promotion_id": str(promotion.id), "order_id": order.id},
                )
                continue
            result = calculation.unwrap()
            if result.is_applicable:
                results.append(result)

        results.sort(key=lambda result: result.total_cents, reverse=True)
        return results

    @classmethod
    @transaction.atomic
    def apply_promotion(
        cls,
        promotion_id: uuid.UUID,
        order: OrderSnapshot,
        code: str | None = None,
        now: datetime | None = None,
        actor: str = "",
    ) -> Result[PromotionCalculationResult, DomainError]:
        """
        Redeem a promotion for an order with race condition protection.

        Locks the promotion row, recalculates against the locked state, counts
        one usage and records a "used" audit entry. Nothing is written when the
        promotion turns out not to apply.
        """
        loaded = PromotionRepository.get(promotion_id, for_update=True)
        if loaded.is_err():
            return loaded
        promotion = loaded.unwrap()

        if promotion.requires_coupon_code and (code or "").strip().upper() != promotion.promotion_code:
            return Err(PromotionErrors.code_not_found((code or "").strip().upper()))

        calculation = PromotionCalculator.calculate(promotion, order, now=now)
        if calculation.is_err():
            return calculation
        result = calculation.unwrap()

        if not result.is_applicable:
            logger.warning(
                "Promotion %s not applicable after lock for order %s",
                promotion.id,
                order.id,
                extra={"promotion_id": str(promotion.id), "order_id": order.id},
            )
            return Err(PromotionCalculationErrors.NOT_APPLICABLE)

        usage = promotion.increment_usage()
        if usage.is_err():
            logger.warning(
                "Promotion %s usage rejected for order %s: %s",
                promotion.id,
                order.id,
                usage.unwrap_err(),
                extra={"promotion_id": str(promotion.id), "order_id": order.id},
            )
            return usage

        record = PromotionRepository.save(promotion, actor=actor, order_id=order.id)
        PromotionAuditLog.objects.create(
            promotion=record,
            action="used",
            description=f"Applied to order {order.id}",
            actor=actor,
            order_id=order.id,
            discount_cents=result.total_cents,
            metadata={
                "adjustments": [
                    {
                        "line_item_id": adjustment.line_item_id,
                        "amount_cents": adjustment.amount.amount,
                        "currency": adjustment.amount.currency,
                    }
                    for adjustment in result.adjustments
                ],
            },
        )

        logger.info(
            "Promotion applied: %s to order %s for %d cents",
            promotion.id,
            order.id,
            result.total_cents,
            extra={
                "promotion_id": str(promotion.id),
                "order_id": order.id,
                "discount_cents": result.total_cents,
                "usage_count": promotion.usage_count,
            },
        )
        return Ok(result)

    @classmethod
    def apply_code(
        cls,
        code: str,
        order: OrderSnapshot,
        now: datetime | None = None,
        actor: str = "",
    ) -> Result[PromotionCalculationResult, DomainError]:
        """Redeem the promotion identified by a coupon code."""
        # Quick lookup without lock (fast-fail for unknown codes)
        found = PromotionRepository.get_by_code(code)
        if found.is_err():
            return found
        return cls.apply_promotion(found.unwrap().id, order, code=code, now=now, actor=actor)


# ===============================================================================
# Administration Service
# ===============================================================================


class PromotionAdminService:
    """
    Create and maintain promotions. Every mutation persists the aggregate and
    its lifecycle events in one transaction.
    """

    @staticmethod
    def _code_taken(code: str | None, exclude_id: uuid.UUID | None = None) -> bool:
        if not code:
            return False
        queryset = PromotionRecord.objects.filter(promotion_code=code.strip().upper())
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        return queryset.exists()

    @classmethod
    @transaction.atomic
    def create_promotion(  # noqa: PLR0913
        cls,
        name: str,
        action: PromotionAction | None,
        code: str | None = None,
        description: str | None = None,
        minimum_order_cents: int | None = None,
        maximum_discount_cents: int | None = None,
        starts_at: datetime | None = None,
        expires_at: datetime | None = None,
        usage_limit: int | None = None,
        requires_coupon_code: bool = False,
        rules_match_policy: MatchPolicy | str = MatchPolicy.ALL,
        actor: str = "",
    ) -> Result[Promotion, ValidationErrors]:
        created = Promotion.create(
            name=name,
            action=action,
            code=code,
            description=description,
            minimum_order_cents=minimum_order_cents,
            maximum_discount_cents=maximum_discount_cents,
            starts_at=starts_at,
            expires_at=expires_at,
            usage_limit=usage_limit,
            requires_coupon_code=requires_coupon_code,
            rules_match_policy=rules_match_policy,
        )
        if created.is_err():
            return created
        promotion = created.unwrap()

        if cls._code_taken(promotion.promotion_code):
            return Err([PromotionErrors.CODE_ALREADY_EXISTS])

        PromotionRepository.save(promotion, actor=actor)
        logger.info(
            "Promotion created: %s (%s)",
            promotion.name,
            promotion.id,
            extra={"promotion_id": str(promotion.id), "actor": actor},
        )
        return Ok(promotion)

    @classmethod
    @transaction.atomic
    def update_promotion(
        cls,
        promotion_id: uuid.UUID,
        actor: str = "",
        **changes: Any,
    ) -> Result[Promotion, ValidationErrors]:
        loaded = PromotionRepository.get(promotion_id, for_update=True)
        if loaded.is_err():
            return Err([loaded.unwrap_err()])
        promotion = loaded.unwrap()

        updated = promotion.update(**changes)
        if updated.is_err():
            return updated
        if cls._code_taken(promotion.promotion_code, exclude_id=promotion.id):
            return Err([PromotionErrors.CODE_ALREADY_EXISTS])

        PromotionRepository.save(promotion, actor=actor)
        return Ok(promotion)

    @classmethod
    @transaction.atomic
    def add_rule(
        cls,
        promotion_id: uuid.UUID,
        rule_type: RuleType | str,
        value: str,
        property_name: str | None = None,
        actor: str = "",
    ) -> Result[PromotionRule, DomainError]:
        loaded = PromotionRepository.get(promotion_id, for_update=True)
        if loaded.is_err():
            return loaded
        promotion = loaded.unwrap()

        built = PromotionRule.create(promotion.id, rule_type, value, property_name=property_name)
        if built.is_err():
            return built
        rule = built.unwrap()

        added = promotion.add_rule(rule)
        if added.is_err():
            return added

        PromotionRepository.save(promotion, actor=actor)
        return Ok(rule)

    @classmethod
    @transaction.atomic
    def update_rule(
        cls,
        promotion_id: uuid.UUID,
        rule_id: uuid.UUID,
        value: str,
        actor: str = "",
    ) -> Result[PromotionRule, DomainError]:
        loaded = PromotionRepository.get(promotion_id, for_update=True)
        if loaded.is_err():
            return loaded
        promotion = loaded.unwrap()

        updated = promotion.update_rule(rule_id, value)
        if updated.is_err():
            return updated

        PromotionRepository.save(promotion, actor=actor)
        return updated

    @classmethod
    @transaction.atomic
    def remove_rule(
        cls,
        promotion_id: uuid.UUID,
        rule_id: uuid.UUID,
        actor: str = "",
    ) -> Result[Promotion, DomainError]:
        loaded = PromotionRepository.get(promotion_id, for_update=True)
        if loaded.is_err():
            return loaded
        promotion = loaded.unwrap()

        removed = promotion.remove_rule(rule_id)
        if removed.is_err():
            return removed

        PromotionRepository.save(promotion, actor=actor)
        return Ok(promotion)

    @classmethod
    @transaction.atomic
    def activate(
        cls,
        promotion_id: uuid.UUID,
        now: datetime | None = None,
        actor: str = "",
    ) -> Result[Promotion, DomainError]:
        loaded = PromotionRepository.get(promotion_id, for_update=True)
        if loaded.is_err():
            return loaded
        promotion = loaded.unwrap()

        activated = promotion.activate(now=now)
        if activated.is_err():
            logger.warning(
                "Promotion %s activation rejected: %s",
                promotion.id,
                activated.unwrap_err(),
                extra={"promotion_id": str(promotion.id), "actor": actor},
            )
            return activated

        PromotionRepository.save(promotion, actor=actor)
        return Ok(promotion)

    @classmethod
    @transaction.atomic
    def deactivate(cls, promotion_id: uuid.UUID, actor: str = "") -> Result[Promotion, DomainError]:
        loaded = PromotionRepository.get(promotion_id, for_update=True)
        if loaded.is_err():
            return loaded
        promotion = loaded.unwrap()

        promotion.deactivate()
        PromotionRepository.save(promotion, actor=actor)
        return Ok(promotion)

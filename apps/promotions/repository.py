"""
Persistence collaborator for the Promotion aggregate.

Maps ORM rows to domain objects and back. Loading with ``for_update=True``
takes a row lock (SELECT ... FOR UPDATE) and must run inside
``transaction.atomic()``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from django.db import models
from django.db.models import F

from apps.common.constants import MAX_CANDIDATE_PROMOTIONS
from apps.common.types import DomainError, Err, Money, Ok, Percentage, Result

from .actions import DiscountType, PromotionAction, PromotionType
from .errors import PromotionErrors
from .models import PromotionAuditLog, PromotionRecord, PromotionRuleRecord
from .promotion import MatchPolicy, Promotion, PromotionEvent
from .rules import PromotionRule, RuleType

logger = logging.getLogger(__name__)


class PromotionRepository:
    """Load and save Promotion aggregates."""

    # ---------------------------------------------------------------------------
    # Mapping
    # ---------------------------------------------------------------------------

    @staticmethod
    def _action_from_record(record: PromotionRecord) -> PromotionAction:
        discount_type = DiscountType(record.discount_type)
        if discount_type is DiscountType.PERCENTAGE:
            return PromotionAction(
                type=PromotionType(record.promotion_type),
                discount_type=discount_type,
                percentage=Percentage(record.discount_percent),
            )
        return PromotionAction(
            type=PromotionType(record.promotion_type),
            discount_type=discount_type,
            amount=Money(int(record.discount_amount_cents or 0), record.currency),
        )

    @classmethod
    def to_domain(cls, record: PromotionRecord) -> Promotion:
        rules = [
            PromotionRule(
                id=rule.id,
                promotion_id=record.id,
                type=RuleType(rule.rule_type),
                value=rule.value,
                property_name=rule.property_name or None,
                created_at=rule.created_at,
                updated_at=rule.updated_at,
            )
            for rule in record.rules.all()
        ]
        return Promotion(
            id=record.id,
            name=record.name,
            action=cls._action_from_record(record),
            promotion_code=record.promotion_code or None,
            description=record.description or None,
            minimum_order_cents=record.minimum_order_cents,
            maximum_discount_cents=record.maximum_discount_cents,
            starts_at=record.starts_at,
            expires_at=record.expires_at,
            usage_limit=record.usage_limit,
            usage_count=record.usage_count,
            active=record.active,
            requires_coupon_code=record.requires_coupon_code,
            rules_match_policy=MatchPolicy(record.rules_match_policy),
            rules=rules,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    @staticmethod
    def _record_fields(promotion: Promotion) -> dict[str, object]:
        action = promotion.action
        if action is None:
            raise ValueError(f"Promotion {promotion.id} has no action and cannot be persisted")
        return {
            "name": promotion.name,
            "promotion_code": promotion.promotion_code,
            "description": promotion.description or "",
            "promotion_type": action.type.value,
            "discount_type": action.discount_type.value,
            "discount_percent": action.percentage.value if action.percentage is not None else None,
            "discount_amount_cents": action.amount.amount if action.amount is not None else None,
            "currency": action.currency or "",
            "minimum_order_cents": promotion.minimum_order_cents,
            "maximum_discount_cents": promotion.maximum_discount_cents,
            "starts_at": promotion.starts_at,
            "expires_at": promotion.expires_at,
            "usage_limit": promotion.usage_limit,
            "usage_count": promotion.usage_count,
            "active": promotion.active,
            "requires_coupon_code": promotion.requires_coupon_code,
            "rules_match_policy": promotion.rules_match_policy.value,
            "created_at": promotion.created_at,
            "updated_at": promotion.updated_at,
        }

    # ---------------------------------------------------------------------------
    # Loading
    # ---------------------------------------------------------------------------

    @staticmethod
    def _queryset(for_update: bool) -> models.QuerySet[PromotionRecord]:
        queryset = PromotionRecord.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        return queryset

    @classmethod
    def get(cls, promotion_id: uuid.UUID, for_update: bool = False) -> Result[Promotion, DomainError]:
        try:
            record = cls._queryset(for_update).get(pk=promotion_id)
        except PromotionRecord.DoesNotExist:
            return Err(PromotionErrors.not_found(promotion_id))
        return Ok(cls.to_domain(record))

    @classmethod
    def get_by_code(cls, code: str, for_update: bool = False) -> Result[Promotion, DomainError]:
        """Case-insensitive lookup by coupon code."""
        normalized = code.upper().strip()
        try:
            record = cls._queryset(for_update).get(promotion_code=normalized)
        except PromotionRecord.DoesNotExist:
            return Err(PromotionErrors.code_not_found(normalized))
        return Ok(cls.to_domain(record))

    @classmethod
    def list_candidates(cls, now: datetime, code: str | None = None) -> list[Promotion]:
        """
        Promotions worth evaluating for an order right now: active, inside
        their window, not depleted, and either code-free or matching ``code``.
        """
        eligible_codes = models.Q(requires_coupon_code=False)
        if code:
            eligible_codes |= models.Q(promotion_code=code.upper().strip())

        queryset = (
            PromotionRecord.objects.filter(active=True)
            .filter(eligible_codes)
            .filter(models.Q(starts_at__isnull=True) | models.Q(starts_at__lte=now))
            .filter(models.Q(expires_at__isnull=True) | models.Q(expires_at__gt=now))
            .filter(models.Q(usage_limit__isnull=True) | models.Q(usage_count__lt=F("usage_limit")))
            .prefetch_related("rules")
            .order_by("created_at")
        )
        return [cls.to_domain(record) for record in queryset[:MAX_CANDIDATE_PROMOTIONS]]

    # ---------------------------------------------------------------------------
    # Saving
    # ---------------------------------------------------------------------------

    @classmethod
    def save(cls, promotion: Promotion, actor: str = "", order_id: str = "") -> PromotionRecord:
        """
        Upsert the aggregate and its rules, then drain pending events into the
        audit trail. Call inside the caller's transaction.
        """
        record, _created = PromotionRecord.objects.update_or_create(
            id=promotion.id,
            defaults=cls._record_fields(promotion),
        )

        kept_ids = [rule.id for rule in promotion.rules]
        PromotionRuleRecord.objects.filter(promotion=record).exclude(id__in=kept_ids).delete()
        for position, rule in enumerate(promotion.rules):
            PromotionRuleRecord.objects.update_or_create(
                id=rule.id,
                defaults={
                    "promotion": record,
                    "rule_type": rule.type.value,
                    "value": rule.value,
                    "property_name": rule.property_name or "",
                    "position": position,
                    "created_at": rule.created_at,
                    "updated_at": rule.updated_at,
                },
            )

        cls.record_events(record, promotion.collect_events(), actor=actor, order_id=order_id)
        return record

    @staticmethod
    def record_events(
        record: PromotionRecord,
        events: list[PromotionEvent],
        actor: str = "",
        order_id: str = "",
    ) -> None:
        PromotionAuditLog.objects.bulk_create(
            [
                PromotionAuditLog(
                    promotion=record,
                    action=event.type.value,
                    description=f"Promotion {event.type.value.replace('_', ' ')}",
                    actor=actor,
                    order_id=order_id,
                    metadata={key: _json_safe(value) for key, value in event.data.items()},
                    created_at=event.occurred_at,
                )
                for event in events
            ]
        )
        if events:
            logger.debug(
                "Recorded %d audit entries for promotion %s",
                len(events),
                record.id,
                extra={"promotion_id": str(record.id), "actor": actor},
            )


def _json_safe(value: object) -> object:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return str(value)

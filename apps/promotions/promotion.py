"""
Promotion aggregate root.

Holds identity, activation window, usage counters, order/discount limits, the
eligibility rule set and the action. Every mutator validates a candidate
state first and only then commits, so a failed call leaves the aggregate
untouched.
"""

from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from django.utils import timezone

from apps.common.constants import (
    MAX_USAGE_LIMIT,
    PROMOTION_CODE_MAX_LENGTH,
    PROMOTION_CODE_MIN_LENGTH,
    PROMOTION_DESCRIPTION_MAX_LENGTH,
    PROMOTION_NAME_MAX_LENGTH,
)
from apps.common.types import DomainError, Err, Ok, Result, ValidationErrors

from .actions import PromotionAction, PromotionType
from .errors import PromotionErrors, PromotionRuleErrors
from .rules import PromotionRule

# ===============================================================================
# Match policy & events
# ===============================================================================


class MatchPolicy(Enum):
    """How rule outcomes combine into one eligibility verdict"""

    ALL = "all"
    ANY = "any"

    def combine(self, outcomes: Iterable[bool]) -> bool:
        """ALL over zero rules is satisfied; ANY over zero rules is not."""
        if self is MatchPolicy.ALL:
            return all(outcomes)
        return any(outcomes)

    @classmethod
    def parse(cls, raw: MatchPolicy | str | None) -> MatchPolicy | None:
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            try:
                return cls(raw.strip().lower())
            except ValueError:
                return None
        return None


class PromotionEventType(Enum):
    CREATED = "created"
    UPDATED = "updated"
    ACTIVATED = "activated"
    DEACTIVATED = "deactivated"
    RULE_ADDED = "rule_added"
    RULE_REMOVED = "rule_removed"
    RULE_UPDATED = "rule_updated"
    USAGE_INCREASED = "usage_increased"


@dataclass(frozen=True)
class PromotionEvent:
    """Lifecycle fact recorded by the aggregate and drained by the application layer."""

    type: PromotionEventType
    promotion_id: uuid.UUID
    data: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=timezone.now)


# Fields Promotion.update() may change, in the order they are reported
_UPDATABLE_FIELDS = (
    "name",
    "promotion_code",
    "description",
    "action",
    "minimum_order_cents",
    "maximum_discount_cents",
    "starts_at",
    "expires_at",
    "usage_limit",
    "active",
    "requires_coupon_code",
    "rules_match_policy",
)

# Optional fields update() clears when given None explicitly
_CLEARABLE_FIELDS = frozenset(
    {
        "promotion_code",
        "description",
        "minimum_order_cents",
        "maximum_discount_cents",
        "starts_at",
        "expires_at",
        "usage_limit",
    }
)


def _normalize_code(code: str | None) -> str | None:
    if code is None:
        return None
    return code.strip().upper() or None


def _normalize_text(text: str | None) -> str | None:
    return text.strip() if text is not None else None


# ===============================================================================
# Promotion
# ===============================================================================


@dataclass(eq=False)
class Promotion:
    """
    Marketing offer with eligibility rules and a discount action.

    Monetary limits are integer minor units in the currency of the orders the
    promotion is evaluated against. ``usage_count`` only ever moves through
    ``increment_usage``.
    """

    id: uuid.UUID
    name: str
    action: PromotionAction | None
    promotion_code: str | None = None
    description: str | None = None
    minimum_order_cents: int | None = None
    maximum_discount_cents: int | None = None
    starts_at: datetime | None = None
    expires_at: datetime | None = None
    usage_limit: int | None = None
    usage_count: int = 0
    active: bool = True
    requires_coupon_code: bool = False
    rules_match_policy: MatchPolicy = MatchPolicy.ALL
    rules: list[PromotionRule] = field(default_factory=list)
    created_at: datetime = field(default_factory=timezone.now)
    updated_at: datetime | None = None
    _events: list[PromotionEvent] = field(default_factory=list, init=False, repr=False)

    # ---------------------------------------------------------------------------
    # Factory
    # ---------------------------------------------------------------------------

    @classmethod
    def create(  # noqa: PLR0913
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
    ) -> Result[Promotion, ValidationErrors]:
        """
        Build a new, active promotion.

        Every invariant violation is collected and returned together; nothing
        is constructed unless all checks pass.
        """
        policy = MatchPolicy.parse(rules_match_policy)
        candidate = cls(
            id=uuid.uuid4(),
            name=_normalize_text(name) or "",
            action=action,
            promotion_code=_normalize_code(code),
            description=_normalize_text(description),
            minimum_order_cents=minimum_order_cents,
            maximum_discount_cents=maximum_discount_cents,
            starts_at=starts_at,
            expires_at=expires_at,
            usage_limit=usage_limit,
            requires_coupon_code=requires_coupon_code,
            rules_match_policy=policy or MatchPolicy.ALL,
        )

        errors = candidate._invariant_violations()
        if policy is None:
            errors.append(PromotionErrors.INVALID_MATCH_POLICY)
        if errors:
            return Err(errors)

        candidate._record(PromotionEventType.CREATED, name=candidate.name)
        return Ok(candidate)

    # ---------------------------------------------------------------------------
    # Invariants
    # ---------------------------------------------------------------------------

    def _invariant_violations(self) -> ValidationErrors:
        errors: ValidationErrors = []

        if not self.name:
            errors.append(PromotionErrors.NAME_REQUIRED)
        elif len(self.name) > PROMOTION_NAME_MAX_LENGTH:
            errors.append(PromotionErrors.NAME_TOO_LONG)

        if self.description and len(self.description) > PROMOTION_DESCRIPTION_MAX_LENGTH:
            errors.append(PromotionErrors.DESCRIPTION_TOO_LONG)

        if self.action is None:
            errors.append(PromotionErrors.ACTION_REQUIRED)

        if self.minimum_order_cents is not None and self.minimum_order_cents < 0:
            errors.append(PromotionErrors.INVALID_MINIMUM_ORDER_AMOUNT)

        if self.maximum_discount_cents is not None and self.maximum_discount_cents < 0:
            errors.append(PromotionErrors.INVALID_MAXIMUM_DISCOUNT_AMOUNT)

        if self.usage_limit is not None and not (
            max(0, self.usage_count) <= self.usage_limit <= MAX_USAGE_LIMIT
        ):
            errors.append(PromotionErrors.INVALID_USAGE_LIMIT)

        if self.promotion_code and not (
            PROMOTION_CODE_MIN_LENGTH <= len(self.promotion_code) <= PROMOTION_CODE_MAX_LENGTH
        ):
            errors.append(PromotionErrors.INVALID_CODE_LENGTH)

        errors.extend(self._configuration_violations())
        return errors

    def _configuration_violations(self) -> ValidationErrors:
        errors: ValidationErrors = []
        if self.starts_at is not None and self.expires_at is not None and self.starts_at >= self.expires_at:
            errors.append(PromotionErrors.INVALID_DATE_RANGE)
        if self.requires_coupon_code and not self.promotion_code:
            errors.append(PromotionErrors.CODE_REQUIRED)
        return errors

    def validate(self) -> Result[Promotion, ValidationErrors]:
        """Read-only consistency check: date range and coupon-code presence."""
        errors = self._configuration_violations()
        if errors:
            return Err(errors)
        return Ok(self)

    # ---------------------------------------------------------------------------
    # Updates
    # ---------------------------------------------------------------------------

    def update(self, **changes: Any) -> Result[Promotion, ValidationErrors]:
        """
        Partial update. Omitted fields are left unchanged.

        Passing None clears an optional field (code, description, order and
        discount limits, window bounds, usage limit). None is ignored for the
        required fields.

        Accepted fields: name, promotion_code, description, action,
        minimum_order_cents, maximum_discount_cents, starts_at, expires_at,
        usage_limit, active, requires_coupon_code, rules_match_policy.
        """
        unknown = set(changes) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise TypeError(f"Promotion.update() got unexpected fields: {sorted(unknown)}")

        errors: ValidationErrors = []
        applied: dict[str, Any] = {}
        for name in _UPDATABLE_FIELDS:
            if name not in changes:
                continue
            value = changes[name]
            if value is None and name not in _CLEARABLE_FIELDS:
                continue
            if name in ("name", "description"):
                value = _normalize_text(value)
            elif name == "promotion_code":
                value = _normalize_code(value)
            elif name == "rules_match_policy":
                policy = MatchPolicy.parse(value)
                if policy is None:
                    errors.append(PromotionErrors.INVALID_MATCH_POLICY)
                    continue
                value = policy
            if value != getattr(self, name):
                applied[name] = value

        candidate = dataclasses.replace(self, **applied)
        errors.extend(candidate._invariant_violations())
        if applied.get("active") is True and candidate.is_expired():
            errors.append(PromotionErrors.EXPIRED)
        if errors:
            return Err(errors)

        if applied:
            for name, value in applied.items():
                setattr(self, name, value)
            self.updated_at = timezone.now()
            self._record(PromotionEventType.UPDATED, fields=list(applied))
        return Ok(self)

    # ---------------------------------------------------------------------------
    # Activation
    # ---------------------------------------------------------------------------

    def activate(self, now: datetime | None = None) -> Result[Promotion, DomainError]:
        """Set the active flag; an already-expired promotion cannot be activated."""
        if self.is_expired(now):
            return Err(PromotionErrors.EXPIRED)
        if self.active:
            return Ok(self)
        self.active = True
        self.updated_at = timezone.now()
        self._record(PromotionEventType.ACTIVATED)
        return Ok(self)

    def deactivate(self) -> Result[Promotion, DomainError]:
        if not self.active:
            return Ok(self)
        self.active = False
        self.updated_at = timezone.now()
        self._record(PromotionEventType.DEACTIVATED)
        return Ok(self)

    # ---------------------------------------------------------------------------
    # Rules
    # ---------------------------------------------------------------------------

    def add_rule(self, rule: PromotionRule | None) -> Result[Promotion, DomainError]:
        """Append a rule, rejecting duplicates of (type, value, property_name)."""
        if rule is None:
            return Err(PromotionErrors.RULE_REQUIRED)
        if rule.promotion_id is not None and rule.promotion_id != self.id:
            return Err(PromotionErrors.RULE_OWNER_MISMATCH)
        if any(existing.signature == rule.signature for existing in self.rules):
            return Err(PromotionErrors.DUPLICATE_RULE)

        rule.promotion_id = self.id
        self.rules.append(rule)
        self.updated_at = timezone.now()
        self._record(PromotionEventType.RULE_ADDED, rule_id=str(rule.id), rule=str(rule))
        return Ok(self)

    def remove_rule(self, rule_id: uuid.UUID) -> Result[Promotion, DomainError]:
        rule = self.find_rule(rule_id)
        if rule is None:
            return Err(PromotionRuleErrors.not_found(rule_id))
        self.rules.remove(rule)
        self.updated_at = timezone.now()
        self._record(PromotionEventType.RULE_REMOVED, rule_id=str(rule_id), rule=str(rule))
        return Ok(self)

    def update_rule(self, rule_id: uuid.UUID, value: str | None) -> Result[PromotionRule, DomainError]:
        """Change a rule's operand, rejecting a value that would duplicate a sibling rule."""
        rule = self.find_rule(rule_id)
        if rule is None:
            return Err(PromotionRuleErrors.not_found(rule_id))

        candidate = dataclasses.replace(rule)
        checked = candidate.update(value)
        if checked.is_err():
            return checked
        if candidate.value == rule.value:
            return Ok(rule)
        if any(other.id != rule.id and other.signature == candidate.signature for other in self.rules):
            return Err(PromotionErrors.DUPLICATE_RULE)

        previous = rule.value
        rule.update(candidate.value)
        self.updated_at = timezone.now()
        self._record(PromotionEventType.RULE_UPDATED, rule_id=str(rule.id), old_value=previous, rule=str(rule))
        return Ok(rule)

    def find_rule(self, rule_id: uuid.UUID) -> PromotionRule | None:
        return next((rule for rule in self.rules if rule.id == rule_id), None)

    @property
    def order_rules(self) -> list[PromotionRule]:
        return [rule for rule in self.rules if not rule.is_item_scoped]

    @property
    def item_rules(self) -> list[PromotionRule]:
        return [rule for rule in self.rules if rule.is_item_scoped]

    # ---------------------------------------------------------------------------
    # Usage
    # ---------------------------------------------------------------------------

    def increment_usage(self) -> Result[Promotion, DomainError]:
        """
        Count one redemption. The only mutator of ``usage_count``.

        Callers invoke it once per applied promotion inside the order-placement
        transaction, with the promotion row locked.
        """
        if self.usage_limit is not None and self.usage_count + 1 > self.usage_limit:
            return Err(PromotionErrors.USAGE_LIMIT_REACHED)
        self.usage_count += 1
        self.updated_at = timezone.now()
        self._record(PromotionEventType.USAGE_INCREASED, usage_count=self.usage_count)
        return Ok(self)

    @property
    def has_usage_limit(self) -> bool:
        return self.usage_limit is not None

    @property
    def remaining_usage(self) -> int | None:
        """Remaining redemptions, or None if unlimited."""
        if self.usage_limit is None:
            return None
        return max(0, self.usage_limit - self.usage_count)

    @property
    def is_usage_limit_reached(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit

    # ---------------------------------------------------------------------------
    # Timing
    # ---------------------------------------------------------------------------

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or timezone.now()
        return self.expires_at is not None and self.expires_at <= now

    def has_started(self, now: datetime | None = None) -> bool:
        now = now or timezone.now()
        return self.starts_at is None or self.starts_at <= now

    def is_within_window(self, now: datetime | None = None) -> bool:
        """True when now falls in [starts_at, expires_at)."""
        now = now or timezone.now()
        return self.has_started(now) and not self.is_expired(now)

    def is_currently_active(self, now: datetime | None = None) -> bool:
        """Flag, window and usage limit combined."""
        return self.active and self.is_within_window(now) and not self.is_usage_limit_reached

    # ---------------------------------------------------------------------------
    # Misc
    # ---------------------------------------------------------------------------

    @property
    def type(self) -> PromotionType | None:
        return self.action.type if self.action is not None else None

    def _record(self, event_type: PromotionEventType, **data: Any) -> None:
        self._events.append(PromotionEvent(type=event_type, promotion_id=self.id, data=data))

    @property
    def pending_events(self) -> tuple[PromotionEvent, ...]:
        return tuple(self._events)

    def collect_events(self) -> list[PromotionEvent]:
        """Return and clear recorded lifecycle events."""
        events, self._events = self._events, []
        return events

    def __str__(self) -> str:
        return f"{self.name} ({self.promotion_code})" if self.promotion_code else self.name

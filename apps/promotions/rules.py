"""
Promotion eligibility rules.

A rule is one predicate (type + string operand) owned by a Promotion. Rule
types are either order-scoped (evaluated once against the whole order) or
item-scoped (evaluated per line item; in order mode they hold when at least
one line item satisfies them).
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from fnmatch import fnmatchcase

from django.utils import timezone

from apps.common.constants import (
    PROMOTION_RULE_PROPERTY_MAX_LENGTH,
    PROMOTION_RULE_VALUE_MAX_LENGTH,
    RULE_VALUE_LIST_SEPARATOR,
)
from apps.common.types import DomainError, Err, Ok, Result

from .errors import PromotionRuleErrors
from .snapshots import LineItemSnapshot, OrderSnapshot


_TRUE_VALUES = frozenset({"true", "1", "yes"})
_FALSE_VALUES = frozenset({"false", "0", "no"})
_PATTERN_CHARS = frozenset("*?[")


class RuleType(Enum):
    """Closed set of supported eligibility predicates"""

    FIRST_ORDER = "first_order"                    # "true": new customers only, "false": returning only
    MINIMUM_ORDER_AMOUNT = "minimum_order_amount"  # Minor units, compared to order subtotal
    MINIMUM_QUANTITY = "minimum_quantity"          # Total units across all lines
    CUSTOMER_GROUP = "customer_group"              # Comma-separated group names
    CUSTOMER = "customer"                          # Comma-separated customer ids
    PRODUCT_IN_LIST = "product_in_list"            # Comma-separated product ids
    PRODUCT_EXCLUDE = "product_exclude"            # Comma-separated product ids
    CATEGORY_INCLUDE = "category_include"          # Comma-separated taxon ids
    CATEGORY_EXCLUDE = "category_exclude"          # Comma-separated taxon ids
    PRODUCT_PROPERTY = "product_property"          # Exact value or glob pattern on a named attribute

    @property
    def is_item_scoped(self) -> bool:
        return self in ITEM_SCOPED_RULE_TYPES

    @classmethod
    def parse(cls, raw: RuleType | str | None) -> RuleType | None:
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            try:
                return cls(raw.strip().lower())
            except ValueError:
                return None
        return None


ITEM_SCOPED_RULE_TYPES: frozenset[RuleType] = frozenset(
    {
        RuleType.PRODUCT_IN_LIST,
        RuleType.PRODUCT_EXCLUDE,
        RuleType.CATEGORY_INCLUDE,
        RuleType.CATEGORY_EXCLUDE,
        RuleType.PRODUCT_PROPERTY,
    }
)

# Exclusions hold in order mode only when no line item is excluded
EXCLUSION_RULE_TYPES: frozenset[RuleType] = frozenset({RuleType.PRODUCT_EXCLUDE, RuleType.CATEGORY_EXCLUDE})

# ===============================================================================
# Operand parsing (malformed operands parse to None)
# ===============================================================================


def _parse_list(value: str) -> frozenset[str]:
    return frozenset(part.strip() for part in value.split(RULE_VALUE_LIST_SEPARATOR) if part.strip())


def _parse_non_negative_int(value: str) -> int | None:
    try:
        parsed = int(value.strip())
    except ValueError:
        return None
    return parsed if parsed >= 0 else None


def _parse_bool(value: str) -> bool | None:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return None


# ===============================================================================
# Evaluators
# ===============================================================================

OrderPredicate = Callable[["PromotionRule", OrderSnapshot], bool]
ItemPredicate = Callable[["PromotionRule", LineItemSnapshot], bool]


def _first_order(rule: PromotionRule, order: OrderSnapshot) -> bool:
    wants_new_customer = _parse_bool(rule.value)
    if wants_new_customer is None or order.is_guest:
        return False
    is_new_customer = order.completed_order_count == 0
    return is_new_customer == wants_new_customer


def _minimum_order_amount(rule: PromotionRule, order: OrderSnapshot) -> bool:
    minimum = _parse_non_negative_int(rule.value)
    return minimum is not None and order.subtotal.amount >= minimum


def _minimum_quantity(rule: PromotionRule, order: OrderSnapshot) -> bool:
    minimum = _parse_non_negative_int(rule.value)
    return minimum is not None and order.total_quantity >= minimum


def _customer_group(rule: PromotionRule, order: OrderSnapshot) -> bool:
    wanted = {group.casefold() for group in _parse_list(rule.value)}
    return any(group.casefold() in wanted for group in order.customer_groups)


def _customer(rule: PromotionRule, order: OrderSnapshot) -> bool:
    if order.is_guest:
        return False
    return order.customer_id in _parse_list(rule.value)


def _product_in_list(rule: PromotionRule, item: LineItemSnapshot) -> bool:
    return item.product_id in _parse_list(rule.value)


def _product_exclude(rule: PromotionRule, item: LineItemSnapshot) -> bool:
    return item.product_id not in _parse_list(rule.value)


def _category_include(rule: PromotionRule, item: LineItemSnapshot) -> bool:
    return bool(item.taxon_ids & _parse_list(rule.value))


def _category_exclude(rule: PromotionRule, item: LineItemSnapshot) -> bool:
    return not (item.taxon_ids & _parse_list(rule.value))


def _product_property(rule: PromotionRule, item: LineItemSnapshot) -> bool:
    if not rule.property_name:
        return False
    actual = item.get_property(rule.property_name)
    if actual is None:
        return False
    expected = rule.value.strip().casefold()
    actual = actual.strip().casefold()
    if _PATTERN_CHARS & set(expected):
        return fnmatchcase(actual, expected)
    return actual == expected


ORDER_EVALUATORS: dict[RuleType, OrderPredicate] = {
    RuleType.FIRST_ORDER: _first_order,
    RuleType.MINIMUM_ORDER_AMOUNT: _minimum_order_amount,
    RuleType.MINIMUM_QUANTITY: _minimum_quantity,
    RuleType.CUSTOMER_GROUP: _customer_group,
    RuleType.CUSTOMER: _customer,
}

ITEM_EVALUATORS: dict[RuleType, ItemPredicate] = {
    RuleType.PRODUCT_IN_LIST: _product_in_list,
    RuleType.PRODUCT_EXCLUDE: _product_exclude,
    RuleType.CATEGORY_INCLUDE: _category_include,
    RuleType.CATEGORY_EXCLUDE: _category_exclude,
    RuleType.PRODUCT_PROPERTY: _product_property,
}

# ===============================================================================
# PromotionRule
# ===============================================================================


def _validate_value(value: str | None) -> Result[str, DomainError]:
    if value is None or not value.strip():
        return Err(PromotionRuleErrors.VALUE_REQUIRED)
    if len(value) > PROMOTION_RULE_VALUE_MAX_LENGTH:
        return Err(PromotionRuleErrors.VALUE_TOO_LONG)
    return Ok(value.strip())


@dataclass(eq=False)
class PromotionRule:
    """
    One eligibility predicate belonging to a promotion.

    Build instances with ``PromotionRule.create``; the owning Promotion keeps
    them in insertion order and rejects duplicates by ``signature``.
    """

    id: uuid.UUID
    promotion_id: uuid.UUID | None
    type: RuleType
    value: str
    property_name: str | None = None
    created_at: datetime = field(default_factory=timezone.now)
    updated_at: datetime | None = None

    @classmethod
    def create(
        cls,
        promotion_id: uuid.UUID | None,
        rule_type: RuleType | str | None,
        value: str | None,
        property_name: str | None = None,
    ) -> Result[PromotionRule, DomainError]:
        parsed_type = RuleType.parse(rule_type)
        if parsed_type is None:
            return Err(PromotionRuleErrors.INVALID_RULE_TYPE)

        value_result = _validate_value(value)
        if value_result.is_err():
            return value_result

        normalized_property: str | None = None
        if parsed_type is RuleType.PRODUCT_PROPERTY:
            if property_name is None or not property_name.strip():
                return Err(PromotionRuleErrors.PROPERTY_NAME_REQUIRED)
            normalized_property = property_name.strip()
            if len(normalized_property) > PROMOTION_RULE_PROPERTY_MAX_LENGTH:
                return Err(PromotionRuleErrors.PROPERTY_NAME_TOO_LONG)

        return Ok(
            cls(
                id=uuid.uuid4(),
                promotion_id=promotion_id,
                type=parsed_type,
                value=value_result.unwrap(),
                property_name=normalized_property,
            )
        )

    @property
    def signature(self) -> tuple[RuleType, str, str | None]:
        """Identity used for duplicate detection within a promotion."""
        return (self.type, self.value, self.property_name)

    @property
    def is_item_scoped(self) -> bool:
        return self.type.is_item_scoped

    def update(self, value: str | None = None) -> Result[PromotionRule, DomainError]:
        """Replace the comparison operand; no-op when unchanged."""
        if value is None:
            return Ok(self)
        value_result = _validate_value(value)
        if value_result.is_err():
            return value_result
        new_value = value_result.unwrap()
        if new_value != self.value:
            self.value = new_value
            self.updated_at = timezone.now()
        return Ok(self)

    def evaluate(self, order: OrderSnapshot, line_item: LineItemSnapshot | None = None) -> bool:
        """
        Evaluate the predicate.

        Order-scoped rules ignore ``line_item``. Item-scoped rules check the
        given line item. With no line item, inclusion rules hold when any line
        item matches and exclusion rules hold only when every line item passes.
        """
        order_predicate = ORDER_EVALUATORS.get(self.type)
        if order_predicate is not None:
            return order_predicate(self, order)

        item_predicate = ITEM_EVALUATORS.get(self.type)
        if item_predicate is None:
            raise ValueError(f"No evaluator registered for rule type {self.type!r}")

        if line_item is not None:
            return item_predicate(self, line_item)
        if self.type in EXCLUSION_RULE_TYPES:
            return all(item_predicate(self, item) for item in order.line_items)
        return any(item_predicate(self, item) for item in order.line_items)

    def __str__(self) -> str:
        if self.property_name:
            return f"{self.type.value}[{self.property_name}]={self.value}"
        return f"{self.type.value}={self.value}"

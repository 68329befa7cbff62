"""
Error catalogue for the promotions engine.

Codes are namespaced by entity ("Promotion.DuplicateRule") so API clients and
audit rows can match on them without parsing descriptions.
"""

from __future__ import annotations

from typing import Any

from apps.common.constants import (
    PROMOTION_CODE_MAX_LENGTH,
    PROMOTION_CODE_MIN_LENGTH,
    PROMOTION_DESCRIPTION_MAX_LENGTH,
    PROMOTION_NAME_MAX_LENGTH,
    PROMOTION_RULE_PROPERTY_MAX_LENGTH,
    PROMOTION_RULE_VALUE_MAX_LENGTH,
)
from apps.common.types import DomainError

# ===============================================================================
# Promotion
# ===============================================================================


class PromotionErrors:
    """Errors raised by the Promotion aggregate."""

    REQUIRED = DomainError.validation("Promotion.Required", "Promotion is required.")
    NAME_REQUIRED = DomainError.validation("Promotion.Name.Required", "Promotion name is required.")
    NAME_TOO_LONG = DomainError.validation(
        "Promotion.Name.TooLong",
        f"Promotion name must be at most {PROMOTION_NAME_MAX_LENGTH} characters.",
    )
    DESCRIPTION_TOO_LONG = DomainError.validation(
        "Promotion.Description.TooLong",
        f"Description must be at most {PROMOTION_DESCRIPTION_MAX_LENGTH} characters.",
    )
    ACTION_REQUIRED = DomainError.validation("Promotion.ActionRequired", "Promotion action is required.")
    INVALID_MINIMUM_ORDER_AMOUNT = DomainError.validation(
        "Promotion.InvalidMinimumOrderAmount", "Minimum order amount must be non-negative."
    )
    INVALID_MAXIMUM_DISCOUNT_AMOUNT = DomainError.validation(
        "Promotion.InvalidMaximumDiscountAmount", "Maximum discount amount must be non-negative."
    )
    INVALID_USAGE_LIMIT = DomainError.validation("Promotion.InvalidUsageLimit", "Usage limit must be non-negative.")
    INVALID_DATE_RANGE = DomainError.validation("Promotion.InvalidDateRange", "Start date must be before expiry date.")
    CODE_REQUIRED = DomainError.validation(
        "Promotion.CodeRequired", "Coupon code is required when a coupon code is required."
    )
    INVALID_CODE_LENGTH = DomainError.validation(
        "Promotion.InvalidCodeLength",
        f"Coupon code must be between {PROMOTION_CODE_MIN_LENGTH} and {PROMOTION_CODE_MAX_LENGTH} characters.",
    )
    INVALID_MATCH_POLICY = DomainError.validation("Promotion.InvalidMatchPolicy", "Rules match policy is not recognized.")
    RULE_REQUIRED = DomainError.validation("Promotion.RuleRequired", "Promotion rule cannot be empty.")
    DUPLICATE_RULE = DomainError.conflict("Promotion.DuplicateRule", "This rule already exists for this promotion.")
    RULE_OWNER_MISMATCH = DomainError.validation(
        "Promotion.RuleOwnerMismatch", "Rule belongs to a different promotion."
    )
    CODE_ALREADY_EXISTS = DomainError.conflict(
        "Promotion.CodeAlreadyExists", "Another promotion already uses this coupon code."
    )
    EXPIRED = DomainError.state_conflict("Promotion.Expired", "Promotion has expired.")
    USAGE_LIMIT_REACHED = DomainError.state_conflict(
        "Promotion.UsageLimitReached", "Promotion usage limit has been reached."
    )

    @staticmethod
    def not_found(promotion_id: Any) -> DomainError:
        return DomainError.not_found("Promotion.NotFound", f"Promotion with ID '{promotion_id}' was not found.")

    @staticmethod
    def code_not_found(code: str) -> DomainError:
        return DomainError.not_found("Promotion.InvalidCode", f"No promotion matches code '{code}'.")


# ===============================================================================
# PromotionRule
# ===============================================================================


class PromotionRuleErrors:
    """Errors raised when building or editing a PromotionRule."""

    VALUE_REQUIRED = DomainError.validation("PromotionRule.Value.Required", "Rule value is required.")
    VALUE_TOO_LONG = DomainError.validation(
        "PromotionRule.Value.TooLong",
        f"Rule value must be at most {PROMOTION_RULE_VALUE_MAX_LENGTH} characters.",
    )
    INVALID_RULE_TYPE = DomainError.validation("PromotionRule.Type.Invalid", "Rule type is not recognized.")
    PROPERTY_NAME_REQUIRED = DomainError.validation(
        "PromotionRule.PropertyName.Required", "Product property rules require a property name."
    )
    PROPERTY_NAME_TOO_LONG = DomainError.validation(
        "PromotionRule.PropertyName.TooLong",
        f"Property name must be at most {PROMOTION_RULE_PROPERTY_MAX_LENGTH} characters.",
    )

    @staticmethod
    def not_found(rule_id: Any) -> DomainError:
        return DomainError.not_found("PromotionRule.NotFound", f"Promotion rule with ID '{rule_id}' was not found.")


# ===============================================================================
# PromotionAction
# ===============================================================================


class PromotionActionErrors:
    """Errors raised when building a PromotionAction."""

    INVALID_PERCENTAGE_VALUE = DomainError.validation(
        "PromotionAction.InvalidPercentageValue", "Percentage value must be greater than 0 and at most 1 (100%)."
    )
    INVALID_FIXED_AMOUNT_VALUE = DomainError.validation(
        "PromotionAction.InvalidFixedAmountValue", "Fixed discount amount must be a non-negative amount in minor units."
    )
    INVALID_DISCOUNT_TYPE = DomainError.validation(
        "PromotionAction.InvalidDiscountType", "Discount type is not recognized."
    )
    AMOUNT_TOO_LARGE = DomainError.validation(
        "PromotionAction.AmountTooLarge", "Fixed discount amount exceeds the platform limit."
    )


# ===============================================================================
# Calculation
# ===============================================================================


class PromotionCalculationErrors:
    """Errors for structurally invalid calculation input."""

    ORDER_REQUIRED = DomainError.validation("PromotionCalculation.OrderRequired", "Order snapshot is required.")
    EMPTY_ORDER = DomainError.validation("PromotionCalculation.EmptyOrder", "Order has no line items.")
    NOT_APPLICABLE = DomainError.state_conflict(
        "PromotionCalculation.NotApplicable", "Promotion does not apply to this order."
    )

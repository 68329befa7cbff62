"""
Persistence models for the promotions engine.

These rows back the Promotion aggregate (see ``repository.py`` for mapping)
and keep an append-only audit trail of lifecycle changes and redemptions.
The calculation engine itself never imports this module.
"""

from __future__ import annotations

import uuid
from typing import Any, ClassVar

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.common.constants import (
    MAX_DISCOUNT_AMOUNT_CENTS,
    MAX_USAGE_LIMIT,
    PROMOTION_CODE_MAX_LENGTH,
    PROMOTION_NAME_MAX_LENGTH,
    PROMOTION_RULE_PROPERTY_MAX_LENGTH,
    PROMOTION_RULE_VALUE_MAX_LENGTH,
)

# ===============================================================================
# Promotion Model
# ===============================================================================


class PromotionRecord(models.Model):
    """
    Stored state of a Promotion aggregate.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Identification
    name = models.CharField(max_length=PROMOTION_NAME_MAX_LENGTH, help_text=_("Internal promotion name"))
    promotion_code = models.CharField(
        max_length=PROMOTION_CODE_MAX_LENGTH,
        null=True,
        blank=True,
        unique=True,
        help_text=_("Coupon code (uppercase)"),
    )
    description = models.TextField(blank=True, help_text=_("Description shown to customers"))

    # Action
    PROMOTION_TYPES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("order_discount", _("Order Discount")),
        ("item_discount", _("Item Discount")),
    )
    promotion_type = models.CharField(max_length=20, choices=PROMOTION_TYPES, default="order_discount")

    DISCOUNT_TYPES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("percentage", _("Percentage")),
        ("fixed_amount", _("Fixed Amount")),
    )
    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPES, default="percentage")
    discount_percent = models.DecimalField(
        max_digits=7,
        decimal_places=4,
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(1)],
        help_text=_("Discount rate as a fraction (0.2000 = 20%)"),
    )
    discount_amount_cents = models.BigIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(MAX_DISCOUNT_AMOUNT_CENTS)],
        help_text=_("Fixed discount amount in cents"),
    )
    currency = models.CharField(max_length=3, blank=True, help_text=_("Currency of the fixed amount"))

    # Limits
    minimum_order_cents = models.BigIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
        help_text=_("Minimum order subtotal in cents"),
    )
    maximum_discount_cents = models.BigIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
        help_text=_("Maximum discount per order in cents"),
    )

    # Timing
    starts_at = models.DateTimeField(null=True, blank=True, help_text=_("When promotion starts (null = immediately)"))
    expires_at = models.DateTimeField(null=True, blank=True, help_text=_("When promotion ends (null = never)"))

    # Usage
    usage_limit = models.PositiveIntegerField(
        null=True,
        blank=True,
        validators=[MaxValueValidator(MAX_USAGE_LIMIT)],
        help_text=_("Maximum redemptions (null = unlimited)"),
    )
    usage_count = models.PositiveIntegerField(default=0, help_text=_("Current redemption count"))

    # Status
    active = models.BooleanField(default=True, help_text=_("Master switch for promotion"))
    requires_coupon_code = models.BooleanField(default=False)

    MATCH_POLICIES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("all", _("All rules must match")),
        ("any", _("Any rule may match")),
    )
    rules_match_policy = models.CharField(max_length=10, choices=MATCH_POLICIES, default="all")

    # Audit
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "promotions"
        verbose_name = _("Promotion")
        verbose_name_plural = _("Promotions")
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["active", "starts_at", "expires_at"], name="idx_promotion_window"),
            models.Index(fields=["requires_coupon_code", "active"], name="idx_promotion_coupon"),
        )

    def __str__(self) -> str:
        return f"{self.promotion_code} - {self.name}" if self.promotion_code else self.name

    def save(self, *args: Any, **kwargs: Any) -> None:
        """Normalize code to uppercase before saving."""
        if self.promotion_code:
            self.promotion_code = self.promotion_code.upper().strip()
        super().save(*args, **kwargs)


# ===============================================================================
# Promotion Rule Model
# ===============================================================================


class PromotionRuleRecord(models.Model):
    """
    One eligibility rule, kept in the promotion's insertion order.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    promotion = models.ForeignKey(PromotionRecord, on_delete=models.CASCADE, related_name="rules")

    RULE_TYPES: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("first_order", _("First Order")),
        ("minimum_order_amount", _("Minimum Order Amount")),
        ("minimum_quantity", _("Minimum Quantity")),
        ("customer_group", _("Customer Group")),
        ("customer", _("Customer")),
        ("product_in_list", _("Product In List")),
        ("product_exclude", _("Product Exclude")),
        ("category_include", _("Category Include")),
        ("category_exclude", _("Category Exclude")),
        ("product_property", _("Product Property")),
    )
    rule_type = models.CharField(max_length=30, choices=RULE_TYPES)
    value = models.CharField(max_length=PROMOTION_RULE_VALUE_MAX_LENGTH)
    property_name = models.CharField(max_length=PROMOTION_RULE_PROPERTY_MAX_LENGTH, blank=True)
    position = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "promotion_rules"
        verbose_name = _("Promotion Rule")
        verbose_name_plural = _("Promotion Rules")
        ordering: ClassVar[tuple[str, ...]] = ("promotion", "position")

    def __str__(self) -> str:
        return f"{self.rule_type}={self.value}"


# ===============================================================================
# Promotion Audit Model
# ===============================================================================


class PromotionAuditLog(models.Model):
    """
    Append-only history of promotion changes and redemptions.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    promotion = models.ForeignKey(PromotionRecord, on_delete=models.CASCADE, related_name="audit_entries")

    ACTIONS: ClassVar[tuple[tuple[str, Any], ...]] = (
        ("created", _("Created")),
        ("updated", _("Updated")),
        ("activated", _("Activated")),
        ("deactivated", _("Deactivated")),
        ("rule_added", _("Rule Added")),
        ("rule_removed", _("Rule Removed")),
        ("rule_updated", _("Rule Updated")),
        ("usage_increased", _("Usage Increased")),
        ("used", _("Used")),
    )
    action = models.CharField(max_length=20, choices=ACTIONS)
    description = models.TextField(blank=True)

    actor = models.CharField(max_length=255, blank=True, help_text=_("User or system component"))
    order_id = models.CharField(max_length=64, blank=True)
    discount_cents = models.BigIntegerField(default=0)
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "promotion_audit_log"
        verbose_name = _("Promotion Audit Entry")
        verbose_name_plural = _("Promotion Audit Entries")
        ordering: ClassVar[tuple[str, ...]] = ("created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["promotion", "action"], name="idx_promo_audit_action"),
        )

    def __str__(self) -> str:
        return f"{self.action} on {self.promotion_id}"

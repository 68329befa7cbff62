"""
Tests for the promotion application services and repository.
"""

import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from django.utils import timezone

from apps.common.types import Err, Money
from apps.promotions.actions import PromotionAction
from apps.promotions.errors import PromotionCalculationErrors, PromotionErrors, PromotionRuleErrors
from apps.promotions.models import PromotionAuditLog, PromotionRecord, PromotionRuleRecord
from apps.promotions.repository import PromotionRepository
from apps.promotions.rules import RuleType
from apps.promotions.services import PromotionAdminService, PromotionApplicationService
from apps.promotions.snapshots import LineItemSnapshot, OrderSnapshot


def make_order(*subtotals, order_id="ORD-7"):
    return OrderSnapshot(
        id=order_id,
        currency="RON",
        customer_id="CUST-9",
        line_items=tuple(
            LineItemSnapshot(id=f"L{index}", product_id=f"P{index}", unit_price=Money(cents, "RON"))
            for index, cents in enumerate(subtotals, start=1)
        ),
    )


class PromotionAdminServiceTests(TestCase):
    """Tests for PromotionAdminService."""

    def setUp(self):
        self.action = PromotionAction.create_order_discount("percentage", Decimal("0.15")).unwrap()

    def test_create_persists_promotion_and_audit(self):
        promotion = PromotionAdminService.create_promotion(
            name="Spring Sale",
            action=self.action,
            code="spring15",
            usage_limit=10,
            actor="admin@example.com",
        ).unwrap()

        record = PromotionRecord.objects.get(id=promotion.id)
        self.assertEqual(record.promotion_code, "SPRING15")
        self.assertEqual(record.discount_type, "percentage")
        self.assertEqual(record.discount_percent, Decimal("0.15"))
        self.assertEqual(record.usage_limit, 10)

        entry = PromotionAuditLog.objects.get(promotion=record)
        self.assertEqual(entry.action, "created")
        self.assertEqual(entry.actor, "admin@example.com")

    def test_create_returns_all_validation_errors(self):
        errors = PromotionAdminService.create_promotion(name="", action=None).unwrap_err()
        self.assertEqual(errors, [PromotionErrors.NAME_REQUIRED, PromotionErrors.ACTION_REQUIRED])
        self.assertFalse(PromotionRecord.objects.exists())

    def test_duplicate_code_rejected(self):
        PromotionAdminService.create_promotion(name="First", action=self.action, code="SAVE10").unwrap()
        errors = PromotionAdminService.create_promotion(name="Second", action=self.action, code="save10").unwrap_err()
        self.assertEqual(errors, [PromotionErrors.CODE_ALREADY_EXISTS])
        self.assertEqual(PromotionRecord.objects.count(), 1)

    def test_round_trip_through_repository(self):
        fixed = PromotionAction.create_item_discount("fixed_amount", Money(250, "EUR")).unwrap()
        created = PromotionAdminService.create_promotion(
            name="Euro Items",
            action=fixed,
            maximum_discount_cents=1000,
            rules_match_policy="any",
        ).unwrap()
        PromotionAdminService.add_rule(created.id, RuleType.PRODUCT_PROPERTY, "ssd*", property_name="disk").unwrap()

        loaded = PromotionRepository.get(created.id).unwrap()

        self.assertEqual(loaded.action, fixed)
        self.assertEqual(loaded.maximum_discount_cents, 1000)
        self.assertEqual(loaded.rules_match_policy.value, "any")
        self.assertEqual(len(loaded.rules), 1)
        self.assertEqual(loaded.rules[0].property_name, "disk")
        self.assertEqual(loaded.pending_events, ())

    def test_update_promotion(self):
        created = PromotionAdminService.create_promotion(name="Old", action=self.action).unwrap()
        PromotionAdminService.update_promotion(created.id, name="New", minimum_order_cents=2000).unwrap()

        record = PromotionRecord.objects.get(id=created.id)
        self.assertEqual(record.name, "New")
        self.assertEqual(record.minimum_order_cents, 2000)
        self.assertTrue(record.audit_entries.filter(action="updated").exists())

    def test_update_missing_promotion(self):
        missing = uuid.uuid4()
        errors = PromotionAdminService.update_promotion(missing, name="X").unwrap_err()
        self.assertEqual(errors, [PromotionErrors.not_found(missing)])

    def test_rule_lifecycle(self):
        created = PromotionAdminService.create_promotion(name="Rules", action=self.action).unwrap()

        rule = PromotionAdminService.add_rule(created.id, "minimum_quantity", "2").unwrap()
        duplicate = PromotionAdminService.add_rule(created.id, "minimum_quantity", "2")
        self.assertEqual(duplicate.unwrap_err(), PromotionErrors.DUPLICATE_RULE)

        PromotionAdminService.update_rule(created.id, rule.id, "3").unwrap()
        self.assertEqual(PromotionRuleRecord.objects.get(id=rule.id).value, "3")

        PromotionAdminService.remove_rule(created.id, rule.id).unwrap()
        self.assertFalse(PromotionRuleRecord.objects.filter(id=rule.id).exists())
        self.assertEqual(
            PromotionAdminService.remove_rule(created.id, rule.id).unwrap_err(),
            PromotionRuleErrors.not_found(rule.id),
        )

    def test_update_rule_rejects_duplicate_value(self):
        created = PromotionAdminService.create_promotion(name="Rules", action=self.action).unwrap()
        PromotionAdminService.add_rule(created.id, "product_in_list", "P1").unwrap()
        second = PromotionAdminService.add_rule(created.id, "product_in_list", "P2").unwrap()

        result = PromotionAdminService.update_rule(created.id, second.id, "P1")

        self.assertEqual(result.unwrap_err(), PromotionErrors.DUPLICATE_RULE)
        self.assertEqual(PromotionRuleRecord.objects.get(id=second.id).value, "P2")

    def test_update_rule_records_audit_entry(self):
        created = PromotionAdminService.create_promotion(name="Rules", action=self.action).unwrap()
        rule = PromotionAdminService.add_rule(created.id, "minimum_quantity", "2").unwrap()

        PromotionAdminService.update_rule(created.id, rule.id, "4", actor="admin@example.com").unwrap()

        entry = PromotionAuditLog.objects.get(promotion_id=created.id, action="rule_updated")
        self.assertEqual(entry.actor, "admin@example.com")
        self.assertEqual(entry.metadata["rule_id"], str(rule.id))
        self.assertEqual(entry.metadata["old_value"], "2")
        self.assertEqual(entry.metadata["rule"], "minimum_quantity=4")

    def test_unchanged_rule_value_writes_no_audit_entry(self):
        created = PromotionAdminService.create_promotion(name="Rules", action=self.action).unwrap()
        rule = PromotionAdminService.add_rule(created.id, "minimum_quantity", "2").unwrap()

        PromotionAdminService.update_rule(created.id, rule.id, " 2 ").unwrap()

        self.assertFalse(PromotionAuditLog.objects.filter(action="rule_updated").exists())

    def test_update_promotion_clears_optional_limits(self):
        created = PromotionAdminService.create_promotion(
            name="Limited",
            action=self.action,
            maximum_discount_cents=500,
            usage_limit=10,
            expires_at=timezone.now() + timedelta(days=3),
        ).unwrap()

        PromotionAdminService.update_promotion(
            created.id, maximum_discount_cents=None, usage_limit=None, expires_at=None
        ).unwrap()

        record = PromotionRecord.objects.get(id=created.id)
        self.assertIsNone(record.maximum_discount_cents)
        self.assertIsNone(record.usage_limit)
        self.assertIsNone(record.expires_at)
        self.assertEqual(record.name, "Limited")

    def test_customer_rule_round_trip(self):
        created = PromotionAdminService.create_promotion(name="Loyal", action=self.action).unwrap()
        PromotionAdminService.add_rule(created.id, RuleType.CUSTOMER, "CUST-9,CUST-12").unwrap()

        self.assertEqual(PromotionRuleRecord.objects.get(promotion_id=created.id).rule_type, "customer")
        result = PromotionApplicationService.evaluate(created.id, make_order(2000)).unwrap()
        self.assertEqual(result.total_cents, 300)

    def test_rule_positions_follow_insertion_order(self):
        created = PromotionAdminService.create_promotion(name="Ordered", action=self.action).unwrap()
        for value in ("P3", "P1", "P2"):
            PromotionAdminService.add_rule(created.id, "product_in_list", value).unwrap()

        loaded = PromotionRepository.get(created.id).unwrap()
        self.assertEqual([rule.value for rule in loaded.rules], ["P3", "P1", "P2"])

    def test_activate_and_deactivate(self):
        created = PromotionAdminService.create_promotion(
            name="Toggle",
            action=self.action,
            expires_at=timezone.now() + timedelta(days=1),
        ).unwrap()

        PromotionAdminService.deactivate(created.id).unwrap()
        self.assertFalse(PromotionRecord.objects.get(id=created.id).active)

        expired = PromotionAdminService.activate(created.id, now=timezone.now() + timedelta(days=2))
        self.assertEqual(expired.unwrap_err(), PromotionErrors.EXPIRED)

        PromotionAdminService.activate(created.id).unwrap()
        self.assertTrue(PromotionRecord.objects.get(id=created.id).active)


class PromotionApplicationServiceTests(TestCase):
    """Tests for PromotionApplicationService."""

    def setUp(self):
        action = PromotionAction.create_order_discount("fixed_amount", 1500).unwrap()
        self.promotion = PromotionAdminService.create_promotion(
            name="Fifteen Off",
            action=action,
            minimum_order_cents=5000,
            usage_limit=1,
        ).unwrap()

    def test_apply_counts_usage_and_audits(self):
        with self.assertLogs("apps.promotions.services", level="INFO") as logs:
            result = PromotionApplicationService.apply_promotion(
                self.promotion.id, make_order(6000), actor="checkout"
            ).unwrap()

        self.assertEqual(result.total_cents, 1500)
        record = PromotionRecord.objects.get(id=self.promotion.id)
        self.assertEqual(record.usage_count, 1)

        used = record.audit_entries.get(action="used")
        self.assertEqual(used.order_id, "ORD-7")
        self.assertEqual(used.discount_cents, 1500)
        self.assertEqual(used.metadata["adjustments"][0]["amount_cents"], 1500)
        self.assertTrue(record.audit_entries.filter(action="usage_increased").exists())
        self.assertIn("Promotion applied", logs.output[0])

    def test_usage_limit_enforced_across_applications(self):
        PromotionApplicationService.apply_promotion(self.promotion.id, make_order(6000)).unwrap()

        second = PromotionApplicationService.apply_promotion(self.promotion.id, make_order(6000, order_id="ORD-8"))

        self.assertEqual(second.unwrap_err(), PromotionCalculationErrors.NOT_APPLICABLE)
        self.assertEqual(PromotionRecord.objects.get(id=self.promotion.id).usage_count, 1)

    def test_not_applicable_writes_nothing(self):
        result = PromotionApplicationService.apply_promotion(self.promotion.id, make_order(4000))

        self.assertEqual(result.unwrap_err(), PromotionCalculationErrors.NOT_APPLICABLE)
        record = PromotionRecord.objects.get(id=self.promotion.id)
        self.assertEqual(record.usage_count, 0)
        self.assertFalse(record.audit_entries.filter(action="used").exists())

    def test_unknown_promotion(self):
        missing = uuid.uuid4()
        result = PromotionApplicationService.apply_promotion(missing, make_order(6000))
        self.assertEqual(result.unwrap_err(), PromotionErrors.not_found(missing))

    def test_empty_order_is_error(self):
        result = PromotionApplicationService.apply_promotion(self.promotion.id, make_order())
        self.assertEqual(result.unwrap_err(), PromotionCalculationErrors.EMPTY_ORDER)

    def test_evaluate_does_not_count_usage(self):
        result = PromotionApplicationService.evaluate(self.promotion.id, make_order(6000)).unwrap()
        self.assertEqual(result.total_cents, 1500)
        self.assertEqual(PromotionRecord.objects.get(id=self.promotion.id).usage_count, 0)


class PromotionCouponCodeTests(TestCase):
    """Tests for code-gated promotions."""

    def setUp(self):
        action = PromotionAction.create_order_discount("percentage", Decimal("0.50")).unwrap()
        self.coupon = PromotionAdminService.create_promotion(
            name="Half Price",
            action=action,
            code="HALF50",
            requires_coupon_code=True,
        ).unwrap()

    def test_apply_code_case_insensitive(self):
        result = PromotionApplicationService.apply_code(" half50 ", make_order(3000)).unwrap()
        self.assertEqual(result.total_cents, 1500)

    def test_unknown_code(self):
        result = PromotionApplicationService.apply_code("NOPE", make_order(3000))
        self.assertEqual(result.unwrap_err(), PromotionErrors.code_not_found("NOPE"))

    def test_apply_by_id_without_code_rejected(self):
        result = PromotionApplicationService.apply_promotion(self.coupon.id, make_order(3000))
        self.assertEqual(result.unwrap_err(), PromotionErrors.code_not_found(""))

    def test_candidates_include_coupon_only_with_code(self):
        action = PromotionAction.create_order_discount("percentage", Decimal("0.10")).unwrap()
        PromotionAdminService.create_promotion(name="Ten Percent", action=action)
        order = make_order(3000)

        without_code = PromotionApplicationService.evaluate_candidates(order)
        with_code = PromotionApplicationService.evaluate_candidates(order, code="half50")

        self.assertEqual([result.total_cents for result in without_code], [300])
        self.assertEqual([result.total_cents for result in with_code], [1500, 300])
        self.assertEqual(with_code[0].promotion_id, self.coupon.id)


class PromotionCandidateTests(TestCase):
    """Tests for candidate filtering."""

    def setUp(self):
        self.action = PromotionAction.create_order_discount("percentage", Decimal("0.10")).unwrap()
        self.now = timezone.now()

    def test_candidates_filtered_by_window_status_and_usage(self):
        live = PromotionAdminService.create_promotion(name="Live", action=self.action).unwrap()
        PromotionAdminService.create_promotion(
            name="Future", action=self.action, starts_at=self.now + timedelta(days=1)
        ).unwrap()
        PromotionAdminService.create_promotion(
            name="Expired",
            action=self.action,
            starts_at=self.now - timedelta(days=2),
            expires_at=self.now - timedelta(days=1),
        ).unwrap()
        PromotionAdminService.create_promotion(name="Depleted", action=self.action, usage_limit=0).unwrap()
        inactive = PromotionAdminService.create_promotion(name="Off", action=self.action).unwrap()
        PromotionAdminService.deactivate(inactive.id).unwrap()

        candidates = PromotionRepository.list_candidates(self.now)

        self.assertEqual([promotion.id for promotion in candidates], [live.id])

    def test_invalid_candidate_is_skipped_with_warning(self):
        PromotionAdminService.create_promotion(name="Live", action=self.action).unwrap()
        order = make_order(1000)

        with patch(
            "apps.promotions.services.PromotionCalculator.calculate",
            return_value=Err(PromotionErrors.ACTION_REQUIRED),
        ), self.assertLogs("apps.promotions.services", level="WARNING"):
            results = PromotionApplicationService.evaluate_candidates(order, now=self.now)

        self.assertEqual(results, [])

"""
Tests for PromotionAction construction and calculation.
"""

from decimal import Decimal

from django.test import SimpleTestCase

from apps.common.types import Money, Percentage
from apps.promotions.actions import DiscountType, PromotionAction, PromotionType
from apps.promotions.errors import PromotionActionErrors


class PromotionActionFactoryTests(SimpleTestCase):
    """Tests for the order/item discount factories."""

    def test_order_percentage_discount(self):
        action = PromotionAction.create_order_discount(DiscountType.PERCENTAGE, Decimal("0.20")).unwrap()
        self.assertEqual(action.type, PromotionType.ORDER_DISCOUNT)
        self.assertEqual(action.percentage, Percentage(Decimal("0.20")))
        self.assertIsNone(action.amount)
        self.assertIsNone(action.currency)

    def test_item_fixed_discount_defaults_currency(self):
        action = PromotionAction.create_item_discount("fixed_amount", 1500).unwrap()
        self.assertEqual(action.type, PromotionType.ITEM_DISCOUNT)
        self.assertEqual(action.amount, Money(1500, "RON"))
        self.assertIsNone(action.percentage)

    def test_fixed_discount_accepts_money(self):
        action = PromotionAction.create_order_discount("fixed_amount", Money(700, "EUR")).unwrap()
        self.assertEqual(action.currency, "EUR")

    def test_percentage_out_of_range_rejected(self):
        for value in (Decimal("0"), Decimal("-0.1"), Decimal("1.5"), "abc", True):
            with self.subTest(value=value):
                result = PromotionAction.create_order_discount(DiscountType.PERCENTAGE, value)
                self.assertEqual(result.unwrap_err(), PromotionActionErrors.INVALID_PERCENTAGE_VALUE)

    def test_percentage_accepts_full_rate(self):
        self.assertTrue(PromotionAction.create_order_discount("percentage", 1).is_ok())

    def test_negative_fixed_amount_rejected(self):
        result = PromotionAction.create_order_discount(DiscountType.FIXED_AMOUNT, -1)
        self.assertEqual(result.unwrap_err(), PromotionActionErrors.INVALID_FIXED_AMOUNT_VALUE)

    def test_fractional_fixed_amount_rejected(self):
        result = PromotionAction.create_order_discount(DiscountType.FIXED_AMOUNT, 10.5)
        self.assertEqual(result.unwrap_err(), PromotionActionErrors.INVALID_FIXED_AMOUNT_VALUE)

    def test_zero_fixed_amount_allowed(self):
        self.assertTrue(PromotionAction.create_order_discount(DiscountType.FIXED_AMOUNT, 0).is_ok())

    def test_fixed_amount_above_platform_limit_rejected(self):
        result = PromotionAction.create_order_discount(DiscountType.FIXED_AMOUNT, 100_000_001)
        self.assertEqual(result.unwrap_err(), PromotionActionErrors.AMOUNT_TOO_LARGE)

    def test_unknown_discount_type_rejected(self):
        result = PromotionAction.create_order_discount("buy_one_get_one", 10)
        self.assertEqual(result.unwrap_err(), PromotionActionErrors.INVALID_DISCOUNT_TYPE)

    def test_both_values_populated_is_programmer_error(self):
        with self.assertRaises(ValueError):
            PromotionAction(
                type=PromotionType.ORDER_DISCOUNT,
                discount_type=DiscountType.PERCENTAGE,
                amount=Money(100, "RON"),
                percentage=Percentage(Decimal("0.1")),
            )


class PromotionActionCalculateTests(SimpleTestCase):
    """Tests for PromotionAction.calculate."""

    def test_percentage_truncates_toward_zero(self):
        action = PromotionAction.create_order_discount("percentage", Decimal("0.333")).unwrap()
        # 1001 * 0.333 = 333.333
        self.assertEqual(action.calculate(Money(1001, "RON")), Money(333, "RON"))

    def test_percentage_never_exceeds_base(self):
        action = PromotionAction.create_order_discount("percentage", Decimal("1")).unwrap()
        for amount in (0, 1, 99, 12345):
            with self.subTest(amount=amount):
                self.assertEqual(action.calculate(Money(amount, "RON")), Money(amount, "RON"))

    def test_fixed_amount_clamped_to_base(self):
        action = PromotionAction.create_order_discount("fixed_amount", 1500).unwrap()
        self.assertEqual(action.calculate(Money(6000, "RON")), Money(1500, "RON"))
        self.assertEqual(action.calculate(Money(900, "RON")), Money(900, "RON"))
        self.assertEqual(action.calculate(Money(0, "RON")), Money(0, "RON"))

    def test_description(self):
        percentage = PromotionAction.create_order_discount("percentage", Decimal("0.2")).unwrap()
        fixed = PromotionAction.create_order_discount("fixed_amount", 1500).unwrap()
        self.assertEqual(percentage.description, "20% off")
        self.assertEqual(fixed.description, "15.00 lei off")

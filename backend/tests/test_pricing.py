import unittest
from dataclasses import dataclass
from decimal import Decimal

from pos_engine.services.pricing_service import (
    DISCOUNT_FIXED,
    DISCOUNT_PERCENTAGE,
    Discount,
    apply_discount,
    compute_totals,
    discount_amount_cents,
    line_total_cents,
)
from pos_engine.validation import ValidationFailure


@dataclass
class Line:
    unit_price_cents: int
    quantity: Decimal


class PricingTests(unittest.TestCase):
    def test_totals_at_eight_percent(self):
        totals = compute_totals([Line(99900, Decimal("1"))], 800)
        self.assertEqual(totals.subtotal_cents, 99900)
        self.assertEqual(totals.tax_cents, 7992)
        self.assertEqual(totals.total_cents, 107892)

    def test_ten_percent_discount_rounds_half_up(self):
        discount = Discount(DISCOUNT_PERCENTAGE, Decimal("10"))
        # 107892 * 0.9 = 97102.8
        self.assertEqual(apply_discount(107892, discount), 97103)
        self.assertEqual(discount_amount_cents(107892, discount), 10789)

    def test_subtotal_is_sum_of_line_snapshots(self):
        lines = [Line(250, Decimal("3")), Line(399, Decimal("1.250")), Line(100, Decimal("2"))]
        totals = compute_totals(lines, 1000)
        # 750 + 498.75 -> 499 + 200
        self.assertEqual(totals.subtotal_cents, 1449)
        self.assertEqual(totals.tax_cents, 145)
        self.assertEqual(totals.total_cents, totals.subtotal_cents + totals.tax_cents)

    def test_weighted_line_rounds_per_line(self):
        self.assertEqual(line_total_cents(333, Decimal("0.500")), 167)

    def test_zero_tax_rate(self):
        totals = compute_totals([Line(1000, Decimal("2"))], 0)
        self.assertEqual(totals.tax_cents, 0)
        self.assertEqual(totals.total_cents, 2000)

    def test_empty_lines(self):
        totals = compute_totals([], 800)
        self.assertEqual((totals.subtotal_cents, totals.tax_cents, totals.total_cents), (0, 0, 0))

    def test_discount_never_goes_below_zero(self):
        self.assertEqual(apply_discount(1000, Discount(DISCOUNT_PERCENTAGE, Decimal("150"))), 0)
        self.assertEqual(apply_discount(1000, Discount(DISCOUNT_FIXED, Decimal("2500"))), 0)

    def test_fixed_discount_in_cents(self):
        self.assertEqual(apply_discount(1000, Discount(DISCOUNT_FIXED, Decimal("250"))), 750)

    def test_no_discount(self):
        self.assertEqual(apply_discount(1234, None), 1234)

    def test_negative_discount_rejected(self):
        with self.assertRaises(ValidationFailure):
            Discount(DISCOUNT_FIXED, Decimal("-1"))

    def test_unknown_discount_type_rejected(self):
        with self.assertRaises(ValidationFailure):
            Discount("bogus", Decimal("1"))

    def test_discount_from_dict(self):
        discount = Discount.from_dict({"type": "percentage", "value": "12.5", "reason": "Loyalty"})
        self.assertEqual(discount.value, Decimal("12.5"))
        self.assertEqual(discount.reason, "Loyalty")
        self.assertIsNone(Discount.from_dict(None))

    def test_discount_value_kept_to_three_places(self):
        discount = Discount(DISCOUNT_PERCENTAGE, "33.3333")
        self.assertEqual(discount.value, Decimal("33.333"))
        self.assertEqual(Discount(DISCOUNT_FIXED, "0.0005").value, Decimal("0.001"))

    def test_discount_value_must_be_plain_number(self):
        for value in ("ten", "1e2", "NaN", None):
            with self.subTest(value=value):
                with self.assertRaises(ValidationFailure):
                    Discount(DISCOUNT_FIXED, value)

    def test_discount_from_non_object_rejected(self):
        for data in ("10", ["percentage", 10], 5):
            with self.subTest(data=data):
                with self.assertRaises(ValidationFailure):
                    Discount.from_dict(data)


if __name__ == "__main__":
    unittest.main()

"""
Tests for two-decimal money arithmetic.

Every amount is a Decimal with exactly two fraction digits, rounded
ROUND_HALF_UP, and add/sub/mul round their operands before and their
result after the operation.
"""

from decimal import Decimal

import pytest

from invoice_kernel.domain import money


class TestScale:
    """Rounding to two places."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1.005", "1.01"),
            ("-1.005", "-1.01"),
            ("1.004", "1.00"),
            ("2.675", "2.68"),
            ("0", "0.00"),
            ("100", "100.00"),
        ],
    )
    def test_half_up_away_from_zero(self, raw, expected):
        assert money.scale(Decimal(raw)) == Decimal(expected)

    def test_result_always_has_two_places(self):
        for raw in ("3", "3.1", "3.14159", 7):
            assert money.scale(raw).as_tuple().exponent == -2

    def test_float_goes_through_str(self):
        """1.005 as a binary float is 1.00499...; str() keeps the intent."""
        assert money.scale(1.005) == Decimal("1.01")
        assert money.scale(-1.005) == Decimal("-1.01")


class TestNormalization:
    """Missing or invalid input is treated as zero."""

    def test_none_is_zero(self):
        assert money.scale(None) == Decimal("0.00")

    @pytest.mark.parametrize("raw", ["abc", "", "NaN", "Infinity", Decimal("NaN"), True])
    def test_invalid_input_is_zero(self, raw):
        assert money.scale(raw) == Decimal("0.00")

    def test_invalid_input_logged(self, captured_logs):
        money.scale("not-a-number")

        records = [r for r in captured_logs() if r["message"] == "money_input_normalized"]
        assert len(records) == 1
        assert records[0]["level"] == "WARNING"
        assert records[0]["raw_value"] == "'not-a-number'"

    def test_none_not_logged(self, captured_logs):
        money.scale(None)
        assert not [r for r in captured_logs() if r["message"] == "money_input_normalized"]

    def test_absent_operands_are_zero(self):
        assert money.add(None, "5.00") == Decimal("5.00")
        assert money.sub("5.00", None) == Decimal("5.00")
        assert money.mul(None, "5.00") == Decimal("0.00")


class TestRoundEveryStep:
    """Operands are rounded before the operation, not only the result."""

    def test_add_rounds_operands_first(self):
        # 0.005 + 0.005 is 0.01 exactly, but each operand rounds to 0.01 first
        assert money.add("0.005", "0.005") == Decimal("0.02")

    def test_sub_rounds_operands_first(self):
        assert money.sub("1.005", "0.004") == Decimal("1.01")

    def test_mul_rounds_operands_first(self):
        # 2.555 * 2 would be 5.11; the quantity is rounded to 2.56 first
        assert money.mul("2.555", "2") == Decimal("5.12")

    def test_mul_rounds_product(self):
        assert money.mul("3", "19.99") == Decimal("59.97")
        assert money.mul("0.33", "0.33") == Decimal("0.11")

    def test_mul_rounds_tax_fraction(self):
        """A tax fraction is rounded to two places before it multiplies."""
        assert money.mul("100.00", money.percent("8.25")) == Decimal("8.00")
        assert money.mul("100.00", money.percent("10.5")) == Decimal("11.00")

    def test_large_values_keep_every_digit(self):
        big = "123456789012345678901234567890.12"
        assert money.add(big, "0.01") == Decimal("123456789012345678901234567890.13")

    def test_magnitude_beyond_a_hundred_digits(self):
        huge = Decimal("1E+120")

        assert money.scale(huge) == huge
        assert money.scale(huge).as_tuple().exponent == -2
        assert money.add(huge, "0.005") == Decimal("1" + "0" * 120 + ".01")
        assert money.mul(huge, "2.5") == Decimal("2.5E+120")
        assert money.sub(huge, huge) == Decimal("0.00")


class TestHelpers:

    def test_quantum_follows_decimal_places(self):
        assert money.MONEY_QUANTUM == Decimal("0.01")
        assert money.ZERO.as_tuple().exponent == -money.MONEY_DECIMAL_PLACES

    def test_percent_is_unrounded_fraction(self):
        assert money.percent("10") == Decimal("0.10")
        assert money.percent("8.25") == Decimal("0.0825")
        assert money.percent(None) == Decimal("0")

    def test_total_of_folds_add(self):
        assert money.total_of(["0.005", "0.005", "1"]) == Decimal("1.02")
        assert money.total_of([]) == Decimal("0.00")

    def test_is_zero(self):
        assert money.is_zero("0.004")
        assert not money.is_zero("0.005")

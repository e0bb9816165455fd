"""
Tests for the shared money helpers.

Covers:
- Parsing user input into Decimal
- Half-away-from-zero rounding to 2 places
- Two-decimal rendering, with and without a currency code
- Clamping and tolerance comparison
"""

from decimal import Decimal

import pytest

from purchasing_kernel.domain.money import (
    ZERO,
    clamp,
    format2,
    format_amount,
    round2,
    to_decimal,
    within_tolerance,
)


class TestToDecimal:
    """Boundary parsing of amounts typed by users."""

    def test_parses_numeric_string(self):
        assert to_decimal(" 12.50 ") == Decimal("12.50")

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", True, "NaN", "Infinity"])
    def test_unparseable_is_none(self, raw):
        assert to_decimal(raw) is None


class TestRound2:
    """Rounding rule shared by computation and display."""

    def test_half_rounds_up(self):
        assert round2("2.675") == Decimal("2.68")

    def test_negative_half_rounds_away_from_zero(self):
        assert round2("-2.675") == Decimal("-2.68")

    def test_always_two_places(self):
        assert str(round2(5)) == "5.00"

    def test_negative_zero_is_normalized(self):
        assert str(round2("-0.001")) == "0.00"

    def test_invalid_raises(self):
        with pytest.raises(ValueError):
            round2("twelve")


class TestFormatting:

    def test_format2(self):
        assert format2(Decimal("3.1")) == "3.10"

    def test_format2_none(self):
        assert format2(None) == "0.00"

    def test_format2_garbage(self):
        assert format2("n/a") == "0.00"

    def test_format_amount_with_currency(self):
        assert format_amount(Decimal("12.5"), "EGP") == "12.50 EGP"

    def test_format_amount_without_currency(self):
        assert format_amount("7") == "7.00"


class TestClampAndTolerance:

    def test_clamp_low(self):
        assert clamp(Decimal("-1"), ZERO, Decimal("10")) == ZERO

    def test_clamp_high(self):
        assert clamp(Decimal("11"), ZERO, Decimal("10")) == Decimal("10")

    def test_clamp_inside(self):
        assert clamp(Decimal("4"), ZERO, Decimal("10")) == Decimal("4")

    def test_within_default_tolerance(self):
        assert within_tolerance(Decimal("10.00"), Decimal("10.01"))

    def test_outside_default_tolerance(self):
        assert not within_tolerance(Decimal("10.00"), Decimal("10.02"))

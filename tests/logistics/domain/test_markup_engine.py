"""Tests for price computation under each markup rule."""

from decimal import Decimal

import pytest
from logistics.account.account import Markup, MarkupType
from logistics.account.pricing import compute_price, surcharge_label, validate_quoted_price
from logistics.shared.errors import InvalidInputError


def _markup(markup_type, percentage=0.0, flat=0.0):
    return Markup(markup_type=markup_type.value, percentage_value=percentage, flat_value=flat)


class TestComputePrice:
    def test_percentage(self):
        assert compute_price(100, _markup(MarkupType.PERCENTAGE, 15)) == Decimal("115.000")

    def test_flat(self):
        assert compute_price(100, _markup(MarkupType.FLAT, flat=5)) == Decimal("105.000")

    def test_combined(self):
        assert compute_price(100, _markup(MarkupType.COMBINED, 10, 2)) == Decimal("112.000")

    def test_percentage_ignores_flat_value(self):
        assert compute_price(100, _markup(MarkupType.PERCENTAGE, 15, 7)) == Decimal("115.000")

    def test_flat_ignores_percentage_value(self):
        assert compute_price(100, _markup(MarkupType.FLAT, 50, 5)) == Decimal("105.000")

    def test_rounds_half_up_to_three_places(self):
        # 3.3335 * 1.0 -> 3.334
        assert compute_price("3.3335", _markup(MarkupType.PERCENTAGE, 0)) == Decimal("3.334")

    def test_zero_cost(self):
        assert compute_price(0, _markup(MarkupType.FLAT, flat=2)) == Decimal("2.000")

    def test_negative_cost_rejected(self):
        with pytest.raises(InvalidInputError):
            compute_price(-1, _markup(MarkupType.PERCENTAGE, 15))


class TestSurchargeLabel:
    def test_percentage_label(self):
        assert surcharge_label(_markup(MarkupType.PERCENTAGE, 15)) == "15%"

    def test_flat_label(self):
        assert surcharge_label(_markup(MarkupType.FLAT, flat=2)) == "2.000 Flat"

    def test_combined_label(self):
        assert surcharge_label(_markup(MarkupType.COMBINED, 10, 2)) == "10% + 2.000"


class TestQuotedPriceTolerance:
    def test_exact_match(self):
        assert validate_quoted_price(115, 115)

    def test_within_tolerance(self):
        assert validate_quoted_price(115.5, 115, tolerance_percent=0.5)

    def test_outside_tolerance(self):
        assert not validate_quoted_price(110, 115, tolerance_percent=0.5)

    def test_zero_server_price(self):
        assert validate_quoted_price(0, 0)
        assert not validate_quoted_price(1, 0)

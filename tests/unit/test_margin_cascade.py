"""
Unit tests for the margin cascade.

Verifies:
- Full rate is the base cost grossed up by the professional-costs weight
- Disabled components are subtracted at their euro value
- All-on gives the full rate, all-off gives zero
- Invalid base costs and unknown components are rejected
"""

from decimal import Decimal

import pytest

from hours_kernel.exceptions import (
    InvalidHourlyCostError,
    InvalidMinutesError,
    UnknownMarginComponentError,
)
from hours_modules.margin.cascade import compute_full_rate, compute_margin, resolve_toggles


@pytest.fixture
def margin(settings):
    return settings.margin


class TestFullRate:
    def test_base_twenty_gives_full_hundred(self, margin):
        assert compute_full_rate(Decimal("20"), margin) == Decimal("100")

    def test_non_round_base(self, margin):
        assert compute_full_rate(Decimal("33"), margin) == Decimal("165")

    @pytest.mark.parametrize("base", [Decimal("0"), Decimal("-5")])
    def test_non_positive_base_rejected(self, margin, base):
        with pytest.raises(InvalidHourlyCostError):
            compute_full_rate(base, margin)


class TestCascade:
    def test_all_on_final_equals_full(self, margin):
        quote = compute_margin(Decimal("20"), None, margin)
        assert quote.full_rate == Decimal("100")
        assert quote.final_rate == Decimal("100")
        assert quote.disabled_total == Decimal("0")

    def test_commercial_off_gives_92(self, margin):
        quote = compute_margin(Decimal("20"), {"commercial": False}, margin)
        assert quote.final_rate == Decimal("92")

    def test_all_off_gives_zero(self, margin):
        toggles = {name: False for name in margin.component_names}
        quote = compute_margin(Decimal("20"), toggles, margin)
        assert quote.final_rate == Decimal("0")

    def test_breakdown_lists_every_component(self, margin):
        quote = compute_margin(Decimal("20"), {"holding_profit": False}, margin)
        by_name = {c.name: c for c in quote.components}
        assert set(by_name) == set(margin.component_names)
        assert by_name["company_cost"].euro_value == Decimal("25")
        assert by_name["holding_profit"].active is False
        assert by_name["holding_profit"].euro_value == Decimal("12.5")
        assert quote.final_rate == Decimal("87.5")

    def test_preview_total_cost(self, margin):
        quote = compute_margin(Decimal("20"), {"commercial": False}, margin, minutes=90)
        assert quote.total_cost == Decimal("138.00")

    def test_no_minutes_no_total(self, margin):
        assert compute_margin(Decimal("20"), None, margin).total_cost is None

    def test_negative_minutes_rejected(self, margin):
        with pytest.raises(InvalidMinutesError):
            compute_margin(Decimal("20"), None, margin, minutes=-1)


class TestToggles:
    def test_missing_toggles_default_on(self, margin):
        resolved = resolve_toggles({"commercial": False}, margin)
        assert resolved["commercial"] is False
        assert all(v for k, v in resolved.items() if k != "commercial")

    def test_unknown_component_rejected(self, margin):
        with pytest.raises(UnknownMarginComponentError) as exc_info:
            resolve_toggles({"free_lunch": False}, margin)
        assert exc_info.value.component == "free_lunch"

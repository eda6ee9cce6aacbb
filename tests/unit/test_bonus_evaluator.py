"""
Unit tests for the bonus/penalty evaluator.
"""

from decimal import Decimal

import pytest

from hours_modules.bonus.evaluator import classify_variance, evaluate
from hours_modules.bonus.models import BonusClassification


@pytest.fixture
def run(settings):
    def _run(estimated, actual, base="20", final_rate=None):
        return evaluate(
            estimated_minutes=estimated,
            actual_minutes=actual,
            base_cost=Decimal(base),
            project_final_rate=Decimal(final_rate) if final_rate is not None else None,
            bonus=settings.bonus,
            margin=settings.margin,
        )

    return _run


class TestClassification:
    @pytest.mark.parametrize(
        "variance,expected",
        [
            (30, BonusClassification.POSITIVE),
            (0, BonusClassification.ZERO),
            (-1, BonusClassification.NEGATIVE),
        ],
    )
    def test_sign_of_variance(self, variance, expected):
        assert classify_variance(variance) == expected


class TestPositive:
    def test_under_estimate_earns_five_percent(self, run):
        result = run(120, 90)
        assert result.classification == BonusClassification.POSITIVE
        assert result.variance_minutes == 30
        assert result.percentage == Decimal("5.0")
        assert result.full_rate == Decimal("100")
        assert result.amount == Decimal("7.50")

    def test_on_estimate_earns_two_and_a_half_percent(self, run):
        result = run(120, 120)
        assert result.classification == BonusClassification.ZERO
        assert result.amount == Decimal("5.00")

    def test_project_rate_does_not_affect_bonus(self, run):
        assert run(120, 90, final_rate="80").amount == Decimal("7.50")


class TestNegative:
    def test_overrun_priced_at_project_final_rate(self, run):
        result = run(120, 150, final_rate="80")
        assert result.classification == BonusClassification.NEGATIVE
        assert result.variance_minutes == -30
        assert result.percentage == Decimal("0")
        assert result.hourly_rate == Decimal("80")
        assert result.amount == Decimal("-40.00")

    def test_overrun_falls_back_to_base_cost(self, run):
        result = run(60, 90)
        assert result.hourly_rate == Decimal("20")
        assert result.amount == Decimal("-10.00")

    def test_amount_rounds_half_up(self, run):
        # 7 minutes at 20/h = 2.3333...
        assert run(60, 67).amount == Decimal("-2.33")

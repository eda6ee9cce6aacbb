"""
Unit tests for the capacity calculator.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from hours_kernel.domain.dtos import ResourceInfo, TaskInfo
from hours_kernel.exceptions import InvalidPeriodError
from hours_modules.capacity.calculator import (
    build_report,
    classify_utilization,
    effective_annual_hours,
    parse_period,
    period_capacity_hours,
    period_range,
    utilization_percentage,
)
from hours_modules.capacity.models import CapacityPeriod, CapacityStatus


@pytest.fixture
def capacity(settings):
    return settings.capacity


def make_resource(**kwargs):
    return ResourceInfo(id=uuid4(), name="Ada", hourly_cost=Decimal("20"), **kwargs)


class TestAnnualHours:
    def test_default_when_not_manual(self, capacity):
        assert effective_annual_hours(make_resource(), capacity) == Decimal("1920")

    def test_manual_override(self, capacity):
        resource = make_resource(annual_hours=Decimal("1600"), annual_hours_manual=True)
        assert effective_annual_hours(resource, capacity) == Decimal("1600")

    def test_manual_value_ignored_without_flag(self, capacity):
        resource = make_resource(annual_hours=Decimal("1600"))
        assert effective_annual_hours(resource, capacity) == Decimal("1920")

    def test_deductions_reduce_annual_hours(self, capacity):
        resource = make_resource(annual_hours_deducted=Decimal("0.5"))
        assert effective_annual_hours(resource, capacity) == Decimal("1919.5")


class TestPeriodCapacity:
    @pytest.mark.parametrize(
        "period,expected",
        [
            (CapacityPeriod.DAY, Decimal("8.00")),
            (CapacityPeriod.WEEK, Decimal("36.92")),
            (CapacityPeriod.MONTH, Decimal("160.00")),
            (CapacityPeriod.QUARTER, Decimal("480.00")),
            (CapacityPeriod.YEAR, Decimal("1920.00")),
        ],
    )
    def test_standard_year(self, capacity, period, expected):
        assert period_capacity_hours(Decimal("1920"), period, capacity) == expected

    def test_unknown_period_rejected(self):
        with pytest.raises(InvalidPeriodError):
            parse_period("fortnight")


class TestPeriodRange:
    def test_week_starts_monday(self):
        window = period_range(CapacityPeriod.WEEK, date(2024, 1, 4))
        assert (window.start, window.end) == (date(2024, 1, 1), date(2024, 1, 8))

    def test_month_in_december_rolls_year(self):
        window = period_range(CapacityPeriod.MONTH, date(2024, 12, 15))
        assert (window.start, window.end) == (date(2024, 12, 1), date(2025, 1, 1))

    def test_quarter(self):
        window = period_range(CapacityPeriod.QUARTER, date(2024, 8, 20))
        assert (window.start, window.end) == (date(2024, 7, 1), date(2024, 10, 1))

    def test_range_is_half_open(self):
        window = period_range(CapacityPeriod.DAY, date(2024, 3, 1))
        assert date(2024, 3, 1) in window
        assert date(2024, 3, 2) not in window


class TestUtilization:
    def test_zero_capacity_is_zero_percent(self):
        assert utilization_percentage(600, Decimal("0")) == Decimal("0")

    @pytest.mark.parametrize(
        "percentage,expected",
        [
            (Decimal("125"), CapacityStatus.OVERLOADED),
            (Decimal("100"), CapacityStatus.OVERLOADED),
            (Decimal("80"), CapacityStatus.NEAR_FULL),
            (Decimal("50"), CapacityStatus.NORMAL),
            (Decimal("20"), CapacityStatus.UNDERUTILIZED),
            (Decimal("0"), CapacityStatus.UNDERUTILIZED),
        ],
    )
    def test_status_thresholds(self, capacity, percentage, expected):
        assert classify_utilization(percentage, capacity) == expected

    def test_two_hundred_hours_in_a_month_is_overloaded(self, capacity):
        resource = make_resource()
        tasks = [
            TaskInfo(
                id=uuid4(),
                activity_id=uuid4(),
                project_id=uuid4(),
                name=f"t{i}",
                estimated_minutes=6000,
                resource_id=resource.id,
                due_date=date(2024, 1, 10 + i),
            )
            for i in range(2)
        ]
        report = build_report(resource, CapacityPeriod.MONTH, date(2024, 1, 15), tasks, capacity)
        assert report.capacity_hours == Decimal("160.00")
        assert report.assigned_minutes == 12000
        assert report.assigned_hours == Decimal("200.00")
        assert report.utilization_percentage == Decimal("125.00")
        assert report.status == CapacityStatus.OVERLOADED
        assert report.available_minutes == 0

"""
Capacity Calculator -- pure functions.

    annual    = manual override (when flagged) or configured default,
                minus hours deducted by remediation
    day       = hours_per_day
    week      = annual / weeks_per_year
    month     = annual / 12
    quarter   = annual / 4
    year      = annual

    utilization = assigned_minutes / (capacity_hours * 60) * 100

Status thresholds come from configuration and are checked from the top:
overloaded, near_full, underutilized, otherwise normal.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal

from hours_config.schema import CapacitySettings
from hours_kernel.domain.dtos import ResourceInfo, TaskInfo
from hours_kernel.domain.values import (
    MINUTES_PER_HOUR,
    quantize_amount,
    quantize_percentage,
    ratio_percentage,
)
from hours_kernel.exceptions import InvalidPeriodError
from hours_modules.capacity.models import (
    CapacityPeriod,
    CapacityReport,
    CapacityStatus,
    PeriodRange,
)


def parse_period(value: CapacityPeriod | str) -> CapacityPeriod:
    try:
        return CapacityPeriod(value)
    except ValueError as exc:
        raise InvalidPeriodError(value) from exc


def effective_annual_hours(resource: ResourceInfo, settings: CapacitySettings) -> Decimal:
    if resource.annual_hours_manual and resource.annual_hours is not None:
        annual = Decimal(resource.annual_hours)
    else:
        annual = settings.default_annual_hours
    remaining = annual - Decimal(resource.annual_hours_deducted or 0)
    return max(remaining, Decimal("0"))


def period_capacity_hours(
    annual_hours: Decimal, period: CapacityPeriod, settings: CapacitySettings
) -> Decimal:
    divisors = {
        CapacityPeriod.WEEK: Decimal(settings.weeks_per_year),
        CapacityPeriod.MONTH: Decimal("12"),
        CapacityPeriod.QUARTER: Decimal("4"),
        CapacityPeriod.YEAR: Decimal("1"),
    }
    if period is CapacityPeriod.DAY:
        return quantize_amount(settings.hours_per_day)
    return quantize_amount(annual_hours / divisors[period])


def period_range(period: CapacityPeriod, as_of: date) -> PeriodRange:
    """The calendar period containing ``as_of``; weeks start on Monday."""
    if period is CapacityPeriod.DAY:
        return PeriodRange(as_of, as_of + timedelta(days=1))
    if period is CapacityPeriod.WEEK:
        start = as_of - timedelta(days=as_of.weekday())
        return PeriodRange(start, start + timedelta(days=7))
    if period is CapacityPeriod.MONTH:
        start = as_of.replace(day=1)
        return PeriodRange(start, _add_months(start, 1))
    if period is CapacityPeriod.QUARTER:
        start = as_of.replace(month=3 * ((as_of.month - 1) // 3) + 1, day=1)
        return PeriodRange(start, _add_months(start, 3))
    start = as_of.replace(month=1, day=1)
    return PeriodRange(start, start.replace(year=start.year + 1))


def _add_months(first_of_month: date, months: int) -> date:
    index = first_of_month.month - 1 + months
    return first_of_month.replace(
        year=first_of_month.year + index // 12, month=index % 12 + 1
    )


def utilization_percentage(assigned_minutes: int, capacity_hours: Decimal) -> Decimal:
    return quantize_percentage(
        ratio_percentage(Decimal(assigned_minutes), capacity_hours * MINUTES_PER_HOUR)
    )


def classify_utilization(percentage: Decimal, settings: CapacitySettings) -> CapacityStatus:
    if percentage >= settings.overloaded_percentage:
        return CapacityStatus.OVERLOADED
    if percentage >= settings.near_full_percentage:
        return CapacityStatus.NEAR_FULL
    if percentage <= settings.underutilized_percentage:
        return CapacityStatus.UNDERUTILIZED
    return CapacityStatus.NORMAL


def build_report(
    resource: ResourceInfo,
    period: CapacityPeriod,
    as_of: date,
    tasks: Iterable[TaskInfo],
    settings: CapacitySettings,
) -> CapacityReport:
    """Capacity and utilization of one resource over the period containing ``as_of``."""
    window = period_range(period, as_of)
    in_window = [
        t for t in tasks
        if t.resource_id == resource.id and t.due_date is not None and t.due_date in window
    ]
    annual = effective_annual_hours(resource, settings)
    capacity = period_capacity_hours(annual, period, settings)
    assigned = sum(t.estimated_minutes for t in in_window)
    percentage = utilization_percentage(assigned, capacity)

    return CapacityReport(
        resource_id=resource.id,
        period=period,
        window=window,
        annual_hours=annual,
        capacity_hours=capacity,
        assigned_minutes=assigned,
        task_count=len(in_window),
        utilization_percentage=percentage,
        status=classify_utilization(percentage, settings),
    )

"""Resource capacity and utilization over calendar periods."""

from hours_modules.capacity.calculator import (
    build_report,
    classify_utilization,
    effective_annual_hours,
    parse_period,
    period_capacity_hours,
    period_range,
    utilization_percentage,
)
from hours_modules.capacity.models import (
    CapacityPeriod,
    CapacityReport,
    CapacityStatus,
    PeriodRange,
)

__all__ = [
    "CapacityPeriod",
    "CapacityReport",
    "CapacityStatus",
    "PeriodRange",
    "build_report",
    "classify_utilization",
    "effective_annual_hours",
    "parse_period",
    "period_capacity_hours",
    "period_range",
    "utilization_percentage",
]

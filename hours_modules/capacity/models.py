"""
Capacity Domain Models.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from hours_kernel.domain.values import MINUTES_PER_HOUR, minutes_to_hours, quantize_amount


class CapacityPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class CapacityStatus(str, Enum):
    OVERLOADED = "overloaded"
    NEAR_FULL = "near_full"
    NORMAL = "normal"
    UNDERUTILIZED = "underutilized"


@dataclass(frozen=True)
class PeriodRange:
    """Half-open date range [start, end)."""

    start: date
    end: date

    def __contains__(self, day: date) -> bool:
        return self.start <= day < self.end


@dataclass(frozen=True)
class CapacityReport:
    resource_id: UUID
    period: CapacityPeriod
    window: PeriodRange
    annual_hours: Decimal
    capacity_hours: Decimal
    assigned_minutes: int
    task_count: int
    utilization_percentage: Decimal
    status: CapacityStatus

    @property
    def capacity_minutes(self) -> int:
        return int(self.capacity_hours * MINUTES_PER_HOUR)

    @property
    def assigned_hours(self) -> Decimal:
        return quantize_amount(minutes_to_hours(self.assigned_minutes))

    @property
    def available_minutes(self) -> int:
        """Capacity left in the period; zero once the resource is overloaded."""
        return max(self.capacity_minutes - self.assigned_minutes, 0)

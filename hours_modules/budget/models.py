"""
Budget Overview Read Models.

Everything here is computed on read from completed tasks, margin records,
bonus records and resource settings.  Nothing is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from hours_modules.bonus.models import BonusStatus
from hours_modules.capacity.models import CapacityPeriod, CapacityReport


class BudgetStatus(str, Enum):
    WITHIN_BUDGET = "within_budget"
    NEAR_BUDGET = "near_budget"
    OVER_BUDGET = "over_budget"


@dataclass(frozen=True)
class BudgetFilter:
    """
    Scope of an overview.  Completion dates are inclusive; ``period`` and
    ``as_of`` select the capacity window reported per resource.
    """

    client_id: UUID | None = None
    project_id: UUID | None = None
    resource_id: UUID | None = None
    completed_from: date | None = None
    completed_to: date | None = None
    period: CapacityPeriod = CapacityPeriod.MONTH
    as_of: date | None = None


@dataclass(frozen=True)
class PerformanceCounts:
    positive: int = 0
    zero: int = 0
    negative: int = 0

    @property
    def total(self) -> int:
        return self.positive + self.zero + self.negative


@dataclass(frozen=True)
class BonusStateTotal:
    status: BonusStatus
    count: int
    amount: Decimal


@dataclass(frozen=True)
class BudgetLine:
    """Budget consumption of one client or project."""

    entity_id: UUID
    name: str
    budget: Decimal
    consumed: Decimal
    consumed_percentage: Decimal
    status: BudgetStatus
    task_count: int

    @property
    def remaining(self) -> Decimal:
        return self.budget - self.consumed


@dataclass(frozen=True)
class ResourceLine:
    resource_id: UUID
    name: str
    task_count: int
    actual_minutes: int
    consumed: Decimal
    capacity: CapacityReport


@dataclass(frozen=True)
class BudgetOverview:
    filters: BudgetFilter
    performance: PerformanceCounts
    estimated_minutes: int
    actual_minutes: int
    total_consumed: Decimal
    bonus_totals: tuple[BonusStateTotal, ...] = field(default_factory=tuple)
    clients: tuple[BudgetLine, ...] = field(default_factory=tuple)
    projects: tuple[BudgetLine, ...] = field(default_factory=tuple)
    resources: tuple[ResourceLine, ...] = field(default_factory=tuple)

    @property
    def task_count(self) -> int:
        return self.performance.total

    @property
    def variance_minutes(self) -> int:
        return self.estimated_minutes - self.actual_minutes

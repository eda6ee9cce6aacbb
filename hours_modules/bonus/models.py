"""
Bonus/Penalty Domain Models.

Classification, lifecycle states, remediation choices, and the frozen DTOs
for computed adjustments, persisted records, filters and totals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class BonusClassification(str, Enum):
    """Sign of the variance (estimated - actual)."""

    POSITIVE = "positive"
    ZERO = "zero"
    NEGATIVE = "negative"


class BonusStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


BONUS_TRANSITIONS: dict[BonusStatus, frozenset[BonusStatus]] = {
    BonusStatus.PENDING: frozenset({BonusStatus.APPROVED, BonusStatus.REJECTED}),
    BonusStatus.APPROVED: frozenset(),
    BonusStatus.REJECTED: frozenset(),
}

TERMINAL_BONUS_STATUSES: frozenset[BonusStatus] = frozenset({
    BonusStatus.APPROVED,
    BonusStatus.REJECTED,
})


class RemediationAction(str, Enum):
    """How a manager settles a negative record."""

    FINANCIAL_PENALTY = "financial_penalty"
    DEDUCT_FUTURE_HOURS = "deduct_future_hours"


class DispositionAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    REMEDIATE = "remediate"


@dataclass(frozen=True)
class BonusComputation:
    """Output of the pure evaluator for one completed task."""

    classification: BonusClassification
    variance_minutes: int
    percentage: Decimal
    full_rate: Decimal
    hourly_rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class BonusRecord:
    """A persisted bonus or penalty for exactly one completed task."""

    id: UUID
    task_id: UUID
    resource_id: UUID
    estimated_minutes: int
    actual_minutes: int
    variance_minutes: int
    classification: BonusClassification
    percentage: Decimal
    full_rate: Decimal
    hourly_rate: Decimal
    amount: Decimal
    status: BonusStatus = BonusStatus.PENDING
    remediation: RemediationAction | None = None
    manager_id: UUID | None = None
    decided_at: datetime | None = None
    comment: str | None = None
    evaluated_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == BonusStatus.PENDING


@dataclass(frozen=True)
class BonusFilter:
    """Filters for listing records; date bounds apply to evaluation date, inclusive."""

    resource_id: UUID | None = None
    status: BonusStatus | None = None
    classification: BonusClassification | None = None
    evaluated_from: date | None = None
    evaluated_to: date | None = None


@dataclass(frozen=True)
class ResourceBonusTotals:
    resource_id: UUID
    positive_count: int = 0
    zero_count: int = 0
    negative_count: int = 0
    approved_amount: Decimal = Decimal("0")
    pending_amount: Decimal = Decimal("0")
    rejected_amount: Decimal = Decimal("0")
    approved_bonus_amount: Decimal = Decimal("0")
    approved_penalty_amount: Decimal = Decimal("0")

    @property
    def total_count(self) -> int:
        return self.positive_count + self.zero_count + self.negative_count

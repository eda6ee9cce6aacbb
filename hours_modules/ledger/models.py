"""
Hour Ledger Domain Models.

Redistribution records, the destination variants a redistribution may
target, the derived credit and debit positions, and the read models used
by ``LedgerSelector``.  Credits and debits are never stored; they are
folded from completed tasks and active redistributions on every read.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from hours_kernel.domain.values import minutes_to_hours, quantize_amount
from hours_kernel.exceptions import InvalidDestinationError


class RedistributionStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


REDISTRIBUTION_TRANSITIONS: dict[RedistributionStatus, frozenset[RedistributionStatus]] = {
    RedistributionStatus.ACTIVE: frozenset({RedistributionStatus.CANCELLED}),
    RedistributionStatus.CANCELLED: frozenset(),
}


class DestinationKind(str, Enum):
    EXISTING_TASK = "existing_task"
    NEW_TASK = "new_task"


# =============================================================================
# Destinations
# =============================================================================


@dataclass(frozen=True)
class ExistingTaskDestination:
    """Grant minutes to a task that already exists."""

    task_id: UUID

    @property
    def kind(self) -> DestinationKind:
        return DestinationKind.EXISTING_TASK


@dataclass(frozen=True)
class NewTaskDestination:
    """
    Grant minutes to a task created for the purpose.

    Without ``activity_id`` the task lands in the project's holding bucket
    activity, which is created on first use.
    """

    project_id: UUID
    task_name: str
    activity_id: UUID | None = None

    @property
    def kind(self) -> DestinationKind:
        return DestinationKind.NEW_TASK


Destination = ExistingTaskDestination | NewTaskDestination


def resolve_destination(value: Destination | Mapping[str, Any]) -> Destination:
    """
    Normalize a destination given as a variant or a raw mapping.

    Mappings are read as an existing-task destination when they carry
    ``task_id`` and as a new-task destination when they carry
    ``project_id`` and ``task_name`` (or ``name``).
    """
    if isinstance(value, (ExistingTaskDestination, NewTaskDestination)):
        return value
    if not isinstance(value, Mapping):
        raise InvalidDestinationError(f"unsupported destination {value!r}")

    if value.get("task_id") is not None:
        return ExistingTaskDestination(task_id=_as_uuid(value["task_id"], "task_id"))

    project_id = value.get("project_id")
    task_name = value.get("task_name", value.get("name"))
    if project_id is None or not str(task_name or "").strip():
        raise InvalidDestinationError("a new task needs a project and a task name")

    activity_id = value.get("activity_id")
    return NewTaskDestination(
        project_id=_as_uuid(project_id, "project_id"),
        task_name=str(task_name).strip(),
        activity_id=_as_uuid(activity_id, "activity_id") if activity_id is not None else None,
    )


def _as_uuid(raw: Any, field: str) -> UUID:
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw))
    except ValueError as exc:
        raise InvalidDestinationError(f"{field} is not a valid id: {raw!r}") from exc


# =============================================================================
# Records and positions
# =============================================================================


@dataclass(frozen=True)
class RedistributionRecord:
    id: UUID
    source_task_id: UUID
    withdraw_minutes: int
    destination_task_id: UUID
    destination_project_id: UUID
    grant_minutes: int
    destination_kind: DestinationKind
    justification: str
    created_by_id: UUID
    redistributed_at: datetime
    status: RedistributionStatus = RedistributionStatus.ACTIVE
    cancelled_by_id: UUID | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == RedistributionStatus.ACTIVE


@dataclass(frozen=True)
class CreditPosition:
    """Unused minutes of a task that finished under estimate."""

    task_id: UUID
    task_name: str
    project_id: UUID
    resource_id: UUID | None
    variance_minutes: int
    withdrawn_minutes: int

    @property
    def available_minutes(self) -> int:
        return self.variance_minutes - self.withdrawn_minutes

    @property
    def available_hours(self) -> Decimal:
        return quantize_amount(minutes_to_hours(self.available_minutes))


@dataclass(frozen=True)
class DebitPosition:
    """Overrun minutes of a task that finished over estimate."""

    task_id: UUID
    task_name: str
    project_id: UUID
    resource_id: UUID | None
    overrun_minutes: int
    granted_minutes: int

    @property
    def remaining_minutes(self) -> int:
        return self.overrun_minutes - self.granted_minutes


@dataclass(frozen=True)
class ResourceCreditSummary:
    resource_id: UUID | None
    positions: tuple[CreditPosition, ...]

    @property
    def available_minutes(self) -> int:
        return sum(p.available_minutes for p in self.positions)

    @property
    def task_count(self) -> int:
        return len(self.positions)


# =============================================================================
# History and statistics
# =============================================================================


@dataclass(frozen=True)
class RedistributionFilter:
    """
    History filters.  ``resource_id`` and ``project_id`` match either side
    of a redistribution; date bounds are inclusive days.
    """

    status: RedistributionStatus | None = None
    resource_id: UUID | None = None
    project_id: UUID | None = None
    redistributed_from: date | None = None
    redistributed_to: date | None = None
    limit: int | None = None
    offset: int = 0


@dataclass(frozen=True)
class RedistributionEntry:
    record: RedistributionRecord
    source_task_name: str
    source_project_id: UUID
    source_resource_id: UUID | None
    destination_task_name: str
    destination_resource_id: UUID | None
    valuation: Decimal


@dataclass(frozen=True)
class RedistributionPage:
    entries: tuple[RedistributionEntry, ...]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.entries) < self.total


@dataclass(frozen=True)
class LedgerStatistics:
    window_days: int
    active_count: int
    cancelled_count: int
    active_granted_minutes: int
    total_granted_minutes: int
    credit_task_count: int
    credit_minutes: int
    debit_task_count: int
    debit_minutes: int
    compensation_percentage: Decimal

    @property
    def total_count(self) -> int:
        return self.active_count + self.cancelled_count

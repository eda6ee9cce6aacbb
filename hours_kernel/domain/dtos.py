"""
DTOs -- Pure data transfer objects for the entities the hour ledger reads.

Responsibility:
    Immutable snapshots of resources, clients, projects, activities and
    tasks.  Pure engines (margin cascade, bonus evaluator, position fold,
    capacity calculator, budget rollup) accept and return these, never ORM
    entities.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  ``to_dto()`` on the
    ORM models is the only boundary converter, invoked from repositories.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


TASK_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.SCHEDULED: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.COMPLETED}),
    TaskStatus.COMPLETED: frozenset(),
}


@dataclass(frozen=True)
class ResourceInfo:
    """A staff member who performs tasks and carries an hourly cost."""

    id: UUID
    name: str
    hourly_cost: Decimal
    hourly_cost_manual: bool = False
    annual_hours: Decimal | None = None
    annual_hours_manual: bool = False
    annual_hours_deducted: Decimal = Decimal("0")
    email: str | None = None


@dataclass(frozen=True)
class ClientInfo:
    id: UUID
    name: str
    budget: Decimal = Decimal("0")


@dataclass(frozen=True)
class ProjectInfo:
    id: UUID
    client_id: UUID
    name: str
    budget: Decimal = Decimal("0")


@dataclass(frozen=True)
class ActivityInfo:
    id: UUID
    project_id: UUID
    name: str
    is_holding_bucket: bool = False


@dataclass(frozen=True)
class TaskInfo:
    """
    Snapshot of a task.

    ``project_id`` is resolved through the activity when the snapshot is
    taken so that ledger folds never walk relationships.
    """

    id: UUID
    activity_id: UUID
    project_id: UUID
    name: str
    estimated_minutes: int
    resource_id: UUID | None = None
    actual_minutes: int | None = None
    status: TaskStatus = TaskStatus.SCHEDULED
    due_date: date | None = None
    completed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def variance_minutes(self) -> int | None:
        """estimated - actual; None until actual minutes are recorded."""
        if self.actual_minutes is None:
            return None
        return self.estimated_minutes - self.actual_minutes

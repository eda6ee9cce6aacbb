"""
Repository interfaces for the entities the hour ledger reads and writes.

Engines are pure functions over DTOs; services talk to persistence only
through these protocols.  The SQLAlchemy implementations live in
``hours_kernel.db.repositories`` and share the caller's session, which is
the unit of work: nothing is committed by a repository.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from hours_kernel.domain.dtos import (
    ActivityInfo,
    ClientInfo,
    ProjectInfo,
    ResourceInfo,
    TaskInfo,
    TaskStatus,
)


class ResourceRepository(Protocol):
    def get(self, resource_id: UUID) -> ResourceInfo | None: ...

    def get_many(self, resource_ids: Iterable[UUID]) -> dict[UUID, ResourceInfo]: ...

    def deduct_annual_hours(
        self, resource_id: UUID, hours: Decimal, actor_id: UUID
    ) -> ResourceInfo: ...


class ClientRepository(Protocol):
    def get(self, client_id: UUID) -> ClientInfo | None: ...

    def get_many(self, client_ids: Iterable[UUID]) -> dict[UUID, ClientInfo]: ...


class ProjectRepository(Protocol):
    def get(self, project_id: UUID) -> ProjectInfo | None: ...

    def get_many(self, project_ids: Iterable[UUID]) -> dict[UUID, ProjectInfo]: ...


class ActivityRepository(Protocol):
    def get(self, activity_id: UUID) -> ActivityInfo | None: ...

    def find_holding_bucket(self, project_id: UUID, name: str) -> ActivityInfo | None: ...

    def add(
        self,
        project_id: UUID,
        name: str,
        created_by_id: UUID,
        is_holding_bucket: bool = False,
    ) -> ActivityInfo: ...


class TaskRepository(Protocol):
    def get(self, task_id: UUID) -> TaskInfo | None: ...

    def lock(self, task_id: UUID) -> TaskInfo | None: ...

    def get_many(self, task_ids: Iterable[UUID]) -> dict[UUID, TaskInfo]: ...

    def add(
        self,
        activity_id: UUID,
        name: str,
        estimated_minutes: int,
        created_by_id: UUID,
        resource_id: UUID | None = None,
        description: str | None = None,
        due_date: date | None = None,
    ) -> TaskInfo: ...

    def complete(
        self,
        task_id: UUID,
        actual_minutes: int,
        completed_at: datetime,
        actor_id: UUID,
    ) -> TaskInfo: ...

    def list_completed(
        self,
        *,
        task_ids: Sequence[UUID] | None = None,
        client_id: UUID | None = None,
        project_id: UUID | None = None,
        resource_id: UUID | None = None,
        completed_from: date | None = None,
        completed_to: date | None = None,
    ) -> list[TaskInfo]: ...

    def list_due_between(
        self,
        resource_id: UUID,
        start: date,
        end: date,
        statuses: frozenset[TaskStatus],
    ) -> list[TaskInfo]: ...

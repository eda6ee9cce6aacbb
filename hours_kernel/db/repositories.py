"""
SQLAlchemy implementations of the kernel repository protocols.

Every repository wraps the caller's ``Session``.  Repositories add and
flush but never commit; the owning service decides the transaction
boundary.  Reads return frozen DTOs from ``hours_kernel.domain.dtos``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from hours_kernel.domain.dtos import (
    ActivityInfo,
    ClientInfo,
    ProjectInfo,
    ResourceInfo,
    TaskInfo,
    TaskStatus,
)
from hours_kernel.exceptions import ResourceNotFoundError, TaskNotFoundError
from hours_kernel.models.resource import ResourceModel
from hours_kernel.models.work import ActivityModel, ClientModel, ProjectModel, TaskModel


def day_start(value: date) -> datetime:
    """Midnight UTC at the start of ``value``."""
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


class SqlResourceRepository:
    def __init__(self, session: Session):
        self._session = session

    def get(self, resource_id: UUID) -> ResourceInfo | None:
        model = self._session.get(ResourceModel, resource_id)
        return model.to_dto() if model else None

    def get_many(self, resource_ids: Iterable[UUID]) -> dict[UUID, ResourceInfo]:
        ids = list(set(resource_ids))
        if not ids:
            return {}
        rows = self._session.execute(
            select(ResourceModel).where(ResourceModel.id.in_(ids))
        ).scalars()
        return {m.id: m.to_dto() for m in rows}

    def deduct_annual_hours(
        self, resource_id: UUID, hours: Decimal, actor_id: UUID
    ) -> ResourceInfo:
        model = self._session.execute(
            select(ResourceModel)
            .where(ResourceModel.id == resource_id)
            .with_for_update()
        ).scalar_one_or_none()
        if model is None:
            raise ResourceNotFoundError(str(resource_id))
        model.annual_hours_deducted = (model.annual_hours_deducted or Decimal("0")) + hours
        model.updated_by_id = actor_id
        self._session.flush()
        return model.to_dto()


class SqlClientRepository:
    def __init__(self, session: Session):
        self._session = session

    def get(self, client_id: UUID) -> ClientInfo | None:
        model = self._session.get(ClientModel, client_id)
        return model.to_dto() if model else None

    def get_many(self, client_ids: Iterable[UUID]) -> dict[UUID, ClientInfo]:
        ids = list(set(client_ids))
        if not ids:
            return {}
        rows = self._session.execute(
            select(ClientModel).where(ClientModel.id.in_(ids))
        ).scalars()
        return {m.id: m.to_dto() for m in rows}


class SqlProjectRepository:
    def __init__(self, session: Session):
        self._session = session

    def get(self, project_id: UUID) -> ProjectInfo | None:
        model = self._session.get(ProjectModel, project_id)
        return model.to_dto() if model else None

    def get_many(self, project_ids: Iterable[UUID]) -> dict[UUID, ProjectInfo]:
        ids = list(set(project_ids))
        if not ids:
            return {}
        rows = self._session.execute(
            select(ProjectModel).where(ProjectModel.id.in_(ids))
        ).scalars()
        return {m.id: m.to_dto() for m in rows}


class SqlActivityRepository:
    def __init__(self, session: Session):
        self._session = session

    def get(self, activity_id: UUID) -> ActivityInfo | None:
        model = self._session.get(ActivityModel, activity_id)
        return model.to_dto() if model else None

    def find_holding_bucket(self, project_id: UUID, name: str) -> ActivityInfo | None:
        model = self._session.execute(
            select(ActivityModel)
            .where(ActivityModel.project_id == project_id)
            .where(ActivityModel.name == name)
            .order_by(ActivityModel.created_at)
            .limit(1)
        ).scalar_one_or_none()
        return model.to_dto() if model else None

    def add(
        self,
        project_id: UUID,
        name: str,
        created_by_id: UUID,
        is_holding_bucket: bool = False,
    ) -> ActivityInfo:
        model = ActivityModel(
            project_id=project_id,
            name=name,
            is_holding_bucket=is_holding_bucket,
            created_by_id=created_by_id,
        )
        self._session.add(model)
        self._session.flush()
        return model.to_dto()


class SqlTaskRepository:
    """
    Tasks joined to their activity so every snapshot carries its project.
    """

    def __init__(self, session: Session):
        self._session = session

    def _base_query(self):
        return select(TaskModel, ActivityModel.project_id).join(
            ActivityModel, TaskModel.activity_id == ActivityModel.id
        )

    def get(self, task_id: UUID) -> TaskInfo | None:
        row = self._session.execute(
            self._base_query().where(TaskModel.id == task_id)
        ).one_or_none()
        return row[0].to_dto(row[1]) if row else None

    def lock(self, task_id: UUID) -> TaskInfo | None:
        """Read the task holding a row lock until the transaction ends."""
        row = self._session.execute(
            self._base_query()
            .where(TaskModel.id == task_id)
            .with_for_update(of=TaskModel)
            .execution_options(populate_existing=True)
        ).one_or_none()
        return row[0].to_dto(row[1]) if row else None

    def get_many(self, task_ids: Iterable[UUID]) -> dict[UUID, TaskInfo]:
        ids = list(set(task_ids))
        if not ids:
            return {}
        rows = self._session.execute(
            self._base_query().where(TaskModel.id.in_(ids))
        ).all()
        return {task.id: task.to_dto(project_id) for task, project_id in rows}

    def add(
        self,
        activity_id: UUID,
        name: str,
        estimated_minutes: int,
        created_by_id: UUID,
        resource_id: UUID | None = None,
        description: str | None = None,
        due_date: date | None = None,
    ) -> TaskInfo:
        model = TaskModel(
            activity_id=activity_id,
            name=name,
            estimated_minutes=estimated_minutes,
            resource_id=resource_id,
            description=description,
            due_date=due_date,
            status=TaskStatus.SCHEDULED.value,
            created_by_id=created_by_id,
        )
        self._session.add(model)
        self._session.flush()
        return self.get(model.id)

    def complete(
        self,
        task_id: UUID,
        actual_minutes: int,
        completed_at: datetime,
        actor_id: UUID,
    ) -> TaskInfo:
        model = self._session.get(TaskModel, task_id)
        if model is None:
            raise TaskNotFoundError(str(task_id))
        model.actual_minutes = actual_minutes
        model.status = TaskStatus.COMPLETED.value
        model.completed_at = completed_at
        model.updated_by_id = actor_id
        self._session.flush()
        return self.get(task_id)

    def list_completed(
        self,
        *,
        task_ids: Sequence[UUID] | None = None,
        client_id: UUID | None = None,
        project_id: UUID | None = None,
        resource_id: UUID | None = None,
        completed_from: date | None = None,
        completed_to: date | None = None,
    ) -> list[TaskInfo]:
        """Completed tasks with actual minutes, filtered; date bounds inclusive."""
        stmt = (
            self._base_query()
            .where(TaskModel.status == TaskStatus.COMPLETED.value)
            .where(TaskModel.actual_minutes.is_not(None))
        )
        if task_ids is not None:
            stmt = stmt.where(TaskModel.id.in_(list(task_ids)))
        if project_id is not None:
            stmt = stmt.where(ActivityModel.project_id == project_id)
        if client_id is not None:
            stmt = stmt.join(ProjectModel, ActivityModel.project_id == ProjectModel.id).where(
                ProjectModel.client_id == client_id
            )
        if resource_id is not None:
            stmt = stmt.where(TaskModel.resource_id == resource_id)
        if completed_from is not None:
            stmt = stmt.where(TaskModel.completed_at >= day_start(completed_from))
        if completed_to is not None:
            stmt = stmt.where(
                TaskModel.completed_at < day_start(completed_to + timedelta(days=1))
            )
        rows = self._session.execute(stmt.order_by(TaskModel.completed_at)).all()
        return [task.to_dto(pid) for task, pid in rows]

    def list_due_between(
        self,
        resource_id: UUID,
        start: date,
        end: date,
        statuses: frozenset[TaskStatus],
    ) -> list[TaskInfo]:
        """Tasks of the resource with due date in [start, end)."""
        rows = self._session.execute(
            self._base_query()
            .where(TaskModel.resource_id == resource_id)
            .where(TaskModel.due_date >= start)
            .where(TaskModel.due_date < end)
            .where(TaskModel.status.in_([s.value for s in statuses]))
        ).all()
        return [task.to_dto(pid) for task, pid in rows]

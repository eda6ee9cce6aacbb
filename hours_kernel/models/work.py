"""
Module: hours_kernel.models.work
Responsibility: ORM persistence for the work hierarchy the ledger reads:
    Client -> Project -> Activity -> Task.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Task.actual_minutes is immutable once set (ORM listener in
      db/immutability.py).  Variance is therefore fixed from completion on.
    - Budgets are Decimal, never float.

Audit relevance:
    Task completion is the external event that starts the bonus and ledger
    flow; it is recorded in the audit chain by WorkService.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hours_kernel.db.base import TrackedBase, UUIDString


class ClientModel(TrackedBase):
    __tablename__ = "clients"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    budget: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    def to_dto(self):
        from hours_kernel.domain.dtos import ClientInfo

        return ClientInfo(id=self.id, name=self.name, budget=self.budget)

    def __repr__(self) -> str:
        return f"<ClientModel {self.name}>"


class ProjectModel(TrackedBase):
    __tablename__ = "projects"

    __table_args__ = (
        Index("idx_project_client", "client_id"),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("clients.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    budget: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    def to_dto(self):
        from hours_kernel.domain.dtos import ProjectInfo

        return ProjectInfo(
            id=self.id,
            client_id=self.client_id,
            name=self.name,
            budget=self.budget,
        )

    def __repr__(self) -> str:
        return f"<ProjectModel {self.name}>"


class ActivityModel(TrackedBase):
    """
    A group of tasks within a project.

    ``is_holding_bucket`` marks the per-project activity that receives tasks
    created by hour redistribution.
    """

    __tablename__ = "activities"

    __table_args__ = (
        Index("idx_activity_project", "project_id"),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("projects.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_holding_bucket: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dto(self):
        from hours_kernel.domain.dtos import ActivityInfo

        return ActivityInfo(
            id=self.id,
            project_id=self.project_id,
            name=self.name,
            is_holding_bucket=self.is_holding_bucket,
        )

    def __repr__(self) -> str:
        return f"<ActivityModel {self.name}>"


class TaskModel(TrackedBase):
    """
    A unit of work with an estimate and, once completed, an actual duration.

    Guarantees:
        - ``status`` follows scheduled -> in_progress -> completed.
        - ``actual_minutes`` is written exactly once.
    """

    __tablename__ = "tasks"

    __table_args__ = (
        Index("idx_task_activity", "activity_id"),
        Index("idx_task_resource_due", "resource_id", "due_date"),
        Index("idx_task_status", "status"),
    )

    activity_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("activities.id"), nullable=False
    )
    resource_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("resources.id"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    estimated_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    actual_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="scheduled")
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def to_dto(self, project_id: UUID):
        from hours_kernel.domain.dtos import TaskInfo, TaskStatus

        return TaskInfo(
            id=self.id,
            activity_id=self.activity_id,
            project_id=project_id,
            name=self.name,
            estimated_minutes=self.estimated_minutes,
            resource_id=self.resource_id,
            actual_minutes=self.actual_minutes,
            status=TaskStatus(self.status),
            due_date=self.due_date,
            completed_at=self.completed_at,
        )

    def __repr__(self) -> str:
        return f"<TaskModel {self.name} [{self.status}]>"

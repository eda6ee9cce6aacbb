"""
SQLAlchemy ORM persistence for project assignments (margin records).

Invariants enforced
-------------------
* A resource appears at most once per project (unique constraint).
* ``base_hourly_cost`` is a snapshot taken at assignment time; later
  changes to the resource do not reprice existing assignments.
* ``full_rate`` / ``final_rate`` are stored as computed by the cascade and
  recomputed whenever toggles change.
"""

from __future__ import annotations

from decimal import Decimal
from types import MappingProxyType
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from hours_kernel.db.base import TrackedBase, UUIDString


class ProjectAssignmentModel(TrackedBase):
    """Maps to ``MarginRecord`` in ``hours_modules.margin.models``."""

    __tablename__ = "project_assignments"

    __table_args__ = (
        UniqueConstraint("project_id", "resource_id", name="uq_assignment_project_resource"),
        Index("idx_assignment_project", "project_id"),
        Index("idx_assignment_resource", "resource_id"),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("projects.id"), nullable=False
    )
    resource_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("resources.id"), nullable=False
    )
    base_hourly_cost: Mapped[Decimal] = mapped_column(nullable=False)
    assigned_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    toggles: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    full_rate: Mapped[Decimal] = mapped_column(nullable=False)
    final_rate: Mapped[Decimal] = mapped_column(nullable=False)

    def to_dto(self):
        from hours_modules.margin.models import MarginRecord

        return MarginRecord(
            id=self.id,
            project_id=self.project_id,
            resource_id=self.resource_id,
            base_hourly_cost=self.base_hourly_cost,
            assigned_minutes=self.assigned_minutes,
            toggles=MappingProxyType(dict(self.toggles or {})),
            full_rate=self.full_rate,
            final_rate=self.final_rate,
        )

    def __repr__(self) -> str:
        return f"<ProjectAssignmentModel {self.project_id}:{self.resource_id}>"

"""
SQLAlchemy ORM persistence for bonus/penalty records.

Invariants enforced
-------------------
* At most one record per task (unique constraint on ``task_id``).
* A decided record (approved or rejected) is frozen, and no record is ever
  deleted (ORM listeners in ``hours_kernel.db.immutability``).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from hours_kernel.db.base import TrackedBase, UUIDString


class BonusRecordModel(TrackedBase):
    """Maps to ``BonusRecord`` in ``hours_modules.bonus.models``."""

    __tablename__ = "bonus_records"

    __table_args__ = (
        UniqueConstraint("task_id", name="uq_bonus_task"),
        Index("idx_bonus_resource", "resource_id"),
        Index("idx_bonus_status", "status"),
        Index("idx_bonus_evaluated_at", "evaluated_at"),
    )

    task_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tasks.id"), nullable=False
    )
    resource_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("resources.id"), nullable=False
    )
    estimated_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    actual_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    variance_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    classification: Mapped[str] = mapped_column(String(20), nullable=False)
    percentage: Mapped[Decimal] = mapped_column(nullable=False)
    full_rate: Mapped[Decimal] = mapped_column(nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    remediation: Mapped[str | None] = mapped_column(String(30), nullable=True)
    manager_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    evaluated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_dto(self):
        from hours_modules.bonus.models import (
            BonusClassification,
            BonusRecord,
            BonusStatus,
            RemediationAction,
        )

        return BonusRecord(
            id=self.id,
            task_id=self.task_id,
            resource_id=self.resource_id,
            estimated_minutes=self.estimated_minutes,
            actual_minutes=self.actual_minutes,
            variance_minutes=self.variance_minutes,
            classification=BonusClassification(self.classification),
            percentage=self.percentage,
            full_rate=self.full_rate,
            hourly_rate=self.hourly_rate,
            amount=self.amount,
            status=BonusStatus(self.status),
            remediation=RemediationAction(self.remediation) if self.remediation else None,
            manager_id=self.manager_id,
            decided_at=self.decided_at,
            comment=self.comment,
            evaluated_at=self.evaluated_at,
        )

    def __repr__(self) -> str:
        return f"<BonusRecordModel task={self.task_id} {self.classification} {self.status}>"

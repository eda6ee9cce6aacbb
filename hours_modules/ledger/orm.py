"""
SQLAlchemy ORM persistence for hour redistribution records.

Invariants enforced
-------------------
* Records are append-only.  The only permitted update is the one-time
  transition active -> cancelled, touching only the cancellation fields;
  records are never deleted (ORM listeners in
  ``hours_kernel.db.immutability``).
* Minutes are positive integers (check constraints).
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hours_kernel.db.base import TrackedBase, UUIDString


class RedistributionRecordModel(TrackedBase):
    """Maps to ``RedistributionRecord`` in ``hours_modules.ledger.models``."""

    __tablename__ = "redistribution_records"

    __table_args__ = (
        CheckConstraint("withdraw_minutes > 0", name="ck_redistribution_withdraw_positive"),
        CheckConstraint("grant_minutes > 0", name="ck_redistribution_grant_positive"),
        Index("idx_redistribution_source", "source_task_id"),
        Index("idx_redistribution_destination", "destination_task_id"),
        Index("idx_redistribution_status", "status"),
        Index("idx_redistribution_at", "redistributed_at"),
    )

    source_task_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tasks.id"), nullable=False
    )
    withdraw_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    destination_task_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tasks.id"), nullable=False
    )
    destination_project_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("projects.id"), nullable=False
    )
    grant_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    destination_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    justification: Mapped[str] = mapped_column(Text, nullable=False)
    redistributed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    cancelled_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from hours_modules.ledger.models import (
            DestinationKind,
            RedistributionRecord,
            RedistributionStatus,
        )

        return RedistributionRecord(
            id=self.id,
            source_task_id=self.source_task_id,
            withdraw_minutes=self.withdraw_minutes,
            destination_task_id=self.destination_task_id,
            destination_project_id=self.destination_project_id,
            grant_minutes=self.grant_minutes,
            destination_kind=DestinationKind(self.destination_kind),
            justification=self.justification,
            created_by_id=self.created_by_id,
            redistributed_at=self.redistributed_at,
            status=RedistributionStatus(self.status),
            cancelled_by_id=self.cancelled_by_id,
            cancelled_at=self.cancelled_at,
            cancellation_reason=self.cancellation_reason,
        )

    def __repr__(self) -> str:
        return (
            f"<RedistributionRecordModel {self.source_task_id}->{self.destination_task_id} "
            f"{self.withdraw_minutes}/{self.grant_minutes} {self.status}>"
        )

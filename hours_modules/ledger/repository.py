"""
Redistribution repository: protocol and SQLAlchemy implementation.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Protocol
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, aliased

from hours_kernel.db.repositories import day_start
from hours_kernel.exceptions import RedistributionNotFoundError
from hours_kernel.models.work import ActivityModel, TaskModel
from hours_modules.ledger.models import (
    DestinationKind,
    RedistributionFilter,
    RedistributionRecord,
    RedistributionStatus,
)
from hours_modules.ledger.orm import RedistributionRecordModel


class RedistributionRepository(Protocol):
    def get(self, redistribution_id: UUID) -> RedistributionRecord | None: ...

    def add(
        self,
        source_task_id: UUID,
        withdraw_minutes: int,
        destination_task_id: UUID,
        destination_project_id: UUID,
        grant_minutes: int,
        destination_kind: DestinationKind,
        justification: str,
        redistributed_at: datetime,
        created_by_id: UUID,
    ) -> RedistributionRecord: ...

    def cancel(
        self,
        redistribution_id: UUID,
        cancelled_by_id: UUID,
        cancelled_at: datetime,
        reason: str,
    ) -> RedistributionRecord: ...

    def list_active(
        self,
        source_task_ids: Iterable[UUID] | None = None,
        destination_task_ids: Iterable[UUID] | None = None,
    ) -> list[RedistributionRecord]: ...

    def list_since(self, since: datetime) -> list[RedistributionRecord]: ...

    def search(
        self, filters: RedistributionFilter, limit: int
    ) -> tuple[list[RedistributionRecord], int]: ...


class SqlRedistributionRepository:
    def __init__(self, session: Session):
        self._session = session

    def get(self, redistribution_id: UUID) -> RedistributionRecord | None:
        model = self._session.get(RedistributionRecordModel, redistribution_id)
        return model.to_dto() if model else None

    def add(
        self,
        source_task_id: UUID,
        withdraw_minutes: int,
        destination_task_id: UUID,
        destination_project_id: UUID,
        grant_minutes: int,
        destination_kind: DestinationKind,
        justification: str,
        redistributed_at: datetime,
        created_by_id: UUID,
    ) -> RedistributionRecord:
        model = RedistributionRecordModel(
            source_task_id=source_task_id,
            withdraw_minutes=withdraw_minutes,
            destination_task_id=destination_task_id,
            destination_project_id=destination_project_id,
            grant_minutes=grant_minutes,
            destination_kind=destination_kind.value,
            justification=justification,
            redistributed_at=redistributed_at,
            status=RedistributionStatus.ACTIVE.value,
            created_by_id=created_by_id,
        )
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    def cancel(
        self,
        redistribution_id: UUID,
        cancelled_by_id: UUID,
        cancelled_at: datetime,
        reason: str,
    ) -> RedistributionRecord:
        model = self._session.get(RedistributionRecordModel, redistribution_id)
        if model is None:
            raise RedistributionNotFoundError(str(redistribution_id))
        model.status = RedistributionStatus.CANCELLED.value
        model.cancelled_by_id = cancelled_by_id
        model.cancelled_at = cancelled_at
        model.cancellation_reason = reason
        model.updated_by_id = cancelled_by_id
        self._session.flush()
        return model.to_dto()

    def list_active(
        self,
        source_task_ids: Iterable[UUID] | None = None,
        destination_task_ids: Iterable[UUID] | None = None,
    ) -> list[RedistributionRecord]:
        """Active records, optionally narrowed to given sources or destinations."""
        stmt = select(RedistributionRecordModel).where(
            RedistributionRecordModel.status == RedistributionStatus.ACTIVE.value
        )
        if source_task_ids is not None:
            stmt = stmt.where(
                RedistributionRecordModel.source_task_id.in_(list(source_task_ids))
            )
        if destination_task_ids is not None:
            stmt = stmt.where(
                RedistributionRecordModel.destination_task_id.in_(list(destination_task_ids))
            )
        rows = self._session.execute(stmt).scalars()
        return [m.to_dto() for m in rows]

    def list_since(self, since: datetime) -> list[RedistributionRecord]:
        rows = self._session.execute(
            select(RedistributionRecordModel).where(
                RedistributionRecordModel.redistributed_at >= since
            )
        ).scalars()
        return [m.to_dto() for m in rows]

    def search(
        self, filters: RedistributionFilter, limit: int
    ) -> tuple[list[RedistributionRecord], int]:
        """
        One page of history, newest first, plus the total match count.

        Resource and project filters match either the source or the
        destination side.
        """
        record = RedistributionRecordModel
        source = aliased(TaskModel)
        destination = aliased(TaskModel)
        source_activity = aliased(ActivityModel)

        stmt = (
            select(record)
            .join(source, record.source_task_id == source.id)
            .join(destination, record.destination_task_id == destination.id)
            .join(source_activity, source.activity_id == source_activity.id)
        )
        if filters.status is not None:
            stmt = stmt.where(record.status == RedistributionStatus(filters.status).value)
        if filters.resource_id is not None:
            stmt = stmt.where(
                or_(
                    source.resource_id == filters.resource_id,
                    destination.resource_id == filters.resource_id,
                )
            )
        if filters.project_id is not None:
            stmt = stmt.where(
                or_(
                    source_activity.project_id == filters.project_id,
                    record.destination_project_id == filters.project_id,
                )
            )
        if filters.redistributed_from is not None:
            stmt = stmt.where(record.redistributed_at >= day_start(filters.redistributed_from))
        if filters.redistributed_to is not None:
            stmt = stmt.where(
                record.redistributed_at < day_start(filters.redistributed_to + timedelta(days=1))
            )

        total = self._session.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()
        rows = self._session.execute(
            stmt.order_by(record.redistributed_at.desc(), record.id)
            .limit(limit)
            .offset(filters.offset)
        ).scalars()
        return [m.to_dto() for m in rows], total

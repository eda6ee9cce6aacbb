"""
Bonus record repository: protocol and SQLAlchemy implementation.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from hours_kernel.db.repositories import day_start
from hours_kernel.exceptions import BonusNotFoundError
from hours_modules.bonus.models import (
    BonusComputation,
    BonusFilter,
    BonusRecord,
    BonusStatus,
    RemediationAction,
)
from hours_modules.bonus.orm import BonusRecordModel


class BonusRepository(Protocol):
    def get(self, bonus_id: UUID) -> BonusRecord | None: ...

    def get_for_task(self, task_id: UUID) -> BonusRecord | None: ...

    def add(
        self,
        task_id: UUID,
        resource_id: UUID,
        estimated_minutes: int,
        actual_minutes: int,
        computation: BonusComputation,
        evaluated_at: datetime,
        created_by_id: UUID,
    ) -> BonusRecord: ...

    def decide(
        self,
        bonus_id: UUID,
        status: BonusStatus,
        manager_id: UUID,
        decided_at: datetime,
        comment: str | None = None,
        remediation: RemediationAction | None = None,
    ) -> BonusRecord: ...

    def list(self, filters: BonusFilter) -> list[BonusRecord]: ...

    def list_for_tasks(self, task_ids: list[UUID]) -> list[BonusRecord]: ...


class SqlBonusRepository:
    def __init__(self, session: Session):
        self._session = session

    def get(self, bonus_id: UUID) -> BonusRecord | None:
        model = self._session.get(BonusRecordModel, bonus_id)
        return model.to_dto() if model else None

    def get_for_task(self, task_id: UUID) -> BonusRecord | None:
        model = self._session.execute(
            select(BonusRecordModel).where(BonusRecordModel.task_id == task_id)
        ).scalar_one_or_none()
        return model.to_dto() if model else None

    def add(
        self,
        task_id: UUID,
        resource_id: UUID,
        estimated_minutes: int,
        actual_minutes: int,
        computation: BonusComputation,
        evaluated_at: datetime,
        created_by_id: UUID,
    ) -> BonusRecord:
        model = BonusRecordModel(
            task_id=task_id,
            resource_id=resource_id,
            estimated_minutes=estimated_minutes,
            actual_minutes=actual_minutes,
            variance_minutes=computation.variance_minutes,
            classification=computation.classification.value,
            percentage=computation.percentage,
            full_rate=computation.full_rate,
            hourly_rate=computation.hourly_rate,
            amount=computation.amount,
            status=BonusStatus.PENDING.value,
            evaluated_at=evaluated_at,
            created_by_id=created_by_id,
        )
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    def decide(
        self,
        bonus_id: UUID,
        status: BonusStatus,
        manager_id: UUID,
        decided_at: datetime,
        comment: str | None = None,
        remediation: RemediationAction | None = None,
    ) -> BonusRecord:
        model = self._session.get(BonusRecordModel, bonus_id)
        if model is None:
            raise BonusNotFoundError(str(bonus_id))
        model.status = status.value
        model.manager_id = manager_id
        model.decided_at = decided_at
        model.comment = comment
        model.remediation = remediation.value if remediation else None
        model.updated_by_id = manager_id
        self._session.flush()
        return model.to_dto()

    def list(self, filters: BonusFilter) -> list[BonusRecord]:
        """Records matching every given filter, newest first."""
        stmt = select(BonusRecordModel)
        if filters.resource_id is not None:
            stmt = stmt.where(BonusRecordModel.resource_id == filters.resource_id)
        if filters.status is not None:
            stmt = stmt.where(BonusRecordModel.status == filters.status.value)
        if filters.classification is not None:
            stmt = stmt.where(BonusRecordModel.classification == filters.classification.value)
        if filters.evaluated_from is not None:
            stmt = stmt.where(
                BonusRecordModel.evaluated_at >= day_start(filters.evaluated_from)
            )
        if filters.evaluated_to is not None:
            stmt = stmt.where(
                BonusRecordModel.evaluated_at
                < day_start(filters.evaluated_to + timedelta(days=1))
            )
        rows = self._session.execute(
            stmt.order_by(BonusRecordModel.evaluated_at.desc(), BonusRecordModel.id)
        ).scalars()
        return [m.to_dto() for m in rows]

    def list_for_tasks(self, task_ids: list[UUID]) -> list[BonusRecord]:
        if not task_ids:
            return []
        rows = self._session.execute(
            select(BonusRecordModel).where(BonusRecordModel.task_id.in_(task_ids))
        ).scalars()
        return [m.to_dto() for m in rows]

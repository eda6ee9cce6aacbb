"""
Assignment repository: protocol and SQLAlchemy implementation.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from hours_kernel.exceptions import AssignmentNotFoundError
from hours_modules.margin.models import MarginRecord
from hours_modules.margin.orm import ProjectAssignmentModel


class AssignmentRepository(Protocol):
    def get(self, assignment_id: UUID) -> MarginRecord | None: ...

    def get_by_pair(self, project_id: UUID, resource_id: UUID) -> MarginRecord | None: ...

    def list_for_project(self, project_id: UUID) -> list[MarginRecord]: ...

    def final_rates(
        self, pairs: Iterable[tuple[UUID, UUID]]
    ) -> dict[tuple[UUID, UUID], Decimal]: ...

    def add(
        self,
        project_id: UUID,
        resource_id: UUID,
        base_hourly_cost: Decimal,
        assigned_minutes: int,
        toggles: Mapping[str, bool],
        full_rate: Decimal,
        final_rate: Decimal,
        created_by_id: UUID,
    ) -> MarginRecord: ...

    def update(
        self,
        assignment_id: UUID,
        assigned_minutes: int,
        toggles: Mapping[str, bool],
        final_rate: Decimal,
        actor_id: UUID,
    ) -> MarginRecord: ...

    def delete(self, assignment_id: UUID) -> None: ...


class SqlAssignmentRepository:
    def __init__(self, session: Session):
        self._session = session

    def _model(self, assignment_id: UUID) -> ProjectAssignmentModel:
        model = self._session.get(ProjectAssignmentModel, assignment_id)
        if model is None:
            raise AssignmentNotFoundError(str(assignment_id))
        return model

    def get(self, assignment_id: UUID) -> MarginRecord | None:
        model = self._session.get(ProjectAssignmentModel, assignment_id)
        return model.to_dto() if model else None

    def get_by_pair(self, project_id: UUID, resource_id: UUID) -> MarginRecord | None:
        model = self._session.execute(
            select(ProjectAssignmentModel)
            .where(ProjectAssignmentModel.project_id == project_id)
            .where(ProjectAssignmentModel.resource_id == resource_id)
        ).scalar_one_or_none()
        return model.to_dto() if model else None

    def list_for_project(self, project_id: UUID) -> list[MarginRecord]:
        rows = self._session.execute(
            select(ProjectAssignmentModel)
            .where(ProjectAssignmentModel.project_id == project_id)
            .order_by(ProjectAssignmentModel.created_at, ProjectAssignmentModel.id)
        ).scalars()
        return [m.to_dto() for m in rows]

    def final_rates(
        self, pairs: Iterable[tuple[UUID, UUID]]
    ) -> dict[tuple[UUID, UUID], Decimal]:
        """Final rate per (project_id, resource_id) for the pairs that have one."""
        wanted = set(pairs)
        if not wanted:
            return {}
        project_ids = {p for p, _ in wanted}
        rows = self._session.execute(
            select(ProjectAssignmentModel).where(
                ProjectAssignmentModel.project_id.in_(list(project_ids))
            )
        ).scalars()
        return {
            (m.project_id, m.resource_id): m.final_rate
            for m in rows
            if (m.project_id, m.resource_id) in wanted
        }

    def add(
        self,
        project_id: UUID,
        resource_id: UUID,
        base_hourly_cost: Decimal,
        assigned_minutes: int,
        toggles: Mapping[str, bool],
        full_rate: Decimal,
        final_rate: Decimal,
        created_by_id: UUID,
    ) -> MarginRecord:
        model = ProjectAssignmentModel(
            project_id=project_id,
            resource_id=resource_id,
            base_hourly_cost=base_hourly_cost,
            assigned_minutes=assigned_minutes,
            toggles=dict(toggles),
            full_rate=full_rate,
            final_rate=final_rate,
            created_by_id=created_by_id,
        )
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    def update(
        self,
        assignment_id: UUID,
        assigned_minutes: int,
        toggles: Mapping[str, bool],
        final_rate: Decimal,
        actor_id: UUID,
    ) -> MarginRecord:
        model = self._model(assignment_id)
        model.assigned_minutes = assigned_minutes
        model.toggles = dict(toggles)
        model.final_rate = final_rate
        model.updated_by_id = actor_id
        self._session.flush()
        return model.to_dto()

    def delete(self, assignment_id: UUID) -> None:
        self._session.delete(self._model(assignment_id))
        self._session.flush()

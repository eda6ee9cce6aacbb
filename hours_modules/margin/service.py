"""
Margin Module Service (``hours_modules.margin.service``).

Responsibility
--------------
Prices resources onto projects: previews the margin cascade, assigns a
resource to a project at its blended final rate, updates and removes
assignments, and lists a project's margins.  Pure computation is delegated
to ``cascade.py``; persistence goes through ``SqlAssignmentRepository``.

Invariants enforced
-------------------
* Each public mutating method owns the transaction boundary
  (``commit`` on success, ``rollback`` on any exception).
* A resource appears at most once per project.
* Committed project cost (sum of final rate x minutes / 60 over its
  assignments) never exceeds the project budget unless the actor's role is
  configured to bypass the check.
* All rate arithmetic is ``Decimal``.

Failure modes
-------------
* ``ManagerRoleRequiredError`` -- non-manager caller.
* ``ResourceNotFoundError`` / ``ProjectNotFoundError`` /
  ``AssignmentNotFoundError`` -- missing entities.
* ``DuplicateAssignmentError`` -- pair already assigned.
* ``BudgetExceededError`` -- budget check failed.
* ``InvalidHourlyCostError`` / ``UnknownMarginComponentError`` /
  ``InvalidMinutesError`` / ``InvalidAssignmentEntryError`` -- bad input.

Audit relevance
---------------
Assignment create / update / remove each append an audit event.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from hours_config import HoursSettings, get_active_config
from hours_kernel.db.repositories import SqlProjectRepository, SqlResourceRepository
from hours_kernel.domain.clock import Clock, SystemClock
from hours_kernel.domain.identity import Actor, require_manager
from hours_kernel.domain.repositories import ProjectRepository, ResourceRepository
from hours_kernel.domain.values import cost_of_minutes, quantize_amount, require_minutes
from hours_kernel.exceptions import (
    AssignmentNotFoundError,
    BudgetExceededError,
    DuplicateAssignmentError,
    InvalidAssignmentEntryError,
    ProjectNotFoundError,
    ResourceNotFoundError,
)
from hours_kernel.logging_config import get_logger
from hours_kernel.models.audit_event import AuditAction
from hours_kernel.services.auditor_service import AuditorService
from hours_modules.margin.cascade import compute_margin, resolve_toggles
from hours_modules.margin.models import (
    AssignmentEntry,
    BareResourceEntry,
    MarginQuote,
    MarginRecord,
    ProjectMarginSummary,
    ResourceAllotment,
    ResourceMinutesEntry,
)
from hours_modules.margin.repository import AssignmentRepository, SqlAssignmentRepository

logger = get_logger("modules.margin.service")


def resolve_assignment_entry(
    entry: AssignmentEntry | UUID | str | Mapping[str, Any],
    default_minutes: int = 0,
) -> ResourceAllotment:
    """
    Resolve any accepted assignment shape into a ``ResourceAllotment``.

    Accepted shapes: ``BareResourceEntry``, ``ResourceMinutesEntry``, a UUID
    or UUID string, or a mapping with ``resource_id`` (or ``id``) and an
    optional ``minutes`` and ``toggles``.
    """
    toggles: Mapping[str, bool] = {}
    if isinstance(entry, ResourceMinutesEntry):
        resource_id, minutes = entry.resource_id, entry.minutes
    elif isinstance(entry, BareResourceEntry):
        resource_id, minutes = entry.resource_id, default_minutes
    elif isinstance(entry, UUID):
        resource_id, minutes = entry, default_minutes
    elif isinstance(entry, str):
        resource_id, minutes = _parse_uuid(entry, entry), default_minutes
    elif isinstance(entry, Mapping):
        raw_id = entry.get("resource_id", entry.get("id"))
        if raw_id is None:
            raise InvalidAssignmentEntryError(entry)
        resource_id = raw_id if isinstance(raw_id, UUID) else _parse_uuid(raw_id, entry)
        minutes = entry.get("minutes", default_minutes)
        toggles = entry.get("toggles") or {}
    else:
        raise InvalidAssignmentEntryError(entry)

    return ResourceAllotment(
        resource_id=resource_id,
        minutes=require_minutes(minutes, "minutes", allow_zero=True),
        toggles=toggles,
    )


def _parse_uuid(raw: object, entry: object) -> UUID:
    try:
        return UUID(str(raw))
    except ValueError as exc:
        raise InvalidAssignmentEntryError(entry) from exc


class MarginService:
    """
    Orchestrates margin previews and project assignments.

    Contract
    --------
    * ``preview_margin`` is pure and touches no data.
    * Mutating methods return ``MarginRecord`` DTOs after commit.

    Non-goals
    ---------
    * Does NOT edit resources or projects.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: HoursSettings | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or get_active_config()
        self._assignments: AssignmentRepository = SqlAssignmentRepository(session)
        self._resources: ResourceRepository = SqlResourceRepository(session)
        self._projects: ProjectRepository = SqlProjectRepository(session)
        self._auditor = AuditorService(session, self._clock)

    # =========================================================================
    # Preview
    # =========================================================================

    def preview_margin(
        self,
        base_cost: Decimal,
        toggles: Mapping[str, bool] | None = None,
        minutes: int | None = None,
    ) -> MarginQuote:
        """Full rate, final rate, breakdown and optional total cost. No persistence."""
        return compute_margin(base_cost, toggles, self._settings.margin, minutes)

    # =========================================================================
    # Assignments
    # =========================================================================

    def assign_resource_to_project(
        self,
        project_id: UUID,
        resource_id: UUID,
        minutes: int,
        toggles: Mapping[str, bool] | None,
        actor: Actor,
    ) -> MarginRecord:
        """Assign one resource to a project at its blended final rate."""
        require_manager(actor, "assign_resource_to_project")
        logger.info(
            "assign_resource_started",
            extra={"project_id": str(project_id), "resource_id": str(resource_id)},
        )
        try:
            record = self._assign(project_id, resource_id, minutes, toggles, actor)
            self._session.commit()
            logger.info(
                "assign_resource_committed",
                extra={"assignment_id": str(record.id), "final_rate": str(record.final_rate)},
            )
            return record
        except Exception:
            self._session.rollback()
            logger.warning("assign_resource_rolled_back", exc_info=True)
            raise

    def assign_resources(
        self,
        project_id: UUID,
        entries: Iterable[AssignmentEntry | UUID | str | Mapping[str, Any]],
        actor: Actor,
        toggles: Mapping[str, bool] | None = None,
        default_minutes: int = 0,
    ) -> list[MarginRecord]:
        """
        Assign several resources in one transaction.

        Each entry may be a bare resource id or carry its own minutes (and
        toggles); ``toggles``/``default_minutes`` fill in what an entry omits.
        Any failure rolls back every assignment of the batch.
        """
        require_manager(actor, "assign_resources")
        allotments = [resolve_assignment_entry(e, default_minutes) for e in entries]
        try:
            records = [
                self._assign(
                    project_id,
                    a.resource_id,
                    a.minutes,
                    {**(toggles or {}), **a.toggles},
                    actor,
                )
                for a in allotments
            ]
            self._session.commit()
            logger.info(
                "assign_resources_committed",
                extra={"project_id": str(project_id), "count": len(records)},
            )
            return records
        except Exception:
            self._session.rollback()
            logger.warning("assign_resources_rolled_back", exc_info=True)
            raise

    def update_assignment(
        self,
        assignment_id: UUID,
        actor: Actor,
        minutes: int | None = None,
        toggles: Mapping[str, bool] | None = None,
    ) -> MarginRecord:
        """Change minutes and/or toggles; the final rate is recomputed."""
        require_manager(actor, "update_assignment")
        try:
            current = self._assignments.get(assignment_id)
            if current is None:
                raise AssignmentNotFoundError(str(assignment_id))

            new_minutes = (
                current.assigned_minutes
                if minutes is None
                else require_minutes(minutes, "minutes", allow_zero=True)
            )
            merged = dict(current.toggles)
            merged.update(toggles or {})
            quote = compute_margin(
                current.base_hourly_cost, merged, self._settings.margin, new_minutes
            )

            self._check_budget(
                current.project_id,
                cost_of_minutes(quote.final_rate, new_minutes),
                actor,
                exclude_assignment_id=assignment_id,
            )

            record = self._assignments.update(
                assignment_id,
                assigned_minutes=new_minutes,
                toggles=quote.toggles,
                final_rate=quote.final_rate,
                actor_id=actor.actor_id,
            )
            self._auditor.record_assignment(
                record.id,
                AuditAction.ASSIGNMENT_UPDATED,
                record.project_id,
                record.resource_id,
                actor.actor_id,
                final_rate=record.final_rate,
                assigned_minutes=record.assigned_minutes,
            )
            self._session.commit()
            logger.info(
                "assignment_update_committed",
                extra={"assignment_id": str(assignment_id), "final_rate": str(record.final_rate)},
            )
            return record
        except Exception:
            self._session.rollback()
            logger.warning("assignment_update_rolled_back", exc_info=True)
            raise

    def remove_assignment(self, assignment_id: UUID, actor: Actor) -> None:
        require_manager(actor, "remove_assignment")
        try:
            current = self._assignments.get(assignment_id)
            if current is None:
                raise AssignmentNotFoundError(str(assignment_id))
            self._assignments.delete(assignment_id)
            self._auditor.record_assignment(
                assignment_id,
                AuditAction.ASSIGNMENT_REMOVED,
                current.project_id,
                current.resource_id,
                actor.actor_id,
            )
            self._session.commit()
            logger.info("assignment_removed", extra={"assignment_id": str(assignment_id)})
        except Exception:
            self._session.rollback()
            logger.warning("assignment_remove_rolled_back", exc_info=True)
            raise

    # =========================================================================
    # Queries
    # =========================================================================

    def list_project_margins(self, project_id: UUID) -> ProjectMarginSummary:
        """The project's assignments, each with its component breakdown."""
        if self._projects.get(project_id) is None:
            raise ProjectNotFoundError(str(project_id))
        margin = self._settings.margin
        records = tuple(
            replace(
                r,
                components=compute_margin(r.base_hourly_cost, r.toggles, margin).components,
            )
            for r in self._assignments.list_for_project(project_id)
        )
        return ProjectMarginSummary(project_id=project_id, records=records)

    def committed_cost(self, project_id: UUID) -> Decimal:
        """Sum of final rate x minutes / 60 over the project's assignments."""
        return quantize_amount(self._committed(project_id))

    # =========================================================================
    # Internals
    # =========================================================================

    def _committed(self, project_id: UUID, exclude_assignment_id: UUID | None = None) -> Decimal:
        return sum(
            (
                cost_of_minutes(r.final_rate, r.assigned_minutes)
                for r in self._assignments.list_for_project(project_id)
                if r.id != exclude_assignment_id
            ),
            Decimal("0"),
        )

    def _check_budget(
        self,
        project_id: UUID,
        requested: Decimal,
        actor: Actor,
        exclude_assignment_id: UUID | None = None,
    ) -> None:
        project = self._projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(str(project_id))

        committed = self._committed(project_id, exclude_assignment_id)
        if quantize_amount(committed + requested) <= project.budget:
            return

        if actor.can_bypass_budget(self._settings.roles.budget_bypass):
            logger.warning(
                "budget_check_bypassed",
                extra={
                    "project_id": str(project_id),
                    "role": actor.role.value,
                    "budget": str(project.budget),
                    "committed": str(quantize_amount(committed)),
                    "requested": str(quantize_amount(requested)),
                },
            )
            return

        raise BudgetExceededError(
            project_id=str(project_id),
            budget=project.budget,
            committed=quantize_amount(committed),
            requested=quantize_amount(requested),
        )

    def _assign(
        self,
        project_id: UUID,
        resource_id: UUID,
        minutes: int,
        toggles: Mapping[str, bool] | None,
        actor: Actor,
    ) -> MarginRecord:
        minutes = require_minutes(minutes, "minutes", allow_zero=True)
        resolve_toggles(toggles, self._settings.margin)

        resource = self._resources.get(resource_id)
        if resource is None:
            raise ResourceNotFoundError(str(resource_id))
        if self._projects.get(project_id) is None:
            raise ProjectNotFoundError(str(project_id))
        if self._assignments.get_by_pair(project_id, resource_id) is not None:
            raise DuplicateAssignmentError(str(project_id), str(resource_id))

        quote = compute_margin(resource.hourly_cost, toggles, self._settings.margin, minutes)
        self._check_budget(project_id, cost_of_minutes(quote.final_rate, minutes), actor)

        record = self._assignments.add(
            project_id=project_id,
            resource_id=resource_id,
            base_hourly_cost=resource.hourly_cost,
            assigned_minutes=minutes,
            toggles=quote.toggles,
            full_rate=quote.full_rate,
            final_rate=quote.final_rate,
            created_by_id=actor.actor_id,
        )
        self._auditor.record_assignment(
            record.id,
            AuditAction.ASSIGNMENT_CREATED,
            project_id,
            resource_id,
            actor.actor_id,
            final_rate=record.final_rate,
            assigned_minutes=minutes,
        )
        return record

"""
Ledger Module Service (``hours_modules.ledger.service``).

Responsibility
--------------
Moves unused minutes from a task that finished under estimate to another
task: an existing one (typically an overrun being compensated) or a new
one created for the purpose.  Cancels redistributions, which restores the
source credit.

Invariants enforced
-------------------
* Conservation: the active withdrawals sourced from a task never exceed
  its positive variance.  The source task row is locked before its credit
  is read, and the credit is re-verified after the record is inserted.
* A grant to an existing task holding a debit never exceeds the debit
  still open, so debit positions stay non-negative.
* Withdraw and grant minutes are equal unless asymmetric grants are
  enabled in configuration.
* Records are append-only; cancellation is a one-time status change.
* Each public mutating method owns the transaction boundary.  A failed
  redistribution leaves no task, activity or record behind.

Failure modes
-------------
* ``ManagerRoleRequiredError`` -- non-manager caller.
* ``InvalidMinutesError`` / ``JustificationRequiredError`` /
  ``AsymmetricRedistributionError`` / ``InvalidDestinationError`` -- input.
* ``TaskNotFoundError`` / ``ProjectNotFoundError`` /
  ``ActivityNotFoundError`` / ``RedistributionNotFoundError`` -- lookups.
* ``InsufficientCreditError`` / ``OverCompensationError`` -- conservation.
* ``CancellationReasonRequiredError`` /
  ``RedistributionAlreadyCancelledError`` -- cancellation.

Audit relevance
---------------
Creation and cancellation each append an audit event.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from hours_config import HoursSettings, get_active_config
from hours_kernel.db.repositories import (
    SqlActivityRepository,
    SqlProjectRepository,
    SqlTaskRepository,
)
from hours_kernel.domain.clock import Clock, SystemClock
from hours_kernel.domain.dtos import TaskInfo
from hours_kernel.domain.identity import Actor, require_manager
from hours_kernel.domain.repositories import (
    ActivityRepository,
    ProjectRepository,
    TaskRepository,
)
from hours_kernel.domain.values import require_minutes, require_text
from hours_kernel.exceptions import (
    ActivityNotFoundError,
    AsymmetricRedistributionError,
    CancellationReasonRequiredError,
    InsufficientCreditError,
    InvalidDestinationError,
    JustificationRequiredError,
    OverCompensationError,
    ProjectNotFoundError,
    RedistributionAlreadyCancelledError,
    RedistributionNotFoundError,
    TaskNotFoundError,
)
from hours_kernel.logging_config import LogContext, get_logger
from hours_kernel.services.auditor_service import AuditorService
from hours_modules.ledger.models import (
    Destination,
    ExistingTaskDestination,
    NewTaskDestination,
    RedistributionRecord,
    resolve_destination,
)
from hours_modules.ledger.positions import credit_position, debit_position
from hours_modules.ledger.repository import (
    RedistributionRepository,
    SqlRedistributionRepository,
)

logger = get_logger("modules.ledger.service")


class RedistributionService:
    """
    Creates and cancels hour redistributions.

    Contract
    --------
    * Both operations require a manager role.
    * Both return the ``RedistributionRecord`` after commit.
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
        self._records: RedistributionRepository = SqlRedistributionRepository(session)
        self._tasks: TaskRepository = SqlTaskRepository(session)
        self._activities: ActivityRepository = SqlActivityRepository(session)
        self._projects: ProjectRepository = SqlProjectRepository(session)
        self._auditor = AuditorService(session, self._clock)

    def create_redistribution(
        self,
        source_task_id: UUID,
        withdraw_minutes: int,
        grant_minutes: int,
        destination: Destination | Mapping[str, Any],
        justification: str,
        actor: Actor,
    ) -> RedistributionRecord:
        """
        Withdraw minutes from a credit and grant them to a destination task.

        Steps, all in one transaction:
            1. Validate input and resolve the destination variant.
            2. Lock the source task and check its live credit.
            3. Resolve or create the destination task.
            4. Insert the record and re-verify the source credit.
            5. Append the audit event and commit.
        """
        require_manager(actor, "create_redistribution")
        withdraw = require_minutes(withdraw_minutes, "withdraw_minutes")
        grant = require_minutes(grant_minutes, "grant_minutes")
        text = require_text(justification)
        if text is None:
            raise JustificationRequiredError()
        if withdraw != grant and not self._settings.ledger.allow_asymmetric_grants:
            raise AsymmetricRedistributionError(withdraw, grant)
        target = resolve_destination(destination)

        with LogContext.bind(task_id=source_task_id, actor_id=actor.actor_id):
            logger.info(
                "redistribution_started",
                extra={
                    "withdraw_minutes": withdraw,
                    "grant_minutes": grant,
                    "destination_kind": target.kind.value,
                },
            )
            try:
                source = self._tasks.lock(source_task_id)
                if source is None:
                    raise TaskNotFoundError(str(source_task_id))
                available = self._available_credit(source)
                if withdraw > available:
                    raise InsufficientCreditError(str(source_task_id), withdraw, available)

                destination_task = self._resolve_target(target, source, grant, text, actor)

                record = self._records.add(
                    source_task_id=source.id,
                    withdraw_minutes=withdraw,
                    destination_task_id=destination_task.id,
                    destination_project_id=destination_task.project_id,
                    grant_minutes=grant,
                    destination_kind=target.kind,
                    justification=text,
                    redistributed_at=self._clock.now(),
                    created_by_id=actor.actor_id,
                )

                remaining = self._available_credit(source)
                if remaining < 0:
                    raise InsufficientCreditError(str(source_task_id), withdraw, available)

                self._auditor.record_redistribution_created(
                    redistribution_id=record.id,
                    source_task_id=source.id,
                    destination_task_id=destination_task.id,
                    withdraw_minutes=withdraw,
                    grant_minutes=grant,
                    justification=text,
                    actor_id=actor.actor_id,
                )
                self._session.commit()
                logger.info(
                    "redistribution_committed",
                    extra={
                        "redistribution_id": str(record.id),
                        "destination_task_id": str(destination_task.id),
                        "credit_remaining": remaining,
                    },
                )
                return record
            except Exception:
                self._session.rollback()
                logger.warning("redistribution_rolled_back", exc_info=True)
                raise

    def cancel_redistribution(
        self, record_id: UUID, reason: str, actor: Actor
    ) -> RedistributionRecord:
        """Soft-cancel an active redistribution; tasks it created remain."""
        require_manager(actor, "cancel_redistribution")
        text = require_text(reason)
        if text is None:
            raise CancellationReasonRequiredError(str(record_id))

        with LogContext.bind(redistribution_id=record_id, actor_id=actor.actor_id):
            try:
                current = self._records.get(record_id)
                if current is None:
                    raise RedistributionNotFoundError(str(record_id))
                if not current.is_active:
                    raise RedistributionAlreadyCancelledError(str(record_id))

                record = self._records.cancel(
                    record_id,
                    cancelled_by_id=actor.actor_id,
                    cancelled_at=self._clock.now(),
                    reason=text,
                )
                self._auditor.record_redistribution_cancelled(
                    redistribution_id=record_id,
                    reason=text,
                    actor_id=actor.actor_id,
                )
                self._session.commit()
                logger.info(
                    "redistribution_cancelled",
                    extra={"restored_minutes": record.withdraw_minutes},
                )
                return record
            except Exception:
                self._session.rollback()
                logger.warning("redistribution_cancel_rolled_back", exc_info=True)
                raise

    # =========================================================================
    # Internals
    # =========================================================================

    def _available_credit(self, source: TaskInfo) -> int:
        position = credit_position(
            source, self._records.list_active(source_task_ids=[source.id])
        )
        return position.available_minutes if position is not None else 0

    def _resolve_target(
        self,
        target: Destination,
        source: TaskInfo,
        grant: int,
        justification: str,
        actor: Actor,
    ) -> TaskInfo:
        if isinstance(target, ExistingTaskDestination):
            return self._existing_destination(target, source, grant)
        return self._new_destination(target, source, grant, justification, actor)

    def _existing_destination(
        self, target: ExistingTaskDestination, source: TaskInfo, grant: int
    ) -> TaskInfo:
        if target.task_id == source.id:
            raise InvalidDestinationError("destination task must differ from the source task")
        destination = self._tasks.get(target.task_id)
        if destination is None:
            raise TaskNotFoundError(str(target.task_id))

        debit = debit_position(
            destination, self._records.list_active(destination_task_ids=[destination.id])
        )
        if debit is not None and grant > debit.remaining_minutes:
            raise OverCompensationError(
                str(destination.id), grant, debit.remaining_minutes
            )
        return destination

    def _new_destination(
        self,
        target: NewTaskDestination,
        source: TaskInfo,
        grant: int,
        justification: str,
        actor: Actor,
    ) -> TaskInfo:
        if self._projects.get(target.project_id) is None:
            raise ProjectNotFoundError(str(target.project_id))

        if target.activity_id is not None:
            activity = self._activities.get(target.activity_id)
            if activity is None or activity.project_id != target.project_id:
                raise ActivityNotFoundError(str(target.activity_id))
        else:
            name = self._settings.ledger.holding_activity_name
            activity = self._activities.find_holding_bucket(target.project_id, name)
            if activity is None:
                activity = self._activities.add(
                    project_id=target.project_id,
                    name=name,
                    created_by_id=actor.actor_id,
                    is_holding_bucket=True,
                )
                logger.info(
                    "holding_activity_created",
                    extra={"project_id": str(target.project_id), "activity_id": str(activity.id)},
                )

        return self._tasks.add(
            activity_id=activity.id,
            name=target.task_name,
            estimated_minutes=grant,
            created_by_id=actor.actor_id,
            resource_id=source.resource_id,
            description=f"Task created by hour redistribution: {justification}",
        )

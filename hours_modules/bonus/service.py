"""
Bonus Module Service (``hours_modules.bonus.service``).

Responsibility
--------------
Evaluates the bonus or penalty earned on a completed task and carries the
record through its manager decision: approve, reject, or remediate a
negative record.  Pricing is delegated to the pure ``evaluator``;
persistence goes through ``SqlBonusRepository``.

Invariants enforced
-------------------
* Exactly one record per completed task, backed by a unique constraint.
* ``pending`` is the only state a decision may leave; decided records are
  frozen (ORM listener).
* Only negative records can be remediated, and only through remediation
  can they be approved.  ``deduct_future_hours`` debits the resource by
  |variance| / 60 hours.
* Each public mutating method owns the transaction boundary.

Failure modes
-------------
* ``TaskNotFoundError`` / ``TaskNotCompletedError`` /
  ``MissingActualTimeError`` / ``BonusAlreadyEvaluatedError`` -- evaluation
  preconditions.
* ``ManagerRoleRequiredError`` / ``BonusNotFoundError`` /
  ``BonusNotPendingError`` / ``NotNegativeBonusError`` /
  ``RemediationRequiredError`` / ``CommentRequiredError`` /
  ``InvalidRemediationError`` / ``InvalidDispositionError`` -- decisions.

Audit relevance
---------------
Evaluation, every decision and every hour deduction append an audit event.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hours_config import HoursSettings, get_active_config
from hours_kernel.db.repositories import SqlResourceRepository, SqlTaskRepository
from hours_kernel.domain.clock import Clock, SystemClock
from hours_kernel.domain.dtos import TaskInfo
from hours_kernel.domain.identity import Actor, require_manager
from hours_kernel.domain.repositories import ResourceRepository, TaskRepository
from hours_kernel.domain.values import minutes_to_hours, quantize_amount, require_text
from hours_kernel.exceptions import (
    BonusAlreadyEvaluatedError,
    BonusNotFoundError,
    BonusNotPendingError,
    CommentRequiredError,
    InvalidDispositionError,
    InvalidRemediationError,
    MissingActualTimeError,
    NotNegativeBonusError,
    RemediationRequiredError,
    ResourceNotFoundError,
    TaskNotCompletedError,
    TaskNotFoundError,
)
from hours_kernel.logging_config import LogContext, get_logger
from hours_kernel.models.audit_event import AuditAction
from hours_kernel.services.auditor_service import AuditorService
from hours_modules.bonus.evaluator import evaluate
from hours_modules.bonus.models import (
    BonusClassification,
    BonusFilter,
    BonusRecord,
    BonusStatus,
    DispositionAction,
    RemediationAction,
    ResourceBonusTotals,
)
from hours_modules.bonus.repository import BonusRepository, SqlBonusRepository
from hours_modules.margin.repository import AssignmentRepository, SqlAssignmentRepository

logger = get_logger("modules.bonus.service")


class BonusService:
    """
    Evaluates and decides bonus/penalty records.

    Contract
    --------
    * ``evaluate_bonus`` may be called by any actor; decisions require a
      manager role.
    * Every mutating method returns the ``BonusRecord`` after commit.
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
        self._bonuses: BonusRepository = SqlBonusRepository(session)
        self._tasks: TaskRepository = SqlTaskRepository(session)
        self._resources: ResourceRepository = SqlResourceRepository(session)
        self._assignments: AssignmentRepository = SqlAssignmentRepository(session)
        self._auditor = AuditorService(session, self._clock)

    # =========================================================================
    # Evaluation
    # =========================================================================

    def evaluate_bonus(self, task_id: UUID, actor: Actor) -> BonusRecord:
        """Create the pending bonus or penalty record for a completed task."""
        with LogContext.bind(task_id=task_id, actor_id=actor.actor_id):
            logger.info("bonus_evaluation_started")
            try:
                record = self.evaluate_in_transaction(task_id, actor)
                self._session.commit()
                logger.info(
                    "bonus_evaluation_committed",
                    extra={
                        "bonus_id": str(record.id),
                        "classification": record.classification.value,
                        "amount": str(record.amount),
                    },
                )
                return record
            except Exception:
                self._session.rollback()
                logger.warning("bonus_evaluation_rolled_back", exc_info=True)
                raise

    def evaluate_in_transaction(self, task_id: UUID, actor: Actor) -> BonusRecord:
        """
        Evaluate within the caller's transaction; no commit.

        Used by ``WorkService.complete_task`` to complete and evaluate
        atomically.
        """
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(str(task_id))
        self._require_evaluable(task)

        existing = self._bonuses.get_for_task(task_id)
        if existing is not None:
            raise BonusAlreadyEvaluatedError(str(task_id), str(existing.id))

        resource = self._resources.get(task.resource_id) if task.resource_id else None
        if resource is None:
            raise ResourceNotFoundError(str(task.resource_id))

        final_rate = self._assignments.final_rates(
            [(task.project_id, task.resource_id)]
        ).get((task.project_id, task.resource_id))

        computation = evaluate(
            estimated_minutes=task.estimated_minutes,
            actual_minutes=task.actual_minutes,
            base_cost=resource.hourly_cost,
            project_final_rate=final_rate,
            bonus=self._settings.bonus,
            margin=self._settings.margin,
        )

        try:
            record = self._bonuses.add(
                task_id=task.id,
                resource_id=resource.id,
                estimated_minutes=task.estimated_minutes,
                actual_minutes=task.actual_minutes,
                computation=computation,
                evaluated_at=self._clock.now(),
                created_by_id=actor.actor_id,
            )
        except IntegrityError as exc:
            raise BonusAlreadyEvaluatedError(str(task_id)) from exc

        self._auditor.record_bonus_evaluated(
            bonus_id=record.id,
            task_id=task.id,
            classification=record.classification.value,
            amount=record.amount,
            actor_id=actor.actor_id,
        )
        return record

    # =========================================================================
    # Decisions
    # =========================================================================

    def dispose_bonus(
        self,
        bonus_id: UUID,
        action: DispositionAction | str,
        actor: Actor,
        comment: str | None = None,
        remediation: RemediationAction | str | None = None,
    ) -> BonusRecord:
        """Route a manager decision to approve, reject or remediate."""
        try:
            action = DispositionAction(action)
        except ValueError as exc:
            raise InvalidDispositionError(action) from exc

        handlers: dict[DispositionAction, Callable[[], BonusRecord]] = {
            DispositionAction.APPROVE: lambda: self.approve(bonus_id, actor, comment),
            DispositionAction.REJECT: lambda: self.reject(bonus_id, actor, comment),
            DispositionAction.REMEDIATE: lambda: self.remediate_negative(
                bonus_id, remediation, comment, actor
            ),
        }
        return handlers[action]()

    def approve(
        self, bonus_id: UUID, actor: Actor, comment: str | None = None
    ) -> BonusRecord:
        require_manager(actor, "approve_bonus")
        with LogContext.bind(bonus_id=bonus_id, actor_id=actor.actor_id):
            try:
                current = self._pending(bonus_id)
                if current.classification is BonusClassification.NEGATIVE:
                    raise RemediationRequiredError(str(bonus_id))
                record = self._decide(
                    bonus_id,
                    BonusStatus.APPROVED,
                    AuditAction.BONUS_APPROVED,
                    actor,
                    require_text(comment),
                )
                self._session.commit()
                logger.info("bonus_approved", extra={"amount": str(record.amount)})
                return record
            except Exception:
                self._session.rollback()
                logger.warning("bonus_approve_rolled_back", exc_info=True)
                raise

    def reject(self, bonus_id: UUID, actor: Actor, comment: str | None) -> BonusRecord:
        require_manager(actor, "reject_bonus")
        with LogContext.bind(bonus_id=bonus_id, actor_id=actor.actor_id):
            try:
                self._pending(bonus_id)
                text = require_text(comment)
                if text is None:
                    raise CommentRequiredError("reject")
                record = self._decide(
                    bonus_id,
                    BonusStatus.REJECTED,
                    AuditAction.BONUS_REJECTED,
                    actor,
                    text,
                )
                self._session.commit()
                logger.info("bonus_rejected")
                return record
            except Exception:
                self._session.rollback()
                logger.warning("bonus_reject_rolled_back", exc_info=True)
                raise

    def remediate_negative(
        self,
        bonus_id: UUID,
        remediation: RemediationAction | str | None,
        comment: str | None,
        actor: Actor,
    ) -> BonusRecord:
        """
        Settle a negative record.

        ``financial_penalty`` keeps the signed amount as the penalty;
        ``deduct_future_hours`` also removes |variance| / 60 hours from the
        resource's annual hours.  Either way the record is approved.
        """
        require_manager(actor, "remediate_bonus")
        with LogContext.bind(bonus_id=bonus_id, actor_id=actor.actor_id):
            try:
                current = self._pending(bonus_id)
                if current.classification is not BonusClassification.NEGATIVE:
                    raise NotNegativeBonusError(str(bonus_id), current.classification.value)
                choice = _parse_remediation(remediation)
                text = require_text(comment)
                if text is None:
                    raise CommentRequiredError("remediate")

                if choice is RemediationAction.DEDUCT_FUTURE_HOURS:
                    hours = minutes_to_hours(abs(current.variance_minutes))
                    self._resources.deduct_annual_hours(
                        current.resource_id, hours, actor.actor_id
                    )
                    self._auditor.record_hours_deducted(
                        current.resource_id, bonus_id, hours, actor.actor_id
                    )
                    logger.info(
                        "annual_hours_deducted",
                        extra={"resource_id": str(current.resource_id), "hours": str(hours)},
                    )

                record = self._decide(
                    bonus_id,
                    BonusStatus.APPROVED,
                    AuditAction.BONUS_REMEDIATED,
                    actor,
                    text,
                    remediation=choice,
                )
                self._session.commit()
                logger.info("bonus_remediated", extra={"remediation": choice.value})
                return record
            except Exception:
                self._session.rollback()
                logger.warning("bonus_remediate_rolled_back", exc_info=True)
                raise

    # =========================================================================
    # Queries
    # =========================================================================

    def get_bonus(self, bonus_id: UUID) -> BonusRecord:
        record = self._bonuses.get(bonus_id)
        if record is None:
            raise BonusNotFoundError(str(bonus_id))
        return record

    def list_bonuses(self, filters: BonusFilter | None = None) -> list[BonusRecord]:
        return self._bonuses.list(filters or BonusFilter())

    def resource_totals(self, resource_id: UUID) -> ResourceBonusTotals:
        """Counts by classification and amounts by decision state."""
        if self._resources.get(resource_id) is None:
            raise ResourceNotFoundError(str(resource_id))
        return summarize_records(
            resource_id, self._bonuses.list(BonusFilter(resource_id=resource_id))
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_evaluable(self, task: TaskInfo) -> None:
        if not task.is_completed:
            raise TaskNotCompletedError(str(task.id), task.status.value)
        if task.actual_minutes is None:
            raise MissingActualTimeError(str(task.id))

    def _pending(self, bonus_id: UUID) -> BonusRecord:
        record = self._bonuses.get(bonus_id)
        if record is None:
            raise BonusNotFoundError(str(bonus_id))
        if not record.is_pending:
            raise BonusNotPendingError(str(bonus_id), record.status.value)
        return record

    def _decide(
        self,
        bonus_id: UUID,
        status: BonusStatus,
        audit_action: AuditAction,
        actor: Actor,
        comment: str | None,
        remediation: RemediationAction | None = None,
    ) -> BonusRecord:
        record = self._bonuses.decide(
            bonus_id,
            status=status,
            manager_id=actor.actor_id,
            decided_at=self._clock.now(),
            comment=comment,
            remediation=remediation,
        )
        self._auditor.record_bonus_decision(
            bonus_id=bonus_id,
            action=audit_action,
            previous_status=BonusStatus.PENDING.value,
            new_status=status.value,
            actor_id=actor.actor_id,
            comment=comment,
            remediation=remediation.value if remediation else None,
        )
        return record


def _parse_remediation(value: RemediationAction | str | None) -> RemediationAction:
    if value is None:
        raise InvalidRemediationError(value)
    try:
        return RemediationAction(value)
    except ValueError as exc:
        raise InvalidRemediationError(value) from exc


def summarize_records(resource_id: UUID, records: list[BonusRecord]) -> ResourceBonusTotals:
    """Fold a resource's records into counts and amounts."""
    counts = {c: 0 for c in BonusClassification}
    amounts = {s: Decimal("0") for s in BonusStatus}
    approved_bonus = Decimal("0")
    approved_penalty = Decimal("0")

    for record in records:
        counts[record.classification] += 1
        amounts[record.status] += record.amount
        if record.status is BonusStatus.APPROVED:
            if record.amount >= 0:
                approved_bonus += record.amount
            else:
                approved_penalty += record.amount

    return ResourceBonusTotals(
        resource_id=resource_id,
        positive_count=counts[BonusClassification.POSITIVE],
        zero_count=counts[BonusClassification.ZERO],
        negative_count=counts[BonusClassification.NEGATIVE],
        approved_amount=quantize_amount(amounts[BonusStatus.APPROVED]),
        pending_amount=quantize_amount(amounts[BonusStatus.PENDING]),
        rejected_amount=quantize_amount(amounts[BonusStatus.REJECTED]),
        approved_bonus_amount=quantize_amount(approved_bonus),
        approved_penalty_amount=quantize_amount(approved_penalty),
    )

"""
AuditorService -- tamper-evident audit trail and hash chain maintenance.

Responsibility:
    Creates immutable, hash-chained audit events for every significant
    state change in the hour ledger: task completion, bonus evaluation and
    disposition, annual-hour deductions, redistributions, and project
    assignments.  Provides chain validation and per-entity trace queries.

Architecture position:
    Kernel > Services -- imperative shell, called by the module services
    (MarginService, BonusService, RedistributionService, WorkService).

Invariants enforced:
    - Sequence monotonicity via SequenceService (never max+1).
    - Chain integrity: ``hash = H(entity_type | entity_id | action |
      payload_hash | prev_hash)``.
    - Append-only: audit events are never modified or deleted (ORM listener).

Failure modes:
    - AuditChainBrokenError: a stored hash, payload hash, or prev_hash link
      does not match its recomputed value.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from hours_kernel.domain.clock import Clock, SystemClock
from hours_kernel.exceptions import AuditChainBrokenError
from hours_kernel.logging_config import get_logger
from hours_kernel.models.audit_event import AuditAction, AuditEvent
from hours_kernel.services.sequence_service import SequenceService
from hours_kernel.utils.hashing import hash_audit_event, hash_payload

logger = get_logger("services.auditor")


@dataclass(frozen=True)
class AuditTraceEntry:
    """A single entry in an audit trace."""

    seq: int
    action: AuditAction
    occurred_at: datetime
    actor_id: UUID
    payload: dict[str, Any]
    hash: str


@dataclass(frozen=True)
class AuditTrace:
    """All audit events for one entity, in chain order."""

    entity_type: str
    entity_id: UUID
    entries: tuple[AuditTraceEntry, ...]

    @property
    def actions(self) -> tuple[AuditAction, ...]:
        return tuple(e.action for e in self.entries)

    @property
    def last_action(self) -> AuditAction | None:
        return self.entries[-1].action if self.entries else None


class AuditorService:
    """
    Service for creating and validating tamper-evident audit events.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence_service = SequenceService(session)

    def _get_last_hash(self) -> str | None:
        last_event = self._session.execute(
            select(AuditEvent).order_by(AuditEvent.seq.desc()).limit(1)
        ).scalar_one_or_none()

        return last_event.hash if last_event else None

    def _create_audit_event(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        actor_id: UUID,
        payload: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """
        Create a new audit event linked to its predecessor.

        Postconditions:
            - A new ``AuditEvent`` row is flushed with a monotonically
              increasing ``seq`` and a valid hash chain link.
        """
        seq = self._sequence_service.next_value(SequenceService.AUDIT_EVENT)
        prev_hash = self._get_last_hash()

        payload_data = payload or {}
        computed_payload_hash = hash_payload(payload_data)

        event_hash = hash_audit_event(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action.value,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
        )

        audit_event = AuditEvent(
            seq=seq,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action.value,
            actor_id=actor_id,
            occurred_at=self._clock.now(),
            payload=payload_data,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
            hash=event_hash,
        )

        self._session.add(audit_event)
        self._session.flush()

        logger.info(
            "audit_event_created",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "action": action.value,
                "seq": seq,
            },
        )

        return audit_event

    # Work lifecycle

    def record_task_completed(
        self,
        task_id: UUID,
        estimated_minutes: int,
        actual_minutes: int,
        actor_id: UUID,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="Task",
            entity_id=task_id,
            action=AuditAction.TASK_COMPLETED,
            actor_id=actor_id,
            payload={
                "estimated_minutes": estimated_minutes,
                "actual_minutes": actual_minutes,
            },
        )

    # Bonus lifecycle

    def record_bonus_evaluated(
        self,
        bonus_id: UUID,
        task_id: UUID,
        classification: str,
        amount: Decimal,
        actor_id: UUID,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="BonusRecord",
            entity_id=bonus_id,
            action=AuditAction.BONUS_EVALUATED,
            actor_id=actor_id,
            payload={
                "task_id": str(task_id),
                "classification": classification,
                "amount": str(amount),
            },
        )

    def record_bonus_decision(
        self,
        bonus_id: UUID,
        action: AuditAction,
        previous_status: str,
        new_status: str,
        actor_id: UUID,
        comment: str | None = None,
        remediation: str | None = None,
    ) -> AuditEvent:
        """
        Record an approve / reject / remediate decision.

        Preconditions:
            - ``action`` is one of BONUS_APPROVED, BONUS_REJECTED,
              BONUS_REMEDIATED.
        """
        payload: dict[str, Any] = {
            "previous_status": previous_status,
            "new_status": new_status,
        }
        if comment is not None:
            payload["comment"] = comment
        if remediation is not None:
            payload["remediation"] = remediation
        return self._create_audit_event(
            entity_type="BonusRecord",
            entity_id=bonus_id,
            action=action,
            actor_id=actor_id,
            payload=payload,
        )

    def record_hours_deducted(
        self,
        resource_id: UUID,
        bonus_id: UUID,
        hours: Decimal,
        actor_id: UUID,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="Resource",
            entity_id=resource_id,
            action=AuditAction.HOURS_DEDUCTED,
            actor_id=actor_id,
            payload={"bonus_id": str(bonus_id), "hours": str(hours)},
        )

    # Hour ledger

    def record_redistribution_created(
        self,
        redistribution_id: UUID,
        source_task_id: UUID,
        destination_task_id: UUID,
        withdraw_minutes: int,
        grant_minutes: int,
        justification: str,
        actor_id: UUID,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="Redistribution",
            entity_id=redistribution_id,
            action=AuditAction.REDISTRIBUTION_CREATED,
            actor_id=actor_id,
            payload={
                "source_task_id": str(source_task_id),
                "destination_task_id": str(destination_task_id),
                "withdraw_minutes": withdraw_minutes,
                "grant_minutes": grant_minutes,
                "justification": justification,
            },
        )

    def record_redistribution_cancelled(
        self,
        redistribution_id: UUID,
        reason: str,
        actor_id: UUID,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type="Redistribution",
            entity_id=redistribution_id,
            action=AuditAction.REDISTRIBUTION_CANCELLED,
            actor_id=actor_id,
            payload={"reason": reason},
        )

    # Margin assignments

    def record_assignment(
        self,
        assignment_id: UUID,
        action: AuditAction,
        project_id: UUID,
        resource_id: UUID,
        actor_id: UUID,
        final_rate: Decimal | None = None,
        assigned_minutes: int | None = None,
    ) -> AuditEvent:
        payload: dict[str, Any] = {
            "project_id": str(project_id),
            "resource_id": str(resource_id),
        }
        if final_rate is not None:
            payload["final_rate"] = str(final_rate)
        if assigned_minutes is not None:
            payload["assigned_minutes"] = assigned_minutes
        return self._create_audit_event(
            entity_type="ProjectAssignment",
            entity_id=assignment_id,
            action=action,
            actor_id=actor_id,
            payload=payload,
        )

    # Validation

    def validate_chain(self) -> bool:
        """
        Validate the entire audit chain.

        Postconditions:
            - Returns ``True`` only if every event's payload hash and hash
              match their recomputed values and every ``prev_hash`` matches
              its predecessor's ``hash``.

        Raises:
            AuditChainBrokenError: If validation fails at any point.
        """
        events = self._session.execute(
            select(AuditEvent).order_by(AuditEvent.seq)
        ).scalars().all()

        if not events:
            return True

        if not events[0].is_genesis:
            logger.critical("audit_chain_broken", extra={"seq": events[0].seq})
            raise AuditChainBrokenError(str(events[0].id), "None", events[0].prev_hash)

        for i, event in enumerate(events):
            action_value = (
                event.action.value if isinstance(event.action, AuditAction) else event.action
            )

            expected_payload_hash = hash_payload(event.payload or {})
            if event.payload_hash != expected_payload_hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(
                    str(event.id), expected_payload_hash, event.payload_hash
                )

            expected_hash = hash_audit_event(
                entity_type=event.entity_type,
                entity_id=str(event.entity_id),
                action=action_value,
                payload_hash=event.payload_hash,
                prev_hash=event.prev_hash,
            )
            if event.hash != expected_hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(str(event.id), expected_hash, event.hash)

            if i > 0:
                expected_prev = events[i - 1].hash
                if event.prev_hash != expected_prev:
                    logger.critical("audit_chain_broken", extra={"seq": event.seq})
                    raise AuditChainBrokenError(
                        str(event.id), expected_prev, event.prev_hash or "None"
                    )

        logger.info("audit_chain_valid", extra={"event_count": len(events)})
        return True

    def get_trace(self, entity_type: str, entity_id: UUID) -> AuditTrace:
        """All audit events for one entity, ordered by sequence."""
        events = self._session.execute(
            select(AuditEvent)
            .where(AuditEvent.entity_type == entity_type)
            .where(AuditEvent.entity_id == entity_id)
            .order_by(AuditEvent.seq)
        ).scalars().all()

        entries = tuple(
            AuditTraceEntry(
                seq=e.seq,
                action=AuditAction(e.action),
                occurred_at=e.occurred_at,
                actor_id=e.actor_id,
                payload=e.payload or {},
                hash=e.hash,
            )
            for e in events
        )

        return AuditTrace(entity_type=entity_type, entity_id=entity_id, entries=entries)

"""
Module: hours_kernel.models.audit_event
Responsibility: ORM persistence for the tamper-evident audit hash chain.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Audit records are append-only; no UPDATE or DELETE (ORM listener).
    - Hash chain integrity: hash = H(entity_type | entity_id | action |
      payload_hash | prev_hash).  Validated by AuditorService.
    - seq is monotonically increasing, allocated by SequenceService.

Minimum coverage (each action type generates at least one AuditEvent):
    - TASK_COMPLETED
    - BONUS_EVALUATED, BONUS_APPROVED, BONUS_REJECTED, BONUS_REMEDIATED
    - HOURS_DEDUCTED
    - REDISTRIBUTION_CREATED, REDISTRIBUTION_CANCELLED
    - ASSIGNMENT_CREATED, ASSIGNMENT_UPDATED, ASSIGNMENT_REMOVED
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, BigInteger, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from hours_kernel.db.base import Base, UUIDString


class AuditAction(str, Enum):
    """Types of auditable actions."""

    # Work lifecycle
    TASK_COMPLETED = "task_completed"

    # Bonus lifecycle
    BONUS_EVALUATED = "bonus_evaluated"
    BONUS_APPROVED = "bonus_approved"
    BONUS_REJECTED = "bonus_rejected"
    BONUS_REMEDIATED = "bonus_remediated"
    HOURS_DEDUCTED = "hours_deducted"

    # Hour ledger
    REDISTRIBUTION_CREATED = "redistribution_created"
    REDISTRIBUTION_CANCELLED = "redistribution_cancelled"

    # Margin assignments
    ASSIGNMENT_CREATED = "assignment_created"
    ASSIGNMENT_UPDATED = "assignment_updated"
    ASSIGNMENT_REMOVED = "assignment_removed"


class AuditEvent(Base):
    """
    Audit event with hash chain for tamper evidence.

    Guarantees:
        - seq is globally unique and monotonically increasing.
        - prev_hash is None only for the genesis event.

    Non-goals:
        - This model does NOT enforce hash correctness at INSERT time;
          that is the responsibility of AuditorService.
    """

    __tablename__ = "audit_events"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_action", "action"),
        Index("idx_audit_occurred", "occurred_at"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    # e.g. "Task", "BonusRecord", "Redistribution", "ProjectAssignment"
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    action: Mapped[AuditAction] = mapped_column(String(50), nullable=False)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    # Null for the genesis event
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditEvent {self.action} on {self.entity_type}:{self.entity_id}>"

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None

"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Credits, debits and bonus totals are never stored; they are folded from
tasks, bonus records and redistribution records on every read.  That only
works if the facts being folded cannot change behind the fold's back.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events and check our invariants:

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |                                                        ^
         v                                                        |
    [before_delete event] --> _check_*_delete() -----------------+
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                | When Immutable                 | Mutable fields
----------------------|--------------------------------|-----------------------------
AuditEvent            | ALWAYS (from creation)         | none
RedistributionRecord  | ALWAYS; never deleted          | cancellation fields, once,
                      |                                | while the record is active
BonusRecord           | After status leaves pending    | none; never deleted
Task                  | actual_minutes once set        | every other field

updated_at/updated_by_id are audit metadata and always allowed to change.

===============================================================================
USAGE
===============================================================================

    from hours_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup, after models import

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()

Module-level ORM models are imported inline to keep the kernel free of
import cycles with hours_modules.
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from hours_kernel.exceptions import ImmutabilityViolationError
from hours_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

AUDIT_METADATA_FIELDS = frozenset({"updated_at", "updated_by_id"})

REDISTRIBUTION_CANCELLATION_FIELDS = frozenset({
    "status",
    "cancelled_by_id",
    "cancelled_at",
    "cancellation_reason",
})


def _block(entity_type: str, entity_id, operation: str, reason: str, field: str | None = None):
    extra = {
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "operation": operation,
    }
    if field is not None:
        extra["field"] = field
    logger.error("immutability_violation_blocked", extra=extra)
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _changed_fields(target) -> list[str]:
    return [attr.key for attr in inspect(target).attrs if attr.history.has_changes()]


def _previous_value(target, field: str):
    """Value the attribute had before this flush's pending change."""
    history = get_history(target, field)
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return getattr(target, field)


# =============================================================================
# AuditEvent -- always immutable
# =============================================================================


def _check_audit_event_immutability(mapper, connection, target):
    _block(
        "AuditEvent", target.id, "UPDATE",
        "Audit events are immutable and cannot be modified",
    )


def _check_audit_event_delete(mapper, connection, target):
    _block("AuditEvent", target.id, "DELETE", "Audit events cannot be deleted")


# =============================================================================
# RedistributionRecord -- append-only, one-time cancellation
# =============================================================================


def _check_redistribution_immutability(mapper, connection, target):
    """
    Allow exactly one transition: active -> cancelled, touching only the
    cancellation fields.  Everything else on the record is frozen.
    """
    previous_status = _previous_value(target, "status")
    previous_status = getattr(previous_status, "value", previous_status)

    if previous_status != "active":
        _block(
            "RedistributionRecord", target.id, "UPDATE",
            "Cancelled redistributions are immutable",
        )

    for field in _changed_fields(target):
        if field in AUDIT_METADATA_FIELDS or field in REDISTRIBUTION_CANCELLATION_FIELDS:
            continue
        _block(
            "RedistributionRecord", target.id, "UPDATE",
            f"Cannot modify field '{field}' on a redistribution record",
            field=field,
        )

    new_status = getattr(target.status, "value", target.status)
    if new_status not in ("active", "cancelled"):
        _block(
            "RedistributionRecord", target.id, "UPDATE",
            f"Invalid redistribution status '{new_status}'",
            field="status",
        )


def _check_redistribution_delete(mapper, connection, target):
    _block(
        "RedistributionRecord", target.id, "DELETE",
        "Redistribution records cannot be deleted; cancel them instead",
    )


# =============================================================================
# BonusRecord -- frozen once decided
# =============================================================================


def _check_bonus_record_immutability(mapper, connection, target):
    previous_status = _previous_value(target, "status")
    previous_status = getattr(previous_status, "value", previous_status)

    if previous_status == "pending":
        return

    for field in _changed_fields(target):
        if field in AUDIT_METADATA_FIELDS:
            continue
        _block(
            "BonusRecord", target.id, "UPDATE",
            f"Cannot modify field '{field}' on a {previous_status} bonus record",
            field=field,
        )


def _check_bonus_record_delete(mapper, connection, target):
    _block("BonusRecord", target.id, "DELETE", "Bonus records cannot be deleted")


# =============================================================================
# Task -- actual minutes written once
# =============================================================================


def _check_task_actual_minutes(mapper, connection, target):
    history = get_history(target, "actual_minutes")
    if not history.has_changes():
        return
    if history.deleted and history.deleted[0] is not None:
        _block(
            "Task", target.id, "UPDATE",
            "Actual minutes are fixed once recorded",
            field="actual_minutes",
        )


def _listeners():
    from hours_kernel.models.audit_event import AuditEvent
    from hours_kernel.models.work import TaskModel
    from hours_modules.bonus.orm import BonusRecordModel
    from hours_modules.ledger.orm import RedistributionRecordModel

    return (
        (AuditEvent, "before_update", _check_audit_event_immutability),
        (AuditEvent, "before_delete", _check_audit_event_delete),
        (RedistributionRecordModel, "before_update", _check_redistribution_immutability),
        (RedistributionRecordModel, "before_delete", _check_redistribution_delete),
        (BonusRecordModel, "before_update", _check_bonus_record_immutability),
        (BonusRecordModel, "before_delete", _check_bonus_record_delete),
        (TaskModel, "before_update", _check_task_actual_minutes),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call after all models are imported and before any database operations.
    Idempotent.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that intentionally violate immutability
    rules to verify detection (e.g. audit chain tampering).
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)

"""Kernel services (write side)."""

from hours_kernel.services.auditor_service import AuditorService, AuditTrace, AuditTraceEntry
from hours_kernel.services.sequence_service import SequenceService

__all__ = [
    "AuditTrace",
    "AuditTraceEntry",
    "AuditorService",
    "SequenceService",
]

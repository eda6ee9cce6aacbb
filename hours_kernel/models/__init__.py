"""ORM models owned by the hours kernel."""

from hours_kernel.models.audit_event import AuditAction, AuditEvent
from hours_kernel.models.resource import ResourceModel
from hours_kernel.models.work import ActivityModel, ClientModel, ProjectModel, TaskModel

__all__ = [
    "ActivityModel",
    "AuditAction",
    "AuditEvent",
    "ClientModel",
    "ProjectModel",
    "ResourceModel",
    "TaskModel",
]

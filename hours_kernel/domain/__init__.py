"""
Pure domain layer.

Immutable DTOs, value helpers, identity and the injectable clock, with no
dependency on the ORM, the database, or I/O.
"""

from hours_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from hours_kernel.domain.dtos import (
    ActivityInfo,
    ClientInfo,
    ProjectInfo,
    ResourceInfo,
    TaskInfo,
    TaskStatus,
)
from hours_kernel.domain.identity import Actor, ActorRole, require_manager

__all__ = [
    "ActivityInfo",
    "Actor",
    "ActorRole",
    "ClientInfo",
    "Clock",
    "DeterministicClock",
    "ProjectInfo",
    "ResourceInfo",
    "SystemClock",
    "TaskInfo",
    "TaskStatus",
    "require_manager",
]

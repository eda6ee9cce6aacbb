"""Task completion result."""

from __future__ import annotations

from dataclasses import dataclass

from hours_kernel.domain.dtos import TaskInfo
from hours_modules.bonus.models import BonusRecord


@dataclass(frozen=True)
class TaskCompletion:
    task: TaskInfo
    bonus: BonusRecord | None = None

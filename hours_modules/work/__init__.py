"""Task completion."""

from hours_modules.work.models import TaskCompletion

__all__ = ["TaskCompletion"]

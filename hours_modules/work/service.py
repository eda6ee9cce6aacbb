"""
Work Module Service (``hours_modules.work.service``).

Responsibility
--------------
Records the actual minutes of a finished task.  Completion is the event
that fixes a task's variance and so opens its credit or debit and makes it
eligible for bonus evaluation.

Invariants enforced
-------------------
* Actual minutes are a positive integer and are written exactly once
  (ORM listener backs this up).
* With ``evaluate=True`` completion and bonus evaluation commit together
  or not at all.

Audit relevance
---------------
Appends ``task_completed``; evaluation appends its own event.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from hours_config import HoursSettings, get_active_config
from hours_kernel.db.repositories import SqlTaskRepository
from hours_kernel.domain.clock import Clock, SystemClock
from hours_kernel.domain.dtos import TASK_TRANSITIONS, TaskStatus
from hours_kernel.domain.identity import Actor
from hours_kernel.domain.repositories import TaskRepository
from hours_kernel.domain.values import require_minutes
from hours_kernel.exceptions import TaskAlreadyCompletedError, TaskNotFoundError
from hours_kernel.logging_config import LogContext, get_logger
from hours_kernel.services.auditor_service import AuditorService
from hours_modules.bonus.service import BonusService
from hours_modules.work.models import TaskCompletion

logger = get_logger("modules.work.service")


class WorkService:
    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: HoursSettings | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or get_active_config()
        self._tasks: TaskRepository = SqlTaskRepository(session)
        self._auditor = AuditorService(session, self._clock)

    def complete_task(
        self,
        task_id: UUID,
        actual_minutes: int,
        actor: Actor,
        evaluate: bool = False,
    ) -> TaskCompletion:
        """Mark a task completed with its actual minutes; optionally evaluate its bonus."""
        actual = require_minutes(actual_minutes, "actual_minutes")

        with LogContext.bind(task_id=task_id, actor_id=actor.actor_id):
            try:
                task = self._tasks.lock(task_id)
                if task is None:
                    raise TaskNotFoundError(str(task_id))
                if TaskStatus.COMPLETED not in TASK_TRANSITIONS[task.status]:
                    raise TaskAlreadyCompletedError(str(task_id))

                completed = self._tasks.complete(
                    task_id,
                    actual_minutes=actual,
                    completed_at=self._clock.now(),
                    actor_id=actor.actor_id,
                )
                self._auditor.record_task_completed(
                    task_id=task_id,
                    estimated_minutes=completed.estimated_minutes,
                    actual_minutes=actual,
                    actor_id=actor.actor_id,
                )

                bonus = None
                if evaluate:
                    bonus = BonusService(
                        self._session, self._clock, self._settings
                    ).evaluate_in_transaction(task_id, actor)

                self._session.commit()
                logger.info(
                    "task_completed",
                    extra={
                        "estimated_minutes": completed.estimated_minutes,
                        "actual_minutes": actual,
                        "variance_minutes": completed.variance_minutes,
                        "evaluated": bonus is not None,
                    },
                )
                return TaskCompletion(task=completed, bonus=bonus)
            except Exception:
                self._session.rollback()
                logger.warning("task_completion_rolled_back", exc_info=True)
                raise

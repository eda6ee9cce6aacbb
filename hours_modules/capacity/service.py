"""
Capacity Module Service (``hours_modules.capacity.service``).

Read-only: loads the resource and its tasks due within the period and
hands them to the pure calculator.  Nothing is written or cached.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from hours_config import HoursSettings, get_active_config
from hours_kernel.db.repositories import SqlResourceRepository, SqlTaskRepository
from hours_kernel.domain.clock import Clock, SystemClock
from hours_kernel.domain.dtos import TaskStatus
from hours_kernel.domain.repositories import ResourceRepository, TaskRepository
from hours_kernel.exceptions import ResourceNotFoundError
from hours_kernel.logging_config import get_logger
from hours_modules.capacity.calculator import build_report, parse_period, period_range
from hours_modules.capacity.models import CapacityPeriod, CapacityReport

logger = get_logger("modules.capacity.service")


class CapacityService:
    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: HoursSettings | None = None,
    ):
        self._clock = clock or SystemClock()
        self._settings = settings or get_active_config()
        self._resources: ResourceRepository = SqlResourceRepository(session)
        self._tasks: TaskRepository = SqlTaskRepository(session)

    def get_capacity(
        self,
        resource_id: UUID,
        period: CapacityPeriod | str,
        as_of: date | None = None,
    ) -> CapacityReport:
        """
        Capacity report for the period containing ``as_of``.

        ``as_of`` defaults to today according to the injected clock.
        """
        period = parse_period(period)
        as_of = as_of or self._clock.today()

        resource = self._resources.get(resource_id)
        if resource is None:
            raise ResourceNotFoundError(str(resource_id))

        settings = self._settings.capacity
        window = period_range(period, as_of)
        tasks = self._tasks.list_due_between(
            resource_id,
            window.start,
            window.end,
            frozenset(TaskStatus(s) for s in settings.counted_statuses),
        )
        report = build_report(resource, period, as_of, tasks, settings)
        logger.debug(
            "capacity_computed",
            extra={
                "resource_id": str(resource_id),
                "period": period.value,
                "utilization_percentage": str(report.utilization_percentage),
                "status": report.status.value,
            },
        )
        return report

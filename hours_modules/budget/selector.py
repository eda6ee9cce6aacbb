"""
Module: hours_modules.budget.selector
Responsibility: Budget and capacity overview for managers.  Rolls up
    completed tasks into performance counts, minute totals, bonus totals by
    decision state, per-client and per-project budget consumption, and
    per-resource cost and capacity.
Architecture position: Modules > Budget.  Reads through repositories and
    folds through ``rollup.py`` and the capacity calculator.

Invariants enforced:
    - Pure read: never flushes or commits, never caches.
    - Task cost uses the project's final rate for the resource, falling
      back to the resource's base hourly cost.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from sqlalchemy.orm import Session

from hours_config import HoursSettings, get_active_config
from hours_kernel.db.repositories import (
    SqlClientRepository,
    SqlProjectRepository,
    SqlResourceRepository,
    SqlTaskRepository,
)
from hours_kernel.domain.clock import Clock, SystemClock
from hours_kernel.domain.dtos import TaskStatus
from hours_kernel.domain.repositories import (
    ClientRepository,
    ProjectRepository,
    ResourceRepository,
    TaskRepository,
)
from hours_kernel.domain.values import quantize_amount
from hours_kernel.exceptions import (
    ClientNotFoundError,
    ProjectNotFoundError,
    ResourceNotFoundError,
)
from hours_kernel.logging_config import get_logger
from hours_kernel.selectors.base import BaseSelector
from hours_modules.bonus.repository import BonusRepository, SqlBonusRepository
from hours_modules.budget.models import BudgetFilter, BudgetOverview, ResourceLine
from hours_modules.budget.rollup import (
    bonus_state_totals,
    budget_line,
    performance_counts,
    sum_by,
    task_costs,
)
from hours_modules.capacity.calculator import build_report, period_range
from hours_modules.margin.repository import AssignmentRepository, SqlAssignmentRepository

logger = get_logger("modules.budget.selector")


class BudgetSelector(BaseSelector):
    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: HoursSettings | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._settings = settings or get_active_config()
        self._tasks: TaskRepository = SqlTaskRepository(session)
        self._clients: ClientRepository = SqlClientRepository(session)
        self._projects: ProjectRepository = SqlProjectRepository(session)
        self._resources: ResourceRepository = SqlResourceRepository(session)
        self._assignments: AssignmentRepository = SqlAssignmentRepository(session)
        self._bonuses: BonusRepository = SqlBonusRepository(session)

    def get_budget_overview(self, filters: BudgetFilter | None = None) -> BudgetOverview:
        """
        Roll up completed tasks within the filters.

        Clients, projects and resources appear when they have completed
        tasks in scope, or when the filter names them explicitly.
        """
        filters = filters or BudgetFilter()
        self._require_filtered_entities(filters)

        tasks = self._tasks.list_completed(
            client_id=filters.client_id,
            project_id=filters.project_id,
            resource_id=filters.resource_id,
            completed_from=filters.completed_from,
            completed_to=filters.completed_to,
        )

        project_ids = {t.project_id for t in tasks}
        if filters.project_id is not None:
            project_ids.add(filters.project_id)
        projects = self._projects.get_many(project_ids)

        client_ids = {p.client_id for p in projects.values()}
        if filters.client_id is not None:
            client_ids.add(filters.client_id)
        clients = self._clients.get_many(client_ids)

        resource_ids = {t.resource_id for t in tasks if t.resource_id is not None}
        if filters.resource_id is not None:
            resource_ids.add(filters.resource_id)
        resources = self._resources.get_many(resource_ids)

        final_rates = self._assignments.final_rates(
            (t.project_id, t.resource_id) for t in tasks if t.resource_id is not None
        )
        costs = task_costs(tasks, final_rates, resources)
        budget_settings = self._settings.budget

        project_cost, project_count = sum_by(tasks, costs, lambda t: t.project_id)
        client_cost, client_count = sum_by(
            tasks, costs, lambda t: projects[t.project_id].client_id
        )

        project_lines = tuple(
            budget_line(
                p.id, p.name, p.budget, project_cost[p.id], project_count[p.id], budget_settings
            )
            for p in sorted(projects.values(), key=lambda p: p.name)
            if filters.client_id is None or p.client_id == filters.client_id
        )
        client_lines = tuple(
            budget_line(
                c.id, c.name, c.budget, client_cost[c.id], client_count[c.id], budget_settings
            )
            for c in sorted(clients.values(), key=lambda c: c.name)
        )

        overview = BudgetOverview(
            filters=filters,
            performance=performance_counts(tasks),
            estimated_minutes=sum(t.estimated_minutes for t in tasks),
            actual_minutes=sum(t.actual_minutes or 0 for t in tasks),
            total_consumed=quantize_amount(sum(costs.values(), Decimal("0"))),
            bonus_totals=bonus_state_totals(
                self._bonuses.list_for_tasks([t.id for t in tasks])
            ),
            clients=client_lines,
            projects=project_lines,
            resources=self._resource_lines(filters, tasks, costs, resources),
        )
        logger.info(
            "budget_overview_computed",
            extra={
                "task_count": overview.task_count,
                "project_count": len(project_lines),
                "resource_count": len(overview.resources),
                "total_consumed": str(overview.total_consumed),
            },
        )
        return overview

    def _resource_lines(self, filters, tasks, costs, resources) -> tuple[ResourceLine, ...]:
        as_of = filters.as_of or self._clock.today()
        window = period_range(filters.period, as_of)
        capacity_settings = self._settings.capacity
        statuses = frozenset(TaskStatus(s) for s in capacity_settings.counted_statuses)

        by_resource = defaultdict(list)
        for task in tasks:
            if task.resource_id is not None:
                by_resource[task.resource_id].append(task)

        lines = []
        for resource in sorted(resources.values(), key=lambda r: r.name):
            own = by_resource.get(resource.id, [])
            due = self._tasks.list_due_between(resource.id, window.start, window.end, statuses)
            lines.append(
                ResourceLine(
                    resource_id=resource.id,
                    name=resource.name,
                    task_count=len(own),
                    actual_minutes=sum(t.actual_minutes or 0 for t in own),
                    consumed=quantize_amount(sum((costs[t.id] for t in own), Decimal("0"))),
                    capacity=build_report(
                        resource, filters.period, as_of, due, capacity_settings
                    ),
                )
            )
        return tuple(lines)

    def _require_filtered_entities(self, filters: BudgetFilter) -> None:
        if filters.client_id is not None and self._clients.get(filters.client_id) is None:
            raise ClientNotFoundError(str(filters.client_id))
        if filters.project_id is not None and self._projects.get(filters.project_id) is None:
            raise ProjectNotFoundError(str(filters.project_id))
        if filters.resource_id is not None and self._resources.get(filters.resource_id) is None:
            raise ResourceNotFoundError(str(filters.resource_id))

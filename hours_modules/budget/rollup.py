"""
Budget rollup -- pure functions over completed tasks.

    cost(task) = actual/60 x rate
    rate       = final rate of the (project, resource) margin record,
                 or the resource's base hourly cost when there is none

Budget status per line:

    consumed >  budget x over_budget_ratio   over_budget
    consumed >= budget x near_budget_ratio   near_budget
    otherwise                                within_budget
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from decimal import Decimal
from uuid import UUID

from hours_config.schema import BudgetSettings
from hours_kernel.domain.dtos import ResourceInfo, TaskInfo
from hours_kernel.domain.values import (
    ONE_PLACE,
    cost_of_minutes,
    quantize_amount,
    quantize_percentage,
    ratio_percentage,
)
from hours_modules.bonus.models import BonusRecord, BonusStatus
from hours_modules.budget.models import (
    BonusStateTotal,
    BudgetLine,
    BudgetStatus,
    PerformanceCounts,
)


def task_rate(
    task: TaskInfo,
    final_rates: Mapping[tuple[UUID, UUID], Decimal],
    resources: Mapping[UUID, ResourceInfo],
) -> Decimal:
    if task.resource_id is None:
        return Decimal("0")
    rate = final_rates.get((task.project_id, task.resource_id))
    if rate is not None:
        return rate
    resource = resources.get(task.resource_id)
    return resource.hourly_cost if resource else Decimal("0")


def task_costs(
    tasks: Iterable[TaskInfo],
    final_rates: Mapping[tuple[UUID, UUID], Decimal],
    resources: Mapping[UUID, ResourceInfo],
) -> dict[UUID, Decimal]:
    """Unrounded cost of each task's actual minutes."""
    return {
        t.id: cost_of_minutes(task_rate(t, final_rates, resources), t.actual_minutes or 0)
        for t in tasks
    }


def budget_status(consumed: Decimal, budget: Decimal, settings: BudgetSettings) -> BudgetStatus:
    if consumed > budget * settings.over_budget_ratio:
        return BudgetStatus.OVER_BUDGET
    if budget > 0 and consumed >= budget * settings.near_budget_ratio:
        return BudgetStatus.NEAR_BUDGET
    return BudgetStatus.WITHIN_BUDGET


def budget_line(
    entity_id: UUID,
    name: str,
    budget: Decimal,
    consumed: Decimal,
    task_count: int,
    settings: BudgetSettings,
) -> BudgetLine:
    consumed = quantize_amount(consumed)
    return BudgetLine(
        entity_id=entity_id,
        name=name,
        budget=budget,
        consumed=consumed,
        consumed_percentage=quantize_percentage(ratio_percentage(consumed, budget), ONE_PLACE),
        status=budget_status(consumed, budget, settings),
        task_count=task_count,
    )


def sum_by(
    tasks: Iterable[TaskInfo],
    costs: Mapping[UUID, Decimal],
    key,
) -> tuple[dict, dict]:
    """Cost and task count grouped by ``key(task)``."""
    totals: dict = defaultdict(lambda: Decimal("0"))
    counts: dict = defaultdict(int)
    for task in tasks:
        group = key(task)
        totals[group] += costs[task.id]
        counts[group] += 1
    return totals, counts


def performance_counts(tasks: Iterable[TaskInfo]) -> PerformanceCounts:
    positive = zero = negative = 0
    for task in tasks:
        variance = task.variance_minutes or 0
        if variance > 0:
            positive += 1
        elif variance == 0:
            zero += 1
        else:
            negative += 1
    return PerformanceCounts(positive=positive, zero=zero, negative=negative)


def bonus_state_totals(records: Iterable[BonusRecord]) -> tuple[BonusStateTotal, ...]:
    counts = {s: 0 for s in BonusStatus}
    amounts = {s: Decimal("0") for s in BonusStatus}
    for record in records:
        counts[record.status] += 1
        amounts[record.status] += record.amount
    return tuple(
        BonusStateTotal(status=s, count=counts[s], amount=quantize_amount(amounts[s]))
        for s in BonusStatus
    )

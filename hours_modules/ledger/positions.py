"""
Credit/debit fold -- pure functions over tasks and redistribution records.

    credit(task) = variance - sum(withdraw of ACTIVE records sourced from task)
    debit(task)  = |variance| - sum(grant of ACTIVE records targeting task)

Only completed tasks carry a position: positive variance makes a credit,
negative variance a debit.  Cancelled records contribute nothing, so a
cancellation restores the source credit and the destination debit.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from hours_kernel.domain.dtos import TaskInfo
from hours_kernel.domain.values import (
    ONE_PLACE,
    cost_of_minutes,
    quantize_amount,
    quantize_percentage,
    ratio_percentage,
)
from hours_modules.ledger.models import (
    CreditPosition,
    DebitPosition,
    RedistributionRecord,
    ResourceCreditSummary,
)


def withdrawn_by_source(records: Iterable[RedistributionRecord]) -> dict[UUID, int]:
    totals: dict[UUID, int] = defaultdict(int)
    for record in records:
        if record.is_active:
            totals[record.source_task_id] += record.withdraw_minutes
    return totals


def granted_by_destination(records: Iterable[RedistributionRecord]) -> dict[UUID, int]:
    totals: dict[UUID, int] = defaultdict(int)
    for record in records:
        if record.is_active:
            totals[record.destination_task_id] += record.grant_minutes
    return totals


def credit_position(
    task: TaskInfo, records: Iterable[RedistributionRecord]
) -> CreditPosition | None:
    """The task's credit, or None when it is not a completed under-run."""
    return _credit(task, withdrawn_by_source(records))


def _credit(task: TaskInfo, withdrawn: dict[UUID, int]) -> CreditPosition | None:
    variance = task.variance_minutes
    if not task.is_completed or variance is None or variance <= 0:
        return None
    return CreditPosition(
        task_id=task.id,
        task_name=task.name,
        project_id=task.project_id,
        resource_id=task.resource_id,
        variance_minutes=variance,
        withdrawn_minutes=withdrawn.get(task.id, 0),
    )


def debit_position(
    task: TaskInfo, records: Iterable[RedistributionRecord]
) -> DebitPosition | None:
    """The task's debit, or None when it is not a completed overrun."""
    return _debit(task, granted_by_destination(records))


def _debit(task: TaskInfo, granted: dict[UUID, int]) -> DebitPosition | None:
    variance = task.variance_minutes
    if not task.is_completed or variance is None or variance >= 0:
        return None
    return DebitPosition(
        task_id=task.id,
        task_name=task.name,
        project_id=task.project_id,
        resource_id=task.resource_id,
        overrun_minutes=-variance,
        granted_minutes=granted.get(task.id, 0),
    )


def credit_positions(
    tasks: Iterable[TaskInfo], records: Iterable[RedistributionRecord]
) -> list[CreditPosition]:
    """Credits with minutes still available, in task order."""
    withdrawn = withdrawn_by_source(records)
    positions = (_credit(t, withdrawn) for t in tasks)
    return [p for p in positions if p is not None and p.available_minutes > 0]


def debit_positions(
    tasks: Iterable[TaskInfo], records: Iterable[RedistributionRecord]
) -> list[DebitPosition]:
    """Debits still to be compensated, largest first."""
    granted = granted_by_destination(records)
    positions = (_debit(t, granted) for t in tasks)
    open_debits = [p for p in positions if p is not None and p.remaining_minutes > 0]
    return sorted(open_debits, key=lambda p: p.remaining_minutes, reverse=True)


def group_credits_by_resource(
    positions: Iterable[CreditPosition],
) -> list[ResourceCreditSummary]:
    grouped: dict[UUID | None, list[CreditPosition]] = defaultdict(list)
    for position in positions:
        grouped[position.resource_id].append(position)
    return [
        ResourceCreditSummary(resource_id=rid, positions=tuple(items))
        for rid, items in grouped.items()
    ]


def redistribution_valuation(withdraw_minutes: int, base_cost: Decimal | None) -> Decimal:
    """Withdrawn hours priced at the source resource's base cost."""
    if base_cost is None:
        return Decimal("0.00")
    return quantize_amount(cost_of_minutes(base_cost, withdraw_minutes))


def compensation_percentage(credit_minutes: int, debit_minutes: int) -> Decimal:
    """Share of open debit the available credit could cover, one decimal."""
    return quantize_percentage(
        ratio_percentage(Decimal(credit_minutes), Decimal(debit_minutes)), ONE_PLACE
    )

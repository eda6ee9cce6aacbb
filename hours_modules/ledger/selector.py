"""
Module: hours_modules.ledger.selector
Responsibility: Read-only hour ledger queries: open credits and debits,
    per-task positions, redistribution history and ledger statistics.
    Positions are a derived view over completed tasks and active
    redistribution records; there are no stored balances.
Architecture position: Modules > Ledger.  Reads through repositories, folds
    through ``positions.py``.  Never flushes or commits.

Invariants enforced:
    - A credit is never reported below zero and a cancelled redistribution
      contributes nothing to any position.
    - History pages are ordered newest first and carry the total match
      count so callers can page deterministically.
"""

from __future__ import annotations

from datetime import timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from hours_config import HoursSettings, get_active_config
from hours_kernel.db.repositories import SqlResourceRepository, SqlTaskRepository
from hours_kernel.domain.clock import Clock, SystemClock
from hours_kernel.domain.repositories import ResourceRepository, TaskRepository
from hours_kernel.exceptions import TaskNotFoundError
from hours_kernel.selectors.base import BaseSelector
from hours_modules.ledger.models import (
    CreditPosition,
    DebitPosition,
    LedgerStatistics,
    RedistributionEntry,
    RedistributionFilter,
    RedistributionPage,
    ResourceCreditSummary,
)
from hours_modules.ledger.positions import (
    compensation_percentage,
    credit_position,
    credit_positions,
    debit_position,
    debit_positions,
    group_credits_by_resource,
    redistribution_valuation,
)
from hours_modules.ledger.repository import (
    RedistributionRepository,
    SqlRedistributionRepository,
)


class LedgerSelector(BaseSelector):
    """Read side of the hour ledger."""

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
        self._resources: ResourceRepository = SqlResourceRepository(session)
        self._records: RedistributionRepository = SqlRedistributionRepository(session)

    def list_credits(self) -> list[CreditPosition]:
        """Completed under-runs with minutes still available to redistribute."""
        return credit_positions(self._tasks.list_completed(), self._records.list_active())

    def list_debits(self) -> list[DebitPosition]:
        """Completed overruns not yet fully compensated, largest first."""
        return debit_positions(self._tasks.list_completed(), self._records.list_active())

    def credit_for_task(self, task_id: UUID) -> CreditPosition | None:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(str(task_id))
        return credit_position(task, self._records.list_active(source_task_ids=[task_id]))

    def debit_for_task(self, task_id: UUID) -> DebitPosition | None:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(str(task_id))
        return debit_position(
            task, self._records.list_active(destination_task_ids=[task_id])
        )

    def credits_by_resource(self) -> list[ResourceCreditSummary]:
        return group_credits_by_resource(self.list_credits())

    def history(self, filters: RedistributionFilter | None = None) -> RedistributionPage:
        """
        A page of redistribution history.

        Each entry is valued at the withdrawn hours times the source
        resource's base hourly cost.
        """
        filters = filters or RedistributionFilter()
        ledger = self._settings.ledger
        limit = min(filters.limit or ledger.default_page_size, ledger.max_page_size)

        records, total = self._records.search(filters, limit)
        tasks = self._tasks.get_many(
            [r.source_task_id for r in records] + [r.destination_task_id for r in records]
        )
        resources = self._resources.get_many(
            t.resource_id for t in tasks.values() if t.resource_id is not None
        )

        entries = []
        for record in records:
            source = tasks[record.source_task_id]
            destination = tasks[record.destination_task_id]
            source_resource = resources.get(source.resource_id)
            entries.append(
                RedistributionEntry(
                    record=record,
                    source_task_name=source.name,
                    source_project_id=source.project_id,
                    source_resource_id=source.resource_id,
                    destination_task_name=destination.name,
                    destination_resource_id=destination.resource_id,
                    valuation=redistribution_valuation(
                        record.withdraw_minutes,
                        source_resource.hourly_cost if source_resource else None,
                    ),
                )
            )
        return RedistributionPage(
            entries=tuple(entries), total=total, limit=limit, offset=filters.offset
        )

    def statistics(self, window_days: int | None = None) -> LedgerStatistics:
        """Redistribution counts within the window plus current open positions."""
        days = (
            window_days
            if window_days is not None
            else self._settings.ledger.statistics_window_days
        )
        since = self._clock.now() - timedelta(days=days)
        recent = self._records.list_since(since)

        credits = self.list_credits()
        debits = self.list_debits()
        credit_minutes = sum(p.available_minutes for p in credits)
        debit_minutes = sum(p.remaining_minutes for p in debits)

        return LedgerStatistics(
            window_days=days,
            active_count=sum(1 for r in recent if r.is_active),
            cancelled_count=sum(1 for r in recent if not r.is_active),
            active_granted_minutes=sum(r.grant_minutes for r in recent if r.is_active),
            total_granted_minutes=sum(r.grant_minutes for r in recent),
            credit_task_count=len(credits),
            credit_minutes=credit_minutes,
            debit_task_count=len(debits),
            debit_minutes=debit_minutes,
            compensation_percentage=compensation_percentage(credit_minutes, debit_minutes),
        )

"""
Read-side tests for LedgerSelector: positions, history and statistics.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from hours_kernel.exceptions import TaskNotFoundError
from hours_modules.ledger.models import (
    ExistingTaskDestination,
    NewTaskDestination,
    RedistributionFilter,
    RedistributionStatus,
)

DAY = 24 * 3600


@pytest.fixture
def ledger(workspace, create_project, create_activity, create_resource, create_task):
    """
    Ada on Website: credits 30 and 60, debits 30 and 10.
    Grace on Intranet: credit 10.
    """
    project, activity, ada = workspace
    other_project = create_project(name="Intranet")
    other_activity = create_activity(other_project, name="Build")
    grace = create_resource(name="Grace", hourly_cost=Decimal("30"))
    return {
        "project": project,
        "other_project": other_project,
        "ada": ada,
        "grace": grace,
        "credit_a": create_task(activity, ada, 120, actual_minutes=90, name="A"),
        "credit_b": create_task(activity, ada, 100, actual_minutes=40, name="B"),
        "debit_c": create_task(activity, ada, 60, actual_minutes=90, name="C"),
        "debit_d": create_task(activity, ada, 60, actual_minutes=70, name="D"),
        "credit_e": create_task(other_activity, grace, 90, actual_minutes=80, name="E"),
        "open": create_task(activity, ada, 45, name="Open"),
    }


class TestPositions:
    def test_lists_before_any_redistribution(self, ledger, ledger_selector):
        credits = ledger_selector.list_credits()
        assert {p.task_name: p.available_minutes for p in credits} == {
            "A": 30,
            "B": 60,
            "E": 10,
        }
        debits = ledger_selector.list_debits()
        assert [(p.task_name, p.remaining_minutes) for p in debits] == [("C", 30), ("D", 10)]

    def test_fully_used_positions_drop_out(
        self, ledger, ledger_selector, redistribution_service, manager
    ):
        redistribution_service.create_redistribution(
            ledger["credit_a"].id, 30, 30,
            ExistingTaskDestination(ledger["debit_c"].id), "Even out", manager,
        )
        assert "A" not in {p.task_name for p in ledger_selector.list_credits()}
        assert [p.task_name for p in ledger_selector.list_debits()] == ["D"]

        settled = ledger_selector.credit_for_task(ledger["credit_a"].id)
        assert settled.available_minutes == 0
        assert settled.withdrawn_minutes == 30

    def test_single_task_lookups(self, ledger, ledger_selector):
        assert ledger_selector.credit_for_task(ledger["debit_c"].id) is None
        assert ledger_selector.debit_for_task(ledger["credit_a"].id) is None
        assert ledger_selector.credit_for_task(ledger["open"].id) is None
        assert ledger_selector.debit_for_task(ledger["debit_d"].id).overrun_minutes == 10
        with pytest.raises(TaskNotFoundError):
            ledger_selector.credit_for_task(uuid4())

    def test_credits_by_resource(self, ledger, ledger_selector):
        summaries = {s.resource_id: s for s in ledger_selector.credits_by_resource()}
        assert summaries[ledger["ada"].id].available_minutes == 90
        assert summaries[ledger["ada"].id].task_count == 2
        assert summaries[ledger["grace"].id].available_minutes == 10


class TestHistory:
    @pytest.fixture
    def moves(self, ledger, redistribution_service, manager, deterministic_clock):
        first = redistribution_service.create_redistribution(
            ledger["credit_a"].id, 20, 20,
            ExistingTaskDestination(ledger["debit_c"].id), "First", manager,
        )
        deterministic_clock.advance(2 * DAY)
        second = redistribution_service.create_redistribution(
            ledger["credit_e"].id, 10, 10,
            NewTaskDestination(ledger["other_project"].id, "Docs"), "Second", manager,
        )
        deterministic_clock.advance(2 * DAY)
        third = redistribution_service.create_redistribution(
            ledger["credit_b"].id, 10, 10,
            ExistingTaskDestination(ledger["debit_d"].id), "Third", manager,
        )
        redistribution_service.cancel_redistribution(third.id, "Not needed", manager)
        return first, second, third

    def test_newest_first_with_context(self, ledger, moves, ledger_selector):
        first, second, third = moves
        page = ledger_selector.history()

        assert page.total == 3
        assert [e.record.id for e in page.entries] == [third.id, second.id, first.id]
        assert page.has_more is False

        oldest = page.entries[2]
        assert oldest.source_task_name == "A"
        assert oldest.destination_task_name == "C"
        assert oldest.source_resource_id == ledger["ada"].id
        assert oldest.valuation == Decimal("6.67")
        assert page.entries[1].valuation == Decimal("5.00")

    def test_filters(self, ledger, moves, ledger_selector):
        first, second, third = moves

        cancelled = ledger_selector.history(
            RedistributionFilter(status=RedistributionStatus.CANCELLED)
        )
        assert [e.record.id for e in cancelled.entries] == [third.id]

        grace = ledger_selector.history(RedistributionFilter(resource_id=ledger["grace"].id))
        assert [e.record.id for e in grace.entries] == [second.id]

        intranet = ledger_selector.history(
            RedistributionFilter(project_id=ledger["other_project"].id)
        )
        assert [e.record.id for e in intranet.entries] == [second.id]

        window = ledger_selector.history(
            RedistributionFilter(
                redistributed_from=date(2024, 1, 1), redistributed_to=date(2024, 1, 3)
            )
        )
        assert {e.record.id for e in window.entries} == {first.id, second.id}

    def test_pagination(self, moves, ledger_selector):
        first, second, third = moves
        page = ledger_selector.history(RedistributionFilter(limit=2))
        assert page.total == 3
        assert page.limit == 2
        assert page.has_more is True

        rest = ledger_selector.history(RedistributionFilter(limit=2, offset=2))
        assert [e.record.id for e in rest.entries] == [first.id]
        assert rest.has_more is False

    def test_limit_is_capped(self, moves, ledger_selector):
        assert ledger_selector.history(RedistributionFilter(limit=10_000)).limit == 500

    def test_statistics(self, ledger, moves, ledger_selector):
        stats = ledger_selector.statistics()

        assert stats.window_days == 30
        assert stats.active_count == 2
        assert stats.cancelled_count == 1
        assert stats.total_count == 3
        assert stats.active_granted_minutes == 30
        assert stats.total_granted_minutes == 40
        # A: 10 left, B: 60, E: 0 -> 70 credit; C: 10, D: 10 -> 20 debit.
        assert stats.credit_minutes == 70
        assert stats.credit_task_count == 2
        assert stats.debit_minutes == 20
        assert stats.debit_task_count == 2
        assert stats.compensation_percentage == Decimal("350.0")

    def test_statistics_window(self, moves, ledger_selector, deterministic_clock):
        deterministic_clock.advance(60 * DAY)
        stats = ledger_selector.statistics(window_days=7)
        assert stats.total_count == 0
        assert stats.window_days == 7

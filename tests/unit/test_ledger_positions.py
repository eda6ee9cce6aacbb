"""
Unit tests for the credit/debit fold.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from hours_kernel.domain.dtos import TaskInfo, TaskStatus
from hours_modules.ledger.models import (
    DestinationKind,
    RedistributionRecord,
    RedistributionStatus,
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

NOW = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
PROJECT = uuid4()


def make_task(estimated, actual=None, resource_id=None, status=None):
    return TaskInfo(
        id=uuid4(),
        activity_id=uuid4(),
        project_id=PROJECT,
        name="t",
        estimated_minutes=estimated,
        resource_id=resource_id,
        actual_minutes=actual,
        status=status or (TaskStatus.COMPLETED if actual is not None else TaskStatus.SCHEDULED),
    )


def make_record(source, destination, minutes, status=RedistributionStatus.ACTIVE):
    return RedistributionRecord(
        id=uuid4(),
        source_task_id=source.id,
        withdraw_minutes=minutes,
        destination_task_id=destination.id,
        destination_project_id=PROJECT,
        grant_minutes=minutes,
        destination_kind=DestinationKind.EXISTING_TASK,
        justification="move",
        created_by_id=uuid4(),
        redistributed_at=NOW,
        status=status,
    )


class TestCreditPosition:
    def test_credit_is_variance_minus_active_withdrawals(self):
        source = make_task(120, 90)
        other = make_task(60)
        position = credit_position(source, [make_record(source, other, 20)])
        assert position.variance_minutes == 30
        assert position.withdrawn_minutes == 20
        assert position.available_minutes == 10

    def test_cancelled_records_restore_credit(self):
        source = make_task(120, 90)
        other = make_task(60)
        record = make_record(source, other, 20, RedistributionStatus.CANCELLED)
        assert credit_position(source, [record]).available_minutes == 30

    def test_overrun_and_open_tasks_hold_no_credit(self):
        assert credit_position(make_task(60, 90), []) is None
        assert credit_position(make_task(60), []) is None
        assert credit_position(make_task(60, 60), []) is None

    def test_list_skips_exhausted_credits(self):
        spent = make_task(60, 30)
        fresh = make_task(60, 45)
        other = make_task(30)
        positions = credit_positions([spent, fresh], [make_record(spent, other, 30)])
        assert [p.task_id for p in positions] == [fresh.id]

    def test_available_hours(self):
        assert credit_position(make_task(120, 30), []).available_hours == Decimal("1.50")


class TestDebitPosition:
    def test_debit_is_overrun_minus_active_grants(self):
        overrun = make_task(60, 100)
        source = make_task(120, 60)
        position = debit_position(overrun, [make_record(source, overrun, 15)])
        assert position.overrun_minutes == 40
        assert position.granted_minutes == 15
        assert position.remaining_minutes == 25

    def test_list_orders_largest_first_and_drops_settled(self):
        small = make_task(60, 70)
        large = make_task(60, 120)
        settled = make_task(60, 65)
        source = make_task(500, 100)
        positions = debit_positions(
            [small, large, settled], [make_record(source, settled, 5)]
        )
        assert [p.task_id for p in positions] == [large.id, small.id]


class TestAggregates:
    def test_group_by_resource(self):
        resource = uuid4()
        positions = credit_positions(
            [make_task(60, 30, resource), make_task(60, 50, resource)], []
        )
        (summary,) = group_credits_by_resource(positions)
        assert summary.resource_id == resource
        assert summary.task_count == 2
        assert summary.available_minutes == 40

    def test_valuation_at_base_cost(self):
        assert redistribution_valuation(90, Decimal("20")) == Decimal("30.00")
        assert redistribution_valuation(90, None) == Decimal("0.00")

    def test_compensation_percentage(self):
        assert compensation_percentage(30, 90) == Decimal("33.3")
        assert compensation_percentage(30, 0) == Decimal("0.0")

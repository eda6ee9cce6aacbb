"""
Unit tests for the budget rollup.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from hours_kernel.domain.dtos import ResourceInfo, TaskInfo, TaskStatus
from hours_modules.budget.models import BudgetStatus
from hours_modules.budget.rollup import (
    budget_line,
    budget_status,
    performance_counts,
    task_costs,
)


@pytest.fixture
def budget(settings):
    return settings.budget


def completed(estimated, actual, project_id=None, resource_id=None):
    return TaskInfo(
        id=uuid4(),
        activity_id=uuid4(),
        project_id=project_id or uuid4(),
        name="t",
        estimated_minutes=estimated,
        resource_id=resource_id,
        actual_minutes=actual,
        status=TaskStatus.COMPLETED,
    )


class TestBudgetStatus:
    @pytest.mark.parametrize(
        "consumed,expected",
        [
            ("899.99", BudgetStatus.WITHIN_BUDGET),
            ("900", BudgetStatus.NEAR_BUDGET),
            ("1000", BudgetStatus.NEAR_BUDGET),
            ("1000.01", BudgetStatus.OVER_BUDGET),
        ],
    )
    def test_boundaries(self, budget, consumed, expected):
        assert budget_status(Decimal(consumed), Decimal("1000"), budget) == expected

    def test_zero_budget(self, budget):
        assert budget_status(Decimal("0"), Decimal("0"), budget) == BudgetStatus.WITHIN_BUDGET
        assert budget_status(Decimal("1"), Decimal("0"), budget) == BudgetStatus.OVER_BUDGET

    def test_line_percentage_and_remaining(self, budget):
        line = budget_line(uuid4(), "p", Decimal("1000"), Decimal("333.333"), 3, budget)
        assert line.consumed == Decimal("333.33")
        assert line.consumed_percentage == Decimal("33.3")
        assert line.remaining == Decimal("666.67")
        assert line.status == BudgetStatus.WITHIN_BUDGET


class TestCosts:
    def test_final_rate_preferred_over_base_cost(self):
        project_id = uuid4()
        priced = ResourceInfo(id=uuid4(), name="a", hourly_cost=Decimal("20"))
        unpriced = ResourceInfo(id=uuid4(), name="b", hourly_cost=Decimal("30"))
        first = completed(60, 90, project_id, priced.id)
        second = completed(60, 30, project_id, unpriced.id)
        costs = task_costs(
            [first, second],
            {(project_id, priced.id): Decimal("80")},
            {priced.id: priced, unpriced.id: unpriced},
        )
        assert costs[first.id] == Decimal("120")
        assert costs[second.id] == Decimal("15")

    def test_performance_counts(self):
        counts = performance_counts([completed(60, 30), completed(60, 60), completed(60, 90)])
        assert (counts.positive, counts.zero, counts.negative, counts.total) == (1, 1, 1, 3)

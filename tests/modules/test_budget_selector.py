"""
Integration tests for the budget and capacity overview.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from hours_kernel.exceptions import ClientNotFoundError, ResourceNotFoundError
from hours_modules.bonus.models import BonusStatus
from hours_modules.budget.models import BudgetFilter, BudgetStatus
from hours_modules.capacity.models import CapacityPeriod


@pytest.fixture
def portfolio(
    create_client,
    create_project,
    create_activity,
    create_resource,
    create_task,
    margin_service,
    manager,
):
    """
    Acme (budget 1000) with Website (500) and Intranet (100).

    Ada (20/h) is assigned to Website at final rate 100; Grace (30/h) has
    no assignment and is costed at her base rate.
    """
    acme = create_client(budget=Decimal("1000"))
    website = create_project(name="Website", budget=Decimal("500"), client=acme)
    intranet = create_project(name="Intranet", budget=Decimal("100"), client=acme)
    design = create_activity(website)
    build = create_activity(intranet, name="Build")
    ada = create_resource(name="Ada")
    grace = create_resource(name="Grace", hourly_cost=Decimal("30"))
    margin_service.assign_resource_to_project(website.id, ada.id, 60, None, manager)

    tasks = {
        "fast": create_task(design, ada, 120, actual_minutes=90, name="Fast"),
        "slow": create_task(
            design,
            ada,
            60,
            actual_minutes=90,
            name="Slow",
            completed_at=datetime(2024, 2, 15, 10, 0, tzinfo=timezone.utc),
        ),
        "exact": create_task(design, grace, 60, actual_minutes=60, name="Exact"),
        "late": create_task(build, grace, 120, actual_minutes=240, name="Late"),
        "open": create_task(design, ada, 600, name="Open"),
    }
    return {
        "acme": acme,
        "website": website,
        "intranet": intranet,
        "ada": ada,
        "grace": grace,
        "tasks": tasks,
    }


class TestOverview:
    def test_totals(self, portfolio, budget_selector):
        overview = budget_selector.get_budget_overview()

        assert overview.task_count == 4
        assert overview.performance.positive == 1
        assert overview.performance.zero == 1
        assert overview.performance.negative == 2
        assert overview.estimated_minutes == 360
        assert overview.actual_minutes == 480
        assert overview.variance_minutes == -120
        assert overview.total_consumed == Decimal("450.00")

    def test_project_and_client_lines(self, portfolio, budget_selector):
        overview = budget_selector.get_budget_overview()
        projects = {line.name: line for line in overview.projects}

        website = projects["Website"]
        assert website.consumed == Decimal("330.00")
        assert website.consumed_percentage == Decimal("66.0")
        assert website.status is BudgetStatus.WITHIN_BUDGET
        assert website.task_count == 3

        intranet = projects["Intranet"]
        assert intranet.consumed == Decimal("120.00")
        assert intranet.consumed_percentage == Decimal("120.0")
        assert intranet.status is BudgetStatus.OVER_BUDGET

        [acme] = overview.clients
        assert acme.consumed == Decimal("450.00")
        assert acme.remaining == Decimal("550.00")
        assert acme.status is BudgetStatus.WITHIN_BUDGET

    def test_resource_lines(self, portfolio, budget_selector):
        overview = budget_selector.get_budget_overview(
            BudgetFilter(period=CapacityPeriod.MONTH, as_of=date(2024, 1, 15))
        )
        resources = {line.name: line for line in overview.resources}

        assert resources["Ada"].consumed == Decimal("300.00")
        assert resources["Ada"].task_count == 2
        assert resources["Grace"].consumed == Decimal("150.00")
        assert resources["Grace"].actual_minutes == 300
        assert resources["Ada"].capacity.capacity_hours == Decimal("160.00")

    def test_bonus_totals_by_state(
        self, portfolio, budget_selector, bonus_service, manager, staff
    ):
        fast = portfolio["tasks"]["fast"]
        exact = portfolio["tasks"]["exact"]
        bonus_service.evaluate_bonus(fast.id, staff)
        record = bonus_service.evaluate_bonus(exact.id, staff)
        bonus_service.approve(record.id, manager)

        totals = {
            t.status: t for t in budget_selector.get_budget_overview().bonus_totals
        }
        assert totals[BonusStatus.PENDING].count == 1
        assert totals[BonusStatus.PENDING].amount == Decimal("7.50")
        assert totals[BonusStatus.APPROVED].amount == Decimal("3.75")
        assert totals[BonusStatus.REJECTED].count == 0


class TestFilters:
    def test_project_filter(self, portfolio, budget_selector):
        overview = budget_selector.get_budget_overview(
            BudgetFilter(project_id=portfolio["intranet"].id)
        )
        assert overview.task_count == 1
        assert [line.name for line in overview.projects] == ["Intranet"]
        assert overview.clients[0].consumed == Decimal("120.00")

    def test_completion_window(self, portfolio, budget_selector):
        overview = budget_selector.get_budget_overview(
            BudgetFilter(completed_from=date(2024, 2, 1), completed_to=date(2024, 2, 29))
        )
        assert overview.task_count == 1
        assert overview.total_consumed == Decimal("150.00")

    def test_filtered_resource_without_tasks_still_listed(
        self, portfolio, create_resource, budget_selector
    ):
        idle = create_resource(name="Idle")
        overview = budget_selector.get_budget_overview(BudgetFilter(resource_id=idle.id))
        assert overview.task_count == 0
        assert [line.name for line in overview.resources] == ["Idle"]
        assert overview.resources[0].consumed == Decimal("0.00")

    def test_unknown_entities(self, portfolio, budget_selector):
        with pytest.raises(ClientNotFoundError):
            budget_selector.get_budget_overview(BudgetFilter(client_id=uuid4()))
        with pytest.raises(ResourceNotFoundError):
            budget_selector.get_budget_overview(BudgetFilter(resource_id=uuid4()))

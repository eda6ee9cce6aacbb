"""Integration tests for CapacityService."""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from hours_kernel.exceptions import InvalidPeriodError, ResourceNotFoundError
from hours_modules.capacity.models import CapacityPeriod, CapacityStatus
from hours_modules.capacity.service import CapacityService


class TestGetCapacity:
    def test_overloaded_month(self, workspace, create_task, capacity_service):
        _, activity, resource = workspace
        # 200 hours due in January.
        create_task(activity, resource, 6000, due_date=date(2024, 1, 10))
        create_task(activity, resource, 3000, due_date=date(2024, 1, 31), status="in_progress")
        create_task(
            activity, resource, 3000, actual_minutes=2800, due_date=date(2024, 1, 1)
        )

        report = capacity_service.get_capacity(resource.id, "month")

        assert report.window.start == date(2024, 1, 1)
        assert report.window.end == date(2024, 2, 1)
        assert report.annual_hours == Decimal("1920")
        assert report.capacity_hours == Decimal("160.00")
        assert report.assigned_minutes == 12000
        assert report.task_count == 3
        assert report.utilization_percentage == Decimal("125.00")
        assert report.status is CapacityStatus.OVERLOADED
        assert report.available_minutes == 0

    def test_only_tasks_in_window_and_of_resource(
        self, workspace, create_task, create_resource, capacity_service
    ):
        _, activity, resource = workspace
        other = create_resource(name="Grace")
        create_task(activity, resource, 1200, due_date=date(2024, 3, 4))
        create_task(activity, resource, 600, due_date=date(2024, 3, 11))
        create_task(activity, other, 600, due_date=date(2024, 3, 5))
        create_task(activity, resource, 600)

        report = capacity_service.get_capacity(
            resource.id, CapacityPeriod.WEEK, as_of=date(2024, 3, 6)
        )

        assert report.window.start == date(2024, 3, 4)
        assert report.assigned_minutes == 1200
        assert report.capacity_hours == Decimal("36.92")
        assert report.status is CapacityStatus.NORMAL

    def test_idle_resource_is_underutilized(self, workspace, capacity_service):
        _, _, resource = workspace
        report = capacity_service.get_capacity(resource.id, "quarter")
        assert report.assigned_minutes == 0
        assert report.capacity_hours == Decimal("480.00")
        assert report.status is CapacityStatus.UNDERUTILIZED
        assert report.available_minutes == 480 * 60

    def test_manual_annual_hours(self, create_resource, capacity_service):
        resource = create_resource(
            annual_hours=Decimal("1200"), annual_hours_manual=True
        )
        assert capacity_service.get_capacity(resource.id, "year").capacity_hours == Decimal(
            "1200.00"
        )

    def test_counted_statuses_from_settings(
        self, workspace, create_task, session, deterministic_clock, settings
    ):
        _, activity, resource = workspace
        create_task(activity, resource, 600, due_date=date(2024, 1, 2))
        create_task(activity, resource, 600, actual_minutes=600, due_date=date(2024, 1, 3))

        open_only = replace(
            settings,
            capacity=replace(settings.capacity, counted_statuses=("scheduled", "in_progress")),
        )
        service = CapacityService(session, deterministic_clock, open_only)
        assert service.get_capacity(resource.id, "month").assigned_minutes == 600

    def test_unknown_period(self, workspace, capacity_service):
        _, _, resource = workspace
        with pytest.raises(InvalidPeriodError):
            capacity_service.get_capacity(resource.id, "fortnight")

    def test_unknown_resource(self, capacity_service, session):
        with pytest.raises(ResourceNotFoundError):
            capacity_service.get_capacity(uuid4(), "month")


def test_deducted_hours_reduce_capacity(
    workspace, create_task, bonus_service, capacity_service, manager, staff
):
    _, activity, resource = workspace
    task = create_task(activity, resource, 60, actual_minutes=1260)
    penalty = bonus_service.evaluate_bonus(task.id, staff)
    bonus_service.remediate_negative(
        penalty.id, "deduct_future_hours", "Twenty hours over", manager
    )

    report = capacity_service.get_capacity(resource.id, "year")
    assert report.annual_hours == Decimal("1900")
    assert report.capacity_hours == Decimal("1900.00")

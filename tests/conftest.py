"""
Pytest fixtures for the hour ledger test suite.

Environment Variables:
- HOURS_DATABASE_URL: database to run against (default: in-memory SQLite).
  Tables are created and dropped around every test, so point it at a
  throwaway PostgreSQL database.

Provides:
- A fresh database per test, with every table created and
  the immutability listeners registered
- Deterministic clock, actors and settings
- Factory fixtures for clients, projects, activities, resources and tasks
- Service and selector fixtures wired to the same session and clock

Factories commit: services roll back on error, and a rollback must not take
the seeded data with it.
"""

import json
import logging
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from hours_config import get_active_config
from hours_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from hours_kernel.db.immutability import register_immutability_listeners
from hours_kernel.domain.clock import DeterministicClock
from hours_kernel.domain.identity import Actor, ActorRole
from hours_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from hours_kernel.models.resource import ResourceModel
from hours_kernel.models.work import ActivityModel, ClientModel, ProjectModel, TaskModel
from hours_kernel.services.auditor_service import AuditorService
from hours_modules.bonus.service import BonusService
from hours_modules.budget.selector import BudgetSelector
from hours_modules.capacity.service import CapacityService
from hours_modules.ledger.selector import LedgerSelector
from hours_modules.ledger.service import RedistributionService
from hours_modules.margin.service import MarginService
from hours_modules.work.service import WorkService

# Test actor ID for all seeded rows
TEST_ACTOR_ID = uuid4()

DATABASE_URL = os.environ.get("HOURS_DATABASE_URL", "sqlite://")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture hours_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, bonus_service):
            bonus_service.evaluate_bonus(...)
            logs = captured_logs()
            assert any(r["message"] == "bonus_evaluation_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("hours_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    """A fresh schema for each test."""
    reset_engine()
    db_engine = init_engine_from_url(DATABASE_URL)
    create_tables()
    register_immutability_listeners()
    yield db_engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    sess = get_session()
    yield sess
    sess.close()


# =============================================================================
# Identity, clock and settings
# =============================================================================


@pytest.fixture
def test_actor_id() -> UUID:
    return TEST_ACTOR_ID


@pytest.fixture
def deterministic_clock():
    """2024-01-01 12:00 UTC until advanced."""
    return DeterministicClock()


@pytest.fixture(scope="session")
def settings():
    return get_active_config()


@pytest.fixture
def manager() -> Actor:
    return Actor(actor_id=uuid4(), role=ActorRole.MANAGER)


@pytest.fixture
def super_admin() -> Actor:
    return Actor(actor_id=uuid4(), role=ActorRole.SUPER_ADMIN)


@pytest.fixture
def staff() -> Actor:
    return Actor(actor_id=uuid4(), role=ActorRole.STAFF)


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def create_client(session: Session, test_actor_id: UUID):
    def _create_client(name: str = "Acme", budget: Decimal = Decimal("100000")) -> ClientModel:
        client = ClientModel(name=name, budget=budget, created_by_id=test_actor_id)
        session.add(client)
        session.commit()
        return client

    return _create_client


@pytest.fixture
def create_project(session: Session, test_actor_id: UUID, create_client):
    def _create_project(
        name: str = "Website",
        budget: Decimal = Decimal("50000"),
        client: ClientModel | None = None,
    ) -> ProjectModel:
        client = client or create_client()
        project = ProjectModel(
            client_id=client.id, name=name, budget=budget, created_by_id=test_actor_id
        )
        session.add(project)
        session.commit()
        return project

    return _create_project


@pytest.fixture
def create_activity(session: Session, test_actor_id: UUID):
    def _create_activity(project: ProjectModel, name: str = "Design") -> ActivityModel:
        activity = ActivityModel(project_id=project.id, name=name, created_by_id=test_actor_id)
        session.add(activity)
        session.commit()
        return activity

    return _create_activity


@pytest.fixture
def create_resource(session: Session, test_actor_id: UUID):
    def _create_resource(
        name: str = "Ada",
        hourly_cost: Decimal = Decimal("20"),
        annual_hours: Decimal | None = None,
        annual_hours_manual: bool = False,
    ) -> ResourceModel:
        resource = ResourceModel(
            name=name,
            hourly_cost=hourly_cost,
            annual_hours=annual_hours,
            annual_hours_manual=annual_hours_manual,
            annual_hours_deducted=Decimal("0"),
            created_by_id=test_actor_id,
        )
        session.add(resource)
        session.commit()
        return resource

    return _create_resource


@pytest.fixture
def create_task(session: Session, test_actor_id: UUID):
    """
    Create a task; passing ``actual_minutes`` creates it already completed.
    """

    def _create_task(
        activity: ActivityModel,
        resource: ResourceModel | None,
        estimated_minutes: int,
        actual_minutes: int | None = None,
        name: str = "Task",
        due_date: date | None = None,
        status: str | None = None,
        completed_at: datetime | None = None,
    ) -> TaskModel:
        completed = actual_minutes is not None
        task = TaskModel(
            activity_id=activity.id,
            resource_id=resource.id if resource else None,
            name=name,
            estimated_minutes=estimated_minutes,
            actual_minutes=actual_minutes,
            status=status or ("completed" if completed else "scheduled"),
            due_date=due_date,
            completed_at=(
                completed_at or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
                if completed
                else None
            ),
            created_by_id=test_actor_id,
        )
        session.add(task)
        session.commit()
        return task

    return _create_task


@pytest.fixture
def workspace(create_project, create_activity, create_resource):
    """One client, one project with a Design activity, one resource at 20/h."""
    project = create_project()
    activity = create_activity(project)
    resource = create_resource()
    return project, activity, resource


# =============================================================================
# Services and selectors
# =============================================================================


@pytest.fixture
def auditor_service(session, deterministic_clock):
    return AuditorService(session, deterministic_clock)


@pytest.fixture
def margin_service(session, deterministic_clock, settings):
    return MarginService(session, deterministic_clock, settings)


@pytest.fixture
def bonus_service(session, deterministic_clock, settings):
    return BonusService(session, deterministic_clock, settings)


@pytest.fixture
def redistribution_service(session, deterministic_clock, settings):
    return RedistributionService(session, deterministic_clock, settings)


@pytest.fixture
def ledger_selector(session, deterministic_clock, settings):
    return LedgerSelector(session, deterministic_clock, settings)


@pytest.fixture
def capacity_service(session, deterministic_clock, settings):
    return CapacityService(session, deterministic_clock, settings)


@pytest.fixture
def budget_selector(session, deterministic_clock, settings):
    return BudgetSelector(session, deterministic_clock, settings)


@pytest.fixture
def work_service(session, deterministic_clock, settings):
    return WorkService(session, deterministic_clock, settings)

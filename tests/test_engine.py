"""Engine and session scope behavior."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from hours_kernel.db.engine import get_session_factory, session_scope
from hours_kernel.models.resource import ResourceModel


def _resource(name: str, actor_id) -> ResourceModel:
    return ResourceModel(
        name=name,
        hourly_cost=Decimal("20"),
        annual_hours_deducted=Decimal("0"),
        created_by_id=actor_id,
    )


def _count() -> int:
    with get_session_factory()() as check:
        return check.execute(select(func.count()).select_from(ResourceModel)).scalar_one()


def test_session_scope_commits(engine, test_actor_id):
    with session_scope() as session:
        session.add(_resource("Ada", test_actor_id))
    assert _count() == 1


def test_session_scope_rolls_back_and_reraises(engine, test_actor_id, captured_logs):
    with pytest.raises(RuntimeError):
        with session_scope() as session:
            session.add(_resource("Ada", test_actor_id))
            session.flush()
            raise RuntimeError("boom")

    assert _count() == 0
    assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())

"""
Repository protocol conformance.

Services and selectors hold their collaborators typed as the protocols in
``hours_kernel.domain.repositories`` and the per-module ``repository``
modules.  Each SQLAlchemy implementation must offer every protocol method
with the same parameters, so a service never calls something only the
concrete class has.
"""

import inspect

import pytest

from hours_kernel.db.repositories import (
    SqlActivityRepository,
    SqlClientRepository,
    SqlProjectRepository,
    SqlResourceRepository,
    SqlTaskRepository,
)
from hours_kernel.domain.repositories import (
    ActivityRepository,
    ClientRepository,
    ProjectRepository,
    ResourceRepository,
    TaskRepository,
)
from hours_modules.bonus.repository import BonusRepository, SqlBonusRepository
from hours_modules.ledger.repository import (
    RedistributionRepository,
    SqlRedistributionRepository,
)
from hours_modules.margin.repository import AssignmentRepository, SqlAssignmentRepository

PAIRS = [
    (ResourceRepository, SqlResourceRepository),
    (ClientRepository, SqlClientRepository),
    (ProjectRepository, SqlProjectRepository),
    (ActivityRepository, SqlActivityRepository),
    (TaskRepository, SqlTaskRepository),
    (AssignmentRepository, SqlAssignmentRepository),
    (BonusRepository, SqlBonusRepository),
    (RedistributionRepository, SqlRedistributionRepository),
]


def _protocol_methods(protocol) -> dict[str, inspect.Signature]:
    return {
        name: inspect.signature(member)
        for name, member in vars(protocol).items()
        if inspect.isfunction(member) and not name.startswith("_")
    }


@pytest.mark.parametrize(
    "protocol, implementation", PAIRS, ids=[impl.__name__ for _, impl in PAIRS]
)
def test_implementation_matches_protocol(protocol, implementation):
    methods = _protocol_methods(protocol)
    assert methods, f"{protocol.__name__} declares no methods"

    for name, expected in methods.items():
        actual = getattr(implementation, name, None)
        assert actual is not None, f"{implementation.__name__} lacks {name}"
        assert list(inspect.signature(actual).parameters) == list(expected.parameters), (
            f"{implementation.__name__}.{name} parameters differ from {protocol.__name__}"
        )


@pytest.mark.parametrize(
    "protocol, implementation", PAIRS, ids=[impl.__name__ for _, impl in PAIRS]
)
def test_no_public_methods_outside_protocol(protocol, implementation):
    public = {
        name
        for name, member in vars(implementation).items()
        if inspect.isfunction(member) and not name.startswith("_")
    }
    assert public <= set(_protocol_methods(protocol))

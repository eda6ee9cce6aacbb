"""Role checks on the Actor."""

from uuid import uuid4

import pytest

from hours_kernel.domain.identity import Actor, ActorRole, require_manager
from hours_kernel.exceptions import ManagerRoleRequiredError
from hours_kernel.services.sequence_service import SequenceService


@pytest.mark.parametrize(
    "role, is_manager, bypasses",
    [
        (ActorRole.STAFF, False, False),
        (ActorRole.MANAGER, True, False),
        (ActorRole.SUPER_ADMIN, True, True),
    ],
)
def test_role_semantics(role, is_manager, bypasses, settings):
    actor = Actor(actor_id=uuid4(), role=role)
    assert actor.is_manager is is_manager
    assert actor.can_bypass_budget(settings.roles.budget_bypass) is bypasses


def test_require_manager_names_operation():
    actor = Actor(actor_id=uuid4())
    with pytest.raises(ManagerRoleRequiredError) as exc_info:
        require_manager(actor, "cancel_redistribution")
    assert exc_info.value.operation == "cancel_redistribution"
    assert exc_info.value.role == "staff"


def test_sequence_values_are_monotonic(session):
    sequences = SequenceService(session)
    sequences.initialize_sequences()
    assert sequences.current_value(SequenceService.AUDIT_EVENT) == 0

    first = sequences.next_value(SequenceService.AUDIT_EVENT)
    second = sequences.next_value(SequenceService.AUDIT_EVENT)
    assert second == first + 1
    assert sequences.current_value(SequenceService.AUDIT_EVENT) == second

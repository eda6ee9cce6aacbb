"""
Caller identity and role checks.

The transport layer authenticates the caller and hands services an
``Actor``.  Services never look at sessions, tokens, or request objects;
they only ask the actor whether it may perform an operation.

Role semantics:
    staff        -- may read, evaluate bonuses for completed work.
    manager      -- may assign, dispose bonuses, redistribute hours.
    super_admin  -- everything a manager may do, and may commit a project
                    assignment past the project budget.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from hours_kernel.exceptions import ManagerRoleRequiredError


class ActorRole(str, Enum):
    STAFF = "staff"
    MANAGER = "manager"
    SUPER_ADMIN = "super_admin"


MANAGER_ROLES: frozenset[ActorRole] = frozenset({
    ActorRole.MANAGER,
    ActorRole.SUPER_ADMIN,
})


@dataclass(frozen=True)
class Actor:
    """An authenticated caller."""

    actor_id: UUID
    role: ActorRole = ActorRole.STAFF

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES

    def can_bypass_budget(self, bypass_roles: frozenset[str]) -> bool:
        """True if the role is listed among the configured budget-bypass roles."""
        return self.role.value in bypass_roles


def require_manager(actor: Actor, operation: str) -> None:
    """Raise ManagerRoleRequiredError unless the actor holds a manager role."""
    if not actor.is_manager:
        raise ManagerRoleRequiredError(
            actor_id=str(actor.actor_id),
            role=actor.role.value,
            operation=operation,
        )

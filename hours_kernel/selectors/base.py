"""
Module: hours_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.  Selectors
    form the read side of the subsystem: credit/debit positions, redistribution
    history, budget overviews.
Architecture position: Kernel > Selectors.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never add, delete, flush or commit.
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances.
    - Derived balances: credits, debits and budget consumption are folded
      from tasks and redistribution records on every read.  Nothing is cached.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    The caller owns the session and its transaction scope.
    """

    def __init__(self, session: Session):
        self.session = session

"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing sequence numbers for audit events.  Uses a
    dedicated counter table with row-level locking (``SELECT ... FOR UPDATE``)
    to guarantee uniqueness and ordering under concurrent access.

Architecture position:
    Kernel > Services -- imperative shell infrastructure, called by
    AuditorService.

Invariants enforced:
    - Sequence monotonicity: the locked counter row is the sole source of
      truth for the next value.  Aggregate max-plus-one is never used.
    - Transactional: the increment is only visible after the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - IntegrityError: two transactions creating the same counter row on
      first use.  Call ``initialize_sequences()`` at setup to avoid it.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from hours_kernel.db.base import Base
from hours_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """One row per named sequence holding its current value."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    AUDIT_EVENT = "audit_event"

    WELL_KNOWN = (AUDIT_EVENT,)

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Lock the counter row (creating it on first use), increment, return.

        Postconditions:
            - Returns an integer > 0, strictly greater than any previously
              returned value for this sequence name.
            - The counter row stays locked until the transaction completes.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            counter = SequenceCounter(name=sequence_name, current_value=0)
            self._session.add(counter)

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing, or None if never allocated."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

        return counter.current_value if counter else None

    def initialize_sequences(self) -> None:
        """Create the well-known counter rows if missing (database setup)."""
        for name in self.WELL_KNOWN:
            existing = self._session.execute(
                select(SequenceCounter).where(SequenceCounter.name == name)
            ).scalar_one_or_none()

            if existing is None:
                self._session.add(SequenceCounter(name=name, current_value=0))

        self._session.flush()

"""
SequenceService -- durable monotonic sequences via locked counter rows.

Responsibility:
    Provides strictly increasing sequence values that survive process
    restarts, and an ``InvoiceNumberIssuer`` built on them.  Uses a
    dedicated counter table with row-level locking (``SELECT ... FOR UPDATE``)
    so concurrent finalizations in different processes never share a value.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Selected through
    ``numbering.backend: database`` in the kernel settings.

Invariants enforced:
    - The locked counter row is the sole source of truth for the next value.
      Aggregate-max-plus-one over issued numbers is never used.
    - Transactional: within a caller's session the increment is visible only
      after commit; rollback returns the value.

Failure modes:
    - IntegrityError: concurrent creation of the same counter row (handled
      via savepoint rollback and retry).
"""

from __future__ import annotations

from sqlalchemy import String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column, sessionmaker

from invoice_kernel.db.base import Base
from invoice_kernel.db.engine import session_scope
from invoice_kernel.logging_config import get_logger
from invoice_kernel.services.numbering import InvoiceNumberIssuer, NumberFormat

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is a named sequence with its last issued value.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Transactional sequence allocation inside a caller-owned session.

    Does NOT call ``session.commit()`` -- the caller controls boundaries.

    Usage:
        with session_scope() as session:
            seq = SequenceService(session).next_value("invoice_number")
    """

    INVOICE_NUMBER = "invoice_number"

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

        Returns:
            The next sequence value, strictly greater than any value
            previously committed for this name.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use; another session may be creating the same row, so
            # isolate the insert in a savepoint.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                self._session.expire_all()
                counter = self._locked_counter(sequence_name)
                assert counter is not None

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing, or None if never used."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

    def reset(self, sequence_name: str, value: int = 0) -> None:
        """
        Set a sequence to a specific value.

        WARNING: only for tests and migrations; rewinding a live sequence
        reissues invoice numbers.
        """
        counter = self._locked_counter(sequence_name)
        if counter is None:
            self._session.add(SequenceCounter(name=sequence_name, current_value=value))
        else:
            counter.current_value = value
        self._session.flush()
        logger.warning(
            "sequence_reset",
            extra={"sequence_name": sequence_name, "value": value},
        )


class SequenceInvoiceNumberIssuer(InvoiceNumberIssuer):
    """
    Durable issuer: each ``next()`` allocates in its own committed
    transaction, so a number is never handed out twice across restarts.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        sequence_name: str = SequenceService.INVOICE_NUMBER,
        width: int = 8,
        modulus: int = 100_000_000,
    ):
        self._session_factory = session_factory
        self._sequence_name = sequence_name
        self._format = NumberFormat(width, modulus)

    def next(self) -> str:
        with session_scope(self._session_factory) as session:
            value = SequenceService(session).next_value(self._sequence_name)
        number = self._format.render(value)
        logger.info(
            "invoice_number_issued",
            extra={
                "sequence_name": self._sequence_name,
                "counter": value,
                "invoice_number": number,
            },
        )
        return number

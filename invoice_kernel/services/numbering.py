"""
Invoice number issuance.

Responsibility:
    Hands out invoice numbers at finalize time.  The ledger service depends
    only on the ``InvoiceNumberIssuer`` interface, so the in-process counter
    can be swapped for the database-backed ``SequenceInvoiceNumberIssuer``
    without touching the ledger.

Architecture position:
    Kernel > Services -- the only shared mutable state in the kernel.

Invariants enforced:
    - Uniqueness: concurrent ``next()`` calls never observe the same counter
      value.  The increment and the read happen under one lock.
    - Increment by exactly one, no gaps, starting at ``start`` (default 1).
    - Rendering: ``counter % modulus`` zero padded to ``width`` digits.  With
      the defaults (8 digits, modulus 100,000,000) the 100,000,001st number
      is ``"00000001"`` again.

Failure modes:
    - InvalidNumberingConfigError when ``modulus`` needs more than ``width``
      digits.

Non-goals:
    - The in-process issuer does not survive a restart; numbers repeat after
      one.  Use the database backend when durability matters.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from invoice_config import KernelSettings, NumberingSettings, get_active_settings
from invoice_kernel.exceptions import InvalidNumberingConfigError
from invoice_kernel.logging_config import get_logger

logger = get_logger("services.numbering")


class InvoiceNumberIssuer(ABC):
    """Source of invoice numbers."""

    @abstractmethod
    def next(self) -> str:
        """Issue the next invoice number."""
        ...


class NumberFormat:
    """Renders raw counter values as fixed-width invoice numbers."""

    def __init__(self, width: int = 8, modulus: int = 100_000_000):
        if width <= 0 or modulus <= 0:
            raise InvalidNumberingConfigError(width, modulus, "width and modulus must be positive")
        if modulus > 10 ** width:
            raise InvalidNumberingConfigError(
                width, modulus, f"modulus needs more than {width} digits"
            )
        self.width = width
        self.modulus = modulus

    def render(self, counter: int) -> str:
        return f"{counter % self.modulus:0{self.width}d}"


class AtomicInvoiceNumberIssuer(InvoiceNumberIssuer):
    """
    In-process issuer backed by a lock-guarded counter.

    Usage:
        issuer = AtomicInvoiceNumberIssuer()
        issuer.next()   # "00000001"
        issuer.next()   # "00000002"
    """

    def __init__(self, start: int = 1, width: int = 8, modulus: int = 100_000_000):
        self._format = NumberFormat(width, modulus)
        self._lock = threading.Lock()
        self._counter = start - 1

    @classmethod
    def from_settings(cls, settings: NumberingSettings) -> AtomicInvoiceNumberIssuer:
        return cls(start=settings.start, width=settings.width, modulus=settings.modulus)

    @property
    def current_value(self) -> int:
        """Last counter value issued (``start - 1`` before the first call)."""
        with self._lock:
            return self._counter

    def next(self) -> str:
        with self._lock:
            self._counter += 1
            value = self._counter
        number = self._format.render(value)
        logger.debug(
            "invoice_number_issued",
            extra={"counter": value, "invoice_number": number},
        )
        return number


def build_issuer(settings: KernelSettings, session_factory=None) -> InvoiceNumberIssuer:
    """
    Build the issuer selected by ``settings.numbering.backend``.

    The database backend uses ``session_factory`` when given.  Otherwise,
    if ``settings.database_url`` is set, the engine is initialized from it
    and the kernel tables are created; failing both, the factory of an
    engine initialized elsewhere is used.
    """
    numbering = settings.numbering
    if numbering.backend == "database":
        from invoice_kernel.db.engine import (
            create_tables,
            get_session_factory,
            init_engine_from_url,
        )
        from invoice_kernel.services.sequence_service import SequenceInvoiceNumberIssuer

        if session_factory is None and settings.database_url:
            init_engine_from_url(settings.database_url)
            create_tables()
        return SequenceInvoiceNumberIssuer(
            session_factory or get_session_factory(),
            sequence_name=numbering.sequence_name,
            width=numbering.width,
            modulus=numbering.modulus,
        )
    return AtomicInvoiceNumberIssuer.from_settings(numbering)


# ---------------------------------------------------------------------------
# Process-wide issuer
# ---------------------------------------------------------------------------

_default_issuer: InvoiceNumberIssuer | None = None
_default_lock = threading.Lock()


def get_default_issuer() -> InvoiceNumberIssuer:
    """Process-wide issuer, built once from the active settings."""
    global _default_issuer
    with _default_lock:
        if _default_issuer is None:
            _default_issuer = build_issuer(get_active_settings())
            logger.info(
                "default_issuer_created",
                extra={"issuer": type(_default_issuer).__name__},
            )
        return _default_issuer


def reset_default_issuer() -> None:
    """Forget the process-wide issuer. FOR TESTING ONLY."""
    global _default_issuer
    with _default_lock:
        _default_issuer = None

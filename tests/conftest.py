"""
Pytest fixtures for the invoice kernel test suite.

Provides:
- Structured logging configured for every test, plus a capture fixture
- A deterministic clock and a fresh in-process invoice number issuer
- An InvoiceLedgerService wired to both
- An in-memory SQLite session factory for the durable sequence tables
"""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from invoice_config import KernelSettings
from invoice_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from invoice_kernel.domain.clock import DeterministicClock
from invoice_kernel.domain.invoice import Invoice, LineItem
from invoice_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from invoice_kernel.services.invoice_service import InvoiceLedgerService
from invoice_kernel.services.numbering import (
    AtomicInvoiceNumberIssuer,
    reset_default_issuer,
)


# ---------------------------------------------------------------------------
# Logging fixtures
# ---------------------------------------------------------------------------


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


@pytest.fixture(autouse=True)
def _reset_default_issuer():
    reset_default_issuer()
    yield
    reset_default_issuer()


@pytest.fixture
def captured_logs():
    """
    Capture JSON log records emitted under the invoice_kernel namespace.

    Usage:
        def test_something(captured_logs, ledger):
            ...
            records = captured_logs()
            assert any(r["message"] == "invoice_finalized" for r in records)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("invoice_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def issuer():
    return AtomicInvoiceNumberIssuer()


@pytest.fixture
def settings():
    return KernelSettings()


@pytest.fixture
def ledger(issuer, clock, settings):
    """InvoiceLedgerService with an injected issuer, clock and settings."""
    return InvoiceLedgerService(issuer=issuer, clock=clock, settings=settings)


@pytest.fixture
def make_item():
    """Factory for line items: make_item("2.5", "100", "10")."""

    def _make(quantity="1", unit_price="100.00", tax_rate="0", description="Consulting"):
        return LineItem(
            description=description,
            quantity=Decimal(quantity) if isinstance(quantity, str) else quantity,
            unit_price=Decimal(unit_price) if isinstance(unit_price, str) else unit_price,
            tax_rate=Decimal(tax_rate) if isinstance(tax_rate, str) else tax_rate,
        )

    return _make


@pytest.fixture
def draft_invoice(ledger, make_item):
    """A created DRAFT invoice for 1,100.00 (1,000.00 net plus 10% tax)."""
    invoice = Invoice(customer_id=uuid4(), items=[make_item("10", "100.00", "10")])
    return ledger.create(invoice)


@pytest.fixture
def sent_invoice(ledger, draft_invoice):
    """The 1,100.00 invoice after finalize."""
    return ledger.finalize(draft_invoice)


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory SQLite database."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    reset_engine()

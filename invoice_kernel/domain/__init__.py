"""
Pure domain layer.

Money arithmetic, the invoice aggregate, ledger computation and the status
workflow.  No dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time (Clock is injected)
"""

from invoice_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from invoice_kernel.domain.invoice import (
    Invoice,
    InvoiceStatus,
    LineItem,
    Payment,
    PaymentMethod,
    PaymentTerms,
)
from invoice_kernel.domain.ledger import (
    LedgerTotals,
    LineAmounts,
    compute_line,
    compute_paid,
    compute_totals,
)
from invoice_kernel.domain.workflow import (
    INVOICE_WORKFLOW,
    Transition,
    Workflow,
    derive_status,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Invoice",
    "InvoiceStatus",
    "LineItem",
    "Payment",
    "PaymentMethod",
    "PaymentTerms",
    "LedgerTotals",
    "LineAmounts",
    "compute_line",
    "compute_paid",
    "compute_totals",
    "INVOICE_WORKFLOW",
    "Transition",
    "Workflow",
    "derive_status",
]

"""
Kernel services -- the imperative shell around the pure domain.

- InvoiceLedgerService: invoice mutations ending in a full recompute
- AtomicInvoiceNumberIssuer: in-process invoice numbers
- SequenceInvoiceNumberIssuer: durable invoice numbers (database backend)
"""

from invoice_kernel.services.invoice_service import InvoiceLedgerService, PaymentRecorder
from invoice_kernel.services.numbering import (
    AtomicInvoiceNumberIssuer,
    InvoiceNumberIssuer,
    NumberFormat,
    build_issuer,
    get_default_issuer,
    reset_default_issuer,
)
from invoice_kernel.services.sequence_service import (
    SequenceCounter,
    SequenceInvoiceNumberIssuer,
    SequenceService,
)

__all__ = [
    "InvoiceLedgerService",
    "PaymentRecorder",
    "AtomicInvoiceNumberIssuer",
    "InvoiceNumberIssuer",
    "NumberFormat",
    "build_issuer",
    "get_default_issuer",
    "reset_default_issuer",
    "SequenceCounter",
    "SequenceInvoiceNumberIssuer",
    "SequenceService",
]

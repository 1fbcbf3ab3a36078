"""
Typed Exception Hierarchy for the Invoice Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from InvoiceKernelError:

    InvoiceKernelError (base)
    |
    +-- InvoiceError
    |   +-- InvalidInvoiceError
    |   +-- LineItemNotFoundError
    |
    +-- PaymentError
    |   +-- PaymentOwnershipError
    |   +-- DuplicatePaymentError
    |   +-- InvalidPaymentAmountError
    |
    +-- StatusError
    |   +-- InvalidStatusTransitionError
    |
    +-- LedgerError
    |   +-- LedgerComputationError
    |
    +-- NumberingError
        +-- InvalidNumberingConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                       | When Raised
-----------|----------------------------|------------------------------------------
Invoice    | INVALID_INVOICE            | Aggregate fails a structural precondition
           | LINE_ITEM_NOT_FOUND        | Item ID is not owned by the invoice
-----------|----------------------------|------------------------------------------
Payment    | PAYMENT_OWNERSHIP          | Payment already belongs to another invoice
           | DUPLICATE_PAYMENT          | Payment already recorded on this invoice
           | INVALID_PAYMENT_AMOUNT     | Negative payment amount (refunds unsupported)
-----------|----------------------------|------------------------------------------
Status     | INVALID_STATUS_TRANSITION  | Status change not declared by the workflow
-----------|----------------------------|------------------------------------------
Ledger     | LEDGER_COMPUTATION_FAILED  | Recompute failed; aggregate left untouched
-----------|----------------------------|------------------------------------------
Numbering  | INVALID_NUMBERING_CONFIG   | Width/modulus cannot render every number

Money arithmetic deliberately has no exception type: missing or invalid
numeric input is normalized to zero at the arithmetic layer.

Finalizing an invoice that is no longer DRAFT is NOT an error -- it is a
no-op.

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        ledger.add_payment(invoice, payment)
    except PaymentOwnershipError as e:
        api_response(code=e.code, payment=e.payment_id)

    try:
        ledger.recompute_totals(invoice)
    except LedgerComputationError as e:
        # invoice is unmodified; safe to discard the unit of work
        log.error("recompute failed", extra={"invoice_id": e.invoice_id})
"""


class InvoiceKernelError(Exception):
    """
    Base exception for all invoice kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVOICE_KERNEL_ERROR"


# Invoice-related exceptions


class InvoiceError(InvoiceKernelError):
    """Base exception for invoice aggregate errors."""

    code: str = "INVOICE_ERROR"


class InvalidInvoiceError(InvoiceError):
    """Invoice aggregate fails a structural precondition."""

    code: str = "INVALID_INVOICE"

    def __init__(self, invoice_id: str, reason: str):
        self.invoice_id = invoice_id
        self.reason = reason
        super().__init__(f"Invalid invoice {invoice_id}: {reason}")


class LineItemNotFoundError(InvoiceError):
    """Line item with given ID is not owned by the invoice."""

    code: str = "LINE_ITEM_NOT_FOUND"

    def __init__(self, invoice_id: str, item_id: str):
        self.invoice_id = invoice_id
        self.item_id = item_id
        super().__init__(f"Line item {item_id} not found on invoice {invoice_id}")


# Payment-related exceptions


class PaymentError(InvoiceKernelError):
    """Base exception for payment errors."""

    code: str = "PAYMENT_ERROR"


class PaymentOwnershipError(PaymentError):
    """
    Payment is already attached to a different invoice.

    A payment belongs to exactly one invoice for its whole lifetime.
    """

    code: str = "PAYMENT_OWNERSHIP"

    def __init__(self, payment_id: str, owner_invoice_id: str, target_invoice_id: str):
        self.payment_id = payment_id
        self.owner_invoice_id = owner_invoice_id
        self.target_invoice_id = target_invoice_id
        super().__init__(
            f"Payment {payment_id} belongs to invoice {owner_invoice_id}, "
            f"cannot attach to invoice {target_invoice_id}"
        )


class DuplicatePaymentError(PaymentError):
    """Payment with the same ID is already recorded on the invoice."""

    code: str = "DUPLICATE_PAYMENT"

    def __init__(self, payment_id: str, invoice_id: str):
        self.payment_id = payment_id
        self.invoice_id = invoice_id
        super().__init__(f"Payment {payment_id} already recorded on invoice {invoice_id}")


class InvalidPaymentAmountError(PaymentError):
    """Payment amount is negative; refunds are not supported."""

    code: str = "INVALID_PAYMENT_AMOUNT"

    def __init__(self, payment_id: str, amount: str):
        self.payment_id = payment_id
        self.amount = amount
        super().__init__(f"Payment {payment_id} has negative amount {amount}")


# Status-related exceptions


class StatusError(InvoiceKernelError):
    """Base exception for invoice status errors."""

    code: str = "STATUS_ERROR"


class InvalidStatusTransitionError(StatusError):
    """Status change is not declared by the invoice workflow."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, invoice_id: str, from_status: str, to_status: str):
        self.invoice_id = invoice_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid status transition for invoice {invoice_id}: "
            f"{from_status} -> {to_status}"
        )


# Ledger computation exceptions


class LedgerError(InvoiceKernelError):
    """Base exception for ledger computation errors."""

    code: str = "LEDGER_ERROR"


class LedgerComputationError(LedgerError):
    """
    Ledger recompute failed unexpectedly.

    The aggregate is guaranteed to be unmodified when this is raised.
    """

    code: str = "LEDGER_COMPUTATION_FAILED"

    def __init__(self, invoice_id: str, reason: str):
        self.invoice_id = invoice_id
        self.reason = reason
        super().__init__(f"Ledger recompute failed for invoice {invoice_id}: {reason}")


# Numbering exceptions


class NumberingError(InvoiceKernelError):
    """Base exception for invoice numbering errors."""

    code: str = "NUMBERING_ERROR"


class InvalidNumberingConfigError(NumberingError):
    """Issuer width and modulus cannot render every number."""

    code: str = "INVALID_NUMBERING_CONFIG"

    def __init__(self, width: int, modulus: int, reason: str):
        self.width = width
        self.modulus = modulus
        self.reason = reason
        super().__init__(
            f"Invalid numbering config (width={width}, modulus={modulus}): {reason}"
        )

"""
Invoice Aggregate (``invoice_kernel.domain.invoice``).

Responsibility
--------------
Dataclasses for the invoice aggregate: the ``Invoice`` root, the
``LineItem`` entries it owns, and the ``Payment`` records applied to it.

Architecture position
---------------------
**Kernel domain layer** -- pure data definitions with ZERO I/O.  Mutated
only by ``InvoiceLedgerService`` and handed back to the caller for
persistence.

Invariants enforced
-------------------
* The invoice owns its items and payments by value (plain lists).  Items
  and payments point back with a plain ``invoice_id``, never an object
  reference.
* Derived amounts (``line_total``, ``sub_total``, ``tax_total``,
  ``total``, ``balance_due``) are not constructor arguments; only the
  ledger engine writes them.
* ``discount_total`` is always 0.00.
* Payments are frozen once created.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from invoice_kernel.domain.money import ZERO, Numeric


class InvoiceStatus(Enum):
    """Invoice lifecycle states."""
    DRAFT = "draft"
    SENT = "sent"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"  # declared, never assigned by the kernel
    VOID = "void"  # declared, never assigned by the kernel


class PaymentMethod(Enum):
    """How a payment was settled."""
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    OTHER = "other"


class PaymentTerms(Enum):
    """Standard payment terms; the value is the number of days until due."""
    DUE_ON_RECEIPT = 0
    NET_15 = 15
    NET_30 = 30
    NET_60 = 60

    @property
    def days(self) -> int:
        return self.value


@dataclass
class LineItem:
    """A single line on an invoice.

    ``quantity``, ``unit_price`` and ``tax_rate`` hold whatever the caller
    supplied (arbitrary precision, possibly absent); ``line_total`` is
    overwritten on every recompute.
    """
    description: str
    quantity: Numeric
    unit_price: Numeric
    tax_rate: Numeric = Decimal("0")  # percentage: 10.00 means 10%
    id: UUID = field(default_factory=uuid4)
    service_date: date | None = None
    product_or_service: str | None = None
    invoice_id: UUID | None = None
    line_total: Decimal = field(default=ZERO, init=False)


@dataclass(frozen=True)
class Payment:
    """A payment recorded against one invoice."""
    amount: Numeric
    method: PaymentMethod = PaymentMethod.OTHER
    reference: str | None = None
    paid_at: datetime | None = None
    id: UUID = field(default_factory=uuid4)
    invoice_id: UUID | None = None


@dataclass
class Invoice:
    """Invoice aggregate root."""
    customer_id: UUID | None
    id: UUID = field(default_factory=uuid4)
    invoice_number: str | None = None
    issue_date: date | None = None
    due_date: date | None = None
    terms: PaymentTerms | None = None
    currency: str | None = None  # informational; never converted
    status: InvoiceStatus = InvoiceStatus.DRAFT
    notes: str | None = None
    items: list[LineItem] = field(default_factory=list)
    payments: list[Payment] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    sub_total: Decimal = field(default=ZERO, init=False)
    tax_total: Decimal = field(default=ZERO, init=False)
    discount_total: Decimal = field(default=ZERO, init=False)
    total: Decimal = field(default=ZERO, init=False)
    balance_due: Decimal = field(default=ZERO, init=False)

    @property
    def is_finalized(self) -> bool:
        return self.invoice_number is not None

    def find_item(self, item_id: UUID) -> LineItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def find_payment(self, payment_id: UUID) -> Payment | None:
        for payment in self.payments:
            if payment.id == payment_id:
                return payment
        return None

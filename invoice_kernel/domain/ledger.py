"""
Ledger computation (``invoice_kernel.domain.ledger``).

Responsibility
--------------
Derives line amounts, invoice aggregates and balance-due from line items
and payments.  Pure functions returning frozen result objects; nothing in
this module mutates an invoice.

Architecture position
---------------------
**Kernel domain layer** -- pure functional core, ZERO I/O.  Called by
``InvoiceLedgerService.recompute_totals`` which applies the results.

Invariants enforced
-------------------
* Line formula: ``net = mul(quantity, unit_price)``,
  ``tax = mul(net, tax_rate / 100)``, ``line_total = add(net, tax)``.
  Tax is charged on the rounded net amount, never the raw product.
* Accumulation is item by item with ``add`` so that
  ``total == sub_total + tax_total`` and ``total == sum(line_total)``
  hold exactly under the round-every-step rule.
* ``balance_due = total - paid`` is never clamped.
* Nothing in an incoming item is trusted: every figure is recomputed.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence

from invoice_kernel.domain import money
from invoice_kernel.domain.invoice import InvoiceStatus, LineItem, Payment
from invoice_kernel.domain.workflow import derive_status


@dataclass(frozen=True)
class LineAmounts:
    """Computed figures for one line item."""
    net: Decimal
    tax: Decimal
    total: Decimal


@dataclass(frozen=True)
class LedgerTotals:
    """Computed figures for a whole invoice.

    ``line_totals`` is positionally aligned with the items it was computed
    from.
    """
    line_totals: tuple[Decimal, ...]
    sub_total: Decimal
    tax_total: Decimal
    total: Decimal
    paid: Decimal
    balance_due: Decimal
    payment_count: int
    discount_total: Decimal = money.ZERO

    def status_for(self, current: InvoiceStatus) -> InvoiceStatus:
        return derive_status(current, self.balance_due, self.paid, self.payment_count)


def compute_line(item: LineItem) -> LineAmounts:
    """Compute net, tax and tax-inclusive total for one line item."""
    net = money.mul(item.quantity, item.unit_price)
    tax = money.mul(net, money.percent(item.tax_rate))
    return LineAmounts(net=net, tax=tax, total=money.add(net, tax))


def compute_paid(payments: Iterable[Payment]) -> Decimal:
    """Sum of payment amounts; order does not matter at the rounded level."""
    return money.total_of(p.amount for p in payments)


def compute_totals(items: Sequence[LineItem], payments: Sequence[Payment]) -> LedgerTotals:
    """Compute every derived invoice figure from scratch."""
    sub_total = money.ZERO
    tax_total = money.ZERO
    total = money.ZERO
    line_totals: list[Decimal] = []

    for item in items:
        amounts = compute_line(item)
        sub_total = money.add(sub_total, amounts.net)
        tax_total = money.add(tax_total, amounts.tax)
        total = money.add(total, amounts.total)
        line_totals.append(amounts.total)

    paid = compute_paid(payments)

    return LedgerTotals(
        line_totals=tuple(line_totals),
        sub_total=sub_total,
        tax_total=tax_total,
        total=total,
        paid=paid,
        balance_due=money.sub(total, paid),
        payment_count=len(payments),
    )

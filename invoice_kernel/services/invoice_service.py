"""
InvoiceLedgerService -- entry points that mutate an invoice aggregate.

Responsibility:
    The boundary a caller's service layer calls after loading an invoice:
    create, update (full item replace), add/remove item, add payment,
    finalize, and the recompute they all end in.  Returns the mutated
    aggregate (or payment) for the caller to persist.

Architecture position:
    Kernel > Services -- imperative shell over the pure ledger and workflow.
    Performs no I/O of its own; payment persistence is delegated to an
    optional ``PaymentRecorder`` callback.

Invariants enforced:
    - Recompute from scratch: every change re-derives every line total and
      header total; nothing supplied by the caller is trusted.
    - All-or-nothing: figures and the status transition are computed and
      validated before the first write, so a failure leaves the aggregate
      exactly as it was.
    - DRAFT leaves only through ``finalize``; PARTIALLY_PAID and PAID are
      entered only through recompute.
    - ``finalize`` on a non-DRAFT invoice is a no-op.

Failure modes:
    - InvalidInvoiceError: create without a customer, create of an invoice
      that is not a fresh draft, or items owned by another invoice.
    - LineItemNotFoundError: remove_item with an unknown item ID.
    - PaymentOwnershipError / DuplicatePaymentError /
      InvalidPaymentAmountError: add_payment preconditions.
    - LedgerComputationError: unexpected failure while computing totals.

Concurrency:
    Assumes exclusive access to the aggregate for the duration of a call.
    Isolation between callers editing the same invoice belongs to the
    persistence layer.

Usage:
    ledger = InvoiceLedgerService(clock=SystemClock())
    invoice = ledger.create(Invoice(customer_id=cid, items=[...]))
    ledger.finalize(invoice)
    ledger.add_payment(invoice, Payment(amount=Decimal("1100.00")))
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta
from typing import Callable, Iterable, Sequence
from uuid import UUID

from invoice_config import KernelSettings, get_active_settings
from invoice_kernel.domain import money
from invoice_kernel.domain.clock import Clock, SystemClock
from invoice_kernel.domain.invoice import (
    Invoice,
    InvoiceStatus,
    LineItem,
    Payment,
    PaymentTerms,
)
from invoice_kernel.domain.ledger import LedgerTotals, compute_totals
from invoice_kernel.domain.workflow import FINALIZE, RECOMPUTE, require_transition
from invoice_kernel.exceptions import (
    DuplicatePaymentError,
    InvalidInvoiceError,
    InvalidPaymentAmountError,
    LedgerComputationError,
    LineItemNotFoundError,
    PaymentOwnershipError,
)
from invoice_kernel.logging_config import LogContext, get_logger
from invoice_kernel.services.numbering import InvoiceNumberIssuer, get_default_issuer

logger = get_logger("services.invoice")

PaymentRecorder = Callable[[Payment], None]

_UNCHANGED = object()


class InvoiceLedgerService:
    """
    Applies item and payment changes to an invoice and re-derives its figures.

    Contract:
        Every public mutator ends in a full recompute.  ``recompute_totals``
        is idempotent: two calls with no change in between leave identical
        totals and status.

    Non-goals:
        - Does NOT load or save invoices.
        - Does NOT clamp negative balances (overpayment).
    """

    def __init__(
        self,
        issuer: InvoiceNumberIssuer | None = None,
        clock: Clock | None = None,
        settings: KernelSettings | None = None,
        payment_recorder: PaymentRecorder | None = None,
    ):
        self._settings = settings or get_active_settings()
        self._issuer = issuer or get_default_issuer()
        self._clock = clock or SystemClock()
        self._payment_recorder = payment_recorder

    # =========================================================================
    # Recompute
    # =========================================================================

    def recompute_totals(self, invoice: Invoice) -> None:
        """Re-derive every line total, header total and the status."""
        with LogContext.bind(invoice_id=str(invoice.id)):
            totals = self._compute(invoice, invoice.items, invoice.payments)
            new_status = self._validated_status(invoice, totals)
            self._apply(invoice, invoice.items, totals, new_status)

    def _compute(
        self,
        invoice: Invoice,
        items: Sequence[LineItem],
        payments: Sequence[Payment],
    ) -> LedgerTotals:
        try:
            return compute_totals(items, payments)
        except Exception as exc:
            logger.error(
                "invoice_recompute_failed",
                exc_info=True,
                extra={"item_count": len(items), "payment_count": len(payments)},
            )
            raise LedgerComputationError(str(invoice.id), str(exc)) from exc

    def _validated_status(self, invoice: Invoice, totals: LedgerTotals) -> InvoiceStatus:
        new_status = totals.status_for(invoice.status)
        if new_status != invoice.status:
            require_transition(str(invoice.id), invoice.status, new_status, RECOMPUTE)
        return new_status

    def _apply(
        self,
        invoice: Invoice,
        items: list[LineItem],
        totals: LedgerTotals,
        new_status: InvoiceStatus,
    ) -> None:
        # Nothing below can fail; every check has already run.
        for item, line_total in zip(items, totals.line_totals):
            item.invoice_id = invoice.id
            item.line_total = line_total
        invoice.items = items
        invoice.sub_total = totals.sub_total
        invoice.tax_total = totals.tax_total
        invoice.discount_total = money.ZERO
        invoice.total = totals.total
        invoice.balance_due = totals.balance_due

        previous = invoice.status
        invoice.status = new_status

        logger.info(
            "invoice_totals_recomputed",
            extra={
                "sub_total": totals.sub_total,
                "tax_total": totals.tax_total,
                "total": totals.total,
                "paid": totals.paid,
                "balance_due": totals.balance_due,
                "item_count": len(items),
                "payment_count": totals.payment_count,
                "status": new_status.value,
            },
        )
        if previous != new_status:
            logger.info(
                "invoice_status_changed",
                extra={
                    "from_status": previous.value,
                    "to_status": new_status.value,
                    "action": RECOMPUTE,
                },
            )
        if totals.balance_due < 0:
            logger.warning(
                "invoice_overpaid",
                extra={"balance_due": totals.balance_due},
            )

    # =========================================================================
    # Create / update
    # =========================================================================

    def create(self, invoice: Invoice) -> Invoice:
        """
        Prepare a new draft invoice: attach items, fill defaults, recompute.

        Defaults: issue date is today, due date follows ``terms`` (or the
        configured number of days), currency is the configured default.

        Raises:
            InvalidInvoiceError: No customer, not a DRAFT, already numbered,
                or an item owned by another invoice.
        """
        invoice_id = str(invoice.id)
        with LogContext.bind(invoice_id=invoice_id, customer_id=invoice.customer_id):
            if invoice.customer_id is None:
                raise InvalidInvoiceError(invoice_id, "customer reference is required")
            if invoice.status is not InvoiceStatus.DRAFT:
                raise InvalidInvoiceError(
                    invoice_id, f"new invoices start as draft, got {invoice.status.value}"
                )
            if invoice.is_finalized:
                raise InvalidInvoiceError(invoice_id, "invoice number is assigned at finalize")
            self._check_item_ownership(invoice, invoice.items)
            seen: set[UUID] = set()
            for payment in invoice.payments:
                self._check_payment(invoice, payment)
                if payment.id in seen:
                    raise DuplicatePaymentError(str(payment.id), invoice_id)
                seen.add(payment.id)

            payments = [self._attach_payment(invoice, p) for p in invoice.payments]
            totals = self._compute(invoice, invoice.items, payments)
            new_status = self._validated_status(invoice, totals)

            now = self._clock.now()
            issue_date = invoice.issue_date or self._clock.today()
            invoice.issue_date = issue_date
            invoice.due_date = invoice.due_date or self._default_due_date(issue_date, invoice.terms)
            invoice.currency = invoice.currency or self._settings.defaults.currency
            invoice.created_at = invoice.created_at or now
            invoice.payments = payments
            self._apply(invoice, invoice.items, totals, new_status)

            logger.info(
                "invoice_created",
                extra={
                    "currency": invoice.currency,
                    "issue_date": invoice.issue_date,
                    "due_date": invoice.due_date,
                    "total": invoice.total,
                },
            )
            return invoice

    def update(
        self,
        invoice: Invoice,
        items: Iterable[LineItem],
        *,
        notes=_UNCHANGED,
        currency=_UNCHANGED,
        issue_date=_UNCHANGED,
        due_date=_UNCHANGED,
        terms=_UNCHANGED,
    ) -> Invoice:
        """
        Replace the whole item collection and optionally header fields.

        Old items are discarded, not merged.  Header fields left at their
        default are not touched.
        """
        new_items = list(items)
        with LogContext.bind(invoice_id=str(invoice.id)):
            self._check_item_ownership(invoice, new_items)
            totals = self._compute(invoice, new_items, invoice.payments)
            new_status = self._validated_status(invoice, totals)

            header = {
                "notes": notes,
                "currency": currency,
                "issue_date": issue_date,
                "due_date": due_date,
                "terms": terms,
            }
            for name, value in header.items():
                if value is not _UNCHANGED:
                    setattr(invoice, name, value)

            replaced = len(invoice.items)
            self._apply(invoice, new_items, totals, new_status)
            invoice.updated_at = self._clock.now()

            logger.info(
                "invoice_updated",
                extra={
                    "items_replaced": replaced,
                    "item_count": len(new_items),
                    "fields": sorted(k for k, v in header.items() if v is not _UNCHANGED),
                },
            )
            return invoice

    def add_item(self, invoice: Invoice, item: LineItem) -> Invoice:
        """Append one line item and recompute."""
        with LogContext.bind(invoice_id=str(invoice.id)):
            self._check_item_ownership(invoice, [item])
            if invoice.find_item(item.id) is not None:
                raise InvalidInvoiceError(str(invoice.id), f"line item {item.id} already present")
            items = [*invoice.items, item]
            totals = self._compute(invoice, items, invoice.payments)
            new_status = self._validated_status(invoice, totals)
            self._apply(invoice, items, totals, new_status)
            invoice.updated_at = self._clock.now()
            return invoice

    def remove_item(self, invoice: Invoice, item_id: UUID) -> LineItem:
        """
        Remove one line item, recompute, and return the removed item.

        Raises:
            LineItemNotFoundError: If the invoice does not own ``item_id``.
        """
        with LogContext.bind(invoice_id=str(invoice.id)):
            removed = invoice.find_item(item_id)
            if removed is None:
                raise LineItemNotFoundError(str(invoice.id), str(item_id))
            items = [i for i in invoice.items if i.id != item_id]
            totals = self._compute(invoice, items, invoice.payments)
            new_status = self._validated_status(invoice, totals)
            self._apply(invoice, items, totals, new_status)
            removed.invoice_id = None
            invoice.updated_at = self._clock.now()
            logger.info("invoice_item_removed", extra={"item_id": str(item_id)})
            return removed

    # =========================================================================
    # Payments
    # =========================================================================

    def add_payment(self, invoice: Invoice, payment: Payment) -> Payment:
        """
        Attach a payment, hand it to the payment recorder, recompute.

        Returns:
            The attached payment (``invoice_id`` and ``paid_at`` filled in).

        Raises:
            PaymentOwnershipError: Payment already belongs to another invoice.
            DuplicatePaymentError: Payment already recorded here.
            InvalidPaymentAmountError: Negative amount.
        """
        with LogContext.bind(invoice_id=str(invoice.id)):
            self._check_payment(invoice, payment)
            if invoice.find_payment(payment.id) is not None:
                raise DuplicatePaymentError(str(payment.id), str(invoice.id))
            attached = self._attach_payment(invoice, payment)
            payments = [*invoice.payments, attached]

            totals = self._compute(invoice, invoice.items, payments)
            new_status = self._validated_status(invoice, totals)

            if self._payment_recorder is not None:
                self._payment_recorder(attached)

            invoice.payments = payments
            self._apply(invoice, invoice.items, totals, new_status)
            invoice.updated_at = self._clock.now()

            logger.info(
                "invoice_payment_added",
                extra={
                    "payment_id": str(attached.id),
                    "amount": money.scale(attached.amount),
                    "method": attached.method.value,
                },
            )
            return attached

    # =========================================================================
    # Finalize
    # =========================================================================

    def finalize(self, invoice: Invoice) -> Invoice:
        """
        Assign an invoice number and move DRAFT -> SENT.

        Calling this on any other status does nothing.
        """
        with LogContext.bind(invoice_id=str(invoice.id)):
            if invoice.status is not InvoiceStatus.DRAFT:
                logger.info(
                    "invoice_finalize_skipped",
                    extra={
                        "status": invoice.status.value,
                        "invoice_number": invoice.invoice_number,
                    },
                )
                return invoice

            require_transition(str(invoice.id), invoice.status, InvoiceStatus.SENT, FINALIZE)
            number = self._issuer.next()
            invoice.invoice_number = number
            invoice.status = InvoiceStatus.SENT
            invoice.updated_at = self._clock.now()

            with LogContext.bind(invoice_number=number):
                logger.info("invoice_finalized", extra={"total": invoice.total})
            return invoice

    # =========================================================================
    # Helpers
    # =========================================================================

    def _default_due_date(self, issue_date: date, terms: PaymentTerms | None) -> date:
        days = terms.days if terms is not None else self._settings.defaults.due_days
        return issue_date + timedelta(days=days)

    def _check_item_ownership(self, invoice: Invoice, items: Iterable[LineItem]) -> None:
        for item in items:
            if item.invoice_id is not None and item.invoice_id != invoice.id:
                raise InvalidInvoiceError(
                    str(invoice.id),
                    f"line item {item.id} belongs to invoice {item.invoice_id}",
                )

    def _check_payment(
        self,
        invoice: Invoice,
        payment: Payment,
    ) -> None:
        if payment.invoice_id is not None and payment.invoice_id != invoice.id:
            raise PaymentOwnershipError(
                str(payment.id), str(payment.invoice_id), str(invoice.id)
            )
        amount = money.scale(payment.amount)
        if amount < 0:
            raise InvalidPaymentAmountError(str(payment.id), str(amount))

    def _attach_payment(self, invoice: Invoice, payment: Payment) -> Payment:
        return replace(
            payment,
            invoice_id=invoice.id,
            paid_at=payment.paid_at or self._clock.now(),
        )

"""Tests for JSON log output and invoice log context (invoice_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from invoice_kernel.domain.invoice import InvoiceStatus, PaymentMethod
from invoice_kernel.exceptions import LineItemNotFoundError, PaymentOwnershipError
from invoice_kernel.logging_config import (
    LogContext,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def emitted():
    """Configure logging into a buffer; returns a reader of parsed records."""
    stream = StringIO()
    configure_logging(level=logging.DEBUG, stream=stream)
    return lambda: [json.loads(line) for line in stream.getvalue().splitlines() if line]


class TestRecordShape:

    def test_base_fields(self, emitted):
        get_logger("services.invoice").info("invoice_created")

        (record,) = emitted()
        assert record["message"] == "invoice_created"
        assert record["level"] == "INFO"
        assert record["logger"] == "invoice_kernel.services.invoice"
        assert record["ts"].endswith("+00:00")

    def test_extra_fields_merged(self, emitted):
        get_logger("t").info("invoice_number_issued", extra={"counter": 7, "invoice_number": "00000007"})

        (record,) = emitted()
        assert record["counter"] == 7
        assert record["invoice_number"] == "00000007"

    def test_invoice_values_rendered(self, emitted):
        payment_id = uuid4()
        get_logger("t").info(
            "invoice_payment_added",
            extra={
                "payment_id": payment_id,
                "amount": Decimal("1100.00"),
                "method": PaymentMethod.BANK_TRANSFER,
                "status": InvoiceStatus.PARTIALLY_PAID,
                "due_date": date(2025, 1, 15),
            },
        )

        (record,) = emitted()
        assert record["payment_id"] == str(payment_id)
        assert record["amount"] == "1100.00"
        assert record["method"] == "bank_transfer"
        assert record["status"] == "partially_paid"
        assert record["due_date"] == "2025-01-15"

    def test_unknown_objects_rendered_with_str(self, emitted):
        class Marker:
            def __str__(self):
                return "marker"

        get_logger("t").info("odd", extra={"thing": Marker()})
        assert emitted()[0]["thing"] == "marker"

    def test_every_line_is_json(self, emitted):
        logger = get_logger("t")
        logger.debug("one")
        logger.warning("two", extra={"balance_due": Decimal("-50.00")})

        assert [r["message"] for r in emitted()] == ["one", "two"]

    def test_default_level_drops_debug(self):
        stream = StringIO()
        configure_logging(stream=stream)
        get_logger("t").debug("hidden")
        assert stream.getvalue() == ""


class TestExceptionFields:

    def test_plain_exception(self, emitted):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("t").error("failed", exc_info=True)

        (record,) = emitted()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_kernel_error_code_and_attributes(self, emitted):
        try:
            raise PaymentOwnershipError("pay-1", "inv-a", "inv-b")
        except PaymentOwnershipError:
            get_logger("t").error("payment_rejected", exc_info=True)

        (record,) = emitted()
        assert record["exc_code"] == "PAYMENT_OWNERSHIP"
        assert record["exc_payment_id"] == "pay-1"
        assert record["exc_owner_invoice_id"] == "inv-a"
        assert record["exc_target_invoice_id"] == "inv-b"

    def test_context_kept_alongside_exception(self, emitted):
        with LogContext.bind(invoice_id="inv-a"):
            try:
                raise LineItemNotFoundError("inv-a", "item-9")
            except LineItemNotFoundError:
                get_logger("t").warning("item_missing", exc_info=True)

        (record,) = emitted()
        assert record["invoice_id"] == "inv-a"
        assert record["exc_item_id"] == "item-9"


class TestLogContext:

    def test_bound_fields_appear_on_records(self, emitted):
        invoice_id = uuid4()
        with LogContext.bind(invoice_id=invoice_id, invoice_number="00000001"):
            get_logger("t").info("inside")
        get_logger("t").info("outside")

        inside, outside = emitted()
        assert inside["invoice_id"] == str(invoice_id)
        assert inside["invoice_number"] == "00000001"
        assert "invoice_id" not in outside
        assert "invoice_number" not in outside

    def test_nested_bind_restores_outer_value(self):
        with LogContext.bind(invoice_id="outer"):
            with LogContext.bind(invoice_id="inner", customer_id="c-1"):
                assert LogContext.get_all() == {"invoice_id": "inner", "customer_id": "c-1"}
            assert LogContext.get_all() == {"invoice_id": "outer"}
        assert LogContext.get_all() == {}

    def test_bind_restores_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(invoice_id="temp"):
                raise RuntimeError
        assert LogContext.get_all() == {}

    def test_none_values_skipped(self):
        with LogContext.bind(invoice_id="i", customer_id=None):
            assert LogContext.get_all() == {"invoice_id": "i"}

    def test_set_and_clear(self):
        LogContext.set(customer_id=uuid4(), invoice_number="00000042")
        assert set(LogContext.get_all()) == {"customer_id", "invoice_number"}
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="Unknown log context field"):
            LogContext.set(tenant="acme")
        with pytest.raises(ValueError):
            with LogContext.bind(tenant="acme"):
                pass
        assert LogContext.get_all() == {}

    def test_service_binds_invoice_number_on_finalize(self, emitted, ledger, draft_invoice):
        ledger.finalize(draft_invoice)

        (record,) = [r for r in emitted() if r["message"] == "invoice_finalized"]
        assert record["invoice_id"] == str(draft_invoice.id)
        assert record["invoice_number"] == "00000001"


class TestConfigureLogging:

    def test_second_call_is_ignored(self):
        configure_logging(stream=StringIO())
        configure_logging(stream=StringIO())
        assert len(logging.getLogger("invoice_kernel").handlers) == 1

    def test_custom_handler_gets_json_formatter(self):
        stream = StringIO()
        configure_logging(handler=logging.StreamHandler(stream))
        get_logger("t").info("hello")
        assert json.loads(stream.getvalue())["message"] == "hello"

    def test_reset_detaches_handler(self):
        configure_logging(stream=StringIO())
        reset_logging()
        root = logging.getLogger("invoice_kernel")
        assert root.handlers == []
        assert root.propagate

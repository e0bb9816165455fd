"""
Tests for payload building and the SQLAlchemy invoice store.

SQLite in memory stands in for the production database.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from purchasing_config.schema import InvoiceNumberSettings
from purchasing_kernel.db.engine import drop_tables
from purchasing_kernel.exceptions import (
    DuplicateInvoiceNumberError,
    InvoiceNotFoundError,
    PersistenceError,
)
from purchasing_services.edit_coordinator import open_draft
from purchasing_services.persistence import (
    InvoiceStore,
    SqlAlchemyInvoiceStore,
    _is_duplicate_number,
    build_payload,
)
from tests.conftest import make_draft, make_item


def _draft(number="INV-001", **overrides):
    return make_draft(
        make_item("100", "30", product_id=1),
        make_item("10", "5", product_id=2, quantity=2, expiry_date=date(2025, 3, 1)),
        invoice_number=number,
        notes="",
        **overrides,
    )


class TestBuildPayload:

    def test_payload_fields(self):
        payload = build_payload(_draft())

        assert payload.invoice_number == "INV-001"
        assert payload.supplier_id == 7
        assert payload.date == date(2024, 5, 1)
        assert payload.amount_paid == Decimal("35.00")
        assert payload.total_amount == Decimal("120.00")
        assert payload.notes is None
        assert [item.product_id for item in payload.items] == [1, 2]

    def test_as_dict_renders_strings(self):
        data = build_payload(_draft()).as_dict()

        assert data["amount_paid"] == "35.00"
        assert data["date"] == "2024-05-01"
        assert data["items"][1]["unit_price"] == "10.00"
        assert data["items"][1]["expiry_date"] == "2025-03-01"
        assert data["items"][0]["expiry_date"] is None


class TestSqlAlchemyInvoiceStore:

    def test_satisfies_protocol(self, session_factory):
        assert isinstance(SqlAlchemyInvoiceStore(session_factory), InvoiceStore)

    def test_create_and_fetch(self, session_factory):
        store = SqlAlchemyInvoiceStore(session_factory)
        invoice_id = store.save(build_payload(_draft()))

        record = store.fetch(invoice_id)

        assert record["invoice_id"] == invoice_id
        assert record["invoice_number"] == "INV-001"
        assert record["total_amount"] == Decimal("120.00")
        assert record["amount_paid"] == Decimal("35.00")
        assert [row["product_id"] for row in record["items"]] == [1, 2]
        assert record["items"][1]["expiry_date"] == date(2025, 3, 1)

    def test_fetched_record_opens_as_draft(self, session_factory):
        store = SqlAlchemyInvoiceStore(session_factory)
        invoice_id = store.save(build_payload(_draft()))

        draft = open_draft(store.fetch(invoice_id))

        assert draft.invoice_id == invoice_id
        assert draft.amount_paid == Decimal("35.00")
        assert [item.amount_paid for item in draft.items] == [Decimal("30.00"), Decimal("5.00")]

    def test_update_replaces_rows(self, session_factory):
        store = SqlAlchemyInvoiceStore(session_factory)
        invoice_id = store.save(build_payload(_draft()))

        updated = make_draft(make_item("50", "50", product_id=9), invoice_number="INV-001")
        assert store.save(build_payload(updated), invoice_id=invoice_id) == invoice_id

        record = store.fetch(invoice_id)
        assert [row["product_id"] for row in record["items"]] == [9]
        assert record["amount_paid"] == Decimal("50.00")

    def test_duplicate_number(self, session_factory):
        store = SqlAlchemyInvoiceStore(session_factory)
        store.save(build_payload(_draft()))

        with pytest.raises(DuplicateInvoiceNumberError) as exc_info:
            store.save(build_payload(_draft()))
        assert exc_info.value.status == 422
        assert exc_info.value.invoice_number == "INV-001"

    def test_update_unknown_invoice(self, session_factory):
        store = SqlAlchemyInvoiceStore(session_factory)
        with pytest.raises(InvoiceNotFoundError) as exc_info:
            store.save(build_payload(_draft()), invoice_id=77)
        assert exc_info.value.status == 404

    def test_fetch_unknown_invoice(self, session_factory):
        with pytest.raises(InvoiceNotFoundError):
            SqlAlchemyInvoiceStore(session_factory).fetch(5)

    def test_database_failure_translated(self, session_factory):
        drop_tables()
        with pytest.raises(PersistenceError) as exc_info:
            SqlAlchemyInvoiceStore(session_factory).save(build_payload(_draft()))
        assert exc_info.value.code == "PERSISTENCE_ERROR"
        assert isinstance(exc_info.value.__cause__, Exception)

    def test_save_logged_with_new_flag(self, session_factory, captured_logs):
        store = SqlAlchemyInvoiceStore(session_factory)
        invoice_id = store.save(build_payload(_draft()))
        store.save(build_payload(_draft()), invoice_id=invoice_id)

        saved = [r for r in captured_logs() if r["message"] == "invoice_saved"]
        assert [r["is_new"] for r in saved] == [True, False]
        assert all(r["invoice_id"] == invoice_id for r in saved)

    def test_other_constraint_failures_not_reported_as_duplicate(self, session_factory):
        payload = replace(build_payload(_draft()), date=None)

        with pytest.raises(PersistenceError) as exc_info:
            SqlAlchemyInvoiceStore(session_factory).save(payload)

        assert not isinstance(exc_info.value, DuplicateInvoiceNumberError)
        assert exc_info.value.code == "PERSISTENCE_ERROR"
        assert isinstance(exc_info.value.__cause__, IntegrityError)


class TestDuplicateNumberDetection:
    """Unique-number violations are recognised from each backend's message."""

    @staticmethod
    def _error(message: str) -> IntegrityError:
        return IntegrityError("INSERT INTO purchase_invoices ...", {}, Exception(message))

    @pytest.mark.parametrize("message", [
        "UNIQUE constraint failed: purchase_invoices.invoice_number",
        'duplicate key value violates unique constraint "uq_purchase_invoice_number"',
        "Duplicate entry 'INV-001' for key 'purchase_invoices.uq_purchase_invoice_number'",
    ])
    def test_duplicate_number(self, message):
        assert _is_duplicate_number(self._error(message))

    @pytest.mark.parametrize("message", [
        "NOT NULL constraint failed: purchase_invoices.date",
        'null value in column "supplier_id" violates not-null constraint',
        "FOREIGN KEY constraint failed",
    ])
    def test_other_violations(self, message):
        assert not _is_duplicate_number(self._error(message))


class TestNextInvoiceNumber:

    def setup_method(self):
        self.numbering = InvoiceNumberSettings()

    def test_first_number(self, session_factory):
        store = SqlAlchemyInvoiceStore(session_factory)
        assert store.next_invoice_number(self.numbering) == "INV-001"

    def test_follows_highest(self, session_factory):
        store = SqlAlchemyInvoiceStore(session_factory)
        for number in ("INV-001", "INV-009", "MANUAL-50", "INV-7a"):
            store.save(build_payload(_draft(number)))

        assert store.next_invoice_number(self.numbering) == "INV-010"

    def test_custom_prefix_and_width(self, session_factory):
        store = SqlAlchemyInvoiceStore(session_factory)
        store.save(build_payload(_draft("PO_0041")))
        numbering = InvoiceNumberSettings(prefix="PO_", width=4, fallback="PO_0001")

        assert store.next_invoice_number(numbering) == "PO_0042"

    def test_read_failure_translated(self, session_factory):
        drop_tables()
        with pytest.raises(PersistenceError):
            SqlAlchemyInvoiceStore(session_factory).next_invoice_number(self.numbering)

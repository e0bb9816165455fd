"""
Tests for the edit session state machine.
"""

from decimal import Decimal

import pytest

from purchasing_engines.allocation import ConflictKind
from purchasing_kernel.exceptions import (
    ItemIndexError,
    ReentrantEditError,
    SessionClosedError,
)
from purchasing_services.edit_coordinator import (
    EditCoordinator,
    GlobalPaidChanged,
    ItemPaidChanged,
    ItemRemoved,
    ResetPaid,
)
from purchasing_services.edit_session import EditSession, SessionState
from purchasing_services.persistence import SqlAlchemyInvoiceStore
from purchasing_services.product_directory import InMemoryProductDirectory, ProductRecord
from purchasing_services.submission import SubmissionService
from tests.conftest import make_draft, make_item
from tests.services.test_submission import RecordingStore


class TestStateMachine:

    def setup_method(self):
        self.session = EditSession(make_draft(make_item("100"), make_item("200")))

    def test_starts_idle(self):
        assert self.session.state is SessionState.IDLE
        assert self.session.session_id

    def test_begin_edit(self):
        self.session.begin_edit("amount_paid")
        assert self.session.state is SessionState.EDITING
        assert self.session.editing_field == "amount_paid"

    def test_cancel_edit(self):
        self.session.begin_edit("amount_paid")
        self.session.cancel_edit()
        assert self.session.state is SessionState.IDLE
        assert self.session.editing_field is None

    def test_apply_returns_to_idle(self):
        self.session.begin_edit("amount_paid")
        self.session.apply(GlobalPaidChanged(Decimal("90")))

        assert self.session.state is SessionState.IDLE
        assert self.session.draft.amount_paid == Decimal("90.00")
        assert self.session.totals.remaining_amount == Decimal("210.00")

    def test_failed_edit_keeps_draft(self):
        before = self.session.draft
        with pytest.raises(ItemIndexError):
            self.session.apply(ItemRemoved(index=9))
        assert self.session.draft is before
        assert self.session.state is SessionState.IDLE


class TestConflicts:

    def test_last_conflict_kept_until_next_edit(self):
        session = EditSession(make_draft(make_item("10", "5"), make_item("10"), amount_paid="20"))

        session.apply(ItemPaidChanged(index=0, amount="5"))
        assert session.last_conflict.kind is ConflictKind.INSUFFICIENT_CAPACITY

        session.apply(ResetPaid())
        assert session.last_conflict is None


class TestReentrancy:

    def test_apply_during_recompute_rejected(self):
        class ReentrantDirectory(InMemoryProductDirectory):
            session = None

            def lookup(self, product_id):
                self.session.apply(ResetPaid())
                return super().lookup(product_id)

        directory = ReentrantDirectory([ProductRecord(1, Decimal("3"))])
        session = EditSession(make_draft(make_item("10")), EditCoordinator(directory))
        directory.session = session
        before = session.draft

        with pytest.raises(ReentrantEditError):
            session.select_product(0, 1)

        assert session.draft is before
        assert session.state is SessionState.IDLE


class TestClosing:

    def test_successful_submit_closes(self):
        session = EditSession(make_draft(make_item("10", "10")))
        result = session.submit(SubmissionService(RecordingStore()))

        assert result.succeeded
        assert session.is_closed
        with pytest.raises(SessionClosedError):
            session.apply(ResetPaid())

    def test_submit_to_database_closes(self, session_factory):
        store = SqlAlchemyInvoiceStore(session_factory)
        session = EditSession(make_draft(make_item("40"), make_item("60")))
        session.apply(GlobalPaidChanged(Decimal("50")))

        result = session.submit(SubmissionService(store))

        assert result.succeeded
        assert session.is_closed
        assert store.fetch(result.invoice_id)["amount_paid"] == Decimal("50.00")

    def test_failed_submit_keeps_session_open(self):
        session = EditSession(make_draft(make_item("10", product_id=0)))
        result = session.submit(SubmissionService(RecordingStore()))

        assert not result.succeeded
        assert session.state is SessionState.IDLE

    def test_closed_session_rejects_begin_edit(self):
        session = EditSession(make_draft(make_item("10")), session_id="s-1")
        session.close()
        with pytest.raises(SessionClosedError) as exc_info:
            session.begin_edit("quantity")
        assert exc_info.value.session_id == "s-1"

    def test_session_id_in_logs(self, captured_logs):
        session = EditSession(make_draft(make_item("10")), session_id="s-42")
        session.apply(ResetPaid())

        applied = [r for r in captured_logs() if r["message"] == "edit_action_applied"]
        assert applied[0]["session_id"] == "s-42"

"""
purchasing_services.edit_session -- One user's edit of one invoice draft.

Responsibility:
    Owns the current draft snapshot for the lifetime of an edit, tracks the
    per-session state machine and keeps the most recent allocation
    conflict for display.

State machine:
    IDLE --begin_edit(field)--> EDITING --apply/cancel--> IDLE
    IDLE | EDITING --apply--> RECOMPUTING --> IDLE
    any --close / successful submit--> CLOSED

    RECOMPUTING runs exactly one reconcile step followed by the totals
    refresh; an ``apply`` arriving while it runs is rejected with
    ReentrantEditError instead of interleaving.

Architecture position:
    Services -- stateful wrapper around ``EditCoordinator``.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from enum import Enum

from purchasing_engines.allocation import AllocationConflict
from purchasing_engines.totals import InvoiceTotals, compute_totals
from purchasing_engines.validation import ValidationErrors
from purchasing_kernel.domain.draft import InvoiceDraft
from purchasing_kernel.exceptions import ReentrantEditError, SessionClosedError
from purchasing_kernel.logging_config import LogContext, get_logger
from purchasing_services.edit_coordinator import (
    EditAction,
    EditCoordinator,
    Reconciliation,
)
from purchasing_services.submission import SubmissionResult, SubmissionService

logger = get_logger("services.edit_session")


class SessionState(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    RECOMPUTING = "recomputing"
    CLOSED = "closed"


class EditSession:
    """
    Holds one draft and serializes the edits applied to it.

    Contract:
        Every accepted edit replaces ``draft`` with the reconciled snapshot;
        a rejected edit (exception) leaves it unchanged.
    """

    def __init__(
        self,
        draft: InvoiceDraft,
        coordinator: EditCoordinator | None = None,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self._coordinator = coordinator or EditCoordinator()
        self._draft = draft
        self._state = SessionState.IDLE
        self._editing_field: str | None = None
        self.last_conflict: AllocationConflict | None = None

    @property
    def draft(self) -> InvoiceDraft:
        return self._draft

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def editing_field(self) -> str | None:
        return self._editing_field

    @property
    def is_closed(self) -> bool:
        return self._state is SessionState.CLOSED

    @property
    def totals(self) -> InvoiceTotals:
        return compute_totals(self._draft.items, self._draft.amount_paid)

    def _require_open(self) -> None:
        if self._state is SessionState.CLOSED:
            raise SessionClosedError(self.session_id)

    def begin_edit(self, field: str) -> None:
        """Focus moved into ``field``; nothing is recomputed yet."""
        self._require_open()
        if self._state is SessionState.RECOMPUTING:
            raise ReentrantEditError(f"begin_edit({field})")
        self._state = SessionState.EDITING
        self._editing_field = field

    def cancel_edit(self) -> None:
        if self._state is SessionState.EDITING:
            self._state = SessionState.IDLE
            self._editing_field = None

    def _recompute(self, label: str, step: Callable[[], Reconciliation]) -> Reconciliation:
        self._require_open()
        if self._state is SessionState.RECOMPUTING:
            raise ReentrantEditError(label)

        self._state = SessionState.RECOMPUTING
        try:
            with LogContext.bind(
                session_id=self.session_id,
                invoice_number=self._draft.invoice_number or None,
            ):
                result = step()
        finally:
            self._state = SessionState.IDLE
            self._editing_field = None

        self._draft = result.draft
        self.last_conflict = result.conflict
        return result

    def apply(self, action: EditAction) -> Reconciliation:
        """Run one edit through the coordinator and keep the new snapshot."""
        return self._recompute(
            type(action).__name__,
            lambda: self._coordinator.apply(self._draft, action),
        )

    def select_product(self, index: int, product_id: int) -> Reconciliation:
        return self._recompute(
            "select_product",
            lambda: self._coordinator.select_product(self._draft, index, product_id),
        )

    def validate(self) -> ValidationErrors:
        return self._coordinator.validate(self._draft)

    def submit(self, service: SubmissionService) -> SubmissionResult:
        """Hand the draft to ``service``; the session closes only on success."""
        self._require_open()
        if self._state is SessionState.RECOMPUTING:
            raise ReentrantEditError("submit")
        result = service.submit(self._draft)
        if result.succeeded:
            self.close()
        return result

    def close(self) -> None:
        if self._state is not SessionState.CLOSED:
            self._state = SessionState.CLOSED
            self._editing_field = None
            logger.info("edit_session_closed", extra={"session_id": self.session_id})

"""
purchasing_services.submission -- Validation gate and fire-once hand-off.

Responsibility:
    Runs the validation gate over a draft and, when it passes, hands the
    finalized payload to the invoice store exactly once.  Also opens
    persisted invoices for editing and proposes invoice numbers.

Architecture position:
    Services -- the only caller of ``InvoiceStore.save``.

Invariants enforced:
    - Nothing is stored unless the validation gate returns no errors.
    - No retry: a failed save is reported in the result and the draft is
      left exactly as it was.
    - ``PersistenceError`` is caught here and nowhere else.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as Date

from purchasing_config.schema import PurchasingSettings
from purchasing_engines.validation import ValidationErrors, validate_draft
from purchasing_kernel.domain.draft import InvoiceDraft, new_draft
from purchasing_kernel.exceptions import PersistenceError
from purchasing_kernel.logging_config import LogContext, get_logger
from purchasing_services.edit_coordinator import open_draft
from purchasing_services.persistence import InvoicePayload, InvoiceStore, build_payload

logger = get_logger("services.submission")


@dataclass(frozen=True)
class SubmissionResult:
    """
    Outcome of one submission attempt.

    Exactly one of these holds:
        - ``succeeded`` and ``invoice_id`` is set;
        - ``errors`` is non-empty (the gate rejected the draft);
        - ``error`` is set (the store rejected the payload).
    """

    succeeded: bool
    invoice_id: int | None = None
    payload: InvoicePayload | None = None
    errors: ValidationErrors = field(default_factory=dict)
    error: PersistenceError | None = None

    @property
    def message(self) -> str:
        if self.succeeded:
            return f"Invoice {self.invoice_id} saved"
        if self.error is not None:
            return str(self.error)
        return "; ".join(f"{key}: {text}" for key, text in sorted(self.errors.items()))


class SubmissionService:
    """Validate, then store."""

    def __init__(
        self,
        store: InvoiceStore,
        settings: PurchasingSettings | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or PurchasingSettings()

    def submit(self, draft: InvoiceDraft) -> SubmissionResult:
        """
        Validate ``draft`` and save it (create or update by ``invoice_id``).

        Returns:
            SubmissionResult; never raises for validation or store failures.
        """
        with LogContext.bind(invoice_number=draft.invoice_number or None):
            errors = validate_draft(draft, tolerance=self._settings.sum_tolerance)
            if errors:
                logger.info("invoice_submission_blocked", extra={
                    "error_count": len(errors),
                })
                return SubmissionResult(succeeded=False, errors=errors)

            payload = build_payload(draft)
            try:
                invoice_id = self._store.save(payload, invoice_id=draft.invoice_id)
            except PersistenceError as exc:
                logger.warning("invoice_submission_failed", extra={
                    "error_code": exc.code,
                    "status": exc.status,
                    "error": str(exc),
                })
                return SubmissionResult(succeeded=False, payload=payload, error=exc)

            logger.info("invoice_submitted", extra={
                "invoice_id": invoice_id,
                "is_new": draft.is_new,
                "total_amount": str(payload.total_amount),
                "amount_paid": str(payload.amount_paid),
            })
            return SubmissionResult(succeeded=True, invoice_id=invoice_id, payload=payload)

    def suggest_invoice_number(self) -> str:
        """Next invoice number, or the configured fallback if the store fails."""
        numbering = self._settings.invoice_number
        try:
            return self._store.next_invoice_number(numbering)
        except PersistenceError as exc:
            logger.warning("invoice_number_fallback", extra={
                "fallback": numbering.fallback,
                "error": str(exc),
            })
            return numbering.fallback

    def start(self, today: Date | None = None) -> InvoiceDraft:
        """A new draft carrying the suggested invoice number."""
        return new_draft(invoice_number=self.suggest_invoice_number(), today=today)

    def open(self, invoice_id: int, today: Date | None = None) -> InvoiceDraft:
        """Load a persisted invoice for editing.

        Raises:
            InvoiceNotFoundError: unknown ``invoice_id``.
        """
        return open_draft(self._store.fetch(invoice_id), today=today)

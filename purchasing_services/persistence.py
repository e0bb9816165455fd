"""
purchasing_services.persistence -- Hand-off of finalized invoices to storage.

Responsibility:
    Builds the ``InvoicePayload`` sent to the persistence collaborator from
    a validated draft, and provides the SQLAlchemy-backed ``InvoiceStore``
    (create, update, fetch for editing, next invoice number).

Architecture position:
    Services -- the only module that writes purchase invoices.
    Reads and writes ``purchasing_kernel.models`` through
    ``purchasing_kernel.db.session_scope``.

Invariants enforced:
    - A payload is built from a draft snapshot; the draft itself is never
      touched, so a failed save leaves it intact for a retry.
    - Every database failure surfaces as a ``PersistenceError`` (or a
      subclass); SQLAlchemy exceptions never escape this module.

Failure modes:
    - DuplicateInvoiceNumberError: the invoice number is already used.
    - InvoiceNotFoundError: update or fetch of an unknown invoice id.
    - PersistenceError: any other database failure.
"""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from purchasing_config.schema import InvoiceNumberSettings
from purchasing_kernel.db.engine import session_scope
from purchasing_kernel.domain.draft import InvoiceDraft
from purchasing_kernel.domain.money import ZERO, round2
from purchasing_kernel.exceptions import (
    DuplicateInvoiceNumberError,
    InvoiceNotFoundError,
    PersistenceError,
)
from purchasing_kernel.logging_config import get_logger
from purchasing_kernel.models.purchase_invoice import PurchaseInvoice, PurchaseInvoiceItem

logger = get_logger("services.persistence")


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ItemPayload:
    product_id: int
    quantity: int
    unit_price: Decimal
    number_of_units: int
    amount_paid: Decimal
    expiry_date: dt.date | None = None

    @property
    def total_price(self) -> Decimal:
        return self.quantity * self.unit_price * self.number_of_units


@dataclass(frozen=True)
class InvoicePayload:
    """
    A finalized invoice, ready to store.

    Guarantees:
        - Monetary values are rounded to 2 places.
        - ``notes`` is None rather than an empty string.
    """

    invoice_number: str
    date: dt.date | None
    supplier_id: int
    amount_paid: Decimal
    notes: str | None
    items: tuple[ItemPayload, ...]

    @property
    def total_amount(self) -> Decimal:
        return round2(sum((item.total_price for item in self.items), ZERO))

    def as_dict(self) -> dict[str, Any]:
        """Plain-dict rendering with Decimals and dates as strings."""
        data = asdict(self)
        data["amount_paid"] = f"{self.amount_paid:.2f}"
        data["date"] = self.date.isoformat() if self.date else None
        data["items"] = [
            {
                **row,
                "unit_price": f"{row['unit_price']:.2f}",
                "amount_paid": f"{row['amount_paid']:.2f}",
                "expiry_date": row["expiry_date"].isoformat() if row["expiry_date"] else None,
            }
            for row in data["items"]
        ]
        return data


def build_payload(draft: InvoiceDraft) -> InvoicePayload:
    """Snapshot a validated draft into the payload handed to the store."""
    return InvoicePayload(
        invoice_number=draft.invoice_number.strip(),
        date=draft.date,
        supplier_id=draft.supplier_id,
        amount_paid=round2(draft.amount_paid),
        notes=draft.notes or None,
        items=tuple(
            ItemPayload(
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=round2(item.unit_price),
                number_of_units=item.number_of_units,
                amount_paid=round2(item.amount_paid),
                expiry_date=item.expiry_date,
            )
            for item in draft.items
        ),
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@runtime_checkable
class InvoiceStore(Protocol):
    """Persistence collaborator for purchase invoices."""

    def save(self, payload: InvoicePayload, invoice_id: int | None = None) -> int:
        """Create (``invoice_id`` None) or update an invoice; return its id."""
        ...

    def fetch(self, invoice_id: int) -> dict[str, Any]:
        """Return the stored invoice as a plain record."""
        ...

    def next_invoice_number(self, numbering: InvoiceNumberSettings) -> str:
        """Propose the number for the next new invoice."""
        ...


def _invoice_record(invoice: PurchaseInvoice) -> dict[str, Any]:
    return {
        "invoice_id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "supplier_id": invoice.supplier_id,
        "date": invoice.date,
        "notes": invoice.notes,
        "total_amount": invoice.total_amount,
        "amount_paid": invoice.amount_paid,
        "items": [
            {
                "id": item.id,
                "product_id": item.product_id,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "number_of_units": item.number_of_units,
                "total_price": item.total_price,
                "amount_paid": item.amount_paid,
                "expiry_date": item.expiry_date,
            }
            for item in invoice.items
        ],
    }


# PostgreSQL and MySQL name the constraint; SQLite names the column.
_DUPLICATE_NUMBER_MARKERS = (
    "uq_purchase_invoice_number",
    "purchase_invoices.invoice_number",
)


def _is_duplicate_number(exc: IntegrityError) -> bool:
    """True when ``exc`` is the unique invoice-number constraint firing."""
    text = str(exc.orig)
    return any(marker in text for marker in _DUPLICATE_NUMBER_MARKERS)


class SqlAlchemyInvoiceStore:
    """
    InvoiceStore over the ``purchase_invoices`` tables.

    Contract:
        Each call runs in its own transaction; an update replaces the
        invoice's rows wholesale, keeping the payload's row order.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory

    def save(self, payload: InvoicePayload, invoice_id: int | None = None) -> int:
        try:
            with session_scope(self._session_factory) as session:
                if invoice_id is None:
                    invoice = PurchaseInvoice()
                    session.add(invoice)
                else:
                    invoice = session.get(PurchaseInvoice, invoice_id)
                    if invoice is None:
                        raise InvoiceNotFoundError(invoice_id)

                invoice.invoice_number = payload.invoice_number
                invoice.supplier_id = payload.supplier_id
                invoice.date = payload.date
                invoice.notes = payload.notes
                invoice.total_amount = payload.total_amount
                invoice.amount_paid = payload.amount_paid
                invoice.items = [
                    PurchaseInvoiceItem(
                        position=position,
                        product_id=item.product_id,
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                        number_of_units=item.number_of_units,
                        amount_paid=item.amount_paid,
                        expiry_date=item.expiry_date,
                    )
                    for position, item in enumerate(payload.items)
                ]
                session.flush()
                saved_id = invoice.id
        except IntegrityError as exc:
            duplicate = _is_duplicate_number(exc)
            logger.warning("invoice_save_rejected", extra={
                "invoice_number": payload.invoice_number,
                "duplicate_number": duplicate,
                "error": str(exc.orig),
            })
            if duplicate:
                raise DuplicateInvoiceNumberError(payload.invoice_number) from exc
            raise PersistenceError(f"Invoice rejected by the database: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            logger.error("invoice_save_failed", extra={
                "invoice_number": payload.invoice_number,
                "error": str(exc),
            })
            raise PersistenceError(f"Failed to save invoice: {exc}") from exc

        logger.info("invoice_saved", extra={
            "invoice_id": saved_id,
            "invoice_number": payload.invoice_number,
            "is_new": invoice_id is None,
            "item_count": len(payload.items),
            "amount_paid": str(payload.amount_paid),
        })
        return saved_id

    def fetch(self, invoice_id: int) -> dict[str, Any]:
        try:
            with session_scope(self._session_factory) as session:
                invoice = session.get(PurchaseInvoice, invoice_id)
                if invoice is None:
                    raise InvoiceNotFoundError(invoice_id)
                return _invoice_record(invoice)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load invoice {invoice_id}: {exc}") from exc

    def next_invoice_number(self, numbering: InvoiceNumberSettings) -> str:
        """Highest numeric suffix among ``<prefix><digits>`` numbers, plus one."""
        pattern = re.compile(rf"^{re.escape(numbering.prefix)}(\d+)$")
        try:
            with session_scope(self._session_factory) as session:
                numbers = session.scalars(
                    select(PurchaseInvoice.invoice_number).where(
                        PurchaseInvoice.invoice_number.startswith(
                            numbering.prefix, autoescape=True
                        )
                    )
                ).all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to read invoice numbers: {exc}") from exc

        sequences = [
            int(match.group(1))
            for match in (pattern.match(number) for number in numbers)
            if match
        ]
        return numbering.format(max(sequences, default=0) + 1)

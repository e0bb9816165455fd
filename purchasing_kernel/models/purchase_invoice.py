"""
Module: purchasing_kernel.models.purchase_invoice
Responsibility: ORM persistence for submitted purchase invoices and their
    line items.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - invoice_number is unique (uq_purchase_invoice_number).
    - Items belong to exactly one invoice and are deleted with it.
    - Rows are written only from validated payloads, so the paid-amount
      invariants of the draft hold for stored rows as well.

Failure modes:
    - IntegrityError on duplicate invoice_number; the store translates it
      to DuplicateInvoiceNumberError.
"""

import datetime as dt
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from purchasing_kernel.db.base import TrackedBase


class PurchaseInvoice(TrackedBase):
    """
    A submitted purchase invoice.

    Guarantees:
        - total_amount and amount_paid are the values computed by the engine
          at submission time.
    """

    __tablename__ = "purchase_invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_purchase_invoice_number"),
        Index("idx_purchase_invoice_supplier", "supplier_id"),
        Index("idx_purchase_invoice_date", "date"),
    )

    invoice_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # Supplier directory is external; only the id is kept.
    supplier_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    date: Mapped[dt.date] = mapped_column(
        Date,
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    total_amount: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    amount_paid: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    items: Mapped[list["PurchaseInvoiceItem"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PurchaseInvoiceItem.position",
    )

    def __repr__(self) -> str:
        return f"<PurchaseInvoice {self.id} {self.invoice_number} paid={self.amount_paid}>"


class PurchaseInvoiceItem(TrackedBase):
    """One stored invoice row; ``position`` keeps the draft's row order."""

    __tablename__ = "purchase_invoice_items"

    __table_args__ = (
        Index("idx_purchase_item_invoice", "purchase_invoice_id"),
        Index("idx_purchase_item_product", "product_id"),
    )

    purchase_invoice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("purchase_invoices.id"),
        nullable=False,
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    product_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    unit_price: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    number_of_units: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
    )

    amount_paid: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    expiry_date: Mapped[dt.date | None] = mapped_column(
        Date,
        nullable=True,
    )

    invoice: Mapped["PurchaseInvoice"] = relationship(
        back_populates="items",
    )

    @property
    def total_price(self) -> Decimal:
        return self.quantity * self.unit_price * self.number_of_units

    def __repr__(self) -> str:
        return f"<PurchaseInvoiceItem {self.id} product={self.product_id} paid={self.amount_paid}>"

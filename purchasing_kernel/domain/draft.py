"""
Draft -- immutable line item and purchase-invoice draft value objects.

Responsibility:
    Defines ``LineItem`` (one invoice row with its derived total) and
    ``InvoiceDraft`` (the editable invoice that exclusively owns its rows).
    Edits never mutate these objects; every operation returns a new
    snapshot built with ``dataclasses.replace``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Operations over these types live in ``purchasing_engines``.

Invariants enforced:
    - ``total_price`` is a derived property; it cannot be stored
      independently of quantity, unit price and number of units.
    - Monetary fields are always Decimal (coerced on construction).

Non-goals:
    - Does not enforce ``0 <= amount_paid <= total_price``; the engines
      establish that after every edit and the validation gate checks it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as Date
from decimal import Decimal

from purchasing_kernel.domain.money import ZERO, round2, to_decimal


@dataclass(frozen=True, slots=True)
class LineItem:
    """
    One purchase-invoice row.

    Contract:
        ``total_price == quantity * unit_price * number_of_units`` always,
        because it is computed on access.
    Guarantees:
        - Immutable and hashable (usable as a memoization key).
        - ``unit_price`` and ``amount_paid`` are Decimal rounded to cents, so
          ``total_price`` is always a whole number of cents.
    """

    product_id: int = 0
    quantity: int = 1
    unit_price: Decimal = ZERO
    number_of_units: int = 1
    amount_paid: Decimal = ZERO
    expiry_date: Date | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        for name in ("unit_price", "amount_paid"):
            raw = getattr(self, name)
            value = to_decimal(raw)
            if value is None:
                raise ValueError(f"Invalid {name}: {raw!r}")
            object.__setattr__(self, name, round2(value))

    @property
    def total_price(self) -> Decimal:
        """Derived row total."""
        return self.quantity * self.unit_price * self.number_of_units

    @property
    def capacity(self) -> Decimal:
        """Payment this row can still absorb before it is saturated."""
        return self.total_price - self.amount_paid

    @property
    def is_saturated(self) -> bool:
        return self.amount_paid >= self.total_price


def blank_item(expiry_date: Date | None = None) -> LineItem:
    """A new, unselected row: one unit of nothing, nothing paid."""
    return LineItem(expiry_date=expiry_date)


@dataclass(frozen=True, slots=True)
class InvoiceDraft:
    """
    A purchase invoice being edited.

    Contract:
        ``amount_paid`` is the invoice-level paid amount.  After every
        reconcile it equals the sum of ``items[*].amount_paid``.
    Guarantees:
        - ``items`` is a tuple; the draft owns its rows exclusively.
        - ``invoice_id`` is set only when editing a persisted invoice.
    """

    invoice_number: str = ""
    supplier_id: int = 0
    date: Date | None = None
    notes: str = ""
    amount_paid: Decimal = ZERO
    items: tuple[LineItem, ...] = field(default_factory=tuple)
    invoice_id: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.items, tuple):
            object.__setattr__(self, "items", tuple(self.items))
        if not isinstance(self.amount_paid, Decimal):
            value = to_decimal(self.amount_paid)
            if value is None:
                raise ValueError(f"Invalid amount_paid: {self.amount_paid!r}")
            object.__setattr__(self, "amount_paid", value)

    @property
    def is_new(self) -> bool:
        return self.invoice_id is None

    @property
    def items_paid(self) -> Decimal:
        """Sum of the row payments."""
        return sum((item.amount_paid for item in self.items), ZERO)


def new_draft(
    invoice_number: str = "",
    today: Date | None = None,
    supplier_id: int = 0,
) -> InvoiceDraft:
    """Start a fresh draft holding a single blank row dated ``today``."""
    return InvoiceDraft(
        invoice_number=invoice_number,
        supplier_id=supplier_id,
        date=today,
        items=(blank_item(expiry_date=today),),
    )

"""
Module: purchasing_engines.totals
Responsibility:
    Derive invoice-wide totals (total amount, paid, remaining) and the
    payment status from the current rows.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Derivation only: nothing here is stored, and results are memoized by
      ``(items, amount_paid)`` and nothing else.
    - ``remaining_amount`` is never negative as long as the caller keeps the
      invoice paid amount within ``[0, total_amount]`` (the allocation
      engine and the edit coordinator always do).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from functools import lru_cache

from purchasing_kernel.domain.draft import LineItem
from purchasing_kernel.domain.money import ZERO, round2


class PaymentStatus(str, Enum):
    """How much of an invoice has been settled."""

    FULLY_PAID = "fully_paid"
    PARTIALLY_PAID = "partially_paid"
    UNPAID = "unpaid"


@dataclass(frozen=True)
class InvoiceTotals:
    """Invoice-wide totals derived from the rows."""

    total_amount: Decimal
    amount_paid: Decimal
    remaining_amount: Decimal

    @property
    def status(self) -> PaymentStatus:
        return payment_status(self)


def total_amount(items: Sequence[LineItem]) -> Decimal:
    """Sum of the row totals, in the rounded domain."""
    return round2(sum((item.total_price for item in items), ZERO))


def sum_paid(items: Sequence[LineItem]) -> Decimal:
    """Sum of the row payments, in the rounded domain."""
    return round2(sum((item.amount_paid for item in items), ZERO))


@lru_cache(maxsize=256)
def _compute(items: tuple[LineItem, ...], amount_paid: Decimal) -> InvoiceTotals:
    total = total_amount(items)
    paid = round2(amount_paid)
    return InvoiceTotals(
        total_amount=total,
        amount_paid=paid,
        remaining_amount=round2(total - paid),
    )


def compute_totals(items: Sequence[LineItem], amount_paid: Decimal) -> InvoiceTotals:
    """Totals for ``items`` given the invoice-level paid amount."""
    return _compute(tuple(items), amount_paid)


def payment_status(totals: InvoiceTotals) -> PaymentStatus:
    if totals.remaining_amount <= 0:
        return PaymentStatus.FULLY_PAID
    if totals.amount_paid > 0:
        return PaymentStatus.PARTIALLY_PAID
    return PaymentStatus.UNPAID

"""
purchasing_services.edit_coordinator -- Reducer that keeps a draft consistent.

Responsibility:
    Maps every user edit of a purchase-invoice draft (an ``EditAction``) to
    the engine call that re-establishes the payment invariants, and returns
    the resulting snapshot together with its derived totals and any
    allocation conflict.  ``reconcile`` replaces what would otherwise be a
    cascade of UI callbacks with one explicit, synchronous call per edit.

Architecture position:
    Services -- orchestration over engines + kernel.
    ``reconcile`` itself is pure; ``EditCoordinator`` adds logging, settings
    and the Product Directory lookup.

Invariants enforced (on every returned draft):
    - Every row: ``0 <= amount_paid <= total_price``.
    - ``draft.amount_paid == sum(row.amount_paid)``.
    - The input draft is never modified; a fresh snapshot is returned.

Failure modes:
    - ItemIndexError: an action addresses a row that does not exist.
    - LastItemRemovalError: removing a row would leave fewer than the
      configured minimum.
    - UnknownFieldError: a field edit names a field that cannot be written.
    - ProductNotFoundError: ``select_product`` with an unknown product id.
    - Allocation saturation is NOT an exception; see
      ``Reconciliation.conflict``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import date as Date
from decimal import Decimal
from typing import Any, Union

from purchasing_config.schema import PurchasingSettings
from purchasing_engines.allocation import (
    AllocationConflict,
    distribute_global_paid,
    redistribute_remainder,
    reset_to_full,
)
from purchasing_engines.line_items import (
    clamp_paid,
    parse_count,
    parse_date,
    parse_id,
    parse_price,
    select_product as select_item_product,
    update_field,
)
from purchasing_engines.totals import InvoiceTotals, compute_totals, sum_paid
from purchasing_engines.validation import ValidationErrors, validate_draft
from purchasing_kernel.domain.draft import InvoiceDraft, LineItem, blank_item
from purchasing_kernel.domain.money import ZERO, clamp, round2, to_decimal
from purchasing_kernel.exceptions import (
    ItemIndexError,
    LastItemRemovalError,
    UnknownFieldError,
)
from purchasing_kernel.logging_config import get_logger
from purchasing_services.product_directory import ProductDirectory

logger = get_logger("services.edit_coordinator")

HEADER_FIELDS: tuple[str, ...] = ("invoice_number", "supplier_id", "date", "notes")


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GlobalPaidChanged:
    """The invoice-level paid amount was edited."""

    amount: Any


@dataclass(frozen=True)
class ItemPaidChanged:
    """One row's paid amount was committed (on blur)."""

    index: int
    amount: Any


@dataclass(frozen=True)
class ItemFieldChanged:
    """Quantity, unit price, units, product or expiry date of a row changed."""

    index: int
    field: str
    value: Any


@dataclass(frozen=True)
class ResetPaid:
    """Mark every row fully paid."""


@dataclass(frozen=True)
class ItemAdded:
    expiry_date: Date | None = None


@dataclass(frozen=True)
class ItemRemoved:
    index: int


@dataclass(frozen=True)
class ProductSelected:
    """A product was picked for a row; its purchase price seeds the unit price."""

    index: int
    product_id: int
    purchase_price: Any


@dataclass(frozen=True)
class HeaderChanged:
    field: str
    value: Any


EditAction = Union[
    GlobalPaidChanged,
    ItemPaidChanged,
    ItemFieldChanged,
    ResetPaid,
    ItemAdded,
    ItemRemoved,
    ProductSelected,
    HeaderChanged,
]


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Reconciliation:
    """
    Outcome of one reconcile step.

    Guarantees:
        - ``totals`` is derived from ``draft`` and nothing else.
        - ``conflict`` is set only when an allocation could not be honoured
          as requested; ``draft`` is consistent either way.
    """

    draft: InvoiceDraft
    totals: InvoiceTotals
    conflict: AllocationConflict | None = None

    @property
    def has_conflict(self) -> bool:
        return self.conflict is not None


def _item_at(draft: InvoiceDraft, index: int) -> LineItem:
    if not 0 <= index < len(draft.items):
        raise ItemIndexError(index, len(draft.items))
    return draft.items[index]


def _replace_item(
    items: Sequence[LineItem], index: int, item: LineItem
) -> tuple[LineItem, ...]:
    return tuple(item if i == index else existing for i, existing in enumerate(items))


def _settle(
    draft: InvoiceDraft,
    items: tuple[LineItem, ...],
    amount_paid: Decimal,
    conflict: AllocationConflict | None = None,
) -> Reconciliation:
    result = replace(draft, items=items, amount_paid=amount_paid)
    return Reconciliation(
        draft=result,
        totals=compute_totals(result.items, result.amount_paid),
        conflict=conflict,
    )


def _write_header(draft: InvoiceDraft, field: str, value: Any) -> InvoiceDraft:
    if field == "invoice_number":
        return replace(draft, invoice_number="" if value is None else str(value).strip())
    if field == "supplier_id":
        return replace(draft, supplier_id=parse_id(value))
    if field == "date":
        return replace(draft, date=parse_date(value))
    if field == "notes":
        return replace(draft, notes="" if value is None else str(value))
    raise UnknownFieldError(field, HEADER_FIELDS)


def reconcile(
    draft: InvoiceDraft,
    action: EditAction,
    *,
    minimum_items: int = 1,
) -> Reconciliation:
    """
    Apply one edit and re-establish the payment invariants.

    Args:
        draft: Current snapshot.
        action: The edit to apply.
        minimum_items: Rows a draft must keep; ``ItemRemoved`` below this
            count is rejected.

    Returns:
        A Reconciliation holding the new draft, its totals and the
        allocation conflict, if any.
    """
    match action:
        case GlobalPaidChanged(amount=amount):
            outcome = distribute_global_paid(amount, draft.items)
            return _settle(draft, outcome.items, outcome.amount_paid, outcome.conflict)

        case ItemPaidChanged(index=index, amount=amount):
            item = _item_at(draft, index)
            typed = to_decimal(amount)
            # Typed value is limited to the row total before rebalancing
            entered = round2(clamp(typed if typed is not None else ZERO, ZERO, item.total_price))
            items = _replace_item(draft.items, index, replace(item, amount_paid=entered))
            outcome = redistribute_remainder(index, items, draft.amount_paid)
            return _settle(draft, outcome.items, outcome.amount_paid, outcome.conflict)

        case ItemFieldChanged(index=index, field=field, value=value):
            item = clamp_paid(update_field(_item_at(draft, index), field, value))
            items = _replace_item(draft.items, index, item)
            return _settle(draft, items, sum_paid(items))

        case ProductSelected(index=index, product_id=product_id, purchase_price=price):
            item = clamp_paid(select_item_product(_item_at(draft, index), product_id, price))
            items = _replace_item(draft.items, index, item)
            return _settle(draft, items, sum_paid(items))

        case ResetPaid():
            outcome = reset_to_full(draft.items)
            return _settle(draft, outcome.items, outcome.amount_paid)

        case ItemAdded(expiry_date=expiry_date):
            items = draft.items + (blank_item(expiry_date=expiry_date),)
            return _settle(draft, items, sum_paid(items))

        case ItemRemoved(index=index):
            _item_at(draft, index)
            if len(draft.items) <= minimum_items:
                raise LastItemRemovalError(minimum_items)
            items = tuple(item for i, item in enumerate(draft.items) if i != index)
            return _settle(draft, items, sum_paid(items))

        case HeaderChanged(field=field, value=value):
            updated = _write_header(draft, field, value)
            return _settle(updated, updated.items, sum_paid(updated.items))

        case _:
            raise TypeError(f"Unsupported edit action: {action!r}")


# ---------------------------------------------------------------------------
# Opening persisted invoices
# ---------------------------------------------------------------------------


def _open_item(record: Mapping[str, Any]) -> LineItem:
    paid = to_decimal(record.get("amount_paid"))
    item = LineItem(
        id=record.get("id"),
        product_id=parse_id(record.get("product_id")),
        quantity=parse_count(record.get("quantity")),
        unit_price=parse_price(record.get("unit_price")),
        number_of_units=parse_count(record.get("number_of_units")),
        amount_paid=round2(paid) if paid is not None else ZERO,
        expiry_date=parse_date(record.get("expiry_date")),
    )
    return clamp_paid(item)


def open_draft(record: Mapping[str, Any], today: Date | None = None) -> InvoiceDraft:
    """
    Build an editable draft from a persisted invoice record.

    Row totals are re-derived from their inputs and each row payment is
    rounded and clamped to its row.  The stored invoice paid amount is
    ignored: the draft's paid amount is the sum of the row payments.
    A record without rows yields one blank row dated ``today``.
    """
    items = tuple(_open_item(row) for row in record.get("items") or ())
    if not items:
        items = (blank_item(expiry_date=today),)
    notes = record.get("notes")
    return InvoiceDraft(
        invoice_id=record.get("invoice_id"),
        invoice_number=str(record.get("invoice_number") or ""),
        supplier_id=parse_id(record.get("supplier_id")),
        date=parse_date(record.get("date")),
        notes="" if notes is None else str(notes),
        amount_paid=sum_paid(items),
        items=items,
    )


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------


class EditCoordinator:
    """
    Entry point for draft edits from the presentation layer.

    Contract:
        ``apply`` delegates to ``reconcile`` with the configured minimum
        row count, and logs every action and every conflict.
    Non-goals:
        Holds no draft state; ``EditSession`` does that.
    """

    def __init__(
        self,
        product_directory: ProductDirectory | None = None,
        settings: PurchasingSettings | None = None,
    ) -> None:
        self._products = product_directory
        self._settings = settings or PurchasingSettings()

    @property
    def settings(self) -> PurchasingSettings:
        return self._settings

    def apply(self, draft: InvoiceDraft, action: EditAction) -> Reconciliation:
        logger.debug("edit_action_received", extra={
            "action": type(action).__name__,
            "item_count": len(draft.items),
        })
        result = reconcile(draft, action, minimum_items=self._settings.minimum_items)
        if result.conflict is not None:
            logger.warning("edit_allocation_conflict", extra={
                "action": type(action).__name__,
                "conflict_kind": result.conflict.kind.value,
                "requested": str(result.conflict.requested),
                "allocated": str(result.conflict.allocated),
                "undistributed": str(result.conflict.undistributed),
            })
        logger.info("edit_action_applied", extra={
            "action": type(action).__name__,
            "total_amount": str(result.totals.total_amount),
            "amount_paid": str(result.totals.amount_paid),
        })
        return result

    def select_product(
        self, draft: InvoiceDraft, index: int, product_id: int
    ) -> Reconciliation:
        """Resolve the product's purchase price and write it into row ``index``."""
        if self._products is None:
            raise RuntimeError("EditCoordinator has no product directory")
        _item_at(draft, index)
        product = self._products.lookup(product_id)
        return self.apply(
            draft,
            ProductSelected(
                index=index,
                product_id=product.product_id,
                purchase_price=product.purchase_price,
            ),
        )

    def validate(self, draft: InvoiceDraft) -> ValidationErrors:
        return validate_draft(draft, tolerance=self._settings.sum_tolerance)

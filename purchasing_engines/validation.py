"""
Module: purchasing_engines.validation
Responsibility:
    Final completeness and invariant check gating submission of a draft.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Validation failures are data, never exceptions: the gate returns a
      field-keyed error map and submission proceeds only when it is empty.
    - Keys are stable paths: ``invoice_number``, ``supplier_id``, ``date``,
      ``amount_paid``, ``items``, ``items[<i>].<field>``.
"""

from __future__ import annotations

from decimal import Decimal

from purchasing_engines.totals import sum_paid, total_amount
from purchasing_kernel.domain.draft import InvoiceDraft, LineItem
from purchasing_kernel.domain.money import SUM_TOLERANCE, format2, within_tolerance
from purchasing_kernel.logging_config import get_logger

logger = get_logger("engines.validation")

ValidationErrors = dict[str, str]


def is_structurally_valid(item: LineItem) -> bool:
    """Row names a product and has positive counts and a non-negative price."""
    return (
        item.product_id > 0
        and item.quantity > 0
        and item.unit_price >= 0
        and item.number_of_units > 0
    )


def validate_item(index: int, item: LineItem) -> ValidationErrors:
    """Errors for one row, keyed ``items[<index>].<field>``."""
    errors: ValidationErrors = {}
    prefix = f"items[{index}]"
    if item.product_id <= 0:
        errors[f"{prefix}.product_id"] = "A product must be selected"
    if item.quantity <= 0:
        errors[f"{prefix}.quantity"] = "Quantity must be greater than zero"
    if item.unit_price < 0:
        errors[f"{prefix}.unit_price"] = "Unit price cannot be negative"
    if item.number_of_units <= 0:
        errors[f"{prefix}.number_of_units"] = "Number of units must be greater than zero"
    if item.amount_paid < 0:
        errors[f"{prefix}.amount_paid"] = "Paid amount cannot be negative"
    elif item.amount_paid > item.total_price:
        errors[f"{prefix}.amount_paid"] = (
            f"Paid amount {format2(item.amount_paid)} exceeds item total "
            f"{format2(item.total_price)}"
        )
    return errors


def validate_header(draft: InvoiceDraft) -> ValidationErrors:
    errors: ValidationErrors = {}
    if not draft.invoice_number.strip():
        errors["invoice_number"] = "Invoice number is required"
    if draft.supplier_id <= 0:
        errors["supplier_id"] = "A supplier must be selected"
    if draft.date is None:
        errors["date"] = "Invoice date is required"
    return errors


def validate_draft(
    draft: InvoiceDraft,
    tolerance: Decimal = SUM_TOLERANCE,
) -> ValidationErrors:
    """
    Run every submission-blocking check.

    Postconditions:
        - Returns an empty dict only if the header is complete, every row
          is structurally valid and paid within its own total, at least one
          valid row exists, and the invoice paid amount is within
          ``[0, total_amount]`` and equals the row payments within
          ``tolerance``.
    """
    errors = validate_header(draft)

    for index, item in enumerate(draft.items):
        errors.update(validate_item(index, item))

    if not any(is_structurally_valid(item) for item in draft.items):
        errors["items"] = "Add at least one product with a price and quantity"

    total = total_amount(draft.items)
    if draft.amount_paid < 0:
        errors["amount_paid"] = "Paid amount cannot be negative"
    elif draft.amount_paid > total:
        errors["amount_paid"] = (
            f"Paid amount {format2(draft.amount_paid)} exceeds invoice total "
            f"{format2(total)}"
        )
    elif not within_tolerance(draft.amount_paid, sum_paid(draft.items), tolerance):
        errors["amount_paid"] = (
            f"Paid amount {format2(draft.amount_paid)} does not match the item "
            f"payments {format2(sum_paid(draft.items))}"
        )

    if errors:
        logger.info("draft_validation_failed", extra={
            "error_count": len(errors),
            "fields": sorted(errors),
        })
    return errors

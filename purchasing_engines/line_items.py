"""
Module: purchasing_engines.line_items
Responsibility:
    Field-level edits of a single invoice row: parse the raw value typed by
    the user, write it, and keep the row's payment within its own total.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import purchasing_kernel.domain.

Invariants enforced:
    - ``quantity`` and ``number_of_units`` are positive integers (1 when the
      input is unparseable or non-positive).
    - ``unit_price`` is a non-negative Decimal rounded to 2 places (0 when
      the input is unparseable or negative).
    - After ``clamp_paid``: ``0 <= amount_paid <= total_price``.
    - No side effects on sibling rows; spreading payments across rows is the
      allocation engine's job.

Failure modes:
    - UnknownFieldError for a field that cannot be written through
      ``update_field`` (including ``amount_paid``).
    - ValueError for an expiry date string that is not ISO formatted.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import ROUND_DOWN, Decimal
from typing import Any

from purchasing_kernel.domain.draft import LineItem
from purchasing_kernel.domain.money import ZERO, round2, to_decimal
from purchasing_kernel.exceptions import UnknownFieldError

INTEGER_FIELDS: tuple[str, ...] = ("quantity", "number_of_units")
PRICE_FIELDS: tuple[str, ...] = ("unit_price",)
# Fields whose change alters total_price
TOTAL_FIELDS: tuple[str, ...] = INTEGER_FIELDS + PRICE_FIELDS
PLAIN_FIELDS: tuple[str, ...] = ("product_id", "expiry_date")
EDITABLE_FIELDS: tuple[str, ...] = TOTAL_FIELDS + PLAIN_FIELDS


def parse_count(raw: Any) -> int:
    """Parse a positive integer count; anything else becomes 1.

    Fractions are truncated toward zero ("2.7" -> 2).
    """
    value = to_decimal(raw)
    if value is None:
        return 1
    count = int(value.to_integral_value(rounding=ROUND_DOWN))
    return count if count > 0 else 1


def parse_price(raw: Any) -> Decimal:
    """Parse a unit price rounded to 2 places; unparseable or negative -> 0.00."""
    value = to_decimal(raw)
    if value is None or value < 0:
        return ZERO
    return round2(value)


def parse_id(raw: Any) -> int:
    value = to_decimal(raw)
    if value is None or value != value.to_integral_value():
        return 0
    return max(int(value), 0)


def parse_date(raw: Any) -> date | None:
    """Accept a date, an ISO string, or empty (None)."""
    if isinstance(raw, datetime):
        return raw.date()
    if raw is None or isinstance(raw, date):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    # Date inputs may carry a time part ("2024-05-01T00:00:00")
    return date.fromisoformat(text[:10])


def update_field(item: LineItem, field: str, raw_value: Any) -> LineItem:
    """
    Write one parsed field and return the new row.

    ``total_price`` is derived, so the returned row's total already
    reflects the new quantity/price/units.  The payment is NOT clamped
    here; callers follow up with ``clamp_paid``.

    Raises:
        UnknownFieldError: if ``field`` is not in EDITABLE_FIELDS.
    """
    if field in INTEGER_FIELDS:
        return replace(item, **{field: parse_count(raw_value)})
    if field in PRICE_FIELDS:
        return replace(item, **{field: parse_price(raw_value)})
    if field == "product_id":
        return replace(item, product_id=parse_id(raw_value))
    if field == "expiry_date":
        return replace(item, expiry_date=parse_date(raw_value))
    raise UnknownFieldError(field, EDITABLE_FIELDS)


def clamp_paid(item: LineItem) -> LineItem:
    """Cap the row payment at its total (and floor it at zero)."""
    total = item.total_price
    if item.amount_paid > total:
        return replace(item, amount_paid=round2(total))
    if item.amount_paid < 0:
        return replace(item, amount_paid=ZERO)
    return item


def select_product(item: LineItem, product_id: int, purchase_price: Any) -> LineItem:
    """Point the row at a product and seed its unit price from the directory."""
    return replace(
        item,
        product_id=parse_id(product_id),
        unit_price=parse_price(purchase_price),
    )

"""
Pure domain layer.

Immutable value objects and the shared money helpers, with NO
dependencies on SQLAlchemy, the database, the clock or any I/O.
"""

from purchasing_kernel.domain.draft import (
    InvoiceDraft,
    LineItem,
    blank_item,
    new_draft,
)
from purchasing_kernel.domain.money import (
    MONEY_DECIMAL_PLACES,
    SUM_TOLERANCE,
    ZERO,
    clamp,
    format2,
    format_amount,
    round2,
    to_decimal,
    within_tolerance,
)

__all__ = [
    "InvoiceDraft",
    "LineItem",
    "blank_item",
    "new_draft",
    "MONEY_DECIMAL_PLACES",
    "SUM_TOLERANCE",
    "ZERO",
    "clamp",
    "format2",
    "format_amount",
    "round2",
    "to_decimal",
    "within_tolerance",
]

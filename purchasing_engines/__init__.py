"""
Module: purchasing_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    purchasing_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import purchasing_kernel (never its db/ or models/).

Invariants enforced:
    - Purity: engines never read the clock, the database or the network.
    - Decimal-only arithmetic through the shared ``round2`` rule.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from purchasing_engines import distribute_global_paid, compute_totals
"""

from purchasing_engines.allocation import (
    AllocationConflict,
    AllocationOutcome,
    ConflictKind,
    distribute_global_paid,
    redistribute_remainder,
    reset_to_full,
)
from purchasing_engines.line_items import (
    EDITABLE_FIELDS,
    TOTAL_FIELDS,
    clamp_paid,
    select_product,
    update_field,
)
from purchasing_engines.totals import (
    InvoiceTotals,
    PaymentStatus,
    compute_totals,
    payment_status,
    sum_paid,
    total_amount,
)
from purchasing_engines.tracer import compute_input_fingerprint, traced_engine
from purchasing_engines.validation import (
    ValidationErrors,
    is_structurally_valid,
    validate_draft,
)

__all__ = [
    "AllocationConflict",
    "AllocationOutcome",
    "ConflictKind",
    "distribute_global_paid",
    "redistribute_remainder",
    "reset_to_full",
    "EDITABLE_FIELDS",
    "TOTAL_FIELDS",
    "clamp_paid",
    "select_product",
    "update_field",
    "InvoiceTotals",
    "PaymentStatus",
    "compute_totals",
    "payment_status",
    "sum_paid",
    "total_amount",
    "compute_input_fingerprint",
    "traced_engine",
    "ValidationErrors",
    "is_structurally_valid",
    "validate_draft",
]

"""
Module: purchasing_engines.allocation
Responsibility:
    Keep the invoice-level paid amount and the per-row paid amounts
    consistent by redistributing payment across rows, with deterministic
    rounding and saturation handling.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import purchasing_kernel (domain values, exceptions, logging).

Operations:
    - ``distribute_global_paid``: the invoice paid amount was edited; spread
      it pro rata over all rows, last row absorbs the rounding difference.
    - ``redistribute_remainder``: one row's paid amount was committed; spread
      what is left of the invoice target over the other rows (pro rata, then
      a left-to-right saturation sweep).
    - ``reset_to_full``: mark every row fully paid.

Invariants enforced (on every returned outcome):
    - Every row: ``0 <= amount_paid <= total_price``.
    - ``outcome.amount_paid == sum(row.amount_paid)`` -- the invoice amount
      is recomputed from the rows, never carried over from the request.
    - ``outcome.amount_paid <= total_amount``.
    - Rounding is to 2 places, half away from zero; all sums are taken over
      already-rounded amounts so drift cannot accumulate.
    - Determinism: identical inputs give identical outputs (no clock, no
      randomness, fixed iteration order).

Failure modes:
    - Saturation is NOT an exception: it is reported as an
      ``AllocationConflict`` on the outcome, alongside a consistent
      best-effort state.
    - ItemIndexError when ``edited_index`` does not address a row.

Usage:
    from purchasing_engines.allocation import distribute_global_paid

    outcome = distribute_global_paid(target_paid=Decimal("90"), items=items)
    if outcome.conflict is not None:
        warn(outcome.conflict.message)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Any

from purchasing_engines.totals import sum_paid, total_amount
from purchasing_engines.tracer import traced_engine
from purchasing_kernel.domain.draft import LineItem
from purchasing_kernel.domain.money import ZERO, clamp, format2, round2, to_decimal
from purchasing_kernel.exceptions import ItemIndexError
from purchasing_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")


class ConflictKind(str, Enum):
    """Why an allocation could not be honoured as requested."""

    # Last row could not absorb the rounding difference (global edit)
    UNABSORBED_RESIDUAL = "unabsorbed_residual"
    # Edited row alone is paid more than the invoice target
    EDITED_ITEM_EXCEEDS_TARGET = "edited_item_exceeds_target"
    # Other rows are saturated; leftover went back to the edited row
    INSUFFICIENT_CAPACITY = "insufficient_capacity"


@dataclass(frozen=True)
class AllocationConflict:
    """
    A requested allocation that exceeded the capacity of its rows.

    Contract:
        Recoverable, non-fatal.  The outcome carrying this conflict is still
        consistent; the conflict exists so the caller can tell the user.
    Guarantees:
        - ``requested`` is the invoice total the operation aimed for.
        - ``allocated`` is the invoice total it actually produced.
        - ``undistributed`` is the part of the request that could not be
          placed where it was asked to go.
    """

    kind: ConflictKind
    requested: Decimal
    allocated: Decimal
    undistributed: Decimal
    item_index: int | None = None

    @property
    def residual(self) -> Decimal:
        """Requested minus allocated (signed)."""
        return self.requested - self.allocated

    @property
    def message(self) -> str:
        match self.kind:
            case ConflictKind.EDITED_ITEM_EXCEEDS_TARGET:
                return (
                    f"Item {self.item_index} paid amount exceeds the invoice paid "
                    f"total {format2(self.requested)}; it was reduced by "
                    f"{format2(self.undistributed)} and other items were cleared"
                )
            case ConflictKind.INSUFFICIENT_CAPACITY:
                return (
                    f"{format2(self.undistributed)} could not be distributed over the "
                    f"other items; the remainder was added to item {self.item_index}"
                )
            case _:
                return (
                    f"{format2(self.undistributed)} of the requested "
                    f"{format2(self.requested)} could not be allocated"
                )


@dataclass(frozen=True)
class AllocationOutcome:
    """
    Result of one allocation operation: a fresh snapshot of the rows.

    Guarantees:
        - ``amount_paid == sum(items[*].amount_paid)``.
        - ``conflict`` is None when the request was fully honoured.
    """

    items: tuple[LineItem, ...]
    amount_paid: Decimal
    conflict: AllocationConflict | None = None

    @property
    def has_conflict(self) -> bool:
        return self.conflict is not None


def _as_amount(value: Any) -> Decimal:
    amount = to_decimal(value)
    return round2(amount) if amount is not None else ZERO


def _with_paid(items: Sequence[LineItem], paid: Sequence[Decimal]) -> tuple[LineItem, ...]:
    return tuple(
        item if item.amount_paid == amount else replace(item, amount_paid=amount)
        for item, amount in zip(items, paid)
    )


def _outcome(
    items: tuple[LineItem, ...],
    conflict: AllocationConflict | None = None,
) -> AllocationOutcome:
    return AllocationOutcome(items=items, amount_paid=sum_paid(items), conflict=conflict)


# ---------------------------------------------------------------------------
# Operation A -- invoice-level paid amount edited
# ---------------------------------------------------------------------------


@traced_engine("allocation.global", "1.0", fingerprint_fields=("target_paid", "items"))
def distribute_global_paid(target_paid: Any, items: Sequence[LineItem]) -> AllocationOutcome:
    """
    Spread an invoice-level paid amount over the rows pro rata.

    Preconditions:
        - ``target_paid`` parses as a number (anything else counts as 0).
    Postconditions:
        - ``target_paid`` is clamped to ``[0, total_amount]`` first.
        - Each row gets ``round2(total_price * target / total_amount)``;
          the last row absorbs the rounding difference and is clamped to
          its own total.
        - A difference the last row cannot absorb is reported as an
          UNABSORBED_RESIDUAL conflict; no second pass is attempted.
        - When ``total_amount == 0`` every row is left at 0.
    """
    items = tuple(items)
    if not items:
        return AllocationOutcome(items=(), amount_paid=ZERO)

    total = total_amount(items)
    requested = _as_amount(target_paid)
    target = clamp(requested, ZERO, total)

    logger.info("allocation_global_started", extra={
        "requested": str(requested),
        "target": str(target),
        "total_amount": str(total),
        "item_count": len(items),
    })

    if total == 0:
        return _outcome(_with_paid(items, [ZERO] * len(items)))

    paid = [
        round2(clamp(item.total_price * target / total, ZERO, item.total_price))
        for item in items
    ]

    # Rounding difference goes to the last row (last index wins)
    diff = target - sum(paid, ZERO)
    if diff != 0:
        last = items[-1]
        paid[-1] = round2(clamp(paid[-1] + diff, ZERO, last.total_price))

    allocated = sum(paid, ZERO)
    conflict = None
    if allocated != target:
        conflict = AllocationConflict(
            kind=ConflictKind.UNABSORBED_RESIDUAL,
            requested=target,
            allocated=allocated,
            undistributed=target - allocated,
            item_index=len(items) - 1,
        )
        logger.warning("allocation_global_residual", extra={
            "target": str(target),
            "allocated": str(allocated),
            "undistributed": str(conflict.undistributed),
        })

    outcome = _outcome(_with_paid(items, paid), conflict)
    logger.info("allocation_global_completed", extra={
        "amount_paid": str(outcome.amount_paid),
        "rounding_adjustment": str(diff),
        "conflict": conflict is not None,
    })
    return outcome


# ---------------------------------------------------------------------------
# Operation B -- one row's paid amount committed
# ---------------------------------------------------------------------------


@traced_engine(
    "allocation.item",
    "1.0",
    fingerprint_fields=("edited_index", "items", "target_total"),
)
def redistribute_remainder(
    edited_index: int,
    items: Sequence[LineItem],
    target_total: Any,
) -> AllocationOutcome:
    """
    Rebalance the other rows after one row's paid amount changed.

    Preconditions:
        - ``items[edited_index].amount_paid`` is already clamped to
          ``[0, total_price]`` of that row (the caller's input boundary).
    Postconditions:
        - Edited row alone above target: it is set to the target (capped at
          its own total), every other row to 0, EDITED_ITEM_EXCEEDS_TARGET.
        - Other rows weigh nothing: no row changes.
        - Otherwise the rest of the target is spread over the other rows
          pro rata, capped per row; a shortfall is filled by a left-to-right
          sweep over rows with spare capacity, and a rounding overshoot is
          taken back right-to-left.
        - Whatever the other rows cannot absorb is added to the edited row
          (capped at its total) and reported as INSUFFICIENT_CAPACITY.

    Raises:
        ItemIndexError: if ``edited_index`` does not address a row.
    """
    items = tuple(items)
    if not 0 <= edited_index < len(items):
        raise ItemIndexError(edited_index, len(items))

    target = max(_as_amount(target_total), ZERO)
    edited = items[edited_index]
    edited_paid = round2(edited.amount_paid)
    required_other = target - edited_paid

    logger.info("allocation_item_started", extra={
        "edited_index": edited_index,
        "edited_paid": str(edited_paid),
        "target": str(target),
        "required_other": str(required_other),
        "item_count": len(items),
    })

    if required_other < 0:
        capped = round2(clamp(target, ZERO, edited.total_price))
        paid = [capped if i == edited_index else ZERO for i in range(len(items))]
        result = _with_paid(items, paid)
        conflict = AllocationConflict(
            kind=ConflictKind.EDITED_ITEM_EXCEEDS_TARGET,
            requested=target,
            allocated=sum_paid(result),
            undistributed=edited_paid - capped,
            item_index=edited_index,
        )
        logger.warning("allocation_item_exceeds_target", extra={
            "edited_index": edited_index,
            "edited_paid": str(edited_paid),
            "target": str(target),
        })
        return _outcome(result, conflict)

    others = [i for i in range(len(items)) if i != edited_index]
    other_weight = sum((items[i].total_price for i in others), ZERO)
    if other_weight == 0:
        logger.info("allocation_item_no_weight", extra={
            "edited_index": edited_index,
            "other_count": len(others),
        })
        return _outcome(items)

    paid = [round2(item.amount_paid) for item in items]
    paid[edited_index] = edited_paid

    # Proportional pass
    for i in others:
        cap = items[i].total_price
        paid[i] = round2(clamp(cap * required_other / other_weight, ZERO, cap))

    remaining = required_other - sum((paid[i] for i in others), ZERO)

    if remaining < 0:
        # Rounding overshoot: give the extra cents back, last rows first
        for i in reversed(others):
            take = min(-remaining, paid[i])
            if take > 0:
                paid[i] -= take
                remaining += take
            if remaining == 0:
                break
    elif remaining > 0:
        # Saturation sweep, left to right
        for i in others:
            spare = items[i].total_price - paid[i]
            if spare > 0:
                add = min(remaining, spare)
                paid[i] = round2(paid[i] + add)
                remaining -= add
                if remaining <= 0:
                    break

    conflict = None
    if remaining > 0:
        paid[edited_index] = round2(
            clamp(edited_paid + remaining, ZERO, edited.total_price)
        )
        conflict = AllocationConflict(
            kind=ConflictKind.INSUFFICIENT_CAPACITY,
            requested=target,
            allocated=sum(paid, ZERO),
            undistributed=remaining,
            item_index=edited_index,
        )
        logger.warning("allocation_item_insufficient_capacity", extra={
            "edited_index": edited_index,
            "undistributed": str(remaining),
            "target": str(target),
        })

    outcome = _outcome(_with_paid(items, paid), conflict)
    logger.info("allocation_item_completed", extra={
        "edited_index": edited_index,
        "amount_paid": str(outcome.amount_paid),
        "conflict": conflict is not None,
    })
    return outcome


# ---------------------------------------------------------------------------
# Operation C -- mark fully paid
# ---------------------------------------------------------------------------


@traced_engine("allocation.reset", "1.0", fingerprint_fields=("items",))
def reset_to_full(items: Sequence[LineItem]) -> AllocationOutcome:
    """Every row paid in full; invoice paid amount becomes the invoice total."""
    items = tuple(items)
    outcome = _outcome(_with_paid(items, [round2(item.total_price) for item in items]))
    logger.info("allocation_reset_completed", extra={
        "amount_paid": str(outcome.amount_paid),
        "item_count": len(items),
    })
    return outcome

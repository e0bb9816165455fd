"""
Money -- the single shared rounding and formatting rule.

Responsibility:
    Provides ``round2`` and ``format2``, the only sanctioned way to round or
    display a monetary value.  The allocation engine, the validation gate,
    payload building and any UI layer all go through these two functions so
    that rounding never differs between computation and display.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Decimal-only arithmetic: floats are converted through ``str()`` before
      they reach ``Decimal`` so binary artefacts never leak into amounts.
    - Rounding is to 2 decimal places, half away from zero
      (``ROUND_HALF_UP`` in the ``decimal`` module rounds ties away from zero
      for negative values too).

Failure modes:
    - ``to_decimal`` returns ``None`` for unparseable or non-finite input;
      callers decide the default.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

MONEY_DECIMAL_PLACES = 2
MONEY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0.00")

# Tolerance for comparing sums of independently rounded amounts.
SUM_TOLERANCE = Decimal("0.01")


def to_decimal(value: Any) -> Decimal | None:
    """
    Parse ``value`` into a finite Decimal.

    Accepts Decimal, int, float and numeric strings (surrounding whitespace
    is ignored).  Returns None for None, booleans, empty strings, NaN,
    infinities and anything ``Decimal`` cannot parse.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            result = Decimal(text)
        except (InvalidOperation, ValueError):
            return None
    if not result.is_finite():
        return None
    return result


def round2(value: Decimal | int | str | float) -> Decimal:
    """
    Round a monetary value to 2 decimal places, half away from zero.

    Postconditions:
        - Returns a Decimal with exponent -2.
    Raises:
        ValueError: if ``value`` is not a finite number.
    """
    amount = to_decimal(value)
    if amount is None:
        raise ValueError(f"Invalid monetary amount: {value!r}")
    rounded = amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
    # Normalize negative zero so -0.00 and 0.00 render identically.
    return rounded if rounded != 0 else ZERO


def format2(value: Decimal | int | str | float | None) -> str:
    """Render a monetary value with exactly two decimals ("0.00" for None)."""
    if value is None:
        return "0.00"
    amount = to_decimal(value)
    if amount is None:
        return "0.00"
    return f"{round2(amount):.2f}"


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    """Restrict ``value`` to the closed range ``[low, high]``."""
    if value < low:
        return low
    if value > high:
        return high
    return value


def within_tolerance(
    left: Decimal,
    right: Decimal,
    tolerance: Decimal = SUM_TOLERANCE,
) -> bool:
    """True when two amounts differ by at most ``tolerance``."""
    return abs(left - right) <= tolerance


def format_amount(value: Decimal | int | str | float | None, currency: str = "") -> str:
    """Two-decimal rendering followed by a currency code ("12.50 EGP")."""
    text = format2(value)
    return f"{text} {currency}" if currency else text

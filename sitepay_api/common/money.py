# sitepay_api/common/money.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from sitepay_api.common.errors import InvalidInputError

ZERO = Decimal("0")
RUPEE = Decimal("1")
PAISA = Decimal("0.01")


def dec(x) -> Decimal:
    """Lenient conversion for values already stored (None -> 0)."""
    if x is None or x == "":
        return ZERO
    return Decimal(str(x))


def parse_amount(value, field: str) -> Decimal:
    """Strict conversion for caller input: non-negative decimal or InvalidInputError."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise InvalidInputError(f"{field} must be a number")
    try:
        amt = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInputError(f"{field} must be a number, got {value!r}")
    if not amt.is_finite():
        raise InvalidInputError(f"{field} must be a finite number")
    if amt < 0:
        raise InvalidInputError(f"{field} must not be negative")
    return amt.quantize(PAISA, rounding=ROUND_HALF_UP)


def round_rupees(x: Decimal) -> Decimal:
    """Half-up to whole rupees (applies to negatives symmetrically)."""
    q = dec(x).quantize(RUPEE, rounding=ROUND_HALF_UP)
    # no signed zero: -0.4 and 0 x negative both land here
    return q.copy_abs() if q.is_zero() else q


def as_float(x):
    return float(x) if x is not None else None

# sitepay_api/common/months.py
from __future__ import annotations

import calendar as pycal
import re
from typing import Tuple

from sitepay_api.common.errors import InvalidInputError

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def parse_month(raw) -> Tuple[int, int]:
    """'YYYY-MM' -> (year, month). Raises InvalidInputError on anything else."""
    m = _MONTH_RE.match(str(raw or "").strip())
    if not m:
        raise InvalidInputError(f"month must be in YYYY-MM format, got {raw!r}")
    year, month = int(m.group(1)), int(m.group(2))
    if not (1 <= month <= 12) or year < 1900:
        raise InvalidInputError(f"month out of range: {raw!r}")
    return year, month


def month_key(year, month) -> str:
    try:
        y, m = int(year), int(month)
    except (TypeError, ValueError):
        raise InvalidInputError("year and month must be integers")
    if not (1 <= m <= 12) or y < 1900:
        raise InvalidInputError(f"invalid year/month: {year}/{month}")
    return f"{y:04d}-{m:02d}"


def normalize_month(raw) -> str:
    y, m = parse_month(raw)
    return month_key(y, m)


def days_in_month(raw) -> int:
    """Calendar day count (Sundays and holidays included)."""
    y, m = parse_month(raw)
    return pycal.monthrange(y, m)[1]

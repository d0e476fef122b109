"""
Month utilities.

Months are `YYYY-MM` strings everywhere in the ledger. Only the functions
that need "now" read a clock, and they all accept it as a parameter.
"""

import re
from datetime import datetime
from typing import Optional

_MONTH_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def parse_month(month: str) -> tuple[int, int]:
    """Split `YYYY-MM` into (year, month). Raises ValueError on anything else."""
    match = _MONTH_RE.match(month or "")
    if not match:
        raise ValueError(f"Invalid month: {month!r} (expected YYYY-MM)")
    return int(match.group(1)), int(match.group(2))


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def shift_month(month: str, delta: int) -> str:
    """Move `delta` calendar months forward (negative: backward)."""
    year, month_num = parse_month(month)
    index = year * 12 + (month_num - 1) + delta
    return month_key(index // 12, index % 12 + 1)


def current_month(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return month_key(now.year, now.month)


def previous_month(month: str) -> str:
    """One calendar month back; January rolls over to December of the prior year."""
    return shift_month(month, -1)


def next_month(month: str) -> str:
    return shift_month(month, 1)


def months_range(start: str, end: str) -> list[str]:
    """
    Inclusive ascending sequence from `start` to `end`.

    Empty when `start` is after `end`.
    """
    parse_month(start)
    parse_month(end)
    months = []
    current = start
    while current <= end:
        months.append(current)
        current = next_month(current)
    return months


def last_n_months(n: int, now: Optional[datetime] = None) -> list[str]:
    """The `n` months ending at the current month, oldest first."""
    if n <= 0:
        return []
    end = current_month(now)
    return months_range(shift_month(end, -(n - 1)), end)

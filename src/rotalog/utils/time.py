"""Time utilities for rotalog."""

from __future__ import annotations

import calendar
import string
import time
from datetime import datetime

__all__ = ["add_months", "add_years", "to_base36", "epoch_base36"]

_BASE36_DIGITS = string.digits + string.ascii_lowercase


def add_months(moment: datetime, months: int) -> datetime:
    """Add calendar months to ``moment``, clamping the day to the target month."""

    index = moment.month - 1 + months
    year = moment.year + index // 12
    month = index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def add_years(moment: datetime, years: int) -> datetime:
    """Add calendar years to ``moment``; Feb 29 becomes Feb 28 in common years."""

    return add_months(moment, years * 12)


def to_base36(value: int) -> str:
    if value < 0:
        return "-" + to_base36(-value)
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def epoch_base36(now: float | None = None) -> str:
    """Seconds since the epoch rendered in base 36."""

    return to_base36(int(time.time() if now is None else now))

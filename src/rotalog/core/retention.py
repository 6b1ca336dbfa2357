"""Age based retention rules for rotated backups."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, List

from ..utils.time import add_months, add_years

__all__ = ["AgeType", "RetentionPolicy", "expiry_of", "is_obsolete", "last_modified"]


class AgeType(enum.IntEnum):
    """Calendar unit used to express the retention age."""

    DAYS = 0
    MONTHS = 1
    YEARS = 2

    @classmethod
    def parse(cls, value: "AgeType | int | str") -> "AgeType":
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        text = str(value).strip()
        if text.isdigit():
            return cls(int(text))
        try:
            return cls[text.upper()]
        except KeyError:
            raise ValueError(f"Unknown age type {value!r}") from None


def expiry_of(moment: datetime, age_type: AgeType, age: int) -> datetime:
    """Return ``moment`` shifted forward by ``age`` units of ``age_type``."""

    if age_type is AgeType.DAYS:
        return moment + timedelta(days=age)
    if age_type is AgeType.MONTHS:
        return add_months(moment, age)
    return add_years(moment, age)


def is_obsolete(last_modified: datetime, age_type: AgeType, age: int, now: datetime) -> bool:
    """True when ``last_modified`` plus the retention age is not after ``now``."""

    return expiry_of(last_modified, age_type, age) <= now


def last_modified(path: Path) -> datetime:
    """Local, naive modification time of ``path``."""

    return datetime.fromtimestamp(path.stat().st_mtime)


@dataclass(slots=True)
class RetentionPolicy:
    """Retention rule for one log file family."""

    age: int = 1
    age_type: AgeType = AgeType.MONTHS

    def is_obsolete(self, path: Path, now: datetime | None = None) -> bool:
        """Evaluate ``path``; missing files are never obsolete."""

        try:
            modified = last_modified(path)
        except OSError:
            return False
        return is_obsolete(modified, self.age_type, self.age, now or datetime.now())

    def select_obsolete(self, paths: Iterable[Path], now: datetime | None = None) -> List[Path]:
        """Return the obsolete prefix of ``paths``, which must be ordered oldest-first.

        The scan stops at the first entry that is still within the retention
        age. A newer-looking file followed by an older one (mtimes out of order)
        therefore protects the older one until the next sweep.
        """

        moment = now or datetime.now()
        selected: List[Path] = []
        for path in paths:
            if not self.is_obsolete(path, moment):
                break
            selected.append(path)
        return selected

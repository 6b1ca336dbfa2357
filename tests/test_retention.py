from __future__ import annotations

import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from rotalog.core.retention import AgeType, RetentionPolicy, expiry_of, is_obsolete


def test_days_boundary_is_inclusive() -> None:
    modified = datetime(2024, 3, 1, 12, 0, 0)
    assert not is_obsolete(modified, AgeType.DAYS, 30, modified + timedelta(days=30, seconds=-1))
    assert is_obsolete(modified, AgeType.DAYS, 30, modified + timedelta(days=30))


@pytest.mark.parametrize(
    ("modified", "age_type", "age", "expected"),
    [
        (datetime(2024, 1, 31), AgeType.MONTHS, 1, datetime(2024, 2, 29)),
        (datetime(2023, 1, 31), AgeType.MONTHS, 1, datetime(2023, 2, 28)),
        (datetime(2023, 11, 15), AgeType.MONTHS, 3, datetime(2024, 2, 15)),
        (datetime(2024, 2, 29), AgeType.YEARS, 1, datetime(2025, 2, 28)),
        (datetime(2024, 2, 29), AgeType.YEARS, 4, datetime(2028, 2, 29)),
        (datetime(2024, 5, 5), AgeType.DAYS, 0, datetime(2024, 5, 5)),
    ],
)
def test_calendar_arithmetic(modified: datetime, age_type: AgeType, age: int, expected: datetime) -> None:
    assert expiry_of(modified, age_type, age) == expected


def test_month_rollover_obsolescence() -> None:
    modified = datetime(2023, 1, 31, 8, 0)
    assert not is_obsolete(modified, AgeType.MONTHS, 1, datetime(2023, 2, 28, 7, 59))
    assert is_obsolete(modified, AgeType.MONTHS, 1, datetime(2023, 2, 28, 8, 0))


def test_age_type_parse() -> None:
    assert AgeType.parse("days") is AgeType.DAYS
    assert AgeType.parse(" Years ") is AgeType.YEARS
    assert AgeType.parse(1) is AgeType.MONTHS
    assert AgeType.parse("2") is AgeType.YEARS
    with pytest.raises(ValueError):
        AgeType.parse("weeks")


def _aged(path: Path, now: datetime, days: int) -> Path:
    path.write_text("old", encoding="utf-8")
    stamp = (now - timedelta(days=days)).timestamp()
    os.utime(path, (stamp, stamp))
    return path


def test_select_obsolete_stops_at_first_fresh_entry(tmp_path: Path) -> None:
    now = datetime.now()
    policy = RetentionPolicy(age=30, age_type=AgeType.DAYS)
    files = [
        _aged(tmp_path / "a", now, 40),
        _aged(tmp_path / "b", now, 20),
        _aged(tmp_path / "c", now, 5),
    ]
    assert policy.select_obsolete(files, now) == [files[0]]


def test_select_obsolete_out_of_order_entry_is_kept(tmp_path: Path) -> None:
    now = datetime.now()
    policy = RetentionPolicy(age=30, age_type=AgeType.DAYS)
    fresh = _aged(tmp_path / "fresh", now, 10)
    stale = _aged(tmp_path / "stale", now, 35)
    assert policy.select_obsolete([fresh, stale], now) == []


def test_missing_file_is_not_obsolete(tmp_path: Path) -> None:
    policy = RetentionPolicy(age=0, age_type=AgeType.DAYS)
    assert not policy.is_obsolete(tmp_path / "missing.log")

from __future__ import annotations

import os
from pathlib import Path

from rotalog.utils.paths import (
    active_log_path,
    list_backups,
    next_backup_path,
    temp_compressed_path,
)
from rotalog.utils.time import to_base36


def _touch(path: Path, mtime: float | None = None) -> Path:
    path.write_text("x", encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def test_next_backup_path_probes_from_unnumbered(tmp_path: Path) -> None:
    base = active_log_path(tmp_path, "app.log")
    assert next_backup_path(base) == tmp_path / "app.log.bak"
    _touch(tmp_path / "app.log.bak")
    assert next_backup_path(base) == tmp_path / "app.log.bak1"
    _touch(tmp_path / "app.log.bak1")
    assert next_backup_path(base) == tmp_path / "app.log.bak2"


def test_next_backup_path_takes_first_gap(tmp_path: Path) -> None:
    base = tmp_path / "app.log"
    for name in ("app.log.bak", "app.log.bak1", "app.log.bak3"):
        _touch(tmp_path / name)
    assert next_backup_path(base) == tmp_path / "app.log.bak2"


def test_next_backup_path_compressed(tmp_path: Path) -> None:
    base = tmp_path / "app.log"
    _touch(tmp_path / "app.log.bak")
    assert next_backup_path(base, compressed=True) == tmp_path / "app.log.bak.gz"
    _touch(tmp_path / "app.log.bak.gz")
    assert next_backup_path(base, compressed=True) == tmp_path / "app.log.bak1.gz"


def test_list_backups_oldest_first_per_convention(tmp_path: Path) -> None:
    base = tmp_path / "app.log"
    _touch(base)
    _touch(tmp_path / "app.log.bak", mtime=3_000)
    _touch(tmp_path / "app.log.bak1", mtime=1_000)
    _touch(tmp_path / "app.log.bak2", mtime=2_000)
    _touch(tmp_path / "app.log.bak.gz", mtime=500)
    _touch(tmp_path / "app.log.bak1.kf12ab.gz", mtime=100)
    _touch(tmp_path / "other.log.bak", mtime=10)

    plain = list_backups(base, compressed=False)
    assert [p.name for p in plain] == ["app.log.bak1", "app.log.bak2", "app.log.bak"]

    packed = list_backups(base, compressed=True)
    assert [p.name for p in packed] == ["app.log.bak.gz"]


def test_list_backups_missing_directory(tmp_path: Path) -> None:
    assert list_backups(tmp_path / "nope" / "app.log", compressed=False) == []


def test_temp_compressed_path_uses_base36_epoch(tmp_path: Path) -> None:
    source = tmp_path / "app.log.bak1"
    temp = temp_compressed_path(source, now=1_700_000_000)
    assert temp.name == f"app.log.bak1.{to_base36(1_700_000_000)}.gz"
    assert to_base36(35) == "z"
    assert to_base36(36) == "10"


def test_temp_compressed_path_skips_taken_names(tmp_path: Path) -> None:
    source = tmp_path / "app.log.bak"
    stamp = to_base36(1_700_000_000)
    (tmp_path / f"app.log.bak.{stamp}.gz").write_bytes(b"leftover")
    (tmp_path / f"app.log.bak.{stamp}1.gz").write_bytes(b"leftover")

    temp = temp_compressed_path(source, now=1_700_000_000)

    assert temp.name == f"app.log.bak.{stamp}2.gz"
    assert not temp.exists()
    assert list_backups(tmp_path / "app.log", compressed=True) == []

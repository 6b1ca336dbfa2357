"""Path synthesis helpers for the active log file and its backups."""

from __future__ import annotations

import re
from pathlib import Path
from typing import List

from .time import epoch_base36

__all__ = [
    "BACKUP_SUFFIX",
    "COMPRESSED_SUFFIX",
    "ensure_directory",
    "active_log_path",
    "backup_pattern",
    "next_backup_path",
    "list_backups",
    "temp_compressed_path",
]

BACKUP_SUFFIX = ".bak"
COMPRESSED_SUFFIX = ".gz"


def ensure_directory(path: str | Path) -> Path:
    """Ensure the directory ``path`` exists and return it as ``Path``."""

    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def active_log_path(directory: str | Path, filename: str) -> Path:
    """Build the full path of the active log file inside ``directory``."""

    return Path(directory) / filename


def _candidate(base: Path, index: int, compressed: bool) -> Path:
    number = str(index) if index else ""
    suffix = f"{BACKUP_SUFFIX}{number}"
    if compressed:
        suffix += COMPRESSED_SUFFIX
    return base.with_name(base.name + suffix)


def next_backup_path(base: Path, *, compressed: bool = False) -> Path:
    """Return the first backup path for ``base`` that does not exist yet.

    Probing always restarts from the un-numbered ``.bak`` form and moves to
    ``.bak1``, ``.bak2`` and so on, so a gap left by a deleted backup is reused
    only when it is the first free slot. Nothing is created on disk.
    """

    index = 0
    candidate = _candidate(base, index, compressed)
    while candidate.exists():
        index += 1
        candidate = _candidate(base, index, compressed)
    return candidate


def backup_pattern(filename: str, *, compressed: bool) -> re.Pattern[str]:
    """Regex matching backup names of ``filename`` for one suffix convention."""

    tail = re.escape(COMPRESSED_SUFFIX) if compressed else ""
    return re.compile(rf"^{re.escape(filename)}{re.escape(BACKUP_SUFFIX)}\d*{tail}$")


def list_backups(base: Path, *, compressed: bool) -> List[Path]:
    """List the existing backups of ``base`` sorted oldest-first by mtime.

    The directory is scanned on every call; temporary compression outputs do
    not match the backup pattern and are never listed.
    """

    directory = base.parent
    if not directory.is_dir():
        return []
    pattern = backup_pattern(base.name, compressed=compressed)
    entries: list[tuple[float, str, Path]] = []
    for path in directory.iterdir():
        if not pattern.match(path.name):
            continue
        try:
            stat = path.stat()
        except OSError:
            continue
        entries.append((stat.st_mtime, path.name, path))
    entries.sort(key=lambda item: (item[0], item[1]))
    return [path for _, _, path in entries]


def temp_compressed_path(source: Path, now: float | None = None) -> Path:
    """Free intermediate name used while ``source`` is being compressed.

    Names look like ``<backup>.<epoch36>.gz``; when that exists (a leftover or
    a second run within the same second) ``<backup>.<epoch36>N.gz`` is tried
    with increasing ``N``.
    """

    stamp = f"{source.name}.{epoch_base36(now)}"
    candidate = source.with_name(f"{stamp}{COMPRESSED_SUFFIX}")
    index = 1
    while candidate.exists():
        candidate = source.with_name(f"{stamp}{index}{COMPRESSED_SUFFIX}")
        index += 1
    return candidate

"""Active log file ownership, size based rotation and backup retention."""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, List

from ..codec.gzip_stream import DEFAULT_LEVEL
from ..config.schema import BackupPolicy
from ..core.levels import Severity
from ..core.retention import RetentionPolicy
from ..core.source import MessageSink
from ..utils.paths import active_log_path, ensure_directory, list_backups, next_backup_path
from .compress_async import AsyncCompressor, CompressionJob

__all__ = [
    "DEFAULT_FILENAME",
    "ActiveLogFile",
    "WriterState",
    "RotationManager",
]

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "qbittorrent.log"
OPEN_FAILURE_MESSAGE = "An error occurred while trying to open the log file. Logging to file is disabled."


class WriterState(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    ROTATING = "rotating"


@dataclass(slots=True)
class ActiveLogFile:
    path: Path
    stream: BinaryIO

    @property
    def size(self) -> int:
        return self.stream.tell()


class RotationManager:
    """Own the active log file and every rotation decision made about it.

    Only the owning writer calls into this class. Backups are rediscovered by
    scanning the directory each time; no listing is cached between calls.
    """

    def __init__(
        self,
        policy: BackupPolicy,
        *,
        diagnostics: MessageSink,
        compressor: AsyncCompressor | None = None,
        filename: str = DEFAULT_FILENAME,
        compression_level: int = DEFAULT_LEVEL,
    ) -> None:
        self.policy = policy
        self.diagnostics = diagnostics
        self.compressor = compressor
        self.filename = filename
        self.compression_level = compression_level
        self._path: Path | None = None
        self._active: ActiveLogFile | None = None
        self._state = WriterState.CLOSED

    # ------------------------------------------------------------------
    @property
    def state(self) -> WriterState:
        return self._state

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def directory(self) -> Path | None:
        return self._path.parent if self._path is not None else None

    @property
    def size(self) -> int:
        return self._active.size if self._active is not None else 0

    def retention(self) -> RetentionPolicy:
        return RetentionPolicy(age=self.policy.age, age_type=self.policy.age_type)

    # ------------------------------------------------------------------
    def change_path(self, directory: str | Path) -> bool:
        """Move the active file into ``directory``.

        Returns ``False`` without touching anything when ``directory`` is
        textually identical to the current one. The comparison is on strings,
        so it is case sensitive on every platform.
        """

        if self._path is not None and str(directory) == str(self._path.parent):
            return False

        self.close()
        self._path = active_log_path(directory, self.filename)
        try:
            ensure_directory(directory)
        except OSError as exc:
            logger.warning("Cannot create log directory %s: %s", directory, exc)

        if self.retention().is_obsolete(self._path):
            self._remove(self._path)
            self.delete_obsolete_backups()
        elif self.policy.backup_enabled and self._existing_size() >= self.policy.max_size_bytes:
            self._make_backup(from_path_change=True)

        self.open()
        return True

    def open(self) -> bool:
        if self._path is None:
            raise RuntimeError("No log path configured")
        if self._active is not None:
            return True
        try:
            stream = self._path.open("ab")
        except OSError as exc:
            logger.warning("Cannot open %s: %s", self._path, exc)
            return self._open_failed()
        try:
            os.chmod(self._path, 0o600)
        except OSError as exc:
            stream.close()
            logger.warning("Cannot set permissions on %s: %s", self._path, exc)
            return self._open_failed()
        self._active = ActiveLogFile(path=self._path, stream=stream)
        self._state = WriterState.OPEN
        return True

    def close(self) -> None:
        active, self._active = self._active, None
        self._state = WriterState.CLOSED
        if active is None:
            return
        try:
            active.stream.close()
        except OSError as exc:
            logger.warning("Error closing %s: %s", active.path, exc)

    def write(self, data: bytes) -> bool:
        if self._state is not WriterState.OPEN or self._active is None:
            return False
        try:
            self._active.stream.write(data)
        except OSError as exc:
            logger.warning("Cannot write to %s: %s", self._active.path, exc)
            return False
        return True

    def flush(self) -> None:
        if self._active is None:
            return
        try:
            self._active.stream.flush()
        except OSError as exc:
            logger.warning("Cannot flush %s: %s", self._active.path, exc)

    # ------------------------------------------------------------------
    def needs_rotation(self) -> bool:
        return (
            self._state is WriterState.OPEN
            and self.policy.backup_enabled
            and self.size >= self.policy.max_size_bytes
        )

    def maybe_rotate(self) -> bool:
        if not self.needs_rotation():
            return False
        self.rotate()
        return True

    def rotate(self) -> Path | None:
        """Close the active file, move it to the next backup name and reopen."""

        if self._path is None:
            raise RuntimeError("No log path configured")
        self.close()
        self._state = WriterState.ROTATING
        backup = self._make_backup(from_path_change=False)
        self._state = WriterState.CLOSED
        self.open()
        return backup

    def _make_backup(self, *, from_path_change: bool) -> Path | None:
        if self._path is None:
            raise RuntimeError("No log path configured")
        target = next_backup_path(self._path, compressed=False)
        try:
            self._path.rename(target)
        except OSError as exc:
            logger.warning("Cannot rename %s to %s: %s", self._path, target, exc)
            return None
        logger.debug("Rotated %s to %s", self._path, target)

        if self.policy.compress_backups and self.compressor is not None:
            self.compressor.submit(
                CompressionJob(
                    source=target,
                    base=self._path,
                    level=self.compression_level,
                    disable_policy_on_failure=from_path_change,
                )
            )
        self.delete_obsolete_backups()
        return target

    # ------------------------------------------------------------------
    def backups(self, *, compressed: bool | None = None) -> List[Path]:
        """Backups of the active file, oldest first.

        ``compressed`` defaults to the naming convention currently in effect.
        """

        if self._path is None:
            return []
        if compressed is None:
            compressed = self.policy.compress_backups
        return list_backups(self._path, compressed=compressed)

    def delete_obsolete_backups(self, now: datetime | None = None) -> List[Path]:
        """Delete obsolete backups from the oldest end; returns what was removed."""

        if not self.policy.delete_old_enabled or self._path is None:
            return []
        removed: List[Path] = []
        for path in self.retention().select_obsolete(self.backups(), now):
            if self._remove(path):
                removed.append(path)
        return removed

    def collect_compression_results(self) -> None:
        """Apply the outcome of finished background compressions."""

        if self.compressor is None:
            return
        for result in self.compressor.drain_results():
            if result.ok:
                continue
            logger.warning("%s", result.error)
            if result.job.disable_policy_on_failure and self.policy.compress_backups:
                logger.warning("Disabling backup compression after a failed attempt")
                self.policy.compress_backups = False

    # ------------------------------------------------------------------
    def _existing_size(self) -> int:
        if self._path is None:
            raise RuntimeError("No log path configured")
        try:
            return self._path.stat().st_size
        except OSError:
            return 0

    def _remove(self, path: Path) -> bool:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Cannot remove %s: %s", path, exc)
            return False
        return True

    def _open_failed(self) -> bool:
        self._active = None
        self._state = WriterState.CLOSED
        self.diagnostics.emit(OPEN_FAILURE_MESSAGE, Severity.CRITICAL)
        return False

"""File writer subscribed to the message bus."""

from __future__ import annotations

import threading
from pathlib import Path

from ..config.schema import BackupPolicy
from ..core.source import LogMsg, MessageBus
from ..formatters.text import format_message
from .compress_async import AsyncCompressor
from .file_rotating import DEFAULT_FILENAME, RotationManager

__all__ = ["FLUSH_INTERVAL_S", "LogWriter"]

FLUSH_INTERVAL_S = 2.0


class LogWriter:
    """Persist every bus message into a rotating log file.

    Writes are buffered. After a write that did not rotate, a single-shot
    timer flushes the file ``flush_interval_s`` seconds later unless one is
    already pending; a rotation closes, and therefore flushes, the file at once.
    """

    def __init__(
        self,
        bus: MessageBus,
        directory: str | Path,
        policy: BackupPolicy,
        *,
        compressor: AsyncCompressor | None = None,
        filename: str = DEFAULT_FILENAME,
        compression_level: int = 6,
        flush_interval_s: float = FLUSH_INTERVAL_S,
    ) -> None:
        self.bus = bus
        self.policy = policy
        self.flush_interval_s = flush_interval_s
        self.rotation = RotationManager(
            policy,
            diagnostics=bus,
            compressor=compressor,
            filename=filename,
            compression_level=compression_level,
        )
        # Writer state is guarded by the bus delivery lock.
        self._lock = bus.lock
        self._flusher: threading.Timer | None = None
        self._subscribed = False

        with self._lock:
            self.rotation.change_path(directory)
        self.bus.subscribe(self.append)
        self._subscribed = True

    # ------------------------------------------------------------------
    @property
    def path(self) -> Path | None:
        return self.rotation.path

    def append(self, msg: LogMsg) -> None:
        with self._lock:
            if not self.rotation.write(format_message(msg).encode("utf-8")):
                return
            self.rotation.collect_compression_results()
            self.rotation.delete_obsolete_backups()
            if not self.rotation.maybe_rotate():
                self._schedule_flush()

    def change_path(self, directory: str | Path) -> bool:
        with self._lock:
            self._cancel_flush()
            return self.rotation.change_path(directory)

    def flush(self) -> None:
        with self._lock:
            self._flusher = None
            self.rotation.flush()

    def close(self) -> None:
        if self._subscribed:
            self.bus.unsubscribe(self.append)
            self._subscribed = False
        with self._lock:
            self._cancel_flush()
            self.rotation.collect_compression_results()
            self.rotation.close()

    # ------------------------------------------------------------------
    def _schedule_flush(self) -> None:
        if self._flusher is not None and self._flusher.is_alive():
            return
        timer = threading.Timer(self.flush_interval_s, self.flush)
        timer.daemon = True
        self._flusher = timer
        timer.start()

    def _cancel_flush(self) -> None:
        timer, self._flusher = self._flusher, None
        if timer is not None:
            timer.cancel()

    def __enter__(self) -> "LogWriter":
        return self

    def __exit__(self, exc_type, exc: BaseException | None, tb) -> None:  # type: ignore[override]
        self.close()

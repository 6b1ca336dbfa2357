"""Background compression of rotated backups on a bounded worker pool."""

from __future__ import annotations

import logging
import os
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Set, Tuple

from ..codec.gzip_stream import DEFAULT_LEVEL, compress_stream
from ..utils.paths import next_backup_path, temp_compressed_path

__all__ = [
    "CompressionConfig",
    "CompressionJob",
    "CompressionResult",
    "FileTimes",
    "AsyncCompressor",
    "compress_backup",
]

logger = logging.getLogger(__name__)

# Serializes the choice of the compressed name with the rename that claims it.
_FINALIZE_LOCK = threading.Lock()


@dataclass(slots=True)
class CompressionConfig:
    level: int = DEFAULT_LEVEL
    max_workers: int = 2


@dataclass(frozen=True, slots=True)
class CompressionJob:
    """One rotated backup to compress.

    ``base`` is the active log path the compressed name is derived from.
    """

    source: Path
    base: Path
    level: int = DEFAULT_LEVEL
    disable_policy_on_failure: bool = False


@dataclass(frozen=True, slots=True)
class CompressionResult:
    job: CompressionJob
    ok: bool
    destination: Path | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class FileTimes:
    """Filesystem timestamps of a file, in nanoseconds.

    Only access and modification times can be written back portably; birth
    and metadata-change times are captured for diagnostics.
    """

    accessed_ns: int
    modified_ns: int
    changed_ns: int
    created_ns: int | None = None

    @classmethod
    def capture(cls, path: Path) -> "FileTimes":
        stat = path.stat()
        birth = getattr(stat, "st_birthtime", None)
        return cls(
            accessed_ns=stat.st_atime_ns,
            modified_ns=stat.st_mtime_ns,
            changed_ns=stat.st_ctime_ns,
            created_ns=int(birth * 1_000_000_000) if birth is not None else None,
        )

    def restore(self, path: Path) -> None:
        os.utime(path, ns=(self.accessed_ns, self.modified_ns))


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Cannot remove %s: %s", path, exc)


def compress_backup(job: CompressionJob) -> CompressionResult:
    """Compress ``job.source`` and replace it with a ``.bakN.gz`` file.

    The original is removed only after the compressed copy is complete, so a
    failure leaves the uncompressed backup untouched.
    """

    source = job.source
    temp = temp_compressed_path(source)
    try:
        times = FileTimes.capture(source)
        with source.open("rb") as src, temp.open("xb") as dst:
            ok = compress_stream(src, dst, job.level)
    except FileExistsError:
        return CompressionResult(job=job, ok=False, error=f"Can't open {temp}: file exists")
    except OSError as exc:
        _discard(temp)
        return CompressionResult(job=job, ok=False, error=f"Can't compress {source}: {exc}")

    if not ok:
        _discard(temp)
        return CompressionResult(job=job, ok=False, error=f"Can't compress {source}")

    try:
        times.restore(temp)
        source.unlink()
    except OSError as exc:
        _discard(temp)
        return CompressionResult(job=job, ok=False, error=f"Can't replace {source}: {exc}")

    with _FINALIZE_LOCK:
        destination = next_backup_path(job.base, compressed=True)
        try:
            temp.rename(destination)
        except OSError as exc:
            # The source is already gone; the temp file is the only copy left.
            logger.error("Can't rename %s to %s: %s; the backup survives only as %s", temp, destination, exc, temp)
            return CompressionResult(
                job=job,
                ok=False,
                destination=temp,
                error=f"Can't rename {temp} to {destination}: {exc}; backup kept as {temp}",
            )
    return CompressionResult(job=job, ok=True, destination=destination)


class AsyncCompressor:
    """Run :func:`compress_backup` jobs without blocking the writer.

    Completed results are pushed onto a result channel that the owner drains
    with :meth:`drain_results`; each :meth:`submit` also returns a future.
    A job whose source is still being compressed is deferred and runs on the
    same worker right after the current job, so one path is never compressed
    twice at the same time and no rotated backup is skipped.
    """

    def __init__(self, config: CompressionConfig | None = None) -> None:
        self.config = config or CompressionConfig()
        self._executor: ThreadPoolExecutor | None = None
        self._results: "queue.SimpleQueue[CompressionResult]" = queue.SimpleQueue()
        self._in_flight: Set[Path] = set()
        self._deferred: Dict[Path, Tuple[CompressionJob, "Future[CompressionResult]"]] = {}
        self._lock = threading.Lock()

    def start(self) -> None:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=max(self.config.max_workers, 1),
                    thread_name_prefix="rotalog-compress",
                )

    def stop(self, wait: bool = True) -> None:
        """Stop accepting jobs; in-flight jobs are allowed to finish."""

        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    @property
    def running(self) -> bool:
        return self._executor is not None

    def submit(self, job: CompressionJob) -> "Future[CompressionResult] | None":
        """Schedule ``job``; returns ``None`` only when the compressor is stopped.

        If ``job.source`` is being compressed right now, the job is deferred
        until that run finishes. A later job for the same source replaces a
        deferred one and shares its future.
        """

        with self._lock:
            if self._executor is None:
                logger.warning("Compressor is stopped; %s stays uncompressed", job.source)
                return None
            if job.source in self._in_flight:
                deferred = self._deferred.get(job.source)
                future: "Future[CompressionResult]" = deferred[1] if deferred else Future()
                self._deferred[job.source] = (job, future)
                logger.debug("Deferring compression of %s until the running job finishes", job.source)
                return future
            self._in_flight.add(job.source)
            return self._executor.submit(self._run, job)

    def pending(self) -> int:
        with self._lock:
            return len(self._in_flight) + len(self._deferred)

    def drain_results(self) -> List[CompressionResult]:
        results: List[CompressionResult] = []
        while True:
            try:
                results.append(self._results.get_nowait())
            except queue.Empty:
                return results

    def _run(self, job: CompressionJob) -> CompressionResult:
        first = self._compress(job)
        while True:
            with self._lock:
                deferred = self._deferred.pop(job.source, None)
                if deferred is None:
                    self._in_flight.discard(job.source)
                    return first
            job, future = deferred
            future.set_result(self._compress(job))

    def _compress(self, job: CompressionJob) -> CompressionResult:
        try:
            result = compress_backup(job)
        except Exception as exc:
            logger.exception("Unexpected failure compressing %s", job.source)
            result = CompressionResult(job=job, ok=False, error=str(exc))
        if result.ok:
            logger.debug("Compressed %s into %s", job.source, result.destination)
        self._results.put(result)
        return result

    def __enter__(self) -> "AsyncCompressor":
        self.start()
        return self

    def __exit__(self, exc_type, exc: BaseException | None, tb) -> None:  # type: ignore[override]
        self.stop()

from __future__ import annotations

import gzip
import logging
import os
import threading
from pathlib import Path

import pytest

from rotalog.handlers import compress_async
from rotalog.handlers.compress_async import (
    AsyncCompressor,
    CompressionConfig,
    CompressionJob,
    CompressionResult,
    compress_backup,
)


def _backup(tmp_path: Path, name: str = "app.log.bak", payload: bytes = b"rotated line\n" * 100) -> Path:
    path = tmp_path / name
    path.write_bytes(payload)
    return path


def test_compress_backup_replaces_original_and_keeps_times(tmp_path: Path) -> None:
    source = _backup(tmp_path)
    os.utime(source, (1_600_000_000, 1_600_000_100))

    result = compress_backup(CompressionJob(source=source, base=tmp_path / "app.log"))

    assert result.ok
    assert result.destination == tmp_path / "app.log.bak.gz"
    assert not source.exists()
    stat = result.destination.stat()
    assert int(stat.st_mtime) == 1_600_000_100
    assert int(stat.st_atime) == 1_600_000_000
    assert gzip.decompress(result.destination.read_bytes()) == b"rotated line\n" * 100
    assert sorted(p.name for p in tmp_path.iterdir()) == ["app.log.bak.gz"]


def test_compress_backup_picks_next_free_compressed_name(tmp_path: Path) -> None:
    (tmp_path / "app.log.bak.gz").write_bytes(b"older")
    source = _backup(tmp_path, "app.log.bak3")

    result = compress_backup(CompressionJob(source=source, base=tmp_path / "app.log"))

    assert result.destination == tmp_path / "app.log.bak1.gz"
    assert (tmp_path / "app.log.bak.gz").read_bytes() == b"older"


def test_failed_compression_keeps_original(tmp_path: Path) -> None:
    source = _backup(tmp_path)

    result = compress_backup(CompressionJob(source=source, base=tmp_path / "app.log", level=99))

    assert not result.ok
    assert result.error
    assert source.read_bytes() == b"rotated line\n" * 100
    assert list(tmp_path.glob("*.gz")) == []


def test_missing_source_reports_failure(tmp_path: Path) -> None:
    result = compress_backup(CompressionJob(source=tmp_path / "app.log.bak", base=tmp_path / "app.log"))
    assert not result.ok
    assert list(tmp_path.iterdir()) == []


def test_results_reported_through_future_and_channel(tmp_path: Path) -> None:
    sources = [_backup(tmp_path, name) for name in ("app.log.bak", "app.log.bak1", "app.log.bak2")]
    with AsyncCompressor(CompressionConfig(max_workers=2)) as compressor:
        futures = [compressor.submit(CompressionJob(source=s, base=tmp_path / "app.log")) for s in sources]

    assert all(f is not None and f.result().ok for f in futures)
    results = compressor.drain_results()
    assert len(results) == 3
    assert compressor.drain_results() == []
    finals = sorted(p.name for p in tmp_path.iterdir())
    assert finals == ["app.log.bak.gz", "app.log.bak1.gz", "app.log.bak2.gz"]


def test_resubmitted_source_is_deferred_until_the_running_job_finishes(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    release = threading.Event()
    started = threading.Event()
    calls: list[CompressionJob] = []

    def _blocking(job: CompressionJob) -> CompressionResult:
        calls.append(job)
        started.set()
        release.wait(timeout=5)
        return CompressionResult(job=job, ok=True, destination=job.source)

    monkeypatch.setattr(compress_async, "compress_backup", _blocking)
    source = tmp_path / "app.log.bak"
    job = CompressionJob(source=source, base=tmp_path / "app.log")

    compressor = AsyncCompressor()
    compressor.start()
    try:
        first = compressor.submit(job)
        assert first is not None
        assert started.wait(timeout=5)
        second = compressor.submit(job)
        third = compressor.submit(job)
        assert second is not None
        assert third is second
        assert len(calls) == 1
        assert compressor.pending() == 2
    finally:
        release.set()
        compressor.stop(wait=True)

    assert first.result().ok
    assert second.result(timeout=5).ok
    assert len(calls) == 2
    assert compressor.pending() == 0
    assert len(compressor.drain_results()) == 2


def test_rename_failure_reports_the_surviving_temp_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    source = _backup(tmp_path)
    unreachable = tmp_path / "missing" / "app.log.bak.gz"
    monkeypatch.setattr(compress_async, "next_backup_path", lambda base, compressed: unreachable)

    with caplog.at_level(logging.ERROR, logger="rotalog.handlers.compress_async"):
        result = compress_backup(CompressionJob(source=source, base=tmp_path / "app.log"))

    assert not result.ok
    assert not source.exists()
    survivor = result.destination
    assert survivor is not None and survivor.parent == tmp_path
    assert gzip.decompress(survivor.read_bytes()) == b"rotated line\n" * 100
    assert str(survivor) in result.error
    assert any(str(survivor) in record.getMessage() for record in caplog.records)


def test_stopped_compressor_rejects_jobs(tmp_path: Path) -> None:
    compressor = AsyncCompressor()
    assert not compressor.running
    assert compressor.submit(CompressionJob(source=_backup(tmp_path), base=tmp_path / "app.log")) is None
    assert (tmp_path / "app.log.bak").exists()

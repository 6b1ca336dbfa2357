"""Configuration schema definition for rotalog."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping

from platformdirs import user_log_dir

from ..core.retention import AgeType
from ..handlers.compress_async import CompressionConfig

DEFAULT_CONFIG: Dict[str, Any] = {
    "paths": {
        "log_dir": None,
        "filename": "qbittorrent.log",
    },
    "file_logger": {
        "enabled": True,
        "max_size_bytes": 65 * 1024,
        "backup_enabled": True,
        "compress_backups": False,
        "delete_old_enabled": True,
        "age": 1,
        "age_type": "months",
    },
    "compression": {
        "level": 6,
        "max_workers": 2,
    },
    "writer": {
        "flush_interval_s": 2.0,
    },
    "bus": {
        "backlog_size": 20000,
    },
    "capture": {
        "stdlib_logging": False,
        "level": "INFO",
    },
}


def default_config() -> Dict[str, Any]:
    """Return a deep copy of the default configuration mapping."""

    return deepcopy(DEFAULT_CONFIG)


@dataclass(slots=True)
class BackupPolicy:
    """Rotation and retention settings, read afresh on every operation.

    Instances are shared with the running writer; assigning an attribute
    changes the behaviour of the next append, rotation or path change.
    """

    max_size_bytes: int = 65 * 1024
    backup_enabled: bool = True
    compress_backups: bool = False
    delete_old_enabled: bool = True
    age: int = 1
    age_type: AgeType = AgeType.MONTHS


@dataclass(slots=True)
class PathsConfig:
    log_dir: Path
    filename: str


@dataclass(slots=True)
class WriterConfig:
    flush_interval_s: float = 2.0


@dataclass(slots=True)
class BusConfig:
    backlog_size: int = 20000


@dataclass(slots=True)
class CaptureConfig:
    stdlib_logging: bool = False
    level: str | int = "INFO"


@dataclass(slots=True)
class RotalogConfig:
    paths: PathsConfig
    enabled: bool
    policy: BackupPolicy
    compression: CompressionConfig
    writer: WriterConfig
    bus: BusConfig
    capture: CaptureConfig
    raw: Dict[str, Any] = field(repr=False)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _to_paths_config(data: Mapping[str, Any]) -> PathsConfig:
    log_dir = data.get("log_dir") or user_log_dir("rotalog")
    filename = str(data.get("filename") or "qbittorrent.log")
    return PathsConfig(log_dir=Path(log_dir), filename=filename)


def _to_policy(data: Mapping[str, Any]) -> BackupPolicy:
    return BackupPolicy(
        max_size_bytes=int(data.get("max_size_bytes", 65 * 1024)),
        backup_enabled=_to_bool(data.get("backup_enabled", True)),
        compress_backups=_to_bool(data.get("compress_backups", False)),
        delete_old_enabled=_to_bool(data.get("delete_old_enabled", True)),
        age=int(data.get("age", 1)),
        age_type=AgeType.parse(data.get("age_type", "months")),
    )


def _to_compression(data: Mapping[str, Any]) -> CompressionConfig:
    return CompressionConfig(
        level=int(data.get("level", 6)),
        max_workers=int(data.get("max_workers", 2)),
    )


def build_config(data: Mapping[str, Any]) -> RotalogConfig:
    file_logger = data.get("file_logger", {})
    writer = data.get("writer", {})
    bus = data.get("bus", {})
    capture = data.get("capture", {})

    return RotalogConfig(
        paths=_to_paths_config(data.get("paths", {})),
        enabled=_to_bool(file_logger.get("enabled", True)),
        policy=_to_policy(file_logger),
        compression=_to_compression(data.get("compression", {})),
        writer=WriterConfig(flush_interval_s=float(writer.get("flush_interval_s", 2.0))),
        bus=BusConfig(backlog_size=int(bus.get("backlog_size", 20000))),
        capture=CaptureConfig(
            stdlib_logging=_to_bool(capture.get("stdlib_logging", False)),
            level=capture.get("level", "INFO"),
        ),
        raw=deepcopy({k: v for k, v in data.items()}),
    )

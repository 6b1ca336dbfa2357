"""Configuration validation helpers."""

from __future__ import annotations

from ..config.schema import RotalogConfig


class ConfigurationError(ValueError):
    """Raised when configuration validation fails."""


def validate_configuration(config: RotalogConfig) -> None:
    """Ensure configuration values are usable before anything is started."""

    policy = config.policy
    if policy.max_size_bytes <= 0:
        raise ConfigurationError(f"'max_size_bytes' must be positive, got {policy.max_size_bytes}")
    if policy.age < 0:
        raise ConfigurationError(f"'age' must not be negative, got {policy.age}")

    if not -1 <= config.compression.level <= 9:
        raise ConfigurationError(f"Compression level must be between -1 and 9, got {config.compression.level}")
    if config.compression.max_workers < 1:
        raise ConfigurationError("At least one compression worker is required")

    if config.writer.flush_interval_s < 0:
        raise ConfigurationError("'flush_interval_s' must not be negative")
    if config.bus.backlog_size < 0:
        raise ConfigurationError("'backlog_size' must not be negative")

    filename = config.paths.filename
    if not filename or "/" in filename or "\\" in filename:
        raise ConfigurationError(f"Log filename must be a bare file name, got {filename!r}")

"""Message severities and their mapping to stdlib logging levels."""

from __future__ import annotations

import enum
import logging

__all__ = ["Severity", "severity_code", "severity_for_level", "ensure_level"]


class Severity(enum.IntFlag):
    """Severity attached to each message on the bus."""

    NORMAL = 0x1
    INFO = 0x2
    WARNING = 0x4
    CRITICAL = 0x8


_CODES = {
    Severity.INFO: "I",
    Severity.WARNING: "W",
    Severity.CRITICAL: "C",
}


def severity_code(severity: Severity) -> str:
    """Single letter written in front of every log line."""

    return _CODES.get(severity, "N")


def severity_for_level(levelno: int) -> Severity:
    """Map a stdlib ``logging`` level number onto a :class:`Severity`."""

    if levelno >= logging.ERROR:
        return Severity.CRITICAL
    if levelno >= logging.WARNING:
        return Severity.WARNING
    if levelno >= logging.INFO:
        return Severity.INFO
    return Severity.NORMAL


def get_level_by_name(name: str) -> int:
    """Resolve a logging level from a friendly name."""

    if name.isdigit():
        return int(name)
    resolved = logging.getLevelName(name.upper())
    if isinstance(resolved, int):
        return resolved
    return logging.INFO


def ensure_level(value: int | str) -> int:
    """Normalize user supplied level values."""

    if isinstance(value, int):
        return value
    return get_level_by_name(value)

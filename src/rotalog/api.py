"""Public API surface for rotalog."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from .config.loader import load_configuration
from .config.schema import BackupPolicy
from .core.levels import Severity
from .core.manager import GLOBAL_MANAGER
from .core.source import LogMsg, MessageBus

_CONFIGURED = False


def configure(overrides: Dict[str, Any] | None = None) -> None:
    """Configure rotalog using the provided overrides."""

    global _CONFIGURED
    config = load_configuration(overrides or {})
    GLOBAL_MANAGER.configure(config)
    _CONFIGURED = True


def _ensure_configured() -> None:
    global _CONFIGURED
    if not _CONFIGURED:
        configure({})


def log(message: str, severity: Severity = Severity.NORMAL) -> LogMsg:
    """Publish ``message`` to the bus; the file writer persists it."""

    _ensure_configured()
    return GLOBAL_MANAGER.log(message, severity)


def policy() -> BackupPolicy:
    """Return the live backup policy; attribute changes apply immediately."""

    _ensure_configured()
    current = GLOBAL_MANAGER.policy
    if current is None:
        raise RuntimeError("rotalog is not configured")
    return current


def change_path(directory: str | Path) -> bool:
    """Move the active log file into ``directory``."""

    _ensure_configured()
    return GLOBAL_MANAGER.change_path(directory)


def get_bus() -> MessageBus:
    _ensure_configured()
    return GLOBAL_MANAGER.bus


def shutdown() -> None:
    """Flush and close the log file, waiting for pending compressions."""

    global _CONFIGURED
    GLOBAL_MANAGER.shutdown()
    _CONFIGURED = False

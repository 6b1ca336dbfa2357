"""Plain text line format used by the file writer."""

from __future__ import annotations

from datetime import datetime

from ..core.levels import severity_code
from ..core.source import LogMsg

__all__ = ["format_message"]


def format_message(msg: LogMsg) -> str:
    """Render ``msg`` as ``(<code>) <ISO-8601 local time> - <message>`` plus a newline."""

    stamp = datetime.fromtimestamp(msg.timestamp).isoformat(timespec="seconds")
    return f"({severity_code(msg.severity)}) {stamp} - {msg.message}\n"

"""In-process message bus feeding the file writer.

The bus keeps a bounded backlog of recent messages and pushes every new one
to its subscribers. A subscriber first receives the backlog snapshot and then
the live stream, with no message lost or duplicated in between. Delivery is
serialized under the bus lock so subscribers observe one message at a time.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Protocol

from .levels import Severity, severity_for_level

__all__ = ["LogMsg", "MessageSink", "MessageBus", "BusHandler"]

logger = logging.getLogger(__name__)

_INTERNAL_LOGGER_PREFIX = "rotalog"


@dataclass(frozen=True, slots=True)
class LogMsg:
    severity: Severity
    timestamp: int
    message: str


Subscriber = Callable[[LogMsg], None]


class MessageSink(Protocol):
    def emit(self, message: str, severity: Severity = Severity.NORMAL) -> LogMsg: ...


class MessageBus:
    """Record source with a bounded backlog and push subscribers."""

    def __init__(self, backlog_size: int = 20000) -> None:
        self._backlog: Deque[LogMsg] = deque(maxlen=max(backlog_size, 0))
        self._subscribers: List[Subscriber] = []
        self._lock = threading.RLock()

    def emit(self, message: str, severity: Severity = Severity.NORMAL) -> LogMsg:
        msg = LogMsg(severity=severity, timestamp=int(time.time()), message=message)
        self.publish(msg)
        return msg

    def publish(self, msg: LogMsg) -> None:
        with self._lock:
            self._backlog.append(msg)
            for subscriber in list(self._subscribers):
                try:
                    subscriber(msg)
                except Exception:
                    logger.exception("Log message subscriber %r failed", subscriber)

    @property
    def lock(self) -> "threading.RLock":
        """Lock held while a message is delivered to subscribers."""

        return self._lock

    def messages(self) -> List[LogMsg]:
        """Snapshot of the backlog, oldest first."""

        with self._lock:
            return list(self._backlog)

    def subscribe(self, subscriber: Subscriber) -> None:
        """Replay the backlog to ``subscriber`` and register it for new messages."""

        with self._lock:
            for msg in list(self._backlog):
                subscriber(msg)
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            try:
                self._subscribers.remove(subscriber)
            except ValueError:
                pass

    def clear(self) -> None:
        with self._lock:
            self._backlog.clear()


class BusHandler(logging.Handler):
    """Forward stdlib log records to a :class:`MessageBus`.

    Records emitted by rotalog's own loggers are skipped so that diagnostics
    raised while writing never loop back into the writer.
    """

    def __init__(self, bus: MessageBus, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.bus = bus

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        name = record.name
        if name == _INTERNAL_LOGGER_PREFIX or name.startswith(_INTERNAL_LOGGER_PREFIX + "."):
            return False
        return bool(super().filter(record))

    def emit(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            message = self.format(record)
            self.bus.publish(
                LogMsg(
                    severity=severity_for_level(record.levelno),
                    timestamp=int(record.created),
                    message=message,
                )
            )
        except Exception:
            self.handleError(record)

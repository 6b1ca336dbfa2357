"""Process-wide coordinator owning the bus, the writer and the compressor."""

from __future__ import annotations

import logging
from pathlib import Path

from ..config.schema import BackupPolicy, RotalogConfig
from ..handlers.compress_async import AsyncCompressor
from ..handlers.writer import LogWriter
from .levels import Severity, ensure_level
from .source import BusHandler, LogMsg, MessageBus
from .validation import validate_configuration

logger = logging.getLogger(__name__)


class LogManager:
    """Central coordinator for rotalog configuration."""

    def __init__(self) -> None:
        self._config: RotalogConfig | None = None
        self.bus = MessageBus()
        self._compressor: AsyncCompressor | None = None
        self._writer: LogWriter | None = None
        self._bus_handler: BusHandler | None = None

    # ------------------------------------------------------------------
    def configure(self, config: RotalogConfig) -> None:
        """Apply the supplied configuration, replacing any running writer."""

        validate_configuration(config)
        self._teardown()

        self._config = config
        previous = self.bus.messages()
        self.bus = MessageBus(config.bus.backlog_size)
        for msg in previous:
            self.bus.publish(msg)

        if config.enabled:
            self._compressor = AsyncCompressor(config.compression)
            self._compressor.start()
            self._writer = LogWriter(
                self.bus,
                config.paths.log_dir,
                config.policy,
                compressor=self._compressor,
                filename=config.paths.filename,
                compression_level=config.compression.level,
                flush_interval_s=config.writer.flush_interval_s,
            )

        if config.capture.stdlib_logging:
            handler = BusHandler(self.bus, level=ensure_level(config.capture.level))
            logging.getLogger().addHandler(handler)
            self._bus_handler = handler

    # ------------------------------------------------------------------
    def shutdown(self) -> None:
        """Close the writer and wait for in-flight compressions."""

        self._teardown()
        self._config = None

    # ------------------------------------------------------------------
    @property
    def config(self) -> RotalogConfig | None:
        return self._config

    @property
    def writer(self) -> LogWriter | None:
        return self._writer

    @property
    def policy(self) -> BackupPolicy | None:
        return self._config.policy if self._config else None

    def log(self, message: str, severity: Severity = Severity.NORMAL) -> LogMsg:
        return self.bus.emit(message, severity)

    def change_path(self, directory: str | Path) -> bool:
        if self._writer is None:
            logger.warning("File logging is not configured; ignoring path change to %s", directory)
            return False
        return self._writer.change_path(directory)

    # ------------------------------------------------------------------
    def _teardown(self) -> None:
        if self._bus_handler is not None:
            logging.getLogger().removeHandler(self._bus_handler)
            self._bus_handler.close()
            self._bus_handler = None

        writer, self._writer = self._writer, None
        if writer is not None:
            writer.close()

        compressor, self._compressor = self._compressor, None
        if compressor is not None:
            compressor.stop(wait=True)
            if writer is not None:
                writer.rotation.collect_compression_results()


GLOBAL_MANAGER = LogManager()

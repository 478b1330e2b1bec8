"""
FolderSync logging.

Two channels: the sync journal (SyncLogger), which records every outcome
on the console and in the log file, and structured diagnostics through
structlog for debugging the engine itself.
"""

from __future__ import annotations

import logging
import os
import sys
import threading
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any

import structlog
from rich.console import Console
from structlog.types import EventDict, WrappedLogger

if TYPE_CHECKING:
    from foldersync.core.config import LoggingConfig


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def add_timestamp(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO format timestamp to log events."""
    event_dict["timestamp"] = datetime.now().isoformat()
    return event_dict


def add_log_level(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add log level to event dict."""
    event_dict["level"] = method_name.upper()
    return event_dict


def setup_logging(config: LoggingConfig) -> None:
    """Configure structured diagnostic logging."""
    global _configured

    if _configured:
        return

    handlers: list[logging.Handler] = []

    if config.console_enabled:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, config.level))
        handlers.append(console_handler)
    else:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=getattr(logging, config.level),
        handlers=handlers,
        format="%(message)s",
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        add_timestamp,
        add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if config.json_format:
        renderer: list[structlog.types.Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]

    structlog.configure(
        processors=shared_processors + renderer,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name or "foldersync")


class OperationLogger:
    """Context manager for logging operations with start/end tracking."""

    def __init__(
        self,
        operation: str,
        logger: structlog.stdlib.BoundLogger | None = None,
        **context: Any,
    ):
        self.operation = operation
        self.logger = logger or get_logger()
        self.context = context
        self.start_time: datetime | None = None

    def __enter__(self) -> OperationLogger:
        self.start_time = datetime.now()
        self.logger.debug(
            f"Starting {self.operation}",
            operation=self.operation,
            **self.context,
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        duration = (datetime.now() - self.start_time).total_seconds() if self.start_time else 0

        if exc_type is not None:
            self.logger.warning(
                f"Failed {self.operation}",
                operation=self.operation,
                duration_seconds=duration,
                error_type=exc_type.__name__,
                error=str(exc_val),
                **self.context,
            )
        else:
            self.logger.debug(
                f"Completed {self.operation}",
                operation=self.operation,
                duration_seconds=duration,
                **self.context,
            )

    def update(self, **additional_context: Any) -> None:
        """Update the operation context."""
        self.context.update(additional_context)


class SyncLogger:
    """
    Serialized sink for sync outcomes.

    Every message goes to the console and is appended to the log file as
    ``"<timestamp>: <message>"``. File writes happen under a lock owned by
    the instance, so concurrent callers never interleave partial lines.
    The file is reopened when it is removed or rotated while open.
    Failing to write the file is reported on the console and never raised.
    """

    STYLES = {
        "INFO": "",
        "WARNING": "yellow",
        "ERROR": "red",
    }

    def __init__(
        self,
        log_file: Path,
        console: Console | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.log_file = log_file
        self.console = console or Console(highlight=False)
        self._now = now
        # Reentrant: signal handlers log from the main thread, possibly while it holds the lock.
        self._lock = threading.RLock()
        self._handle: IO[str] | None = None
        self._identity: tuple[int, int] | None = None

    def log(self, message: str, level: str = "INFO") -> None:
        """Write a message to the console and the log file."""
        level = level.upper()
        self.console.print(
            message,
            style=self.STYLES.get(level, ""),
            markup=False,
            highlight=False,
            soft_wrap=True,
        )

        line = f"{self._now().strftime(TIMESTAMP_FORMAT)}: {message}\n"
        with self._lock:
            try:
                handle = self._open()
                handle.write(line)
                handle.flush()
            except OSError as e:
                self._discard_handle()
                self.console.print(
                    f"Error logging message: {e}",
                    style="red",
                    markup=False,
                    highlight=False,
                    soft_wrap=True,
                )

    def info(self, message: str) -> None:
        self.log(message, "INFO")

    def warning(self, message: str) -> None:
        self.log(message, "WARNING")

    def error(self, message: str) -> None:
        self.log(message, "ERROR")

    def close(self) -> None:
        """Close the log file handle."""
        with self._lock:
            self._discard_handle()

    def __enter__(self) -> SyncLogger:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _open(self) -> IO[str]:
        if self._handle is not None and self._identity != self._stat_identity():
            # Removed or rotated since it was opened.
            self._discard_handle()
        if self._handle is None:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            self._handle = open(self.log_file, "a", encoding="utf-8")
            st = os.fstat(self._handle.fileno())
            self._identity = (st.st_dev, st.st_ino)
        return self._handle

    def _stat_identity(self) -> tuple[int, int] | None:
        try:
            st = os.stat(self.log_file)
        except FileNotFoundError:
            return None
        return (st.st_dev, st.st_ino)

    def _discard_handle(self) -> None:
        if self._handle is not None:
            try:
                self._handle.close()
            except OSError:
                pass
            self._handle = None

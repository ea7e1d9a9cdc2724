"""
Async queue-based logging system.

Provides non-blocking logging so that console and file I/O never delay
a detection round.
"""

import logging
import sys
from datetime import datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import Queue

from cyclearb.config.constants import LOG_DATE_FORMAT, LOG_FORMAT, MAX_LOG_QUEUE_SIZE


class MicrosecondFormatter(logging.Formatter):
    """Formatter with microsecond precision timestamps."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        """Format time with microseconds."""
        ct = datetime.fromtimestamp(record.created)
        s = ct.strftime(datefmt or LOG_DATE_FORMAT)
        return f"{s}.{ct.microsecond:06d}"


class AsyncLogger:
    """
    Async-friendly logger with queue-based output.

    All logging calls are non-blocking - messages are queued
    and written by a background thread.
    """

    def __init__(
        self,
        name: str,
        level: int = logging.INFO,
        log_file: Path | None = None,
    ) -> None:
        """
        Initialize async logger.

        Args:
            name: Logger name.
            level: Logging level.
            log_file: Optional file path for logging.
        """
        self._name = name
        self._level = level
        self._log_file = log_file
        self._queue: Queue[logging.LogRecord] = Queue(maxsize=MAX_LOG_QUEUE_SIZE)
        self._listener: QueueListener | None = None
        self._queue_handler: QueueHandler | None = None
        self._logger = logging.getLogger(name)

    def start(self) -> None:
        """Start the async logging system."""
        formatter = MicrosecondFormatter(LOG_FORMAT, LOG_DATE_FORMAT)

        handlers: list[logging.Handler] = []

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(self._level)
        handlers.append(console_handler)

        if self._log_file:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self._log_file)
            file_handler.setFormatter(formatter)
            file_handler.setLevel(logging.DEBUG)  # Log everything to file
            handlers.append(file_handler)

        self._queue_handler = QueueHandler(self._queue)
        self._logger.addHandler(self._queue_handler)
        self._logger.setLevel(self._level)

        self._listener = QueueListener(
            self._queue,
            *handlers,
            respect_handler_level=True,
        )
        self._listener.start()

    def stop(self) -> None:
        """Stop the async logging system, flushing queued records."""
        if self._listener:
            self._listener.stop()
            self._listener = None
        if self._queue_handler:
            self._logger.removeHandler(self._queue_handler)
            self._queue_handler = None

    @property
    def logger(self) -> logging.Logger:
        """Get the underlying logger."""
        return self._logger

    @property
    def is_running(self) -> bool:
        return self._listener is not None

    def __enter__(self) -> "AsyncLogger":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.stop()


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
) -> AsyncLogger:
    """
    Set up application-wide logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional log file path.

    Returns:
        Configured AsyncLogger instance.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    async_logger = AsyncLogger(
        name="cyclearb",
        level=numeric_level,
        log_file=log_file,
    )
    async_logger.start()

    # Suppress noisy third-party loggers
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return async_logger

"""QuantaLogger — Singleton JSON logger with console, tail buffer and file output.

Provides a single, project-wide logger instance that writes structured JSON to
stdout and keeps the most recent lines in memory for the ``/logs`` admin
command.  Production deployments additionally write ``logs/quanta.log`` with
automatic rotation (see :meth:`QuantaLogger.configure`).
"""

import collections
import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional


class _JsonFormatter(logging.Formatter):
    """Format every log record as a single-line JSON object.

    Standard fields (timestamp, level, logger, message, module, func_name)
    are always present.  Any *extra* key-value pairs passed via the ``extra``
    parameter of a logging call are merged into the JSON object, so callers
    attach update context such as ``user_id``, ``chat_id``, ``command`` or
    ``error_kind``::

        logger.info("Rate limit hit", extra={"user_id": 7, "count": 20})
    """

    # Keys that belong to the standard LogRecord — everything else is extra.
    _BUILTIN_ATTRS: frozenset[str] = frozenset(vars(logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None,
    ))) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func_name": record.funcName,
        }

        for key, value in record.__dict__.items():
            if key not in self._BUILTIN_ATTRS and key not in log_entry:
                log_entry[key] = value

        if record.exc_info:
            log_entry["traceback"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class _TailHandler(logging.Handler):
    """Keep the last *capacity* formatted records in a bounded deque."""

    def __init__(self, capacity: int) -> None:
        super().__init__()
        self._lines: collections.deque[str] = collections.deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._lines.append(self.format(record))
        except Exception:
            self.handleError(record)

    def tail(self, count: int) -> list[str]:
        if count <= 0:
            return []
        return list(self._lines)[-count:]

    def clear(self) -> None:
        self._lines.clear()


# LOG_LEVEL names accepted from the environment.
LEVEL_NAMES: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class QuantaLogger:
    """Singleton logger with console, in-memory tail and optional rotating file.

    Usage::

        from core.logger import QuantaLogger

        logger = QuantaLogger.get_logger()
        logger.info("Bot started")
    """

    _instance: Optional["QuantaLogger"] = None
    _logger: Optional[logging.Logger] = None
    _tail: Optional[_TailHandler] = None
    _file_handler: Optional[RotatingFileHandler] = None

    # Rotation settings
    _LOG_DIR: str = "logs"
    _LOG_FILE: str = "quanta.log"
    _MAX_BYTES: int = 5 * 1024 * 1024  # 5 MB
    _BACKUP_COUNT: int = 5
    _TAIL_CAPACITY: int = 200

    def __new__(cls, level: int = logging.INFO) -> "QuantaLogger":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._init_logger(level)
        return cls._instance

    # ------------------------------------------------------------------
    # Initialisation helpers
    # ------------------------------------------------------------------

    def _init_logger(self, level: int) -> None:
        """Create the underlying :class:`logging.Logger` and attach handlers."""
        self._logger = logging.getLogger("quanta")
        self._logger.setLevel(level)
        self._logger.propagate = False

        # Avoid duplicate handlers if the module is reloaded.
        if self._logger.handlers:
            for handler in self._logger.handlers:
                if isinstance(handler, _TailHandler):
                    self._tail = handler
            return

        formatter = _JsonFormatter()

        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        self._logger.addHandler(stream_handler)

        self._tail = _TailHandler(self._TAIL_CAPACITY)
        self._tail.setFormatter(formatter)
        self._logger.addHandler(self._tail)

    def _attach_file_handler(self) -> None:
        if self._file_handler is not None or self._logger is None:
            return
        os.makedirs(self._LOG_DIR, exist_ok=True)
        log_path = os.path.join(self._LOG_DIR, self._LOG_FILE)
        self._file_handler = RotatingFileHandler(
            log_path,
            maxBytes=self._MAX_BYTES,
            backupCount=self._BACKUP_COUNT,
            encoding="utf-8",
        )
        self._file_handler.setFormatter(_JsonFormatter())
        self._logger.addHandler(self._file_handler)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def get_logger(level: int = logging.INFO) -> logging.Logger:
        """Return the shared :class:`logging.Logger` instance.

        Creates the singleton on first call; subsequent calls return the
        same logger regardless of the *level* argument.
        """
        instance = QuantaLogger(level)
        assert instance._logger is not None  # guaranteed by __new__
        return instance._logger

    @staticmethod
    def configure(level: str = "info", file_logging: bool = False) -> logging.Logger:
        """Apply the ``LOG_LEVEL`` name and optionally enable the rotating file.

        Unknown level names fall back to ``info``.
        """
        instance = QuantaLogger()
        assert instance._logger is not None
        instance._logger.setLevel(LEVEL_NAMES.get(level.lower(), logging.INFO))
        if file_logging:
            instance._attach_file_handler()
        return instance._logger

    @staticmethod
    def recent(count: int = 10) -> list[str]:
        """Return up to *count* of the most recent formatted log lines."""
        instance = QuantaLogger()
        if instance._tail is None:
            return []
        return instance._tail.tail(count)

    def cleanup(self) -> None:
        """Flush and close all handlers attached to the logger.

        Called once at process exit so the rotating file is closed cleanly.
        The next :meth:`get_logger` call builds a fresh singleton.
        """
        if self._logger is None:
            return
        for handler in list(self._logger.handlers):
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)
        self._tail = None
        self._file_handler = None
        type(self)._instance = None

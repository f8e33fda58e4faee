"""MaxBotLogger — Singleton JSON logger with console and rotating file output.

Provides a single, application-wide logger instance that writes structured
JSON to both stdout and ``logs/maxbot.log`` (with automatic rotation).  The
``max_sdk`` library modules log through plain :func:`logging.getLogger`
children of ``max_sdk``; :meth:`MaxBotLogger.attach` routes them through the
same handlers.
"""

import json
import logging
import os
import re
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional


class _JsonFormatter(logging.Formatter):
    """Format every log record as a single-line JSON object.

    Standard fields (timestamp, level, logger, message, module, func_name)
    are always present.  Any *extra* key-value pairs passed via the ``extra``
    parameter of a logging call are merged into the JSON object, so callers
    can attach request context such as ``update_id``, ``chat_id``,
    ``http_method`` or ``api_endpoint``.

    Example::

        logger.info("Update routed", extra={"update_id": 7, "update_type": "message"})

    Produces::

        {"timestamp": "…", "level": "INFO", …, "update_id": 7, "update_type": "message"}
    """

    # Keys that belong to the standard LogRecord; everything else is extra.
    _BUILTIN_ATTRS: frozenset[str] = frozenset(vars(logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None,
    )))

    # Bot credential as it appears in request URLs.
    _TOKEN_PATTERN = re.compile(r"(access_token=)[^&\s'\"]+")

    def _redact(self, value: object) -> object:
        if isinstance(value, str):
            return self._TOKEN_PATTERN.sub(r"\1***", value)
        return value

    def format(self, record: logging.LogRecord) -> str:
        """Serialize *record* to a JSON string."""
        log_entry: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": self._redact(record.getMessage()),
            "module": record.module,
            "func_name": record.funcName,
        }

        for key, value in record.__dict__.items():
            if key not in self._BUILTIN_ATTRS and key not in log_entry:
                log_entry[key] = self._redact(value)

        if record.exc_info:
            log_entry["exception"] = self._redact(self.formatException(record.exc_info))

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class MaxBotLogger:
    """Singleton logger with dual handlers (console + rotating file).

    Usage::

        from core.logger import MaxBotLogger

        logger = MaxBotLogger.get_logger()
        logger.info("Bot started")
    """

    _instance: Optional["MaxBotLogger"] = None
    _logger: Optional[logging.Logger] = None

    # Rotation settings
    _LOG_DIR: str = "logs"
    _LOG_FILE: str = "maxbot.log"
    _MAX_BYTES: int = 5 * 1024 * 1024  # 5 MB
    _BACKUP_COUNT: int = 5

    def __new__(cls, level: int = logging.INFO) -> "MaxBotLogger":
        """Ensure only one instance is ever created (Singleton)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._init_logger(level)
        return cls._instance

    # ------------------------------------------------------------------
    # Initialisation helpers
    # ------------------------------------------------------------------

    def _init_logger(self, level: int) -> None:
        """Create the underlying :class:`logging.Logger` and attach handlers."""
        self._logger = logging.getLogger("maxbot")
        self._logger.setLevel(level)

        # Avoid duplicate handlers if the module is reloaded.
        if self._logger.handlers:
            return

        formatter = _JsonFormatter()

        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(level)
        stream_handler.setFormatter(formatter)
        self._logger.addHandler(stream_handler)

        os.makedirs(self._LOG_DIR, exist_ok=True)
        log_path = os.path.join(self._LOG_DIR, self._LOG_FILE)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=self._MAX_BYTES,
            backupCount=self._BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        self._logger.addHandler(file_handler)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def get_logger(level: int = logging.INFO) -> logging.Logger:
        """Return the shared :class:`logging.Logger` instance.

        Creates the singleton on first call; subsequent calls return the
        same logger regardless of the *level* argument.
        """
        instance = MaxBotLogger(level)
        assert instance._logger is not None  # guaranteed by __new__
        return instance._logger

    @staticmethod
    def attach(name: str, level: int = logging.INFO) -> logging.Logger:
        """Send records of the library logger *name* through the shared handlers."""
        app_logger = MaxBotLogger.get_logger()
        library_logger = logging.getLogger(name)
        library_logger.setLevel(level)
        for handler in app_logger.handlers:
            if handler not in library_logger.handlers:
                library_logger.addHandler(handler)
        library_logger.propagate = False
        return library_logger

    def cleanup(self) -> None:
        """Flush and close all handlers attached to the logger."""
        if self._logger is None:
            return
        for handler in list(self._logger.handlers):
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)

    def __del__(self) -> None:
        """Best-effort cleanup on garbage collection."""
        self.cleanup()

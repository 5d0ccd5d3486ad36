"""Logging utility for the SMTP courier.

The package logger carries only a ``NullHandler`` until ``init_logging`` is
called, so importing the library never writes to the console or to disk.

Fields passed through ``extra`` (or bound with ``get_logger(name, **context)``)
travel on the record: the sensitive-data filter masks them and the JSON file
formatter writes them out under ``context``.
"""

import json
import logging
import re
import time
from datetime import datetime, timezone
from functools import wraps
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional

from rich.logging import RichHandler

ROOT_LOGGER_NAME = "smtp_courier"
LOG_FILE_NAME = "smtp_courier.log"

logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())

# Attributes present on every LogRecord; anything else arrived via ``extra``
_RECORD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the fields a log call attached to the record."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRIBUTES
    }


## Formatting


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with the call's extra fields as ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = record_context(record)
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """Logger adapter that binds fields to every record it emits.

    Fields given on an individual call win over the bound ones.
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


## Log Masking


class SensitiveDataMasker:
    """Masks secrets, and optionally mailbox addresses, in log output."""

    MASK = "[REDACTED]"

    PASSWORD_PATTERN = re.compile(
        r'(password["\']?\s*[:=]\s*["\']?)([^"\'}\s]+)', re.IGNORECASE
    )
    EMAIL_PATTERN = re.compile(r"([a-zA-Z0-9._%+-]+)@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")

    SENSITIVE_FIELDS = frozenset(
        {"password", "passwd", "secret", "token", "authorization", "credentials"}
    )

    def __init__(self, mask_emails: bool = False):
        self.mask_emails = mask_emails

    def mask_string(self, text: str) -> str:
        """Mask password assignments, and addresses when enabled."""
        if not text:
            return text

        masked = self.PASSWORD_PATTERN.sub(lambda m: m.group(1) + self.MASK, text)
        if self.mask_emails:
            masked = self.EMAIL_PATTERN.sub(self._mask_email, masked)
        return masked

    def mask_value(self, key: str, value: Any) -> Any:
        """Mask one record field according to its name and type."""
        if str(key).lower() in self.SENSITIVE_FIELDS:
            return self.MASK
        if isinstance(value, dict):
            return {k: self.mask_value(k, v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.mask_value(key, item) for item in value]
        if isinstance(value, str):
            return self.mask_string(value)
        return value

    @staticmethod
    def _mask_email(match: re.Match) -> str:
        user, domain = match.group(1), match.group(2)
        return f"{user[0]}***@{domain[0]}***"


class SensitiveDataFilter(logging.Filter):
    """Logging filter applying ``SensitiveDataMasker`` to message and fields."""

    def __init__(self, mask_emails: bool = False):
        super().__init__()
        self.masker = SensitiveDataMasker(mask_emails=mask_emails)

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.masker.mask_string(record.msg)

        for key, value in record_context(record).items():
            setattr(record, key, self.masker.mask_value(key, value))

        return True


## Log Manager


class LogManager:
    """Attaches console and optional file handlers to the package logger."""

    def __init__(
        self,
        log_level: str = "INFO",
        console_level: str = "WARNING",
        log_dir: Optional[Path] = None,
        max_file_size: int = 5_242_880,
        backup_count: int = 5,
        mask_emails: bool = False,
    ):
        """Initialise handlers on the ``smtp_courier`` logger.

        Args:
            log_level: Level of the package logger and the log file
            console_level: Level of the rich console handler
            log_dir: Directory for the rotating JSON log; no file when None
            max_file_size: Bytes before the log file rotates
            backup_count: Rotated files to keep
            mask_emails: Whether to mask mailbox addresses as well as secrets

        Raises:
            ValueError: If a level name is unknown
            ConfigurationError: If the log file cannot be created
        """
        self.log_level = _level(log_level)
        self.console_level = _level(console_level)
        self.log_dir = Path(log_dir) if log_dir else None
        self.logger = logging.getLogger(ROOT_LOGGER_NAME)
        self.logger.setLevel(self.log_level)

        sensitive_filter = SensitiveDataFilter(mask_emails=mask_emails)
        handlers = [self._console_handler()]
        if self.log_dir is not None:
            handlers.append(self._file_handler(max_file_size, backup_count))

        self.logger.handlers.clear()
        for handler in handlers:
            handler.addFilter(sensitive_filter)
            self.logger.addHandler(handler)

    def _console_handler(self) -> logging.Handler:
        handler = RichHandler(show_path=False, markup=False, rich_tracebacks=True)
        handler.setLevel(self.console_level)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        return handler

    def _file_handler(self, max_file_size: int, backup_count: int) -> logging.Handler:
        from .errors import ConfigurationError

        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(
                self.log_dir / LOG_FILE_NAME,
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            raise ConfigurationError(
                f"Failed to create log file handler: {str(e)}",
                details={"log_dir": str(self.log_dir)},
            ) from e

        handler.setLevel(self.log_level)
        handler.setFormatter(JSONFormatter())
        return handler


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid logging level: {name}")
    return level


## Decorators for Logging


def _qualified_name(func) -> str:
    return f"{func.__module__}.{func.__qualname__}"


def log_call(func):
    """Log entry, exit and failure of a call at DEBUG with its duration."""
    name = _qualified_name(func)

    @wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        logger.debug(f"-> {name}")
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.debug(f"<- {name} failed after {time.perf_counter() - start:.3f}s: {e}")
            raise
        logger.debug(f"<- {name} ({time.perf_counter() - start:.3f}s)")
        return result

    return wrapper


def async_log_call(func):
    """Async variant of ``log_call``."""
    name = _qualified_name(func)

    @wraps(func)
    async def wrapper(*args, **kwargs):
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        logger.debug(f"-> {name} (async)")
        start = time.perf_counter()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            logger.debug(f"<- {name} failed after {time.perf_counter() - start:.3f}s: {e}")
            raise
        logger.debug(f"<- {name} ({time.perf_counter() - start:.3f}s)")
        return result

    return wrapper


## Entry Points


def init_logging(logging_config=None, **overrides) -> LogManager:
    """Attach handlers to the package logger and return the LogManager.

    Args:
        logging_config: Optional ``LoggingConfig`` model
        **overrides: Keyword arguments passed straight to ``LogManager``
    """
    options: Dict[str, Any] = {}
    if logging_config is not None:
        options.update(logging_config.model_dump())
    options.update(overrides)
    return LogManager(**options)


def get_logger(
    name: Optional[str] = None, **context
) -> logging.Logger | ContextAdapter:
    """Get a logger under the package namespace.

    Keyword arguments are bound as fields on every record it emits.
    """
    if not name:
        full_name = ROOT_LOGGER_NAME
    elif name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        full_name = name
    else:
        full_name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(full_name)
    if context:
        return ContextAdapter(logger, context)
    return logger

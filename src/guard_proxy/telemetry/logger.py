"""
Structured logging for guard-proxy.

Log calls take keyword fields (``logger.warning("...", rule="banned-words")``).
Fields bound to the current request are appended to every record, and
upstream credentials are redacted before any handler sees them.
"""

from __future__ import annotations

import json
import logging
import re
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import IO, TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

REDACTED = "***REDACTED***"


class LogLevel(str, Enum):
    """Log levels accepted by the gateway."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @classmethod
    def parse(cls, value: LogLevel | str) -> LogLevel:
        """Accept an enum member or a level name in any case."""
        if isinstance(value, cls):
            return value
        return cls(str(value).upper())

    @property
    def numeric(self) -> int:
        return getattr(logging, self.value)


@dataclass(frozen=True)
class LogContext:
    """Fields bound to the request being handled.

    Attributes:
        request_id: Identifier of the request execution
        model: Upstream model the request will use
        extra: Any other bound fields
    """

    request_id: str | None = None
    model: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def bind(self, **fields: Any) -> LogContext:
        """Return a copy with more fields bound."""
        return replace(self, extra={**self.extra, **fields})

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.request_id:
            result["request_id"] = self.request_id
        if self.model:
            result["model"] = self.model
        result.update(self.extra)
        return result


_EMPTY_CONTEXT = LogContext()
_current_context: ContextVar[LogContext] = ContextVar("guard_proxy_log_context", default=_EMPTY_CONTEXT)


def get_log_context() -> LogContext:
    """Get the fields bound to the current task."""
    return _current_context.get()


@contextmanager
def log_context(context: LogContext) -> Iterator[LogContext]:
    """Bind ``context`` for the duration of a ``with`` block.

    The previous context is restored on exit, also when the block raises.

    Example:
        >>> with log_context(LogContext(request_id="4f2a")):
        ...     logger.info("LLM query successful")
    """
    token = _current_context.set(context)
    try:
        yield context
    finally:
        _current_context.reset(token)


class SecretMasker:
    """Redacts upstream credentials from messages and structured fields."""

    TEXT_PATTERNS: ClassVar[tuple[tuple[str, str], ...]] = (
        (r"sk-[A-Za-z0-9_-]{8,}", "sk-" + REDACTED),
        (r"(Bearer\s+)\S+", r"\1" + REDACTED),
        (r"(LLM_API_KEY=)\S+", r"\1" + REDACTED),
        (r"(api[_-]?key[\"']?\s*[:=]\s*[\"']?)[^\"'\s,]+", r"\1" + REDACTED),
    )

    # Matched against lower-cased field names; bare "token" would hide token counts
    SECRET_FIELDS: ClassVar[tuple[str, ...]] = (
        "api_key",
        "apikey",
        "authorization",
        "password",
        "secret",
        "access_token",
    )

    def __init__(self, patterns: tuple[tuple[str, str], ...] | None = None) -> None:
        self._patterns = [
            (re.compile(pattern, re.IGNORECASE), replacement)
            for pattern, replacement in (patterns or self.TEXT_PATTERNS)
        ]

    def redact(self, text: str) -> str:
        """Redact secrets found in free text."""
        for pattern, replacement in self._patterns:
            text = pattern.sub(replacement, text)
        return text

    def redact_fields(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Redact secret-looking fields, recursing into nested mappings."""
        result: dict[str, Any] = {}
        for name, value in fields.items():
            if any(secret in name.lower() for secret in self.SECRET_FIELDS):
                result[name] = REDACTED
            elif isinstance(value, str):
                result[name] = self.redact(value)
            elif isinstance(value, dict):
                result[name] = self.redact_fields(value)
            else:
                result[name] = value
        return result


class _StructuredFormatter(logging.Formatter):
    """Collects message, request context and call fields for a record."""

    def __init__(self, masker: SecretMasker | None = None) -> None:
        super().__init__()
        self._masker = masker or SecretMasker()

    def _fields(self, record: logging.LogRecord) -> dict[str, Any]:
        fields = get_log_context().to_dict()
        fields.update(getattr(record, "fields", {}))
        return self._masker.redact_fields(fields)

    def _message(self, record: logging.LogRecord) -> str:
        return self._masker.redact(record.getMessage())


class JsonFormatter(_StructuredFormatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
            + f".{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": self._message(record),
        }
        payload.update(self._fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(_StructuredFormatter):
    """``time | LEVEL | logger | message | key=value ...``"""

    def format(self, record: logging.LogRecord) -> str:
        stamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(record.created))
        line = f"{stamp} | {record.levelname:<8} | {record.name} | {self._message(record)}"
        if fields := self._fields(record):
            line += " | " + " ".join(f"{k}={v}" for k, v in fields.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


_FORMATTERS: dict[str, type[_StructuredFormatter]] = {
    "json": JsonFormatter,
    "text": TextFormatter,
}


class GatewayLogger:
    """Logger taking structured keyword fields.

    All gateway loggers share one handler, installed by
    :func:`configure_logging`; until then records go to stderr as text.

    Example:
        >>> logger = get_logger("guard_proxy.gateway")
        >>> logger.warning("Guardrail blocked request", rule="banned-words")
    """

    _registry: ClassVar[dict[str, GatewayLogger]] = {}
    _handler: ClassVar[logging.Handler] = logging.StreamHandler(sys.stderr)
    _level: ClassVar[LogLevel] = LogLevel.INFO

    def __init__(self, name: str) -> None:
        self._logger = logging.getLogger(name)
        self._logger.propagate = False
        self._attach()

    def _attach(self) -> None:
        self._logger.handlers[:] = [self._handler]
        self._logger.setLevel(self._level.numeric)

    @classmethod
    def get(cls, name: str) -> GatewayLogger:
        if name not in cls._registry:
            cls._registry[name] = cls(name)
        return cls._registry[name]

    @classmethod
    def install(cls, handler: logging.Handler, level: LogLevel) -> None:
        """Route every gateway logger, existing and future, to ``handler``."""
        cls._handler = handler
        cls._level = level
        for logger in cls._registry.values():
            logger._attach()

    @property
    def name(self) -> str:
        return self._logger.name

    def log(self, level: int, msg: str, *, exc_info: bool = False, **fields: Any) -> None:
        self._logger.log(level, msg, exc_info=exc_info, extra={"fields": fields})

    def debug(self, msg: str, **fields: Any) -> None:
        self.log(logging.DEBUG, msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        self.log(logging.INFO, msg, **fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self.log(logging.WARNING, msg, **fields)

    def error(self, msg: str, **fields: Any) -> None:
        self.log(logging.ERROR, msg, **fields)

    def critical(self, msg: str, **fields: Any) -> None:
        self.log(logging.CRITICAL, msg, **fields)

    def exception(self, msg: str, **fields: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self.log(logging.ERROR, msg, exc_info=True, **fields)


GatewayLogger._handler.setFormatter(TextFormatter())


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    fmt: str = "json",
    stream: IO[str] | None = None,
    masker: SecretMasker | None = None,
) -> None:
    """Configure output for all gateway loggers.

    Args:
        level: Minimum level, enum member or name
        fmt: ``json`` or ``text``
        stream: Output stream (default: stderr)
        masker: Secret masker shared by the formatter

    Raises:
        ValueError: If the level or format is unknown
    """
    if fmt not in _FORMATTERS:
        raise ValueError(f"unknown log format: {fmt}")
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(_FORMATTERS[fmt](masker))
    GatewayLogger.install(handler, LogLevel.parse(level))


def get_logger(name: str) -> GatewayLogger:
    """Get the gateway logger called ``name``."""
    return GatewayLogger.get(name)

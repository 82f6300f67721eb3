"""Stderr logging setup with text or JSON-lines output, shared by stdlib and structlog loggers."""

from __future__ import annotations

import json
import logging
import math
import sys
import threading
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import IntEnum
from pathlib import Path
from typing import IO, Final, Literal

import structlog

from flatpak_build_helper.constants import APP_LOG_VAR

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
LogFormat = Literal["json", "text"]

_DEFAULT_LOGGER_NAME: Final[str] = "flatpak_build_helper"

_STANDARD_LOG_RECORD_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "taskName",
    }
)

_ACTIVE_HANDLE_LOCK = threading.Lock()
_ACTIVE_HANDLE: LoggingHandle | None = None


class Verbosity(IntEnum):
    """Output detail selected by ``-v`` flags or the log environment variable."""

    QUIET = 0
    BASIC = 1
    FULL = 2

    @property
    def level(self) -> int:
        return _VERBOSITY_LEVELS[self]


_VERBOSITY_LEVELS: Final[dict[Verbosity, int]] = {
    Verbosity.QUIET: logging.WARNING,
    Verbosity.BASIC: logging.INFO,
    Verbosity.FULL: logging.DEBUG,
}


def resolve_verbosity(count: int = 0, environ: Mapping[str, str] | None = None) -> Verbosity:
    """Flags win over the environment; unknown environment values mean quiet."""

    if count >= 2:
        return Verbosity.FULL
    if count == 1:
        return Verbosity.BASIC

    env = {} if environ is None else environ
    raw = env.get(APP_LOG_VAR, "").strip().lower()
    if raw == "1":
        return Verbosity.BASIC
    if raw in {"2", "full"}:
        return Verbosity.FULL
    return Verbosity.QUIET


class _JsonLineFormatter(logging.Formatter):
    """Formatter that emits canonical JSON objects per log line."""

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, JSONValue] = {
            "timestamp": _iso8601z_from_epoch(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = _extract_extra_fields(record)
        if extras:
            event["fields"] = _normalize_json_value(extras)

        if record.exc_info is not None:
            event["exception"] = self.formatException(record.exc_info)

        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class _TextFormatter(logging.Formatter):
    """``LEVEL logger: message key=value ...``"""

    def __init__(self) -> None:
        super().__init__("%(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        rendered = super().format(record)
        extras = _extract_extra_fields(record)
        if not extras:
            return rendered
        pairs = " ".join(
            f"{key}={_render_text_value(value)}" for key, value in sorted(extras.items())
        )
        return f"{rendered} {pairs}"


class LoggingHandle:
    """Runtime handle for the active handler installation."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        handler: logging.Handler,
        verbosity: Verbosity,
        log_format: LogFormat,
    ) -> None:
        self.logger = logger
        self.verbosity = verbosity
        self.log_format = log_format
        self._handler = handler
        self._is_shutdown = False

    @property
    def is_shutdown(self) -> bool:
        return self._is_shutdown

    def shutdown(self) -> None:
        if self._is_shutdown:
            return
        self._handler.flush()
        self.logger.removeHandler(self._handler)
        self._handler.close()
        self._is_shutdown = True


def setup_logging(
    verbosity: Verbosity = Verbosity.QUIET,
    log_format: LogFormat = "text",
    *,
    stream: IO[str] | None = None,
    logger_name: str = _DEFAULT_LOGGER_NAME,
) -> LoggingHandle:
    """Install one stderr handler on the package logger and route structlog through it."""

    if log_format not in ("json", "text"):
        raise ValueError(f"unsupported log format {log_format!r}")

    _shutdown_previous_active_handle()

    formatter: logging.Formatter = _JsonLineFormatter() if log_format == "json" else _TextFormatter()
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(verbosity.level)
    handler.setFormatter(formatter)

    logger = logging.getLogger(logger_name)
    logger.setLevel(verbosity.level)
    logger.propagate = False
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handle = LoggingHandle(
        logger=logger,
        handler=handler,
        verbosity=verbosity,
        log_format=log_format,
    )
    with _ACTIVE_HANDLE_LOCK:
        global _ACTIVE_HANDLE
        _ACTIVE_HANDLE = handle
    return handle


def shutdown_logging(handle: LoggingHandle | None = None) -> None:
    """Detach the handler and restore structlog defaults."""

    with _ACTIVE_HANDLE_LOCK:
        global _ACTIVE_HANDLE
        resolved = handle if handle is not None else _ACTIVE_HANDLE
        if resolved is None:
            return
        if _ACTIVE_HANDLE is resolved:
            _ACTIVE_HANDLE = None

    resolved.shutdown()
    structlog.reset_defaults()


def get_active_logging_handle() -> LoggingHandle | None:
    with _ACTIVE_HANDLE_LOCK:
        return _ACTIVE_HANDLE


def _shutdown_previous_active_handle() -> None:
    existing = get_active_logging_handle()
    if existing is not None:
        existing.shutdown()

    with _ACTIVE_HANDLE_LOCK:
        global _ACTIVE_HANDLE
        _ACTIVE_HANDLE = None


def _iso8601z_from_epoch(epoch_seconds: float) -> str:
    timestamp = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _extract_extra_fields(record: logging.LogRecord) -> dict[str, JSONValue]:
    fields: dict[str, JSONValue] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_LOG_RECORD_FIELDS:
            continue
        if key.startswith("_"):
            continue
        fields[key] = _normalize_json_value(value)
    return fields


def _render_text_value(value: JSONValue) -> str:
    if isinstance(value, str):
        return value if value and " " not in value else json.dumps(value, ensure_ascii=False)
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _normalize_json_value(value: object) -> JSONValue:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value):
            return value
        return str(value)
    if isinstance(value, str):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        return {str(key): _normalize_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_json_value(item) for item in value]
    return repr(value)


__all__ = [
    "JSONScalar",
    "JSONValue",
    "LogFormat",
    "LoggingHandle",
    "Verbosity",
    "get_active_logging_handle",
    "resolve_verbosity",
    "setup_logging",
    "shutdown_logging",
]

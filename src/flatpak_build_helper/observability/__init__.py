"""Public observability primitives: verbosity resolution and logging setup."""

from flatpak_build_helper.observability.logging import (
    LogFormat,
    LoggingHandle,
    Verbosity,
    get_active_logging_handle,
    resolve_verbosity,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "LogFormat",
    "LoggingHandle",
    "Verbosity",
    "get_active_logging_handle",
    "resolve_verbosity",
    "setup_logging",
    "shutdown_logging",
]

"""Accessibility (AT-SPI) bus discovery on the host session bus."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Final

from flatpak_build_helper.constants import (
    A11Y_ADDRESS_VAR,
    A11Y_BUS_METHOD,
    A11Y_BUS_NAME,
    A11Y_BUS_OBJECT_PATH,
    DEFAULT_BUS_BINARY,
    SANDBOX_A11Y_BUS_PATH,
)
from flatpak_build_helper.errors import AddressParseError
from flatpak_build_helper.execution.executor import require_success, run_process

if TYPE_CHECKING:
    from flatpak_build_helper.execution.executor import ProcessRunner

_LOGGER = logging.getLogger(__name__)

_REPLY_WRAPPERS: Final[tuple[str, ...]] = ("',(", "',)")
_ADDRESS_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"unix:path=(?P<unix_path>[^,]+),(?P<suffix>[0-9A-Za-z=]+)"
)


def bus_query_argv(bus_binary: str = DEFAULT_BUS_BINARY) -> list[str]:
    return [
        bus_binary,
        "call",
        "--session",
        f"--dest={A11Y_BUS_NAME}",
        f"--object-path={A11Y_BUS_OBJECT_PATH}",
        f"--method={A11Y_BUS_METHOD}",
    ]


def parse_a11y_bus_address(reply: str) -> tuple[str, str]:
    """Extract ``(unix_path, suffix)`` from a ``GetAddress`` reply.

    The reply is a GVariant tuple such as
    ``('unix:path=/run/user/1000/at-spi/bus_0,guid=abc',)``.
    """

    text = reply
    for wrapper in _REPLY_WRAPPERS:
        text = text.replace(wrapper, "")
    match = _ADDRESS_PATTERN.search(text)
    if match is None:
        raise AddressParseError(reply)
    return match.group("unix_path"), match.group("suffix")


def a11y_bus_args(unix_path: str, suffix: str) -> tuple[str, ...]:
    return (
        f"--bind-mount={SANDBOX_A11Y_BUS_PATH}={unix_path}",
        f"--env={A11Y_ADDRESS_VAR}=unix:path={SANDBOX_A11Y_BUS_PATH},{suffix}",
    )


def resolve_a11y_bus_args(
    bus_binary: str = DEFAULT_BUS_BINARY,
    *,
    runner: ProcessRunner = run_process,
) -> tuple[str, ...]:
    """Query the session bus and return the sandbox arguments exposing the a11y socket."""

    outcome = require_success(
        runner(bus_query_argv(bus_binary)),
        "failed to query the accessibility bus address",
    )
    unix_path, suffix = parse_a11y_bus_address(outcome.stdout)
    _LOGGER.debug("a11y bus socket: %s", unix_path)
    return a11y_bus_args(unix_path, suffix)


__all__ = [
    "a11y_bus_args",
    "bus_query_argv",
    "parse_a11y_bus_address",
    "resolve_a11y_bus_args",
]

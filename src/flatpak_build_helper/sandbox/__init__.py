"""Sandboxed run support: launcher, host fonts, and the accessibility bus."""

from flatpak_build_helper.sandbox.a11y import (
    a11y_bus_args,
    parse_a11y_bus_address,
    resolve_a11y_bus_args,
)
from flatpak_build_helper.sandbox.fonts import FontPaths, resolve_font_args
from flatpak_build_helper.sandbox.launcher import RunLauncher, filter_finish_args

__all__ = [
    "FontPaths",
    "RunLauncher",
    "a11y_bus_args",
    "filter_finish_args",
    "parse_a11y_bus_address",
    "resolve_a11y_bus_args",
    "resolve_font_args",
]

"""Stable constants shared across the planner, the launcher, and the CLI."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Environment variable selecting log verbosity (``1``, ``2`` or ``full``).
APP_LOG_VAR: Final[str] = "FBH_LOG"

# External tools.
DEFAULT_SANDBOX_BINARY: Final[str] = "flatpak"
DEFAULT_BUILDER_BINARY: Final[str] = "flatpak-builder"
DEFAULT_BUS_BINARY: Final[str] = "gdbus"

# Project-relative layout.
DEFAULT_BUILD_DIR: Final[str] = ".sandbox-meta"
DEFAULT_REPO_DIR: Final[str] = "repo"
DEFAULT_STATE_DIR: Final[str] = "builder-state"
BUILD_SYSTEM_BUILD_DIR: Final[str] = "_build"

# Markers of an initialized repo directory.
REPO_MARKER_FILE: Final[str] = "metadata"
REPO_MARKER_DIRS: Final[tuple[str, ...]] = ("files", "var")

# Install prefix inside the sandbox.
APP_PREFIX: Final[str] = "/app"

PATH_DEFAULTS: Final[tuple[str, ...]] = ("/app/bin", "/usr/bin")
LD_LIBRARY_PATH_DEFAULTS: Final[tuple[str, ...]] = ("/app/lib",)
PKG_CONFIG_PATH_DEFAULTS: Final[tuple[str, ...]] = (
    "/app/lib/pkgconfig",
    "/app/share/pkgconfig",
    "/usr/lib/pkgconfig",
    "/usr/share/pkgconfig",
)

# finish-args keys that build-init already derives.
RESERVED_FINISH_ARG_KEYS: Final[frozenset[str]] = frozenset({"--metadata", "--require-version"})

# Desktop-session variables forwarded into ``run``.
HOST_ENV_ALLOWLIST: Final[tuple[str, ...]] = (
    "COLORTERM",
    "DESKTOP_SESSION",
    "LANG",
    "WAYLAND_DISPLAY",
    "XDG_CURRENT_DESKTOP",
    "XDG_SEAT",
    "XDG_SESSION_DESKTOP",
    "XDG_SESSION_ID",
    "XDG_SESSION_TYPE",
    "XDG_VTNR",
    "AT_SPI_BUS_ADDRESS",
)

RUN_PORTAL_TALK_NAMES: Final[tuple[str, ...]] = (
    "--talk-name=org.freedesktop.portal.*",
    "--talk-name=org.a11y.Bus",
)

# Fonts.
SYSTEM_FONTS_DIR: Final[str] = "/usr/share/fonts"
SYSTEM_LOCAL_FONT_DIR: Final[str] = "/usr/share/local/fonts"
SYSTEM_FONT_CACHE_DIRS: Final[tuple[str, ...]] = (
    "/usr/lib/fontconfig/cache",
    "/var/cache/fontconfig",
)
SANDBOX_FONTS_DIR: Final[PurePosixPath] = PurePosixPath("/run/host/fonts")
SANDBOX_LOCAL_FONTS_DIR: Final[PurePosixPath] = PurePosixPath("/run/host/local-fonts")
SANDBOX_FONTS_CACHE_DIR: Final[PurePosixPath] = PurePosixPath("/run/host/fonts-cache")
SANDBOX_USER_FONTS_CACHE_DIR: Final[PurePosixPath] = PurePosixPath("/run/host/user-fonts-cache")
SANDBOX_FONT_DIRS_FILE: Final[PurePosixPath] = PurePosixPath("/run/host/font-dirs.xml")
FONT_DIRS_FILENAME: Final[str] = "font-dirs.xml"

FONT_DIR_CONTENT_HEADER: Final[str] = (
    '<?xml version="1.0"?>\n'
    '<!DOCTYPE fontconfig SYSTEM "urn:fontconfig:fonts:dtd">\n'
    "<fontconfig>\n"
)
FONT_DIR_CONTENT_FOOTER: Final[str] = "</fontconfig>\n"

# Accessibility bus.
A11Y_BUS_NAME: Final[str] = "org.a11y.Bus"
A11Y_BUS_OBJECT_PATH: Final[str] = "/org/a11y/bus"
A11Y_BUS_METHOD: Final[str] = "org.a11y.Bus.GetAddress"
A11Y_ADDRESS_VAR: Final[str] = "AT_SPI_BUS_ADDRESS"
SANDBOX_A11Y_BUS_PATH: Final[PurePosixPath] = PurePosixPath("/run/flatpak/at-spi-bus")

__all__ = [
    "A11Y_ADDRESS_VAR",
    "A11Y_BUS_METHOD",
    "A11Y_BUS_NAME",
    "A11Y_BUS_OBJECT_PATH",
    "APP_LOG_VAR",
    "APP_PREFIX",
    "BUILD_SYSTEM_BUILD_DIR",
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_BUILDER_BINARY",
    "DEFAULT_BUILD_DIR",
    "DEFAULT_BUS_BINARY",
    "DEFAULT_REPO_DIR",
    "DEFAULT_SANDBOX_BINARY",
    "DEFAULT_STATE_DIR",
    "FONT_DIRS_FILENAME",
    "FONT_DIR_CONTENT_FOOTER",
    "FONT_DIR_CONTENT_HEADER",
    "HOST_ENV_ALLOWLIST",
    "LD_LIBRARY_PATH_DEFAULTS",
    "PATH_DEFAULTS",
    "PKG_CONFIG_PATH_DEFAULTS",
    "REPO_MARKER_DIRS",
    "REPO_MARKER_FILE",
    "RESERVED_FINISH_ARG_KEYS",
    "RUN_PORTAL_TALK_NAMES",
    "SANDBOX_A11Y_BUS_PATH",
    "SANDBOX_FONTS_CACHE_DIR",
    "SANDBOX_FONTS_DIR",
    "SANDBOX_FONT_DIRS_FILE",
    "SANDBOX_LOCAL_FONTS_DIR",
    "SANDBOX_USER_FONTS_CACHE_DIR",
    "SYSTEM_FONTS_DIR",
    "SYSTEM_FONT_CACHE_DIRS",
    "SYSTEM_LOCAL_FONT_DIR",
]

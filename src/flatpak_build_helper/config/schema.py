"""
Schema for ``fbh.toml``: built-in defaults, per-field rules, and deep merge.

Every section and key is declared once in ``_RULES``. Validation walks a
payload against that table and reports every problem it finds, each tagged
with its dotted path (``paths.build_dir``), before anything is raised.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from flatpak_build_helper.constants import (
    BUILD_SYSTEM_BUILD_DIR,
    CONFIG_SCHEMA_VERSION,
    DEFAULT_BUILD_DIR,
    DEFAULT_BUILDER_BINARY,
    DEFAULT_BUS_BINARY,
    DEFAULT_REPO_DIR,
    DEFAULT_SANDBOX_BINARY,
    DEFAULT_STATE_DIR,
)

LOG_FORMATS: Final[tuple[str, ...]] = ("json", "text")

_ENV_PREFIX_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class MetaConfig(TypedDict):
    schema_version: int


class ToolsConfig(TypedDict):
    sandbox: str
    builder: str
    bus: str


class PathsConfig(TypedDict):
    build_dir: str
    repo_dir: str
    state_dir: str
    build_system_dir: str
    font_dirs_file: str


class HostConfig(TypedDict):
    env_passthrough_prefix: str


class ObservabilityConfig(TypedDict):
    log_format: Literal["json", "text"]


class HelperConfig(TypedDict):
    meta: MetaConfig
    tools: ToolsConfig
    paths: PathsConfig
    host: HostConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[HelperConfig] = {
    "meta": {
        "schema_version": CONFIG_SCHEMA_VERSION,
    },
    "tools": {
        "sandbox": DEFAULT_SANDBOX_BINARY,
        "builder": DEFAULT_BUILDER_BINARY,
        "bus": DEFAULT_BUS_BINARY,
    },
    "paths": {
        "build_dir": DEFAULT_BUILD_DIR,
        "repo_dir": DEFAULT_REPO_DIR,
        "state_dir": DEFAULT_STATE_DIR,
        "build_system_dir": BUILD_SYSTEM_BUILD_DIR,
        # Empty means ``<user cache dir>/font-dirs.xml``.
        "font_dirs_file": "",
    },
    "host": {
        "env_passthrough_prefix": "",
    },
    "observability": {
        "log_format": "text",
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """One rejected field, addressed by its dotted path."""

    path: str
    message: str


class ConfigValidationError(ValueError):
    """Raised when a config payload breaks one or more field rules."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        lines = "\n".join(f"- {issue.path}: {issue.message}" for issue in self.issues)
        super().__init__(f"invalid fbh config:\n{lines}")


class _Rejected(ValueError):
    pass


def _text(value: object) -> str:
    if not isinstance(value, str):
        raise _Rejected(f"expected string, got {type(value).__name__}")
    if "\x00" in value:
        raise _Rejected("must not contain NUL bytes")
    return value.strip()


def _program(value: object) -> str:
    text = _text(value)
    if not text:
        raise _Rejected("must not be empty")
    return text


def _dir_name(value: object) -> str:
    name = _program(value)
    if name.startswith("/") or ".." in name.split("/"):
        raise _Rejected("must be a relative path without '..' traversal")
    return name


def _env_prefix(value: object) -> str:
    prefix = _text(value)
    if prefix and not _ENV_PREFIX_PATTERN.fullmatch(prefix):
        raise _Rejected("must be empty or an env var name prefix (example: MYAPP_)")
    return prefix


def _log_format(value: object) -> str:
    name = _program(value)
    if name not in LOG_FORMATS:
        raise _Rejected(f"invalid value {name!r}; expected one of: {', '.join(LOG_FORMATS)}")
    return name


def _schema_version(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise _Rejected(f"expected integer, got {type(value).__name__}")
    if value < CONFIG_SCHEMA_VERSION:
        raise _Rejected(
            f"schema version {value} is older than supported {CONFIG_SCHEMA_VERSION}; "
            "update fbh.toml"
        )
    if value > CONFIG_SCHEMA_VERSION:
        raise _Rejected(
            f"schema version {value} is newer than supported {CONFIG_SCHEMA_VERSION}; "
            "upgrade flatpak-build-helper"
        )
    return value


_RULES: Final[dict[str, dict[str, Callable[[object], object]]]] = {
    "meta": {"schema_version": _schema_version},
    "tools": {"sandbox": _program, "builder": _program, "bus": _program},
    "paths": {
        "build_dir": _dir_name,
        "repo_dir": _dir_name,
        "state_dir": _dir_name,
        "build_system_dir": _dir_name,
        "font_dirs_file": _text,
    },
    "host": {"env_passthrough_prefix": _env_prefix},
    "observability": {"log_format": _log_format},
}


def default_config() -> HelperConfig:
    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``; tables merge, scalars replace."""

    merged = copy.deepcopy(dict(base))
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(
    config: object,
) -> tuple[dict[str, Any], tuple[ConfigValidationIssue, ...]]:
    """Return the normalized config and every issue found, in sorted path order."""

    if not isinstance(config, Mapping):
        issue = ConfigValidationIssue("<root>", f"expected table, got {type(config).__name__}")
        return {}, (issue,)

    issues: list[ConfigValidationIssue] = []
    normalized: dict[str, Any] = {}
    for section in sorted({*config, *_RULES}):
        rules = _RULES.get(section)
        if rules is None:
            issues.append(ConfigValidationIssue(section, "unknown field"))
        elif section not in config:
            issues.append(ConfigValidationIssue(section, "missing required field"))
        elif not isinstance(config[section], Mapping):
            kind = type(config[section]).__name__
            issues.append(ConfigValidationIssue(section, f"expected table, got {kind}"))
        else:
            normalized[section] = _validate_section(section, config[section], rules, issues)
    return normalized, tuple(issues)


def assert_valid_config(config: object) -> dict[str, Any]:
    normalized, issues = validate_config(config)
    if issues:
        raise ConfigValidationError(issues)
    return normalized


def _validate_section(
    section: str,
    payload: Mapping[str, object],
    rules: Mapping[str, Callable[[object], object]],
    issues: list[ConfigValidationIssue],
) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in sorted({*payload, *rules}):
        path = f"{section}.{key}"
        rule = rules.get(key)
        if rule is None:
            issues.append(ConfigValidationIssue(path, "unknown field"))
            continue
        if key not in payload:
            issues.append(ConfigValidationIssue(path, "missing required field"))
            continue
        try:
            out[key] = rule(payload[key])
        except _Rejected as exc:
            issues.append(ConfigValidationIssue(path, str(exc)))
    return out


__all__ = [
    "ConfigValidationError",
    "ConfigValidationIssue",
    "DEFAULT_CONFIG",
    "HelperConfig",
    "LOG_FORMATS",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]

"""
Effective settings for one ``fbh`` invocation.

Four layers are merged, later ones winning: built-in defaults, ``fbh.toml``
in the project root (or ``--config``), ``FBH_<SECTION>_<KEY>`` environment
variables, and ``--set section.key=value`` from the command line. The merged
mapping is validated once and exposed as a frozen ``HelperSettings``.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Literal

from flatpak_build_helper.config.schema import (
    DEFAULT_CONFIG,
    assert_valid_config,
    default_config,
    merge_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "fbh.toml"
ENV_PREFIX: Final[str] = "FBH_"


class ConfigLoadError(ValueError):
    """Raised when a config file cannot be read or an override cannot be applied."""


@dataclass(frozen=True, slots=True)
class HelperSettings:
    """Typed view over a validated config mapping."""

    sandbox_binary: str
    builder_binary: str
    bus_binary: str
    build_dir: str
    repo_dir: str
    state_dir: str
    build_system_dir: str
    font_dirs_file: Path | None
    env_passthrough_prefix: str
    log_format: Literal["json", "text"]

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> HelperSettings:
        validated = assert_valid_config(config)
        tools = validated["tools"]
        paths = validated["paths"]
        font_dirs_file = paths["font_dirs_file"]
        return cls(
            sandbox_binary=tools["sandbox"],
            builder_binary=tools["builder"],
            bus_binary=tools["bus"],
            build_dir=paths["build_dir"],
            repo_dir=paths["repo_dir"],
            state_dir=paths["state_dir"],
            build_system_dir=paths["build_system_dir"],
            font_dirs_file=Path(font_dirs_file) if font_dirs_file else None,
            env_passthrough_prefix=validated["host"]["env_passthrough_prefix"],
            log_format=validated["observability"]["log_format"],
        )

    @classmethod
    def defaults(cls) -> HelperSettings:
        return cls.from_config(default_config())


def load_config(
    config_path: str | Path | None = None,
    *,
    root_dir: str | Path | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Merge defaults, file, env, and CLI overrides (in rising precedence) and validate."""

    path = _resolve_config_path(config_path, root_dir)
    env = os.environ if environ is None else environ

    merged: dict[str, Any] = dict(default_config())
    for layer in (
        _read_toml(path, required=config_path is not None),
        _env_overrides(env),
        _dotted_overrides(cli_overrides or {}),
    ):
        merged = merge_config(merged, layer)

    config = assert_valid_config(merged)
    font_dirs_file = config["paths"]["font_dirs_file"]
    if font_dirs_file:
        config["paths"]["font_dirs_file"] = _anchor(font_dirs_file, path.parent)
    return config


def load_settings(
    config_path: str | Path | None = None,
    *,
    root_dir: str | Path | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> HelperSettings:
    return HelperSettings.from_config(
        load_config(config_path, root_dir=root_dir, cli_overrides=cli_overrides, environ=environ)
    )


def env_var_name(section: str, key: str) -> str:
    return f"{ENV_PREFIX}{section.upper()}_{key.upper()}"


def _resolve_config_path(config_path: str | Path | None, root_dir: str | Path | None) -> Path:
    if config_path is not None:
        return Path(config_path).expanduser().resolve()
    base = Path.cwd() if root_dir is None else Path(root_dir)
    return (base / DEFAULT_CONFIG_FILE).resolve()


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for section, values in DEFAULT_CONFIG.items():
        for key in values:
            name = env_var_name(section, key)
            raw = environ.get(name)
            if raw is not None:
                overrides.setdefault(section, {})[key] = _coerce(section, key, raw, name)
    return overrides


def _dotted_overrides(values: Mapping[str, object]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for dotted, value in values.items():
        section, _, key = dotted.partition(".")
        if not section or not key or "." in key:
            raise ConfigLoadError(f"invalid override key {dotted!r}; expected <section>.<key>")
        if isinstance(value, str):
            value = _coerce(section, key, value, dotted)
        overrides.setdefault(section, {})[key] = value
    return overrides


def _coerce(section: str, key: str, raw: str, source: str) -> object:
    """Turn override text into the type of the matching default; unknown keys stay text."""

    value = raw.strip()
    default = DEFAULT_CONFIG.get(section, {}).get(key)  # type: ignore[attr-defined]
    if isinstance(default, bool) or not isinstance(default, int):
        return value
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigLoadError(f"{source} ({section}.{key}) must be an integer") from exc


def _anchor(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "HelperSettings",
    "env_var_name",
    "load_config",
    "load_settings",
]

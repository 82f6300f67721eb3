"""Sandbox ``--env`` override composition.

A well-known search-path variable is rebuilt from six sources, in order:
manifest prepend, module prepend, the host value, the fixed defaults, manifest
append, module append. Empty contributions are dropped before joining with
``:``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Final

from flatpak_build_helper.constants import (
    LD_LIBRARY_PATH_DEFAULTS,
    PATH_DEFAULTS,
    PKG_CONFIG_PATH_DEFAULTS,
)
from flatpak_build_helper.manifest.types import EMPTY_BUILD_OPTION, BuildOption

HostLookup = Mapping[str, str] | Callable[[str], str | None]


@dataclass(frozen=True, slots=True)
class WellKnownVariable:
    name: str
    defaults: tuple[str, ...]
    prepend_field: str
    append_field: str

    def prepend(self, option: BuildOption) -> str:
        return getattr(option, self.prepend_field)

    def append(self, option: BuildOption) -> str:
        return getattr(option, self.append_field)


WELL_KNOWN_VARIABLES: Final[tuple[WellKnownVariable, ...]] = (
    WellKnownVariable("PATH", PATH_DEFAULTS, "prepend_path", "append_path"),
    WellKnownVariable(
        "LD_LIBRARY_PATH",
        LD_LIBRARY_PATH_DEFAULTS,
        "prepend_ld_library_path",
        "append_ld_library_path",
    ),
    WellKnownVariable(
        "PKG_CONFIG_PATH",
        PKG_CONFIG_PATH_DEFAULTS,
        "prepend_pkg_config_path",
        "append_pkg_config_path",
    ),
)


def env_arg(name: str, value: str) -> str:
    return f"--env={name}={value}"


def compose(
    name: str,
    default_values: Sequence[str],
    manifest_option: tuple[str, str] | None,
    module_option: tuple[str, str] | None,
    host_lookup: HostLookup,
) -> str:
    """Build the ``--env=<name>=<joined>`` override for one variable.

    ``manifest_option`` and ``module_option`` are ``(prepend, append)`` pairs;
    ``None`` contributes nothing.
    """

    manifest_prepend, manifest_append = manifest_option or ("", "")
    module_prepend, module_append = module_option or ("", "")
    candidates = [
        manifest_prepend,
        module_prepend,
        _lookup(host_lookup, name),
        *default_values,
        manifest_append,
        module_append,
    ]
    return env_arg(name, ":".join(item for item in candidates if item))


def compose_well_known(
    manifest_option: BuildOption | None,
    module_option: BuildOption | None,
    host_lookup: HostLookup,
) -> list[str]:
    """Return the PATH, LD_LIBRARY_PATH and PKG_CONFIG_PATH overrides, in that order."""

    manifest_opts = manifest_option or EMPTY_BUILD_OPTION
    module_opts = module_option or EMPTY_BUILD_OPTION
    return [
        compose(
            variable.name,
            variable.defaults,
            (variable.prepend(manifest_opts), variable.append(manifest_opts)),
            (variable.prepend(module_opts), variable.append(module_opts)),
            host_lookup,
        )
        for variable in WELL_KNOWN_VARIABLES
    ]


def declared_env_args(*options: BuildOption | None) -> list[str]:
    """Flatten declared ``env`` maps in order; duplicate names are all kept."""

    args: list[str] = []
    for option in options:
        if option is None:
            continue
        args.extend(env_arg(key, value) for key, value in option.env.items())
    return args


def host_env_args(names: Iterable[str], host_lookup: HostLookup) -> list[str]:
    """Forward the named host variables that are set and non-empty."""

    args: list[str] = []
    for name in names:
        value = _lookup(host_lookup, name)
        if value:
            args.append(env_arg(name, value))
    return args


def prefixed_env_args(prefix: str, environ: Mapping[str, str]) -> list[str]:
    """Forward every host variable whose name starts with ``prefix``; empty prefix forwards none."""

    if not prefix:
        return []
    return [env_arg(name, value) for name, value in sorted(environ.items()) if name.startswith(prefix)]


def _lookup(host_lookup: HostLookup, name: str) -> str:
    if isinstance(host_lookup, Mapping):
        value = host_lookup.get(name)
    else:
        value = host_lookup(name)
    return value or ""


__all__ = [
    "WELL_KNOWN_VARIABLES",
    "HostLookup",
    "WellKnownVariable",
    "compose",
    "compose_well_known",
    "declared_env_args",
    "env_arg",
    "host_env_args",
    "prefixed_env_args",
]

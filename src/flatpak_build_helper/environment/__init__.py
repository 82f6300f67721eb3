"""Environment override composition for sandboxed commands."""

from flatpak_build_helper.environment.compose import (
    WELL_KNOWN_VARIABLES,
    HostLookup,
    WellKnownVariable,
    compose,
    compose_well_known,
    declared_env_args,
    env_arg,
    host_env_args,
    prefixed_env_args,
)

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

"""
flatpak-build-helper config package public API.

Settings come from ``fbh.toml`` in the project root, ``FBH_`` environment
variables, and command-line overrides; see :mod:`.loader` for precedence.
"""

from flatpak_build_helper.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    HelperSettings,
    env_var_name,
    load_config,
    load_settings,
)
from flatpak_build_helper.config.schema import (
    DEFAULT_CONFIG,
    LOG_FORMATS,
    ConfigValidationError,
    ConfigValidationIssue,
    HelperConfig,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)

__all__ = [
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "HelperConfig",
    "HelperSettings",
    "LOG_FORMATS",
    "assert_valid_config",
    "default_config",
    "env_var_name",
    "load_config",
    "load_settings",
    "merge_config",
    "validate_config",
]

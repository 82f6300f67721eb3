"""
flatpak-build-helper — unit tests for config loader

Purpose
- Validate deterministic config loading from defaults, TOML, env overrides, and CLI overrides.

What this test file should cover
- Precedence: CLI > env > file > defaults.
- Deterministic env var path mapping and type coercion.
- Path normalization relative to the config file.
- Typed settings view.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from flatpak_build_helper.config import (
    ConfigLoadError,
    ConfigValidationError,
    HelperSettings,
    env_var_name,
    load_config,
    load_settings,
)

pytestmark = pytest.mark.unit


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_loader_precedence_default_file_env_cli(tmp_path: Path) -> None:
    config_path = tmp_path / "fbh.toml"
    default_path = tmp_path / "default.toml"
    _write_config(default_path, "")
    _write_config(
        config_path,
        """
[tools]
sandbox = "flatpak-file"
""".strip(),
    )

    default_loaded = load_config(default_path, environ={})
    file_loaded = load_config(config_path, environ={})
    env_loaded = load_config(config_path, environ={"FBH_TOOLS_SANDBOX": "flatpak-env"})
    cli_loaded = load_config(
        config_path,
        environ={"FBH_TOOLS_SANDBOX": "flatpak-env"},
        cli_overrides={"tools.sandbox": "flatpak-cli"},
    )

    assert default_loaded["tools"]["sandbox"] == "flatpak"
    assert file_loaded["tools"]["sandbox"] == "flatpak-file"
    assert env_loaded["tools"]["sandbox"] == "flatpak-env"
    assert cli_loaded["tools"]["sandbox"] == "flatpak-cli"


def test_missing_default_config_file_uses_defaults(tmp_path: Path) -> None:
    loaded = load_config(root_dir=tmp_path, environ={})

    assert loaded["paths"]["build_dir"] == ".sandbox-meta"
    assert loaded["paths"]["repo_dir"] == "repo"
    assert loaded["paths"]["state_dir"] == "builder-state"
    assert loaded["host"]["env_passthrough_prefix"] == ""


def test_explicit_config_path_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="config file not found"):
        load_config(tmp_path / "missing.toml", environ={})


def test_invalid_toml_is_a_load_error(tmp_path: Path) -> None:
    config_path = tmp_path / "fbh.toml"
    _write_config(config_path, "[tools\nsandbox = ")

    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(config_path, environ={})


def test_invalid_env_coercion_raises_actionable_error(tmp_path: Path) -> None:
    config_path = tmp_path / "fbh.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigLoadError, match="FBH_META_SCHEMA_VERSION"):
        load_config(config_path, environ={"FBH_META_SCHEMA_VERSION": "one"})


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "fbh.toml"
    _write_config(
        config_path,
        """
[tools]
compiler = "gcc"
""".strip(),
    )

    with pytest.raises(ConfigValidationError) as exc_info:
        load_config(config_path, environ={})

    assert any(issue.path == "tools.compiler" for issue in exc_info.value.issues)


def test_invalid_log_format_from_env_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "fbh.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigValidationError, match="observability.log_format"):
        load_config(config_path, environ={"FBH_OBSERVABILITY_LOG_FORMAT": "xml"})


def test_font_dirs_file_is_relative_to_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "fbh.toml"
    _write_config(
        config_path,
        """
[paths]
font_dirs_file = "cache/font-dirs.xml"
""".strip(),
    )

    loaded = load_config(config_path, environ={})

    assert loaded["paths"]["font_dirs_file"] == (
        config_path.parent / "cache" / "font-dirs.xml"
    ).as_posix()


def test_loader_is_deterministic_for_same_inputs(tmp_path: Path) -> None:
    config_path = tmp_path / "fbh.toml"
    _write_config(config_path, "")
    env = {"FBH_HOST_ENV_PASSTHROUGH_PREFIX": "MYAPP_"}
    cli = {"paths.build_dir": ".meta"}

    first = load_config(config_path, environ=env, cli_overrides=cli)
    second = load_config(config_path, environ=env, cli_overrides=cli)

    assert first == second


def test_settings_view_exposes_typed_fields(tmp_path: Path) -> None:
    config_path = tmp_path / "fbh.toml"
    _write_config(
        config_path,
        """
[tools]
bus = "/opt/bin/gdbus"

[host]
env_passthrough_prefix = "MYAPP_"

[observability]
log_format = "json"
""".strip(),
    )

    settings = load_settings(config_path, environ={})

    assert settings.bus_binary == "/opt/bin/gdbus"
    assert settings.builder_binary == "flatpak-builder"
    assert settings.env_passthrough_prefix == "MYAPP_"
    assert settings.log_format == "json"
    assert settings.font_dirs_file is None


def test_default_settings_match_default_config() -> None:
    settings = HelperSettings.defaults()

    assert settings.sandbox_binary == "flatpak"
    assert settings.build_system_dir == "_build"
    assert settings.log_format == "text"


def test_dotted_overrides_are_coerced_to_the_default_type(tmp_path: Path) -> None:
    loaded = load_config(
        root_dir=tmp_path,
        environ={},
        cli_overrides={"meta.schema_version": "1", "paths.repo_dir": " staging "},
    )

    assert loaded["meta"]["schema_version"] == 1
    assert loaded["paths"]["repo_dir"] == "staging"


@pytest.mark.parametrize("key", ["tools", "tools.", ".sandbox", "tools.sandbox.extra"])
def test_malformed_override_keys_are_rejected(tmp_path: Path, key: str) -> None:
    with pytest.raises(ConfigLoadError, match="expected <section>.<key>"):
        load_config(root_dir=tmp_path, environ={}, cli_overrides={key: "x"})


def test_env_var_name_mapping() -> None:
    assert env_var_name("host", "env_passthrough_prefix") == "FBH_HOST_ENV_PASSTHROUGH_PREFIX"

"""Unit tests for manifest discovery and JSON/YAML decoding."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from flatpak_build_helper.config import HelperSettings
from flatpak_build_helper.errors import HostFilesystemError, ManifestInvalidError
from flatpak_build_helper.manifest import find_manifest, load_schema, open_manifest

pytestmark = pytest.mark.unit

_MANIFEST = {
    "id": "org.example.App",
    "sdk": "org.gnome.Sdk",
    "runtime": "org.gnome.Platform",
    "runtime-version": "45",
    "command": "example-app",
    "modules": [{"name": "app", "buildsystem": "simple", "build-commands": ["make"]}],
}

_YAML_MANIFEST = """
app-id: org.example.Yaml
sdk: org.gnome.Sdk
runtime: org.gnome.Platform
runtime-version: "45"
command: yaml-app
finish-args:
  - --share=ipc
modules:
  - name: app
    buildsystem: meson
    config-opts:
      - -Dprofile=dev
""".lstrip()


def _write(path: Path, contents: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")
    return path


def test_find_manifest_skips_unrelated_documents(tmp_path: Path) -> None:
    _write(tmp_path / "a-package.json", json.dumps({"name": "node-thing"}))
    _write(tmp_path / "b-broken.json", "{not json")
    expected = _write(tmp_path / "org.example.App.json", json.dumps(_MANIFEST))
    _write(tmp_path / "z-other.yml", _YAML_MANIFEST)

    assert find_manifest(tmp_path) == expected


def test_find_manifest_does_not_recurse(tmp_path: Path) -> None:
    _write(tmp_path / "nested" / "org.example.App.json", json.dumps(_MANIFEST))

    with pytest.raises(ManifestInvalidError, match="no flatpak manifest found"):
        find_manifest(tmp_path)


def test_find_manifest_requires_a_directory(tmp_path: Path) -> None:
    with pytest.raises(HostFilesystemError):
        find_manifest(tmp_path / "missing")


def test_load_schema_decodes_yaml(tmp_path: Path) -> None:
    path = _write(tmp_path / "org.example.Yaml.yaml", _YAML_MANIFEST)

    schema = load_schema(path)

    assert schema.app_id == "org.example.Yaml"
    assert schema.runtime_version == "45"
    assert schema.finish_args == ("--share=ipc",)
    assert schema.target_module.config_opts == ("-Dprofile=dev",)


def test_load_schema_names_the_file_on_invalid_content(tmp_path: Path) -> None:
    path = _write(tmp_path / "bad.json", json.dumps({**_MANIFEST, "modules": "app"}))

    with pytest.raises(ManifestInvalidError, match="bad.json"):
        load_schema(path)


def test_load_schema_reports_unreadable_file(tmp_path: Path) -> None:
    with pytest.raises(HostFilesystemError):
        load_schema(tmp_path / "absent.json")


def test_open_manifest_applies_settings(tmp_path: Path) -> None:
    _write(tmp_path / "org.example.App.json", json.dumps(_MANIFEST))
    settings = HelperSettings.from_config(
        {
            "meta": {"schema_version": 1},
            "tools": {"sandbox": "flatpak", "builder": "flatpak-builder", "bus": "gdbus"},
            "paths": {
                "build_dir": ".meta",
                "repo_dir": "repo",
                "state_dir": "state",
                "build_system_dir": "_build",
                "font_dirs_file": "",
            },
            "host": {"env_passthrough_prefix": ""},
            "observability": {"log_format": "text"},
        }
    )

    manifest = open_manifest(tmp_path, settings=settings)

    assert manifest.root_dir == tmp_path.resolve()
    assert manifest.repo_dir == tmp_path.resolve() / ".meta" / "repo"
    assert manifest.state_dir == tmp_path.resolve() / ".meta" / "state"
    assert manifest.manifest_path.name == "org.example.App.json"


def test_open_manifest_with_explicit_path(tmp_path: Path) -> None:
    path = _write(tmp_path / "manifests" / "app.yml", _YAML_MANIFEST)

    manifest = open_manifest(tmp_path, path)

    assert manifest.id == "org.example.Yaml"
    assert manifest.manifest_path == path.resolve()

"""
flatpak-build-helper — unit tests for manifest decoding

Purpose
- Validate kebab-case key decoding, build-system spellings, and field-path errors.
"""

from __future__ import annotations

from typing import Any

import pytest

from flatpak_build_helper.errors import ManifestInvalidError
from flatpak_build_helper.manifest import BuildSystem, ManifestSchema, SourceType

pytestmark = pytest.mark.unit


def _document(**overrides: Any) -> dict[str, Any]:
    document: dict[str, Any] = {
        "id": "org.example.App",
        "sdk": "org.gnome.Sdk",
        "runtime": "org.gnome.Platform",
        "runtime-version": "45",
        "command": "example-app",
        "modules": [{"name": "app", "buildsystem": "meson"}],
    }
    document.update(overrides)
    return document


def test_decodes_kebab_case_keys() -> None:
    schema = ManifestSchema.from_dict(
        _document(
            **{
                "app-id": "org.example.Alias",
                "sdk-extensions": ["org.freedesktop.Sdk.Extension.rust-stable"],
                "finish-args": ["--share=ipc", "--socket=wayland"],
                "x-run-args": ["--verbose"],
                "build-options": {
                    "append-path": "/usr/lib/sdk/rust-stable/bin",
                    "prepend-ld-library-path": "/opt/lib",
                    "env": {"CARGO_HOME": "/run/build/cargo"},
                    "build-args": ["--share=network"],
                    "config-opts": ["-Dprofile=dev"],
                },
                "modules": [
                    {
                        "name": "dep",
                        "buildsystem": "cmake-ninja",
                        "sources": [{"type": "git", "url": "https://example.org/dep.git"}],
                    },
                    {
                        "name": "app",
                        "buildsystem": "meson",
                        "config-opts": ["-Dtests=false"],
                        "post-install": ["install -Dm644 data/app.desktop /app/share"],
                        "build-options": {"prepend-pkg-config-path": "/app/extra/pkgconfig"},
                    },
                ],
            }
        )
    )

    assert schema.app_id == "org.example.Alias"
    assert schema.runtime_version == "45"
    assert schema.sdk_extensions == ("org.freedesktop.Sdk.Extension.rust-stable",)
    assert schema.finish_args == ("--share=ipc", "--socket=wayland")
    assert schema.x_run_args == ("--verbose",)
    assert schema.options.append_path == "/usr/lib/sdk/rust-stable/bin"
    assert schema.options.prepend_ld_library_path == "/opt/lib"
    assert schema.options.env == {"CARGO_HOME": "/run/build/cargo"}
    assert schema.options.config_opts == ("-Dprofile=dev",)
    assert schema.modules[0].sources[0].source_type is SourceType.GIT
    assert schema.target_module.name == "app"
    assert schema.target_module.config_opts == ("-Dtests=false",)
    assert schema.target_module.options.prepend_pkg_config_path == "/app/extra/pkgconfig"


@pytest.mark.parametrize(
    ("spelling", "expected"),
    [
        ("autotools", BuildSystem.AUTOTOOLS),
        ("cmake", BuildSystem.CMAKE),
        ("cmake-ninja", BuildSystem.CMAKE_NINJA),
        ("meson", BuildSystem.MESON),
        ("simple", BuildSystem.SIMPLE),
        ("qmake", BuildSystem.QMAKE),
    ],
)
def test_build_system_spellings_round_trip(spelling: str, expected: BuildSystem) -> None:
    parsed = BuildSystem.parse(spelling)

    assert parsed is expected
    assert parsed.spelling == spelling


def test_unknown_build_system_names_the_field_path() -> None:
    document = _document(modules=[{"name": "app", "buildsystem": "bazel"}])

    with pytest.raises(ManifestInvalidError, match=r"manifest.modules\[0\].buildsystem"):
        ManifestSchema.from_dict(document)


def test_missing_build_system_is_allowed_at_decode_time() -> None:
    schema = ManifestSchema.from_dict(_document(modules=[{"name": "app"}]))

    assert schema.target_module.build_system is None


def test_empty_modules_are_rejected() -> None:
    with pytest.raises(ManifestInvalidError, match="modules"):
        ManifestSchema.from_dict(_document(modules=[]))


@pytest.mark.parametrize("missing", ["sdk", "runtime", "runtime-version", "command", "modules"])
def test_required_fields_are_reported(missing: str) -> None:
    document = _document()
    del document[missing]

    with pytest.raises(ManifestInvalidError, match=missing):
        ManifestSchema.from_dict(document)


def test_wrong_field_type_is_reported_with_path() -> None:
    document = _document(**{"finish-args": "--share=ipc"})

    with pytest.raises(ManifestInvalidError, match="manifest.finish-args"):
        ManifestSchema.from_dict(document)


def test_unknown_keys_are_ignored() -> None:
    schema = ManifestSchema.from_dict(
        _document(cleanup=["/include"], **{"rename-icon": "app", "tags": ["devel"]})
    )

    assert schema.command == "example-app"

"""Dataclass models of a flatpak manifest with strict field validation.

External documents use kebab-case keys (``app-id``, ``build-options``,
``config-opts`` ...). Unknown keys are ignored so real-world manifests that
carry fields this tool does not consume (``cleanup``, ``rename-icon`` ...) still
decode; known keys are type-checked and reported with a dotted field path.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import NoReturn, TypeVar

from flatpak_build_helper.errors import ManifestInvalidError

TEnum = TypeVar("TEnum", bound=StrEnum)

_MAX_TEXT = 8192
_MAX_COLLECTION = 1024


class BuildSystem(StrEnum):
    """Build systems a module may declare; values are the manifest spellings."""

    AUTOTOOLS = "autotools"
    CMAKE = "cmake"
    CMAKE_NINJA = "cmake-ninja"
    MESON = "meson"
    SIMPLE = "simple"
    QMAKE = "qmake"

    @property
    def spelling(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: object, path: str = "buildsystem") -> BuildSystem:
        return _as_enum(cls, value, path)


class SourceType(StrEnum):
    ARCHIVE = "archive"
    GIT = "git"
    BZR = "bzr"
    SVN = "svn"
    DIR = "dir"
    FILE = "file"
    SCRIPT = "script"
    INLINE = "inline"
    SHELL = "shell"
    PATCH = "patch"
    EXTRA_DATA = "extra-data"


@dataclass(frozen=True, slots=True)
class BuildOption:
    """``build-options`` block; every field defaults to empty."""

    build_args: tuple[str, ...] = ()
    prepend_path: str = ""
    append_path: str = ""
    prepend_ld_library_path: str = ""
    append_ld_library_path: str = ""
    prepend_pkg_config_path: str = ""
    append_pkg_config_path: str = ""
    env: Mapping[str, str] = field(default_factory=dict)
    config_opts: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: object, path: str = "build-options") -> BuildOption:
        parsed = _expect_object(data, path)
        return cls(
            build_args=_as_str_tuple(parsed.get("build-args", ()), f"{path}.build-args"),
            prepend_path=_as_text(parsed.get("prepend-path", ""), f"{path}.prepend-path"),
            append_path=_as_text(parsed.get("append-path", ""), f"{path}.append-path"),
            prepend_ld_library_path=_as_text(
                parsed.get("prepend-ld-library-path", ""), f"{path}.prepend-ld-library-path"
            ),
            append_ld_library_path=_as_text(
                parsed.get("append-ld-library-path", ""), f"{path}.append-ld-library-path"
            ),
            prepend_pkg_config_path=_as_text(
                parsed.get("prepend-pkg-config-path", ""), f"{path}.prepend-pkg-config-path"
            ),
            append_pkg_config_path=_as_text(
                parsed.get("append-pkg-config-path", ""), f"{path}.append-pkg-config-path"
            ),
            env=_as_str_dict(parsed.get("env", {}), f"{path}.env"),
            config_opts=_as_str_tuple(parsed.get("config-opts", ()), f"{path}.config-opts"),
        )


EMPTY_BUILD_OPTION = BuildOption()


@dataclass(frozen=True, slots=True)
class Source:
    source_type: SourceType
    url: str | None = None
    path: str | None = None
    tag: str | None = None
    commit: str | None = None
    sha256: str | None = None

    @classmethod
    def from_dict(cls, data: object, path: str = "source") -> Source:
        parsed = _expect_object(data, path, required=("type",))
        return cls(
            source_type=_as_enum(SourceType, parsed["type"], f"{path}.type"),
            url=_as_optional_str(parsed.get("url"), f"{path}.url"),
            path=_as_optional_str(parsed.get("path"), f"{path}.path"),
            tag=_as_optional_str(parsed.get("tag"), f"{path}.tag"),
            commit=_as_optional_str(parsed.get("commit"), f"{path}.commit"),
            sha256=_as_optional_str(parsed.get("sha256"), f"{path}.sha256"),
        )


@dataclass(frozen=True, slots=True)
class Module:
    name: str
    build_system: BuildSystem | None = None
    config_opts: tuple[str, ...] = ()
    sources: tuple[Source, ...] = ()
    build_commands: tuple[str, ...] = ()
    build_options: BuildOption | None = None
    post_install: tuple[str, ...] = ()

    @property
    def options(self) -> BuildOption:
        return self.build_options if self.build_options is not None else EMPTY_BUILD_OPTION

    @classmethod
    def from_dict(cls, data: object, path: str = "module") -> Module:
        parsed = _expect_object(data, path, required=("name",))
        raw_build_system = parsed.get("buildsystem")
        raw_options = parsed.get("build-options")
        sources = _as_sequence(parsed.get("sources", ()), f"{path}.sources")
        return cls(
            name=_as_str(parsed["name"], f"{path}.name"),
            build_system=(
                None
                if raw_build_system is None
                else BuildSystem.parse(raw_build_system, f"{path}.buildsystem")
            ),
            config_opts=_as_str_tuple(parsed.get("config-opts", ()), f"{path}.config-opts"),
            sources=tuple(
                Source.from_dict(item, f"{path}.sources[{index}]")
                for index, item in enumerate(sources)
            ),
            build_commands=_as_str_tuple(
                parsed.get("build-commands", ()), f"{path}.build-commands"
            ),
            build_options=(
                None
                if raw_options is None
                else BuildOption.from_dict(raw_options, f"{path}.build-options")
            ),
            post_install=_as_str_tuple(parsed.get("post-install", ()), f"{path}.post-install"),
        )


@dataclass(frozen=True, slots=True)
class ManifestSchema:
    """Decoded manifest document. ``modules`` is non-empty; the last entry is the target."""

    modules: tuple[Module, ...]
    sdk: str
    runtime: str
    runtime_version: str
    command: str
    id: str | None = None
    branch: str | None = None
    app_id: str | None = None
    sdk_extensions: tuple[str, ...] = ()
    finish_args: tuple[str, ...] = ()
    build_options: BuildOption | None = None
    x_run_args: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.modules:
            _fail("modules", "must not be empty")

    @property
    def target_module(self) -> Module:
        return self.modules[-1]

    @property
    def options(self) -> BuildOption:
        return self.build_options if self.build_options is not None else EMPTY_BUILD_OPTION

    @classmethod
    def from_dict(cls, data: object) -> ManifestSchema:
        parsed = _expect_object(
            data,
            "manifest",
            required=("modules", "sdk", "runtime", "runtime-version", "command"),
        )
        modules = _as_sequence(parsed["modules"], "manifest.modules")
        raw_options = parsed.get("build-options")
        return cls(
            id=_as_optional_str(parsed.get("id"), "manifest.id"),
            branch=_as_optional_str(parsed.get("branch"), "manifest.branch"),
            app_id=_as_optional_str(parsed.get("app-id"), "manifest.app-id"),
            modules=tuple(
                Module.from_dict(item, f"manifest.modules[{index}]")
                for index, item in enumerate(modules)
            ),
            sdk=_as_str(parsed["sdk"], "manifest.sdk"),
            runtime=_as_str(parsed["runtime"], "manifest.runtime"),
            runtime_version=_as_str(parsed["runtime-version"], "manifest.runtime-version"),
            sdk_extensions=_as_str_tuple(
                parsed.get("sdk-extensions", ()), "manifest.sdk-extensions"
            ),
            command=_as_str(parsed["command"], "manifest.command"),
            finish_args=_as_str_tuple(parsed.get("finish-args", ()), "manifest.finish-args"),
            build_options=(
                None
                if raw_options is None
                else BuildOption.from_dict(raw_options, "manifest.build-options")
            ),
            x_run_args=_as_str_tuple(parsed.get("x-run-args", ()), "manifest.x-run-args"),
        )


def _fail(path: str, message: str) -> NoReturn:
    raise ManifestInvalidError(f"{path}: {message}")


def _expect_object(
    value: object,
    path: str,
    *,
    required: tuple[str, ...] = (),
) -> dict[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")

    parsed: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            _fail(path, f"object keys must be strings, got {type(key).__name__}")
        parsed[key] = item

    missing = sorted(key for key in required if parsed.get(key) is None)
    if missing:
        _fail(path, f"missing required fields: {missing}")
    return parsed


def _as_str(value: object, path: str, *, max_len: int = _MAX_TEXT) -> str:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    normalized = value.strip()
    if not normalized:
        _fail(path, "must not be empty")
    if len(normalized) > max_len:
        _fail(path, f"must be <= {max_len} characters")
    return normalized


def _as_optional_str(value: object, path: str) -> str | None:
    if value is None:
        return None
    return _as_str(value, path)


def _as_text(value: object, path: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    return value


def _as_enum(enum_type: type[TEnum], value: object, path: str) -> TEnum:
    if isinstance(value, enum_type):
        return value
    if not isinstance(value, str):
        _fail(path, f"expected string enum value, got {type(value).__name__}")
    try:
        return enum_type(value.strip())
    except ValueError:
        allowed = ", ".join(sorted(item.value for item in enum_type))
        _fail(path, f"invalid value {value!r}; expected one of: {allowed}")


def _as_sequence(value: object, path: str) -> list[object]:
    if isinstance(value, (list, tuple)):
        if len(value) > _MAX_COLLECTION:
            _fail(path, f"too many items (>{_MAX_COLLECTION})")
        return list(value)
    _fail(path, f"expected array, got {type(value).__name__}")


def _as_str_tuple(value: object, path: str) -> tuple[str, ...]:
    if value is None:
        return ()
    items = _as_sequence(value, path)
    parsed: list[str] = []
    for index, item in enumerate(items):
        if not isinstance(item, str):
            _fail(f"{path}[{index}]", f"expected string, got {type(item).__name__}")
        parsed.append(item)
    return tuple(parsed)


def _as_str_dict(value: object, path: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")

    parsed: dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(key, str) or not key.strip():
            _fail(path, "keys must be non-empty strings")
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            _fail(f"{path}.{key}", f"expected string, got {type(item).__name__}")
        parsed[key] = str(item)
    return parsed


__all__ = [
    "EMPTY_BUILD_OPTION",
    "BuildOption",
    "BuildSystem",
    "ManifestSchema",
    "Module",
    "Source",
    "SourceType",
]

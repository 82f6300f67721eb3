"""Manifest schema, aggregate, and discovery."""

from flatpak_build_helper.manifest.loader import find_manifest, load_schema, open_manifest
from flatpak_build_helper.manifest.model import Manifest
from flatpak_build_helper.manifest.types import (
    EMPTY_BUILD_OPTION,
    BuildOption,
    BuildSystem,
    ManifestSchema,
    Module,
    Source,
    SourceType,
)

__all__ = [
    "EMPTY_BUILD_OPTION",
    "BuildOption",
    "BuildSystem",
    "Manifest",
    "ManifestSchema",
    "Module",
    "Source",
    "SourceType",
    "find_manifest",
    "load_schema",
    "open_manifest",
]

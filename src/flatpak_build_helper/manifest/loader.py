"""
Manifest discovery and decoding.

Functional requirements
- Find the manifest in a project root (``*.json``, ``*.yaml``, ``*.yml``; first
  by name that looks like a flatpak manifest).
- Decode JSON or YAML and validate into :class:`ManifestSchema`.
- Unreadable files raise ``HostFilesystemError``; malformed documents raise
  ``ManifestInvalidError`` with the offending file named.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Final

import yaml

from flatpak_build_helper.errors import HostFilesystemError, ManifestInvalidError
from flatpak_build_helper.manifest.model import Manifest
from flatpak_build_helper.manifest.types import ManifestSchema

if TYPE_CHECKING:
    from flatpak_build_helper.config.loader import HelperSettings

_LOGGER = logging.getLogger(__name__)

MANIFEST_SUFFIXES: Final[tuple[str, ...]] = (".json", ".yaml", ".yml")


def find_manifest(root_dir: Path | str) -> Path:
    """Return the first file in ``root_dir`` that decodes to a manifest-shaped mapping."""

    root = Path(root_dir)
    if not root.is_dir():
        raise HostFilesystemError(f"project root is not a directory: {root}")

    candidates = sorted(
        path for path in root.iterdir() if path.is_file() and path.suffix in MANIFEST_SUFFIXES
    )
    for candidate in candidates:
        try:
            payload = _decode_file(candidate)
        except (HostFilesystemError, ManifestInvalidError) as exc:
            _LOGGER.debug("skipping manifest candidate %s: %s", candidate, exc)
            continue
        if _looks_like_manifest(payload):
            _LOGGER.info("found manifest: %s", candidate)
            return candidate

    raise ManifestInvalidError(f"no flatpak manifest found in {root}")


def load_schema(path: Path | str) -> ManifestSchema:
    """Decode and validate the manifest at ``path``."""

    manifest_path = Path(path)
    payload = _decode_file(manifest_path)
    try:
        return ManifestSchema.from_dict(payload)
    except ManifestInvalidError as exc:
        raise ManifestInvalidError(f"{manifest_path}: {exc}") from exc


def open_manifest(
    root_dir: Path | str | None = None,
    manifest_path: Path | str | None = None,
    *,
    settings: HelperSettings | None = None,
) -> Manifest:
    """Locate, decode, and wrap a manifest into the :class:`Manifest` aggregate."""

    root = Path.cwd() if root_dir is None else Path(root_dir)
    root = root.expanduser().resolve()
    path = find_manifest(root) if manifest_path is None else Path(manifest_path).resolve()
    schema = load_schema(path)

    if settings is None:
        return Manifest(root, schema, path)
    return Manifest(
        root,
        schema,
        path,
        build_dir_name=settings.build_dir,
        repo_dir_name=settings.repo_dir,
        state_dir_name=settings.state_dir,
    )


def _decode_file(path: Path) -> object:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise HostFilesystemError(f"unable to read manifest {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ManifestInvalidError(f"{path}: not UTF-8 text: {exc}") from exc

    if path.suffix == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ManifestInvalidError(f"invalid JSON in {path}: {exc}") from exc

    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ManifestInvalidError(f"invalid YAML in {path}: {exc}") from exc


def _looks_like_manifest(payload: object) -> bool:
    if not isinstance(payload, Mapping):
        return False
    return "modules" in payload and ("id" in payload or "app-id" in payload)


__all__ = ["MANIFEST_SUFFIXES", "find_manifest", "load_schema", "open_manifest"]

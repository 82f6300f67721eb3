"""Manifest aggregate: decoded schema plus the project's derived build paths."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from flatpak_build_helper.constants import (
    DEFAULT_BUILD_DIR,
    DEFAULT_REPO_DIR,
    DEFAULT_STATE_DIR,
    REPO_MARKER_DIRS,
    REPO_MARKER_FILE,
)
from flatpak_build_helper.errors import ManifestInvalidError
from flatpak_build_helper.utils.concurrency import Once

if TYPE_CHECKING:
    from collections.abc import Callable

    from flatpak_build_helper.manifest.types import ManifestSchema, Module

_LOGGER = logging.getLogger(__name__)


class Manifest:
    """Owns a parsed manifest and the paths derived from the project root.

    Paths are fixed at construction. The font and accessibility-bus argument
    lists are the only mutable state: each is resolved on first use and reused
    by every later ``run`` on this instance.
    """

    def __init__(
        self,
        root_dir: Path | str,
        schema: ManifestSchema,
        manifest_path: Path | str,
        *,
        build_dir_name: str = DEFAULT_BUILD_DIR,
        repo_dir_name: str = DEFAULT_REPO_DIR,
        state_dir_name: str = DEFAULT_STATE_DIR,
    ) -> None:
        manifest_id = schema.id or schema.app_id
        if not manifest_id:
            raise ManifestInvalidError("manifest: must declare an id (or app-id)")
        if not schema.modules:
            raise ManifestInvalidError("manifest.modules: must not be empty")

        self.root_dir = Path(root_dir)
        self.schema = schema
        self.manifest_path = Path(manifest_path)
        self.build_dir = self.root_dir / build_dir_name
        self.repo_dir = self.build_dir / repo_dir_name
        self.state_dir = self.build_dir / state_dir_name
        self.id = manifest_id

        self._fonts_args: Once[tuple[str, ...]] = Once()
        self._a11y_bus_args: Once[tuple[str, ...]] = Once()

    def __repr__(self) -> str:
        return (
            f"Manifest(id={self.id!r}, root_dir={str(self.root_dir)!r}, "
            f"manifest_path={str(self.manifest_path)!r})"
        )

    @property
    def target_module(self) -> Module:
        return self.schema.target_module

    def fonts_args(self, resolver: Callable[[], tuple[str, ...]]) -> tuple[str, ...]:
        """Return cached font arguments, running ``resolver`` on first use only."""

        return self._fonts_args.get_or_resolve(resolver)

    def a11y_bus_args(self, resolver: Callable[[], tuple[str, ...]]) -> tuple[str, ...]:
        """Return cached accessibility-bus arguments, running ``resolver`` on first use only."""

        return self._a11y_bus_args.get_or_resolve(resolver)

    def is_initialized(self) -> bool:
        """True iff the repo directory carries the build-init markers."""

        if not self.root_dir.exists():
            _LOGGER.debug("initialize check not passed: root_dir does not exist: %s", self.root_dir)
            return False

        metadata_file = self.repo_dir / REPO_MARKER_FILE
        marker_dirs = [self.repo_dir / name for name in REPO_MARKER_DIRS]
        states = {str(metadata_file): metadata_file.is_file()}
        states.update({str(path): path.is_dir() for path in marker_dirs})
        _LOGGER.debug("initialize markers: %s", states)
        return all(states.values())

    def is_built(self) -> bool:
        """Coarse readiness check: the repo directory exists at all."""

        return self.repo_dir.exists()


__all__ = ["Manifest"]

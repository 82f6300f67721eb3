"""Utility exports for filesystem and synchronization helpers."""

from flatpak_build_helper.utils.concurrency import Once
from flatpak_build_helper.utils.fs import atomic_write

__all__ = ["Once", "atomic_write"]

"""
Host font exposure for sandboxed runs.

Font directories that exist on the host are bound or granted read-only into
the sandbox, and a fontconfig ``remap-dir`` document is written to the user
cache so the application resolves host paths to their in-sandbox location.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from xml.sax.saxutils import quoteattr

from flatpak_build_helper.constants import (
    FONT_DIR_CONTENT_FOOTER,
    FONT_DIR_CONTENT_HEADER,
    FONT_DIRS_FILENAME,
    SANDBOX_FONT_DIRS_FILE,
    SANDBOX_FONTS_CACHE_DIR,
    SANDBOX_FONTS_DIR,
    SANDBOX_LOCAL_FONTS_DIR,
    SANDBOX_USER_FONTS_CACHE_DIR,
    SYSTEM_FONT_CACHE_DIRS,
    SYSTEM_FONTS_DIR,
    SYSTEM_LOCAL_FONT_DIR,
)
from flatpak_build_helper.errors import HostFilesystemError
from flatpak_build_helper.utils.fs import atomic_write

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FontPaths:
    """Host locations inspected when building font arguments."""

    system_fonts_dir: Path
    system_local_fonts_dir: Path
    system_cache_dirs: tuple[Path, ...]
    user_font_dirs: tuple[Path, ...]
    user_fonts_cache_dir: Path
    font_dirs_file: Path

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        home: Path | str | None = None,
        font_dirs_file: Path | str | None = None,
    ) -> FontPaths:
        """Derive user locations from XDG variables, falling back to the home directory."""

        env = os.environ if environ is None else environ
        home_dir = Path(home) if home is not None else Path(env.get("HOME") or Path.home())
        data_dir = _xdg_dir(env, "XDG_DATA_HOME", home_dir / ".local" / "share")
        cache_dir = _xdg_dir(env, "XDG_CACHE_HOME", home_dir / ".cache")
        return cls(
            system_fonts_dir=Path(SYSTEM_FONTS_DIR),
            system_local_fonts_dir=Path(SYSTEM_LOCAL_FONT_DIR),
            system_cache_dirs=tuple(Path(item) for item in SYSTEM_FONT_CACHE_DIRS),
            user_font_dirs=(data_dir / "fonts", home_dir / "fonts"),
            user_fonts_cache_dir=cache_dir / "fontconfig",
            font_dirs_file=Path(font_dirs_file) if font_dirs_file else cache_dir / FONT_DIRS_FILENAME,
        )


def remap_entry(host_dir: Path | str) -> str:
    return f"\t<remap-dir as-path={quoteattr(str(host_dir))}>{SANDBOX_FONTS_DIR}/</remap-dir>\n"


def resolve_font_args(paths: FontPaths) -> tuple[str, ...]:
    """Inspect the host, write the remap document, and return the sandbox arguments.

    Only directories that exist at call time contribute. The remap document is
    always written, even when it carries no entries.
    """

    args: list[str] = []
    content = [FONT_DIR_CONTENT_HEADER]

    if paths.system_fonts_dir.exists():
        args.append(f"--bind-mount={SANDBOX_FONTS_DIR}={paths.system_fonts_dir}")
        content.append(remap_entry(paths.system_fonts_dir))

    if paths.system_local_fonts_dir.exists():
        args.append(f"--bind-mount={SANDBOX_LOCAL_FONTS_DIR}={paths.system_local_fonts_dir}")
        content.append(remap_entry(paths.system_local_fonts_dir))

    for cache_dir in paths.system_cache_dirs:
        if cache_dir.exists():
            args.append(f"--bind-mount={SANDBOX_FONTS_CACHE_DIR}={cache_dir}")

    for font_dir in paths.user_font_dirs:
        if font_dir.exists():
            args.append(f"--filesystem={font_dir};ro")
            content.append(remap_entry(font_dir))

    if paths.user_fonts_cache_dir.exists():
        args.append(f"--filesystem={paths.user_fonts_cache_dir};ro")
        args.append(f"--bind-mount={SANDBOX_USER_FONTS_CACHE_DIR}={paths.user_fonts_cache_dir}")

    content.append(FONT_DIR_CONTENT_FOOTER)
    try:
        atomic_write(paths.font_dirs_file, "".join(content))
    except OSError as exc:
        raise HostFilesystemError(
            f"unable to write font remap file {paths.font_dirs_file}: {exc}"
        ) from exc
    args.append(f"--bind-mount={SANDBOX_FONT_DIRS_FILE}={paths.font_dirs_file}")

    _LOGGER.debug("font args: %s", args)
    return tuple(args)


def _xdg_dir(environ: Mapping[str, str], name: str, fallback: Path) -> Path:
    value = environ.get(name, "")
    # Relative XDG values are invalid and must be ignored.
    if value and os.path.isabs(value):
        return Path(value)
    return fallback


__all__ = ["FontPaths", "remap_entry", "resolve_font_args"]

"""Module entrypoint for ``python -m flatpak_build_helper``."""

from __future__ import annotations

from flatpak_build_helper.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())

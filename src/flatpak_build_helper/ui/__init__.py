"""Command-line interface and output rendering."""

from flatpak_build_helper.ui.cli import CLIError, build_parser, run_cli
from flatpak_build_helper.ui.render import CLIRenderer, create_renderer

__all__ = ["CLIError", "CLIRenderer", "build_parser", "create_renderer", "run_cli"]

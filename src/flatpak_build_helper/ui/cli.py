"""Command-line interface router for flatpak-build-helper."""

from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from flatpak_build_helper import __version__
from flatpak_build_helper.config import HelperSettings, load_settings
from flatpak_build_helper.constants import APP_LOG_VAR
from flatpak_build_helper.execution.pipeline import BuildPipeline
from flatpak_build_helper.manifest import Manifest, open_manifest
from flatpak_build_helper.observability import resolve_verbosity, setup_logging, shutdown_logging
from flatpak_build_helper.ui.render import CLIRenderer, create_renderer


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="fbh",
        description=(
            "flatpak-build-helper: build and run a flatpak manifest's main module "
            "without a full flatpak-builder cycle.\n\n"
            "Common workflows:\n"
            "  fbh build               Initialize the repo and build the target module\n"
            "  fbh build --rebuild     Recompile and reinstall the target module\n"
            "  fbh run                 Build if needed, then launch the application\n"
            "  fbh plan --json         Show the build commands without running them\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--verbose",
        "-v",
        dest="global_verbose",
        action="count",
        default=0,
        help=f"Verbose output, -v or -vv (or set {APP_LOG_VAR} to 1/2/full).",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "root_dir",
        nargs="?",
        default=None,
        help="Project root holding the manifest (default: current working directory).",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help=f"Verbose output, -v or -vv (or set {APP_LOG_VAR} to 1/2/full).",
    )
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to fbh TOML config (default: <root-dir>/fbh.toml if present).",
    )
    common.add_argument(
        "--manifest",
        dest="manifest_path",
        default=None,
        help="Manifest file to use instead of discovering one in the root.",
    )
    common.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="SECTION.KEY=VALUE",
        help="Override one config value, e.g. --set tools.sandbox=/opt/bin/flatpak (repeatable).",
    )

    subparsers = parser.add_subparsers(dest="command")

    # build ---------------------------------------------------------------
    build_parser_ = subparsers.add_parser(
        "build",
        parents=[common],
        help="Build the manifest's target module",
        description=(
            "Initialize the repo, build dependencies with flatpak-builder, and build the "
            "target module. Skipped when the repo already exists unless --rebuild is given."
        ),
    )
    build_parser_.add_argument(
        "--rebuild",
        action="store_true",
        help="Recompile and reinstall the target module without regenerating the build.",
    )
    build_parser_.set_defaults(handler=_cmd_build)

    # run -----------------------------------------------------------------
    run_parser = subparsers.add_parser(
        "run",
        parents=[common],
        help="Build if needed, then run the application in the sandbox",
    )
    run_parser.set_defaults(handler=_cmd_run)

    # plan ----------------------------------------------------------------
    plan_parser = subparsers.add_parser(
        "plan",
        parents=[common],
        help="Print the target module build commands without executing them",
    )
    plan_parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Plan a rebuild (skips the generation step).",
    )
    plan_parser.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    plan_parser.set_defaults(handler=_cmd_plan)

    # status --------------------------------------------------------------
    status_parser = subparsers.add_parser(
        "status",
        parents=[common],
        help="Show manifest identity, derived paths, and repo state",
    )
    status_parser.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    status_parser.set_defaults(handler=_cmd_status)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help()
        return 0

    count = int(getattr(namespace, "global_verbose", 0)) + int(getattr(namespace, "verbose", 0))
    verbosity = resolve_verbosity(count, os.environ)
    try:
        settings = _load_settings(namespace)
        handle = setup_logging(verbosity, settings.log_format)
        try:
            result = handler(namespace, settings)
        finally:
            shutdown_logging(handle)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_build(args: argparse.Namespace, settings: HelperSettings) -> int:
    manifest = _open_manifest(args, settings)
    pipeline = BuildPipeline(manifest, settings)
    renderer = create_renderer()

    built = pipeline.build(rebuild=_flag(args, "rebuild"))
    if built:
        renderer.text(f"built {manifest.id} into {manifest.repo_dir}")
    else:
        renderer.text(f"{manifest.repo_dir} already exists; use --rebuild to rebuild {manifest.id}")
    return 0


def _cmd_run(args: argparse.Namespace, settings: HelperSettings) -> int:
    manifest = _open_manifest(args, settings)
    pipeline = BuildPipeline(manifest, settings)

    outcome = pipeline.run()
    create_renderer().raw(outcome.stdout)
    return 0


def _cmd_plan(args: argparse.Namespace, settings: HelperSettings) -> int:
    manifest = _open_manifest(args, settings)
    rebuild = _flag(args, "rebuild")
    commands = BuildPipeline(manifest, settings).planner().plan(rebuild)
    build_system = manifest.target_module.build_system

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "plan",
                "id": manifest.id,
                "module": manifest.target_module.name,
                "build_system": None if build_system is None else build_system.spelling,
                "rebuild": rebuild,
                "commands": [item.to_dict() for item in commands],
            }
        )
        return 0

    renderer = create_renderer()
    renderer.kv("Module", manifest.target_module.name)
    renderer.kv("Build system", "-" if build_system is None else build_system.spelling)
    renderer.section("Commands:")
    renderer.numbered([item.render() for item in commands])
    return 0


def _cmd_status(args: argparse.Namespace, settings: HelperSettings) -> int:
    manifest = _open_manifest(args, settings)
    payload = _status_payload(manifest)

    if _flag(args, "json"):
        _emit_json({"command": "status", **payload})
        return 0

    renderer = create_renderer()
    renderer.kv("Id", payload["id"])
    renderer.kv("Manifest", payload["manifest_path"])
    renderer.kv("Root", payload["root_dir"])
    renderer.kv("Repo", payload["repo_dir"])
    renderer.kv("State", payload["state_dir"])
    renderer.kv("Module", f"{payload['module']} ({payload['build_system'] or '-'})")
    renderer.section("Checks:")
    _render_check(renderer, "repo initialized", bool(payload["initialized"]))
    _render_check(renderer, "repo present", bool(payload["built"]))
    return 0


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _render_check(renderer: CLIRenderer, label: str, passed: bool) -> None:
    if passed:
        renderer.ok(label)
    else:
        renderer.fail(label)


def _status_payload(manifest: Manifest) -> dict[str, object]:
    build_system = manifest.target_module.build_system
    return {
        "id": manifest.id,
        "manifest_path": str(manifest.manifest_path),
        "root_dir": str(manifest.root_dir),
        "repo_dir": str(manifest.repo_dir),
        "state_dir": str(manifest.state_dir),
        "module": manifest.target_module.name,
        "build_system": None if build_system is None else build_system.spelling,
        "initialized": manifest.is_initialized(),
        "built": manifest.is_built(),
    }


# ---------------------------------------------------------------------------
# Helpers: config, paths, resolution
# ---------------------------------------------------------------------------


def _root_dir(args: argparse.Namespace) -> Path:
    raw = getattr(args, "root_dir", None)
    candidate = Path.cwd() if raw is None else Path(raw).expanduser()
    resolved = candidate.resolve()
    if not resolved.is_dir():
        raise CLIError(f"root dir is not a directory: {resolved}", exit_code=2)
    return resolved


def _load_settings(args: argparse.Namespace) -> HelperSettings:
    return load_settings(
        getattr(args, "config_path", None),
        root_dir=_root_dir(args),
        cli_overrides=_parse_overrides(getattr(args, "overrides", [])),
        environ=os.environ,
    )


def _parse_overrides(items: Sequence[str]) -> dict[str, object]:
    overrides: dict[str, object] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise CLIError(f"--set expects SECTION.KEY=VALUE, got {item!r}", exit_code=2)
        overrides[key.strip()] = value
    return overrides


def _open_manifest(args: argparse.Namespace, settings: HelperSettings) -> Manifest:
    return open_manifest(
        _root_dir(args),
        getattr(args, "manifest_path", None),
        settings=settings,
    )


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "build_parser", "run_cli"]

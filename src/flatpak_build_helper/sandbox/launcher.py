"""
Launch the built application inside the development sandbox.

The argument list mirrors what an installed application would receive:
document portal mount, the manifest's finish args, portal and a11y bus access,
desktop-session environment, network, and host fonts.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from flatpak_build_helper.constants import (
    DEFAULT_BUS_BINARY,
    DEFAULT_SANDBOX_BINARY,
    HOST_ENV_ALLOWLIST,
    RESERVED_FINISH_ARG_KEYS,
    RUN_PORTAL_TALK_NAMES,
)
from flatpak_build_helper.environment.compose import host_env_args, prefixed_env_args
from flatpak_build_helper.errors import RunFailedError
from flatpak_build_helper.execution.executor import run_process
from flatpak_build_helper.sandbox.a11y import resolve_a11y_bus_args
from flatpak_build_helper.sandbox.fonts import FontPaths, resolve_font_args

if TYPE_CHECKING:
    from flatpak_build_helper.execution.executor import CommandOutcome, ProcessRunner
    from flatpak_build_helper.manifest.model import Manifest

_LOGGER = logging.getLogger(__name__)


def filter_finish_args(finish_args: Iterable[str]) -> list[str]:
    """Drop entries that ``build-init`` already derived from the manifest."""

    return [
        item for item in finish_args if item.split("=", 1)[0] not in RESERVED_FINISH_ARG_KEYS
    ]


class RunLauncher:
    """Assemble and execute ``<sandbox> build ... <repo> <command>`` for a manifest."""

    def __init__(
        self,
        manifest: Manifest,
        *,
        sandbox_binary: str = DEFAULT_SANDBOX_BINARY,
        bus_binary: str = DEFAULT_BUS_BINARY,
        environ: Mapping[str, str] | None = None,
        uid: int | None = None,
        env_passthrough_prefix: str = "",
        font_paths: FontPaths | None = None,
        runner: ProcessRunner = run_process,
    ) -> None:
        self._manifest = manifest
        self._sandbox_binary = sandbox_binary
        self._bus_binary = bus_binary
        self._environ: Mapping[str, str] = dict(os.environ) if environ is None else environ
        self._uid = os.getuid() if uid is None else uid
        self._env_passthrough_prefix = env_passthrough_prefix
        self._font_paths = font_paths if font_paths is not None else FontPaths.from_environ(self._environ)
        self._runner = runner

    def build_args(self) -> list[str]:
        """Full argument list after the sandbox binary; resolves host caches on first use."""

        manifest = self._manifest
        schema = manifest.schema
        fonts_args = manifest.fonts_args(lambda: resolve_font_args(self._font_paths))
        a11y_args = manifest.a11y_bus_args(
            lambda: resolve_a11y_bus_args(self._bus_binary, runner=self._runner)
        )

        uid = self._uid
        args = [
            "build",
            "--with-appdir",
            "--allow=devel",
            f"--bind-mount=/run/user/{uid}/doc=/run/user/{uid}/doc/by-app/{manifest.id}",
        ]
        args.extend(filter_finish_args(schema.finish_args))
        args.extend(RUN_PORTAL_TALK_NAMES)
        args.extend(a11y_args)
        args.extend(host_env_args(HOST_ENV_ALLOWLIST, self._environ))
        args.extend(prefixed_env_args(self._env_passthrough_prefix, self._environ))
        args.append("--share=network")
        args.extend(fonts_args)
        args.append(str(manifest.repo_dir))
        args.append(schema.command)
        args.extend(schema.x_run_args)
        return args

    def argv(self) -> list[str]:
        return [self._sandbox_binary, *self.build_args()]

    def run(self) -> CommandOutcome:
        argv = self.argv()
        _LOGGER.info("start running %s", self._manifest.id)
        _LOGGER.debug("run command: %s", argv)

        outcome = self._runner(argv)
        if not outcome.succeeded:
            raise RunFailedError(
                "error running command",
                argv=outcome.argv,
                exit_code=outcome.returncode,
                stdout=outcome.stdout,
                stderr=outcome.diagnostic,
            )
        return outcome


__all__ = ["RunLauncher", "filter_finish_args"]

"""
Build command planning for the manifest's target module.

Every plan shares one set of sandbox build arguments (network, filesystem
grants for the project root and the repo, declared env, composed search paths)
and then dispatches on the module's build system. ``rebuild`` only drops the
generation step (configure / cmake / meson); compile and install always run.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

import psutil
import structlog

from flatpak_build_helper.constants import (
    APP_PREFIX,
    BUILD_SYSTEM_BUILD_DIR,
    DEFAULT_SANDBOX_BINARY,
)
from flatpak_build_helper.environment.compose import compose_well_known, declared_env_args
from flatpak_build_helper.errors import BuildSystemUnsupportedError, ManifestInvalidError
from flatpak_build_helper.manifest.types import BuildSystem
from flatpak_build_helper.planning.commands import CommandSpec

if TYPE_CHECKING:
    from collections.abc import Sequence

    from flatpak_build_helper.environment.compose import HostLookup
    from flatpak_build_helper.manifest.model import Manifest
    from flatpak_build_helper.manifest.types import Module


def logical_cpu_count() -> int:
    """Logical processor count of the host (at least 1)."""

    return psutil.cpu_count(logical=True) or os.cpu_count() or 1


class BuildCommandPlanner:
    """Compile a :class:`Manifest` target module into an ordered command list."""

    def __init__(
        self,
        manifest: Manifest,
        *,
        sandbox_binary: str = DEFAULT_SANDBOX_BINARY,
        build_system_dir: str = BUILD_SYSTEM_BUILD_DIR,
        environ: HostLookup | None = None,
        cpu_count: int | None = None,
        logger: Any | None = None,
    ) -> None:
        self._manifest = manifest
        self._sandbox_binary = sandbox_binary
        self._build_system_dir = build_system_dir
        self._environ: HostLookup = dict(os.environ) if environ is None else environ
        self._cpu_count = cpu_count
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def build_dir(self) -> Path:
        """Out-of-tree build directory used by CMake and Meson plans."""

        return self._manifest.root_dir / self._build_system_dir

    def plan(self, rebuild: bool = False) -> list[CommandSpec]:
        module = self._manifest.target_module
        build_system = module.build_system
        if build_system is None:
            raise ManifestInvalidError(
                f"module {module.name!r}: build-system not found in manifest module"
            )
        if build_system is BuildSystem.QMAKE:
            raise BuildSystemUnsupportedError("QMake build-system is not implemented yet")

        build_args = self.build_args()
        config_opts = self.config_opts()

        if build_system is BuildSystem.AUTOTOOLS:
            commands = self._autotools(rebuild, build_args, config_opts)
        elif build_system in (BuildSystem.CMAKE, BuildSystem.CMAKE_NINJA):
            commands = self._cmake(rebuild, build_args, config_opts)
        elif build_system is BuildSystem.MESON:
            commands = self._meson(rebuild, build_args, config_opts)
        else:
            commands = self._simple(module, build_args)

        self._logger.info(
            "build_plan",
            module_name=module.name,
            build_system=build_system.spelling,
            rebuild=rebuild,
            command_count=len(commands),
        )
        self._logger.debug("build_plan_commands", commands=[item.render() for item in commands])
        return commands

    def build_args(self) -> list[str]:
        """Shared sandbox arguments preceding the repo directory in every build command."""

        schema = self._manifest.schema
        module = self._manifest.target_module
        args = [
            "--share=network",
            f"--filesystem={self._manifest.root_dir}",
            f"--filesystem={self._manifest.repo_dir}",
        ]
        args.extend(declared_env_args(schema.build_options, module.build_options))
        args.extend(compose_well_known(schema.build_options, module.build_options, self._environ))
        return args

    def config_opts(self) -> list[str]:
        """Module-level config options followed by manifest-level ones."""

        return [*self._manifest.target_module.config_opts, *self._manifest.schema.options.config_opts]

    def _sandboxed(
        self,
        build_args: Sequence[str],
        tool_argv: Sequence[str],
        *,
        cwd: Path | None = None,
    ) -> CommandSpec:
        return CommandSpec.sandbox_build(
            sandbox_binary=self._sandbox_binary,
            build_args=build_args,
            repo_dir=self._manifest.repo_dir,
            tool_argv=tool_argv,
            cwd=cwd,
        )

    def _autotools(
        self, rebuild: bool, build_args: list[str], config_opts: list[str]
    ) -> list[CommandSpec]:
        cpu_count = self._cpu_count if self._cpu_count is not None else logical_cpu_count()
        commands: list[CommandSpec] = []
        if not rebuild:
            commands.append(
                self._sandboxed(build_args, ["./configure", f"--prefix={APP_PREFIX}", *config_opts])
            )
        commands.append(self._sandboxed(build_args, ["make", "-p", "-n", "-s"]))
        commands.append(
            self._sandboxed(build_args, ["make", "V=0", f"-j{cpu_count}", "install"])
        )
        return commands

    def _cmake(
        self, rebuild: bool, build_args: list[str], config_opts: list[str]
    ) -> list[CommandSpec]:
        build_dir = self.build_dir
        cmake_args = [*build_args, f"--filesystem={build_dir}"]
        commands: list[CommandSpec] = []
        if not rebuild:
            commands.append(CommandSpec.host(["mkdir", "-p", str(build_dir)]))
            commands.append(
                self._sandboxed(
                    cmake_args,
                    [
                        "cmake",
                        "-G",
                        "Ninja",
                        "..",
                        ".",
                        "-DCMAKE_EXPORT_COMPILE_COMMANDS=1",
                        "-DCMAKE_BUILD_TYPE=RelWithDebInfo",
                        f"-DCMAKE_INSTALL_PREFIX={APP_PREFIX}",
                        *config_opts,
                    ],
                    cwd=build_dir,
                )
            )
        commands.append(self._sandboxed(cmake_args, ["ninja"], cwd=build_dir))
        commands.append(self._sandboxed(cmake_args, ["ninja", "install"], cwd=build_dir))
        return commands

    def _meson(
        self, rebuild: bool, build_args: list[str], config_opts: list[str]
    ) -> list[CommandSpec]:
        build_dir = str(self.build_dir)
        meson_args = [*build_args, f"--filesystem={build_dir}"]
        commands: list[CommandSpec] = []
        if not rebuild:
            commands.append(
                self._sandboxed(meson_args, ["meson", "--prefix", APP_PREFIX, build_dir, *config_opts])
            )
        commands.append(self._sandboxed(meson_args, ["ninja", "-C", build_dir]))
        commands.append(self._sandboxed(meson_args, ["ninja", "install", "-C", build_dir]))
        return commands

    def _simple(self, module: Module, build_args: list[str]) -> list[CommandSpec]:
        if not module.build_commands:
            raise ManifestInvalidError(
                f"module {module.name!r}: build-system is simple but no build-commands are declared"
            )
        return [self._sandboxed(build_args, line.split(" ")) for line in module.build_commands]


def plan_build(
    manifest: Manifest,
    rebuild: bool = False,
    *,
    sandbox_binary: str = DEFAULT_SANDBOX_BINARY,
    build_system_dir: str = BUILD_SYSTEM_BUILD_DIR,
    environ: Mapping[str, str] | None = None,
    cpu_count: int | None = None,
) -> list[CommandSpec]:
    """Convenience wrapper around :meth:`BuildCommandPlanner.plan`."""

    planner = BuildCommandPlanner(
        manifest,
        sandbox_binary=sandbox_binary,
        build_system_dir=build_system_dir,
        environ=environ,
        cpu_count=cpu_count,
    )
    return planner.plan(rebuild)


__all__ = ["BuildCommandPlanner", "logical_cpu_count", "plan_build"]

"""
Build pipeline: repo initialization, dependency builds, and the target build.

A fresh project goes through ``build-init``, a download-only dependency pass,
a build-only dependency pass, and finally the planned target commands. Once
the repo directory exists, plain builds are skipped and rebuilds only repeat
the target's compile and install steps.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog

from flatpak_build_helper.config.loader import HelperSettings
from flatpak_build_helper.errors import HostFilesystemError
from flatpak_build_helper.execution.executor import BuildExecutor, require_success, run_process
from flatpak_build_helper.planning.commands import CommandSpec
from flatpak_build_helper.planning.planner import BuildCommandPlanner
from flatpak_build_helper.sandbox.fonts import FontPaths
from flatpak_build_helper.sandbox.launcher import RunLauncher

if TYPE_CHECKING:
    from flatpak_build_helper.execution.executor import CommandOutcome, ProcessRunner
    from flatpak_build_helper.manifest.model import Manifest


class BuildPipeline:
    """Drive a manifest from an empty project to a runnable sandbox build."""

    def __init__(
        self,
        manifest: Manifest,
        settings: HelperSettings | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        runner: ProcessRunner = run_process,
        cpu_count: int | None = None,
        logger: Any | None = None,
    ) -> None:
        self._manifest = manifest
        self._settings = settings if settings is not None else HelperSettings.defaults()
        self._environ: Mapping[str, str] = dict(os.environ) if environ is None else environ
        self._runner = runner
        self._cpu_count = cpu_count
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def manifest(self) -> Manifest:
        return self._manifest

    def planner(self) -> BuildCommandPlanner:
        return BuildCommandPlanner(
            self._manifest,
            sandbox_binary=self._settings.sandbox_binary,
            build_system_dir=self._settings.build_system_dir,
            environ=self._environ,
            cpu_count=self._cpu_count,
            logger=self._logger,
        )

    def launcher(self) -> RunLauncher:
        return RunLauncher(
            self._manifest,
            sandbox_binary=self._settings.sandbox_binary,
            bus_binary=self._settings.bus_binary,
            environ=self._environ,
            env_passthrough_prefix=self._settings.env_passthrough_prefix,
            font_paths=FontPaths.from_environ(
                self._environ, font_dirs_file=self._settings.font_dirs_file
            ),
            runner=self._runner,
        )

    def init_build_command(self) -> CommandSpec:
        manifest = self._manifest
        schema = manifest.schema
        return CommandSpec.host(
            [
                self._settings.sandbox_binary,
                "build-init",
                str(manifest.repo_dir),
                manifest.id,
                schema.sdk,
                schema.runtime,
                schema.runtime_version,
            ]
        )

    def update_dependencies_command(self) -> CommandSpec:
        return self._builder_command(["--download-only"])

    def build_dependencies_command(self) -> CommandSpec:
        return self._builder_command(["--disable-download", "--build-only", "--keep-build-dirs"])

    def init_build(self) -> None:
        try:
            self._manifest.build_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise HostFilesystemError(
                f"unable to create build directory {self._manifest.build_dir}: {exc}"
            ) from exc
        self._run_host(self.init_build_command(), "failed to build-init")

    def update_dependencies(self) -> None:
        self._run_host(self.update_dependencies_command(), "failed to update dependencies")

    def build_dependencies(self) -> None:
        self._run_host(self.build_dependencies_command(), "failed to build dependencies")

    def build_target(self, rebuild: bool = False) -> list[CommandOutcome]:
        commands = self.planner().plan(rebuild)
        executor = BuildExecutor(
            default_cwd=self._manifest.root_dir,
            runner=self._runner,
            logger=self._logger,
        )
        return executor.run(commands)

    def build(self, rebuild: bool = False) -> bool:
        """Bring the repo up to date; returns ``False`` when the build was skipped."""

        repo_exists = self._manifest.is_built()
        if repo_exists and not rebuild:
            self._logger.info("build_skipped", repo_dir=str(self._manifest.repo_dir))
            return False

        if repo_exists:
            self._logger.info("rebuild_target", module_name=self._manifest.target_module.name)
            self.build_target(rebuild=True)
            return True

        self._logger.info("fresh_build", app_id=self._manifest.id)
        self.init_build()
        self.update_dependencies()
        self.build_dependencies()
        self.build_target(rebuild=False)
        return True

    def run(self) -> CommandOutcome:
        self.build()
        return self.launcher().run()

    def _builder_command(self, mode_flags: list[str]) -> CommandSpec:
        manifest = self._manifest
        return CommandSpec.host(
            [
                self._settings.builder_binary,
                "--ccache",
                "--force-clean",
                "--disable-updates",
                *mode_flags,
                f"--state-dir={manifest.state_dir}",
                f"--stop-at={manifest.target_module.name}",
                str(manifest.repo_dir),
                str(manifest.manifest_path),
            ]
        )

    def _run_host(self, command: CommandSpec, summary: str) -> CommandOutcome:
        self._logger.info("host_step_started", tool=command.program, summary=summary)
        self._logger.debug("host_step_command", command=command.render())
        outcome = self._runner(command.argv, cwd=self._manifest.root_dir)
        return require_success(outcome, summary)


__all__ = ["BuildPipeline"]

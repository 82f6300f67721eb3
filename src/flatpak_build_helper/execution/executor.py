"""Sequential, fail-fast execution of planned commands."""

from __future__ import annotations

import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from flatpak_build_helper.errors import BuildFailedError, ExternalCommandFailedError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from flatpak_build_helper.planning.commands import CommandSpec


@dataclass(frozen=True, slots=True)
class CommandOutcome:
    """Normalized result of one external process."""

    argv: tuple[str, ...]
    cwd: Path | None
    returncode: int | None
    stdout: str
    stderr: str
    duration_ms: float
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.returncode == 0

    @property
    def diagnostic(self) -> str:
        """Captured stderr, or the start-up error when the process never ran."""

        if self.stderr.strip():
            return self.stderr
        return self.error or ""


class ProcessRunner(Protocol):
    def __call__(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandOutcome: ...


def run_process(
    argv: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> CommandOutcome:
    """Run ``argv`` to completion, capturing text output. Never raises for tool failures."""

    parsed = tuple(argv)
    if not parsed:
        raise ValueError("command must not be empty")

    started = time.perf_counter()
    try:
        completed = subprocess.run(
            list(parsed),
            cwd=cwd,
            check=False,
            capture_output=True,
            text=True,
            env=None if env is None else dict(env),
        )
    except OSError as exc:
        duration_ms = (time.perf_counter() - started) * 1000.0
        return CommandOutcome(
            argv=parsed,
            cwd=cwd,
            returncode=None,
            stdout="",
            stderr="",
            duration_ms=duration_ms,
            error=f"{type(exc).__name__}: {exc}",
        )

    duration_ms = (time.perf_counter() - started) * 1000.0
    return CommandOutcome(
        argv=parsed,
        cwd=cwd,
        returncode=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
        duration_ms=duration_ms,
    )


def require_success(outcome: CommandOutcome, summary: str) -> CommandOutcome:
    """Raise :class:`ExternalCommandFailedError` unless ``outcome`` succeeded."""

    if outcome.succeeded:
        return outcome
    raise ExternalCommandFailedError(
        summary,
        argv=outcome.argv,
        exit_code=outcome.returncode,
        stdout=outcome.stdout,
        stderr=outcome.diagnostic,
    )


class BuildExecutor:
    """Run commands one at a time; the first failure stops the sequence.

    Commands without their own ``cwd`` run in ``default_cwd`` (normally the
    project root). Earlier successful steps are not rolled back.
    """

    def __init__(
        self,
        *,
        default_cwd: Path | str | None = None,
        runner: ProcessRunner = run_process,
        logger: Any | None = None,
    ) -> None:
        self._default_cwd = None if default_cwd is None else Path(default_cwd)
        self._runner = runner
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def run(self, commands: Sequence[CommandSpec]) -> list[CommandOutcome]:
        outcomes: list[CommandOutcome] = []
        total = len(commands)
        for index, command in enumerate(commands):
            cwd = command.cwd if command.cwd is not None else self._default_cwd
            self._logger.info("build_step_started", step=index + 1, total=total, tool=command.tool_argv[0])
            self._logger.debug("build_step_command", step=index + 1, command=command.render())

            outcome = self._runner(command.argv, cwd=cwd)
            outcomes.append(outcome)
            if not outcome.succeeded:
                self._logger.info(
                    "build_step_failed",
                    step=index + 1,
                    total=total,
                    returncode=outcome.returncode,
                )
                raise BuildFailedError(
                    step_index=index,
                    argv=command.argv,
                    exit_code=outcome.returncode,
                    stdout=outcome.stdout,
                    stderr=outcome.diagnostic,
                )
            self._logger.debug(
                "build_step_finished", step=index + 1, duration_ms=round(outcome.duration_ms, 1)
            )

        self._logger.info("build_succeeded", steps=total)
        return outcomes


__all__ = [
    "BuildExecutor",
    "CommandOutcome",
    "ProcessRunner",
    "require_success",
    "run_process",
]

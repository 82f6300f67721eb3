"""Portable command descriptors produced by the planner and consumed by the executor."""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

JSONValue = str | int | bool | None | list["JSONValue"] | dict[str, "JSONValue"]


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """One external command.

    ``argv`` is the full process invocation. ``tool_argv`` is the command the
    build actually runs: the trailing part of a ``flatpak build`` invocation,
    or ``argv`` itself for host commands.
    """

    argv: tuple[str, ...]
    tool_argv: tuple[str, ...]
    cwd: Path | None = None
    sandboxed: bool = True

    def __post_init__(self) -> None:
        if not self.argv:
            raise ValueError("CommandSpec.argv must not be empty")
        if not self.tool_argv:
            raise ValueError("CommandSpec.tool_argv must not be empty")

    @classmethod
    def sandbox_build(
        cls,
        *,
        sandbox_binary: str,
        build_args: Sequence[str],
        repo_dir: Path,
        tool_argv: Sequence[str],
        cwd: Path | None = None,
    ) -> CommandSpec:
        tool = tuple(tool_argv)
        return cls(
            argv=(sandbox_binary, "build", *build_args, str(repo_dir), *tool),
            tool_argv=tool,
            cwd=cwd,
            sandboxed=True,
        )

    @classmethod
    def host(cls, argv: Sequence[str], *, cwd: Path | None = None) -> CommandSpec:
        parsed = tuple(argv)
        return cls(argv=parsed, tool_argv=parsed, cwd=cwd, sandboxed=False)

    @property
    def program(self) -> str:
        return self.argv[0]

    def render(self) -> str:
        rendered = shlex.join(self.argv)
        if self.cwd is None:
            return rendered
        return f"(cd {shlex.quote(str(self.cwd))} && {rendered})"

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "argv": list(self.argv),
            "tool_argv": list(self.tool_argv),
            "cwd": None if self.cwd is None else str(self.cwd),
            "sandboxed": self.sandboxed,
        }


__all__ = ["CommandSpec"]

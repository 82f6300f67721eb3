"""Error hierarchy shared by the planner, the executor, and the launcher."""

from __future__ import annotations

from collections.abc import Sequence


class HelperError(Exception):
    """Base error for flatpak-build-helper failures."""


class ManifestInvalidError(HelperError, ValueError):
    """Raised when a manifest is missing required data or has malformed fields."""


class BuildSystemUnsupportedError(HelperError):
    """Raised when the target module declares a build system with no plan."""


class HostFilesystemError(HelperError):
    """Raised when a manifest or a host cache file cannot be read or written."""


class AddressParseError(HelperError):
    """Raised when the accessibility bus reply does not carry a unix socket path."""

    def __init__(self, reply: str) -> None:
        self.reply = reply
        super().__init__(f"failed to parse a11y bus address: {reply.strip()!r}")


class ExternalCommandFailedError(HelperError):
    """Raised when an invoked tool exits unsuccessfully or cannot be started."""

    def __init__(
        self,
        summary: str,
        *,
        argv: Sequence[str],
        exit_code: int | None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.summary = summary
        self.argv = tuple(argv)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(self._render())

    def _render(self) -> str:
        status = "could not be started" if self.exit_code is None else f"exit {self.exit_code}"
        detail = "\n".join(
            stream.strip() for stream in (self.stdout, self.stderr) if stream.strip()
        )
        if not detail:
            return f"{self.summary} ({status})"
        return f"{self.summary} ({status}):\n{detail}"


class BuildFailedError(ExternalCommandFailedError):
    """Raised by the executor when a planned build step fails."""

    def __init__(
        self,
        *,
        step_index: int,
        argv: Sequence[str],
        exit_code: int | None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.step_index = step_index
        super().__init__(
            f"failed to build: step {step_index + 1} `{' '.join(argv)}`",
            argv=argv,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
        )


class RunFailedError(ExternalCommandFailedError):
    """Raised when the sandboxed application exits unsuccessfully."""


__all__ = [
    "AddressParseError",
    "BuildFailedError",
    "BuildSystemUnsupportedError",
    "ExternalCommandFailedError",
    "HelperError",
    "HostFilesystemError",
    "ManifestInvalidError",
    "RunFailedError",
]

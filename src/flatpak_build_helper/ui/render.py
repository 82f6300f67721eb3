"""Output rendering for the fbh CLI.

Purpose
- Provide a thin rendering layer for CLI output.
- Keep stdout for command results; diagnostics go through logging on stderr.

Functional requirements
- Plain-text rendering must always work without external dependencies.
- Output is deterministic so it can be asserted in tests.
"""

from __future__ import annotations

import sys
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class CLIRenderer:
    """Thin CLI output renderer writing plain text to a stream (stdout by default)."""

    def __init__(self, *, stream: IO[str] | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> IO[str]:
        return self._stream if self._stream is not None else sys.stdout

    def kv(self, key: str, value: object) -> None:
        """Print a key: value pair."""

        print(f"{key}: {value}", file=self.stream)

    def text(self, line: str) -> None:
        print(line, file=self.stream)

    def raw(self, payload: str) -> None:
        """Write ``payload`` unchanged (captured tool output)."""

        self.stream.write(payload)
        self.stream.flush()

    def section(self, title: str) -> None:
        """Print a section header with a preceding blank line."""

        print(f"\n{title}", file=self.stream)

    def numbered(self, entries: Sequence[str]) -> None:
        width = len(str(len(entries)))
        for index, entry in enumerate(entries, start=1):
            print(f"  {str(index).rjust(width)}. {entry}", file=self.stream)

    def ok(self, label: str) -> None:
        print(f"  OK  {label}", file=self.stream)

    def fail(self, label: str) -> None:
        print(f"  FAIL  {label}", file=self.stream)


def create_renderer(*, stream: IO[str] | None = None) -> CLIRenderer:
    return CLIRenderer(stream=stream)


__all__ = ["CLIRenderer", "create_renderer"]

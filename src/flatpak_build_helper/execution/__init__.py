"""Process execution.

The end-to-end pipeline lives in :mod:`flatpak_build_helper.execution.pipeline`
and is imported from there; it depends on the sandbox package, which in turn
depends on this one.
"""

from flatpak_build_helper.execution.executor import (
    BuildExecutor,
    CommandOutcome,
    ProcessRunner,
    require_success,
    run_process,
)

__all__ = [
    "BuildExecutor",
    "CommandOutcome",
    "ProcessRunner",
    "require_success",
    "run_process",
]

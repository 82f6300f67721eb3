"""Manifest-to-command planning."""

from flatpak_build_helper.planning.commands import CommandSpec
from flatpak_build_helper.planning.planner import BuildCommandPlanner, logical_cpu_count, plan_build

__all__ = ["BuildCommandPlanner", "CommandSpec", "logical_cpu_count", "plan_build"]

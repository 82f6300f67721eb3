"""
flatpak-build-helper — package root.

Turns a flatpak application manifest into the ``flatpak build`` command
sequence for its target module, and assembles the ``flatpak build`` invocation
that runs the built application with host fonts and the accessibility bus
exposed.

Importing the package has no side effects (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]

"""Hardened container image generator for Nginx + PHP runtimes."""

from .version import __version__, get_version  # noqa: F401

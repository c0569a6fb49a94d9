"""Command contract shared by every CLI subcommand.

A command turns parsed CLI options into a typed args object, validates it and
runs asynchronously. Invalid arguments raise ``DockgenError`` of kind
ARGUMENT so they flow through the error handler like any other failure.
"""
from __future__ import annotations

import argparse
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, is_dataclass
from typing import Any, ClassVar, Generic, TypeVar

from ..domain import (
    architecture_help,
    parse_architecture,
    parse_php_version,
    parse_platform,
    php_version_help,
    platform_help,
)
from ..errors.records import DockgenError
from ..errors.taxonomy import ErrorKind

logger = logging.getLogger(__name__)

PROG = "dockgen"
DEFAULT_OUTPUT_PATH = "./output"
DEFAULT_ARCHITECTURE = "all"
DEFAULT_TAG = "latest"
DEFAULT_REGISTRY = "docker.io"

A = TypeVar("A")


def require_text(value: str | None, message: str, argument: str) -> str:
    """Return ``value`` stripped, raising an ARGUMENT error when blank."""
    if value is None or not str(value).strip():
        raise DockgenError(ErrorKind.ARGUMENT, message, details={"argument": argument})
    return str(value).strip()


def validate_target(args: Any) -> None:
    """Re-check the enum fields of an args object; raises ARGUMENT errors."""
    parse_php_version(args.php_version)
    parse_platform(args.platform)
    if hasattr(args, "architecture"):
        parse_architecture(args.architecture)


def describe(args: Any) -> dict[str, Any]:
    """Loggable view of an args object with enums flattened and secrets masked."""
    raw = asdict(args) if is_dataclass(args) else dict(vars(args))
    out: dict[str, Any] = {}
    for key, value in raw.items():
        if key == "password" and value:
            value = "***"
        out[key] = getattr(value, "value", value)
    return out


class Command(ABC, Generic[A]):
    """Base class for dockgen subcommands."""

    name: ClassVar[str]
    summary: ClassVar[str]
    usage: ClassVar[str]
    examples: ClassVar[tuple[str, ...]] = ()

    def __init__(self, output_dir: str = DEFAULT_OUTPUT_PATH, registry: str = DEFAULT_REGISTRY) -> None:
        self.output_dir = output_dir
        self.registry = registry

    def option(self, ns: argparse.Namespace, name: str, fallback: Any = None) -> Any:
        """Value of option ``name``, or ``fallback`` when it was not given."""
        value = getattr(ns, name, None)
        return fallback if value is None else value

    @classmethod
    @abstractmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        """Register this command's options on its subparser."""

    @abstractmethod
    def parse_args(self, ns: argparse.Namespace) -> A:
        """Build the typed args object from parsed options."""

    @abstractmethod
    def validate_args(self, args: A) -> None:
        ...

    @abstractmethod
    async def execute(self, args: A) -> Any:
        ...

    def options_help(self) -> list[tuple[str, str]]:
        return []

    def help(self) -> str:
        lines = [self.summary, "", "Usage:", f"  {PROG} {self.name} {self.usage}"]
        options = self.options_help()
        if options:
            lines += ["", "Options:"]
            width = max(len(flag) for flag, _ in options)
            lines += [f"  {flag.ljust(width)}  {text}" for flag, text in options]
        if self.examples:
            lines += ["", "Examples:"]
            lines += [f"  {PROG} {self.name} {example}" for example in self.examples]
        return "\n".join(lines)

    def log_not_implemented(self, what: str, args: A) -> None:
        logger.info("Starting %s", what, extra={"command": self.name, "command_args": describe(args)})
        logger.warning("%s not yet implemented", what[:1].upper() + what[1:], extra={"command": self.name})


# ------------------------------
# Shared option helpers
# ------------------------------

def add_target_options(parser: argparse.ArgumentParser, *, arch: bool = True) -> None:
    parser.add_argument("--php", required=True, metavar="VERSION", help=php_version_help())
    parser.add_argument("--platform", required=True, metavar="PLATFORM", help=platform_help())
    if arch:
        parser.add_argument(
            "--arch", default=DEFAULT_ARCHITECTURE, metavar="ARCH",
            help=f"{architecture_help()} [default: {DEFAULT_ARCHITECTURE}]",
        )


def add_output_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output", default=None, metavar="PATH",
        help=f"Output directory path [default: {DEFAULT_OUTPUT_PATH}]",
    )


def add_registry_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tag", required=True, help="Image tag")
    parser.add_argument("--username", default=None, help="Docker Hub username")
    parser.add_argument("--password", default=None, help="Docker Hub password/token")
    parser.add_argument(
        "--registry", default=None,
        help=f"Docker registry URL [default: {DEFAULT_REGISTRY}]",
    )


TARGET_HELP = [
    ("--php <version>", php_version_help()),
    ("--platform <platform>", platform_help()),
]
ARCH_HELP = ("--arch <architecture>", f"{architecture_help()} [default: {DEFAULT_ARCHITECTURE}]")
OUTPUT_HELP = ("--output <path>", f"Output directory path [default: {DEFAULT_OUTPUT_PATH}]")
REGISTRY_HELP = [
    ("--tag <tag>", "Image tag"),
    ("--username <username>", "Docker Hub username"),
    ("--password <password>", "Docker Hub password/token"),
    ("--registry <registry>", f"Docker registry URL [default: {DEFAULT_REGISTRY}]"),
]


__all__ = [
    "Command",
    "DEFAULT_ARCHITECTURE",
    "DEFAULT_OUTPUT_PATH",
    "DEFAULT_REGISTRY",
    "DEFAULT_TAG",
    "add_output_option",
    "add_registry_options",
    "add_target_options",
    "describe",
    "require_text",
    "validate_target",
]

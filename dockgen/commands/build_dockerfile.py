"""build:dockerfile - generate a Dockerfile for one target."""
from __future__ import annotations

import argparse
from dataclasses import dataclass

from ..domain import Architecture, PhpVersion, Platform, parse_architecture, parse_php_version, parse_platform
from .base import (
    ARCH_HELP,
    OUTPUT_HELP,
    TARGET_HELP,
    Command,
    add_output_option,
    add_target_options,
    require_text,
    validate_target,
)


@dataclass(frozen=True)
class BuildDockerfileArgs:
    php_version: PhpVersion
    platform: Platform
    architecture: Architecture
    output_path: str


class BuildDockerfileCommand(Command[BuildDockerfileArgs]):
    name = "build:dockerfile"
    summary = "Generate Dockerfile for specified configuration"
    usage = "--php <version> --platform <platform> [options]"
    examples = (
        "--php 8.3 --platform alpine",
        "--php 8.2 --platform ubuntu --arch arm64 --output ./dist",
    )

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        add_target_options(parser)
        add_output_option(parser)

    def parse_args(self, ns: argparse.Namespace) -> BuildDockerfileArgs:
        return BuildDockerfileArgs(
            php_version=parse_php_version(ns.php),
            platform=parse_platform(ns.platform),
            architecture=parse_architecture(ns.arch),
            output_path=self.option(ns, "output", self.output_dir),
        )

    def validate_args(self, args: BuildDockerfileArgs) -> None:
        validate_target(args)
        require_text(args.output_path, "Output path is required", "output")

    def options_help(self) -> list[tuple[str, str]]:
        return [*TARGET_HELP, ARCH_HELP, OUTPUT_HELP]

    async def execute(self, args: BuildDockerfileArgs) -> None:
        self.validate_args(args)
        self.log_not_implemented("Dockerfile generation", args)

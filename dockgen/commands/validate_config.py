"""validate:config - check the build configuration for one target."""
from __future__ import annotations

import argparse
from dataclasses import dataclass

from ..domain import PhpVersion, Platform, parse_php_version, parse_platform
from .base import OUTPUT_HELP, TARGET_HELP, Command, add_output_option, add_target_options, require_text, validate_target


@dataclass(frozen=True)
class ValidateConfigArgs:
    php_version: PhpVersion
    platform: Platform
    output_path: str


class ValidateConfigCommand(Command[ValidateConfigArgs]):
    name = "validate:config"
    summary = "Validate configuration for specified setup"
    usage = "--php <version> --platform <platform> [options]"
    examples = ("--php 8.3 --platform alpine",)

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        add_target_options(parser, arch=False)
        add_output_option(parser)

    def parse_args(self, ns: argparse.Namespace) -> ValidateConfigArgs:
        return ValidateConfigArgs(
            php_version=parse_php_version(ns.php),
            platform=parse_platform(ns.platform),
            output_path=self.option(ns, "output", self.output_dir),
        )

    def validate_args(self, args: ValidateConfigArgs) -> None:
        validate_target(args)
        require_text(args.output_path, "Output path is required", "output")

    def options_help(self) -> list[tuple[str, str]]:
        return [*TARGET_HELP, OUTPUT_HELP]

    async def execute(self, args: ValidateConfigArgs) -> None:
        self.validate_args(args)
        self.log_not_implemented("configuration validation", args)

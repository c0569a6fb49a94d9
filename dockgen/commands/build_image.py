"""build:image - build (and optionally push) a container image."""
from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from ..domain import Architecture, PhpVersion, Platform, parse_architecture, parse_php_version, parse_platform
from .base import (
    ARCH_HELP,
    DEFAULT_TAG,
    OUTPUT_HELP,
    TARGET_HELP,
    Command,
    add_output_option,
    add_target_options,
    require_text,
    validate_target,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildImageArgs:
    php_version: PhpVersion
    platform: Platform
    architecture: Architecture
    tag: str
    output_path: str
    push: bool = False


def placeholder_image_id(args: BuildImageArgs, now: datetime | None = None) -> str:
    epoch_ms = int((now or datetime.now(UTC)).timestamp() * 1000)
    return (
        f"placeholder-image-{args.php_version.value}-{args.platform.value}-"
        f"{args.architecture.value}-{epoch_ms}"
    )


class BuildImageCommand(Command[BuildImageArgs]):
    name = "build:image"
    summary = "Build Docker image for specified configuration"
    usage = "--php <version> --platform <platform> [options]"
    examples = (
        "--php 8.3 --platform alpine",
        "--php 8.2 --platform ubuntu --arch arm64 --tag v1.0.0",
        "--php 8.4 --platform alpine --push",
    )

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        add_target_options(parser)
        parser.add_argument("--tag", default=DEFAULT_TAG, help=f"Image tag [default: {DEFAULT_TAG}]")
        add_output_option(parser)
        parser.add_argument("--push", action="store_true", help="Push image to registry after build")

    def parse_args(self, ns: argparse.Namespace) -> BuildImageArgs:
        return BuildImageArgs(
            php_version=parse_php_version(ns.php),
            platform=parse_platform(ns.platform),
            architecture=parse_architecture(ns.arch),
            tag=ns.tag,
            output_path=self.option(ns, "output", self.output_dir),
            push=bool(ns.push),
        )

    def validate_args(self, args: BuildImageArgs) -> None:
        validate_target(args)
        require_text(args.tag, "Image tag is required", "tag")
        require_text(args.output_path, "Output path is required", "output")

    def options_help(self) -> list[tuple[str, str]]:
        return [
            *TARGET_HELP,
            ARCH_HELP,
            ("--tag <tag>", f"Image tag [default: {DEFAULT_TAG}]"),
            OUTPUT_HELP,
            ("--push", "Push image to registry after build [default: false]"),
        ]

    async def execute(self, args: BuildImageArgs) -> str:
        """Return the id of the (placeholder) image."""
        self.validate_args(args)
        self.log_not_implemented("Docker image build", args)
        image_id = placeholder_image_id(args)
        logger.info("Docker image built: %s (tag %s)", image_id, args.tag)
        if args.push:
            logger.info("Pushing Docker image %s with tag %s", image_id, args.tag)
            logger.warning("Docker push not yet implemented")
        return image_id

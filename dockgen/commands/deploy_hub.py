"""deploy:hub - publish an image to Docker Hub."""
from __future__ import annotations

import argparse
from dataclasses import dataclass, field

from ..domain import PhpVersion, Platform, parse_php_version, parse_platform
from .base import REGISTRY_HELP, TARGET_HELP, Command, add_registry_options, add_target_options, require_text, validate_target


@dataclass(frozen=True)
class DeployHubArgs:
    php_version: PhpVersion
    platform: Platform
    tag: str
    registry: str
    username: str | None = None
    password: str | None = field(default=None, repr=False)


class DeployHubCommand(Command[DeployHubArgs]):
    name = "deploy:hub"
    summary = "Deploy image to Docker Hub"
    usage = "--php <version> --platform <platform> --tag <tag> [options]"
    examples = (
        "--php 8.3 --platform alpine --tag latest",
        "--php 8.2 --platform ubuntu --tag v1.0.0 --username myuser",
    )

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        add_target_options(parser, arch=False)
        add_registry_options(parser)

    def parse_args(self, ns: argparse.Namespace) -> DeployHubArgs:
        return DeployHubArgs(
            php_version=parse_php_version(ns.php),
            platform=parse_platform(ns.platform),
            tag=ns.tag,
            registry=self.option(ns, "registry", self.registry),
            username=ns.username,
            password=ns.password,
        )

    def validate_args(self, args: DeployHubArgs) -> None:
        validate_target(args)
        require_text(args.tag, "Image tag is required", "tag")
        require_text(args.registry, "Registry URL is required", "registry")

    def options_help(self) -> list[tuple[str, str]]:
        return [*TARGET_HELP, *REGISTRY_HELP]

    async def execute(self, args: DeployHubArgs) -> None:
        self.validate_args(args)
        self.log_not_implemented("Docker Hub deployment", args)

"""deploy:manifest - publish a multi-architecture manifest."""
from __future__ import annotations

import argparse
from dataclasses import dataclass, field

from ..domain import Architecture, PhpVersion, Platform, parse_php_version, parse_platform
from .base import REGISTRY_HELP, TARGET_HELP, Command, add_registry_options, add_target_options, require_text, validate_target


@dataclass(frozen=True)
class DeployManifestArgs:
    php_version: PhpVersion
    platform: Platform
    tag: str
    registry: str
    username: str | None = None
    password: str | None = field(default=None, repr=False)

    @property
    def architectures(self) -> list[Architecture]:
        return Architecture.ALL.expand()


class DeployManifestCommand(Command[DeployManifestArgs]):
    name = "deploy:manifest"
    summary = "Create and deploy multi-architecture manifest"
    usage = "--php <version> --platform <platform> --tag <tag> [options]"
    examples = (
        "--php 8.3 --platform alpine --tag latest",
        "--php 8.2 --platform ubuntu --tag v1.0.0 --registry ghcr.io",
    )

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        add_target_options(parser, arch=False)
        add_registry_options(parser)

    def parse_args(self, ns: argparse.Namespace) -> DeployManifestArgs:
        return DeployManifestArgs(
            php_version=parse_php_version(ns.php),
            platform=parse_platform(ns.platform),
            tag=ns.tag,
            registry=self.option(ns, "registry", self.registry),
            username=ns.username,
            password=ns.password,
        )

    def validate_args(self, args: DeployManifestArgs) -> None:
        validate_target(args)
        require_text(args.tag, "Image tag is required", "tag")
        require_text(args.registry, "Registry URL is required", "registry")

    def options_help(self) -> list[tuple[str, str]]:
        return [*TARGET_HELP, *REGISTRY_HELP]

    async def execute(self, args: DeployManifestArgs) -> None:
        self.validate_args(args)
        self.log_not_implemented("manifest deployment", args)

"""dockgen subcommands, keyed by their CLI name."""
from __future__ import annotations

from .base import Command
from .build_dockerfile import BuildDockerfileArgs, BuildDockerfileCommand
from .build_image import BuildImageArgs, BuildImageCommand
from .deploy_hub import DeployHubArgs, DeployHubCommand
from .deploy_manifest import DeployManifestArgs, DeployManifestCommand
from .local_test import LocalTestArgs, LocalTestCommand
from .validate_config import ValidateConfigArgs, ValidateConfigCommand

COMMANDS: dict[str, type[Command]] = {
    cls.name: cls
    for cls in (
        BuildDockerfileCommand,
        BuildImageCommand,
        DeployHubCommand,
        DeployManifestCommand,
        LocalTestCommand,
        ValidateConfigCommand,
    )
}

__all__ = [
    "COMMANDS",
    "BuildDockerfileArgs",
    "BuildDockerfileCommand",
    "BuildImageArgs",
    "BuildImageCommand",
    "Command",
    "DeployHubArgs",
    "DeployHubCommand",
    "DeployManifestArgs",
    "DeployManifestCommand",
    "LocalTestArgs",
    "LocalTestCommand",
    "ValidateConfigArgs",
    "ValidateConfigCommand",
]

"""Build targets: PHP versions, base platforms and CPU architectures."""
from __future__ import annotations

from enum import Enum
from typing import TypeVar

from .errors.records import DockgenError
from .errors.taxonomy import ErrorKind


class PhpVersion(Enum):
    PHP_7_4 = "7.4"
    PHP_8_0 = "8.0"
    PHP_8_1 = "8.1"
    PHP_8_2 = "8.2"
    PHP_8_3 = "8.3"
    PHP_8_4 = "8.4"


class Platform(Enum):
    ALPINE = "alpine"
    UBUNTU = "ubuntu"


class Architecture(Enum):
    ARM64 = "arm64"
    AMD64 = "amd64"
    ALL = "all"

    def expand(self) -> list[Architecture]:
        """Concrete architectures a build for this value targets."""
        if self is Architecture.ALL:
            return [Architecture.AMD64, Architecture.ARM64]
        return [self]


E = TypeVar("E", bound=Enum)


def supported_values(enum_cls: type[Enum]) -> list[str]:
    return [m.value for m in enum_cls]


def _parse(enum_cls: type[E], value: str | E, label: str, plural: str, argument: str) -> E:
    if isinstance(value, enum_cls):
        return value
    token = str(value).strip().lower() if value is not None else ""
    for member in enum_cls:
        if member.value == token:
            return member
    supported = supported_values(enum_cls)
    raise DockgenError(
        ErrorKind.ARGUMENT,
        f"Invalid {label}: {value}. Supported {plural}: {', '.join(supported)}",
        details={"argument": argument, "value": value, "supported": supported},
        suggestions=[f"Use one of: {', '.join(supported)}"],
    )


def parse_php_version(value: str | PhpVersion) -> PhpVersion:
    return _parse(PhpVersion, value, "PHP version", "versions", "php")


def parse_platform(value: str | Platform) -> Platform:
    return _parse(Platform, value, "platform", "platforms", "platform")


def parse_architecture(value: str | Architecture) -> Architecture:
    return _parse(Architecture, value, "architecture", "architectures", "arch")


def php_version_help() -> str:
    return f"PHP version ({', '.join(supported_values(PhpVersion))})"


def platform_help() -> str:
    return f"Base platform ({', '.join(supported_values(Platform))})"


def architecture_help() -> str:
    return f"Target architecture ({', '.join(supported_values(Architecture))})"


__all__ = [
    "Architecture",
    "PhpVersion",
    "Platform",
    "architecture_help",
    "parse_architecture",
    "parse_php_version",
    "parse_platform",
    "php_version_help",
    "platform_help",
    "supported_values",
]

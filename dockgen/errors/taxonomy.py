"""Failure taxonomy for dockerfile-generator.

Kinds, severities and recovery strategies shared by the record, the
classification engine and the recovery executor.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Categorization of failures for classification and recovery."""

    # Remote / infrastructure
    NETWORK = "network"
    REGISTRY = "registry"
    DOCKER = "docker"

    # Inputs
    CONFIG_LOAD = "config_load"
    VALIDATION = "validation"
    SECURITY = "security"
    TEMPLATE = "template"
    ARGUMENT = "argument"

    # Outputs / pipeline
    FILE_WRITE = "file_write"
    BUILD = "build"
    MANIFEST = "manifest"
    TEST = "test"

    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels for prioritization."""

    LOW = "low"          # Warnings, deprecations
    MEDIUM = "medium"    # Operation failed, process can continue
    HIGH = "high"        # Needs attention before retrying
    CRITICAL = "critical" # Process stability threatened

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    def escalate(self) -> ErrorSeverity:
        """Return the next level up, capped at CRITICAL."""
        return _SEVERITY_ORDER[min(self.rank + 1, len(_SEVERITY_ORDER) - 1)]

    def at_least(self, floor: ErrorSeverity) -> ErrorSeverity:
        return self if self.rank >= floor.rank else floor


_SEVERITY_ORDER = [
    ErrorSeverity.LOW,
    ErrorSeverity.MEDIUM,
    ErrorSeverity.HIGH,
    ErrorSeverity.CRITICAL,
]


class RecoveryStrategy(Enum):
    NONE = "none"
    RETRY = "retry"                                     # fixed delay
    RETRY_WITH_BACKOFF = "retry_with_backoff"           # delay * 2^attempts
    RETRY_WITH_EXPONENTIAL_BACKOFF = "retry_with_exponential_backoff"  # plus jitter


# Kinds that describe a defect in the caller's inputs; waiting never fixes them.
TERMINAL_KINDS = frozenset({
    ErrorKind.CONFIG_LOAD,
    ErrorKind.VALIDATION,
    ErrorKind.SECURITY,
    ErrorKind.TEMPLATE,
    ErrorKind.ARGUMENT,
    ErrorKind.TEST,
})


__all__ = [
    "ErrorKind",
    "ErrorSeverity",
    "RecoveryStrategy",
    "TERMINAL_KINDS",
]

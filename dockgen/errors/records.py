"""Normalized failure records.

One immutable record type tagged by ``kind``; ``DockgenError`` is the
exception that carries a record across the codebase. ``normalize_failure``
turns anything a caller raised into a ``DockgenError``.
"""
from __future__ import annotations

import errno
import socket
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from .taxonomy import ErrorKind, ErrorSeverity


def _freeze(details: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(details or {}))


@dataclass(frozen=True, slots=True)
class ErrorRecord:
    """Normalized failure.

    Fields:
      kind        : ErrorKind discriminant
      severity    : severity as raised (classification may escalate it)
      message     : human readable message
      details     : read-only structured payload (status_code, code, path, ...)
      suggestions : ordered remediation hints
      code        : optional short machine code
      timestamp   : aware UTC creation time
    """
    kind: ErrorKind
    message: str
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    details: Mapping[str, Any] = field(default_factory=dict)
    suggestions: tuple[str, ...] = ()
    code: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", _freeze(self.details))
        object.__setattr__(self, "suggestions", tuple(self.suggestions or ()))
        # naive timestamps are taken as UTC
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "details": {k: to_jsonable(v) for k, v in self.details.items()},
            "suggestions": list(self.suggestions),
            "code": self.code,
            "timestamp": self.timestamp.isoformat(),
        }


def to_jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, Sequence):
        return [to_jsonable(v) for v in value]
    return str(value)


def lookup_detail(details: Mapping[str, Any], *keys: str) -> Any:
    """First non-empty value for ``keys`` in ``details``, then in ``details['context']``."""
    context = details.get("context")
    scopes = [details]
    if isinstance(context, Mapping):
        scopes.append(context)
    for scope in scopes:
        for key in keys:
            value = scope.get(key)
            if value not in (None, ""):
                return value
    return None


def identity_key(record: ErrorRecord) -> str:
    """Key used for retry bookkeeping (not deduplication)."""
    epoch_ms = int(record.timestamp.timestamp() * 1000)
    return f"{record.kind.value}:{record.message}:{epoch_ms}"


class DockgenError(Exception):
    """Exception carrying an ``ErrorRecord``.

    Raise it with a kind to mark a failure as pre-classified::

        raise DockgenError(ErrorKind.REGISTRY, "push rejected",
                           details={"status_code": 429, "registry": "docker.io"})
    """

    record: ErrorRecord

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        details: Mapping[str, Any] | None = None,
        suggestions: Sequence[str] | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.record = ErrorRecord(
            kind=kind,
            message=message,
            severity=severity,
            details=details or {},
            suggestions=tuple(suggestions or ()),
            code=code,
        )

    @classmethod
    def from_record(cls, record: ErrorRecord) -> DockgenError:
        err = cls.__new__(cls)
        Exception.__init__(err, record.message)
        err.record = record
        return err

    @property
    def kind(self) -> ErrorKind:
        return self.record.kind

    @property
    def severity(self) -> ErrorSeverity:
        return self.record.severity

    @property
    def message(self) -> str:
        return self.record.message

    @property
    def details(self) -> Mapping[str, Any]:
        return self.record.details

    @property
    def suggestions(self) -> tuple[str, ...]:
        return self.record.suggestions

    @property
    def code(self) -> str | None:
        return self.record.code

    @property
    def timestamp(self) -> datetime:
        return self.record.timestamp

    def to_dict(self) -> dict[str, Any]:
        payload = {"name": type(self).__name__}
        payload.update(self.record.to_dict())
        return payload

    def user_message(self) -> str:
        """Message followed by numbered suggestions."""
        text = self.message
        if self.suggestions:
            text += "\n\nSuggestions:\n"
            text += "".join(f"{i}. {s}\n" for i, s in enumerate(self.suggestions, 1))
        return text


def _system_code(exc: OSError) -> str | None:
    if isinstance(exc, socket.gaierror):
        return "ENOTFOUND"
    if exc.errno is None:
        return None
    return errno.errorcode.get(exc.errno)


def normalize_failure(failure: Any, context: Mapping[str, Any] | None = None) -> DockgenError:
    """Wrap any raised value into a ``DockgenError``.

    Pre-classified failures (``DockgenError`` or a bare ``ErrorRecord``) pass
    through unchanged; everything else becomes an UNKNOWN/MEDIUM record with
    ``details = {original_error, context}``.
    """
    if isinstance(failure, DockgenError):
        return failure
    if isinstance(failure, ErrorRecord):
        return DockgenError.from_record(failure)

    details: dict[str, Any] = {
        "original_error": failure,
        "context": dict(context or {}),
    }
    if isinstance(failure, BaseException):
        message = str(failure) or type(failure).__name__
        if isinstance(failure, OSError):
            code = _system_code(failure)
            if code:
                details["code"] = code
            if failure.filename:
                details["path"] = str(failure.filename)
    else:
        message = str(failure)

    wrapped = DockgenError(ErrorKind.UNKNOWN, message, ErrorSeverity.MEDIUM, details=details)
    if isinstance(failure, BaseException):
        wrapped.__cause__ = failure
    return wrapped


__all__ = [
    "ErrorRecord",
    "DockgenError",
    "identity_key",
    "lookup_detail",
    "normalize_failure",
]

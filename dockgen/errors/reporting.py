"""Diagnostic rendering and sinks.

``ErrorMessageService`` turns a record into user-facing text (base message,
context line, required action, suggestions). ``render_report`` builds the
diagnostic the handler emits; sinks deliver it to logging, a rich console or
memory.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .classification import ClassificationDecision
from .records import ErrorRecord, lookup_detail, to_jsonable
from .taxonomy import ErrorKind, ErrorSeverity

logger = logging.getLogger(__name__)


BASE_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.CONFIG_LOAD: "Failed to load configuration file",
    ErrorKind.VALIDATION: "Configuration validation failed",
    ErrorKind.TEMPLATE: "Template processing failed",
    ErrorKind.FILE_WRITE: "File operation failed",
    ErrorKind.SECURITY: "Security validation failed",
    ErrorKind.DOCKER: "Docker operation failed",
    ErrorKind.REGISTRY: "Docker registry operation failed",
    ErrorKind.ARGUMENT: "Invalid command arguments",
    ErrorKind.NETWORK: "Network operation failed",
    ErrorKind.BUILD: "Docker build failed",
    ErrorKind.MANIFEST: "Docker manifest operation failed",
    ErrorKind.TEST: "Test execution failed",
    ErrorKind.UNKNOWN: "An unexpected error occurred",
}

ACTION_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.CONFIG_LOAD: "Please check the configuration file path, format, and permissions",
    ErrorKind.VALIDATION: "Please fix the validation errors in your configuration",
    ErrorKind.TEMPLATE: "Please check your template syntax and data bindings",
    ErrorKind.FILE_WRITE: "Please check file permissions and available disk space",
    ErrorKind.SECURITY: "Please address the security issues before proceeding",
    ErrorKind.DOCKER: "Please ensure Docker is running and accessible",
    ErrorKind.REGISTRY: "Please check your registry credentials and network connection",
    ErrorKind.ARGUMENT: "Please check your command arguments and options",
    ErrorKind.NETWORK: "Please check your network connection and try again",
    ErrorKind.BUILD: "Please check your build configuration and dependencies",
    ErrorKind.MANIFEST: "Please check your manifest configuration and registry access",
    ErrorKind.TEST: "Please review your test configuration and environment",
    ErrorKind.UNKNOWN: "Please report this error with the details below",
}

KIND_SUGGESTIONS: dict[ErrorKind, tuple[str, ...]] = {
    ErrorKind.CONFIG_LOAD: (
        "Verify the configuration file exists and is readable",
        "Check the file format (JSON or YAML)",
        "Ensure the file contains valid configuration syntax",
        "Check file permissions and ownership",
    ),
    ErrorKind.VALIDATION: (
        "Review the validation error details above",
        "Check required fields are present",
        "Verify field types and values match the schema",
        "Run the validate:config command to check your configuration",
    ),
    ErrorKind.TEMPLATE: (
        "Check template syntax and expressions",
        "Verify all required template variables are provided",
        "Ensure template files exist and are readable",
        "Check for circular references in template data",
    ),
    ErrorKind.FILE_WRITE: (
        "Check available disk space",
        "Verify write permissions for the target directory",
        "Ensure the target directory exists",
        "Check for file locks or concurrent access",
    ),
    ErrorKind.SECURITY: (
        "Review security validation results",
        "Update vulnerable dependencies",
        "Check security configuration settings",
        "Run security scans on your configuration",
    ),
    ErrorKind.DOCKER: (
        "Ensure Docker daemon is running",
        "Check Docker service status",
        "Verify Docker CLI is accessible",
        "Check Docker daemon logs for details",
    ),
    ErrorKind.REGISTRY: (
        "Verify registry credentials are correct",
        "Check network connectivity to the registry",
        "Ensure you have push/pull permissions",
        "Check for rate limiting or quota issues",
    ),
    ErrorKind.ARGUMENT: (
        "Check command syntax and required options",
        "Verify argument values are valid",
        "Use --help to see available options",
        "Check for typos in command arguments",
    ),
    ErrorKind.NETWORK: (
        "Check your internet connection",
        "Verify firewall settings",
        "Check proxy configuration if applicable",
        "Try again after a brief delay",
    ),
    ErrorKind.BUILD: (
        "Check Dockerfile syntax and instructions",
        "Verify base images are accessible",
        "Check build context and file paths",
        "Review Docker build logs for details",
    ),
    ErrorKind.MANIFEST: (
        "Verify manifest configuration",
        "Check registry access permissions",
        "Ensure all referenced images exist",
        "Verify multi-architecture support",
    ),
    ErrorKind.TEST: (
        "Check test environment setup",
        "Verify test dependencies are installed",
        "Review test configuration",
        "Check test data and fixtures",
    ),
    ErrorKind.UNKNOWN: (
        "Check the error details and stack trace",
        "Verify your environment and dependencies",
        "Run the command again with --log-level DEBUG for more details",
        "Report this issue with the full error details",
    ),
}

STATUS_SUGGESTIONS: dict[int, str] = {
    401: "Check your authentication credentials",
    403: "Verify you have the required permissions",
    404: "Check if the resource exists and is accessible",
    429: "Wait before retrying due to rate limiting",
}
SERVER_ERROR_SUGGESTION = "This appears to be a server-side issue, try again later"

SYSTEM_CODE_SUGGESTIONS: dict[str, str] = {
    "ENOENT": "Check if the file or directory exists",
    "EACCES": "Check file or directory permissions",
    "ENOSPC": "Free up disk space and try again",
    "ECONNREFUSED": "Check if the service is running and accessible",
}

SEVERITY_SUGGESTIONS: dict[ErrorSeverity, str] = {
    ErrorSeverity.CRITICAL: "This is a critical error that requires immediate attention",
    ErrorSeverity.HIGH: "This is a high-priority error that should be addressed soon",
}

SEVERITY_MARKERS: dict[ErrorSeverity, str] = {
    ErrorSeverity.LOW: "[warn]",
    ErrorSeverity.MEDIUM: "[error]",
    ErrorSeverity.HIGH: "[alert]",
    ErrorSeverity.CRITICAL: "[critical]",
}

# (detail keys, label) in display order
CONTEXT_FIELDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("path",), "File"),
    (("operation",), "Operation"),
    (("status_code", "statusCode"), "HTTP Status"),
    (("code",), "Error Code"),
    (("command",), "Command"),
    (("registry",), "Registry"),
    (("image",), "Image"),
    (("architecture",), "Architecture"),
    (("platform",), "Platform"),
)


class ErrorMessageService:
    """Formats records into user-facing messages."""

    def base_message(self, record: ErrorRecord, kind: ErrorKind | None = None) -> str:
        return BASE_MESSAGES.get(kind or record.kind, "An error occurred")

    def action_message(self, record: ErrorRecord) -> str:
        return ACTION_MESSAGES.get(record.kind, "Please check the error details and try again")

    def context_message(self, record: ErrorRecord) -> str:
        parts = []
        for keys, label in CONTEXT_FIELDS:
            value = lookup_detail(record.details, *keys)
            if value is not None:
                parts.append(f"{label}: {value}")
        return ", ".join(parts)

    def suggestions(
        self,
        record: ErrorRecord,
        severity: ErrorSeverity | None = None,
        kind: ErrorKind | None = None,
    ) -> list[str]:
        """Severity note first, then kind suggestions, then status/system-code hints."""
        out: list[str] = []
        note = SEVERITY_SUGGESTIONS.get(severity or record.severity)
        if note:
            out.append(note)
        out.extend(KIND_SUGGESTIONS.get(kind or record.kind, ()))

        status = lookup_detail(record.details, "status_code", "statusCode")
        if isinstance(status, int) and not isinstance(status, bool):
            if status in STATUS_SUGGESTIONS:
                out.append(STATUS_SUGGESTIONS[status])
            elif status >= 500:
                out.append(SERVER_ERROR_SUGGESTION)

        code = lookup_detail(record.details, "code")
        if isinstance(code, str) and code.upper() in SYSTEM_CODE_SUGGESTIONS:
            out.append(SYSTEM_CODE_SUGGESTIONS[code.upper()])
        return out

    def user_friendly_message(self, record: ErrorRecord) -> str:
        message = self.base_message(record)
        context = self.context_message(record)
        if context:
            message += f"\n\nContext: {context}"
        message += f"\n\nAction Required: {self.action_message(record)}"
        suggestions = self.suggestions(record)
        if suggestions:
            message += "\n\nSuggestions:"
            message += "".join(f"\n  {i}. {s}" for i, s in enumerate(suggestions, 1))
        return message

    def short_message(self, record: ErrorRecord) -> str:
        base = self.base_message(record)
        context = self.context_message(record)
        return f"{base} ({context})" if context else base

    def technical_details(self, record: ErrorRecord) -> str:
        lines = [
            f"Kind: {record.kind.value}",
            f"Severity: {record.severity.value}",
            f"Timestamp: {record.timestamp.isoformat()}",
        ]
        if record.code:
            lines.append(f"Code: {record.code}")
        if record.details:
            payload = json.dumps(to_jsonable(dict(record.details)), indent=2, default=str)
            lines.append(f"Details: {payload}")
        return "\n".join(lines)

    def detailed_message(self, record: ErrorRecord) -> str:
        return f"{self.user_friendly_message(record)}\n\nTechnical Details:\n{self.technical_details(record)}"

    def message_with_severity(self, record: ErrorRecord) -> str:
        return f"{SEVERITY_MARKERS[record.severity]} {self.user_friendly_message(record)}"


@dataclass
class DiagnosticReport:
    record: ErrorRecord
    decision: ClassificationDecision
    title: str
    body: str
    suggestions: list[str] = field(default_factory=list)

    @property
    def severity(self) -> ErrorSeverity:
        return self.decision.severity

    @property
    def text(self) -> str:
        return f"{self.title}\n{self.body}"


def _merge(*groups: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for group in groups:
        for item in group:
            seen.setdefault(item, None)
    return list(seen)


def _format_details(details: Mapping[str, Any]) -> list[str]:
    lines = []
    for key, value in details.items():
        if key == "original_error":
            continue
        value = to_jsonable(value)
        if isinstance(value, (dict, list)):
            if not value:
                continue
            value = json.dumps(value, default=str)
        lines.append(f"  {key}: {value}")
    return lines


def render_report(
    record: ErrorRecord,
    decision: ClassificationDecision,
    service: ErrorMessageService | None = None,
) -> DiagnosticReport:
    """Build the diagnostic emitted for one handled failure."""
    service = service or ErrorMessageService()
    suggestions = _merge(record.suggestions, service.suggestions(record, decision.severity, decision.kind))

    lines = [
        f"Kind: {decision.kind.value}",
        f"Severity: {decision.severity.value}",
        f"Time: {record.timestamp.isoformat()}",
        f"Message: {record.message}",
    ]
    context = service.context_message(record)
    if context:
        lines.append(f"Context: {context}")
    detail_lines = _format_details(record.details)
    if detail_lines:
        lines.append("Details:")
        lines.extend(detail_lines)
    if suggestions:
        lines.append("Suggestions:")
        lines.extend(f"  {i}. {s}" for i, s in enumerate(suggestions, 1))
    lines.append(f"Action: {decision.user_action}")
    if decision.recoverable:
        lines.append(
            f"Recovery: {decision.recovery_strategy.value}, up to {decision.max_retries} "
            f"retries, base delay {decision.retry_delay_ms}ms"
        )

    title = f"{SEVERITY_MARKERS[decision.severity]} {service.base_message(record, decision.kind)}"
    return DiagnosticReport(record, decision, title, "\n".join(lines), suggestions)


# ------------------------------
# Sinks
# ------------------------------

class DiagnosticSink(Protocol):
    def emit(self, report: DiagnosticReport) -> None:  # pragma: no cover - protocol
        ...


_LEVELS = {
    ErrorSeverity.CRITICAL: logging.CRITICAL,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.LOW: logging.INFO,
}

_STYLES = {
    ErrorSeverity.CRITICAL: "bold red",
    ErrorSeverity.HIGH: "red",
    ErrorSeverity.MEDIUM: "yellow",
    ErrorSeverity.LOW: "cyan",
}


class LoggingSink:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("dockgen.diagnostics")

    def emit(self, report: DiagnosticReport) -> None:
        self._logger.log(
            _LEVELS[report.severity],
            report.text,
            extra={"error_kind": report.decision.kind.value, "severity": report.severity.value},
        )


class ConsoleSink:
    """Renders reports as a bordered panel on stderr."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    def emit(self, report: DiagnosticReport) -> None:
        style = _STYLES[report.severity]
        self._console.print(
            Panel(Text(report.body), title=Text(report.title, style=style), border_style=style, expand=False)
        )


class MemorySink:
    def __init__(self) -> None:
        self.reports: list[DiagnosticReport] = []

    def emit(self, report: DiagnosticReport) -> None:
        self.reports.append(report)


class FanoutSink:
    """Delivers each report to every wrapped sink."""

    def __init__(self, sinks: Iterable[DiagnosticSink]) -> None:
        self.sinks = list(sinks)

    def emit(self, report: DiagnosticReport) -> None:
        for sink in self.sinks:
            try:
                sink.emit(report)
            except Exception:
                logger.exception("diagnostic sink %s failed", type(sink).__name__)


__all__ = [
    "ConsoleSink",
    "DiagnosticReport",
    "DiagnosticSink",
    "ErrorMessageService",
    "FanoutSink",
    "LoggingSink",
    "MemorySink",
    "render_report",
]

"""Error taxonomy, classification, recovery and reporting for dockgen."""
from __future__ import annotations

from .classification import ClassificationDecision, ClassificationEngine
from .history import ErrorHistory
from .metrics import ErrorMetrics
from .records import DockgenError, ErrorRecord, identity_key, normalize_failure
from .recovery import RecoveryExecutor, RetryState
from .reporting import (
    ConsoleSink,
    DiagnosticReport,
    ErrorMessageService,
    FanoutSink,
    LoggingSink,
    MemorySink,
    render_report,
)
from .taxonomy import TERMINAL_KINDS, ErrorKind, ErrorSeverity, RecoveryStrategy

__all__ = [
    "ClassificationDecision",
    "ClassificationEngine",
    "ConsoleSink",
    "DiagnosticReport",
    "DockgenError",
    "ErrorHistory",
    "ErrorKind",
    "ErrorMessageService",
    "ErrorMetrics",
    "ErrorRecord",
    "ErrorSeverity",
    "FanoutSink",
    "LoggingSink",
    "MemorySink",
    "RecoveryExecutor",
    "RecoveryStrategy",
    "RetryState",
    "TERMINAL_KINDS",
    "identity_key",
    "normalize_failure",
    "render_report",
]

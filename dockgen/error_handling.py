"""
Central error handler for the dockgen CLI.

``ErrorHandler.handle`` is the single entry point collaborators use: it
normalizes whatever was raised, records it, classifies it against recent
history, emits a diagnostic and either waits out a recovery delay (returning
normally so the caller can retry its own call) or re-raises the normalized
``DockgenError``.
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .errors.classification import ClassificationDecision, ClassificationEngine
from .errors.history import RECENT_WINDOW, ErrorHistory
from .errors.metrics import ErrorMetrics
from .errors.records import ErrorRecord, normalize_failure
from .errors.recovery import RecoveryExecutor, RetryState, Sleep
from .errors.reporting import DiagnosticSink, ErrorMessageService, LoggingSink, render_report

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class ErrorHandlerOptions:
    """Constructor-time options for ``ErrorHandler``."""

    max_retries: int = 3
    retry_delay_ms: int = 1000
    max_error_history: int = 100
    enable_recovery: bool = True
    enable_classification: bool = True
    enable_user_friendly_messages: bool = True

    def __post_init__(self) -> None:
        for name in ("max_retries", "retry_delay_ms", "max_error_history"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")


class ErrorHandler:
    """Normalize, record, classify, report and recover-or-rethrow."""

    def __init__(
        self,
        options: ErrorHandlerOptions | None = None,
        sink: DiagnosticSink | None = None,
        metrics: ErrorMetrics | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            options: retry/history limits and feature switches
            sink: where diagnostics go (defaults to a LoggingSink)
            metrics: optional Prometheus instruments
            sleep: awaitable used for recovery delays
            clock: UTC clock used for the recent-window statistics
        """
        self.options = options or ErrorHandlerOptions()
        self.sink = sink or LoggingSink()
        self.metrics = metrics
        self.messages = ErrorMessageService()
        self.history = ErrorHistory(self.options.max_error_history, clock=clock)
        self.retry_state = RetryState(max(self.options.max_error_history, 1))
        self.engine = ClassificationEngine(
            self.history,
            max_retries=self.options.max_retries,
            min_retry_delay_ms=self.options.retry_delay_ms,
        )
        self.executor = RecoveryExecutor(
            self.retry_state,
            sleep=sleep,
            on_attempt=metrics.observe_attempt if metrics is not None else None,
        )

    async def handle(self, failure: Any, context: Mapping[str, Any] | None = None) -> None:
        """Handle ``failure``; return after a successful recovery wait, raise otherwise.

        Raises:
            DockgenError: the normalized failure when it is not recovered
        """
        error = normalize_failure(failure, context)
        record = error.record
        self.history.append(record)

        if self.options.enable_classification:
            decision = self.classify(record)
        else:
            decision = self.engine.default_decision(record)
        if self.metrics is not None:
            self.metrics.observe_handled(decision)

        if self.options.enable_user_friendly_messages:
            self._emit(record, decision)

        recovered = False
        if self.options.enable_recovery and decision.recoverable:
            recovered = await self.executor.attempt(record, decision)
        if self.metrics is not None:
            self.metrics.observe_outcome(recovered)
        if recovered:
            logger.debug("recovered from %s failure: %s", decision.kind.value, record.message)
            return
        raise error

    def classify(self, record: ErrorRecord) -> ClassificationDecision:
        return self.engine.classify(record)

    def _emit(self, record: ErrorRecord, decision: ClassificationDecision) -> None:
        try:
            self.sink.emit(render_report(record, decision, self.messages))
        except Exception:
            logger.exception("failed to emit diagnostic for %s failure", record.kind.value)

    def get_history(self) -> tuple[ErrorRecord, ...]:
        return self.history.snapshot()

    def clear_history(self) -> None:
        """Clear recorded failures and retry bookkeeping (useful for testing)."""
        self.history.clear()
        self.retry_state.clear()

    def get_statistics(self) -> dict[str, Any]:
        return {
            "total": len(self.history),
            "by_kind": self.history.counts_by_kind(),
            "by_severity": self.history.counts_by_severity(),
            "recent_count": self.history.recent_count(RECENT_WINDOW),
        }

    def export_history(self, file_path: str, count: int | None = None) -> None:
        """Write recorded failures (newest ``count`` when given) to a JSON file."""
        records = self.history.snapshot()
        if count is not None:
            records = records[-count:] if count > 0 else ()
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "exported_at": _utcnow().isoformat(),
            "statistics": self.get_statistics(),
            "errors": [r.to_dict() for r in records],
        }
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, default=str)
        logger.info("exported %d errors to %s", len(records), file_path)


__all__ = ["ErrorHandler", "ErrorHandlerOptions"]

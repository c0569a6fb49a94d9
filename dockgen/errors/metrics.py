"""Prometheus instruments for error handling.

Each ``ErrorMetrics`` owns its own ``CollectorRegistry`` so several handlers
(and tests) never collide on metric names.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from prometheus_client import CollectorRegistry, Counter, Histogram, write_to_textfile

from .classification import ClassificationDecision
from .records import ErrorRecord

logger = logging.getLogger(__name__)

DELAY_BUCKETS = (0.5, 1, 2, 4, 8, 16, 32, 64)


def _labels(labels: Iterable[str] | None) -> Sequence[str]:
    if not labels:
        return ()
    return tuple(str(l) for l in labels)


class ErrorMetrics:
    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.errors_handled = Counter(
            "dockgen_errors_handled_total",
            "Failures handled, by classified kind and severity",
            _labels(["kind", "severity"]),
            registry=self.registry,
        )
        self.recovery_attempts = Counter(
            "dockgen_recovery_attempts_total",
            "Recovery waits started, by kind and strategy",
            _labels(["kind", "strategy"]),
            registry=self.registry,
        )
        self.recovery_outcomes = Counter(
            "dockgen_recovery_outcomes_total",
            "Handled failures by outcome (recovered, rethrown)",
            _labels(["outcome"]),
            registry=self.registry,
        )
        self.recovery_delay = Histogram(
            "dockgen_recovery_delay_seconds",
            "Recovery delay applied before the caller retries",
            buckets=DELAY_BUCKETS,
            registry=self.registry,
        )

    def observe_handled(self, decision: ClassificationDecision) -> None:
        self.errors_handled.labels(kind=decision.kind.value, severity=decision.severity.value).inc()

    def observe_attempt(self, record: ErrorRecord, decision: ClassificationDecision, delay_s: float) -> None:
        self.recovery_attempts.labels(kind=decision.kind.value, strategy=decision.recovery_strategy.value).inc()
        self.recovery_delay.observe(delay_s)

    def observe_outcome(self, recovered: bool) -> None:
        self.recovery_outcomes.labels(outcome="recovered" if recovered else "rethrown").inc()

    def sample(self, name: str, **labels: str) -> float | None:
        """Current value of a sample, or None when it was never recorded."""
        return self.registry.get_sample_value(name, labels or None)

    def write_textfile(self, path: str) -> None:
        write_to_textfile(path, self.registry)
        logger.debug("metrics written to %s", path)


__all__ = ["ErrorMetrics"]

"""Multi-stage failure classification.

A record is turned into a ``ClassificationDecision`` by five ordered stages,
each free to overwrite what the previous one set:

1. base table keyed by kind
2. context rules over structured details (path, operation, system code,
   HTTP status) and severity words in the message
3. message patterns, only when no structured details were supplied
4. correlation with recent history (repeats of one kind, cascades of many)
5. finalization of the recoverable/retryable invariants

Rules are plain ordered tuples so precedence is visible; each decision lists
the names of the rules that fired in ``applied_rules``.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from .history import ErrorHistory
from .records import ErrorRecord, lookup_detail
from .taxonomy import TERMINAL_KINDS, ErrorKind, ErrorSeverity, RecoveryStrategy

logger = logging.getLogger(__name__)

DEFAULT_USER_ACTION = "Please check the error details and try again."

CORRELATION_WINDOW = timedelta(seconds=60)
CORRELATION_THRESHOLD = 3
CASCADE_LOOKBACK = 10
CASCADE_WINDOW = 5
CASCADE_DISTINCT_KINDS = 3
MAX_RETRY_DELAY_MS = 10_000
RATE_LIMIT_DELAY_MS = 5_000
NETWORK_PATTERN_DELAY_MS = 3_000


@dataclass
class ClassificationDecision:
    """How a failure should be handled. Recomputed on every call."""

    kind: ErrorKind
    severity: ErrorSeverity
    recoverable: bool = False
    recovery_strategy: RecoveryStrategy = RecoveryStrategy.NONE
    retryable: bool = False
    max_retries: int = 0
    retry_delay_ms: int = 0
    user_action: str = DEFAULT_USER_ACTION
    applied_rules: list[str] = field(default_factory=list)

    def make_terminal(self) -> None:
        self.recoverable = False
        self.retryable = False
        self.recovery_strategy = RecoveryStrategy.NONE
        self.max_retries = 0
        self.retry_delay_ms = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "recovery_strategy": self.recovery_strategy.value,
            "retryable": self.retryable,
            "max_retries": self.max_retries,
            "retry_delay_ms": self.retry_delay_ms,
            "user_action": self.user_action,
            "applied_rules": list(self.applied_rules),
        }


# ---------------------------------------------------------------------------
# Stage 1: base table
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KindPolicy:
    recoverable: bool
    strategy: RecoveryStrategy
    max_retries: int
    retry_delay_ms: int
    user_action: str
    forced_severity: ErrorSeverity | None = None


_NO_RECOVERY = RecoveryStrategy.NONE

BASE_TABLE: dict[ErrorKind, KindPolicy] = {
    ErrorKind.NETWORK: KindPolicy(
        True, RecoveryStrategy.RETRY, 3, 2000,
        "Check your network connection and try again."),
    ErrorKind.REGISTRY: KindPolicy(
        True, RecoveryStrategy.RETRY_WITH_BACKOFF, 5, 1000,
        "Check your registry credentials and network connection."),
    ErrorKind.DOCKER: KindPolicy(
        True, RecoveryStrategy.RETRY, 2, 3000,
        "Ensure Docker is running and accessible."),
    ErrorKind.CONFIG_LOAD: KindPolicy(
        False, _NO_RECOVERY, 0, 0,
        "Check the configuration file path and format."),
    ErrorKind.VALIDATION: KindPolicy(
        False, _NO_RECOVERY, 0, 0,
        "Fix the validation errors in your configuration."),
    ErrorKind.SECURITY: KindPolicy(
        False, _NO_RECOVERY, 0, 0,
        "Address the security issues before proceeding.",
        forced_severity=ErrorSeverity.HIGH),
    ErrorKind.TEMPLATE: KindPolicy(
        False, _NO_RECOVERY, 0, 0,
        "Check your template configuration and data."),
    ErrorKind.FILE_WRITE: KindPolicy(
        True, RecoveryStrategy.RETRY, 2, 1000,
        "Check file permissions and disk space."),
    ErrorKind.BUILD: KindPolicy(
        True, RecoveryStrategy.RETRY, 1, 5000,
        "Check your build configuration and dependencies."),
    ErrorKind.MANIFEST: KindPolicy(
        True, RecoveryStrategy.RETRY, 2, 2000,
        "Check your manifest configuration and registry access."),
    ErrorKind.ARGUMENT: KindPolicy(
        False, _NO_RECOVERY, 0, 0,
        "Check your command arguments and options."),
    ErrorKind.TEST: KindPolicy(
        False, _NO_RECOVERY, 0, 0,
        "Review your test configuration and environment."),
    ErrorKind.UNKNOWN: KindPolicy(
        False, _NO_RECOVERY, 0, 0,
        "This is an unexpected error. Please report it.",
        forced_severity=ErrorSeverity.HIGH),
}


def adopt_kind(decision: ClassificationDecision, kind: ErrorKind, global_max: int) -> None:
    """Switch ``decision`` to ``kind`` and take that kind's recovery posture.

    Severity is kept unless the kind forces one.
    """
    policy = BASE_TABLE[kind]
    decision.kind = kind
    decision.recoverable = policy.recoverable
    decision.retryable = policy.recoverable
    decision.recovery_strategy = policy.strategy
    decision.max_retries = min(policy.max_retries, global_max) if policy.recoverable else 0
    decision.retry_delay_ms = policy.retry_delay_ms
    decision.user_action = policy.user_action
    if policy.forced_severity is not None:
        decision.severity = policy.forced_severity


# ---------------------------------------------------------------------------
# Facts extracted from a record's details
# ---------------------------------------------------------------------------

CONFIG_MARKERS = ("config", ".yaml", ".yml", ".json", ".toml", ".ini")
TEMPLATE_MARKERS = ("template", ".hbs", ".j2", ".jinja", ".tpl")


@dataclass(frozen=True)
class Facts:
    message: str
    status_code: int | None = None
    code: str | None = None
    path: str | None = None
    operation: str | None = None
    structured: bool = False


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def extract_facts(record: ErrorRecord) -> Facts:
    details = record.details
    status = _as_int(lookup_detail(details, "status_code", "statusCode"))
    code = lookup_detail(details, "code")
    path = lookup_detail(details, "path")
    operation = lookup_detail(details, "operation")
    return Facts(
        message=record.message.lower(),
        status_code=status,
        code=str(code).upper() if code is not None else None,
        path=str(path).lower() if path is not None else None,
        operation=str(operation).lower() if operation is not None else None,
        structured=any(v is not None for v in (status, code, path, operation)),
    )


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

Action = Callable[[ClassificationDecision, int], None]


@dataclass(frozen=True)
class ContextRule:
    name: str
    when: Callable[[Facts], bool]
    then: Action


@dataclass(frozen=True)
class MessagePattern:
    name: str
    pattern: re.Pattern[str]
    then: Action

    @classmethod
    def compile(cls, name: str, regex: str, then: Action) -> MessagePattern:
        return cls(name, re.compile(regex, re.IGNORECASE), then)


def _adopt(kind: ErrorKind) -> Action:
    return lambda d, global_max: adopt_kind(d, kind, global_max)


def _set_severity(severity: ErrorSeverity) -> Action:
    def _apply(d: ClassificationDecision, _global_max: int) -> None:
        d.severity = severity
    return _apply


def _then(*actions: Action) -> Action:
    def _apply(d: ClassificationDecision, global_max: int) -> None:
        for action in actions:
            action(d, global_max)
    return _apply


def _not_recoverable(d: ClassificationDecision, _global_max: int) -> None:
    d.make_terminal()


def _recoverable_with(strategy: RecoveryStrategy, delay_ms: int | None = None) -> Action:
    def _apply(d: ClassificationDecision, _global_max: int) -> None:
        d.recoverable = True
        d.retryable = True
        d.recovery_strategy = strategy
        if delay_ms is not None:
            d.retry_delay_ms = delay_ms
    return _apply


def _has_marker(value: str | None, markers: tuple[str, ...]) -> bool:
    return value is not None and any(m in value for m in markers)


_CRITICAL_WORDS = re.compile(r"\b(critical|fatal|emergency)\b", re.IGNORECASE)
_MINOR_WORDS = re.compile(r"\b(warning|deprecated|notice)\b", re.IGNORECASE)

# Kind-forcing rules run before transport rules so an HTTP status refines
# the posture of the kind it arrived with.
CONTEXT_RULES: tuple[ContextRule, ...] = (
    ContextRule("path.config",
                lambda f: _has_marker(f.path, CONFIG_MARKERS),
                _adopt(ErrorKind.CONFIG_LOAD)),
    ContextRule("path.template",
                lambda f: _has_marker(f.path, TEMPLATE_MARKERS),
                _adopt(ErrorKind.TEMPLATE)),
    ContextRule("operation.build",
                lambda f: f.operation is not None and "build" in f.operation,
                _adopt(ErrorKind.BUILD)),
    ContextRule("operation.push_pull",
                lambda f: f.operation is not None and ("push" in f.operation or "pull" in f.operation),
                _adopt(ErrorKind.REGISTRY)),
    ContextRule("operation.manifest",
                lambda f: f.operation is not None and "manifest" in f.operation,
                _adopt(ErrorKind.MANIFEST)),
    ContextRule("code.connection",
                lambda f: f.code in ("ECONNREFUSED", "ENOTFOUND"),
                _then(_adopt(ErrorKind.NETWORK), _recoverable_with(RecoveryStrategy.RETRY))),
    ContextRule("code.permission",
                lambda f: f.code in ("EACCES", "EPERM"),
                _then(_adopt(ErrorKind.FILE_WRITE), _set_severity(ErrorSeverity.MEDIUM))),
    ContextRule("code.no_space",
                lambda f: f.code == "ENOSPC",
                _then(_adopt(ErrorKind.FILE_WRITE), _set_severity(ErrorSeverity.HIGH), _not_recoverable)),
    ContextRule("status.server_error",
                lambda f: f.status_code is not None and f.status_code >= 500,
                _recoverable_with(RecoveryStrategy.RETRY_WITH_BACKOFF)),
    ContextRule("status.rate_limited",
                lambda f: f.status_code == 429,
                _recoverable_with(RecoveryStrategy.RETRY_WITH_EXPONENTIAL_BACKOFF, RATE_LIMIT_DELAY_MS)),
    ContextRule("status.client_error",
                lambda f: f.status_code is not None and 400 <= f.status_code < 500 and f.status_code != 429,
                _not_recoverable),
    ContextRule("message.minor",
                lambda f: bool(_MINOR_WORDS.search(f.message)),
                _set_severity(ErrorSeverity.LOW)),
    ContextRule("message.critical",
                lambda f: bool(_CRITICAL_WORDS.search(f.message)),
                _set_severity(ErrorSeverity.CRITICAL)),
)

# Checked in order; the last matching category wins.
MESSAGE_PATTERNS: tuple[MessagePattern, ...] = (
    MessagePattern.compile(
        "network",
        r"time\s?d?\s?out|connection refused|econnrefused|unreachable|enotfound|could not resolve",
        _then(_adopt(ErrorKind.NETWORK),
              _recoverable_with(RecoveryStrategy.RETRY_WITH_BACKOFF, NETWORK_PATTERN_DELAY_MS))),
    MessagePattern.compile(
        "docker",
        r"docker daemon|not running|permission denied",
        _then(_adopt(ErrorKind.DOCKER), _recoverable_with(RecoveryStrategy.RETRY))),
    MessagePattern.compile(
        "registry",
        r"unauthori[sz]ed|forbidden|rate[\s_-]?limit|too many requests|registry",
        _then(_adopt(ErrorKind.REGISTRY),
              _recoverable_with(RecoveryStrategy.RETRY_WITH_EXPONENTIAL_BACKOFF))),
    MessagePattern.compile(
        "filesystem",
        r"no space|disk full|enospc|quota",
        _then(_adopt(ErrorKind.FILE_WRITE), _set_severity(ErrorSeverity.HIGH), _not_recoverable)),
    MessagePattern.compile(
        "security",
        r"vulnerab|insecure|malicious",
        _then(_adopt(ErrorKind.SECURITY), _set_severity(ErrorSeverity.HIGH), _not_recoverable)),
    MessagePattern.compile(
        "config",
        r"invalid config|missing required|syntax error",
        _then(_adopt(ErrorKind.CONFIG_LOAD), _not_recoverable)),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class ClassificationEngine:
    """Produces a ``ClassificationDecision`` for a record.

    Args:
        history: store consulted for correlation and cascade analysis
        max_retries: global retry ceiling; 0 disables recovery entirely
        min_retry_delay_ms: floor applied to every retryable decision
    """

    def __init__(self, history: ErrorHistory, max_retries: int = 3, min_retry_delay_ms: int = 1000):
        self.history = history
        self.max_retries = max_retries
        self.min_retry_delay_ms = min_retry_delay_ms

    def classify(self, record: ErrorRecord) -> ClassificationDecision:
        facts = extract_facts(record)
        decision = self.base_classification(record)
        self._apply_context(decision, facts)
        if not facts.structured:
            self._apply_patterns(decision, facts)
        self._apply_correlation(decision, record)
        self._finalize(decision, record)
        logger.debug("classified %s as %s", record.kind.value, decision.to_dict())
        return decision

    def default_decision(self, record: ErrorRecord) -> ClassificationDecision:
        """Degraded decision used when classification is disabled."""
        return ClassificationDecision(kind=record.kind, severity=record.severity)

    def base_classification(self, record: ErrorRecord) -> ClassificationDecision:
        decision = ClassificationDecision(kind=record.kind, severity=record.severity)
        adopt_kind(decision, record.kind, self.max_retries)
        decision.applied_rules.append(f"base.{record.kind.value}")
        return decision

    def _apply_context(self, decision: ClassificationDecision, facts: Facts) -> None:
        for rule in CONTEXT_RULES:
            if rule.when(facts):
                rule.then(decision, self.max_retries)
                decision.applied_rules.append(rule.name)

    def _apply_patterns(self, decision: ClassificationDecision, facts: Facts) -> None:
        winner = None
        for candidate in MESSAGE_PATTERNS:
            if candidate.pattern.search(facts.message):
                winner = candidate
        if winner is not None:
            winner.then(decision, self.max_retries)
            decision.applied_rules.append(f"pattern.{winner.name}")

    def _prior(self, record: ErrorRecord) -> list[ErrorRecord]:
        """History without the entry appended for this call.

        Earlier entries for the same record stay: each handled call counts.
        """
        records = list(self.history)
        for i in range(len(records) - 1, -1, -1):
            if records[i] is record:
                del records[i]
                break
        return records

    def _apply_correlation(self, decision: ClassificationDecision, record: ErrorRecord) -> None:
        prior = self._prior(record)
        cutoff = record.timestamp - CORRELATION_WINDOW
        similar = [r for r in prior if r.kind is record.kind and r.timestamp >= cutoff]
        if len(similar) >= CORRELATION_THRESHOLD:
            decision.severity = decision.severity.escalate()
            if decision.retryable:
                decision.max_retries = max(1, decision.max_retries - 1)
                decision.retry_delay_ms = min(MAX_RETRY_DELAY_MS, decision.retry_delay_ms * 2)
            decision.user_action = (
                f"{decision.user_action} {len(similar)} similar {record.kind.value} failures "
                "occurred in the last minute; investigate the underlying cause."
            )
            decision.applied_rules.append("correlation.repeated")

        window = (prior[-CASCADE_LOOKBACK:] + [record])[-CASCADE_WINDOW:]
        kinds = sorted({r.kind.value for r in window})
        if len(kinds) >= CASCADE_DISTINCT_KINDS:
            decision.severity = ErrorSeverity.HIGH
            decision.make_terminal()
            decision.user_action = (
                f"Multiple failure types in quick succession ({', '.join(kinds)}); "
                "the system may be unstable. Check Docker, network and registry health "
                "before running the command again."
            )
            decision.applied_rules.append("correlation.cascade")

    def _finalize(self, decision: ClassificationDecision, record: ErrorRecord) -> None:
        if self.max_retries == 0:
            decision.make_terminal()
            decision.applied_rules.append("final.recovery_disabled")
        elif record.kind in TERMINAL_KINDS or decision.kind in TERMINAL_KINDS:
            decision.make_terminal()
        else:
            if decision.recoverable:
                decision.retryable = True
            if decision.retryable:
                decision.max_retries = min(max(decision.max_retries, 1), self.max_retries)
                decision.retry_delay_ms = max(decision.retry_delay_ms, self.min_retry_delay_ms)
                if decision.recovery_strategy is RecoveryStrategy.NONE:
                    decision.recovery_strategy = RecoveryStrategy.RETRY
            else:
                decision.make_terminal()

        if decision.kind is ErrorKind.SECURITY or record.kind is ErrorKind.SECURITY:
            decision.severity = ErrorSeverity.HIGH
        elif decision.kind is ErrorKind.UNKNOWN:
            decision.severity = decision.severity.at_least(ErrorSeverity.HIGH)


__all__ = [
    "BASE_TABLE",
    "CONTEXT_RULES",
    "MESSAGE_PATTERNS",
    "ClassificationDecision",
    "ClassificationEngine",
    "DEFAULT_USER_ACTION",
    "KindPolicy",
    "adopt_kind",
    "extract_facts",
]

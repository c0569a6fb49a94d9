import errno

import pytest

from dockgen.errors.classification import BASE_TABLE, ClassificationEngine
from dockgen.errors.history import ErrorHistory
from dockgen.errors.records import DockgenError, normalize_failure
from dockgen.errors.taxonomy import TERMINAL_KINDS, ErrorKind, ErrorSeverity, RecoveryStrategy


def _engine(max_retries: int = 3) -> ClassificationEngine:
    return ClassificationEngine(ErrorHistory(), max_retries=max_retries)


def _classify(engine, record):
    engine.history.append(record)
    return engine.classify(record)


def test_base_table_covers_every_kind():
    assert set(BASE_TABLE) == set(ErrorKind)


@pytest.mark.parametrize("kind", sorted(TERMINAL_KINDS, key=lambda k: k.value))
def test_terminal_kinds_never_recover(kind, make_record):
    decision = _classify(_engine(), make_record(kind=kind, message="input problem"))
    assert decision.recoverable is False
    assert decision.retryable is False
    assert decision.recovery_strategy is RecoveryStrategy.NONE
    assert decision.max_retries == 0
    assert decision.retry_delay_ms == 0


def test_terminal_kind_stays_terminal_when_message_suggests_otherwise(make_record):
    decision = _classify(_engine(), make_record(kind=ErrorKind.VALIDATION, message="registry url invalid"))
    assert decision.kind is ErrorKind.REGISTRY
    assert decision.recoverable is False
    assert decision.recovery_strategy is RecoveryStrategy.NONE


@pytest.mark.parametrize("severity", list(ErrorSeverity))
def test_security_failures_are_always_high(severity, make_record):
    decision = _classify(_engine(), make_record(kind=ErrorKind.SECURITY, message="scan failed", severity=severity))
    assert decision.severity is ErrorSeverity.HIGH


def test_network_base_posture(make_record):
    decision = _classify(_engine(), make_record())
    assert decision.kind is ErrorKind.NETWORK
    assert decision.recoverable and decision.retryable
    assert decision.recovery_strategy is RecoveryStrategy.RETRY
    assert decision.max_retries == 3
    assert decision.retry_delay_ms == 2000
    assert decision.user_action == "Check your network connection and try again."
    assert decision.applied_rules == ["base.network"]


def test_base_retries_clamped_to_global_max(make_record):
    decision = _classify(_engine(max_retries=2), make_record(kind=ErrorKind.REGISTRY, message="push failed"))
    assert decision.max_retries == 2


def test_repeated_network_failures_escalate(make_record):
    engine = _engine()
    for offset in (-40, -30, -20):
        engine.history.append(make_record(offset=offset))
    decision = _classify(engine, make_record())

    assert decision.severity is ErrorSeverity.HIGH
    assert decision.max_retries == 2
    assert decision.retry_delay_ms == 4000
    assert "3 similar network failures" in decision.user_action
    assert "correlation.repeated" in decision.applied_rules


def test_old_failures_do_not_correlate(make_record):
    engine = _engine()
    for offset in (-200, -150, -90):
        engine.history.append(make_record(offset=offset))
    decision = _classify(engine, make_record())
    assert decision.severity is ErrorSeverity.MEDIUM
    assert decision.max_retries == 3


def test_cascade_of_distinct_kinds_stops_recovery(make_record):
    engine = _engine()
    for i, kind in enumerate((ErrorKind.NETWORK, ErrorKind.DOCKER, ErrorKind.REGISTRY, ErrorKind.BUILD)):
        engine.history.append(make_record(kind=kind, message=f"step {i} failed", offset=-5 + i))
    decision = _classify(engine, make_record(kind=ErrorKind.FILE_WRITE, message="write failed"))

    assert decision.recoverable is False
    assert decision.severity is ErrorSeverity.HIGH
    assert decision.recovery_strategy is RecoveryStrategy.NONE
    assert decision.user_action.startswith("Multiple failure types")
    assert "correlation.cascade" in decision.applied_rules


def test_zero_global_retries_disables_recovery(make_record):
    decision = _classify(_engine(max_retries=0), make_record())
    assert decision.recoverable is False
    assert decision.retryable is False
    assert decision.max_retries == 0
    assert "final.recovery_disabled" in decision.applied_rules


def test_disk_full_message_is_a_fatal_file_write():
    err = normalize_failure(RuntimeError("write failed: disk full"))
    decision = _classify(_engine(), err.record)
    assert decision.kind is ErrorKind.FILE_WRITE
    assert decision.severity is ErrorSeverity.HIGH
    assert decision.recoverable is False
    assert decision.applied_rules[-1] == "pattern.filesystem"


@pytest.mark.parametrize("key", ["status_code", "statusCode"])
def test_registry_rate_limit_uses_exponential_backoff(key):
    err = DockgenError(ErrorKind.REGISTRY, "Too many requests", details={key: 429})
    decision = _classify(_engine(), err.record)
    assert decision.recovery_strategy is RecoveryStrategy.RETRY_WITH_EXPONENTIAL_BACKOFF
    assert decision.retry_delay_ms == 5000
    assert decision.recoverable is True


def test_client_errors_are_not_retried():
    err = DockgenError(ErrorKind.REGISTRY, "manifest unknown", details={"status_code": 404})
    decision = _classify(_engine(), err.record)
    assert decision.recoverable is False
    assert decision.recovery_strategy is RecoveryStrategy.NONE
    assert decision.max_retries == 0


def test_server_error_during_push_is_a_registry_backoff():
    err = normalize_failure(RuntimeError("upstream error"), {"operation": "push", "status_code": 503})
    decision = _classify(_engine(), err.record)
    assert decision.kind is ErrorKind.REGISTRY
    assert decision.recovery_strategy is RecoveryStrategy.RETRY_WITH_BACKOFF
    assert decision.recoverable is True
    assert decision.applied_rules == ["base.unknown", "operation.push_pull", "status.server_error"]


def test_os_error_codes_drive_classification():
    no_space = normalize_failure(OSError(errno.ENOSPC, "No space left on device", "/out/Dockerfile"))
    decision = _classify(_engine(), no_space.record)
    assert decision.kind is ErrorKind.FILE_WRITE
    assert decision.severity is ErrorSeverity.HIGH
    assert decision.recoverable is False

    refused = normalize_failure(ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused"))
    decision = _classify(_engine(), refused.record)
    assert decision.kind is ErrorKind.NETWORK
    assert decision.recoverable is True
    assert decision.recovery_strategy is RecoveryStrategy.RETRY

    denied = DockgenError(ErrorKind.UNKNOWN, "open failed", ErrorSeverity.HIGH, details={"code": "EACCES"})
    decision = _classify(_engine(), denied.record)
    assert decision.kind is ErrorKind.FILE_WRITE
    assert decision.severity is ErrorSeverity.MEDIUM


def test_config_and_template_paths_force_their_kind():
    cfg = DockgenError(ErrorKind.FILE_WRITE, "cannot read", details={"path": "/etc/dockgen/settings.yml"})
    decision = _classify(_engine(), cfg.record)
    assert decision.kind is ErrorKind.CONFIG_LOAD
    assert decision.recoverable is False

    tpl = DockgenError(ErrorKind.UNKNOWN, "render failed", details={"path": "templates/nginx.conf.j2"})
    decision = _classify(_engine(), tpl.record)
    assert decision.kind is ErrorKind.TEMPLATE
    assert decision.recoverable is False


def test_message_words_adjust_severity(make_record):
    engine = _engine()
    assert _classify(engine, make_record(kind=ErrorKind.BUILD, message="fatal: build context missing")).severity \
        is ErrorSeverity.CRITICAL
    assert _classify(engine, make_record(message="deprecated endpoint warning")).severity is ErrorSeverity.LOW
    assert _classify(engine, make_record(message="operation failed")).severity is ErrorSeverity.MEDIUM


def test_message_pattern_recognizes_timeouts():
    err = normalize_failure(RuntimeError("connection timed out"))
    decision = _classify(_engine(), err.record)
    assert decision.kind is ErrorKind.NETWORK
    assert decision.recovery_strategy is RecoveryStrategy.RETRY_WITH_BACKOFF
    assert decision.retry_delay_ms == 3000


def test_last_matching_pattern_wins():
    err = normalize_failure(RuntimeError("docker daemon not running; registry unreachable"))
    decision = _classify(_engine(), err.record)
    assert decision.kind is ErrorKind.REGISTRY
    assert decision.recovery_strategy is RecoveryStrategy.RETRY_WITH_EXPONENTIAL_BACKOFF


def test_patterns_skipped_when_details_are_structured():
    err = DockgenError(ErrorKind.BUILD, "connection timed out", details={"operation": "build"})
    decision = _classify(_engine(), err.record)
    assert decision.kind is ErrorKind.BUILD
    assert not any(rule.startswith("pattern.") for rule in decision.applied_rules)


def test_unknown_severity_floor(make_record):
    decision = _classify(_engine(), make_record(kind=ErrorKind.UNKNOWN, message="odd", severity=ErrorSeverity.LOW))
    assert decision.severity is ErrorSeverity.HIGH
    assert decision.recoverable is False


def test_retry_delay_floor_follows_configuration(make_record):
    engine = ClassificationEngine(ErrorHistory(), max_retries=3, min_retry_delay_ms=2500)
    decision = _classify(engine, make_record(kind=ErrorKind.FILE_WRITE, message="write failed"))
    assert decision.retry_delay_ms == 2500


def test_default_decision_is_degraded(make_record):
    rec = make_record(kind=ErrorKind.DOCKER, severity=ErrorSeverity.HIGH)
    decision = _engine().default_decision(rec)
    assert decision.kind is ErrorKind.DOCKER
    assert decision.severity is ErrorSeverity.HIGH
    assert decision.recoverable is False
    assert decision.recovery_strategy is RecoveryStrategy.NONE
    assert decision.user_action == "Please check the error details and try again."


def test_json_settings_path_is_a_config_failure():
    err = DockgenError(ErrorKind.FILE_WRITE, "cannot read", details={"path": "dockgen.json"})
    decision = _classify(_engine(), err.record)
    assert decision.kind is ErrorKind.CONFIG_LOAD
    assert "path.config" in decision.applied_rules
    assert decision.recoverable is False

import asyncio

import pytest

from dockgen.errors.classification import ClassificationDecision
from dockgen.errors.recovery import RecoveryExecutor, RetryState, compute_delay
from dockgen.errors.taxonomy import ErrorKind, ErrorSeverity, RecoveryStrategy


def _decision(strategy=RecoveryStrategy.RETRY, max_retries=2, delay_ms=2000):
    return ClassificationDecision(
        kind=ErrorKind.NETWORK,
        severity=ErrorSeverity.MEDIUM,
        recoverable=True,
        recovery_strategy=strategy,
        retryable=True,
        max_retries=max_retries,
        retry_delay_ms=delay_ms,
    )


def test_fixed_delay():
    assert compute_delay(RecoveryStrategy.RETRY, 2000, 0) == pytest.approx(2.0)
    assert compute_delay(RecoveryStrategy.RETRY, 2000, 3) == pytest.approx(2.0)


def test_backoff_doubles_per_attempt():
    delays = [compute_delay(RecoveryStrategy.RETRY_WITH_BACKOFF, 1000, n) for n in range(4)]
    assert delays == pytest.approx([1.0, 2.0, 4.0, 8.0])


def test_exponential_backoff_adds_jitter():
    for _ in range(20):
        delay = compute_delay(RecoveryStrategy.RETRY_WITH_EXPONENTIAL_BACKOFF, 5000, 1)
        assert 10.0 <= delay <= 11.0


def test_none_strategy_has_no_delay():
    assert compute_delay(RecoveryStrategy.NONE, 1000, 0) is None


def test_executor_waits_until_budget_spent(make_record, sleeps):
    executor = RecoveryExecutor(RetryState(), sleep=sleeps)
    rec = make_record()
    decision = _decision()

    results = [asyncio.run(executor.attempt(rec, decision)) for _ in range(3)]
    assert results == [True, True, False]
    assert sleeps.calls == pytest.approx([2.0, 2.0])


def test_executor_counts_attempts_per_failure(make_record, sleeps):
    state = RetryState()
    executor = RecoveryExecutor(state, sleep=sleeps)
    first = make_record(message="first")
    second = make_record(message="second")
    decision = _decision(strategy=RecoveryStrategy.RETRY_WITH_BACKOFF, max_retries=1, delay_ms=1000)

    assert asyncio.run(executor.attempt(first, decision)) is True
    assert asyncio.run(executor.attempt(second, decision)) is True
    assert asyncio.run(executor.attempt(first, decision)) is False
    assert len(state) == 2


def test_executor_never_raises(make_record):
    async def broken_sleep(_seconds):
        raise RuntimeError("loop closed")

    executor = RecoveryExecutor(RetryState(), sleep=broken_sleep)
    assert asyncio.run(executor.attempt(make_record(), _decision())) is False


def test_executor_reports_attempts(make_record, sleeps):
    seen = []
    executor = RecoveryExecutor(RetryState(), sleep=sleeps, on_attempt=lambda r, d, s: seen.append((r.kind, s)))
    asyncio.run(executor.attempt(make_record(), _decision(delay_ms=1500)))
    assert seen == [(ErrorKind.NETWORK, pytest.approx(1.5))]


def test_retry_state_evicts_oldest_key():
    state = RetryState(max_entries=2)
    state.increment("a")
    state.increment("b")
    state.increment("a")
    state.increment("c")
    assert "a" not in state
    assert state.get("b") == 1
    assert state.get("c") == 1
    state.clear()
    assert len(state) == 0

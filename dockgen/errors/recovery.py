"""Recovery executor built on tenacity wait strategies.

Recovery never re-runs the failed operation: it waits out the delay the
classification asked for and reports success so the caller can retry its own
call. Attempts are counted per failure identity in a bounded ``RetryState``.
"""
from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Any

from tenacity import RetryCallState, wait_exponential, wait_fixed, wait_random

from .classification import ClassificationDecision
from .records import ErrorRecord, identity_key
from .taxonomy import RecoveryStrategy

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class RetryState:
    """Insertion-ordered map of identity key -> attempt count.

    Holds at most ``max_entries`` keys; the oldest key is evicted first.
    """

    def __init__(self, max_entries: int = 100):
        self.max_entries = max_entries
        self._attempts: OrderedDict[str, int] = OrderedDict()

    def __len__(self) -> int:
        return len(self._attempts)

    def __contains__(self, key: object) -> bool:
        return key in self._attempts

    def get(self, key: str) -> int:
        return self._attempts.get(key, 0)

    def increment(self, key: str) -> int:
        count = self._attempts.get(key, 0) + 1
        self._attempts[key] = count
        while len(self._attempts) > self.max_entries:
            evicted, _ = self._attempts.popitem(last=False)
            logger.debug("retry state full; evicted %s", evicted)
        return count

    def clear(self) -> None:
        self._attempts.clear()


def build_wait_strategy(strategy: RecoveryStrategy, delay_ms: int) -> Any:
    """Map a recovery strategy onto a tenacity wait strategy (seconds)."""
    base = delay_ms / 1000.0
    if strategy is RecoveryStrategy.RETRY:
        return wait_fixed(base)
    if strategy is RecoveryStrategy.RETRY_WITH_BACKOFF:
        return wait_exponential(multiplier=base)
    if strategy is RecoveryStrategy.RETRY_WITH_EXPONENTIAL_BACKOFF:
        return wait_exponential(multiplier=base) + wait_random(0, 1)
    return None


def compute_delay(strategy: RecoveryStrategy, delay_ms: int, attempts: int) -> float | None:
    """Delay in seconds before the retry that follows ``attempts`` prior attempts.

    RETRY is fixed; the backoff strategies grow as ``delay * 2**attempts``;
    exponential backoff adds up to one second of jitter. Returns None for
    NONE.
    """
    wait = build_wait_strategy(strategy, delay_ms)
    if wait is None:
        return None
    call_state = RetryCallState(None, None, (), {})
    call_state.attempt_number = attempts + 1
    return float(wait(call_state))


class RecoveryExecutor:
    """Waits according to a ``ClassificationDecision``.

    Args:
        state: bounded attempt counter shared across calls
        sleep: awaitable sleep taking seconds; injectable for tests
        on_attempt: optional callback ``(record, decision, delay_s)`` fired
            before each wait
    """

    def __init__(
        self,
        state: RetryState,
        sleep: Sleep = asyncio.sleep,
        on_attempt: Callable[[ErrorRecord, ClassificationDecision, float], None] | None = None,
    ):
        self.state = state
        self._sleep = sleep
        self._on_attempt = on_attempt

    async def attempt(self, record: ErrorRecord, decision: ClassificationDecision) -> bool:
        """Return True once the delay has elapsed, False when recovery is not possible."""
        key = identity_key(record)
        try:
            attempts = self.state.get(key)
            if attempts >= decision.max_retries:
                logger.info(
                    "retry budget exhausted for %s (%d/%d)",
                    record.kind.value, attempts, decision.max_retries,
                )
                return False
            delay_s = compute_delay(decision.recovery_strategy, decision.retry_delay_ms, attempts)
            if delay_s is None:
                return False
            self.state.increment(key)
            if self._on_attempt is not None:
                self._on_attempt(record, decision, delay_s)
            logger.info(
                "recovering from %s failure: attempt %d/%d in %.2fs (%s)",
                record.kind.value, attempts + 1, decision.max_retries, delay_s,
                decision.recovery_strategy.value,
            )
            await self._sleep(delay_s)
            return True
        except Exception:
            logger.exception("recovery attempt failed for %s", record.kind.value)
            return False


__all__ = ["RecoveryExecutor", "RetryState", "build_wait_strategy", "compute_delay"]

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta

import pytest

from dockgen.errors.records import ErrorRecord
from dockgen.errors.taxonomy import ErrorKind, ErrorSeverity


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class SleepRecorder:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture(autouse=True)
def _clean_dockgen_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("DOCKGEN_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def make_record(clock):
    """Factory for records stamped by the fake clock (optionally offset in seconds)."""

    def _make(
        kind: ErrorKind = ErrorKind.NETWORK,
        message: str = "Network connection failed",
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        details: dict | None = None,
        offset: float = 0.0,
    ) -> ErrorRecord:
        return ErrorRecord(
            kind=kind,
            message=message,
            severity=severity,
            details=details or {},
            timestamp=clock.now + timedelta(seconds=offset),
        )

    return _make

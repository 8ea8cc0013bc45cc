from __future__ import annotations

from collections.abc import Sequence

import pytest

from endpoint_scout.models import ConnectionRecord, ConnectionState, ProcessHandle


class FakeClock:
    """Monotonic clock that only moves when the sampler sleeps."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedQuery:
    """Connection query returning one scripted snapshot per tick.

    A snapshot that is an exception instance is raised instead of returned.
    Ticks beyond the script see no connections.
    """

    def __init__(self, ticks: Sequence[object]) -> None:
        self.ticks = list(ticks)
        self.calls = 0

    def __call__(self, handle: ProcessHandle) -> list[ConnectionRecord]:
        index = self.calls
        self.calls += 1
        if index >= len(self.ticks):
            return []
        snapshot = self.ticks[index]
        if isinstance(snapshot, Exception):
            raise snapshot
        return list(snapshot)


def established(address: str, port: int) -> ConnectionRecord:
    return ConnectionRecord(remote_address=address, remote_port=port, state=ConnectionState.ESTABLISHED)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def handle() -> ProcessHandle:
    return ProcessHandle(pid=4242, name="game.exe", create_time=1700000000.0)


@pytest.fixture()
def conn():
    return established


@pytest.fixture()
def scripted():
    return ScriptedQuery

"""Shared fixtures for clipqueue tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from clipqueue.jobs.manager import QueueManager
from clipqueue.jobs.models import Job
from clipqueue.jobs.storage import MemoryStorage, SnapshotStore

START_MS = 1_700_000_000_000


class FakeClock:
    """Deterministic millisecond clock."""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> SnapshotStore:
    return SnapshotStore(storage)


@pytest.fixture
def make_manager(store: SnapshotStore, clock: FakeClock) -> Callable[..., QueueManager]:
    def _make(**kwargs) -> QueueManager:
        return QueueManager(store, clock=clock, **kwargs)

    return _make


@pytest.fixture
def echo(clock: FakeClock):
    """Handler writing ``input + 1`` into the payload result."""

    async def _echo(job: Job) -> None:
        clock.advance(250)
        job.payload["result"] = job.payload["input"] + 1

    return _echo

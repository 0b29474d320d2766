from __future__ import annotations

import threading
from typing import List

import pytest

from distributed_analysis.store import InMemoryStore


class FakeClock:
    """Monotonic clock whose sleep() advances time instantly."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class BlockingStore:
    """Store whose calls hang until released, to exercise deadline abandonment."""

    def __init__(self) -> None:
        self.release = threading.Event()
        self.calls = 0

    def put(self, key, attributes):
        self.calls += 1
        self.release.wait(5)

    def get(self, key):
        self.calls += 1
        self.release.wait(5)
        return None


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def blocking_store():
    s = BlockingStore()
    yield s
    s.release.set()

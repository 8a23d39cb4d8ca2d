"""Shared pytest fixtures: deterministic clocks and affinity stubs."""

import os
from typing import Iterable, List

import pytest


class ScriptedClock:
    """Returns the given readings in order, then keeps ticking by ``step``."""

    def __init__(self, readings: Iterable[int] = (), start: int = 1_000, step: int = 1) -> None:
        self.readings: List[int] = list(readings)
        self.current = start
        self.step = step
        self.calls = 0

    def __call__(self) -> int:
        self.calls += 1
        if self.readings:
            return self.readings.pop(0)
        self.current += self.step
        return self.current


@pytest.fixture
def scripted_clock():
    return ScriptedClock


@pytest.fixture
def no_pinning(monkeypatch):
    """Make sched_setaffinity a no-op so tests never pin the test runner."""
    calls = []
    monkeypatch.setattr(os, "sched_setaffinity", lambda pid, cpus: calls.append((pid, cpus)), raising=False)
    return calls


"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


class ScriptedRandomSource:
    """Random source returning scripted values, then the top of each range.

    Always answering ``high`` makes Fisher-Yates leave a sequence in its
    original order and puts requeued entries at the far end of the window.
    """

    def __init__(self, values: list[int] | None = None) -> None:
        self.values = list(values or [])
        self.calls: list[tuple[int, int]] = []

    def integer(self, low: int, high: int) -> int:
        self.calls.append((low, high))
        if self.values:
            return self.values.pop(0)
        return high


@pytest.fixture
def fake_clock() -> FakeClock:
    """Create a controllable clock."""
    return FakeClock()


@pytest.fixture
def scripted_rng() -> ScriptedRandomSource:
    """Create a deterministic random source that keeps queue order."""
    return ScriptedRandomSource()

"""Shared pytest fixtures for the stroke verifier test suite.

Fixtures:
    horizontal_stroke: Straight left-to-right reference stroke
    two_bar_references: Two horizontal strokes 100 units apart
    er_medians: Medians of 二 in the 1024 unit hanzi space
    fake_clock: Controllable replacement for time.time
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


class FakeClock:
    """Callable clock whose time is set by the test."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def horizontal_stroke():
    """Return a 4-point horizontal stroke, 300 units long."""
    return np.array([(0.0, 0.0), (100.0, 0.0), (200.0, 0.0), (300.0, 0.0)])


@pytest.fixture
def two_bar_references():
    """Return two parallel horizontal strokes, top one first."""
    return [
        np.array([(0.0, 0.0), (100.0, 0.0), (200.0, 0.0)]),
        np.array([(0.0, 100.0), (100.0, 100.0), (200.0, 100.0)]),
    ]


@pytest.fixture
def er_medians():
    """Return medians for 二: short upper bar, long lower bar."""
    return [
        [[300, 600], [500, 600], [700, 600]],
        [[200, 300], [500, 300], [800, 300]],
    ]


@pytest.fixture
def fake_clock():
    return FakeClock()

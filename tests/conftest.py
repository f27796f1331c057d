"""Shared fixtures for gate tests.

All observations are synthetic - NO camera or ML models needed.
"""

import numpy as np
import pytest

from quality.alignment_gatekeeper import FrameObservation, Point


def make_observation(
    center=(0.5, 0.5),
    eye_diff_y=0.0,
    nose_offset=0.0,
    score=0.9,
):
    """Face with eyes at y=0.4 (right eye raised by eye_diff_y), nose shifted by nose_offset."""
    right_eye = Point(0.4, 0.4 + eye_diff_y)
    left_eye = Point(0.6, 0.4)
    nose = Point(0.5 + nose_offset, 0.5)
    return FrameObservation(
        box_center=Point(*center),
        eyes=(right_eye, left_eye),
        nose=nose,
        score=score,
    )


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


class ScriptedDetector:
    """Returns queued observations; an Exception instance is raised instead."""

    def __init__(self, results=None, default=None):
        self.results = list(results or [])
        self.default = default
        self.calls = 0
        self.closed = False

    def detect(self, frame):
        self.calls += 1
        result = self.results.pop(0) if self.results else self.default
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed = True


@pytest.fixture
def aligned():
    return make_observation()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def frame():
    rng = np.random.default_rng(7)
    return rng.integers(0, 255, size=(120, 160, 3), dtype=np.uint8)

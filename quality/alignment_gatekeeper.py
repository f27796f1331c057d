"""
alignment_gatekeeper.py

LAYER 1: Alignment Gatekeeper (single frame)
--------------------------------------------
Decides whether ONE detector observation shows a face that is:
- FRONTAL  (eyes level, nose between the eyes)
- CENTERED (detection box near the middle of the frame)

Inputs are normalized (0-1) coordinates from the face detector.
"""

from dataclasses import dataclass, field
from typing import Dict, NamedTuple, Optional, Tuple

from quality.thresholds import COMPARE_PRECISION, GateThresholds


class Point(NamedTuple):
    x: float
    y: float


@dataclass(frozen=True)
class FrameObservation:
    """One face reported by the detector for a frame."""

    box_center: Point
    eyes: Tuple[Point, Point]
    nose: Point
    score: float = 1.0


@dataclass(frozen=True)
class AlignmentVerdict:
    is_frontal: bool
    is_centered: bool
    reason: str = ""
    metrics: Dict[str, float] = field(default_factory=dict)

    @property
    def is_aligned(self) -> bool:
        return self.is_frontal and self.is_centered


# -------------------------------------------------
# Helpers
# -------------------------------------------------

def _below(value, limit):
    # strict: a value sitting exactly on the limit fails
    return round(value, COMPARE_PRECISION) < limit


def frontal_metrics(observation):
    left, right = observation.eyes
    eye_diff_y = abs(left.y - right.y)
    nose_offset = abs((left.x + right.x) / 2 - observation.nose.x)
    return eye_diff_y, nose_offset


def center_metrics(observation):
    return (
        abs(observation.box_center.x - 0.5),
        abs(observation.box_center.y - 0.5),
    )


# -------------------------------------------------
# Main check
# -------------------------------------------------

def evaluate_alignment(
    observation: FrameObservation,
    thresholds: Optional[GateThresholds] = None,
) -> AlignmentVerdict:
    """
    Frontal + centered validation for a single observation.

    Returns an AlignmentVerdict carrying a user-facing reason and the
    measured metrics.
    """
    t = thresholds or GateThresholds()

    eye_diff_y, nose_offset = frontal_metrics(observation)
    center_dx, center_dy = center_metrics(observation)

    is_frontal = (
        _below(eye_diff_y, t.eye_diff_y_max) and
        _below(nose_offset, t.nose_offset_max)
    )
    is_centered = (
        _below(center_dx, t.center_x_tolerance) and
        _below(center_dy, t.center_y_tolerance)
    )

    metrics = {
        "eye_diff_y": eye_diff_y,
        "nose_offset": nose_offset,
        "center_dx": center_dx,
        "center_dy": center_dy,
    }

    if not is_frontal:
        reason = "Face the camera"
    elif not is_centered:
        reason = "Center your face"
    else:
        reason = "Hold still..."

    return AlignmentVerdict(
        is_frontal=is_frontal,
        is_centered=is_centered,
        reason=reason,
        metrics=metrics,
    )

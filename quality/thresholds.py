"""
thresholds.py

Fixed gate constants
--------------------
Timing and geometry limits shared by the alignment and hold gatekeepers
and by the progress overlay. Not externally tunable.
"""

from dataclasses import dataclass

# -------------------------------------------------
# Timing (milliseconds)
# -------------------------------------------------

WARM_UP_TIME_MS = 2000        # camera exposure / focus settle time
REQUIRED_DURATION_MS = 1500   # continuous hold before capture

# -------------------------------------------------
# Alignment (normalized image coordinates)
# -------------------------------------------------

EYE_DIFF_Y_MAX = 0.12
NOSE_OFFSET_MAX = 0.12
CENTER_X_TOLERANCE = 0.2
CENTER_Y_TOLERANCE = 0.25     # wider: cameras usually frame faces high

# Decimal places kept when comparing against a threshold
COMPARE_PRECISION = 9

# -------------------------------------------------
# Overlay geometry / capture
# -------------------------------------------------

OVAL_RADIUS_X_RATIO = 0.22
OVAL_RADIUS_Y_RATIO = 0.33

MIN_DETECTION_CONFIDENCE = 0.6
JPEG_QUALITY = 90


@dataclass(frozen=True)
class GateThresholds:
    """Alignment and timing limits handed to the gatekeepers."""

    warm_up_time_ms: float = WARM_UP_TIME_MS
    required_duration_ms: float = REQUIRED_DURATION_MS
    eye_diff_y_max: float = EYE_DIFF_Y_MAX
    nose_offset_max: float = NOSE_OFFSET_MAX
    center_x_tolerance: float = CENTER_X_TOLERANCE
    center_y_tolerance: float = CENTER_Y_TOLERANCE

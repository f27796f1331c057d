"""
progress_overlay.py

Progress overlay
----------------
Paints the oval face guide and the hold-progress arc for each
RenderInstruction coming out of the hold gatekeeper.

- Outside of the oval is darkened (heavier while not aligning)
- Progress arc starts at the top of the oval and runs clockwise
- Arc length = Ramanujan perimeter * progress

Drawing goes through a small Canvas interface so the geometry can be
checked headlessly; OpenCVCanvas is the real surface.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

import cv2
import numpy as np

from quality.hold_gatekeeper import InstructionKind, RenderInstruction
from quality.thresholds import JPEG_QUALITY, OVAL_RADIUS_X_RATIO, OVAL_RADIUS_Y_RATIO

logger = logging.getLogger(__name__)

# =========================
# UI VISUAL CONSTANTS (BGR)
# =========================
DARKNESS_INACTIVE = 0.85
DARKNESS_ACTIVE = 0.7

COLOR_GUIDE_INACTIVE = (100, 100, 100)
ALPHA_GUIDE_INACTIVE = 0.5
COLOR_GUIDE_ACTIVE = (255, 255, 255)
ALPHA_GUIDE_ACTIVE = 0.3
GUIDE_THICKNESS = 4

COLOR_PROGRESS = (0, 255, 0)
PROGRESS_THICKNESS = 6

ARC_SAMPLES = 720

Color = Tuple[int, int, int]


@dataclass(frozen=True)
class OvalGuide:
    center_x: float
    center_y: float
    radius_x: float
    radius_y: float

    @classmethod
    def for_frame(cls, width, height):
        min_dim = min(width, height)
        return cls(
            center_x=width / 2,
            center_y=height / 2,
            radius_x=min_dim * OVAL_RADIUS_X_RATIO,
            radius_y=min_dim * OVAL_RADIUS_Y_RATIO,
        )

    @property
    def perimeter(self):
        return ramanujan_perimeter(self.radius_x, self.radius_y)


class Canvas(Protocol):
    width: int
    height: int

    def draw_mask(self, guide: OvalGuide, darkness: float) -> None:
        """Darken everything outside the guide oval."""
        ...

    def draw_oval(self, guide: OvalGuide, color: Color, thickness: int, alpha: float = 1.0) -> None:
        ...

    def draw_arc(self, guide: OvalGuide, fraction: float, color: Color, thickness: int) -> None:
        """Stroke `fraction` of the oval outline, from the top, clockwise."""
        ...


# -------------------------------------------------
# Geometry
# -------------------------------------------------

def ramanujan_perimeter(a, b):
    return math.pi * (3 * (a + b) - math.sqrt((3 * a + b) * (a + 3 * b)))


def arc_polyline(guide, fraction, samples=ARC_SAMPLES):
    """
    Points along the oval outline covering `fraction` of its perimeter.

    The outline is sampled from the top (angle -90 deg) clockwise in image
    coordinates, then cut where the cumulative length reaches
    perimeter * fraction. Returns an (N, 2) float array, empty if
    fraction <= 0.
    """
    fraction = min(max(float(fraction), 0.0), 1.0)
    if fraction <= 0.0:
        return np.empty((0, 2), dtype=np.float64)

    t = np.linspace(-math.pi / 2, 3 * math.pi / 2, samples + 1)
    pts = np.stack([
        guide.center_x + guide.radius_x * np.cos(t),
        guide.center_y + guide.radius_y * np.sin(t),
    ], axis=1)

    seg = np.hypot(np.diff(pts[:, 0]), np.diff(pts[:, 1]))
    cum = np.concatenate([[0.0], np.cumsum(seg)])

    target = min(guide.perimeter * fraction, cum[-1])
    end = int(np.searchsorted(cum, target))
    if end == 0:
        return pts[:1].copy()

    # interpolate the last point so the length is exact
    prev_len = cum[end - 1]
    ratio = 0.0 if seg[end - 1] == 0 else (target - prev_len) / seg[end - 1]
    tip = pts[end - 1] + (pts[end] - pts[end - 1]) * ratio

    return np.vstack([pts[:end], tip])


# -------------------------------------------------
# Renderer
# -------------------------------------------------

class ProgressRenderer:
    def render(self, canvas: Canvas, instruction: RenderInstruction) -> OvalGuide:
        guide = OvalGuide.for_frame(canvas.width, canvas.height)
        if canvas.width <= 0 or canvas.height <= 0:
            return guide
        active = instruction.is_active

        canvas.draw_mask(guide, DARKNESS_ACTIVE if active else DARKNESS_INACTIVE)

        if active:
            canvas.draw_oval(guide, COLOR_GUIDE_ACTIVE, GUIDE_THICKNESS, ALPHA_GUIDE_ACTIVE)
        else:
            canvas.draw_oval(guide, COLOR_GUIDE_INACTIVE, GUIDE_THICKNESS, ALPHA_GUIDE_INACTIVE)

        progress = 1.0 if instruction.kind is InstructionKind.CAPTURE_NOW else instruction.progress
        if active and progress > 0:
            canvas.draw_arc(guide, progress, COLOR_PROGRESS, PROGRESS_THICKNESS)

        return guide


# -------------------------------------------------
# OpenCV surface
# -------------------------------------------------

class OpenCVCanvas:
    """Paints in place on a BGR frame."""

    def __init__(self, frame):
        self.frame = frame
        self.height, self.width = frame.shape[:2]

    @staticmethod
    def _ellipse_args(guide):
        center = (int(round(guide.center_x)), int(round(guide.center_y)))
        axes = (int(round(guide.radius_x)), int(round(guide.radius_y)))
        return center, axes

    def draw_mask(self, guide, darkness):
        center, axes = self._ellipse_args(guide)
        inside = np.zeros((self.height, self.width), dtype=np.uint8)
        cv2.ellipse(inside, center, axes, 0, 0, 360, 255, -1, cv2.LINE_AA)

        keep = (inside.astype(np.float32) / 255.0)[..., None]
        shade = keep + (1.0 - keep) * (1.0 - darkness)
        self.frame[:] = (self.frame.astype(np.float32) * shade).astype(np.uint8)

    def draw_oval(self, guide, color, thickness, alpha=1.0):
        center, axes = self._ellipse_args(guide)
        overlay = self.frame.copy()
        cv2.ellipse(overlay, center, axes, 0, 0, 360, color, thickness, cv2.LINE_AA)
        cv2.addWeighted(overlay, alpha, self.frame, 1 - alpha, 0, self.frame)

    def draw_arc(self, guide, fraction, color, thickness):
        pts = arc_polyline(guide, fraction)
        if len(pts) == 0:
            return
        pix = np.round(pts).astype(np.int32)
        cv2.polylines(self.frame, [pix], False, color, thickness, cv2.LINE_AA)

        # round caps
        r = max(thickness // 2, 1)
        for x, y in (pix[0], pix[-1]):
            cv2.circle(self.frame, (int(x), int(y)), r, color, -1, cv2.LINE_AA)


def encode_still(frame, quality=JPEG_QUALITY) -> Optional[bytes]:
    """
    Final paint of the clean video frame into a JPEG buffer.

    Returns None when there is nothing to encode or OpenCV refuses.
    """
    if frame is None or getattr(frame, "size", 0) == 0:
        logger.warning("No frame available for still capture")
        return None

    try:
        ok, buf = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    except cv2.error as e:
        logger.warning("Still capture failed: %s", e)
        return None

    if not ok:
        logger.warning("Still capture failed: encoder returned no data")
        return None
    return buf.tobytes()

"""
face_detector.py

Face detector adapter
---------------------
The gate only needs, per frame, zero or one face with:
- bounding box center
- two eye points + nose tip

FaceDetector is the seam: anything with detect(frame) / close() works,
so the gatekeepers can be driven by synthetic observations in tests.

MediaPipeFaceDetector wraps the MediaPipe Tasks BlazeFace detector.
BlazeFace keypoint order: right eye, left eye, nose tip, mouth,
right ear tragion, left ear tragion.
"""

import logging
from typing import Optional, Protocol

import cv2
import numpy as np

from quality.alignment_gatekeeper import FrameObservation, Point
from quality.thresholds import MIN_DETECTION_CONFIDENCE

logger = logging.getLogger(__name__)

MODEL_PATH = "blaze_face_short_range.tflite"

RIGHT_EYE = 0
LEFT_EYE = 1
NOSE_TIP = 2


class FaceDetector(Protocol):
    def detect(self, frame_bgr: np.ndarray) -> Optional[FrameObservation]:
        """Return the best face in the frame, or None."""
        ...

    def close(self) -> None:
        ...


# -------------------------------------------------
# Result parsing
# -------------------------------------------------

def _score(detection):
    categories = getattr(detection, "categories", None) or []
    if not categories:
        return 0.0
    return float(getattr(categories[0], "score", 0.0) or 0.0)


def observation_from_detection(detection, width, height):
    """
    Convert one MediaPipe Tasks detection into a FrameObservation.

    Bounding boxes come in pixels, keypoints already normalized.
    Returns None if the box or any of the three keypoints is missing.
    """
    box = getattr(detection, "bounding_box", None)
    keypoints = getattr(detection, "keypoints", None) or []

    if box is None or width <= 0 or height <= 0:
        return None
    if len(keypoints) <= NOSE_TIP:
        return None

    needed = [keypoints[RIGHT_EYE], keypoints[LEFT_EYE], keypoints[NOSE_TIP]]
    if any(kp is None or kp.x is None or kp.y is None for kp in needed):
        return None

    cx = (box.origin_x + box.width / 2) / width
    cy = (box.origin_y + box.height / 2) / height

    right_eye, left_eye, nose = (Point(float(kp.x), float(kp.y)) for kp in needed)

    return FrameObservation(
        box_center=Point(cx, cy),
        eyes=(right_eye, left_eye),
        nose=nose,
        score=_score(detection),
    )


def observation_from_detections(detections, width, height):
    """Keep only the highest-confidence detection."""
    if not detections:
        return None
    best = max(detections, key=_score)
    return observation_from_detection(best, width, height)


# -------------------------------------------------
# MediaPipe backend
# -------------------------------------------------

class MediaPipeFaceDetector:
    """
    BlazeFace short-range detector in VIDEO running mode.

    detect() is synchronous, so frames are naturally serialized: a new
    frame is only submitted once the previous call has returned.
    """

    def __init__(self, model_path=MODEL_PATH, min_confidence=MIN_DETECTION_CONFIDENCE, clock=None):
        import mediapipe as mp
        from mediapipe.tasks import python
        from mediapipe.tasks.python import vision

        self._mp = mp
        self._clock = clock
        self._last_ts_ms = -1

        options = vision.FaceDetectorOptions(
            base_options=python.BaseOptions(model_asset_path=model_path),
            running_mode=vision.RunningMode.VIDEO,
            min_detection_confidence=min_confidence,
        )
        self._detector = vision.FaceDetector.create_from_options(options)
        logger.info("Face detector loaded: %s", model_path)

    def _timestamp_ms(self):
        if self._clock is not None:
            ts = int(self._clock())
        else:
            ts = int(cv2.getTickCount() / cv2.getTickFrequency() * 1000)
        # VIDEO mode requires strictly increasing timestamps
        ts = max(ts, self._last_ts_ms + 1)
        self._last_ts_ms = ts
        return ts

    def detect(self, frame_bgr):
        h, w = frame_bgr.shape[:2]
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb)

        result = self._detector.detect_for_video(mp_image, self._timestamp_ms())
        return observation_from_detections(result.detections, w, h)

    def close(self):
        if self._detector is not None:
            self._detector.close()
            self._detector = None
            logger.info("Face detector closed")

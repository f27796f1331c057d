"""Tests for detector result parsing (mock MediaPipe detections)."""

from types import SimpleNamespace

import pytest

from capture.face_detector import (
    MediaPipeFaceDetector,
    observation_from_detection,
    observation_from_detections,
)
from quality.alignment_gatekeeper import evaluate_alignment


def kp(x, y):
    return SimpleNamespace(x=x, y=y)


def mock_detection(score=0.9, box=(220, 140, 200, 200), keypoints=None):
    if keypoints is None:
        keypoints = [
            kp(0.44, 0.45),  # right eye
            kp(0.56, 0.45),  # left eye
            kp(0.50, 0.52),  # nose tip
            kp(0.50, 0.60),  # mouth
            kp(0.36, 0.47),
            kp(0.64, 0.47),
        ]
    x, y, w, h = box
    return SimpleNamespace(
        bounding_box=SimpleNamespace(origin_x=x, origin_y=y, width=w, height=h),
        categories=[SimpleNamespace(score=score)],
        keypoints=keypoints,
    )


class TestParsing:
    def test_box_center_is_normalized(self):
        obs = observation_from_detection(mock_detection(), 640, 480)
        assert obs.box_center.x == pytest.approx(320 / 640)
        assert obs.box_center.y == pytest.approx(240 / 480)
        assert obs.score == pytest.approx(0.9)

    def test_keypoint_order(self):
        obs = observation_from_detection(mock_detection(), 640, 480)
        assert obs.eyes[0].x == pytest.approx(0.44)
        assert obs.eyes[1].x == pytest.approx(0.56)
        assert obs.nose.y == pytest.approx(0.52)

    def test_parsed_face_is_aligned(self):
        obs = observation_from_detection(mock_detection(), 640, 480)
        assert evaluate_alignment(obs).is_aligned

    def test_highest_score_wins(self):
        low = mock_detection(score=0.6, box=(0, 0, 100, 100))
        high = mock_detection(score=0.95)
        obs = observation_from_detections([low, high], 640, 480)
        assert obs.score == pytest.approx(0.95)
        assert obs.box_center.x == pytest.approx(0.5)

    def test_no_detections(self):
        assert observation_from_detections([], 640, 480) is None
        assert observation_from_detections(None, 640, 480) is None

    @pytest.mark.parametrize("keypoints", [[], [kp(0.4, 0.4)], [kp(0.4, 0.4), kp(0.6, 0.4)]])
    def test_missing_landmarks(self, keypoints):
        assert observation_from_detection(mock_detection(keypoints=keypoints), 640, 480) is None

    def test_missing_nose_coordinate(self):
        keypoints = [kp(0.4, 0.4), kp(0.6, 0.4), kp(None, 0.5)]
        assert observation_from_detection(mock_detection(keypoints=keypoints), 640, 480) is None

    def test_missing_box(self):
        det = mock_detection()
        det.bounding_box = None
        assert observation_from_detection(det, 640, 480) is None

    def test_missing_score_still_parses(self):
        det = mock_detection()
        det.categories = []
        assert observation_from_detection(det, 640, 480).score == 0.0


def test_video_timestamps_strictly_increase():
    ticks = iter([100, 100, 99, 250])
    detector = MediaPipeFaceDetector.__new__(MediaPipeFaceDetector)
    detector._clock = lambda: next(ticks)
    detector._last_ts_ms = -1

    assert [detector._timestamp_ms() for _ in range(4)] == [100, 101, 102, 250]

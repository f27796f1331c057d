"""
capture_session.py

Capture session (lifecycle glue)
--------------------------------
One tick per displayed frame:

    frame -> detector -> hold gatekeeper -> progress overlay
                                  |
                                  +-- CAPTURE_NOW -> JPEG still, stop ticking

After the capture the session is frozen until reset(). stop() tears the
pipeline down and closes the detector; the captured still is kept.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from capture.face_detector import FaceDetector
from capture.progress_overlay import OpenCVCanvas, ProgressRenderer, encode_still
from quality.hold_gatekeeper import HoldGatekeeper, InstructionKind, RenderInstruction
from quality.thresholds import JPEG_QUALITY, GateThresholds

logger = logging.getLogger(__name__)

STATUS_STARTING = "Starting camera..."
STATUS_WARMING_UP = "Get ready..."
STATUS_NO_FACE = "Look at the camera"
STATUS_HOLD = "Hold still..."
STATUS_CAPTURED = "Identity captured!"
STATUS_CAPTURE_FAILED = "Capture failed"
STATUS_RESTARTING = "Restarting..."


def monotonic_ms():
    return time.monotonic() * 1000.0


@dataclass
class TickResult:
    instruction: RenderInstruction
    overlay: np.ndarray
    status_text: str


def status_for(instruction):
    kind = instruction.kind
    if kind is InstructionKind.WARMING_UP:
        return STATUS_WARMING_UP
    if kind is InstructionKind.CAPTURE_NOW:
        return STATUS_CAPTURED
    if kind is InstructionKind.ALIGNING:
        return STATUS_HOLD
    if instruction.verdict is not None:
        return instruction.verdict.reason
    return STATUS_NO_FACE


class CaptureSession:
    def __init__(
        self,
        detector: FaceDetector,
        clock: Callable[[], float] = monotonic_ms,
        thresholds: Optional[GateThresholds] = None,
        renderer: Optional[ProgressRenderer] = None,
        jpeg_quality: int = JPEG_QUALITY,
    ):
        self.detector = detector
        self.clock = clock
        self.renderer = renderer or ProgressRenderer()
        self.jpeg_quality = jpeg_quality

        self.gate = HoldGatekeeper(clock(), thresholds)
        self.running = False
        self.captured_image: Optional[bytes] = None
        self.status_text = STATUS_STARTING

    @property
    def has_captured(self):
        return self.gate.has_captured

    # -------------------------------------------------
    # Lifecycle
    # -------------------------------------------------
    def start(self):
        self.captured_image = None
        self.gate.reset(self.clock())
        self.running = True
        self.status_text = STATUS_WARMING_UP
        logger.info("Capture session started")

    def reset(self):
        """Retry: drop the captured still and start over from warm-up."""
        self.captured_image = None
        self.gate.reset(self.clock())
        self.running = True
        self.status_text = STATUS_RESTARTING
        logger.info("Capture session reset")

    def stop(self):
        if not self.running and self.detector is None:
            return
        self.running = False
        if self.detector is not None:
            self.detector.close()
            self.detector = None
        logger.info("Capture session stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()

    # -------------------------------------------------
    # Per-frame step
    # -------------------------------------------------
    def _detect(self, frame):
        try:
            return self.detector.detect(frame)
        except Exception:
            logger.exception("Face detection failed, treating frame as empty")
            return None

    def tick(self, frame) -> Optional[TickResult]:
        """
        Run one frame through the pipeline.

        Returns None when the session is stopped or already captured.
        """
        if not self.running or self.gate.has_captured or self.detector is None:
            return None

        observation = self._detect(frame)

        # a result landing after the capture fired is dropped
        if not self.running or self.gate.has_captured:
            return None

        instruction = self.gate.update(self.clock(), observation)
        if instruction is None:
            return None

        if instruction.kind is InstructionKind.CAPTURE_NOW:
            self.captured_image = encode_still(frame, self.jpeg_quality)
            self.running = False
            if self.captured_image is None:
                logger.warning("Capture fired but no still image was produced")
                self.status_text = STATUS_CAPTURE_FAILED
                return TickResult(instruction=instruction, overlay=frame, status_text=self.status_text)

        overlay = frame.copy()
        self.renderer.render(OpenCVCanvas(overlay), instruction)

        self.status_text = status_for(instruction)
        return TickResult(instruction=instruction, overlay=overlay, status_text=self.status_text)

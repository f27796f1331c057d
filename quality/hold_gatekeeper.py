"""
hold_gatekeeper.py

LAYER 2: Hold Gatekeeper (Temporal Trust)
-----------------------------------------
Purpose:
- Ignore detector output while the camera warms up
- Time how long the face stays aligned WITHOUT interruption
- Decide when to fire ONE capture

Inputs (per frame):
- now (ms, monotonic clock)
- observation (FrameObservation or None)

Output:
- RenderInstruction (or None once captured)

Timing is wall-clock based, not frame-count based, so the gate does not
depend on the frame rate.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from quality.alignment_gatekeeper import (
    AlignmentVerdict,
    FrameObservation,
    evaluate_alignment,
)
from quality.thresholds import GateThresholds

logger = logging.getLogger(__name__)


class InstructionKind(enum.Enum):
    WARMING_UP = "warming_up"
    IDLE = "idle"
    ALIGNING = "aligning"
    CAPTURE_NOW = "capture_now"


@dataclass(frozen=True)
class RenderInstruction:
    kind: InstructionKind
    progress: float = 0.0
    verdict: Optional[AlignmentVerdict] = None

    @property
    def is_active(self) -> bool:
        """True while the subject is holding an aligned pose."""
        return self.kind in (InstructionKind.ALIGNING, InstructionKind.CAPTURE_NOW)


@dataclass
class GatingState:
    """
    Mutable state for one capture attempt.

    alignment_start_time is set only while consecutive frames are aligned;
    has_captured only goes back to False through reset.
    """

    stream_start_time: float
    alignment_start_time: Optional[float] = None
    has_captured: bool = False


class HoldGatekeeper:
    def __init__(self, now, thresholds=None):
        self.thresholds = thresholds or GateThresholds()
        self.state = GatingState(stream_start_time=now)

    # -------------------------------------------------
    # Reset logic (hard reset)
    # -------------------------------------------------
    def reset(self, now):
        self.state = GatingState(stream_start_time=now)
        logger.debug("Hold gate reset at %.0f ms", now)

    @property
    def has_captured(self):
        return self.state.has_captured

    # -------------------------------------------------
    # Main update per frame
    # -------------------------------------------------
    def update(self, now, observation: Optional[FrameObservation]) -> Optional[RenderInstruction]:
        """
        Call this once per frame.

        Returns None after the capture fired; the caller should stop
        feeding frames until reset.
        """
        state = self.state
        t = self.thresholds

        if state.has_captured:
            return None

        # Gate 1: warm-up, detector output is not trusted yet
        if now - state.stream_start_time < t.warm_up_time_ms:
            return RenderInstruction(InstructionKind.WARMING_UP)

        # Gate 2: a face must be present
        if observation is None:
            state.alignment_start_time = None
            return RenderInstruction(InstructionKind.IDLE)

        # Gate 3: frontal + centered, any miss breaks the hold
        verdict = evaluate_alignment(observation, t)
        if not verdict.is_aligned:
            if state.alignment_start_time is not None:
                logger.debug("Alignment lost: %s %s", verdict.reason, verdict.metrics)
            state.alignment_start_time = None
            return RenderInstruction(InstructionKind.IDLE, verdict=verdict)

        # Gate 4: continuous hold
        if state.alignment_start_time is None:
            state.alignment_start_time = now
            elapsed_hold = 0.0
        else:
            elapsed_hold = now - state.alignment_start_time

        progress = min(elapsed_hold / t.required_duration_ms, 1.0)

        if elapsed_hold >= t.required_duration_ms:
            state.has_captured = True
            state.alignment_start_time = None
            logger.info("Hold satisfied after %.0f ms, capture triggered", elapsed_hold)
            return RenderInstruction(InstructionKind.CAPTURE_NOW, progress=1.0, verdict=verdict)

        return RenderInstruction(InstructionKind.ALIGNING, progress=progress, verdict=verdict)

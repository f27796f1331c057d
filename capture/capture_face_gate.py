"""
capture_face_gate.py

Webcam auto-capture
-------------------
Shows the oval guide, fills the progress arc while the face is held
frontal + centered, and freezes on the captured still.

Keys:
- r   : retry (reset the session)
- ESC : exit

Run:
    python -m capture.capture_face_gate --camera 0
"""

import argparse
import logging

import cv2
import numpy as np

from capture.capture_session import CaptureSession
from capture.face_detector import MODEL_PATH, MediaPipeFaceDetector

logger = logging.getLogger(__name__)

WINDOW = "Face Capture"

COLOR_STATUS = (255, 255, 255)
COLOR_CAPTURED = (0, 255, 0)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Frontal face auto-capture")
    parser.add_argument("--camera", type=int, default=0, help="capture device index")
    parser.add_argument("--width", type=int, default=640)
    parser.add_argument("--height", type=int, default=480)
    parser.add_argument("--model", default=MODEL_PATH, help="BlazeFace .tflite model")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def draw_status(frame, text, color=COLOR_STATUS):
    cv2.putText(frame, text, (30, 40), cv2.FONT_HERSHEY_SIMPLEX, 1, color, 2)


def show_captured(still):
    img = cv2.imdecode(np.frombuffer(still, dtype=np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        return
    draw_status(img, "Captured - press 'r' to retry", COLOR_CAPTURED)
    cv2.imshow(WINDOW, img)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cap = cv2.VideoCapture(args.camera)
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, args.width)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, args.height)

    if not cap.isOpened():
        logger.error("Camera %d could not be opened", args.camera)
        return 1

    cv2.namedWindow(WINDOW, cv2.WINDOW_NORMAL)
    print("Press 'r' to retry | ESC to exit")

    session = CaptureSession(MediaPipeFaceDetector(model_path=args.model))
    shown_still = False

    try:
        session.start()
        while cap.isOpened():
            ok, frame = cap.read()
            if not ok:
                continue

            frame = cv2.flip(frame, 1)

            if session.has_captured:
                if session.captured_image is None:
                    draw_status(frame, "Capture failed - press 'r' to retry", (0, 0, 255))
                    cv2.imshow(WINDOW, frame)
                elif not shown_still:
                    show_captured(session.captured_image)
                    shown_still = True
            else:
                result = session.tick(frame)
                if result is not None:
                    draw_status(result.overlay, result.status_text)
                    cv2.imshow(WINDOW, result.overlay)

            key = cv2.waitKey(5) & 0xFF
            if key == 27:
                break
            if key == ord("r"):
                session.reset()
                shown_still = False
    finally:
        session.stop()
        cap.release()
        cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import argparse
import logging
import os
import platform
import sys
import time
from dataclasses import replace

import cv2

# Allow running without installing the package (repo-local usage).
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(REPO_ROOT, "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from gesturebooth.config import EngineConfig, parse_gesture  # noqa: E402
from gesturebooth.detector import LandmarkDetector  # noqa: E402
from gesturebooth.drawing import draw_countdown, draw_faces, draw_hands, draw_target, draw_text, render_viewport  # noqa: E402
from gesturebooth.engine import InteractionEngine  # noqa: E402
from gesturebooth.events import GESTURE_CANCELLED, GESTURE_COUNTDOWN, PRESS  # noqa: E402
from gesturebooth.feedback import CuePlayer  # noqa: E402
from gesturebooth.types import Rect  # noqa: E402

logger = logging.getLogger("gesturebooth.demo")


def main() -> int:
    ap = argparse.ArgumentParser(description="Gesture-driven virtual buttons and peace-sign capture.")
    ap.add_argument("--camera", type=int, default=0, help="Camera index (default: 0)")
    ap.add_argument("--width", type=int, default=1280, help="Capture width (best effort)")
    ap.add_argument("--height", type=int, default=720, help="Capture height (best effort)")
    ap.add_argument("--display-width", type=int, default=800, help="Display surface width")
    ap.add_argument("--display-height", type=int, default=800, help="Display surface height")
    ap.add_argument("--max-hands", type=int, default=2, help="Maximum number of hands to detect")
    ap.add_argument("--no-faces", action="store_true", help="Disable face landmark detection")
    ap.add_argument("--config", default=None, help="JSON engine config to load")
    ap.add_argument("--save-config", default=None, help="Write the effective config to this path and exit")
    ap.add_argument("--gesture", default=None, help="Gesture that triggers a capture (default: peace)")
    ap.add_argument("--snapshots", default="snapshots", help="Directory for captured images")
    ap.add_argument("--no-audio", action="store_true", help="Disable audible cues")
    ap.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = ap.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    config = EngineConfig.load(args.config) if args.config else EngineConfig()
    if args.gesture:
        config = replace(config, gesture_timer=replace(config.gesture_timer, watched_symbol=parse_gesture(args.gesture)))
    if args.save_config:
        config.save(args.save_config)
        logger.info("Config written to %s", args.save_config)
        return 0

    if platform.system() == "Darwin":
        cap = cv2.VideoCapture(args.camera, cv2.CAP_AVFOUNDATION)
    else:
        cap = cv2.VideoCapture(args.camera)
    if not cap.isOpened():
        raise RuntimeError(
            f"Could not open camera index {args.camera}. "
            "On macOS: System Settings -> Privacy & Security -> Camera -> allow your terminal/Cursor."
        )
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, args.width)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, args.height)

    dw, dh = args.display_width, args.display_height
    view = {"display": None, "overlay": True}

    def capture() -> None:
        if view["display"] is None:
            return
        os.makedirs(args.snapshots, exist_ok=True)
        path = os.path.join(args.snapshots, time.strftime("capture-%Y%m%d-%H%M%S.png"))
        if cv2.imwrite(path, view["display"]):
            logger.info("Captured %s", path)
        else:
            logger.error("Could not write %s", path)

    engine = InteractionEngine(config=config, capture_action=capture)
    buttons = {
        "capture": Rect(dw - 130, dh / 2 - 50, 100, 100),
        "overlay": Rect(30, dh / 2 - 50, 100, 100),
    }
    engine.register_target("capture", lambda: buttons["capture"])
    engine.register_target("overlay", lambda: buttons["overlay"], require_hold=False)

    def on_press(target_id, pointer) -> None:
        if target_id == "capture":
            capture()
        elif target_id == "overlay":
            view["overlay"] = not view["overlay"]

    engine.events.on(PRESS, on_press)
    engine.events.on(GESTURE_COUNTDOWN, lambda s: logger.info("Capturing in %d...", s))
    engine.events.on(GESTURE_CANCELLED, lambda: logger.debug("Countdown cancelled"))

    cues = None if args.no_audio else CuePlayer()
    if cues is not None:
        cues.bind(engine.events)
        cues.start()

    t0 = time.monotonic()
    try:
        with LandmarkDetector(max_num_hands=args.max_hands, max_num_faces=0 if args.no_faces else 1) as detector:
            while True:
                ok, frame = cap.read()
                if not ok:
                    break

                h, w = frame.shape[:2]
                mapping = engine.set_viewport(w, h, dw, dh)
                detection = detector.detect(frame, (time.monotonic() - t0) * 1000.0)
                result = engine.process_frame(detection)

                display = render_viewport(frame, mapping)
                view["display"] = display.copy()
                if result is not None and view["overlay"]:
                    draw_faces(display, result.faces, mapping)
                    draw_hands(display, result.hands, mapping)
                for target_id, rect in buttons.items():
                    status = engine.targets.get(target_id)
                    if status is not None:
                        draw_target(display, rect, status, label=target_id)
                draw_countdown(display, engine.hold_timer.countdown)

                status = engine.status()
                draw_text(
                    display,
                    f"hands: {status['hand_count']} | fps: {status['fps']} | press q to quit",
                    (12, 28),
                )
                cv2.imshow("gesturebooth", display)
                key = cv2.waitKey(1) & 0xFF
                if key in (ord("q"), 27):
                    break
    finally:
        engine.close()
        if cues is not None:
            cues.stop()
        cap.release()
        cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""
Frame driver tying the classifier, viewport mapper and both state machines together.

Usage:
    engine = InteractionEngine(capture_action=take_snapshot)
    engine.set_viewport(1280, 720, 800, 800)
    engine.register_target("start", lambda: Rect(350, 350, 100, 100), require_hold=False)
    engine.events.on("press", lambda target_id, pointer: print("pressed", target_id))

    while running:
        frame = detector.detect(image, timestamp_ms)
        engine.process_frame(frame)
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .config import EngineConfig, TargetConfig
from .events import EventBus
from .gestures import annotate
from .hold_timer import GestureHoldTimer
from .landmarks import estimate_face_pose, is_well_formed
from .scheduler import Scheduler
from .targets import BoundsAccessor, TargetRegistry, TargetStatus
from .types import DetectionFrame, FaceObservation, GestureSymbol, HandObservation, Pointer
from .viewport import ViewportMapping, compute_mapping, map_point_normalized


logger = logging.getLogger(__name__)


class InteractionEngine:
    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        events: Optional[EventBus] = None,
        capture_action: Optional[Callable[[], None]] = None,
    ) -> None:
        self.config = (config or EngineConfig()).validate()
        self.events = events or EventBus()
        self.scheduler = Scheduler()
        self.targets = TargetRegistry(
            self.events,
            self.scheduler,
            default_config=self.config.default_target,
            release_delay_ms=self.config.release_delay_ms,
        )
        self.hold_timer = GestureHoldTimer(
            self.events,
            self.scheduler,
            config=self.config.gesture_timer,
            capture_action=capture_action,
        )

        # Until a viewport is set, target bounds are read in normalized units.
        self._viewport_key: Optional[tuple] = None
        self._mapping: ViewportMapping = compute_mapping(1, 1, 1, 1)

        self._busy = threading.Lock()
        self._last_timestamp_ms: Optional[float] = None
        self._last_frame: Optional[DetectionFrame] = None
        self.frames_processed = 0
        self.frames_dropped = 0

        self._fps = 0
        self._fps_frames = 0
        self._fps_window_start: Optional[float] = None

    @property
    def mapping(self) -> ViewportMapping:
        return self._mapping

    @property
    def last_frame(self) -> Optional[DetectionFrame]:
        return self._last_frame

    @property
    def fps(self) -> int:
        return self._fps

    def set_viewport(
        self,
        source_width: float,
        source_height: float,
        dest_width: float,
        dest_height: float,
        offset_x: float = 0.0,
        offset_y: float = 0.0,
    ) -> ViewportMapping:
        """Recompute the viewport mapping when source or destination size changes."""
        key = (source_width, source_height, dest_width, dest_height, offset_x, offset_y)
        if key != self._viewport_key:
            self._viewport_key = key
            self._mapping = compute_mapping(
                source_width,
                source_height,
                dest_width,
                dest_height,
                offset_x=offset_x,
                offset_y=offset_y,
                aspect_tolerance=self.config.aspect_tolerance,
            )
            logger.debug("Viewport mapping updated: %s", self._mapping)
        return self._mapping

    def register_target(
        self,
        target_id: str,
        bounds: BoundsAccessor,
        config: Optional[TargetConfig] = None,
        **overrides: Any,
    ) -> TargetStatus:
        return self.targets.register(target_id, bounds, config, **overrides)

    def unregister_target(self, target_id: str) -> bool:
        return self.targets.unregister(target_id)

    def process_frame(self, frame: DetectionFrame) -> Optional[DetectionFrame]:
        """
        Run one tick. Returns the frame with hands annotated by gesture, or
        None if the frame was dropped because a previous one is still running.
        """
        if not self._busy.acquire(blocking=False):
            self.frames_dropped += 1
            logger.debug("Dropping frame at %.1f ms: previous frame still processing", frame.timestamp_ms)
            return None
        try:
            return self._tick(frame)
        finally:
            self._busy.release()

    def pointers_for(self, hands: List[HandObservation]) -> List[Pointer]:
        """Pointer landmark of each well-formed hand that is visible on the surface."""
        idx = self.config.pointer_landmark
        pointers: List[Pointer] = []
        for i, hand in enumerate(hands):
            if not is_well_formed(hand):
                continue
            pos = map_point_normalized(hand.landmarks[idx], self._mapping)
            if pos is None:
                continue
            pointers.append(Pointer(hand_index=i, x=pos[0], y=pos[1], hand=hand))
        return pointers

    def status(self) -> Dict[str, Any]:
        status = self.targets.status()
        status.update(
            {
                "fps": self._fps,
                "frames_processed": self.frames_processed,
                "frames_dropped": self.frames_dropped,
                "gesture_timer": self.hold_timer.state.value,
                "countdown": self.hold_timer.countdown,
            }
        )
        return status

    def close(self) -> None:
        self.targets.clear()
        self.hold_timer.reset()
        self.scheduler.clear()

    def _tick(self, frame: DetectionFrame) -> DetectionFrame:
        now = frame.timestamp_ms
        if self._last_timestamp_ms is not None and now < self._last_timestamp_ms:
            logger.debug("Frame timestamp went backwards (%.1f < %.1f)", now, self._last_timestamp_ms)
            now = self._last_timestamp_ms
        self._last_timestamp_ms = now
        self._update_fps(now)

        self.scheduler.run_due(now)

        hands = [self._annotate_hand(h) for h in frame.hands]
        faces = [self._annotate_face(f) for f in frame.faces]

        self.targets.update(self.pointers_for(hands), self._mapping, now)
        self.hold_timer.update([h.gesture for h in hands], now)

        out = DetectionFrame(timestamp_ms=now, hands=hands, faces=faces)
        self._last_frame = out
        self.frames_processed += 1
        return out

    @staticmethod
    def _annotate_hand(hand: HandObservation) -> HandObservation:
        try:
            return annotate(hand)
        except Exception:
            logger.warning("Could not classify hand; treating as unknown", exc_info=True)
            return dataclasses.replace(hand, gesture=GestureSymbol.UNKNOWN)

    @staticmethod
    def _annotate_face(face: FaceObservation) -> FaceObservation:
        if face.pose is not None:
            return face
        return dataclasses.replace(face, pose=estimate_face_pose(face.landmarks))

    def _update_fps(self, now: float) -> None:
        if self._fps_window_start is None:
            self._fps_window_start = now
            return
        self._fps_frames += 1
        delta = now - self._fps_window_start
        if delta >= 1000:
            self._fps = int(round(self._fps_frames * 1000 / delta))
            self._fps_frames = 0
            self._fps_window_start = now

"""Detection overlay drawn through the viewport mapping (mirrored, cropped)."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

import cv2
import numpy as np

from .landmarks import HAND_CONNECTIONS
from .targets import TargetStatus
from .types import FaceObservation, GestureSymbol, HandObservation, Rect
from .viewport import ViewportMapping, map_bbox, map_point, map_points, project_point

HAND_COLORS = [(196, 205, 78), (209, 183, 69)]  # BGR
FACE_COLOR = (107, 107, 255)
HOVER_COLOR = (196, 205, 78)
ACTIVE_COLOR = (107, 107, 255)


def _pt(p: Tuple[float, float]) -> Tuple[int, int]:
    return (int(round(p[0])), int(round(p[1])))


def draw_rect(frame, rect: Rect, color=(0, 255, 0), thickness=2):
    x0, y0 = _pt((rect.left, rect.top))
    x1, y1 = _pt((rect.left + rect.width, rect.top + rect.height))
    cv2.rectangle(frame, (x0, y0), (x1, y1), color, thickness)
    return frame


def draw_point(frame, pt: Tuple[float, float], color=(0, 0, 255), radius=5):
    cv2.circle(frame, _pt(pt), radius, color, -1, lineType=cv2.LINE_AA)
    return frame


def draw_text(frame, text: str, org: Tuple[float, float], color=(255, 255, 255), scale=0.6, thickness=2):
    org = _pt(org)
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, (0, 0, 0), thickness + 2, cv2.LINE_AA)
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness, cv2.LINE_AA)
    return frame


def draw_polyline(frame, points: Iterable[Tuple[float, float]], color=(255, 255, 0), thickness=2, closed=False):
    pts = np.array([_pt(p) for p in points], dtype=np.int32)
    if pts.shape[0] < 2:
        return frame
    cv2.polylines(frame, [pts], closed, color, thickness)
    return frame


def hand_segments(hand: HandObservation, mapping: ViewportMapping):
    """
    Skeleton segments in destination pixels.

    A segment is kept if at least one end is visible; its invisible end is
    still projected (off-window) so the line runs to the edge.
    """
    lms = hand.landmarks
    for a, b in HAND_CONNECTIONS:
        if a >= len(lms) or b >= len(lms):
            continue
        pa = map_point(lms[a], mapping)
        pb = map_point(lms[b], mapping)
        if pa is None and pb is None:
            continue
        yield project_point(lms[a], mapping) if pa is None else pa, project_point(lms[b], mapping) if pb is None else pb


def draw_hands(frame, hands: Sequence[HandObservation], mapping: ViewportMapping, draw_labels: bool = True):
    for i, hand in enumerate(hands):
        color = HAND_COLORS[i % len(HAND_COLORS)]
        for p0, p1 in hand_segments(hand, mapping):
            cv2.line(frame, _pt(p0), _pt(p1), color, 1, cv2.LINE_AA)
        for idx, lm in enumerate(hand.landmarks):
            pt = map_point(lm, mapping)
            if pt is None:
                continue
            draw_point(frame, pt, color, radius=3)
            if draw_labels and idx % 4 == 0:
                cv2.putText(frame, str(idx), _pt((pt[0] + 5, pt[1] - 5)), cv2.FONT_HERSHEY_SIMPLEX, 0.35, color, 1)

        if hand.bbox is None:
            continue
        rect = map_bbox(hand.bbox, mapping)
        if rect is None:
            continue
        draw_rect(frame, rect, color, 1)
        if hand.gesture != GestureSymbol.UNKNOWN:
            draw_text(frame, hand.gesture.value, (rect.left, rect.top - 10), color, scale=0.5, thickness=1)
    return frame


def draw_faces(frame, faces: Sequence[FaceObservation], mapping: ViewportMapping):
    for face in faces:
        xy, visible = map_points(face.landmarks, mapping)
        for x, y in xy[visible]:
            cv2.circle(frame, (int(round(x)), int(round(y))), 1, FACE_COLOR, -1)
        if face.bbox is not None:
            rect = map_bbox(face.bbox, mapping)
            if rect is not None:
                draw_rect(frame, rect, FACE_COLOR, 1)
    return frame


def draw_target(frame, rect: Rect, status: TargetStatus, label: Optional[str] = None):
    """Target outline with a hold-progress arc while hovered."""
    color = ACTIVE_COLOR if status.pressed else (HOVER_COLOR if status.hovered else (200, 200, 200))
    draw_rect(frame, rect, color, 2)
    cx, cy = _pt(rect.center)
    radius = int(max(rect.width, rect.height) / 2) + 10
    if status.hovered and status.hold_progress > 0:
        sweep = int(360 * status.hold_progress)
        cv2.ellipse(frame, (cx, cy), (radius, radius), -90, 0, sweep, color, 3, cv2.LINE_AA)
    if label:
        draw_text(frame, label, (rect.left, rect.top + rect.height + 18), color, scale=0.5, thickness=1)
    return frame


def draw_countdown(frame, seconds: Optional[int]):
    if not seconds:
        return frame
    h, w = frame.shape[:2]
    text = str(seconds)
    (tw, th), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 4.0, 8)
    draw_text(frame, text, ((w - tw) / 2, (h + th) / 2), (255, 255, 255), scale=4.0, thickness=8)
    return frame


def render_viewport(frame_bgr, mapping: ViewportMapping):
    """Camera frame cropped, scaled and mirrored the way ``mapping`` describes."""
    h, w = frame_bgr.shape[:2]
    x0 = int(round(mapping.crop_x * w))
    y0 = int(round(mapping.crop_y * h))
    x1 = max(x0 + 1, int(round((mapping.crop_x + mapping.crop_width) * w)))
    y1 = max(y0 + 1, int(round((mapping.crop_y + mapping.crop_height) * h)))
    size = (max(1, int(mapping.output_width)), max(1, int(mapping.output_height)))
    visible = cv2.resize(frame_bgr[y0:y1, x0:x1], size, interpolation=cv2.INTER_LINEAR)
    return cv2.flip(visible, 1)

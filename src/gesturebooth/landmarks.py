"""Anatomical landmark indices and per-observation geometry helpers."""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence, Tuple

from .types import FacePose, HandObservation, LandmarkPoint


HAND_LANDMARK_COUNT = 21
FACE_POSE_MIN_LANDMARKS = 468

WRIST = 0
THUMB_MCP, THUMB_IP, THUMB_TIP = 2, 3, 4
INDEX_MCP, INDEX_PIP, INDEX_TIP = 5, 6, 8
MIDDLE_MCP, MIDDLE_PIP, MIDDLE_TIP = 9, 10, 12
RING_MCP, RING_PIP, RING_TIP = 13, 14, 16
PINKY_MCP, PINKY_PIP, PINKY_TIP = 17, 18, 20

# finger -> (tip, pip/ip, mcp)
FINGER_JOINTS: Dict[str, Tuple[int, int, int]] = {
    "thumb": (THUMB_TIP, THUMB_IP, THUMB_MCP),
    "index": (INDEX_TIP, INDEX_PIP, INDEX_MCP),
    "middle": (MIDDLE_TIP, MIDDLE_PIP, MIDDLE_MCP),
    "ring": (RING_TIP, RING_PIP, RING_MCP),
    "pinky": (PINKY_TIP, PINKY_PIP, PINKY_MCP),
}

FACE_NOSE_TIP = 1
FACE_LEFT_EYE = 33
FACE_RIGHT_EYE = 263
FACE_LEFT_MOUTH = 61
FACE_RIGHT_MOUTH = 291

HAND_CONNECTIONS: List[Tuple[int, int]] = [
    # thumb
    (0, 1),
    (1, 2),
    (2, 3),
    (3, 4),
    # index
    (0, 5),
    (5, 6),
    (6, 7),
    (7, 8),
    # middle
    (0, 9),
    (9, 10),
    (10, 11),
    (11, 12),
    # ring
    (0, 13),
    (13, 14),
    (14, 15),
    (15, 16),
    # pinky
    (0, 17),
    (17, 18),
    (18, 19),
    (19, 20),
    # palm
    (5, 9),
    (9, 13),
    (13, 17),
]


def is_well_formed(hand: HandObservation) -> bool:
    return len(hand.landmarks) == HAND_LANDMARK_COUNT


def finger_positions(hand: HandObservation) -> Optional[Dict[str, Dict[str, LandmarkPoint]]]:
    """Tip / pip / mcp points per finger, or None for a malformed hand."""
    if not is_well_formed(hand):
        return None
    lms = hand.landmarks
    out: Dict[str, Dict[str, LandmarkPoint]] = {}
    for name, (tip, pip, mcp) in FINGER_JOINTS.items():
        out[name] = {"tip": lms[tip], "pip": lms[pip], "mcp": lms[mcp]}
    return out


def estimate_face_pose(landmarks: Sequence[LandmarkPoint]) -> Optional[FacePose]:
    """
    Rough head pose in degrees from a face mesh.

    Yaw and pitch are scaled offsets between eye, nose and mouth anchors rather
    than a calibrated solve; roll is the angle of the line between the eyes.
    """
    if len(landmarks) < FACE_POSE_MIN_LANDMARKS:
        return None

    nose = landmarks[FACE_NOSE_TIP]
    left_eye = landmarks[FACE_LEFT_EYE]
    right_eye = landmarks[FACE_RIGHT_EYE]
    left_mouth = landmarks[FACE_LEFT_MOUTH]
    right_mouth = landmarks[FACE_RIGHT_MOUTH]

    eye_center_x = (left_eye.x + right_eye.x) / 2
    eye_center_y = (left_eye.y + right_eye.y) / 2
    mouth_center_y = (left_mouth.y + right_mouth.y) / 2

    yaw = (eye_center_x - nose.x) * 180
    pitch = (mouth_center_y - eye_center_y) * 180
    roll = math.degrees(math.atan2(right_eye.y - left_eye.y, right_eye.x - left_eye.x))
    return FacePose(yaw=yaw, pitch=pitch, roll=roll)

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


Point2 = Tuple[float, float]


class GestureSymbol(str, Enum):
    """Discrete hand gesture symbols."""

    POINT = "point"
    PEACE = "peace"
    OPEN = "open"
    FIST = "fist"
    THUMBS_UP = "thumbs_up"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class LandmarkPoint:
    """A landmark in normalized detector space (origin top-left)."""

    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in normalized detector space."""

    x: float
    y: float
    width: float
    height: float

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


@dataclass(frozen=True)
class Rect:
    """Rectangle on a destination surface, in pixels."""

    left: float
    top: float
    width: float
    height: float

    @property
    def center(self) -> Point2:
        return (self.left + self.width / 2, self.top + self.height / 2)


@dataclass(frozen=True)
class FacePose:
    yaw: float
    pitch: float
    roll: float


@dataclass(frozen=True)
class HandObservation:
    """One detected hand for a single frame."""

    landmarks: Tuple[LandmarkPoint, ...]  # length 21 when well-formed
    handedness: Optional[str] = None  # "Left" / "Right" (may be None)
    handedness_score: Optional[float] = None
    bbox: Optional[BoundingBox] = None
    gesture: GestureSymbol = GestureSymbol.UNKNOWN


@dataclass(frozen=True)
class FaceObservation:
    """One detected face for a single frame."""

    landmarks: Tuple[LandmarkPoint, ...]
    bbox: Optional[BoundingBox] = None
    pose: Optional[FacePose] = None


@dataclass(frozen=True)
class DetectionFrame:
    """Everything the detector produced for one video frame."""

    timestamp_ms: float
    hands: List[HandObservation] = field(default_factory=list)
    faces: List[FaceObservation] = field(default_factory=list)


@dataclass(frozen=True)
class Pointer:
    """A hand's pointer landmark reconciled to destination-normalized space."""

    hand_index: int
    x: float
    y: float
    hand: HandObservation

    @property
    def gesture(self) -> GestureSymbol:
        return self.hand.gesture

    @property
    def handedness(self) -> Optional[str]:
        return self.hand.handedness

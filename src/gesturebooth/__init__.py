from .config import EngineConfig, GestureTimerConfig, TargetConfig
from .engine import InteractionEngine
from .events import EventBus
from .gestures import classify
from .types import DetectionFrame, FaceObservation, GestureSymbol, HandObservation, LandmarkPoint, Pointer, Rect
from .viewport import ViewportMapping, compute_mapping, map_point

__all__ = [
    "DetectionFrame",
    "EngineConfig",
    "EventBus",
    "FaceObservation",
    "GestureSymbol",
    "GestureTimerConfig",
    "HandObservation",
    "InteractionEngine",
    "LandmarkPoint",
    "Pointer",
    "Rect",
    "TargetConfig",
    "ViewportMapping",
    "classify",
    "compute_mapping",
    "map_point",
]

from typing import Any, Iterable, List, Optional, Tuple

import pytest

from gesturebooth.events import EVENT_NAMES, EventBus
from gesturebooth.scheduler import Scheduler
from gesturebooth.types import HandObservation, LandmarkPoint, Pointer

# finger -> (tip, pip)
FINGERS = {"thumb": (4, 3), "index": (8, 6), "middle": (12, 10), "ring": (16, 14), "pinky": (20, 18)}
ALL_FINGERS = tuple(FINGERS)


def make_hand(
    extended: Iterable[str] = (),
    tip: Optional[Tuple[float, float]] = None,
    count: int = 21,
    handedness: str = "Right",
) -> HandObservation:
    """
    A synthetic hand whose fingers in ``extended`` point up (tip above pip).

    ``tip`` places the index fingertip at a detector-space position.
    """
    extended = set(extended)
    pts: List[LandmarkPoint] = [LandmarkPoint(0.5, 0.6, 0.0) for _ in range(21)]
    for name, (t, p) in FINGERS.items():
        pts[p] = LandmarkPoint(0.5, 0.5, 0.0)
        pts[t] = LandmarkPoint(0.5, 0.45 if name in extended else 0.55, 0.0)
    if tip is not None:
        x, y = tip
        pts[8] = LandmarkPoint(x, y, 0.0)
        pts[6] = LandmarkPoint(x, y + 0.02 if "index" in extended else y - 0.02, 0.0)
    if count < 21:
        pts = pts[:count]
    elif count > 21:
        pts = pts + [LandmarkPoint(0.5, 0.5, 0.0)] * (count - 21)
    return HandObservation(landmarks=tuple(pts), handedness=handedness)


def make_pointer(x: float, y: float, hand_index: int = 0) -> Pointer:
    return Pointer(hand_index=hand_index, x=x, y=y, hand=make_hand(("index",)))


class Recorder:
    """Subscribes to every event on a bus and records ``(name, args)``."""

    def __init__(self, bus: EventBus) -> None:
        self.events: List[Tuple[str, Tuple[Any, ...]]] = []
        for name in EVENT_NAMES:
            bus.on(name, self._make(name))

    def _make(self, name: str):
        def _cb(*args: Any) -> None:
            self.events.append((name, args))

        return _cb

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def of(self, name: str) -> List[Tuple[Any, ...]]:
        return [args for n, args in self.events if n == name]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(bus: EventBus) -> Recorder:
    return Recorder(bus)


@pytest.fixture
def scheduler() -> Scheduler:
    return Scheduler()

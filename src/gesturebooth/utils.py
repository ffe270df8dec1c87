from __future__ import annotations

import math
from typing import Iterable, Optional, Tuple

from .types import BoundingBox, LandmarkPoint


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def distance(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Euclidean distance between two 2D points."""
    return math.hypot(a[0] - b[0], a[1] - b[1])


def bbox_from_points(points: Iterable[LandmarkPoint]) -> Optional[BoundingBox]:
    xs = []
    ys = []
    for p in points:
        xs.append(p.x)
        ys.append(p.y)
    if not xs:
        return None
    x0, y0 = min(xs), min(ys)
    return BoundingBox(x=x0, y=y0, width=max(xs) - x0, height=max(ys) - y0)

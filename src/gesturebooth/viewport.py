"""
Reconcile detector-space coordinates with a cropped, mirrored display surface.

The display is assumed to show the camera feed "fill-and-crop" (CSS
``object-fit: cover`` / scale-to-cover): the source is scaled until it covers
the destination and the excess on one axis is cropped symmetrically. The
detector still sees the full frame, so every landmark has to be re-expressed
relative to the visible window before it can be drawn or hit-tested.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from .types import BoundingBox, LandmarkPoint, Point2, Rect


ASPECT_TOLERANCE = 0.01


@dataclass(frozen=True)
class ViewportMapping:
    """Visible sub-rectangle of the source frame and its destination scale."""

    crop_x: float
    crop_y: float
    crop_width: float
    crop_height: float
    output_width: float
    output_height: float
    offset_x: float = 0.0
    offset_y: float = 0.0

    @property
    def is_cropped(self) -> bool:
        return self.crop_width < 1.0 or self.crop_height < 1.0


def compute_mapping(
    source_width: float,
    source_height: float,
    dest_width: float,
    dest_height: float,
    *,
    offset_x: float = 0.0,
    offset_y: float = 0.0,
    aspect_tolerance: float = ASPECT_TOLERANCE,
) -> ViewportMapping:
    """
    Crop descriptor for showing a ``source`` frame fill-and-crop on ``dest``.

    Degenerate sizes fall back to an uncropped 1:1 mapping.
    """
    mapping = ViewportMapping(
        crop_x=0.0,
        crop_y=0.0,
        crop_width=1.0,
        crop_height=1.0,
        output_width=float(max(dest_width, 0)),
        output_height=float(max(dest_height, 0)),
        offset_x=float(offset_x),
        offset_y=float(offset_y),
    )
    if source_width <= 0 or source_height <= 0 or dest_width <= 0 or dest_height <= 0:
        return mapping

    source_aspect = source_width / source_height
    dest_aspect = dest_width / dest_height
    if abs(source_aspect - dest_aspect) <= aspect_tolerance:
        return mapping

    if source_aspect > dest_aspect:
        # Source relatively wider: crop left/right.
        crop_width = dest_aspect / source_aspect
        return ViewportMapping(
            crop_x=(1.0 - crop_width) / 2,
            crop_y=0.0,
            crop_width=crop_width,
            crop_height=1.0,
            output_width=mapping.output_width,
            output_height=mapping.output_height,
            offset_x=mapping.offset_x,
            offset_y=mapping.offset_y,
        )

    crop_height = source_aspect / dest_aspect
    return ViewportMapping(
        crop_x=0.0,
        crop_y=(1.0 - crop_height) / 2,
        crop_width=1.0,
        crop_height=crop_height,
        output_width=mapping.output_width,
        output_height=mapping.output_height,
        offset_x=mapping.offset_x,
        offset_y=mapping.offset_y,
    )


def _to_crop_window(x: float, y: float, mapping: ViewportMapping) -> Tuple[float, float]:
    return (x - mapping.crop_x) / mapping.crop_width, (y - mapping.crop_y) / mapping.crop_height


def map_point_normalized(p: LandmarkPoint, mapping: ViewportMapping) -> Optional[Point2]:
    """Mirrored destination-normalized position, or None if cropped away."""
    nx, ny = _to_crop_window(p.x, p.y, mapping)
    if nx < 0.0 or nx > 1.0 or ny < 0.0 or ny > 1.0:
        return None
    return (1.0 - nx, ny)


def project_point(p: LandmarkPoint, mapping: ViewportMapping) -> Point2:
    """Destination pixel position without the visibility check (may be off-surface)."""
    nx, ny = _to_crop_window(p.x, p.y, mapping)
    return (
        (1.0 - nx) * mapping.output_width + mapping.offset_x,
        ny * mapping.output_height + mapping.offset_y,
    )


def map_point(p: LandmarkPoint, mapping: ViewportMapping) -> Optional[Point2]:
    """Destination pixel position of a landmark, or None if it is not visible."""
    if map_point_normalized(p, mapping) is None:
        return None
    return project_point(p, mapping)


def map_points(points: Sequence[LandmarkPoint], mapping: ViewportMapping) -> Tuple[np.ndarray, np.ndarray]:
    """
    Vectorised :func:`map_point` for dense landmark sets (face meshes).

    Returns ``(xy, visible)``: an ``(N, 2)`` float array of destination pixels
    and a boolean mask; rows where ``visible`` is False must be skipped.
    """
    if not points:
        return np.zeros((0, 2), dtype=np.float64), np.zeros((0,), dtype=bool)
    raw = np.array([(p.x, p.y) for p in points], dtype=np.float64)
    nx = (raw[:, 0] - mapping.crop_x) / mapping.crop_width
    ny = (raw[:, 1] - mapping.crop_y) / mapping.crop_height
    visible = (nx >= 0.0) & (nx <= 1.0) & (ny >= 0.0) & (ny <= 1.0)
    xy = np.empty_like(raw)
    xy[:, 0] = (1.0 - nx) * mapping.output_width + mapping.offset_x
    xy[:, 1] = ny * mapping.output_height + mapping.offset_y
    return xy, visible


def map_bbox(bbox: BoundingBox, mapping: ViewportMapping) -> Optional[Rect]:
    """
    Map a detector-space box to a destination rectangle.

    Both corners go through the crop window; the result is clipped to the
    visible area. Boxes entirely outside the window return None.
    """
    x0, y0 = _to_crop_window(bbox.x, bbox.y, mapping)
    x1, y1 = _to_crop_window(bbox.x + bbox.width, bbox.y + bbox.height, mapping)
    if x1 < 0.0 or x0 > 1.0 or y1 < 0.0 or y0 > 1.0:
        return None

    x0, x1 = max(x0, 0.0), min(x1, 1.0)
    y0, y1 = max(y0, 0.0), min(y1, 1.0)
    # Mirroring swaps which corner is on the left.
    left = (1.0 - x1) * mapping.output_width + mapping.offset_x
    top = y0 * mapping.output_height + mapping.offset_y
    return Rect(
        left=left,
        top=top,
        width=(x1 - x0) * mapping.output_width,
        height=(y1 - y0) * mapping.output_height,
    )


def normalize_surface_point(pt: Point2, mapping: ViewportMapping) -> Optional[Point2]:
    """Destination pixels back to destination-normalized units."""
    if mapping.output_width <= 0 or mapping.output_height <= 0:
        return None
    return (
        (pt[0] - mapping.offset_x) / mapping.output_width,
        (pt[1] - mapping.offset_y) / mapping.output_height,
    )

"""
Top-view rendering of per-box LiDAR points for debugging.

Produces a raster only; showing or saving it is left to the caller.
"""

import math
from typing import List, Tuple
import cv2
import numpy as np

from ttc_fusion.gateway.data_types import BoundingBox


def _box_color(box_id: int) -> Tuple[int, int, int]:
    """Stable dark BGR color per box ID."""
    rng = np.random.default_rng(box_id)
    return tuple(int(c) for c in rng.integers(0, 150, size=3))


def render_top_view(
    boxes: List[BoundingBox],
    world_size: Tuple[float, float] = (4.0, 20.0),
    image_size: Tuple[int, int] = (1000, 2000),
    marker_spacing: float = 2.0
) -> np.ndarray:
    """
    Draw each box's LiDAR points as seen from above.

    Args:
        boxes: Boxes with associated lidar_points
        world_size: (width, height) in meters covered by the image (lateral, forward)
        image_size: (width, height) of the output image in pixels
        marker_spacing: Distance between horizontal range markers in meters

    Returns:
        (H, W, 3) uint8 BGR image
    """
    img_w, img_h = image_size
    world_w, world_h = world_size
    top_view = np.full((img_h, img_w, 3), 255, dtype=np.uint8)

    for b in boxes:
        if not b.lidar_points:
            continue
        color = _box_color(b.box_id)

        top, left, bottom, right = img_h, img_w, 0, 0
        xw_min, yw_min, yw_max = math.inf, math.inf, -math.inf
        for p in b.lidar_points:
            xw_min = min(xw_min, p.x)
            yw_min = min(yw_min, p.y)
            yw_max = max(yw_max, p.y)

            # x forward maps to image up, y left maps to image left
            py = int(-p.x * img_h / world_h + img_h)
            px = int(-p.y * img_w / world_w + img_w / 2)

            top, left = min(top, py), min(left, px)
            bottom, right = max(bottom, py), max(right, px)
            cv2.circle(top_view, (px, py), 4, color, -1)

        cv2.rectangle(top_view, (left, top), (right, bottom), (0, 0, 0), 2)

        label = f"id={b.box_id}, #pts={len(b.lidar_points)}"
        cv2.putText(top_view, label, (left - 250, bottom + 50), cv2.FONT_ITALIC, 2, color)
        extent = f"xmin={xw_min:.2f} m, yw={yw_max - yw_min:.2f} m"
        cv2.putText(top_view, extent, (left - 250, bottom + 125), cv2.FONT_ITALIC, 2, color)

    num_markers = int(math.floor(world_h / marker_spacing))
    for i in range(num_markers):
        y = int(-(i * marker_spacing) * img_h / world_h + img_h)
        cv2.line(top_view, (0, y), (img_w, y), (255, 0, 0))

    return top_view

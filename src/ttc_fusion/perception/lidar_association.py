"""
Association of LiDAR points with 2D detection boxes.
"""

import logging
from typing import List
import numpy as np

from ttc_fusion.gateway.data_types import BoundingBox, CameraCalibration, LidarPoint
from ttc_fusion.perception.geometry_utils import shrink_roi, project_lidar_to_image, points_in_roi

logger = logging.getLogger(__name__)


def cluster_lidar_with_roi(
    boxes: List[BoundingBox],
    lidar_points: List[LidarPoint],
    shrink_factor: float,
    calibration: CameraCalibration
) -> int:
    """
    Group LiDAR points by the bounding box their projection falls into.

    Each box is shrunk towards its center first, since points near box edges
    often belong to background or neighboring objects. A point is appended to
    a box's `lidar_points` only when exactly one shrunk box encloses it;
    points enclosed by several boxes, by none, or lying behind the camera
    are dropped.

    Args:
        boxes: Bounding boxes of the frame (mutated in place)
        lidar_points: All LiDAR points of the frame
        shrink_factor: Fraction in [0, 1] removed from width and height
        calibration: Projection chain into the image

    Returns:
        Number of points assigned to a box
    """
    if not 0.0 <= shrink_factor <= 1.0:
        raise ValueError(f"shrink_factor must be in [0, 1], got {shrink_factor}")

    if not boxes or not lidar_points:
        return 0

    points_xyz = np.array([p.xyz for p in lidar_points], dtype=np.float64)
    uv, depth = project_lidar_to_image(points_xyz, calibration.projection_matrix)

    # (num_boxes, num_points) containment matrix
    enclosing = np.stack([
        points_in_roi(uv, shrink_roi(*b.roi(), shrink_factor)) for b in boxes
    ])
    enclosing_count = enclosing.sum(axis=0)
    unique = enclosing_count == 1

    owner = np.argmax(enclosing, axis=0)
    for point_idx in np.flatnonzero(unique):
        boxes[owner[point_idx]].lidar_points.append(lidar_points[point_idx])

    assigned = int(unique.sum())
    logger.debug(f"[LIDAR ROI] {len(lidar_points)} points: {assigned} assigned, "
                 f"{int((enclosing_count > 1).sum())} ambiguous, "
                 f"{int((depth <= 0).sum())} behind camera")
    for b in boxes:
        logger.debug(f"[LIDAR ROI] Box {b.box_id}: {len(b.lidar_points)} points")

    return assigned

"""
Time-to-collision estimators for LiDAR and camera.

Both assume constant relative velocity over one frame interval. Degenerate
inputs are reported through TTCEstimate.status instead of NaN or exceptions.
"""

import logging
import math
from itertools import combinations
from typing import List
import numpy as np

from ttc_fusion.gateway.data_types import (
    KeypointMatch, LidarPoint, TTCEstimate, TTC_SOURCE_CAMERA, TTC_SOURCE_LIDAR
)

logger = logging.getLogger(__name__)


def _frame_interval(frame_rate: float) -> float:
    if frame_rate <= 0:
        raise ValueError(f"frame_rate must be positive, got {frame_rate}")
    return 1.0 / frame_rate


def compute_ttc_lidar(
    lidar_points_prev: List[LidarPoint],
    lidar_points_curr: List[LidarPoint],
    frame_rate: float,
    lane_width: float = 4.0
) -> TTCEstimate:
    """
    Compute TTC from the closest in-lane LiDAR distance in two frames.

    Both point sets are expected to be denoised already. Only points with
    |y| <= lane_width / 2 count.

    Args:
        lidar_points_prev: Previous frame points of the object
        lidar_points_curr: Current frame points of the object
        frame_rate: Sensor frame rate in Hz
        lane_width: Ego lane width in meters

    Returns:
        TTCEstimate tagged 'lidar'
    """
    dt = _frame_interval(frame_rate)
    half_lane = lane_width / 2.0

    x_prev = [p.x for p in lidar_points_prev if abs(p.y) <= half_lane]
    x_curr = [p.x for p in lidar_points_curr if abs(p.y) <= half_lane]

    if not x_prev or not x_curr:
        logger.debug(f"[TTC LIDAR] No in-lane points (prev={len(x_prev)}, curr={len(x_curr)})")
        return TTCEstimate.not_computable(TTC_SOURCE_LIDAR, "no in-lane lidar points")

    min_x_prev = min(x_prev)
    min_x_curr = min(x_curr)
    logger.debug(f"[TTC LIDAR] Prev min x={min_x_prev:.3f}m, curr min x={min_x_curr:.3f}m")

    closing = min_x_prev - min_x_curr
    if closing == 0:
        return TTCEstimate.not_closing(TTC_SOURCE_LIDAR, math.inf, "distance unchanged")

    ttc = min_x_curr * dt / closing
    if closing < 0:
        return TTCEstimate.not_closing(TTC_SOURCE_LIDAR, ttc, "object receding")
    if ttc <= 0:
        # Closest point already at or behind the sensor origin
        return TTCEstimate.not_closing(TTC_SOURCE_LIDAR, ttc, "object at or behind sensor")

    return TTCEstimate.ok(TTC_SOURCE_LIDAR, ttc)


def compute_ttc_camera(
    prev_keypoints: np.ndarray,
    curr_keypoints: np.ndarray,
    kpt_matches: List[KeypointMatch],
    frame_rate: float,
    min_distance_px: float = 100.0
) -> TTCEstimate:
    """
    Compute TTC from the change of keypoint spacing between two frames.

    For every unordered pair of matches, the ratio of current to previous
    pixel distance is collected when the previous distance is above machine
    epsilon and the current distance is at least `min_distance_px`. Close
    keypoint pairs give unstable ratios, hence the lower bound.

    Args:
        prev_keypoints: (N, 2) previous frame keypoints
        curr_keypoints: (M, 2) current frame keypoints
        kpt_matches: Matches of one box, already outlier-filtered
        frame_rate: Sensor frame rate in Hz
        min_distance_px: Minimum current-frame pair distance in pixels

    Returns:
        TTCEstimate tagged 'camera'
    """
    dt = _frame_interval(frame_rate)

    if len(kpt_matches) < 2:
        return TTCEstimate.not_computable(TTC_SOURCE_CAMERA, "fewer than two keypoint matches")

    positions = [m.positions(prev_keypoints, curr_keypoints) for m in kpt_matches]
    eps = np.finfo(np.float64).eps

    dist_ratios = []
    for (prev_a, curr_a), (prev_b, curr_b) in combinations(positions, 2):
        dist_curr = float(np.linalg.norm(np.asarray(curr_a) - np.asarray(curr_b)))
        dist_prev = float(np.linalg.norm(np.asarray(prev_a) - np.asarray(prev_b)))

        if dist_prev > eps and dist_curr >= min_distance_px:
            dist_ratios.append(dist_curr / dist_prev)

    if not dist_ratios:
        logger.debug(f"[TTC CAMERA] No valid distance ratios from {len(kpt_matches)} matches")
        return TTCEstimate.not_computable(TTC_SOURCE_CAMERA, "no valid keypoint distance ratios")

    median_ratio = float(np.median(dist_ratios))
    logger.debug(f"[TTC CAMERA] {len(dist_ratios)} ratios, median={median_ratio:.4f}")

    if median_ratio == 1.0:
        return TTCEstimate.not_closing(TTC_SOURCE_CAMERA, math.inf, "keypoint scale unchanged")

    ttc = -dt / (1.0 - median_ratio)
    if median_ratio < 1.0:
        return TTCEstimate.not_closing(TTC_SOURCE_CAMERA, ttc, "keypoint scale shrinking")

    return TTCEstimate.ok(TTC_SOURCE_CAMERA, ttc)

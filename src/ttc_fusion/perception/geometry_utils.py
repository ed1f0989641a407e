"""
Geometric utility functions for the perception module.

This module provides shared geometric calculations used across the estimation
pipeline, including LiDAR-to-image projection and region-of-interest tests.
"""

import numpy as np
from typing import Tuple
from shapely import affinity
from shapely.geometry import box


def shrink_roi(
    x: float,
    y: float,
    width: float,
    height: float,
    shrink_factor: float
) -> Tuple[float, float, float, float]:
    """
    Shrink a rectangle towards its center.

    Width and height are each reduced by `shrink_factor`, half of the
    reduction taken from each side.

    Args:
        x: Top-left x coordinate
        y: Top-left y coordinate
        width: Rectangle width in pixels
        height: Rectangle height in pixels
        shrink_factor: Fraction in [0, 1]; 0 keeps the rectangle, 1 collapses it to its center

    Returns:
        (x_min, y_min, x_max, y_max) of the shrunk rectangle
    """
    if not 0.0 <= shrink_factor <= 1.0:
        raise ValueError(f"shrink_factor must be in [0, 1], got {shrink_factor}")

    scale = 1.0 - shrink_factor
    rect = box(x, y, x + width, y + height)
    shrunk = affinity.scale(rect, xfact=scale, yfact=scale, origin='center')
    x_min, y_min, x_max, y_max = shrunk.bounds
    return float(x_min), float(y_min), float(x_max), float(y_max)


def project_lidar_to_image(
    points_xyz: np.ndarray,
    projection_matrix: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Project 3D LiDAR points into the image plane.

    Args:
        points_xyz: (N, 3) points in LiDAR/vehicle frame
        projection_matrix: (3, 4) full chain P_rect @ R_rect @ RT

    Returns:
        uv: (N, 2) pixel coordinates [u, v] (NaN where depth <= 0)
        depth: (N,) homogeneous depth; points with depth <= 0 are behind the camera
    """
    if len(points_xyz) == 0:
        return np.zeros((0, 2)), np.zeros(0)

    # Homogeneous coordinates: [x, y, z, 1]
    points_h = np.hstack((points_xyz, np.ones((len(points_xyz), 1))))

    # Shape: (3, 4) @ (4, N) -> (3, N)
    projected = projection_matrix @ points_h.T
    depth = projected[2, :]

    uv = np.full((len(points_xyz), 2), np.nan)
    in_front = depth > 0
    uv[in_front, 0] = projected[0, in_front] / depth[in_front]
    uv[in_front, 1] = projected[1, in_front] / depth[in_front]

    return uv, depth


def points_in_roi(uv: np.ndarray, bounds: Tuple[float, float, float, float]) -> np.ndarray:
    """
    Half-open containment test of pixel positions against a rectangle.

    Args:
        uv: (N, 2) pixel coordinates (NaN rows never match)
        bounds: (x_min, y_min, x_max, y_max)

    Returns:
        (N,) boolean mask, True where x_min <= u < x_max and y_min <= v < y_max
    """
    if len(uv) == 0:
        return np.zeros(0, dtype=bool)

    x_min, y_min, x_max, y_max = bounds
    u = uv[:, 0]
    v = uv[:, 1]
    return (u >= x_min) & (u < x_max) & (v >= y_min) & (v < y_max)

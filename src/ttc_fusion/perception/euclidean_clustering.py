"""
Euclidean clustering and largest-cluster outlier removal for LiDAR points.

Pipeline:
    1. Build a KdTree over the box's LiDAR points
    2. Region-grow connected components under a distance tolerance
    3. Keep the largest component as the physical object, drop the rest
"""

import logging
from typing import Iterator, List, Sequence

from ttc_fusion.gateway.data_types import LidarPoint
from ttc_fusion.perception.kd_tree import KdTree

logger = logging.getLogger(__name__)


def euclidean_cluster(points: Sequence[Sequence[float]], tree: KdTree, tolerance: float) -> List[List[int]]:
    """
    Partition points into connected components under `tolerance`.

    Seeds are taken in index order. Each cluster lists its seed first, then
    the points discovered depth-first from it. Growth uses an explicit stack
    of neighbor iterators, so the visiting order matches a recursive
    implementation without its stack-depth limit.

    Args:
        points: (N, 3) points, indexed like the tree
        tree: KdTree holding every point tagged with its index
        tolerance: Maximum neighbor distance in meters

    Returns:
        List of clusters, each a list of point indices
    """
    processed = [False] * len(points)
    clusters: List[List[int]] = []

    for seed in range(len(points)):
        if processed[seed]:
            continue

        processed[seed] = True
        cluster = [seed]
        stack: List[Iterator[int]] = [iter(tree.search(points[seed], tolerance))]

        while stack:
            for neighbor in stack[-1]:
                if not processed[neighbor]:
                    processed[neighbor] = True
                    cluster.append(neighbor)
                    stack.append(iter(tree.search(points[neighbor], tolerance)))
                    break
            else:
                stack.pop()

        clusters.append(cluster)

    return clusters


def select_largest_cluster(clusters: List[List[int]]) -> List[int]:
    """
    Return the cluster with the most members.

    Ties go to the cluster seen first. Empty input gives an empty cluster.
    """
    largest: List[int] = []
    for cluster in clusters:
        if len(cluster) > len(largest):
            largest = cluster
    return largest


def remove_lidar_outliers(lidar_points: List[LidarPoint], cluster_tolerance: float) -> List[LidarPoint]:
    """
    Keep only the points of the dominant cluster.

    Assumes one physical object dominates the box; reflections, ground
    returns and partially occluding objects form the smaller clusters.

    Args:
        lidar_points: Points associated with one bounding box
        cluster_tolerance: Region growing distance in meters

    Returns:
        Points of the largest cluster, in discovery order
    """
    if not lidar_points:
        return []

    points = [p.xyz for p in lidar_points]
    tree = KdTree.from_points(points)
    clusters = euclidean_cluster(points, tree, cluster_tolerance)
    largest = select_largest_cluster(clusters)

    logger.debug(f"[CLUSTERING] {len(lidar_points)} points -> {len(clusters)} clusters, "
                 f"kept largest with {len(largest)} points (tolerance={cluster_tolerance}m)")

    return [lidar_points[i] for i in largest]

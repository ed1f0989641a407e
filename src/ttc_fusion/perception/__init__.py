"""
Perception module for LiDAR denoising, sensor association and TTC estimation.
"""

from .kd_tree import KdTree
from .euclidean_clustering import euclidean_cluster, select_largest_cluster, remove_lidar_outliers
from .lidar_association import cluster_lidar_with_roi
from .keypoint_association import cluster_kpt_matches_with_roi, count_box_votes, match_bounding_boxes
from .ttc_estimators import compute_ttc_lidar, compute_ttc_camera
from .visualization import render_top_view
from .fusion_core import TTCPipeline

__all__ = [
    'KdTree', 'euclidean_cluster', 'select_largest_cluster', 'remove_lidar_outliers',
    'cluster_lidar_with_roi', 'cluster_kpt_matches_with_roi', 'count_box_votes', 'match_bounding_boxes',
    'compute_ttc_lidar', 'compute_ttc_camera', 'render_top_view', 'TTCPipeline'
]

"""Camera/LiDAR fusion: association, box matching and TTC estimation."""

from .association import cluster_kpt_matches_with_roi, cluster_lidar_with_roi, shrink_roi
from .box_matching import compute_vote_matrix, match_bounding_boxes
from .pipeline import TTCPipeline, TTCResult
from .ttc import compute_ttc_camera, compute_ttc_lidar, is_valid_ttc

__all__ = [
    "cluster_lidar_with_roi",
    "cluster_kpt_matches_with_roi",
    "shrink_roi",
    "compute_vote_matrix",
    "match_bounding_boxes",
    "compute_ttc_camera",
    "compute_ttc_lidar",
    "is_valid_ttc",
    "TTCPipeline",
    "TTCResult",
]

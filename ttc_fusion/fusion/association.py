"""
Association of LiDAR points and keypoint matches with 2D detections.

Two operations fill a frame's bounding boxes with evidence:

1. ``cluster_lidar_with_roi``: every LiDAR point is projected into the
   image and assigned to the box whose shrunk ROI contains it. Points
   enclosed by no box or by several boxes are dropped, so overlapping
   detections never share a point.

2. ``cluster_kpt_matches_with_roi``: every keypoint match whose current
   keypoint lies inside a box is assigned to it, then matches moving much
   further than the box average are removed as mismatches.
"""

from typing import Any, List, Sequence, Tuple

import numpy as np

from ..calibration.projection import ProjectionCalibration, project_points
from ..data.structures import BoundingBox, RangePoint, roi_contains
from ..utils.logger import get_logger

logger = get_logger(__name__)


def shrink_roi(
    roi: Sequence[float],
    shrink_factor: float,
) -> Tuple[float, float, float, float]:
    """
    Shrink a region around its center.

    Each dimension is scaled by ``(1 - shrink_factor)``, so every edge moves
    inward by ``shrink_factor / 2`` of the dimension.

    Args:
        roi: (x, y, width, height).
        shrink_factor: Fraction in [0, 1); 0 leaves the region unchanged.

    Returns:
        Shrunk (x, y, width, height).
    """
    x, y, w, h = roi
    return (
        x + shrink_factor * w / 2.0,
        y + shrink_factor * h / 2.0,
        w * (1.0 - shrink_factor),
        h * (1.0 - shrink_factor),
    )


def cluster_lidar_with_roi(
    bounding_boxes: List[BoundingBox],
    lidar_points: List[RangePoint],
    shrink_factor: float,
    calibration: ProjectionCalibration,
) -> None:
    """
    Group LiDAR points by the bounding box their projection falls into.

    Appends to ``box.lidar_points`` in place.

    Args:
        bounding_boxes: Detections of the frame.
        lidar_points: LiDAR points of the frame.
        shrink_factor: ROI inset in [0, 1) to keep edge points out.
        calibration: LiDAR-to-image projection.

    Raises:
        ValueError: If shrink_factor is outside [0, 1).
    """
    if not 0.0 <= shrink_factor < 1.0:
        raise ValueError(f"shrink_factor must be in [0, 1), got {shrink_factor}")

    if not lidar_points or not bounding_boxes:
        return

    xyz = np.array([[p.x, p.y, p.z] for p in lidar_points], dtype=np.float64)
    pixels = project_points(xyz, calibration)
    shrunk = [shrink_roi(box.roi, shrink_factor) for box in bounding_boxes]

    num_assigned = 0
    num_ambiguous = 0

    for point, pixel in zip(lidar_points, pixels):
        enclosing = [
            box for box, roi in zip(bounding_boxes, shrunk) if roi_contains(roi, pixel)
        ]

        if len(enclosing) == 1:
            enclosing[0].lidar_points.append(point)
            num_assigned += 1
        elif len(enclosing) > 1:
            num_ambiguous += 1

    logger.debug(
        "Associated %d/%d LiDAR points with %d boxes (%d ambiguous)",
        num_assigned, len(lidar_points), len(bounding_boxes), num_ambiguous,
    )


def match_displacement(match: Any, kpts_prev: Sequence[Any], kpts_curr: Sequence[Any]) -> float:
    """Pixel distance a matched keypoint moved between the two frames."""
    prev_pt = kpts_prev[match.queryIdx].pt
    curr_pt = kpts_curr[match.trainIdx].pt
    return float(np.hypot(curr_pt[0] - prev_pt[0], curr_pt[1] - prev_pt[1]))


def cluster_kpt_matches_with_roi(
    bounding_box: BoundingBox,
    kpts_prev: Sequence[Any],
    kpts_curr: Sequence[Any],
    kpt_matches: Sequence[Any],
    outlier_factor: float = 2.0,
) -> None:
    """
    Associate a bounding box with the keypoint matches it contains.

    Matches whose current keypoint lies inside the box ROI are collected.
    Matches whose displacement is at least ``outlier_factor`` times the
    mean displacement of the collected set are then discarded. The mean is
    computed once, before any removal.

    Updates ``bounding_box.kpt_matches`` and ``bounding_box.keypoints``.

    Args:
        bounding_box: Box of the current frame.
        kpts_prev: Keypoints of the previous frame.
        kpts_curr: Keypoints of the current frame.
        kpt_matches: Matches between the two frames.
        outlier_factor: Multiple of the mean displacement treated as outlier.
    """
    for match in kpt_matches:
        if bounding_box.contains(kpts_curr[match.trainIdx].pt):
            bounding_box.kpt_matches.append(match)

    if not bounding_box.kpt_matches:
        logger.debug("Box %d: no keypoint matches inside ROI", bounding_box.box_id)
        return

    distances = np.array([
        match_displacement(m, kpts_prev, kpts_curr) for m in bounding_box.kpt_matches
    ])
    threshold = outlier_factor * distances.mean()

    kept = [m for m, d in zip(bounding_box.kpt_matches, distances) if d < threshold]

    logger.debug(
        "Box %d: kept %d/%d keypoint matches (threshold %.2f px)",
        bounding_box.box_id, len(kept), len(bounding_box.kpt_matches), threshold,
    )

    bounding_box.kpt_matches[:] = kept
    bounding_box.keypoints = [kpts_curr[m.trainIdx] for m in kept]

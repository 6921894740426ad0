"""
Time-to-Collision (TTC) Estimation from Camera and LiDAR.

Both estimators assume a constant relative velocity between ego vehicle
and the object ahead over one frame interval dT = 1 / frame_rate.

Camera (scale change):
======================
For two keypoints on the object at distances h0 (previous) and h1 (current)
in the image, the pinhole model gives d0 / d1 = h1 / h0. With the ratio
r = h1 / h0 and constant velocity:

    TTC = -dT / (1 - r)

The median ratio over all keypoint pairs is used, so single mismatched
keypoints barely move the estimate.

LiDAR (range change):
=====================
With d0, d1 the ranges to the object in the previous and current frame:

    TTC = d1 * dT / (d0 - d1)

The mean forward distance of the object's points stands in for the range,
after points deviating by a fixed fraction of the mean are trimmed.

Sentinels:
==========
No exception is raised for insufficient data. ``nan`` means "no estimate";
``inf`` or a negative value means the object is not approaching. Use
:func:`is_valid_ttc` before trusting a value.
"""

import math
from itertools import combinations
from typing import Any, List, Optional, Sequence

import numpy as np

from ..data.structures import RangePoint
from ..utils.logger import TTCRecorder, get_logger

logger = get_logger(__name__)

MIN_KEYPOINT_DISTANCE = 90.0  # pixels
LIDAR_OUTLIER_PERCENT = 0.03


def is_valid_ttc(ttc: Optional[float]) -> bool:
    """Whether a TTC value is a usable estimate (finite and positive)."""
    return ttc is not None and math.isfinite(ttc) and ttc > 0


# =============================================================================
# Camera
# =============================================================================

def compute_distance_ratios(
    kpts_prev: Sequence[Any],
    kpts_curr: Sequence[Any],
    kpt_matches: Sequence[Any],
    min_dist: float = MIN_KEYPOINT_DISTANCE,
) -> List[float]:
    """
    Compute keypoint-pair distance ratios between two frames.

    For every unordered pair of matches the ratio distCurr / distPrev is
    kept when distPrev is non-zero and distCurr is at least ``min_dist``.

    Args:
        kpts_prev: Keypoints of the previous frame.
        kpts_curr: Keypoints of the current frame.
        kpt_matches: Matches belonging to one object.
        min_dist: Minimum current-frame separation in pixels.

    Returns:
        List of distance ratios, in pair order.
    """
    eps = np.finfo(np.float64).eps
    ratios = []

    for m1, m2 in combinations(kpt_matches, 2):
        curr1, curr2 = kpts_curr[m1.trainIdx].pt, kpts_curr[m2.trainIdx].pt
        prev1, prev2 = kpts_prev[m1.queryIdx].pt, kpts_prev[m2.queryIdx].pt

        dist_curr = math.hypot(curr1[0] - curr2[0], curr1[1] - curr2[1])
        dist_prev = math.hypot(prev1[0] - prev2[0], prev1[1] - prev2[1])

        if dist_prev > eps and dist_curr >= min_dist:
            ratios.append(dist_curr / dist_prev)

    return ratios


def ttc_from_distance_ratios(ratios: Sequence[float], frame_rate: float) -> float:
    """
    Turn distance ratios into a TTC using their median.

    Args:
        ratios: Distance ratios (current / previous).
        frame_rate: Frame rate in Hz.

    Returns:
        TTC in seconds; nan if ``ratios`` is empty.
    """
    if len(ratios) == 0:
        return float("nan")

    median_ratio = float(np.median(ratios))
    dT = 1.0 / frame_rate

    # Limit of -dT / (1 - m) as m -> 1 from below; float division by zero raises.
    if median_ratio == 1.0:
        return -math.inf

    return -dT / (1.0 - median_ratio)


def compute_ttc_camera(
    kpts_prev: Sequence[Any],
    kpts_curr: Sequence[Any],
    kpt_matches: Sequence[Any],
    frame_rate: float,
    min_dist: float = MIN_KEYPOINT_DISTANCE,
    recorder: Optional[TTCRecorder] = None,
) -> float:
    """
    Compute TTC from keypoint correspondences in successive images.

    Args:
        kpts_prev: Keypoints of the previous frame.
        kpts_curr: Keypoints of the current frame.
        kpt_matches: Matches belonging to one object.
        frame_rate: Frame rate in Hz.
        min_dist: Minimum current-frame keypoint separation in pixels.
        recorder: Optional sink for the estimate.

    Returns:
        TTC in seconds, or nan if no keypoint pair qualifies.
    """
    ratios = compute_distance_ratios(kpts_prev, kpts_curr, kpt_matches, min_dist)

    if not ratios:
        logger.debug("Camera TTC: no qualifying keypoint pairs in %d matches", len(kpt_matches))
        return float("nan")

    ttc = ttc_from_distance_ratios(ratios, frame_rate)

    if recorder is not None:
        recorder.record("camera", ttc)

    return ttc


# =============================================================================
# LiDAR
# =============================================================================

def mean_forward_distance(points: Sequence[RangePoint]) -> float:
    """Mean x (forward distance) of a point set; nan when empty."""
    if len(points) == 0:
        return float("nan")
    return float(np.mean([p.x for p in points]))


def trim_range_outliers(
    points: List[RangePoint],
    percent: float = LIDAR_OUTLIER_PERCENT,
) -> int:
    """
    Remove points whose forward distance is far from the mean.

    A point is removed when ``|x - mean| >= percent * mean``. The list is
    rebuilt and written back in place.

    Args:
        points: Points of one object; modified in place.
        percent: Allowed deviation as a fraction of the mean.

    Returns:
        Number of points removed.
    """
    if not points:
        return 0

    mean_x = mean_forward_distance(points)
    kept = [p for p in points if abs(mean_x - p.x) < percent * mean_x]
    removed = len(points) - len(kept)
    points[:] = kept

    return removed


def compute_ttc_lidar(
    lidar_points_prev: List[RangePoint],
    lidar_points_curr: List[RangePoint],
    frame_rate: float,
    outlier_percent: float = LIDAR_OUTLIER_PERCENT,
    recorder: Optional[TTCRecorder] = None,
) -> float:
    """
    Compute TTC from the change in mean forward distance of LiDAR points.

    Both point lists are trimmed in place before the means are taken.

    Args:
        lidar_points_prev: Object points in the previous frame.
        lidar_points_curr: Object points in the current frame.
        frame_rate: Frame rate in Hz.
        outlier_percent: Trim threshold as a fraction of the mean.
        recorder: Optional sink for the estimate.

    Returns:
        TTC in seconds. nan if either set is empty (before or after
        trimming), inf if the mean distance did not change.
    """
    removed_prev = trim_range_outliers(lidar_points_prev, outlier_percent)
    removed_curr = trim_range_outliers(lidar_points_curr, outlier_percent)

    if not lidar_points_prev or not lidar_points_curr:
        logger.debug(
            "LiDAR TTC: empty point set (prev=%d, curr=%d)",
            len(lidar_points_prev), len(lidar_points_curr),
        )
        return float("nan")

    mean_prev = mean_forward_distance(lidar_points_prev)
    mean_curr = mean_forward_distance(lidar_points_curr)
    diff = mean_prev - mean_curr

    logger.debug(
        "LiDAR TTC: mean x %.3f -> %.3f m (trimmed %d/%d points)",
        mean_prev, mean_curr, removed_prev, removed_curr,
    )

    if diff == 0:
        ttc = math.inf
    else:
        ttc = mean_curr * (1.0 / frame_rate) / diff

    if recorder is not None:
        recorder.record("lidar", ttc)

    return ttc

"""LiDAR point loading and ego-lane cropping for Velodyne data."""

from pathlib import Path
from typing import List, Union

import numpy as np

from ..data.structures import RangePoint


def load_lidar_points(path: Union[str, Path]) -> List[RangePoint]:
    """
    Load a KITTI Velodyne scan.

    Args:
        path: ``.bin`` file of float32 (x, y, z, reflectivity) records.

    Returns:
        List of RangePoint.

    Raises:
        FileNotFoundError: If the file doesn't exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Point cloud not found: {path}")

    points = np.fromfile(str(path), dtype=np.float32).reshape(-1, 4)
    return points_from_array(points)


def points_from_array(points: np.ndarray) -> List[RangePoint]:
    """
    Convert an (N, 3) or (N, 4) array to RangePoints.

    A missing reflectivity column is filled with zeros.
    """
    points = np.atleast_2d(np.asarray(points, dtype=np.float64))
    if points.size == 0:
        return []
    if points.shape[1] == 3:
        points = np.hstack([points, np.zeros((len(points), 1))])

    return [RangePoint(float(x), float(y), float(z), float(r)) for x, y, z, r in points[:, :4]]


def crop_lidar_points(
    lidar_points: List[RangePoint],
    min_x: float = 2.0,
    max_x: float = 20.0,
    max_y: float = 2.0,
    min_z: float = -1.5,
    max_z: float = -0.9,
    min_r: float = 0.1,
) -> List[RangePoint]:
    """
    Keep only points on the ego lane ahead of the vehicle.

    Args:
        lidar_points: Points in the sensor frame.
        min_x: Minimum forward distance (m).
        max_x: Maximum forward distance (m).
        max_y: Maximum lateral offset to either side (m).
        min_z: Minimum height (m); removes the road surface.
        max_z: Maximum height (m).
        min_r: Minimum reflectivity; removes weak returns.

    Returns:
        New list with the points inside the crop.
    """
    return [
        p for p in lidar_points
        if min_x <= p.x <= max_x
        and abs(p.y) <= max_y
        and min_z <= p.z <= max_z
        and p.r >= min_r
    ]

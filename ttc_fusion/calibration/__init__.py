"""
Calibration for projecting LiDAR points into the camera image.

Classes:
    ProjectionCalibration: Fixed P_rect, R_rect and RT matrices.

Standalone Functions:
    project_point: Project one LiDAR point to a pixel.
    project_points: Project an (N, 3) array of LiDAR points.
    read_calib_file: Parse a KITTI ``key: values`` calibration file.

Example Usage:
    >>> from ttc_fusion.calibration import ProjectionCalibration, project_point
    >>> calib = ProjectionCalibration.from_kitti_calib("path/to/calib.txt")
    >>> u, v = project_point((10.0, 0.0, -1.0), calib)
"""

from .projection import (
    ProjectionCalibration,
    project_point,
    project_points,
    read_calib_file,
)

__all__ = [
    "ProjectionCalibration",
    "project_point",
    "project_points",
    "read_calib_file",
]

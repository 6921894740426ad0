"""
LiDAR-to-Image Projection Module.

This module maps LiDAR points into camera pixel coordinates using the fixed
KITTI calibration chain.

Mathematical Background:
========================

Full Projection Pipeline:
-------------------------
A LiDAR point X = [x, y, z, 1]^T (homogeneous, Velodyne frame) maps to

    Y = P_rect * R_rect * RT * X

where:
    - RT:     4x4 rigid transform Velodyne -> unrectified camera
    - R_rect: 4x4 rectifying rotation (3x3 padded with a unit row/column)
    - P_rect: 3x4 projection matrix of the rectified camera

Perspective division then gives the pixel:

    u = Y[0] / Y[2]
    v = Y[1] / Y[2]

Points behind the camera (Y[2] <= 0) still produce a pixel; filtering them
is the caller's job (cropping to the ego lane ahead keeps them out).

KITTI Calibration Files:
========================
Object benchmark (``calib/000000.txt``):
    P2: 12 values (3x4), R0_rect: 9 values (3x3), Tr_velo_to_cam: 12 values (3x4)

Raw recordings:
    calib_cam_to_cam.txt: P_rect_0X (3x4), R_rect_00 (3x3)
    calib_velo_to_cam.txt: R (3x3), T (3,)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Sequence, Tuple, Union

import numpy as np


def _to_homogeneous_4x4(matrix: np.ndarray) -> np.ndarray:
    """Pad a 3x3 or 3x4 matrix to 4x4 with a unit bottom-right entry."""
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.shape == (4, 4):
        return matrix
    out = np.eye(4, dtype=np.float64)
    if matrix.shape == (3, 3):
        out[:3, :3] = matrix
    elif matrix.shape == (3, 4):
        out[:3, :4] = matrix
    else:
        raise ValueError(f"Expected 3x3, 3x4 or 4x4 matrix, got {matrix.shape}")
    return out


def read_calib_file(calib_file: Union[str, Path]) -> Dict[str, np.ndarray]:
    """
    Read a KITTI-style ``key: values`` calibration file.

    Lines whose values are not numeric (e.g. ``calib_time``) are skipped.

    Args:
        calib_file: Path to calibration file.

    Returns:
        Dictionary mapping keys to flat float arrays.

    Raises:
        FileNotFoundError: If calibration file doesn't exist.
    """
    calib_file = Path(calib_file)
    if not calib_file.exists():
        raise FileNotFoundError(f"Calibration file not found: {calib_file}")

    calibs = {}
    with open(calib_file, "r") as f:
        for line in f:
            if ":" not in line:
                continue
            key, value = line.split(":", 1)
            try:
                calibs[key.strip()] = np.array([float(x) for x in value.split()])
            except ValueError:
                continue

    return calibs


@dataclass
class ProjectionCalibration:
    """
    Fixed matrices projecting LiDAR points into the camera image.

    Attributes:
        P_rect: 3x4 projection matrix of the rectified camera.
        R_rect: 4x4 rectification matrix.
        RT: 4x4 Velodyne-to-camera rigid transform.

    Example:
        >>> calib = ProjectionCalibration.from_kitti_calib("calib/000000.txt")
        >>> u, v = project_point((10.0, 0.0, -1.0), calib)
    """

    P_rect: np.ndarray
    R_rect: np.ndarray
    RT: np.ndarray

    def __post_init__(self):
        """Normalize shapes."""
        self.P_rect = np.asarray(self.P_rect, dtype=np.float64)
        if self.P_rect.shape != (3, 4):
            raise ValueError(f"P_rect must be 3x4, got {self.P_rect.shape}")
        self.R_rect = _to_homogeneous_4x4(self.R_rect)
        self.RT = _to_homogeneous_4x4(self.RT)

    @property
    def matrix(self) -> np.ndarray:
        """Combined 3x4 matrix P_rect @ R_rect @ RT."""
        return self.P_rect @ self.R_rect @ self.RT

    @classmethod
    def from_kitti_calib(
        cls,
        calib_file: Union[str, Path],
        camera_id: int = 2,
    ) -> "ProjectionCalibration":
        """
        Load from a KITTI object-benchmark calibration file.

        Args:
            calib_file: Path to calibration file.
            camera_id: Camera index (2 = left color camera).

        Raises:
            KeyError: If a required matrix is missing.
        """
        calibs = read_calib_file(calib_file)

        p_key = f"P{camera_id}"
        if p_key not in calibs:
            raise KeyError(f"Camera {p_key} not found in calibration")
        if "R0_rect" not in calibs:
            raise KeyError("R0_rect not found in calibration")

        for key in ["Tr_velo_to_cam", "Tr_velo_cam", "Tr_velo2cam"]:
            if key in calibs:
                velo_to_cam = calibs[key]
                break
        else:
            raise KeyError("Tr_velo_to_cam not found in calibration")

        return cls(
            P_rect=calibs[p_key].reshape(3, 4),
            R_rect=calibs["R0_rect"].reshape(3, 3),
            RT=velo_to_cam.reshape(3, 4),
        )

    @classmethod
    def from_kitti_raw(
        cls,
        cam_to_cam_file: Union[str, Path],
        velo_to_cam_file: Union[str, Path],
        camera_id: int = 0,
    ) -> "ProjectionCalibration":
        """
        Load from the two calibration files of a KITTI raw recording.

        Args:
            cam_to_cam_file: Path to ``calib_cam_to_cam.txt``.
            velo_to_cam_file: Path to ``calib_velo_to_cam.txt``.
            camera_id: Camera index for ``P_rect_0X``.

        Raises:
            KeyError: If a required matrix is missing.
        """
        cam = read_calib_file(cam_to_cam_file)
        velo = read_calib_file(velo_to_cam_file)

        p_key = f"P_rect_{camera_id:02d}"
        for key in (p_key, "R_rect_00"):
            if key not in cam:
                raise KeyError(f"{key} not found in {cam_to_cam_file}")
        for key in ("R", "T"):
            if key not in velo:
                raise KeyError(f"{key} not found in {velo_to_cam_file}")

        RT = np.hstack([velo["R"].reshape(3, 3), velo["T"].reshape(3, 1)])

        return cls(
            P_rect=cam[p_key].reshape(3, 4),
            R_rect=cam["R_rect_00"].reshape(3, 3),
            RT=RT,
        )


def project_point(
    point: Union[Sequence[float], object],
    calibration: ProjectionCalibration,
) -> Tuple[float, float]:
    """
    Project one LiDAR point to pixel coordinates.

    Args:
        point: Object with x, y, z attributes (e.g. RangePoint) or a sequence
            whose first three entries are x, y, z.
        calibration: Projection matrices.

    Returns:
        (u, v) pixel coordinates.
    """
    if hasattr(point, "x"):
        X = np.array([point.x, point.y, point.z, 1.0])
    else:
        X = np.array([point[0], point[1], point[2], 1.0], dtype=np.float64)

    Y = calibration.matrix @ X
    return float(Y[0] / Y[2]), float(Y[1] / Y[2])


def project_points(
    points: np.ndarray,
    calibration: ProjectionCalibration,
) -> np.ndarray:
    """
    Project many LiDAR points to pixel coordinates.

    Args:
        points: (N, 3) or (N, 4) array; a 4th column (reflectivity) is ignored.
        calibration: Projection matrices.

    Returns:
        (N, 2) array of pixel coordinates.
    """
    points = np.atleast_2d(np.asarray(points, dtype=np.float64))
    if len(points) == 0:
        return np.zeros((0, 2))

    points_hom = np.hstack([points[:, :3], np.ones((len(points), 1))])
    points_img = points_hom @ calibration.matrix.T

    return points_img[:, :2] / points_img[:, 2:3]

"""Shared fixtures for the TTC fusion tests."""

import numpy as np
import pytest


# Camera looking along the LiDAR x axis: f = 100 px, principal point (50, 50).
# A LiDAR point (x, y, z) lands on u = 50 - 100 * y / x, v = 50 - 100 * z / x.
LIDAR_TO_CAMERA = np.array([
    [0.0, -1.0, 0.0, 0.0],
    [0.0, 0.0, -1.0, 0.0],
    [1.0, 0.0, 0.0, 0.0],
])

SIMPLE_P_RECT = np.array([
    [100.0, 0.0, 50.0, 0.0],
    [0.0, 100.0, 50.0, 0.0],
    [0.0, 0.0, 1.0, 0.0],
])


@pytest.fixture
def simple_calibration():
    """Calibration with identity rectification and axis-swapping extrinsics."""
    from ttc_fusion.calibration.projection import ProjectionCalibration

    return ProjectionCalibration(
        P_rect=SIMPLE_P_RECT,
        R_rect=np.eye(3),
        RT=LIDAR_TO_CAMERA,
    )


@pytest.fixture
def point_at_pixel():
    """Factory for a RangePoint that projects onto a given pixel."""
    from ttc_fusion.data.structures import RangePoint

    def _make(u, v, depth=10.0, r=0.5):
        return RangePoint(
            x=depth,
            y=-(u - 50.0) * depth / 100.0,
            z=-(v - 50.0) * depth / 100.0,
            r=r,
        )

    return _make

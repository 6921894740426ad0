"""Tests for LiDAR-to-image projection."""

import numpy as np
import pytest


KITTI_CALIB = """P0: 7.215377e+02 0.000000e+00 6.095593e+02 0.000000e+00 0.000000e+00 7.215377e+02 1.728540e+02 0.000000e+00 0.000000e+00 0.000000e+00 1.000000e+00 0.000000e+00
P1: 7.215377e+02 0.000000e+00 6.095593e+02 -3.875744e+02 0.000000e+00 7.215377e+02 1.728540e+02 0.000000e+00 0.000000e+00 0.000000e+00 1.000000e+00 0.000000e+00
P2: 7.215377e+02 0.000000e+00 6.095593e+02 4.485728e+01 0.000000e+00 7.215377e+02 1.728540e+02 2.163791e-01 0.000000e+00 0.000000e+00 1.000000e+00 2.745884e-03
P3: 7.215377e+02 0.000000e+00 6.095593e+02 -3.395242e+02 0.000000e+00 7.215377e+02 1.728540e+02 2.199936e+00 0.000000e+00 0.000000e+00 1.000000e+00 2.729905e-03
R0_rect: 9.999239e-01 9.837760e-03 -7.445048e-03 -9.869795e-03 9.999421e-01 -4.278459e-03 7.402527e-03 4.351614e-03 9.999631e-01
Tr_velo_to_cam: 7.533745e-03 -9.999714e-01 -6.166020e-04 -4.069766e-03 1.480249e-02 7.280733e-04 -9.998902e-01 -7.631618e-02 9.998621e-01 7.523790e-03 1.480755e-02 -2.717806e-01
"""

CAM_TO_CAM = """calib_time: 09-Jan-2012 13:57:47
corner_dist: 9.950000e-02
R_rect_00: 9.999239e-01 9.837760e-03 -7.445048e-03 -9.869795e-03 9.999421e-01 -4.278459e-03 7.402527e-03 4.351614e-03 9.999631e-01
P_rect_00: 7.215377e+02 0.000000e+00 6.095593e+02 0.000000e+00 0.000000e+00 7.215377e+02 1.728540e+02 0.000000e+00 0.000000e+00 0.000000e+00 1.000000e+00 0.000000e+00
"""

VELO_TO_CAM = """calib_time: 15-Mar-2012 11:37:16
R: 7.533745e-03 -9.999714e-01 -6.166020e-04 1.480249e-02 7.280733e-04 -9.998902e-01 9.998621e-01 7.523790e-03 1.480755e-02
T: -4.069766e-03 -7.631618e-02 -2.717806e-01
delta_f: 0.000000e+00 0.000000e+00
"""


# =============================================================================
# Test Projection
# =============================================================================

class TestProjectPoint:
    """Test single-point projection."""

    def test_point_straight_ahead_hits_principal_point(self, simple_calibration):
        """A point on the optical axis projects to (cx, cy)."""
        from ttc_fusion.calibration.projection import project_point

        u, v = project_point((10.0, 0.0, 0.0), simple_calibration)

        assert np.isclose(u, 50.0)
        assert np.isclose(v, 50.0)

    def test_left_and_up_map_to_image_left_and_top(self, simple_calibration):
        """LiDAR y (left) decreases u, LiDAR z (up) decreases v."""
        from ttc_fusion.calibration.projection import project_point

        # u = 50 - 100 * 1 / 10 = 40, v = 50 - 100 * 2 / 10 = 30
        u, v = project_point((10.0, 1.0, 2.0), simple_calibration)

        assert np.isclose(u, 40.0)
        assert np.isclose(v, 30.0)

    def test_accepts_range_point(self, simple_calibration):
        """RangePoint attributes are used instead of indexing."""
        from ttc_fusion.calibration.projection import project_point
        from ttc_fusion.data.structures import RangePoint

        u, v = project_point(RangePoint(20.0, -2.0, 0.0, 0.3), simple_calibration)

        assert np.isclose(u, 60.0)
        assert np.isclose(v, 50.0)

    def test_distance_moves_pixel_monotonically(self, simple_calibration):
        """Moving an off-axis point away pulls its pixel toward the center."""
        from ttc_fusion.calibration.projection import project_point

        us = [project_point((d, -1.0, 0.0), simple_calibration)[0] for d in [5.0, 10.0, 20.0, 40.0]]

        assert all(u > 50.0 for u in us)
        assert all(a > b for a, b in zip(us, us[1:]))

    def test_kitti_point_ahead_lands_near_image_center(self):
        """With real KITTI calibration a point ahead lands inside the image."""
        from ttc_fusion.calibration.projection import ProjectionCalibration, project_point

        P2 = np.array([float(x) for x in KITTI_CALIB.splitlines()[2].split()[1:]]).reshape(3, 4)
        R0 = np.array([float(x) for x in KITTI_CALIB.splitlines()[4].split()[1:]]).reshape(3, 3)
        Tr = np.array([float(x) for x in KITTI_CALIB.splitlines()[5].split()[1:]]).reshape(3, 4)
        calib = ProjectionCalibration(P_rect=P2, R_rect=R0, RT=Tr)

        u, v = project_point((15.0, 0.0, 0.0), calib)

        assert 0 <= u < 1242
        assert 0 <= v < 375
        assert abs(u - 609.6) < 30


class TestProjectPoints:
    """Test batch projection."""

    def test_batch_matches_single(self, simple_calibration):
        """Vectorised projection agrees with the scalar version."""
        from ttc_fusion.calibration.projection import project_point, project_points

        points = np.array([
            [10.0, 0.0, 0.0, 0.1],
            [10.0, 1.0, 2.0, 0.2],
            [5.0, -0.5, -0.2, 0.3],
        ])

        pixels = project_points(points, simple_calibration)

        assert pixels.shape == (3, 2)
        for point, pixel in zip(points, pixels):
            assert np.allclose(pixel, project_point(point, simple_calibration))

    def test_empty_input(self, simple_calibration):
        """No points give an empty (0, 2) array."""
        from ttc_fusion.calibration.projection import project_points

        assert project_points(np.zeros((0, 3)), simple_calibration).shape == (0, 2)


# =============================================================================
# Test Calibration Loading
# =============================================================================

class TestProjectionCalibration:
    """Test construction and loading of the calibration matrices."""

    def test_pads_matrices_to_4x4(self, simple_calibration):
        """R_rect and RT are stored as 4x4 homogeneous matrices."""
        assert simple_calibration.R_rect.shape == (4, 4)
        assert simple_calibration.RT.shape == (4, 4)
        assert np.allclose(simple_calibration.RT[3], [0, 0, 0, 1])
        assert simple_calibration.matrix.shape == (3, 4)

    def test_rejects_bad_projection_shape(self):
        """P_rect must be 3x4."""
        from ttc_fusion.calibration.projection import ProjectionCalibration

        with pytest.raises(ValueError):
            ProjectionCalibration(P_rect=np.eye(3), R_rect=np.eye(3), RT=np.eye(4))

    def test_from_kitti_calib(self, tmp_path):
        """Object-benchmark calibration files are parsed."""
        from ttc_fusion.calibration.projection import ProjectionCalibration

        calib_file = tmp_path / "000000.txt"
        calib_file.write_text(KITTI_CALIB)

        calib = ProjectionCalibration.from_kitti_calib(calib_file)

        assert np.isclose(calib.P_rect[0, 3], 4.485728e+01)
        assert np.isclose(calib.R_rect[0, 0], 9.999239e-01)
        assert np.isclose(calib.RT[2, 3], -2.717806e-01)

    def test_from_kitti_calib_missing_file(self):
        """Missing calibration file raises FileNotFoundError."""
        from ttc_fusion.calibration.projection import ProjectionCalibration

        with pytest.raises(FileNotFoundError):
            ProjectionCalibration.from_kitti_calib("/nonexistent/calib.txt")

    def test_from_kitti_calib_missing_key(self, tmp_path):
        """Missing velodyne transform raises KeyError."""
        from ttc_fusion.calibration.projection import ProjectionCalibration

        calib_file = tmp_path / "000000.txt"
        calib_file.write_text("\n".join(KITTI_CALIB.splitlines()[:5]))

        with pytest.raises(KeyError):
            ProjectionCalibration.from_kitti_calib(calib_file)

    def test_from_kitti_raw_skips_non_numeric_lines(self, tmp_path):
        """Raw recording calibration files (with calib_time) are parsed."""
        from ttc_fusion.calibration.projection import ProjectionCalibration

        cam_file = tmp_path / "calib_cam_to_cam.txt"
        velo_file = tmp_path / "calib_velo_to_cam.txt"
        cam_file.write_text(CAM_TO_CAM)
        velo_file.write_text(VELO_TO_CAM)

        calib = ProjectionCalibration.from_kitti_raw(cam_file, velo_file)

        assert np.isclose(calib.P_rect[0, 0], 7.215377e+02)
        assert np.isclose(calib.RT[0, 3], -4.069766e-03)
        assert np.isclose(calib.RT[1, 2], -9.998902e-01)

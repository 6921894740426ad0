"""Tests for the frame-pair TTC pipeline."""

import math

import cv2
import pytest


@pytest.fixture
def frame_pair(point_at_pixel):
    """An object 10 m ahead closing in to 9.5 m, plus an unrelated box."""
    from ttc_fusion.data.structures import BoundingBox, DataFrame

    prev_pts = [(40, 40), (160, 40), (40, 160), (160, 160)]
    curr_pts = [(100 + 1.1 * (x - 100), 100 + 1.1 * (y - 100)) for x, y in prev_pts]

    prev_frame = DataFrame(
        keypoints=[cv2.KeyPoint(float(x), float(y), 7.0) for x, y in prev_pts],
        bounding_boxes=[
            BoundingBox(box_id=0, roi=(0, 0, 200, 200)),
            BoundingBox(box_id=1, roi=(400, 400, 50, 50)),
        ],
        lidar_points=[point_at_pixel(100, 100, d) for d in (9.95, 10.0, 10.05)]
        + [point_at_pixel(425, 425, 30.0)],
    )
    curr_frame = DataFrame(
        keypoints=[cv2.KeyPoint(float(x), float(y), 7.0) for x, y in curr_pts],
        bounding_boxes=[
            BoundingBox(box_id=0, roi=(0, 0, 200, 200)),
            BoundingBox(box_id=1, roi=(400, 400, 50, 50)),
        ],
        lidar_points=[point_at_pixel(100, 100, d) for d in (9.45, 9.5, 9.55)],
        kpt_matches=[cv2.DMatch(i, i, 0.0) for i in range(len(prev_pts))],
    )
    return prev_frame, curr_frame


@pytest.fixture
def pipeline(simple_calibration):
    from ttc_fusion.fusion.pipeline import TTCPipeline
    from ttc_fusion.utils.config_loader import FusionConfig

    return TTCPipeline(FusionConfig(), simple_calibration)


class TestTTCPipeline:
    """Tests for TTCPipeline."""

    def test_prepare_frame_assigns_lidar_points(self, pipeline, frame_pair):
        """LiDAR points are associated with the box they project into."""
        prev_frame, _ = frame_pair

        pipeline.prepare_frame(prev_frame)

        assert len(prev_frame.bounding_boxes[0].lidar_points) == 3
        assert len(prev_frame.bounding_boxes[1].lidar_points) == 1

    def test_process_estimates_both_ttcs(self, pipeline, frame_pair):
        """The matched object gets LiDAR and camera TTC."""
        prev_frame, curr_frame = frame_pair
        pipeline.prepare_frame(prev_frame)
        pipeline.prepare_frame(curr_frame)

        results = pipeline.process(prev_frame, curr_frame)

        assert curr_frame.bb_matches == {0: 0}
        assert len(results) == 1

        result = results[0]
        assert result.prev_box_id == 0 and result.curr_box_id == 0
        assert result.ttc_lidar == pytest.approx(1.9)
        assert result.ttc_camera == pytest.approx(1.0)
        assert result.lidar_valid and result.camera_valid
        assert result.num_kpt_matches == 4
        assert result.to_dict()["num_lidar_points_curr"] == 3

    def test_box_without_matches_gets_nan_camera_ttc(self, pipeline, frame_pair):
        """When clustering leaves no match the camera TTC is nan."""
        prev_frame, curr_frame = frame_pair
        pipeline.prepare_frame(prev_frame)
        pipeline.prepare_frame(curr_frame)
        pipeline.config.outlier_displacement_factor = 0.5

        results = pipeline.process(prev_frame, curr_frame)

        assert len(results) == 1
        assert results[0].num_kpt_matches == 0
        assert math.isnan(results[0].ttc_camera)
        assert not results[0].camera_valid
        assert results[0].lidar_valid

    def test_objects_without_lidar_are_skipped(self, pipeline, frame_pair):
        """Matched boxes without LiDAR support produce no result."""
        prev_frame, curr_frame = frame_pair
        curr_frame.lidar_points = []
        pipeline.prepare_frame(prev_frame)
        pipeline.prepare_frame(curr_frame)

        assert pipeline.process(prev_frame, curr_frame) == []
        assert curr_frame.bb_matches == {0: 0}

    def test_shared_current_box_is_clustered_once(self, pipeline, point_at_pixel):
        """Two previous boxes mapping to one current box see the same match set."""
        from ttc_fusion.data.structures import BoundingBox, DataFrame

        prev_pts = [(40, 40), (40, 160), (160, 40), (160, 160)]
        curr_pts = [(100 + 1.1 * (x - 100), 100 + 1.1 * (y - 100)) for x, y in prev_pts]
        depths_prev = (9.95, 10.0, 10.05)

        prev_frame = DataFrame(
            keypoints=[cv2.KeyPoint(float(x), float(y), 7.0) for x, y in prev_pts],
            bounding_boxes=[
                BoundingBox(box_id=0, roi=(0, 0, 100, 200)),
                BoundingBox(box_id=1, roi=(100, 0, 100, 200)),
            ],
            lidar_points=[point_at_pixel(50, 100, d) for d in depths_prev]
            + [point_at_pixel(150, 100, d) for d in depths_prev],
        )
        curr_frame = DataFrame(
            keypoints=[cv2.KeyPoint(float(x), float(y), 7.0) for x, y in curr_pts],
            bounding_boxes=[BoundingBox(box_id=0, roi=(0, 0, 200, 200))],
            lidar_points=[point_at_pixel(100, 100, d) for d in (9.45, 9.5, 9.55)],
            kpt_matches=[cv2.DMatch(i, i, 0.0) for i in range(len(prev_pts))],
        )
        pipeline.prepare_frame(prev_frame)
        pipeline.prepare_frame(curr_frame)

        results = pipeline.process(prev_frame, curr_frame)

        assert curr_frame.bb_matches == {0: 0, 1: 0}
        assert [r.num_kpt_matches for r in results] == [4, 4]
        assert len(curr_frame.bounding_boxes[0].kpt_matches) == 4
        assert len(curr_frame.bounding_boxes[0].lidar_points) == 3
        for result in results:
            assert result.ttc_lidar == pytest.approx(1.9)
            assert result.ttc_camera == pytest.approx(1.0)
            assert result.num_lidar_points_curr == 3

        again = pipeline.process(prev_frame, curr_frame)

        assert [r.num_kpt_matches for r in again] == [4, 4]

"""
Frame-pair TTC pipeline.

Ties the association, box matching and TTC estimators together the way a
driver loop processes a sequence:

    for each new frame:
        pipeline.prepare_frame(frame)              # LiDAR -> boxes
        results = pipeline.process(prev, frame)    # boxes matched, TTC per object

Detections, keypoints and keypoint matches must already be attached to the
frames. The pipeline keeps no state between calls.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..calibration.projection import ProjectionCalibration
from ..data.structures import DataFrame
from ..utils.config_loader import FusionConfig
from ..utils.logger import LoggerMixin, TTCRecorder
from .association import cluster_kpt_matches_with_roi, cluster_lidar_with_roi
from .box_matching import match_bounding_boxes
from .ttc import compute_ttc_camera, compute_ttc_lidar, is_valid_ttc


@dataclass
class TTCResult:
    """TTC estimates for one object tracked across a frame pair."""

    prev_box_id: int
    curr_box_id: int
    ttc_lidar: float
    ttc_camera: float
    num_lidar_points_prev: int = 0
    num_lidar_points_curr: int = 0
    num_kpt_matches: int = 0

    @property
    def lidar_valid(self) -> bool:
        """Whether the LiDAR estimate is usable."""
        return is_valid_ttc(self.ttc_lidar)

    @property
    def camera_valid(self) -> bool:
        """Whether the camera estimate is usable."""
        return is_valid_ttc(self.ttc_camera)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "prev_box_id": self.prev_box_id,
            "curr_box_id": self.curr_box_id,
            "ttc_lidar": self.ttc_lidar,
            "ttc_camera": self.ttc_camera,
            "num_lidar_points_prev": self.num_lidar_points_prev,
            "num_lidar_points_curr": self.num_lidar_points_curr,
            "num_kpt_matches": self.num_kpt_matches,
        }


class TTCPipeline(LoggerMixin):
    """
    Estimate camera and LiDAR TTC for every object matched across two frames.

    Example:
        >>> config = load_fusion_config("configs/default.yaml")
        >>> calib = ProjectionCalibration.from_kitti_calib("calib/000000.txt")
        >>> pipeline = TTCPipeline(config, calib)
        >>> pipeline.prepare_frame(prev_frame)
        >>> pipeline.prepare_frame(curr_frame)
        >>> for result in pipeline.process(prev_frame, curr_frame):
        ...     print(result.curr_box_id, result.ttc_lidar, result.ttc_camera)
    """

    def __init__(
        self,
        config: FusionConfig,
        calibration: ProjectionCalibration,
        recorder: Optional[TTCRecorder] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            config: Fusion parameters.
            calibration: LiDAR-to-image projection.
            recorder: Sink for TTC values; built from the config if None.
        """
        self.config = config
        self.calibration = calibration
        self.recorder = recorder or TTCRecorder(
            verbose=config.verbose,
            log_file=config.ttc_log_file,
        )

    def prepare_frame(self, frame: DataFrame) -> None:
        """Assign the frame's LiDAR points to its bounding boxes."""
        cluster_lidar_with_roi(
            frame.bounding_boxes,
            frame.lidar_points,
            self.config.shrink_factor,
            self.calibration,
        )

    def process(self, prev_frame: DataFrame, curr_frame: DataFrame) -> List[TTCResult]:
        """
        Match boxes between the frames and estimate TTC per matched object.

        ``curr_frame.kpt_matches`` must hold the matches from the previous
        frame's keypoints to the current frame's. The box mapping is stored
        in ``curr_frame.bb_matches``. Objects without LiDAR points in either
        frame are skipped. Box LiDAR points are left untouched; each current
        box has its keypoint matches clustered once per call, even when
        several previous boxes map to it.

        Args:
            prev_frame: Previous frame, already prepared.
            curr_frame: Current frame, already prepared.

        Returns:
            One TTCResult per matched object with LiDAR support.
        """
        curr_frame.bb_matches = match_bounding_boxes(
            curr_frame.kpt_matches, prev_frame, curr_frame
        )

        results = []
        clustered = set()
        for prev_id, curr_id in curr_frame.bb_matches.items():
            prev_box = prev_frame.get_box(prev_id)
            curr_box = curr_frame.get_box(curr_id)

            if not prev_box.lidar_points or not curr_box.lidar_points:
                self.logger.debug(
                    "Skipping boxes %d -> %d: no LiDAR points", prev_id, curr_id
                )
                continue

            # Several previous boxes can share one current box. Trim copies.
            prev_points = list(prev_box.lidar_points)
            curr_points = list(curr_box.lidar_points)
            ttc_lidar = compute_ttc_lidar(
                prev_points,
                curr_points,
                self.config.frame_rate,
                self.config.outlier_mean_percent,
                recorder=self.recorder,
            )

            if curr_id not in clustered:
                curr_box.keypoints = []
                curr_box.kpt_matches = []
                cluster_kpt_matches_with_roi(
                    curr_box,
                    prev_frame.keypoints,
                    curr_frame.keypoints,
                    curr_frame.kpt_matches,
                    self.config.outlier_displacement_factor,
                )
                clustered.add(curr_id)

            if curr_box.kpt_matches:
                ttc_camera = compute_ttc_camera(
                    prev_frame.keypoints,
                    curr_frame.keypoints,
                    curr_box.kpt_matches,
                    self.config.frame_rate,
                    self.config.min_distance_threshold,
                    recorder=self.recorder,
                )
            else:
                ttc_camera = float("nan")

            result = TTCResult(
                prev_box_id=prev_id,
                curr_box_id=curr_id,
                ttc_lidar=ttc_lidar,
                ttc_camera=ttc_camera,
                num_lidar_points_prev=len(prev_points),
                num_lidar_points_curr=len(curr_points),
                num_kpt_matches=len(curr_box.kpt_matches),
            )
            results.append(result)

            self.logger.debug(
                "Box %d -> %d: TTC lidar %.2f s, camera %.2f s",
                prev_id, curr_id, ttc_lidar, ttc_camera,
            )

        return results

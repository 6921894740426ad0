"""
Data structures shared by the TTC fusion pipeline.

Keypoints and keypoint matches come straight from OpenCV's feature
pipeline (``cv2.KeyPoint`` and ``cv2.DMatch``). A match's ``queryIdx``
indexes the previous frame's keypoints, ``trainIdx`` the current frame's.
Any object exposing the same attributes is accepted.

Coordinate Systems:
==================
  - LiDAR: x forward, y left, z up (meters)
  - Image: origin at top-left, u increases right, v increases down (pixels)
  - ROI: (x, y, width, height) with (x, y) the top-left corner
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class RangePoint:
    """Single LiDAR return in the sensor frame."""

    x: float  # forward (m)
    y: float  # left (m)
    z: float  # up (m)
    r: float = 0.0  # reflectivity


def roi_contains(roi: Sequence[float], point: Sequence[float]) -> bool:
    """
    Test whether a pixel lies inside a region.

    The test is half-open: the left and top edges belong to the region,
    the right and bottom edges do not.

    Args:
        roi: (x, y, width, height).
        point: (u, v) pixel coordinates.

    Returns:
        True if the point is inside.
    """
    x, y, w, h = roi
    u, v = point[0], point[1]
    return x <= u < x + w and y <= v < y + h


@dataclass
class BoundingBox:
    """
    2D detection together with the sensor data associated to it.

    Attributes:
        box_id: Identifier, unique within a frame.
        roi: (x, y, width, height) in pixels.
        class_id: Detector class ID.
        confidence: Detector confidence in [0, 1].
        lidar_points: LiDAR points whose projection falls into the box.
        keypoints: Keypoints inside the box.
        kpt_matches: Keypoint matches whose current keypoint is inside the box.
    """

    box_id: int
    roi: Tuple[float, float, float, float]
    class_id: int = -1
    confidence: float = 0.0
    lidar_points: List[RangePoint] = field(default_factory=list)
    keypoints: List[Any] = field(default_factory=list)
    kpt_matches: List[Any] = field(default_factory=list)

    def __post_init__(self):
        """Normalize roi to a float tuple."""
        if len(self.roi) != 4:
            raise ValueError(f"roi must be (x, y, width, height), got {self.roi}")
        self.roi = tuple(float(v) for v in self.roi)

    @classmethod
    def from_xyxy(
        cls,
        box_id: int,
        bbox: Sequence[float],
        class_id: int = -1,
        confidence: float = 0.0,
    ) -> "BoundingBox":
        """Create from [x1, y1, x2, y2] corner coordinates."""
        x1, y1, x2, y2 = (float(v) for v in bbox)
        return cls(
            box_id=box_id,
            roi=(x1, y1, x2 - x1, y2 - y1),
            class_id=class_id,
            confidence=confidence,
        )

    def contains(self, point: Sequence[float]) -> bool:
        """Whether the pixel lies inside the (unshrunk) ROI."""
        return roi_contains(self.roi, point)


@dataclass
class DataFrame:
    """
    Everything known about one camera/LiDAR frame.

    Attributes:
        keypoints: Ordered keypoints of the camera image.
        bounding_boxes: Detections of the camera image.
        lidar_points: LiDAR points of the frame (already cropped).
        descriptors: Keypoint descriptors, one row per keypoint.
        kpt_matches: Matches from the previous frame's keypoints to these.
        bb_matches: Previous box id -> box id of this frame.
        image: Optional camera image.
    """

    keypoints: List[Any] = field(default_factory=list)
    descriptors: Optional[np.ndarray] = None
    bounding_boxes: List[BoundingBox] = field(default_factory=list)
    lidar_points: List[RangePoint] = field(default_factory=list)
    kpt_matches: List[Any] = field(default_factory=list)
    bb_matches: Dict[int, int] = field(default_factory=dict)
    image: Optional[np.ndarray] = None

    def get_box(self, box_id: int) -> Optional[BoundingBox]:
        """Look up a bounding box by identifier."""
        for box in self.bounding_boxes:
            if box.box_id == box_id:
                return box
        return None

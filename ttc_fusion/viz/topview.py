"""
Top-down view of the LiDAR points associated with each bounding box.

Each box gets a color seeded by its id; its points are drawn together with
their enclosing rectangle and two labels (id and point count, closest
distance and lateral width). Horizontal markers every ``line_spacing``
meters give the distance scale.

Coordinate Mapping:
==================
  World (LiDAR): x forward, y left (meters)
  Image: row = height - x * height / world_height
         col = width / 2 - y * width / world_width
"""

from typing import List, Tuple

import cv2
import numpy as np

from ..data.structures import BoundingBox


def box_color(box_id: int) -> Tuple[int, int, int]:
    """Deterministic dark BGR color for a box id."""
    rng = np.random.default_rng(box_id)
    return tuple(int(c) for c in rng.integers(0, 150, size=3))


def world_to_topview(
    x: float,
    y: float,
    world_size: Tuple[float, float],
    image_size: Tuple[int, int],
) -> Tuple[int, int]:
    """
    Map a world position to top-view pixel coordinates.

    Args:
        x: Forward distance (m).
        y: Lateral offset, positive to the left (m).
        world_size: (width, height) of the viewed area in meters.
        image_size: (width, height) of the image in pixels.

    Returns:
        (col, row) pixel coordinates.
    """
    world_w, world_h = world_size
    img_w, img_h = image_size
    row = int(-x * img_h / world_h + img_h)
    col = int(-y * img_w / world_w + img_w / 2)
    return col, row


def render_top_view(
    bounding_boxes: List[BoundingBox],
    world_size: Tuple[float, float] = (4.0, 20.0),
    image_size: Tuple[int, int] = (2000, 2000),
    line_spacing: float = 2.0,
) -> np.ndarray:
    """
    Render the per-box LiDAR clusters as a top-down image.

    Args:
        bounding_boxes: Boxes with associated LiDAR points.
        world_size: (width, height) of the viewed area in meters.
        image_size: (width, height) of the output image in pixels.
        line_spacing: Distance between markers in meters.

    Returns:
        BGR image of shape (height, width, 3).
    """
    img_w, img_h = image_size
    topview = np.full((img_h, img_w, 3), 255, dtype=np.uint8)

    for box in bounding_boxes:
        if not box.lidar_points:
            continue

        color = box_color(box.box_id)
        pixels = [world_to_topview(p.x, p.y, world_size, image_size) for p in box.lidar_points]

        for col, row in pixels:
            cv2.circle(topview, (col, row), 4, color, -1)

        cols = [c for c, _ in pixels]
        rows = [r for _, r in pixels]
        left, right = min(cols), max(cols)
        top, bottom = min(rows), max(rows)
        cv2.rectangle(topview, (left, top), (right, bottom), (0, 0, 0), 2)

        xw_min = min(p.x for p in box.lidar_points)
        yw_span = max(p.y for p in box.lidar_points) - min(p.y for p in box.lidar_points)

        cv2.putText(
            topview, f"id={box.box_id}, #pts={len(box.lidar_points)}",
            (left - 250, bottom + 50), cv2.FONT_ITALIC, 2, color,
        )
        cv2.putText(
            topview, f"xmin={xw_min:.2f} m, yw={yw_span:.2f} m",
            (left - 250, bottom + 125), cv2.FONT_ITALIC, 2, color,
        )

    num_markers = int(np.floor(world_size[1] / line_spacing))
    for i in range(num_markers):
        _, row = world_to_topview(i * line_spacing, 0.0, world_size, image_size)
        cv2.line(topview, (0, row), (img_w, row), (255, 0, 0))

    return topview


def show_top_view(
    bounding_boxes: List[BoundingBox],
    world_size: Tuple[float, float] = (4.0, 20.0),
    image_size: Tuple[int, int] = (2000, 2000),
    wait: bool = True,
    window_name: str = "3D Objects",
) -> np.ndarray:
    """Render the top view and display it in an OpenCV window."""
    topview = render_top_view(bounding_boxes, world_size, image_size)

    cv2.namedWindow(window_name, cv2.WINDOW_NORMAL)
    cv2.imshow(window_name, topview)
    if wait:
        cv2.waitKey(0)

    return topview

"""Bounding box correspondence between consecutive frames by keypoint voting."""

from typing import Any, Dict, Sequence

import numpy as np

from ..data.structures import DataFrame
from ..utils.logger import get_logger

logger = get_logger(__name__)


def compute_vote_matrix(
    matches: Sequence[Any],
    prev_frame: DataFrame,
    curr_frame: DataFrame,
) -> np.ndarray:
    """
    Count keypoint matches shared by each pair of boxes.

    Cell (i, j) counts the matches whose previous keypoint lies in previous
    box i and whose current keypoint lies in current box j. A keypoint inside
    several overlapping boxes votes for every combination.

    Args:
        matches: Keypoint matches (queryIdx -> previous, trainIdx -> current).
        prev_frame: Previous frame with keypoints and bounding boxes.
        curr_frame: Current frame with keypoints and bounding boxes.

    Returns:
        Integer array of shape (num_prev_boxes, num_curr_boxes).
    """
    prev_boxes = prev_frame.bounding_boxes
    curr_boxes = curr_frame.bounding_boxes
    votes = np.zeros((len(prev_boxes), len(curr_boxes)), dtype=np.int64)

    if votes.size == 0:
        return votes

    for match in matches:
        pt_prev = prev_frame.keypoints[match.queryIdx].pt
        pt_curr = curr_frame.keypoints[match.trainIdx].pt

        rows = [i for i, box in enumerate(prev_boxes) if box.contains(pt_prev)]
        if not rows:
            continue
        cols = [j for j, box in enumerate(curr_boxes) if box.contains(pt_curr)]
        if not cols:
            continue

        votes[np.ix_(rows, cols)] += 1

    return votes


def match_bounding_boxes(
    matches: Sequence[Any],
    prev_frame: DataFrame,
    curr_frame: DataFrame,
) -> Dict[int, int]:
    """
    Find the current-frame box that best continues each previous-frame box.

    Each previous box is paired with the current box sharing the most
    keypoint matches; ties go to the current box listed first. Previous
    boxes sharing no match with any current box are left out.

    Args:
        matches: Keypoint matches between the two frames.
        prev_frame: Previous frame.
        curr_frame: Current frame.

    Returns:
        Mapping previous box_id -> current box_id.
    """
    votes = compute_vote_matrix(matches, prev_frame, curr_frame)

    bb_best_matches: Dict[int, int] = {}
    for i, row in enumerate(votes):
        if row.size == 0 or row.max() == 0:
            continue
        j = int(np.argmax(row))
        bb_best_matches[prev_frame.bounding_boxes[i].box_id] = curr_frame.bounding_boxes[j].box_id

    logger.debug(
        "Matched %d/%d previous boxes using %d keypoint matches",
        len(bb_best_matches), len(prev_frame.bounding_boxes), len(matches),
    )

    return bb_best_matches

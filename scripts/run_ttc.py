#!/usr/bin/env python3
"""
Camera/LiDAR TTC estimation over a recorded sequence.

The sequence file (YAML) lists, per frame, the camera image, the Velodyne
scan and the 2D detections:

    calib: calib/000000.txt
    frames:
      - image: image_02/0000000000.png
        lidar: velodyne/0000000000.bin
        boxes: [[x1, y1, x2, y2], ...]
      - ...

Keypoints are detected and matched with ORB and a brute-force Hamming
matcher. For every consecutive frame pair the script prints the LiDAR and
camera TTC of each tracked object.

Usage:
    python scripts/run_ttc.py --sequence data/sequence.yaml
    python scripts/run_ttc.py --sequence data/sequence.yaml --config configs/default.yaml
    python scripts/run_ttc.py --sequence data/sequence.yaml --show-topview --output results.json
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

import cv2
import yaml

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from ttc_fusion.calibration.projection import ProjectionCalibration
from ttc_fusion.data.structures import BoundingBox, DataFrame
from ttc_fusion.fusion.pipeline import TTCPipeline
from ttc_fusion.sensors.lidar import crop_lidar_points, load_lidar_points
from ttc_fusion.utils.config_loader import FusionConfig, load_fusion_config
from ttc_fusion.utils.logger import setup_logger
from ttc_fusion.viz.topview import show_top_view


def load_frame(entry: Dict[str, Any], base_dir: Path, config: FusionConfig, orb) -> DataFrame:
    """Load image, LiDAR scan and detections of one frame."""
    image = cv2.imread(str(base_dir / entry["image"]))
    if image is None:
        raise FileNotFoundError(f"Image not found: {base_dir / entry['image']}")

    gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    keypoints, descriptors = orb.detectAndCompute(gray, None)

    lidar_points = crop_lidar_points(load_lidar_points(base_dir / entry["lidar"]), **config.crop)

    boxes = [
        BoundingBox.from_xyxy(box_id, bbox)
        for box_id, bbox in enumerate(entry.get("boxes", []))
    ]

    frame = DataFrame(
        keypoints=list(keypoints),
        bounding_boxes=boxes,
        lidar_points=lidar_points,
        image=image,
        descriptors=descriptors,
    )
    return frame


def match_keypoints(prev_frame: DataFrame, curr_frame: DataFrame, matcher) -> List[Any]:
    """Match previous-frame descriptors (query) to current-frame ones (train)."""
    if prev_frame.descriptors is None or curr_frame.descriptors is None:
        return []
    return list(matcher.match(prev_frame.descriptors, curr_frame.descriptors))


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Camera/LiDAR time-to-collision estimation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--sequence",
        type=str,
        required=True,
        help="YAML file listing frames, scans and detections",
    )
    parser.add_argument(
        "--config",
        type=str,
        default="configs/default.yaml",
        help="Path to configuration file (default: configs/default.yaml)",
    )
    parser.add_argument(
        "--calib",
        type=str,
        default=None,
        help="KITTI calibration file (overrides the sequence file)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write per-pair results to this JSON file",
    )
    parser.add_argument(
        "--show-topview",
        action="store_true",
        help="Display the top view of LiDAR clusters for every frame",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every TTC estimate",
    )
    return parser.parse_args()


def main():
    """Main entry point."""
    args = parse_args()

    overrides = {"logging": {"verbose": True}} if args.verbose else None
    config = load_fusion_config(args.config, overrides)
    logger = setup_logger("ttc_fusion", level=config.log_level, log_file=config.log_file)

    sequence_path = Path(args.sequence)
    with open(sequence_path, "r") as f:
        sequence = yaml.safe_load(f)

    base_dir = sequence_path.parent
    calib_file = args.calib or base_dir / sequence["calib"]
    calibration = ProjectionCalibration.from_kitti_calib(calib_file)

    pipeline = TTCPipeline(config, calibration)
    orb = cv2.ORB_create(nfeatures=2000)
    matcher = cv2.BFMatcher(cv2.NORM_HAMMING, crossCheck=True)

    all_results = []
    prev_frame = None

    try:
        for idx, entry in enumerate(sequence["frames"]):
            curr_frame = load_frame(entry, base_dir, config, orb)
            pipeline.prepare_frame(curr_frame)

            if args.show_topview:
                show_top_view(curr_frame.bounding_boxes)

            if prev_frame is not None:
                curr_frame.kpt_matches = match_keypoints(prev_frame, curr_frame, matcher)
                results = pipeline.process(prev_frame, curr_frame)

                for result in results:
                    logger.info(
                        f"Frame {idx}: box {result.prev_box_id} -> {result.curr_box_id} | "
                        f"TTC lidar {result.ttc_lidar:.2f} s | TTC camera {result.ttc_camera:.2f} s"
                    )
                all_results.append({"frame": idx, "objects": [r.to_dict() for r in results]})

            prev_frame = curr_frame
    finally:
        pipeline.recorder.close()
        if args.show_topview:
            cv2.destroyAllWindows()

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(all_results, f, indent=2)
        logger.info(f"Saved results: {output_path}")


if __name__ == "__main__":
    main()

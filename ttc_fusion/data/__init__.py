"""Data structures for camera/LiDAR frames."""

from .structures import BoundingBox, DataFrame, RangePoint, roi_contains

__all__ = ["BoundingBox", "DataFrame", "RangePoint", "roi_contains"]

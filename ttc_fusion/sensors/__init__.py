"""LiDAR data loading."""

from .lidar import crop_lidar_points, load_lidar_points, points_from_array

__all__ = ["load_lidar_points", "points_from_array", "crop_lidar_points"]

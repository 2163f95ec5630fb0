"""Route geometry: path model, projection and progress splitting."""

from parade_tracker.route.models import GeoPoint, ProgressSplit, RoutePath, Waypoint
from parade_tracker.route.path import (
    build_path,
    haversine_km,
    nearest_point,
    point_at,
    project_distance,
    total_length,
)
from parade_tracker.route.splitter import ProgressSplitter, split
from parade_tracker.route.waypoints import load_waypoints, sanitize_waypoints

__all__ = [
    "GeoPoint",
    "ProgressSplit",
    "ProgressSplitter",
    "RoutePath",
    "Waypoint",
    "build_path",
    "haversine_km",
    "load_waypoints",
    "nearest_point",
    "point_at",
    "project_distance",
    "sanitize_waypoints",
    "split",
    "total_length",
]

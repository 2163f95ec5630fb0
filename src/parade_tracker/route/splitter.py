"""Progress splitting — cut a path into completed and upcoming parts."""

from __future__ import annotations

import math

from parade_tracker.route.models import GeoPoint, ProgressSplit, RoutePath
from parade_tracker.route.path import build_path, interpolate, locate, project_distance

MIN_SEGMENT_KM = 0.001
"""Parts shorter than this (1 m) are treated as empty and never emitted."""


def clamp_distance(path: RoutePath, distance_km: float) -> float:
    """Saturate *distance_km* into ``[0, path.total_km]``; NaN maps to 0."""
    if math.isnan(distance_km):
        return 0.0
    return max(0.0, min(path.total_km, distance_km))


def slice_path(path: RoutePath, start_km: float, end_km: float) -> RoutePath | None:
    """Sub-path between two distances, or ``None`` if it would be degenerate.

    Both bounds are clamped to the path.  Cut points are interpolated along
    the great circle so the slice length equals ``end_km - start_km``.
    """
    start = clamp_distance(path, start_km)
    end = clamp_distance(path, end_km)
    if end - start < MIN_SEGMENT_KM:
        return None

    pts = path.points
    si, sf = locate(path, start)
    ei, ef = locate(path, end)

    vertices: list[GeoPoint] = [interpolate(pts[si], pts[si + 1], sf)]
    vertices.extend(pts[si + 1:ei + 1])
    vertices.append(interpolate(pts[ei], pts[ei + 1], ef))
    return build_path(vertices)


class ProgressSplitter:
    """Split a fixed path at a distance along it.

    Stateless: the same ``(path, distance)`` always yields the same split,
    so repeated or out-of-order fixes never cause drift.

    Args:
        path: The route to split.
    """

    def __init__(self, path: RoutePath) -> None:
        self.path = path

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split(self, distance_km: float) -> ProgressSplit:
        """Split at *distance_km*; out-of-range values saturate instead of failing."""
        return split(self.path, distance_km)

    def split_at_point(self, point: GeoPoint) -> ProgressSplit:
        """Project *point* onto the path and split there."""
        return split(self.path, project_distance(self.path, point))

    def full_upcoming(self) -> ProgressSplit:
        """The split used right after a reset: nothing completed."""
        return split(self.path, 0.0)


def split(path: RoutePath, distance_km: float) -> ProgressSplit:
    """Module-level form of :meth:`ProgressSplitter.split`."""
    d = clamp_distance(path, distance_km)
    return ProgressSplit(
        distance_km=d,
        total_km=path.total_km,
        completed=slice_path(path, 0.0, d),
        upcoming=slice_path(path, d, path.total_km),
    )

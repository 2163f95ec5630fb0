"""Path model: construction, length and nearest-point projection.

All distances are great-circle kilometres on a spherical Earth.  Points
between two vertices are interpolated along the great circle, so the length
of any sub-path is exactly proportional to the interpolation parameter and
sub-path lengths add up to the whole.
"""

from __future__ import annotations

import bisect
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from parade_tracker.errors import InsufficientWaypointsError
from parade_tracker.route.models import GeoPoint, RoutePath, Waypoint

EARTH_RADIUS_KM = 6371.0088


# ---------------------------------------------------------------------------
# Spherical helpers
# ---------------------------------------------------------------------------


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between *a* and *b* in kilometres."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlmb = math.radians(b.lng - a.lng)
    s = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(s)))


def _to_vector(p: GeoPoint) -> tuple[float, float, float]:
    phi = math.radians(p.lat)
    lmb = math.radians(p.lng)
    return (math.cos(phi) * math.cos(lmb), math.cos(phi) * math.sin(lmb), math.sin(phi))


def interpolate(a: GeoPoint, b: GeoPoint, fraction: float) -> GeoPoint:
    """Point at *fraction* of the way from *a* to *b* along the great circle."""
    if fraction <= 0.0:
        return a
    if fraction >= 1.0:
        return b
    va = _to_vector(a)
    vb = _to_vector(b)
    dot = sum(x * y for x, y in zip(va, vb))
    cross = (
        va[1] * vb[2] - va[2] * vb[1],
        va[2] * vb[0] - va[0] * vb[2],
        va[0] * vb[1] - va[1] * vb[0],
    )
    omega = math.atan2(math.sqrt(sum(c * c for c in cross)), dot)
    if omega < 1e-12:
        return GeoPoint(a.lat + fraction * (b.lat - a.lat), a.lng + fraction * (b.lng - a.lng))
    sin_omega = math.sin(omega)
    wa = math.sin((1.0 - fraction) * omega) / sin_omega
    wb = math.sin(fraction * omega) / sin_omega
    x, y, z = (wa * pa + wb * pb for pa, pb in zip(va, vb))
    lat = math.degrees(math.atan2(z, math.hypot(x, y)))
    lng = math.degrees(math.atan2(y, x))
    return GeoPoint(lat, lng)


def _segment_parameter(a: GeoPoint, b: GeoPoint, p: GeoPoint) -> float:
    """Parameter in ``[0, 1]`` of the point on segment a→b closest to *p*.

    Uses a local equirectangular frame centred on the segment, which is
    accurate at the scale of a single road segment.
    """
    k = math.cos(math.radians((a.lat + b.lat) / 2.0))
    dx = (b.lng - a.lng) * k
    dy = b.lat - a.lat
    denom = dx * dx + dy * dy
    if denom == 0.0:
        return 0.0
    px = (p.lng - a.lng) * k
    py = p.lat - a.lat
    t = (px * dx + py * dy) / denom
    return max(0.0, min(1.0, t))


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def _coerce_point(item: Any) -> GeoPoint:
    if isinstance(item, GeoPoint):
        return item
    if isinstance(item, Waypoint):
        return item.point
    if isinstance(item, Mapping):
        return GeoPoint(float(item["lat"]), float(item["lng"]))
    lat, lng = item
    return GeoPoint(float(lat), float(lng))


def build_path(points: Iterable[Any]) -> RoutePath:
    """Build an immutable :class:`RoutePath` from ordered points.

    Args:
        points: :class:`Waypoint`, :class:`GeoPoint`, ``{"lat", "lng"}``
            mappings or ``(lat, lng)`` pairs, in travel order.

    Returns:
        The path with consecutive identical points collapsed.

    Raises:
        InsufficientWaypointsError: If fewer than two distinct points remain.
    """
    vertices: list[GeoPoint] = []
    for item in points:
        p = _coerce_point(item)
        if vertices and vertices[-1] == p:
            continue
        vertices.append(p)

    if len(vertices) < 2:
        raise InsufficientWaypointsError(
            f"A path needs at least 2 distinct points, got {len(vertices)}"
        )

    cumulative = [0.0]
    for prev, cur in zip(vertices, vertices[1:]):
        cumulative.append(cumulative[-1] + haversine_km(prev, cur))

    return RoutePath(points=tuple(vertices), cumulative_km=tuple(cumulative))


def total_length(path: RoutePath) -> float:
    """Total length of *path* in kilometres."""
    return path.total_km


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Projection:
    """Result of projecting a position onto a path."""

    point: GeoPoint
    """Closest point on the path."""

    distance_km: float
    """Distance along the path from its start to :attr:`point`."""

    offset_km: float
    """Great-circle distance from the projected position to :attr:`point`."""

    segment_index: int
    """Index of the segment (vertex ``i`` → ``i + 1``) containing :attr:`point`."""


def nearest_point(path: RoutePath, point: GeoPoint) -> Projection:
    """Project *point* onto *path*.

    Defined for any position: a point far from the path still resolves to the
    closest path point.  Ties go to the earliest segment.
    """
    best: Projection | None = None
    pts = path.points
    for i in range(len(pts) - 1):
        a, b = pts[i], pts[i + 1]
        t = _segment_parameter(a, b, point)
        candidate = interpolate(a, b, t)
        offset = haversine_km(point, candidate)
        if best is None or offset < best.offset_km:
            seg_len = path.cumulative_km[i + 1] - path.cumulative_km[i]
            best = Projection(
                point=candidate,
                distance_km=path.cumulative_km[i] + t * seg_len,
                offset_km=offset,
                segment_index=i,
            )
    if best is None:
        raise InsufficientWaypointsError("Cannot project onto a path without segments")
    return best


def project_distance(path: RoutePath, point: GeoPoint) -> float:
    """Distance along *path* (km) to the path point nearest *point*."""
    return nearest_point(path, point).distance_km


def locate(path: RoutePath, distance_km: float) -> tuple[int, float]:
    """Return ``(segment_index, fraction)`` for a distance along *path*.

    *distance_km* is clamped to ``[0, total_km]``.
    """
    d = max(0.0, min(path.total_km, distance_km))
    cum = path.cumulative_km
    idx = bisect.bisect_right(cum, d) - 1
    idx = max(0, min(idx, len(cum) - 2))
    span = cum[idx + 1] - cum[idx]
    if span <= 0.0:
        return idx, 0.0
    return idx, (d - cum[idx]) / span


def point_at(path: RoutePath, distance_km: float) -> GeoPoint:
    """Coordinate at *distance_km* along *path* (clamped)."""
    idx, frac = locate(path, distance_km)
    return interpolate(path.points[idx], path.points[idx + 1], frac)

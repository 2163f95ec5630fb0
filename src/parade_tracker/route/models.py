"""Route data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class GeoPoint:
    """A WGS84 coordinate in decimal degrees."""

    lat: float
    lng: float

    def as_lnglat(self) -> list[float]:
        """GeoJSON position order: ``[lng, lat]``."""
        return [self.lng, self.lat]


@dataclass(frozen=True)
class Waypoint:
    """A named stop on the parade route, as listed in the waypoint file."""

    name: str
    lat: float
    lng: float

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.lat, self.lng)


@dataclass(frozen=True)
class RoutePath:
    """The fixed route: an ordered line of at least two coordinates.

    Build instances with :func:`parade_tracker.route.path.build_path`, which
    precomputes the cumulative distances.
    """

    points: tuple[GeoPoint, ...]
    """Vertices in travel order; no two consecutive vertices are identical."""

    cumulative_km: tuple[float, ...]
    """Distance from the start to each vertex, ``cumulative_km[0] == 0``."""

    @property
    def total_km(self) -> float:
        """Total path length in kilometres."""
        return self.cumulative_km[-1]

    def __len__(self) -> int:
        return len(self.points)

    def to_geojson(self, properties: dict[str, Any] | None = None) -> dict[str, Any]:
        """Return a GeoJSON ``Feature`` wrapping a ``LineString``."""
        return {
            "type": "Feature",
            "properties": dict(properties or {}),
            "geometry": {
                "type": "LineString",
                "coordinates": [p.as_lnglat() for p in self.points],
            },
        }


@dataclass(frozen=True)
class ProgressSplit:
    """A path cut at a distance into completed and upcoming parts.

    Either part is ``None`` when it would be shorter than the degenerate
    threshold; lengths are still reported so that
    ``completed_km + upcoming_km == total_km``.
    """

    distance_km: float
    """Clamped distance along the path where the cut was made."""

    total_km: float
    completed: RoutePath | None = field(default=None)
    upcoming: RoutePath | None = field(default=None)

    @property
    def completed_km(self) -> float:
        return self.distance_km

    @property
    def upcoming_km(self) -> float:
        return self.total_km - self.distance_km

    @property
    def fraction(self) -> float:
        """Share of the route completed, in ``[0.0, 1.0]``."""
        if self.total_km <= 0:
            return 0.0
        return self.distance_km / self.total_km

    def to_geojson(self) -> dict[str, Any]:
        """FeatureCollection with one feature per non-degenerate part."""
        features = []
        if self.completed is not None:
            features.append(self.completed.to_geojson({"status": "completed"}))
        if self.upcoming is not None:
            features.append(self.upcoming.to_geojson({"status": "upcoming"}))
        return {
            "type": "FeatureCollection",
            "properties": {
                "distanceKm": self.distance_km,
                "totalKm": self.total_km,
                "fraction": self.fraction,
            },
            "features": features,
        }

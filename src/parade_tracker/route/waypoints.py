"""Waypoint loading and sanitation."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from parade_tracker.errors import ConfigurationError
from parade_tracker.route.models import Waypoint

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundingBox:
    """Regional sanity box; points outside it are rejected as typos."""

    min_lat: float = 40.0
    max_lat: float = 41.5
    min_lng: float = -74.0
    max_lng: float = -71.0

    def contains(self, lat: float, lng: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng


DEFAULT_BOUNDS = BoundingBox()


@dataclass
class SanitationIssue:
    """One rejected input entry."""

    index: int
    """Position in the raw list, ``-1`` for list-level problems."""

    name: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"idx": self.index, "name": self.name, "reason": self.reason}


@dataclass
class SanitizedWaypoints:
    waypoints: list[Waypoint] = field(default_factory=list)
    issues: list[SanitationIssue] = field(default_factory=list)

    @property
    def usable(self) -> bool:
        """True when at least two waypoints survived."""
        return len(self.waypoints) >= 2


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def sanitize_waypoints(
    raw: list[Any] | None,
    bounds: BoundingBox = DEFAULT_BOUNDS,
) -> SanitizedWaypoints:
    """Validate and clean a raw waypoint list.

    * lat/lng must be numeric (numeric strings are accepted) and inside *bounds*.
    * Consecutive duplicates, compared at 6 decimal places, are dropped.
    * Missing names default to ``wp_<index>``.

    Rejections are collected as issues rather than raised; a list-level issue
    is appended when fewer than two waypoints remain.
    """
    result = SanitizedWaypoints()
    last_key: str | None = None

    for idx, item in enumerate(raw or []):
        entry = item if isinstance(item, dict) else {}
        name = str(entry["name"]) if entry.get("name") else f"wp_{idx}"
        lat = _as_number(entry.get("lat"))
        lng = _as_number(entry.get("lng"))

        if lat is None or lng is None:
            result.issues.append(SanitationIssue(idx, name, "Non-numeric lat/lng"))
            continue
        if not bounds.contains(lat, lng):
            result.issues.append(SanitationIssue(idx, name, "Lat/lng out of expected bounds"))
            continue

        key = f"{lat:.6f},{lng:.6f}"
        if key == last_key:
            continue
        last_key = key
        result.waypoints.append(Waypoint(name=name, lat=lat, lng=lng))

    if not result.usable:
        result.issues.append(
            SanitationIssue(-1, "global", "Fewer than 2 valid waypoints after sanitation")
        )
    for issue in result.issues:
        _logger.warning("Waypoint %d (%s) rejected: %s", issue.index, issue.name, issue.reason)
    return result


def load_waypoints(path: str | Path) -> list[Any]:
    """Read the raw waypoint list from a JSON file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a JSON list.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read waypoints from {path}: {exc}") from exc
    if not isinstance(data, list):
        raise ConfigurationError(f"Waypoint file {path} must contain a JSON list")
    return data

"""GeoJSON encoding of paths and the pre-built path file."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from parade_tracker.errors import ConfigurationError
from parade_tracker.route.models import GeoPoint, RoutePath
from parade_tracker.route.path import build_path


def feature_collection(path: RoutePath, properties: dict[str, Any] | None = None) -> dict[str, Any]:
    """Wrap *path* in a one-feature GeoJSON ``FeatureCollection``."""
    return {"type": "FeatureCollection", "features": [path.to_geojson(properties)]}


def _find_linestring(doc: Any) -> list[Any] | None:
    if not isinstance(doc, dict):
        return None
    kind = doc.get("type")
    if kind == "LineString":
        return doc.get("coordinates")
    if kind == "Feature":
        return _find_linestring(doc.get("geometry"))
    if kind == "FeatureCollection":
        for feature in doc.get("features") or []:
            coords = _find_linestring(feature)
            if coords:
                return coords
    return None


def path_from_geojson(doc: Any) -> RoutePath:
    """Build a path from the first ``LineString`` found in *doc*.

    Raises:
        ConfigurationError: If *doc* holds no usable ``LineString``.
    """
    coords = _find_linestring(doc)
    if not coords:
        raise ConfigurationError("GeoJSON contains no LineString geometry")
    try:
        points = [GeoPoint(lat=float(c[1]), lng=float(c[0])) for c in coords]
    except (TypeError, ValueError, IndexError) as exc:
        raise ConfigurationError(f"Malformed LineString coordinates: {exc}") from exc
    return build_path(points)


def read_path_file(file_path: str | Path) -> RoutePath:
    """Load a pre-built path from a GeoJSON file."""
    try:
        doc = json.loads(Path(file_path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read path file {file_path}: {exc}") from exc
    return path_from_geojson(doc)


def write_path_file(
    file_path: str | Path,
    path: RoutePath,
    properties: dict[str, Any] | None = None,
) -> None:
    """Write *path* as a GeoJSON ``FeatureCollection``, creating parent dirs."""
    target = Path(file_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(feature_collection(path, properties)), encoding="utf-8")

"""RouteCache — lazily built, explicitly reloaded, single-flight path cache."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from parade_tracker.errors import ConfigurationError, RouteBuildError
from parade_tracker.route.geojson import feature_collection, read_path_file
from parade_tracker.route.models import RoutePath
from parade_tracker.routing.builder import RouteBuilder, RouteDiagnostics

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedRoute:
    """A fully built path plus where and when it came from."""

    path: RoutePath
    built_at: float
    """Epoch seconds."""

    source: str
    """``"osrm"`` for an upstream build, ``"file"`` for a pre-built path."""

    name: str = "Parade Route"

    def to_geojson(self) -> dict[str, Any]:
        return feature_collection(self.path, {"name": self.name, "source": self.source})


class RouteCache:
    """Holds the single process-wide path.

    The cached value is replaced as a whole, so readers see either the old or
    the new route, never a partial one.  A failed (re)build leaves the
    previous route in place.

    Args:
        builder: Upstream route builder; required unless *route_file* is set.
        waypoint_source: Callable returning the raw waypoint list; called on
            every build so edits to the waypoint file are picked up on reload.
        route_file: Pre-built GeoJSON path.  Takes precedence over *builder*.
        name: Display name placed in the GeoJSON properties.
    """

    def __init__(
        self,
        builder: RouteBuilder | None = None,
        waypoint_source: Callable[[], list[Any]] | None = None,
        route_file: str | None = None,
        name: str = "Parade Route",
    ) -> None:
        if route_file is None and (builder is None or waypoint_source is None):
            raise ConfigurationError("RouteCache needs a route file or a builder with waypoints")
        self._builder = builder
        self._waypoint_source = waypoint_source
        self._route_file = route_file
        self._name = name
        self._current: CachedRoute | None = None
        self._diagnostics: RouteDiagnostics | None = None
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def current(self) -> CachedRoute | None:
        """The cached route, or None if nothing has been built yet."""
        return self._current

    @property
    def diagnostics(self) -> RouteDiagnostics | None:
        """Diagnostics of the most recent upstream build attempt."""
        return self._diagnostics

    async def get(self) -> CachedRoute:
        """Return the cached route, building it on first use.

        Concurrent first callers share one build.
        """
        cached = self._current
        if cached is not None:
            return cached
        async with self._lock:
            if self._current is None:
                self._current = await self._build()
            return self._current

    async def reload(self) -> CachedRoute:
        """Rebuild unconditionally and swap the new route in on success.

        Raises:
            ConfigurationError: Bad waypoints or path file.
            RouteBuildError: Every upstream batch failed.
        """
        async with self._lock:
            route = await self._build()
            self._current = route
            return route

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _build(self) -> CachedRoute:
        if self._route_file is not None:
            path = read_path_file(self._route_file)
            _logger.info("Loaded route from %s (%d points)", self._route_file, len(path))
            return CachedRoute(path=path, built_at=time.time(), source="file", name=self._name)

        if self._builder is None or self._waypoint_source is None:
            raise ConfigurationError("No route file and no route builder configured")
        try:
            result = await self._builder.build(self._waypoint_source())
        except RouteBuildError as exc:
            self._diagnostics = exc.diagnostics
            _logger.error("Route build failed: %s", exc)
            raise
        except ConfigurationError as exc:
            self._diagnostics = self._builder.last_diagnostics
            _logger.error("Route build failed: %s", exc)
            raise
        self._diagnostics = result.diagnostics
        return CachedRoute(
            path=result.path, built_at=time.time(), source="osrm", name=self._name
        )

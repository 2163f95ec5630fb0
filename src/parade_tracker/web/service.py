"""TrackerService — owns the process-wide state behind the Web API."""

from __future__ import annotations

from typing import Any

from parade_tracker.config import Settings
from parade_tracker.errors import AuthError
from parade_tracker.route.models import GeoPoint, ProgressSplit
from parade_tracker.route.splitter import ProgressSplitter
from parade_tracker.route.waypoints import load_waypoints
from parade_tracker.routing.builder import RouteBuilder
from parade_tracker.routing.cache import RouteCache
from parade_tracker.routing.osrm import OsrmRouter
from parade_tracker.routing.retry import RetryPolicy
from parade_tracker.tracking.hub import BroadcastHub
from parade_tracker.tracking.store import LocationStore, check_token


class TrackerService:
    """Single owner of the path cache, the location store and the hub.

    Parameters
    ----------
    secret:
        Shared secret for admin operations (route reload and debug).
    store:
        The authoritative fix/epoch store.
    routes:
        The path cache.
    hub:
        Broadcast registry; created over *store* when not given.
    """

    def __init__(
        self,
        secret: str,
        store: LocationStore,
        routes: RouteCache,
        hub: BroadcastHub | None = None,
    ) -> None:
        self._secret = secret
        self.store = store
        self.routes = routes
        self.hub = hub if hub is not None else BroadcastHub(store)

    @classmethod
    def from_settings(cls, settings: Settings) -> TrackerService:
        """Wire the default OSRM-backed service from *settings*."""
        router = OsrmRouter(settings.osrm_base_url, settings.osrm_profile)
        builder = RouteBuilder(
            router,
            batch_size=settings.batch_size,
            policy=RetryPolicy(
                attempts=settings.retry_attempts,
                base_delay_s=settings.retry_base_delay_s,
                timeout_s=settings.timeout_s,
            ),
        )
        routes = RouteCache(
            builder=builder,
            waypoint_source=lambda: load_waypoints(settings.waypoints_path),
            route_file=settings.route_file,
        )
        return cls(settings.secret, LocationStore(settings.secret), routes)

    def authorize(self, token: Any) -> None:
        """Raise :class:`AuthError` unless *token* matches the shared secret."""
        if not check_token(token, self._secret):
            raise AuthError()

    def sync_state(self) -> dict[str, Any]:
        """``{epoch, hasLocation, serverTime}`` for the pull fallback."""
        snapshot = self.store.current()
        return {
            "epoch": snapshot.epoch,
            "hasLocation": snapshot.has_location,
            "serverTime": self.store.server_time(),
        }

    async def progress(self) -> tuple[ProgressSplit, dict[str, Any]]:
        """Split the cached path at the current fix (all upcoming if none)."""
        route = await self.routes.get()
        snapshot = self.store.current()
        splitter = ProgressSplitter(route.path)
        if snapshot.fix is None:
            split = splitter.full_upcoming()
        else:
            split = splitter.split_at_point(GeoPoint(snapshot.fix.lat, snapshot.fix.lng))
        return split, {"epoch": snapshot.epoch, "hasLocation": snapshot.has_location}

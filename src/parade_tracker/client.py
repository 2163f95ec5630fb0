"""TrackerClient — synchronous HTTP client for the tracker API.

Used by the simulator (write side) and the polling viewer (read side).
"""

from __future__ import annotations

import time
from typing import Any

import httpx

from parade_tracker.errors import AuthError, UpstreamError, ValidationError
from parade_tracker.route.geojson import path_from_geojson
from parade_tracker.route.models import RoutePath
from parade_tracker.tracking.models import LocationFix

SYNC_INTERVAL_S = 8.0
"""Recommended sync-state poll interval for viewers without a push channel."""

FIX_INTERVAL_S = 10.0
"""Recommended current-fix poll interval."""


class TrackerClient:
    """Thin wrapper over the tracker HTTP endpoints.

    Args:
        base_url: Server root, e.g. ``http://localhost:8000``.
        token: Shared secret for write/admin calls.
        timeout: Request timeout in seconds.
        client: Optional pre-built :class:`httpx.Client`.  An injected client
            belongs to the caller and is left open by :meth:`close`.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: str | None = None,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._token = token
        self._owns_client = client is None
        self._http = client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> TrackerClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def route(self) -> RoutePath:
        return path_from_geojson(self._get("/api/route"))

    def sync_state(self) -> dict[str, Any]:
        return self._get("/api/state")

    def current_fix(self) -> LocationFix | None:
        data = self._get("/api/location")
        return LocationFix.from_dict(data) if data else None

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def submit_fix(
        self,
        lat: float,
        lng: float,
        accuracy: float | None = None,
        ts: int | None = None,
    ) -> None:
        body = {
            "lat": lat,
            "lng": lng,
            "accuracy": accuracy,
            "ts": ts if ts is not None else int(time.time() * 1000),
            "token": self._token,
        }
        self._post("/api/update-location", body)

    def reset(self) -> int:
        return int(self._post("/api/reset", {"token": self._token})["newEpoch"])

    def reload_route(self) -> dict[str, Any]:
        return self._post("/api/route/reload", {"token": self._token})

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get(self, url: str) -> Any:
        return self._check(self._http.get(url))

    def _post(self, url: str, body: dict[str, Any]) -> Any:
        return self._check(self._http.post(url, json=body))

    @staticmethod
    def _check(response: httpx.Response) -> Any:
        if response.status_code == 401:
            raise AuthError()
        if response.status_code == 400:
            raise ValidationError(response.json().get("error", "bad request"))
        if response.status_code >= 400:
            raise UpstreamError(f"HTTP {response.status_code}: {response.text[:200]}")
        return response.json()

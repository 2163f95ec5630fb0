"""OSRM routing client — turns a batch of points into road-following geometry."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from parade_tracker.config import DEFAULT_OSRM_URL
from parade_tracker.errors import UpstreamError
from parade_tracker.route.models import GeoPoint

_logger = logging.getLogger(__name__)

USER_AGENT = "parade-tracker/0.1 (route builder)"


class OsrmRouter:
    """Thin async client for the OSRM ``route`` service.

    Args:
        base_url: OSRM server root (public demo server by default).
        profile: Routing profile name.
        client: Optional shared :class:`httpx.AsyncClient`.  An injected client
            is left open; otherwise one is created per request.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_OSRM_URL,
        profile: str = "driving",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._profile = profile
        self._client = client

    def url_for(self, points: Sequence[GeoPoint]) -> str:
        """Route URL for *points*; OSRM wants ``lng,lat`` pairs joined by ``;``."""
        coords = ";".join(f"{p.lng},{p.lat}" for p in points)
        return f"{self._base_url}/route/v1/{self._profile}/{coords}"

    async def route(self, points: Sequence[GeoPoint]) -> list[tuple[float, float]]:
        """Return the full route geometry as ``(lng, lat)`` pairs.

        Raises:
            UpstreamError: On a non-2xx status or a response without geometry.
            httpx.HTTPError: On transport failures (left for the retry helper).
        """
        url = self.url_for(points)
        params = {"overview": "full", "geometries": "geojson", "steps": "false"}
        headers = {"User-Agent": USER_AGENT}

        if self._client is not None:
            response = await self._client.get(url, params=params, headers=headers)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.get(url, params=params, headers=headers)

        if response.status_code >= 400:
            raise UpstreamError(f"HTTP {response.status_code}")
        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError("OSRM returned invalid JSON") from exc
        return parse_route_geometry(body)


def parse_route_geometry(data: object) -> list[tuple[float, float]]:
    """Extract ``routes[0].geometry.coordinates`` from an OSRM response body."""
    try:
        geometry = data["routes"][0]["geometry"]  # type: ignore[index]
        coords = geometry["coordinates"]
        result = [(float(c[0]), float(c[1])) for c in coords]
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise UpstreamError("OSRM returned no geometry") from exc
    if not result:
        raise UpstreamError("OSRM returned no geometry")
    return result

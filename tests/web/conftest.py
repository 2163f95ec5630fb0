"""Shared fixtures for web tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from parade_tracker.errors import UpstreamError
from parade_tracker.routing.builder import RouteBuilder
from parade_tracker.routing.cache import RouteCache
from parade_tracker.routing.retry import RetryPolicy
from parade_tracker.tracking.store import LocationStore
from parade_tracker.web.app import create_app
from parade_tracker.web.service import TrackerService

SECRET = "s3cret"

WAYPOINTS = [
    {"name": "Station", "lat": 40.8800, "lng": -72.9500},
    {"name": "Church", "lat": 40.8800, "lng": -72.9400},
    {"name": "Park", "lat": 40.8800, "lng": -72.9300},
]


class StraightLineRouter:
    """Upstream stand-in that routes straight through the batch points."""

    def __init__(self) -> None:
        self.calls = 0
        self.fail = False

    async def route(self, points):
        self.calls += 1
        if self.fail:
            raise UpstreamError("HTTP 503")
        return [(p.lng, p.lat) for p in points]


def make_service(router: StraightLineRouter) -> TrackerService:
    """Tracker service with a fake upstream and fast retries."""
    builder = RouteBuilder(
        router,
        batch_size=20,
        policy=RetryPolicy(attempts=2, base_delay_s=0.0, timeout_s=2.0),
    )
    routes = RouteCache(builder=builder, waypoint_source=lambda: list(WAYPOINTS))
    return TrackerService(SECRET, LocationStore(SECRET), routes)


@pytest.fixture
def router():
    return StraightLineRouter()


@pytest.fixture
def service(router):
    return make_service(router)


@pytest.fixture
def client(service):
    """FastAPI test client."""
    with TestClient(create_app(service)) as c:
        yield c

"""TrackerClient against a mocked HTTP transport."""

from __future__ import annotations

import json

import httpx
import pytest

from parade_tracker.client import TrackerClient
from parade_tracker.errors import AuthError, UpstreamError, ValidationError

_ROUTE = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "properties": {},
            "geometry": {
                "type": "LineString",
                "coordinates": [[-72.95, 40.88], [-72.94, 40.88]],
            },
        }
    ],
}


def _client(handler, token="s3cret") -> TrackerClient:
    http = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://tracker.test")
    return TrackerClient(token=token, client=http)


def test_route_parses_geojson():
    with _client(lambda request: httpx.Response(200, json=_ROUTE)) as client:
        path = client.route()
    assert len(path) == 2
    assert path.points[0].lng == -72.95


def test_current_fix_none_when_empty():
    with _client(lambda request: httpx.Response(200, json={})) as client:
        assert client.current_fix() is None


def test_current_fix_parses_fields():
    body = {"lat": 40.88, "lng": -72.94, "accuracy": None, "ts": 10, "serverTs": 11}
    with _client(lambda request: httpx.Response(200, json=body)) as client:
        fix = client.current_fix()
    assert (fix.lat, fix.lng, fix.accuracy, fix.client_ts, fix.server_ts) == (
        40.88,
        -72.94,
        None,
        10,
        11,
    )


def test_submit_fix_sends_token_and_fields():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True})

    with _client(handler) as client:
        client.submit_fix(40.88, -72.94, accuracy=4.0, ts=123)

    assert seen["path"] == "/api/update-location"
    assert seen["body"] == {
        "lat": 40.88,
        "lng": -72.94,
        "accuracy": 4.0,
        "ts": 123,
        "token": "s3cret",
    }


def test_reset_returns_new_epoch():
    with _client(lambda request: httpx.Response(200, json={"ok": True, "newEpoch": 99})) as client:
        assert client.reset() == 99


@pytest.mark.parametrize(
    "status, body, exc",
    [
        (401, {"error": "unauthorized"}, AuthError),
        (400, {"error": "lat and lng are required numeric values"}, ValidationError),
        (500, {"error": "internal error"}, UpstreamError),
    ],
)
def test_error_statuses_map_to_errors(status, body, exc):
    with _client(lambda request: httpx.Response(status, json=body)) as client:
        with pytest.raises(exc):
            client.submit_fix(40.88, -72.94)


def test_close_leaves_injected_client_open():
    http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))
    with TrackerClient(token="s3cret", client=http):
        pass
    assert not http.is_closed
    http.close()


def test_close_closes_own_client():
    client = TrackerClient("http://tracker.test")
    client.close()
    assert client._http.is_closed

"""RouteBuilder: batching, retries, partial failure and stitching."""

from __future__ import annotations

import asyncio

import pytest

from parade_tracker.errors import InsufficientWaypointsError, RouteBuildError, UpstreamError
from parade_tracker.route.models import GeoPoint
from parade_tracker.route.path import build_path
from parade_tracker.routing.builder import RouteBuilder, make_batches, stitch
from parade_tracker.routing.retry import RetryPolicy

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_waypoints(n: int) -> list[dict]:
    """*n* distinct waypoints marching east along one street."""
    return [
        {"name": f"stop {i}", "lat": 40.8849, "lng": -72.9900 + 0.001 * i} for i in range(n)
    ]


class FakeRouter:
    """Routes a batch as a straight line through its points.

    *fail* decides per call whether to raise; it receives the batch and the
    number of times this batch has been requested so far.
    """

    def __init__(self, fail=None) -> None:
        self.fail = fail or (lambda points, attempt: False)
        self.requests: list[list[GeoPoint]] = []

    def attempts_for(self, points) -> int:
        return sum(1 for r in self.requests if r == list(points))

    async def route(self, points):
        self.requests.append(list(points))
        if self.fail(points, self.attempts_for(points)):
            raise UpstreamError("HTTP 503")
        return [(p.lng, p.lat) for p in points]


def _builder(router, batch_size: int = 20, attempts: int = 3):
    delays: list[float] = []

    async def sleep(d: float) -> None:
        delays.append(d)

    builder = RouteBuilder(
        router,
        batch_size=batch_size,
        policy=RetryPolicy(attempts=attempts, base_delay_s=0.5, timeout_s=5.0),
        sleep=sleep,
    )
    return builder, delays


# ---------------------------------------------------------------------------
# Batching and stitching
# ---------------------------------------------------------------------------


class TestBatching:
    def test_batches_overlap_by_one_point(self):
        a, b, c, d, e = "abcde"
        assert make_batches([a, b, c, d, e], 2) == [[a, b], [b, c, d], [d, e]]

    def test_every_point_is_routed(self):
        points = list(range(45))
        batches = make_batches(points, 20)
        assert len(batches) == 3
        assert batches[1][0] == batches[0][-1]
        assert batches[2][0] == batches[1][-1]
        assert sorted({p for b in batches for p in b}) == points

    def test_batch_size_below_two_rejected(self):
        with pytest.raises(ValueError):
            make_batches([1, 2, 3], 1)
        with pytest.raises(ValueError):
            RouteBuilder(FakeRouter(), batch_size=1)

    def test_stitch_elides_duplicate_join(self):
        merged = stitch([[(0, 0), (1, 1)], [(1, 1), (2, 2)], [], [(3, 3), (4, 4)]])
        assert merged == [(0, 0), (1, 1), (2, 2), (3, 3), (4, 4)]


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


class TestBuild:
    def test_all_batches_succeed(self):
        raw = make_waypoints(45)
        router = FakeRouter()
        builder, delays = _builder(router)

        result = asyncio.run(builder.build(raw))

        assert len(result.path) == 45
        expected = build_path(raw)
        assert result.path.total_km == pytest.approx(expected.total_km)
        diag = result.diagnostics
        assert (diag.batches_tried, diag.batches_ok) == (3, 3)
        assert diag.failed_batches == []
        assert diag.took_ms is not None
        assert delays == []

    def test_one_failing_batch_is_skipped(self):
        raw = make_waypoints(45)
        second_start = GeoPoint(raw[19]["lat"], raw[19]["lng"])
        router = FakeRouter(fail=lambda points, attempt: points[0] == second_start)
        builder, delays = _builder(router, attempts=3)

        result = asyncio.run(builder.build(raw))

        diag = result.diagnostics
        assert diag.batches_ok == 2
        assert len(diag.failed_batches) == 1
        assert diag.failed_batches[0].index == 1
        assert diag.to_dict()["failedBatches"][0] == {
            "type": "upstream",
            "batchIndex": 1,
            "message": "HTTP 503",
        }
        failed = next(r for r in router.requests if r[0] == second_start)
        assert router.attempts_for(failed) == 3
        assert delays == [0.5, 1.0]
        # first batch (20 points) plus last batch (6 points), no shared join
        assert len(result.path) == 26

    def test_transient_failures_recover(self):
        raw = make_waypoints(30)
        router = FakeRouter(fail=lambda points, attempt: attempt == 1)
        builder, delays = _builder(router)

        result = asyncio.run(builder.build(raw))

        assert result.diagnostics.failed_batches == []
        assert result.diagnostics.batches_ok == 2
        assert delays == [0.5, 0.5]

    def test_all_batches_failing_raises_with_diagnostics(self):
        router = FakeRouter(fail=lambda points, attempt: True)
        builder, _ = _builder(router, attempts=2)

        with pytest.raises(RouteBuildError) as info:
            asyncio.run(builder.build(make_waypoints(45)))

        diag = info.value.diagnostics
        assert diag.batches_tried == 3
        assert diag.batches_ok == 0
        assert [f.index for f in diag.failed_batches] == [0, 1, 2]
        assert builder.last_diagnostics is diag

    def test_too_few_valid_waypoints(self):
        router = FakeRouter()
        builder, _ = _builder(router)
        raw = [{"name": "a", "lat": 40.88, "lng": -72.94}, {"name": "b", "lat": "x", "lng": 0}]

        with pytest.raises(InsufficientWaypointsError):
            asyncio.run(builder.build(raw))

        assert router.requests == []
        reasons = [i.reason for i in builder.last_diagnostics.sanity_errors]
        assert "Non-numeric lat/lng" in reasons

    def test_sanity_errors_do_not_stop_the_build(self):
        raw = make_waypoints(5)
        raw.insert(2, {"name": "typo", "lat": 4.0885, "lng": -72.98})
        builder, _ = _builder(FakeRouter())

        result = asyncio.run(builder.build(raw))

        assert len(result.path) == 5
        errors = result.diagnostics.to_dict()["sanityErrors"]
        assert errors == [{"idx": 2, "name": "typo", "reason": "Lat/lng out of expected bounds"}]

"""RouteBuilder — road-following path from waypoints via batched upstream calls.

Pipeline:

1. Sanitize the raw waypoint list (issues become diagnostics).
2. Split the valid points into overlapping batches: every batch after the
   first starts with the previous batch's last point so the seams connect.
3. Route each batch with retry/backoff; a batch that exhausts its retries is
   recorded and skipped.
4. Concatenate the successful geometries in order, eliding the duplicated
   join coordinate at each seam.

The build fails only when every batch fails.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from parade_tracker.errors import InsufficientWaypointsError, RouteBuildError, UpstreamError
from parade_tracker.route.models import GeoPoint, RoutePath
from parade_tracker.route.path import build_path
from parade_tracker.route.waypoints import (
    DEFAULT_BOUNDS,
    BoundingBox,
    SanitationIssue,
    sanitize_waypoints,
)
from parade_tracker.routing.retry import RetryPolicy, call_with_retry

_logger = logging.getLogger(__name__)

LngLat = tuple[float, float]


class Router(Protocol):
    async def route(self, points: Sequence[GeoPoint]) -> list[LngLat]: ...


@dataclass
class BatchFailure:
    index: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "upstream", "batchIndex": self.index, "message": self.message}


@dataclass
class RouteDiagnostics:
    """What happened during one build attempt."""

    started_at: float
    """Wall-clock start, epoch seconds."""

    batches_tried: int = 0
    batches_ok: int = 0
    failed_batches: list[BatchFailure] = field(default_factory=list)
    sanity_errors: list[SanitationIssue] = field(default_factory=list)
    took_ms: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "startedAt": self.started_at,
            "tookMs": self.took_ms,
            "batchesTried": self.batches_tried,
            "batchesOk": self.batches_ok,
            "failedBatches": [f.to_dict() for f in self.failed_batches],
            "sanityErrors": [i.to_dict() for i in self.sanity_errors],
        }


@dataclass(frozen=True)
class RouteBuildResult:
    path: RoutePath
    diagnostics: RouteDiagnostics


# ---------------------------------------------------------------------------
# Batching and stitching
# ---------------------------------------------------------------------------


def make_batches(points: Sequence[GeoPoint], size: int) -> list[list[GeoPoint]]:
    """Partition *points* into batches of *size*, overlapping by one point.

    ``[a, b, c, d, e]`` with size 2 → ``[[a, b], [b, c, d], [d, e]]``.
    """
    if size < 2:
        raise ValueError("batch size must be >= 2")
    batches: list[list[GeoPoint]] = []
    for start in range(0, len(points), size):
        batch = list(points[start:start + size])
        if start > 0:
            batch.insert(0, points[start - 1])
        batches.append(batch)
    return batches


def stitch(geometries: Sequence[Sequence[LngLat]]) -> list[LngLat]:
    """Concatenate geometries, dropping a join point equal to the previous end."""
    merged: list[LngLat] = []
    for coords in geometries:
        if not coords:
            continue
        if merged and tuple(coords[0]) == tuple(merged[-1]):
            merged.extend(coords[1:])
        else:
            merged.extend(coords)
    return merged


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class RouteBuilder:
    """Build a :class:`RoutePath` that follows roads between waypoints.

    Args:
        router: Upstream client with ``async route(points) -> [(lng, lat)]``.
        batch_size: Waypoints per upstream request (>= 2).
        policy: Retry policy applied to every batch.
        bounds: Sanity box for waypoint validation.
        sleep: Awaitable sleep used for backoff; injectable for tests.
    """

    def __init__(
        self,
        router: Router,
        batch_size: int = 20,
        policy: RetryPolicy | None = None,
        bounds: BoundingBox = DEFAULT_BOUNDS,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if batch_size < 2:
            raise ValueError("batch_size must be >= 2")
        self._router = router
        self._batch_size = batch_size
        self._policy = policy or RetryPolicy()
        self._bounds = bounds
        self._sleep = sleep
        self.last_diagnostics: RouteDiagnostics | None = None

    async def build(self, raw_waypoints: list[Any]) -> RouteBuildResult:
        """Run the full sanitize → batch → route → stitch pipeline.

        Raises:
            InsufficientWaypointsError: Fewer than two valid waypoints.
            RouteBuildError: Every batch failed.
        """
        t0 = time.monotonic()
        diag = RouteDiagnostics(started_at=time.time())
        self.last_diagnostics = diag

        sanitized = sanitize_waypoints(raw_waypoints, self._bounds)
        diag.sanity_errors = list(sanitized.issues)
        if not sanitized.usable:
            diag.took_ms = (time.monotonic() - t0) * 1000.0
            raise InsufficientWaypointsError("Not enough valid waypoints after sanitation")

        points = [w.point for w in sanitized.waypoints]
        batches = make_batches(points, self._batch_size)
        diag.batches_tried = len(batches)

        geometries: list[list[LngLat]] = []
        for i, batch in enumerate(batches):
            try:
                coords = await call_with_retry(
                    lambda b=batch: self._router.route(b),
                    self._policy,
                    sleep=self._sleep,
                )
            except UpstreamError as exc:
                _logger.warning("Route batch %d/%d failed: %s", i + 1, len(batches), exc)
                diag.failed_batches.append(BatchFailure(index=i, message=str(exc)))
                continue
            geometries.append(coords)
            diag.batches_ok += 1
            _logger.info("Route batch %d/%d ok (%d pts)", i + 1, len(batches), len(batch))

        diag.took_ms = (time.monotonic() - t0) * 1000.0
        if not geometries:
            raise RouteBuildError("All upstream batch requests failed", diagnostics=diag)

        merged = stitch(geometries)
        path = build_path(GeoPoint(lat=lat, lng=lng) for lng, lat in merged)
        _logger.info(
            "Route built: %d/%d batches, %d points, %.2f km in %.0f ms",
            diag.batches_ok,
            diag.batches_tried,
            len(path),
            path.total_km,
            diag.took_ms,
        )
        return RouteBuildResult(path=path, diagnostics=diag)

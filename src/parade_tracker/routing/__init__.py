"""Road-following route construction and the process-wide path cache."""

from parade_tracker.routing.builder import (
    RouteBuilder,
    RouteBuildResult,
    RouteDiagnostics,
    make_batches,
    stitch,
)
from parade_tracker.routing.cache import CachedRoute, RouteCache
from parade_tracker.routing.osrm import OsrmRouter
from parade_tracker.routing.retry import RetryPolicy, call_with_retry

__all__ = [
    "CachedRoute",
    "OsrmRouter",
    "RetryPolicy",
    "RouteBuildResult",
    "RouteBuilder",
    "RouteCache",
    "RouteDiagnostics",
    "call_with_retry",
    "make_batches",
    "stitch",
]

"""Build the road-following path once and save it as GeoJSON.

Point the server at the output with ``TRACKER_ROUTE_FILE`` to skip upstream
routing at startup.

Usage:
    uv run python scripts/build_route.py
    uv run python scripts/build_route.py --waypoints waypoints.json --out route.geojson
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from dotenv import load_dotenv

load_dotenv()

from parade_tracker.config import Settings, configure_logging  # noqa: E402
from parade_tracker.errors import ConfigurationError, RouteBuildError  # noqa: E402
from parade_tracker.route.geojson import write_path_file  # noqa: E402
from parade_tracker.route.waypoints import load_waypoints  # noqa: E402
from parade_tracker.routing.builder import RouteBuilder  # noqa: E402
from parade_tracker.routing.osrm import OsrmRouter  # noqa: E402
from parade_tracker.routing.retry import RetryPolicy  # noqa: E402


async def _build(settings: Settings, waypoints_path: str, out: str) -> int:
    raw = load_waypoints(waypoints_path)
    print(f"Routing across {len(raw)} waypoints…")
    builder = RouteBuilder(
        OsrmRouter(settings.osrm_base_url, settings.osrm_profile),
        batch_size=settings.batch_size,
        policy=RetryPolicy(
            attempts=settings.retry_attempts,
            base_delay_s=settings.retry_base_delay_s,
            timeout_s=settings.timeout_s,
        ),
    )
    try:
        result = await builder.build(raw)
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except RouteBuildError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    diag = result.diagnostics
    for failure in diag.failed_batches:
        print(f"  ✗ batch {failure.index + 1}/{diag.batches_tried} failed: {failure.message}")
    for issue in diag.sanity_errors:
        print(f"  ! waypoint {issue.index} ({issue.name}): {issue.reason}")

    write_path_file(out, result.path, {"name": "Parade Route (pre-built)", "source": "osrm"})
    print(
        f"✓ {diag.batches_ok}/{diag.batches_tried} batches, {len(result.path)} points, "
        f"{result.path.total_km:.2f} km"
    )
    print(f"Wrote {out}")
    return 0


def main() -> None:
    settings = Settings.from_env()
    ap = argparse.ArgumentParser(description="Pre-build the parade path via OSRM")
    ap.add_argument("--waypoints", default=settings.waypoints_path, help="Waypoint JSON list")
    ap.add_argument("--out", default="route.geojson", help="Output GeoJSON file")
    args = ap.parse_args()

    configure_logging(settings.log_level)
    sys.exit(asyncio.run(_build(settings, args.waypoints, args.out)))


if __name__ == "__main__":
    main()

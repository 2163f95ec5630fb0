"""Replay the waypoint list as live fixes against a running server.

Usage:
    uv run python scripts/simulate.py
    uv run python scripts/simulate.py --url http://localhost:8000 --interval 2
"""

from __future__ import annotations

import argparse
import os
import time

from dotenv import load_dotenv

load_dotenv()

from parade_tracker.client import TrackerClient  # noqa: E402
from parade_tracker.route.waypoints import load_waypoints, sanitize_waypoints  # noqa: E402


def main() -> None:
    ap = argparse.ArgumentParser(description="Send simulated fixes to the tracker")
    ap.add_argument("--url", default=os.environ.get("TRACK_URL", "http://localhost:8000"))
    ap.add_argument("--waypoints", default=os.environ.get("TRACKER_WAYPOINTS", "waypoints.json"))
    ap.add_argument("--interval", type=float, default=2.0, help="Seconds between fixes")
    ap.add_argument("--reset", action="store_true", help="Reset tracking before sending")
    args = ap.parse_args()

    points = sanitize_waypoints(load_waypoints(args.waypoints)).waypoints
    print(f"Simulating {len(points)} points...")

    with TrackerClient(args.url, token=os.environ.get("TRACKER_SECRET", "")) as client:
        if args.reset:
            print(f"New epoch: {client.reset()}")
        for i, wp in enumerate(points, start=1):
            client.submit_fix(wp.lat, wp.lng, accuracy=8.0)
            print(f"\rSent {i}/{len(points)}: {wp.name[:40]:<40}", end="", flush=True)
            time.sleep(args.interval)
    print("\nDone.")


if __name__ == "__main__":
    main()

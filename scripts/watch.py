"""Poll-only viewer: follows the tracker without a push connection.

Polls sync-state every 8 s to detect resets and the current fix every 10 s,
and prints progress along the route.

Usage:
    uv run python scripts/watch.py
    uv run python scripts/watch.py --url http://localhost:8000
"""

from __future__ import annotations

import argparse
import time

import httpx

from parade_tracker.client import FIX_INTERVAL_S, SYNC_INTERVAL_S, TrackerClient
from parade_tracker.errors import TrackerError
from parade_tracker.tracking.viewer import ViewerState


def main() -> None:
    ap = argparse.ArgumentParser(description="Follow the tracker by polling")
    ap.add_argument("--url", default="http://localhost:8000")
    args = ap.parse_args()

    with TrackerClient(args.url) as client:
        viewer = ViewerState(client.route())
        print(f"Route: {viewer.progress.total_km:.2f} km. Ctrl+C to quit.\n")
        next_sync = next_fix = 0.0
        try:
            while True:
                now = time.monotonic()
                try:
                    if now >= next_sync:
                        if viewer.on_sync(client.sync_state()):
                            print(f"\n↺ reset detected (epoch {viewer.epoch})")
                        next_sync = now + SYNC_INTERVAL_S
                    if now >= next_fix:
                        fix = client.current_fix()
                        if fix is not None:
                            viewer.on_location(fix)
                        next_fix = now + FIX_INTERVAL_S
                except (TrackerError, httpx.HTTPError) as exc:
                    print(f"\npoll failed: {exc}")
                p = viewer.progress
                print(
                    f"\r{p.fraction * 100:5.1f}%  {p.completed_km:7.2f} / {p.total_km:.2f} km",
                    end="",
                    flush=True,
                )
                time.sleep(1.0)
        except KeyboardInterrupt:
            print("\nStopped.")


if __name__ == "__main__":
    main()

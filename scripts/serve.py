"""Run the tracker web server.

Usage:
    uv run python scripts/serve.py
    uv run python scripts/serve.py --host 0.0.0.0 --port 3000
"""

from __future__ import annotations

import argparse

import uvicorn
from dotenv import load_dotenv


def main() -> None:
    ap = argparse.ArgumentParser(description="Serve the parade tracker API")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8000)
    ap.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    args = ap.parse_args()

    load_dotenv()
    uvicorn.run("parade_tracker.web.app:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()

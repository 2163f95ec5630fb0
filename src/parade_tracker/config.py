"""Environment-driven settings.

Values come from the process environment; call :func:`dotenv.load_dotenv`
first to pick up a ``.env`` file from the project root.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from parade_tracker.errors import ConfigurationError

DEFAULT_OSRM_URL = "https://router.project-osrm.org"


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "")
    if not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the tracker service.

    Args:
        secret: Shared secret required by every write/admin endpoint.  An empty
            secret rejects all writes.
        waypoints_path: JSON file with ``[{name, lat, lng}, ...]``.
        route_file: Optional pre-built GeoJSON path; skips upstream routing.
        osrm_base_url: Base URL of the OSRM routing service.
        osrm_profile: OSRM profile (``driving``, ``walking`` ...).
        batch_size: Waypoints per upstream request.
        retry_attempts: Attempt ceiling per batch.
        retry_base_delay_s: First backoff delay; doubles on each retry.
        timeout_s: Per-attempt timeout in seconds.
        log_level: Root logging level name.
    """

    secret: str = ""
    waypoints_path: str = "waypoints.json"
    route_file: str | None = None
    osrm_base_url: str = DEFAULT_OSRM_URL
    osrm_profile: str = "driving"
    batch_size: int = 20
    retry_attempts: int = 4
    retry_base_delay_s: float = 0.5
    timeout_s: float = 12.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Build settings from *env* (defaults to :data:`os.environ`).

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed or is
                out of range.
        """
        if env is None:
            env = os.environ
        settings = cls(
            secret=env.get("TRACKER_SECRET", ""),
            waypoints_path=env.get("TRACKER_WAYPOINTS", "waypoints.json"),
            route_file=env.get("TRACKER_ROUTE_FILE") or None,
            osrm_base_url=env.get("OSRM_BASE_URL", DEFAULT_OSRM_URL),
            osrm_profile=env.get("OSRM_PROFILE", "driving"),
            batch_size=_env_int(env, "ROUTE_BATCH_SIZE", 20),
            retry_attempts=_env_int(env, "ROUTE_RETRY_ATTEMPTS", 4),
            retry_base_delay_s=_env_float(env, "ROUTE_RETRY_BASE_DELAY_S", 0.5),
            timeout_s=_env_float(env, "ROUTE_TIMEOUT_S", 12.0),
            log_level=env.get("TRACKER_LOG_LEVEL", "INFO").upper(),
        )
        if settings.batch_size < 2:
            raise ConfigurationError("ROUTE_BATCH_SIZE must be >= 2")
        if settings.retry_attempts < 1:
            raise ConfigurationError("ROUTE_RETRY_ATTEMPTS must be >= 1")
        if settings.timeout_s <= 0:
            raise ConfigurationError("ROUTE_TIMEOUT_S must be > 0")
        return settings


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the server and scripts."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

"""Error taxonomy shared by the route engine, the store and the Web API."""

from __future__ import annotations

from typing import Any


class TrackerError(Exception):
    """Base class for all parade tracker errors."""


class ConfigurationError(TrackerError):
    """Bad or missing waypoints, path file or settings."""


class InsufficientWaypointsError(ConfigurationError):
    """Fewer than two usable points remain to form a path."""


class UpstreamError(TrackerError):
    """The routing service failed (HTTP error, timeout, missing geometry)."""


class RouteBuildError(TrackerError):
    """Every upstream batch failed, so no path could be produced.

    Attributes:
        diagnostics: The :class:`~parade_tracker.routing.builder.RouteDiagnostics`
            collected while trying.
    """

    def __init__(self, message: str, diagnostics: Any = None) -> None:
        super().__init__(message)
        self.diagnostics = diagnostics


class ValidationError(TrackerError):
    """Malformed client input. Never mutates state."""


class AuthError(TrackerError):
    """Missing or wrong shared-secret token."""

    def __init__(self, message: str = "unauthorized") -> None:
        super().__init__(message)


class InternalError(TrackerError):
    """Unexpected failure surfaced to clients with a generic message."""

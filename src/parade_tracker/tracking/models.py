"""Tracking state data structures and push events."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

STATE = "state"
LOCATION = "location"
RESET = "reset"


@dataclass(frozen=True)
class LocationFix:
    """The single most recent position of the tracked vehicle."""

    lat: float
    lng: float
    accuracy: float | None
    """Reported accuracy radius in metres, if the device sent one."""

    client_ts: int
    """Device timestamp, epoch milliseconds."""

    server_ts: int
    """Time the server committed the fix, epoch milliseconds."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "accuracy": self.accuracy,
            "ts": self.client_ts,
            "serverTs": self.server_ts,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> LocationFix:
        """Inverse of :meth:`to_dict`, used by viewers and the HTTP client."""
        accuracy = d.get("accuracy")
        return cls(
            lat=float(d["lat"]),
            lng=float(d["lng"]),
            accuracy=float(accuracy) if accuracy is not None else None,
            client_ts=int(d.get("ts") or 0),
            server_ts=int(d.get("serverTs") or 0),
        )


@dataclass(frozen=True)
class TrackingSnapshot:
    """An atomic read of the store: current fix and epoch together."""

    fix: LocationFix | None
    epoch: int

    @property
    def has_location(self) -> bool:
        return self.fix is not None


@dataclass(frozen=True)
class TrackingEvent:
    """One committed state change, in the shape pushed to viewers."""

    kind: str
    """``"state"``, ``"location"`` or ``"reset"``."""

    data: dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        return {"event": self.kind, "data": dict(self.data)}


def state_event(snapshot: TrackingSnapshot) -> TrackingEvent:
    return TrackingEvent(STATE, {"epoch": snapshot.epoch, "hasLocation": snapshot.has_location})


def location_event(fix: LocationFix) -> TrackingEvent:
    return TrackingEvent(LOCATION, fix.to_dict())


def reset_event(epoch: int, timestamp: int) -> TrackingEvent:
    return TrackingEvent(RESET, {"timestamp": timestamp, "epoch": epoch})

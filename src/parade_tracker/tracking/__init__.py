"""Live tracking state: the location store, epoch protocol and broadcast."""

from parade_tracker.tracking.hub import BroadcastHub, Subscription
from parade_tracker.tracking.models import (
    LocationFix,
    TrackingEvent,
    TrackingSnapshot,
)
from parade_tracker.tracking.store import LocationStore, check_token
from parade_tracker.tracking.viewer import ViewerState

__all__ = [
    "BroadcastHub",
    "LocationFix",
    "LocationStore",
    "Subscription",
    "TrackingEvent",
    "TrackingSnapshot",
    "ViewerState",
    "check_token",
]

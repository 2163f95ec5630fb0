"""LocationStore — the authoritative fix and epoch, with ordered change events.

Every mutation commits and notifies listeners while holding one lock, so

* listeners receive events in exactly the order they were committed,
* no listener ever hears about a fix that was not committed, and
* a reset can never interleave with an update: an update either lands
  before the reset (and is cleared by it) or after it (under the new epoch).
"""

from __future__ import annotations

import hmac
import logging
import math
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any

from parade_tracker.errors import AuthError, ValidationError
from parade_tracker.tracking.models import (
    LocationFix,
    TrackingEvent,
    TrackingSnapshot,
    location_event,
    reset_event,
)

_logger = logging.getLogger(__name__)

Listener = Callable[[TrackingEvent], None]


def check_token(provided: Any, secret: str) -> bool:
    """Constant-time shared-secret comparison; an empty secret matches nothing."""
    if not secret or not isinstance(provided, str):
        return False
    return hmac.compare_digest(provided.encode("utf-8"), secret.encode("utf-8"))


def _finite_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    num = float(value)
    return num if math.isfinite(num) else None


def parse_fix(payload: Mapping[str, Any], server_ts: int) -> LocationFix:
    """Validate a submitted position.

    ``lat`` and ``lng`` must be present as finite JSON numbers.  ``accuracy``
    is kept only when numeric; ``ts`` falls back to *server_ts*.

    Raises:
        ValidationError: If lat/lng are missing or not numeric.
    """
    lat = _finite_number(payload.get("lat"))
    lng = _finite_number(payload.get("lng"))
    if lat is None or lng is None:
        raise ValidationError("lat and lng are required numeric values")
    accuracy = _finite_number(payload.get("accuracy"))
    client_ts = _finite_number(payload.get("ts"))
    return LocationFix(
        lat=lat,
        lng=lng,
        accuracy=accuracy,
        client_ts=int(client_ts) if client_ts is not None else server_ts,
        server_ts=server_ts,
    )


class LocationStore:
    """Process-wide holder of the latest fix and the tracking epoch.

    Parameters
    ----------
    secret:
        Shared secret required by :meth:`update` and :meth:`reset`.
    clock:
        Returns epoch seconds; injectable for tests.
    """

    def __init__(self, secret: str, clock: Callable[[], float] = time.time) -> None:
        self._secret = secret
        self._clock = clock
        self._lock = threading.Lock()
        self._fix: LocationFix | None = None
        self._epoch: int = self._now_ms()
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def current(self) -> TrackingSnapshot:
        """Return the current fix and epoch as one consistent snapshot."""
        with self._lock:
            return TrackingSnapshot(fix=self._fix, epoch=self._epoch)

    @property
    def epoch(self) -> int:
        return self.current().epoch

    def server_time(self) -> int:
        """Server clock in epoch milliseconds."""
        return self._now_ms()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update(self, payload: Mapping[str, Any], token: Any) -> LocationFix:
        """Replace the current fix and notify listeners.

        The payload carries no epoch: a fix sent by a device that has not yet
        seen a reset is applied under the new epoch.

        Raises:
            AuthError: Token mismatch (checked first).
            ValidationError: Missing or non-numeric lat/lng.
        """
        if not check_token(token, self._secret):
            raise AuthError()
        if not isinstance(payload, Mapping):
            raise ValidationError("location payload must be an object")

        with self._lock:
            fix = parse_fix(payload, self._now_ms())
            self._fix = fix
            self._notify(location_event(fix))
        return fix

    def reset(self, token: Any) -> int:
        """Clear the fix and start a new epoch.

        The new epoch is the current time in milliseconds, forced strictly
        greater than the previous epoch.

        Raises:
            AuthError: Token mismatch.
        """
        if not check_token(token, self._secret):
            raise AuthError()

        with self._lock:
            now = self._now_ms()
            self._epoch = max(now, self._epoch + 1)
            self._fix = None
            epoch = self._epoch
            self._notify(reset_event(epoch, now))
        _logger.info("Tracking reset; new epoch %d", epoch)
        return epoch

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> TrackingSnapshot:
        """Register *listener* and return the snapshot it starts from.

        Registration and snapshot are atomic: the listener receives every
        event committed after the returned snapshot and none before it.
        """
        with self._lock:
            self._listeners.append(listener)
            return TrackingSnapshot(fix=self._fix, epoch=self._epoch)

    def remove_listener(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _notify(self, event: TrackingEvent) -> None:
        # Called with the lock held.
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                _logger.exception("Listener failed on %s event", event.kind)

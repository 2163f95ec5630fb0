"""ViewerState — what a viewer holds locally, and how it resynchronises.

Viewers receive fixes and epochs over the push channel or by polling, and
re-run the progress split locally.  The epoch is the only signal that local
state is stale: whenever it differs from the local copy, the viewer drops its
marker and redraws the whole path as upcoming.
"""

from __future__ import annotations

import logging
from typing import Any

from parade_tracker.route.models import GeoPoint, ProgressSplit, RoutePath
from parade_tracker.route.splitter import ProgressSplitter
from parade_tracker.tracking.models import LOCATION, RESET, STATE, LocationFix

_logger = logging.getLogger(__name__)


class ViewerState:
    """Local mirror of the tracker state for one viewer.

    Every handler is idempotent: applying the same fix or epoch twice leaves
    the state unchanged, so duplicate delivery by push and poll is harmless.

    Parameters
    ----------
    path:
        The route as fetched from the server.
    """

    def __init__(self, path: RoutePath) -> None:
        self._splitter = ProgressSplitter(path)
        self.epoch: int | None = None
        self.fix: LocationFix | None = None
        self.progress: ProgressSplit = self._splitter.full_upcoming()
        self.hard_resets = 0
        self._floor_ts: int | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def on_state(self, epoch: int) -> bool:
        """Handle a ``state`` push or sync poll.  Returns True on hard reset."""
        if self.epoch is None:
            self.epoch = epoch
            return False
        if epoch != self.epoch:
            self._hard_reset(epoch)
            return True
        return False

    def on_sync(self, data: dict[str, Any]) -> bool:
        """Handle a sync-state poll response ``{epoch, hasLocation, serverTime}``."""
        epoch = data.get("epoch")
        if not isinstance(epoch, int) or isinstance(epoch, bool):
            return False
        return self.on_state(epoch)

    def on_reset(self, epoch: int | None, timestamp: int | None = None) -> None:
        """Handle a ``reset`` push: always clear, adopt *epoch* when given."""
        self._hard_reset(epoch if epoch is not None else self.epoch)
        self._floor_ts = timestamp

    def on_location(self, fix: LocationFix) -> ProgressSplit:
        """Apply a fix unless it is older than what the viewer already shows."""
        if self.fix is not None and fix.server_ts < self.fix.server_ts:
            return self.progress
        if self._floor_ts is not None and fix.server_ts < self._floor_ts:
            return self.progress
        self.fix = fix
        self.progress = self._splitter.split_at_point(GeoPoint(fix.lat, fix.lng))
        return self.progress

    def apply(self, message: dict[str, Any]) -> None:
        """Dispatch one push-channel message ``{"event": ..., "data": ...}``."""
        kind = message.get("event")
        data = message.get("data") or {}
        if kind == STATE:
            epoch = data.get("epoch")
            if isinstance(epoch, int):
                self.on_state(epoch)
        elif kind == RESET:
            epoch = data.get("epoch")
            self.on_reset(epoch if isinstance(epoch, int) else None, data.get("timestamp"))
        elif kind == LOCATION:
            try:
                fix = LocationFix.from_dict(data)
            except (KeyError, TypeError, ValueError):
                _logger.warning("Ignoring malformed location message: %r", data)
                return
            self.on_location(fix)
        else:
            _logger.debug("Ignoring unknown event %r", kind)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _hard_reset(self, epoch: int | None) -> None:
        self.epoch = epoch
        self.fix = None
        self.progress = self._splitter.full_upcoming()
        self.hard_resets += 1

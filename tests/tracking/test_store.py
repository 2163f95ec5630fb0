"""LocationStore: auth, validation, epochs and ordered listener events."""

from __future__ import annotations

import threading

import pytest

from parade_tracker.errors import AuthError, ValidationError
from parade_tracker.tracking.models import LOCATION, RESET
from parade_tracker.tracking.store import LocationStore, check_token, parse_fix

SECRET = "s3cret"


class FrozenClock:
    """Clock returning a fixed time unless advanced."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _store(clock=None) -> LocationStore:
    return LocationStore(SECRET, clock=clock or FrozenClock())


def _fix(lat=40.8849, lng=-72.9464, **extra):
    return {"lat": lat, "lng": lng, **extra}


# ---------------------------------------------------------------------------
# Tokens and parsing
# ---------------------------------------------------------------------------


def test_check_token():
    assert check_token("s3cret", "s3cret")
    assert not check_token("wrong", "s3cret")
    assert not check_token(None, "s3cret")
    assert not check_token(123, "s3cret")
    assert not check_token("", "")


def test_parse_fix_defaults_ts_to_server_time():
    fix = parse_fix(_fix(), server_ts=42)
    assert fix.client_ts == 42
    assert fix.server_ts == 42
    assert fix.accuracy is None


def test_parse_fix_keeps_client_fields():
    fix = parse_fix(_fix(accuracy=7.5, ts=1000), server_ts=2000)
    assert fix.accuracy == 7.5
    assert fix.client_ts == 1000
    assert fix.to_dict() == {
        "lat": 40.8849,
        "lng": -72.9464,
        "accuracy": 7.5,
        "ts": 1000,
        "serverTs": 2000,
    }


@pytest.mark.parametrize(
    "payload",
    [
        {"lng": -72.9},
        {"lat": 40.8},
        {"lat": "40.8", "lng": -72.9},
        {"lat": True, "lng": -72.9},
        {"lat": None, "lng": -72.9},
        {"lat": float("nan"), "lng": -72.9},
    ],
)
def test_parse_fix_rejects_bad_coordinates(payload):
    with pytest.raises(ValidationError, match="lat and lng"):
        parse_fix(payload, server_ts=0)


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


class TestUpdate:
    def test_initial_state_is_empty(self):
        store = _store()
        snap = store.current()
        assert snap.fix is None
        assert not snap.has_location
        assert snap.epoch == 1_700_000_000_000

    def test_accepted_fix_becomes_current(self):
        store = _store()
        store.update(_fix(accuracy=5), SECRET)
        snap = store.current()
        assert snap.has_location
        assert snap.fix.lat == 40.8849
        assert snap.fix.server_ts == 1_700_000_000_000

    def test_later_fix_replaces_earlier(self):
        store = _store()
        store.update(_fix(lat=40.1), SECRET)
        store.update(_fix(lat=40.2), SECRET)
        assert store.current().fix.lat == 40.2

    def test_wrong_token_changes_nothing(self):
        store = _store()
        with pytest.raises(AuthError):
            store.update(_fix(), "nope")
        assert not store.current().has_location

    def test_auth_is_checked_before_validation(self):
        store = _store()
        with pytest.raises(AuthError):
            store.update({"lat": "bad"}, None)

    def test_invalid_fix_keeps_previous(self):
        store = _store()
        store.update(_fix(lat=40.1), SECRET)
        with pytest.raises(ValidationError):
            store.update({"lng": -72.9}, SECRET)
        assert store.current().fix.lat == 40.1

    def test_non_object_payload_rejected(self):
        with pytest.raises(ValidationError):
            _store().update(["lat", 40.1], SECRET)

    def test_empty_secret_rejects_every_token(self):
        store = LocationStore("")
        with pytest.raises(AuthError):
            store.update(_fix(), "")
        with pytest.raises(AuthError):
            store.reset("")


# ---------------------------------------------------------------------------
# Resets
# ---------------------------------------------------------------------------


class TestReset:
    def test_reset_clears_fix_and_bumps_epoch(self):
        clock = FrozenClock()
        store = _store(clock)
        before = store.epoch
        store.update(_fix(), SECRET)
        clock.now += 5
        new_epoch = store.reset(SECRET)
        assert new_epoch == before + 5000
        assert store.current().fix is None
        assert store.epoch == new_epoch

    def test_epochs_strictly_increase_with_a_stuck_clock(self):
        store = _store()
        first = store.epoch
        e1 = store.reset(SECRET)
        e2 = store.reset(SECRET)
        assert first < e1 < e2

    def test_fix_after_reset_is_accepted_under_new_epoch(self):
        store = _store()
        epoch = store.reset(SECRET)
        store.update(_fix(), SECRET)
        snap = store.current()
        assert snap.has_location
        assert snap.epoch == epoch

    def test_reset_requires_token(self):
        store = _store()
        store.update(_fix(), SECRET)
        epoch = store.epoch
        with pytest.raises(AuthError):
            store.reset("nope")
        assert store.epoch == epoch
        assert store.current().has_location


# ---------------------------------------------------------------------------
# Listeners
# ---------------------------------------------------------------------------


class TestListeners:
    def test_events_arrive_in_commit_order(self):
        store = _store()
        events = []
        store.add_listener(events.append)

        store.update(_fix(lat=40.1), SECRET)
        epoch = store.reset(SECRET)
        store.update(_fix(lat=40.2), SECRET)

        assert [e.kind for e in events] == [LOCATION, RESET, LOCATION]
        assert events[1].data["epoch"] == epoch
        assert events[2].data["lat"] == 40.2

    def test_rejected_writes_emit_nothing(self):
        store = _store()
        events = []
        store.add_listener(events.append)
        with pytest.raises(AuthError):
            store.update(_fix(), "nope")
        with pytest.raises(ValidationError):
            store.update({}, SECRET)
        assert events == []

    def test_add_listener_returns_snapshot(self):
        store = _store()
        store.update(_fix(), SECRET)
        snap = store.add_listener(lambda e: None)
        assert snap.has_location
        assert snap.epoch == store.epoch

    def test_removed_listener_hears_nothing(self):
        store = _store()
        events = []
        store.add_listener(events.append)
        store.remove_listener(events.append)
        store.update(_fix(), SECRET)
        assert events == []

    def test_failing_listener_does_not_block_others(self):
        store = _store()
        events = []

        def broken(event):
            raise RuntimeError("viewer gone")

        store.add_listener(broken)
        store.add_listener(events.append)
        store.update(_fix(), SECRET)
        assert len(events) == 1
        assert store.current().has_location

    def test_concurrent_writers_keep_events_consistent(self):
        store = _store()
        events = []
        store.add_listener(events.append)

        def writer(lat):
            for _ in range(50):
                store.update(_fix(lat=lat), SECRET)

        threads = [threading.Thread(target=writer, args=(40.0 + i / 10,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(events) == 200
        assert events[-1].data["lat"] == store.current().fix.lat

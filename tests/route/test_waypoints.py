"""Waypoint loading and sanitation."""

from __future__ import annotations

import json
import logging

import pytest

from parade_tracker.errors import ConfigurationError
from parade_tracker.route.waypoints import BoundingBox, load_waypoints, sanitize_waypoints


def _wp(name, lat, lng):
    return {"name": name, "lat": lat, "lng": lng}


# ---------------------------------------------------------------------------
# sanitize_waypoints
# ---------------------------------------------------------------------------


class TestSanitize:
    def test_valid_list_passes_through(self):
        result = sanitize_waypoints(
            [_wp("a", 40.8849, -72.9464), _wp("b", 40.8839, -72.9424), _wp("c", 40.8853, -72.9381)]
        )
        assert [w.name for w in result.waypoints] == ["a", "b", "c"]
        assert result.issues == []
        assert result.usable

    def test_out_of_bounds_entry_is_rejected(self):
        result = sanitize_waypoints(
            [_wp("a", 40.88, -72.94), _wp("typo", 4.088, -72.93), _wp("c", 40.89, -72.92)]
        )
        assert [w.name for w in result.waypoints] == ["a", "c"]
        assert len(result.issues) == 1
        assert result.issues[0].to_dict() == {
            "idx": 1,
            "name": "typo",
            "reason": "Lat/lng out of expected bounds",
        }

    @pytest.mark.parametrize("bad", [None, "north", True, float("nan"), float("inf")])
    def test_non_numeric_entry_is_rejected(self, bad):
        result = sanitize_waypoints(
            [_wp("a", 40.88, -72.94), _wp("bad", bad, -72.93), _wp("c", 40.89, -72.92)]
        )
        assert len(result.waypoints) == 2
        assert result.issues[0].reason == "Non-numeric lat/lng"

    def test_numeric_strings_are_accepted(self):
        result = sanitize_waypoints([_wp("a", "40.88", "-72.94"), _wp("b", 40.89, -72.92)])
        assert result.waypoints[0].lat == 40.88
        assert result.waypoints[0].lng == -72.94

    def test_consecutive_duplicates_collapse_at_six_decimals(self):
        result = sanitize_waypoints(
            [
                _wp("a", 40.8849001, -72.9464),
                _wp("a-again", 40.8849004, -72.9464),
                _wp("b", 40.8839, -72.9424),
                _wp("a-later", 40.8849, -72.9464),
            ]
        )
        assert [w.name for w in result.waypoints] == ["a", "b", "a-later"]
        assert result.issues == []

    def test_missing_name_gets_default(self):
        result = sanitize_waypoints([{"lat": 40.88, "lng": -72.94}, _wp("b", 40.89, -72.92)])
        assert result.waypoints[0].name == "wp_0"

    def test_too_few_valid_adds_global_issue(self, caplog):
        with caplog.at_level(logging.WARNING, logger="parade_tracker.route.waypoints"):
            result = sanitize_waypoints([_wp("a", 40.88, -72.94), _wp("far", 10.0, 10.0)])
        assert not result.usable
        assert result.issues[-1].index == -1
        assert "Fewer than 2" in result.issues[-1].reason
        assert "rejected" in caplog.text

    def test_empty_or_missing_list(self):
        assert not sanitize_waypoints([]).usable
        assert not sanitize_waypoints(None).usable

    def test_custom_bounds(self):
        box = BoundingBox(min_lat=-1.0, max_lat=1.0, min_lng=-1.0, max_lng=3.0)
        result = sanitize_waypoints([_wp("a", 0.0, 0.0), _wp("b", 0.0, 2.0)], box)
        assert result.usable


# ---------------------------------------------------------------------------
# load_waypoints
# ---------------------------------------------------------------------------


class TestLoad:
    def test_reads_json_list(self, tmp_path):
        f = tmp_path / "waypoints.json"
        f.write_text(json.dumps([_wp("a", 40.88, -72.94)]))
        assert load_waypoints(f) == [_wp("a", 40.88, -72.94)]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_waypoints(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        f = tmp_path / "waypoints.json"
        f.write_text("[{")
        with pytest.raises(ConfigurationError):
            load_waypoints(f)

    def test_not_a_list(self, tmp_path):
        f = tmp_path / "waypoints.json"
        f.write_text('{"lat": 1}')
        with pytest.raises(ConfigurationError, match="JSON list"):
            load_waypoints(f)

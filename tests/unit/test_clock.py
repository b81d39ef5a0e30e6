"""Test WallClock and SimClock."""

from datetime import datetime, timedelta, timezone

import pytest

from plan_ledger.core.clock import SimClock, WallClock


class TestWallClock:
    def test_now_returns_utc(self):
        now = WallClock().now()
        assert now.tzinfo == timezone.utc

    def test_now_is_recent(self):
        diff = abs((datetime.now(timezone.utc) - WallClock().now()).total_seconds())
        assert diff < 1.0


class TestSimClock:
    def test_default_start(self):
        assert SimClock().now() == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_custom_start(self, sim_clock, t0):
        assert sim_clock.now() == t0

    def test_set_time_advances(self, sim_clock, t0):
        later = t0 + timedelta(days=1)
        sim_clock.set_time(later)
        assert sim_clock.now() == later

    def test_set_time_cannot_go_backwards(self, sim_clock, t0):
        with pytest.raises(ValueError, match="cannot go backwards"):
            sim_clock.set_time(t0 - timedelta(days=1))

    def test_advance(self, sim_clock, t0):
        sim_clock.advance(timedelta(hours=3))
        assert sim_clock.now() == t0 + timedelta(hours=3)

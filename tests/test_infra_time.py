"""Tests for time utilities."""

from datetime import datetime, timezone

from consent_manager.infra.time import from_millis, now_millis, to_iso, to_millis, utc_now


class TestUtcNow:
    def test_returns_utc_datetime(self):
        assert utc_now().tzinfo == timezone.utc

    def test_returns_current_time(self):
        before = datetime.now(timezone.utc)
        now = utc_now()
        after = datetime.now(timezone.utc)
        assert before <= now <= after


class TestMillis:
    def test_from_millis(self):
        assert from_millis(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert from_millis(1_700_000_000_000).tzinfo == timezone.utc

    def test_to_millis_inverse(self):
        assert to_millis(from_millis(1_700_000_000_123)) == 1_700_000_000_123

    def test_to_millis_naive_is_utc(self):
        assert to_millis(datetime(1970, 1, 1, 0, 0, 1)) == 1000

    def test_now_millis_close_to_utc_now(self):
        assert abs(now_millis() - to_millis(utc_now())) < 5000


class TestToIso:
    def test_none(self):
        assert to_iso(None) is None

    def test_datetime(self):
        assert to_iso(datetime(2026, 1, 2, tzinfo=timezone.utc)) == "2026-01-02T00:00:00+00:00"

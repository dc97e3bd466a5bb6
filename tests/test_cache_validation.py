"""Unit tests for cache validation module."""

from datetime import datetime, timedelta, timezone

from sandboxstart.cache.validation import (
    compute_expires_at,
    get_ttl_remaining,
    is_expired,
    parse_timestamp,
)

NOW = datetime(2026, 3, 1, 8, 30, tzinfo=timezone.utc)


class TestTimestampParsing:
    """Test ISO timestamp parsing."""

    def test_parse_aware(self):
        assert parse_timestamp("2026-03-01T08:30:00+00:00") == NOW

    def test_parse_zulu(self):
        """Test that GitHub-style 'Z' suffixes are accepted."""
        assert parse_timestamp("2026-03-01T08:30:00Z") == NOW

    def test_parse_naive_assumes_utc(self):
        assert parse_timestamp("2026-03-01T08:30:00") == NOW

    def test_parse_datetime_passthrough(self):
        assert parse_timestamp(NOW) == NOW

    def test_parse_invalid(self):
        """Test that garbage and missing values parse to None."""
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp("") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp(12345) is None


class TestExpiry:
    """Test expiry checks."""

    def test_compute_expires_at(self):
        assert compute_expires_at(NOW, 90) == NOW + timedelta(minutes=90)

    def test_not_expired_before_expiry(self):
        expires = (NOW + timedelta(minutes=1)).isoformat()
        assert is_expired(expires, now=NOW) is False

    def test_expired_after_expiry(self):
        expires = (NOW - timedelta(seconds=1)).isoformat()
        assert is_expired(expires, now=NOW) is True

    def test_not_expired_at_boundary(self):
        """Test that expiry requires now to be strictly later."""
        assert is_expired(NOW.isoformat(), now=NOW) is False

    def test_missing_expiry_is_expired(self):
        assert is_expired(None, now=NOW) is True

    def test_unparseable_expiry_is_expired(self):
        assert is_expired("soon", now=NOW) is True

    def test_defaults_to_wall_clock(self):
        future = datetime.now(timezone.utc) + timedelta(hours=1)
        past = datetime.now(timezone.utc) - timedelta(hours=1)

        assert is_expired(future.isoformat()) is False
        assert is_expired(past.isoformat()) is True


class TestTTLRemaining:
    """Test remaining TTL calculation."""

    def test_remaining_within_window(self):
        expires = NOW + timedelta(minutes=30)
        assert get_ttl_remaining(expires.isoformat(), now=NOW) == 1800

    def test_remaining_expired(self):
        expires = NOW - timedelta(hours=2)
        assert get_ttl_remaining(expires.isoformat(), now=NOW) == 0

    def test_remaining_unparseable(self):
        assert get_ttl_remaining("bad", now=NOW) == 0

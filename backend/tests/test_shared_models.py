"""Tests for shared model utilities."""

import uuid
from datetime import UTC, datetime, timedelta, timezone

from app.models.shared import UUIDType, ensure_utc, generate_uuid, utc_now


class TestGenerateUuid:
    def test_returns_uuid4(self):
        result = generate_uuid()
        assert isinstance(result, uuid.UUID)
        assert result.version == 4

    def test_returns_unique_values(self):
        results = {generate_uuid() for _ in range(10)}
        assert len(results) == 10


class TestUtcNow:
    def test_returns_utc(self):
        result = utc_now()
        assert result.tzinfo == UTC

    def test_returns_current_time(self):
        before = datetime.now(UTC)
        result = utc_now()
        after = datetime.now(UTC)
        assert before <= result <= after


class TestEnsureUtc:
    def test_naive_is_read_as_utc(self):
        """Naive datetimes, as SQLite returns them, are taken to be UTC."""
        result = ensure_utc(datetime(2026, 1, 1, 12, 0))
        assert result == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def test_aware_is_converted(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        result = ensure_utc(datetime(2026, 1, 1, 17, 30, tzinfo=ist))
        assert result == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        assert result.tzinfo == UTC


class TestUUIDType:
    def test_cache_ok(self):
        assert UUIDType.cache_ok is True

    def test_process_bind_param_none(self):
        t = UUIDType()
        assert t.process_bind_param(None, None) is None

    def test_process_bind_param_uuid(self):
        t = UUIDType()
        val = uuid.uuid4()
        assert t.process_bind_param(val, None) == str(val)

    def test_process_result_value_string(self):
        t = UUIDType()
        val = "12345678-1234-5678-1234-567812345678"
        result = t.process_result_value(val, None)
        assert isinstance(result, uuid.UUID)
        assert str(result) == val

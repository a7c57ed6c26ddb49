"""
Tests for the trigger gate: secret checks and the in-memory rate limiter.
"""
import pytest

from app.core.config import Settings
from app.core.errors import CronMisconfiguredError
from app.core.security import InMemoryRateLimiter, require_cron_secret, verify_bearer
from conftest import FakeClock

SECRET = "x" * 32


class TestRequireCronSecret:
    def test_missing_secret(self):
        with pytest.raises(CronMisconfiguredError) as exc_info:
            require_cron_secret(Settings(CRON_SECRET=None))
        assert exc_info.value.http_status == 500
        assert exc_info.value.code == "CRON_MISCONFIGURED"

    def test_short_secret(self):
        with pytest.raises(CronMisconfiguredError):
            require_cron_secret(Settings(CRON_SECRET="short"))

    def test_valid_secret(self):
        assert require_cron_secret(Settings(CRON_SECRET=SECRET)) == SECRET


class TestVerifyBearer:
    def test_match(self):
        assert verify_bearer(f"Bearer {SECRET}", SECRET) is True

    @pytest.mark.parametrize("header", [None, "", SECRET, f"bearer {SECRET}", f"Bearer {SECRET}x"])
    def test_mismatch(self, header):
        assert verify_bearer(header, SECRET) is False


class TestInMemoryRateLimiter:
    def test_first_call_allowed(self):
        limiter = InMemoryRateLimiter(60, clock=FakeClock())
        assert limiter.try_acquire("k") is True

    def test_second_call_inside_interval_rejected(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(60, clock=clock)
        limiter.try_acquire("k")
        clock.advance(10.2)
        assert limiter.try_acquire("k") is False
        assert limiter.retry_after("k") == 50

    def test_allowed_after_interval(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(60, clock=clock)
        limiter.try_acquire("k")
        clock.advance(60)
        assert limiter.try_acquire("k") is True

    def test_rejection_does_not_extend_window(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(60, clock=clock)
        limiter.try_acquire("k")
        clock.advance(30)
        limiter.try_acquire("k")
        clock.advance(30)
        assert limiter.try_acquire("k") is True

    def test_keys_independent(self):
        limiter = InMemoryRateLimiter(60, clock=FakeClock())
        assert limiter.try_acquire("a") is True
        assert limiter.try_acquire("b") is True

    def test_retry_after_unknown_key(self):
        assert InMemoryRateLimiter(60, clock=FakeClock()).retry_after("k") == 0

"""Tests for the per-user send rate limiter."""
from unittest.mock import MagicMock

import pytest

from email_relay.errors import EmailRelayError
from email_relay.rate_limiter import SendRateLimiter


class TestSendRateLimiter:
    def test_disabled_when_limit_zero(self):
        limiter = SendRateLimiter(limit=0, window_seconds=60)
        for _ in range(100):
            limiter.enforce("u1")
        assert limiter.memory_cache == {}

    def test_counts_per_key(self):
        limiter = SendRateLimiter(limit=2, window_seconds=60)
        assert limiter.check("a")[0] is True
        assert limiter.check("a")[0] is True
        allowed, count, ttl = limiter.check("a")
        assert allowed is False
        assert count == 2
        assert 0 < ttl <= 60
        assert limiter.check("b")[0] is True

    def test_window_reset(self, monkeypatch):
        clock = {"now": 1_000}
        monkeypatch.setattr("email_relay.rate_limiter.time.time", lambda: clock["now"])

        limiter = SendRateLimiter(limit=1, window_seconds=60)
        assert limiter.check("a")[0] is True
        assert limiter.check("a")[0] is False
        clock["now"] += 61
        assert limiter.check("a")[0] is True

    def test_enforce_raises_429(self):
        limiter = SendRateLimiter(limit=1, window_seconds=30)
        limiter.enforce("u1")
        with pytest.raises(EmailRelayError) as exc:
            limiter.enforce("u1")
        assert exc.value.status_code == 429
        assert exc.value.headers["Retry-After"].isdigit()
        assert exc.value.details["limit"] == 1

    def test_seeds_from_redis(self):
        redis_client = MagicMock()
        redis_client.get.return_value = "5"
        redis_client.ttl.return_value = 40

        limiter = SendRateLimiter(limit=5, window_seconds=60, redis_client=redis_client)
        allowed, count, ttl = limiter.check("send_email:u1")
        assert allowed is False
        assert count == 5
        assert ttl == 40

    def test_redis_errors_fall_back_to_memory(self):
        redis_client = MagicMock()
        redis_client.get.side_effect = ConnectionError("redis down")
        redis_client.set.side_effect = ConnectionError("redis down")

        limiter = SendRateLimiter(limit=3, window_seconds=60, redis_client=redis_client)
        assert limiter.check("k")[0] is True
        assert limiter.memory_cache["k"]["count"] == 1

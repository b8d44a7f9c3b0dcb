"""
Hybrid in-memory + Redis rate limiting for outbound sends
Counts live in memory and are synced to Redis periodically, so several
workers converge on a shared count without a Redis round-trip per request
"""

import logging
import time
from threading import Lock
from typing import Optional

import redis

from .errors import EmailRelayError

logger = logging.getLogger(__name__)

MEMORY_CACHE_SYNC_INTERVAL = 10  # Sync to Redis every 10 seconds
MEMORY_CACHE_CLEANUP_INTERVAL = 60  # Clean up expired entries every 60 seconds


def connect_redis(redis_url: str) -> Optional[redis.Redis]:
    """Connect to Redis, or return None so the limiter runs memory-only"""
    # Mask password in URL for logging
    if "@" in redis_url:
        url_parts = redis_url.split("@")
        protocol = url_parts[0].split(":")[0]
        masked_url = f"{protocol}:****@{url_parts[1]}"
    else:
        masked_url = "****"
    logger.info(f"📡 Using Redis URL connection: {masked_url}")

    try:
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30,
        )
        client.ping()
        logger.info("Redis connected successfully via URL")
        return client
    except Exception as e:
        logger.warning(f"⚠️ Redis unavailable, rate limiting will count in memory only: {e}")
        return None


class SendRateLimiter:
    """Fixed-window counter per key (e.g. send_email:<user id>)"""

    def __init__(
        self,
        limit: int,
        window_seconds: int,
        redis_client: Optional[redis.Redis] = None,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.redis_client = redis_client
        # Format: {key: {'count': int, 'reset_time': int, 'last_redis_sync': int}}
        self.memory_cache: dict[str, dict] = {}
        self.cache_lock = Lock()
        self.last_cleanup_time = 0

    @property
    def enabled(self) -> bool:
        return self.limit > 0

    def cleanup_expired_cache(self, current_time: int) -> None:
        if current_time - self.last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
            return

        with self.cache_lock:
            expired_keys = [
                k for k, v in self.memory_cache.items() if current_time >= v.get("reset_time", 0)
            ]
            for k in expired_keys:
                del self.memory_cache[k]

            if expired_keys:
                logger.debug(f"🧹 Cleaned up {len(expired_keys)} expired rate limit entries")

        self.last_cleanup_time = current_time

    def _load_entry(self, key: str, current_time: int) -> dict:
        if self.redis_client is not None:
            try:
                redis_count = self.redis_client.get(key)
                redis_ttl = self.redis_client.ttl(key)
                if redis_count and redis_ttl > 0:
                    return {
                        "count": int(redis_count),
                        "reset_time": current_time + redis_ttl,
                        "last_redis_sync": current_time,
                    }
            except Exception as e:
                logger.warning(f"⚠️ Failed to load from Redis, using memory only: {e}")

        return {
            "count": 0,
            "reset_time": current_time + self.window_seconds,
            "last_redis_sync": current_time,
        }

    def _sync(self, key: str, entry: dict, current_time: int) -> None:
        if self.redis_client is None:
            return
        if current_time - entry.get("last_redis_sync", 0) < MEMORY_CACHE_SYNC_INTERVAL:
            return
        try:
            self.redis_client.set(key, entry["count"], ex=self.window_seconds)
            entry["last_redis_sync"] = current_time
            logger.debug(f"📡 Synced {key} to Redis: {entry['count']}/{self.limit}")
        except Exception as e:
            logger.warning(f"⚠️ Failed to sync to Redis: {e}")

    def check(self, key: str) -> tuple[bool, int, int]:
        """
        Count one request against `key`.

        Returns:
            Tuple of (is_allowed, current_count, ttl_seconds)
        """
        current_time = int(time.time())
        self.cleanup_expired_cache(current_time)

        with self.cache_lock:
            if key not in self.memory_cache:
                self.memory_cache[key] = self._load_entry(key, current_time)

            entry = self.memory_cache[key]

            if current_time >= entry["reset_time"]:
                entry["count"] = 0
                entry["reset_time"] = current_time + self.window_seconds
                entry["last_redis_sync"] = 0

            is_allowed = entry["count"] < self.limit
            if is_allowed:
                entry["count"] += 1

            self._sync(key, entry, current_time)

            ttl = entry["reset_time"] - current_time
            return is_allowed, entry["count"], max(0, ttl)

    def enforce(self, user_id: str) -> None:
        """Raise a 429 relay error when the user is over their send budget"""
        if not self.enabled:
            return

        key = f"send_email:{user_id}"
        is_allowed, current_count, ttl = self.check(key)
        if not is_allowed:
            logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{self.limit} sends used")
            raise EmailRelayError(
                429,
                f"Rate limit exceeded. Maximum {self.limit} emails per {self.window_seconds} seconds.",
                details={
                    "retry_after": ttl,
                    "limit": self.limit,
                    "window_seconds": self.window_seconds,
                },
                headers={"Retry-After": str(ttl)},
            )

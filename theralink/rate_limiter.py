"""
Hybrid in-memory + Redis rate limiting

Counts are kept in process memory and synced to Redis every few seconds, so
a burst of requests costs one Redis write instead of one per request. A new
process picks up the current window from Redis on first use of a key.
"""

import logging
import time
from threading import Lock
from typing import Callable, Optional

import redis
from fastapi import HTTPException, Request, status

from .config import (
    REDIS_DB,
    REDIS_HOST,
    REDIS_PASSWORD,
    REDIS_PORT,
    REDIS_SSL,
    REDIS_URL,
)

logger = logging.getLogger(__name__)

SYNC_INTERVAL = 10  # seconds between Redis syncs of one key
CLEANUP_INTERVAL = 60  # seconds between sweeps of expired memory entries

redis_client: Optional[redis.Redis] = None

CONNECTION_OPTIONS = {
    "decode_responses": True,
    "socket_connect_timeout": 15,
    "socket_timeout": 30,
    "retry_on_timeout": True,
    "health_check_interval": 30,
    "max_connections": 20,
}


def _mask_url(url: str) -> str:
    if "@" not in url:
        return "****"
    scheme = url.split(":")[0]
    return f"{scheme}:****@{url.split('@', 1)[1]}"


def get_redis_client() -> redis.Redis:
    """Get or create the shared Redis client (REDIS_URL or host/port settings)"""
    global redis_client

    if redis_client is None:
        if REDIS_URL:
            logger.info(f"📡 Connecting to Redis via URL: {_mask_url(REDIS_URL)}")
            client = redis.from_url(REDIS_URL, **CONNECTION_OPTIONS)
        else:
            logger.info(
                f"📡 Connecting to Redis at {REDIS_HOST}:{REDIS_PORT} "
                f"(db {REDIS_DB}, {'SSL' if REDIS_SSL else 'no SSL'})"
            )
            client = redis.Redis(
                host=REDIS_HOST,
                port=REDIS_PORT,
                password=REDIS_PASSWORD,
                db=REDIS_DB,
                ssl=REDIS_SSL,
                **CONNECTION_OPTIONS,
            )
        try:
            client.ping()
        except Exception as e:
            logger.error(f"❌ Failed to connect to Redis: {e}")
            raise
        logger.info("✅ Redis connected")
        redis_client = client

    return redis_client


class HybridRateLimiter:
    """Fixed-window counter per key, memory first with periodic Redis sync"""

    def __init__(
        self,
        client_factory: Callable[[], redis.Redis] = get_redis_client,
        clock: Callable[[], float] = time.time,
    ):
        self.client_factory = client_factory
        self.clock = clock
        self.entries: dict[str, dict] = {}
        self.lock = Lock()
        self.last_cleanup = 0

    def _cleanup(self, now: int) -> None:
        if now - self.last_cleanup < CLEANUP_INTERVAL:
            return
        expired = [k for k, v in self.entries.items() if now >= v["reset_time"]]
        for key in expired:
            del self.entries[key]
        if expired:
            logger.debug(f"🧹 Cleaned up {len(expired)} expired rate limit entries")
        self.last_cleanup = now

    def _load(self, client: redis.Redis, key: str, window_seconds: int, now: int) -> dict:
        try:
            count = client.get(key)
            ttl = client.ttl(key)
            if count and ttl > 0:
                return {"count": int(count), "reset_time": now + ttl, "last_sync": now}
        except Exception as e:
            logger.warning(f"⚠️ Failed to load {key} from Redis, using memory only: {e}")
        return {"count": 0, "reset_time": now + window_seconds, "last_sync": now}

    def hit(self, key: str, limit: int, window_seconds: int) -> tuple[bool, int, int]:
        """
        Count one request against key.

        Returns:
            (is_allowed, current_count, seconds_until_reset)
        """
        now = int(self.clock())
        client = self.client_factory()

        with self.lock:
            self._cleanup(now)

            entry = self.entries.get(key)
            if entry is None:
                entry = self.entries[key] = self._load(client, key, window_seconds, now)

            if now >= entry["reset_time"]:
                entry.update(count=0, reset_time=now + window_seconds, last_sync=0)

            allowed = entry["count"] < limit
            if allowed:
                entry["count"] += 1

            if now - entry["last_sync"] >= SYNC_INTERVAL:
                try:
                    client.set(key, entry["count"], ex=window_seconds)
                    entry["last_sync"] = now
                except Exception as e:
                    logger.warning(f"⚠️ Failed to sync {key} to Redis: {e}")

            return allowed, entry["count"], max(0, entry["reset_time"] - now)


limiter = HybridRateLimiter()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Per-IP rate limit dependency.

    Example:
        contact_limit = create_rate_limiter(5, 3600, "contact")

        @router.post("/contact")
        async def contact(..., _: None = Depends(contact_limit)): ...
    """

    async def rate_limiter(request: Request):
        key = f"{key_prefix}:{client_ip(request)}"
        try:
            allowed, count, ttl = limiter.hit(key, limit, window_seconds)
        except Exception as e:
            logger.error(f"❌ Rate limiting error: {e}")
            logger.warning("🔒 Denying request due to rate limiting error (fail-closed mode)")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Rate limiting service temporarily unavailable",
            ) from e

        if not allowed:
            logger.warning(f"🚫 Rate limit exceeded for {key} ({count}/{limit})")
            raise HTTPException(
                status_code=429,
                detail={
                    "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                    "retry_after": ttl,
                },
                headers={"Retry-After": str(ttl)},
            )

        request.state.rate_limit_remaining = limit - count

    return rate_limiter

"""Ledger caches — key/value stores with expiry that hold the identity IP
ledger. Redis in production, an in-process dict for development and tests."""

import time
from typing import Any, Optional

import redis.asyncio as redis
import structlog
from tenacity import retry, stop_after_attempt, wait_exponential

from geoip_jobs.config import LEDGER_KEY_PREFIX, REDIS_URL

log = structlog.get_logger(component="ledger_cache")


class RedisCache:
    """Async Redis-backed cache. Keys are namespaced with ``prefix``."""

    def __init__(self, client, prefix: str = LEDGER_KEY_PREFIX):
        self.client = client
        self.prefix = prefix

    async def get(self, key: str, default: Any = None) -> Any:
        value = await self.client.get(self.prefix + key)
        return default if value is None else value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self.client.set(self.prefix + key, value, ex=ttl_seconds)


class MemoryCache:
    """In-memory cache with per-key expiry (dev only)."""

    def __init__(self):
        self._store: dict = {}

    async def get(self, key: str, default: Any = None) -> Any:
        item = self._store.get(key)
        if item is None:
            return default
        expires_at, value = item
        if expires_at <= time.monotonic():
            self._store.pop(key, None)
            return default
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = (time.monotonic() + ttl_seconds, value)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
)
async def create_redis_client(url: str):
    """Create a Redis client and check connectivity, retrying on failure."""
    client = redis.Redis.from_url(url, decode_responses=True)
    await client.ping()
    return client


async def build_cache(url: Optional[str] = REDIS_URL):
    """Return a RedisCache when ``url`` is set, otherwise a MemoryCache."""
    if not url:
        log.warning("redis_not_configured", fallback="memory")
        return MemoryCache()
    client = await create_redis_client(url)
    log.info("redis_connected")
    return RedisCache(client)

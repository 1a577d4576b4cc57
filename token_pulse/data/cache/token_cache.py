"""
TOKEN PULSE — Token Cache Layer
Two-tier key/value store: Redis with native expiry, backed by an in-process
TTL cache that answers whenever Redis cannot be reached.

Every set() also lands in the in-process tier, so the fallback is warm the
moment Redis drops out. If Redis recovers mid-TTL the tiers can disagree
until the next write; that staleness window is accepted.
"""
import fnmatch
import json
import threading
import time
from typing import Any, Dict, List, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from cachetools import TLRUCache

from token_pulse.config.settings import get_settings
from token_pulse.utils.logger import get_logger

logger = get_logger("token_cache")

# Logical key schema
TOKENS_ALL_KEY = "tokens:all"


def search_key(query: str) -> str:
    return f"search:{query}"


def token_key(address: str) -> str:
    return f"token:{address}"


class _Entry:
    __slots__ = ("value", "ttl")

    def __init__(self, value: Any, ttl: float):
        self.value = value
        self.ttl = ttl


def _expires_at(key: str, entry: _Entry, now: float) -> float:
    return now + entry.ttl


class MemoryTier:
    """Thread-safe in-process mapping; each key expires after its own TTL."""

    def __init__(self, maxsize: int = 10_000, timer=time.monotonic):
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=timer)
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._cache.get(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            self._cache[key] = _Entry(value, ttl_seconds)

    def keys(self, pattern: str = "*") -> List[str]:
        with self._lock:
            self._cache.expire()
            return [k for k in self._cache.keys() if fnmatch.fnmatchcase(k, pattern)]

    def mget(self, keys: List[str]) -> List[Optional[Any]]:
        return [self.get(k) for k in keys]

    def expire(self) -> None:
        with self._lock:
            self._cache.expire()

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)


class TokenCache:
    """
    Read-through / write-through cache with silent fallback.

    A miss from a healthy Redis returns None without consulting memory; only
    a backend error sends the operation to the in-process tier.
    """

    def __init__(
        self,
        redis_client: Optional[aioredis.Redis] = None,
        default_ttl: Optional[int] = None,
        max_memory_entries: Optional[int] = None,
    ):
        settings = get_settings().cache
        self.default_ttl = default_ttl if default_ttl is not None else settings.snapshot_ttl_seconds
        self._redis = redis_client
        self._memory = MemoryTier(
            maxsize=max_memory_entries if max_memory_entries is not None else settings.max_memory_entries
        )
        self._redis_failures = 0
        self._last_backend = "redis" if redis_client is not None else "memory"

    @property
    def memory(self) -> MemoryTier:
        return self._memory

    def _backend_failed(self, operation: str, error: Exception) -> None:
        self._redis_failures += 1
        self._last_backend = "memory"
        logger.warning(
            "cache_backend_unavailable",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
        )

    @staticmethod
    def _decode(raw: Any) -> Optional[Any]:
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.warning("cache_decode_failed", error=str(e))
            return None

    async def get(self, key: str) -> Optional[Any]:
        if self._redis is not None:
            try:
                raw = await self._redis.get(key)
                self._last_backend = "redis"
                return self._decode(raw)
            except (RedisError, OSError) as e:
                self._backend_failed("get", e)
        return self._memory.get(key)

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        if self._redis is not None:
            try:
                await self._redis.set(key, json.dumps(value), ex=ttl)
                self._last_backend = "redis"
            except (RedisError, OSError) as e:
                self._backend_failed("set", e)
        self._memory.set(key, value, ttl)

    async def set_many(self, items: Dict[str, Any], ttl_seconds: Optional[int] = None) -> None:
        """Pipelined multi-key write with one TTL for all keys."""
        if not items:
            return
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        if self._redis is not None:
            try:
                async with self._redis.pipeline(transaction=False) as pipe:
                    for key, value in items.items():
                        pipe.set(key, json.dumps(value), ex=ttl)
                    await pipe.execute()
                self._last_backend = "redis"
            except (RedisError, OSError) as e:
                self._backend_failed("set_many", e)
        for key, value in items.items():
            self._memory.set(key, value, ttl)

    async def keys(self, pattern: str) -> List[str]:
        if self._redis is not None:
            try:
                found = await self._redis.keys(pattern)
                self._last_backend = "redis"
                return [k.decode() if isinstance(k, bytes) else k for k in found]
            except (RedisError, OSError) as e:
                self._backend_failed("keys", e)
        return self._memory.keys(pattern)

    async def mget(self, keys: List[str]) -> List[Optional[Any]]:
        if not keys:
            return []
        if self._redis is not None:
            try:
                raws = await self._redis.mget(keys)
                self._last_backend = "redis"
                return [self._decode(raw) for raw in raws]
            except (RedisError, OSError) as e:
                self._backend_failed("mget", e)
        return self._memory.mget(keys)

    async def close(self) -> None:
        if self._redis is not None:
            try:
                await self._redis.aclose()
            except (RedisError, OSError) as e:
                logger.warning("cache_close_failed", error=str(e))
        self._memory.clear()

    @property
    def stats(self) -> Dict[str, Any]:
        """Return cache statistics."""
        return {
            "redis_configured": self._redis is not None,
            "last_backend": self._last_backend,
            "redis_failures": self._redis_failures,
            "memory_entries": len(self._memory),
        }


def create_redis_client() -> Optional[aioredis.Redis]:
    """Build the Redis client from settings. Connection is established lazily."""
    settings = get_settings().cache
    if not settings.redis_enabled:
        logger.info("redis_disabled")
        return None
    logger.info("redis_client_created", socket_timeout=settings.socket_timeout_seconds)
    return aioredis.Redis.from_url(
        settings.redis_url,
        socket_timeout=settings.socket_timeout_seconds,
        socket_connect_timeout=settings.socket_timeout_seconds,
        decode_responses=True,
    )


# Singleton instance
_cache: Optional[TokenCache] = None


def get_token_cache() -> TokenCache:
    global _cache
    if _cache is None:
        _cache = TokenCache(redis_client=create_redis_client())
    return _cache

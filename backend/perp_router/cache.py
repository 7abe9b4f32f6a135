"""
In-memory price cache

Keeps per-source price observations for a short TTL so repeated quotes do
not hammer rate-limited sources. Keys are "{symbol}:{source}".
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


def cache_key(symbol: str, source: str) -> str:
    return f"{symbol}:{source}"


class CacheEntry:
    """Single cache entry with TTL"""

    def __init__(self, value: Any, ttl_seconds: float, now: float):
        self.value = value
        self.expires_at = now + ttl_seconds

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class PriceCache:
    """
    In-memory cache with per-entry TTL and an injectable clock

    Safe for asyncio use. Supports single-flight fetches so concurrent
    requests for the same missing key share one upstream call.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        # In-flight futures: key -> Future
        self._in_flight: Dict[str, asyncio.Future] = {}

    def __len__(self) -> int:
        return len(self._cache)

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired"""
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            if entry.is_expired(self._clock()):
                del self._cache[key]
                return None

            return entry.value

    async def set(self, key: str, value: Any, ttl_seconds: float):
        """Set value in cache with TTL"""
        async with self._lock:
            self._cache[key] = CacheEntry(value, ttl_seconds, self._clock())

    async def delete(self, key: str):
        async with self._lock:
            self._cache.pop(key, None)

    async def clear(self):
        async with self._lock:
            self._cache.clear()

    async def cleanup_expired(self) -> int:
        """Remove all expired entries, returning how many were dropped"""
        async with self._lock:
            now = self._clock()
            expired_keys = [key for key, entry in self._cache.items() if entry.is_expired(now)]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)

    async def get_or_fetch(
        self, key: str, fetch_fn: Callable[[], Awaitable[Any]], ttl_seconds: float
    ) -> Any:
        """
        Get from cache or fetch with single-flight protection.

        The first caller for a missing key runs fetch_fn; concurrent callers
        await the same result. A None result is returned but not cached.
        If the first caller is cancelled mid-fetch, the callers sharing its
        fetch get None instead of waiting on it.

        Args:
            key: Cache key
            fetch_fn: Async callable that produces the value
            ttl_seconds: TTL for the cached result
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        shared = self._in_flight.get(key)
        if shared is not None:
            # Shielded so a cancelled waiter does not cancel the owner's future
            try:
                return await asyncio.shield(shared)
            except asyncio.CancelledError:
                if shared.cancelled():
                    logger.debug(f"Shared fetch for {key} was cancelled")
                    return None
                raise

        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        self._in_flight[key] = future

        try:
            result = await fetch_fn()
            if result is not None:
                await self.set(key, result, ttl_seconds)
            future.set_result(result)
            return result
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so a future nobody else awaited doesn't log
            future.exception()
            raise
        finally:
            if not future.done():
                future.cancel()
            self._in_flight.pop(key, None)

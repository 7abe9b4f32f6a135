"""
Base Price Feed Interface

Defines the abstract interface that every price source implements. The base
class owns the shared plumbing (cache lookup, rate limiting, timeout and
failure isolation) so concrete feeds only implement `_query_price`.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional, Tuple

from perp_router.cache import PriceCache, cache_key
from perp_router.rate_limiter import SourceRateLimiter

logger = logging.getLogger(__name__)


class FeedKind(str, Enum):
    ORACLE = "oracle"
    ONCHAIN_ROUTER = "onchain_router"
    PRICE_FEED_CONTRACT = "price_feed_contract"
    EXTERNAL_AGGREGATOR = "external_aggregator"
    VENUE_NATIVE = "venue_native"


@dataclass
class PriceSource:
    """One source's observation of a symbol's price"""
    name: str
    price: Decimal
    latency_ms: int  # 0 when served from cache
    observed_at: datetime = field(default_factory=datetime.utcnow)


def split_symbol(symbol: str) -> Tuple[str, str]:
    """
    Split "BTC/USD" or "BTC-USD" into ("BTC", "USD").

    Raises:
        ValueError: if the symbol has no quote side
    """
    parts = symbol.replace("-", "/").upper().split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"Invalid symbol '{symbol}', expected BASE/QUOTE")
    return parts[0], parts[1]


class PriceFeed(ABC):
    """
    Abstract base class for price sources.

    Each feed represents one external source (oracle, AMM router, feed
    contract, HTTP aggregator or venue contract). `fetch_price` never
    raises: any failure is logged and reported as no data.
    """

    health_symbol = "BTC/USD"

    def __init__(
        self,
        name: str,
        kind: FeedKind,
        cache: Optional[PriceCache] = None,
        rate_limiter: Optional[SourceRateLimiter] = None,
        cache_ttl_seconds: float = 30,
        min_interval_seconds: float = 0,
        timeout_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize price feed.

        Args:
            name: Source name reported in aggregated prices (e.g., "Pyth")
            kind: Adapter kind
            cache: Shared price cache (no caching when None)
            rate_limiter: Shared limiter (no limiting when None)
            cache_ttl_seconds: How long a fetched price stays fresh
            min_interval_seconds: Minimum spacing between upstream requests
            timeout_seconds: Upper bound for a single upstream request
            clock: Monotonic clock used for latency measurement
        """
        self.name = name
        self.kind = kind
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.cache_ttl_seconds = cache_ttl_seconds
        self.timeout_seconds = timeout_seconds
        self._clock = clock

        if rate_limiter is not None and min_interval_seconds > 0:
            rate_limiter.configure(name, min_interval_seconds)

    @abstractmethod
    async def _query_price(self, symbol: str) -> Optional[Decimal]:
        """
        Ask the upstream source for a price.

        Args:
            symbol: "BASE/QUOTE" symbol (e.g., "BTC/USD")

        Returns:
            Price in quote units, or None if the source has no price
        """
        pass

    async def fetch_price(self, symbol: str) -> Optional[PriceSource]:
        """
        Get the source's current price for a symbol.

        Serves from cache when fresh, skips the source when its rate limit
        has no free slot, and otherwise queries upstream under the feed's
        timeout. Concurrent misses for the same symbol share one request.

        Returns:
            PriceSource, or None if the source is unavailable
        """
        key = cache_key(symbol, self.name)

        if self.cache is not None:
            cached = await self.cache.get(key)
            if cached is not None:
                return PriceSource(name=self.name, price=cached, latency_ms=0)

        start = self._clock()
        if self.cache is not None:
            price = await self.cache.get_or_fetch(
                key, lambda: self._fetch_uncached(symbol), self.cache_ttl_seconds
            )
        else:
            price = await self._fetch_uncached(symbol)

        if price is None:
            return None

        latency_ms = max(0, int((self._clock() - start) * 1000))
        return PriceSource(name=self.name, price=price, latency_ms=latency_ms)

    async def _fetch_uncached(self, symbol: str) -> Optional[Decimal]:
        if self.rate_limiter is not None and not self.rate_limiter.try_acquire(self.name):
            logger.debug(f"{self.name}: rate limited, skipping {symbol}")
            return None

        try:
            price = await asyncio.wait_for(self._query_price(symbol), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Source unavailable: {self.name} timed out fetching {symbol}")
            return None
        except Exception as e:
            logger.warning(f"Source unavailable: {self.name} failed fetching {symbol}: {e}")
            return None

        if price is None or price <= 0:
            return None
        return Decimal(price)

    async def is_available(self) -> bool:
        """
        Check if the source is responsive.

        Goes through `fetch_price`, so a rate-limited source reports healthy
        only while it has a cached price or a free slot.
        """
        return await self.fetch_price(self.health_symbol) is not None

    async def close(self):
        """Release any network resources held by the feed"""
        pass

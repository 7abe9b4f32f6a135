"""
Price Aggregator

Fans out to every configured price feed concurrently and picks the best
responding price. Unreliable sources are tolerated: a feed that errors, times
out or is rate limited simply drops out of that aggregation.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Sequence

from perp_router.constants import DEFAULT_SYMBOLS
from perp_router.price_feeds.base import PriceFeed, PriceSource

logger = logging.getLogger(__name__)

NO_SOURCE = "none"


@dataclass
class AggregatedPrice:
    """
    Best price across all feeds for a symbol.

    `best_price` is the highest price among responding sources, or 0 with
    `best_source == "none"` when nothing responded.
    """
    symbol: str
    best_price: Decimal
    best_source: str
    sources: List[PriceSource] = field(default_factory=list)  # Sorted best first
    aggregated_at: datetime = field(default_factory=datetime.utcnow)
    total_latency_ms: int = 0

    @property
    def has_price(self) -> bool:
        return self.best_price > 0

    @property
    def source_count(self) -> int:
        return len(self.sources)


@dataclass
class CurrentPrices:
    """Aggregated prices for several symbols fetched in one round"""
    prices: Dict[str, AggregatedPrice]
    total_latency_ms: int
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def __getitem__(self, symbol: str) -> AggregatedPrice:
        return self.prices[symbol]


@dataclass
class BestSource:
    """Best source for a trade of a given size, with a slippage estimate"""
    source: str
    price: Decimal
    estimated_slippage_pct: Decimal
    latency_ms: int


def estimate_slippage_pct(size_usd: Decimal) -> Decimal:
    """Size-bucketed slippage estimate in percent"""
    if size_usd > 100000:
        return Decimal("0.5")
    if size_usd > 10000:
        return Decimal("0.2")
    return Decimal("0.1")


def to_symbol(pair: str) -> str:
    """"BTC-USD" -> "BTC/USD" """
    return pair.replace("-", "/").upper()


class PriceAggregator:
    """
    Aggregates prices from multiple feeds.

    Usage:
        aggregator = PriceAggregator([pyth_feed, vvs_feed, mm_feed])
        price = await aggregator.get_aggregated_price("BTC/USD")
        if price.has_price:
            print(price.best_source, price.best_price)
    """

    def __init__(self, feeds: List[PriceFeed], clock: Callable[[], float] = time.monotonic):
        """
        Initialize aggregator with price feeds.

        Args:
            feeds: List of PriceFeed instances to aggregate
            clock: Monotonic clock used for latency measurement
        """
        self.feeds = list(feeds)
        self._clock = clock

    async def get_aggregated_price(self, symbol: str) -> AggregatedPrice:
        """
        Get the best price for a symbol across all feeds.

        Every feed is queried concurrently and bounded by its own timeout.
        Results are filtered to positive prices and sorted highest first,
        ties broken by source name so repeated calls agree.

        Args:
            symbol: "BASE/QUOTE" symbol (e.g., "BTC/USD")

        Returns:
            AggregatedPrice (sentinel with best_price 0 if no source responded)
        """
        start = self._clock()

        results = await asyncio.gather(
            *[feed.fetch_price(symbol) for feed in self.feeds],
            return_exceptions=True,
        )

        sources: List[PriceSource] = []
        for feed, result in zip(self.feeds, results):
            if isinstance(result, BaseException):
                logger.warning(f"Source unavailable: {feed.name} raised fetching {symbol}: {result}")
            elif result is not None and result.price > 0:
                sources.append(result)

        sources.sort(key=lambda s: (-s.price, s.name))
        total_latency_ms = max(0, int((self._clock() - start) * 1000))

        logger.info(
            f"Price aggregation complete for {symbol}: {len(sources)}/{len(self.feeds)} sources "
            f"(best={sources[0].name if sources else NO_SOURCE}, latency={total_latency_ms}ms)"
        )

        if not sources:
            return AggregatedPrice(
                symbol=symbol,
                best_price=Decimal("0"),
                best_source=NO_SOURCE,
                sources=[],
                total_latency_ms=total_latency_ms,
            )

        return AggregatedPrice(
            symbol=symbol,
            best_price=sources[0].price,
            best_source=sources[0].name,
            sources=sources,
            total_latency_ms=total_latency_ms,
        )

    async def get_price(self, symbol: str) -> Decimal:
        """Best price for a symbol, 0 if unavailable"""
        return (await self.get_aggregated_price(symbol)).best_price

    async def get_current_prices(self, symbols: Sequence[str] = DEFAULT_SYMBOLS) -> CurrentPrices:
        """
        Aggregate several symbols in parallel.

        Args:
            symbols: Symbols to fetch (defaults to BTC/USD, ETH/USD, CRO/USD)
        """
        start = self._clock()
        results = await asyncio.gather(*[self.get_aggregated_price(s) for s in symbols])
        return CurrentPrices(
            prices=dict(zip(symbols, results)),
            total_latency_ms=max(0, int((self._clock() - start) * 1000)),
        )

    async def find_best_source(self, pair: str, size_usd: Decimal) -> BestSource:
        """
        Best responding source for a trade, with a size-based slippage estimate.

        Args:
            pair: "BASE-QUOTE" pair (e.g., "BTC-USD")
            size_usd: Notional trade size
        """
        aggregated = await self.get_aggregated_price(to_symbol(pair))
        slippage = estimate_slippage_pct(Decimal(size_usd))

        if not aggregated.sources:
            return BestSource(source=NO_SOURCE, price=Decimal("0"), estimated_slippage_pct=slippage, latency_ms=0)

        best = aggregated.sources[0]
        return BestSource(
            source=best.name,
            price=best.price,
            estimated_slippage_pct=slippage,
            latency_ms=best.latency_ms,
        )

    async def calculate_trade_value(self, pair: str, size: Decimal) -> Decimal:
        """USD value of `size` units of the pair's base asset"""
        base = to_symbol(pair).split("/")[0]
        return Decimal(size) * await self.get_price(f"{base}/USD")

    def add_feed(self, feed: PriceFeed):
        """Add a new price feed to the aggregator."""
        self.feeds.append(feed)

    def remove_feed(self, feed_name: str):
        """Remove a price feed by name."""
        self.feeds = [f for f in self.feeds if f.name != feed_name]

    async def check_feed_health(self) -> Dict[str, bool]:
        """
        Check health of all feeds.

        Returns:
            Dict mapping feed name to availability status
        """
        results = {}

        for feed in self.feeds:
            try:
                results[feed.name] = await feed.is_available()
            except Exception as e:
                logger.warning(f"Health check failed for {feed.name}: {e}")
                results[feed.name] = False

        return results

    async def close(self):
        for feed in self.feeds:
            await feed.close()

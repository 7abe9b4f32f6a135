"""
Price Feeds Module

Provides a unified price source abstraction over oracles, AMM routers,
price-feed contracts, HTTP aggregators and venue contracts.

Components:
- PriceFeed: Abstract base class (cache, rate limit, timeout, isolation)
- PythOracleFeed: Pyth Hermes oracle
- AmmRouterFeed: UniswapV2-style router quotes (VVS, MM Finance)
- PriceFeedContractFeed: getPrice() feed contracts (Fulcrom)
- DexScreenerFeed: DexScreener pair prices (CroSwap)
- VenueNativeFeed: a venue's own mark price (Moonlander)
- PriceAggregator: Combines feeds for best price discovery
"""

from perp_router.price_feeds.base import FeedKind, PriceFeed, PriceSource
from perp_router.price_feeds.aggregator import AggregatedPrice, BestSource, CurrentPrices, PriceAggregator

__all__ = [
    "FeedKind",
    "PriceFeed",
    "PriceSource",
    "PriceAggregator",
    "AggregatedPrice",
    "BestSource",
    "CurrentPrices",
]

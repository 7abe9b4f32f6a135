"""
Venue-Native Price Feed

Uses a trading venue's own mark price (e.g., Moonlander's getMaxPrice) as a
price source, so the aggregated view includes the price the venue itself
will execute against.
"""

from decimal import Decimal
from typing import Optional

from perp_router.price_feeds.base import FeedKind, PriceFeed, split_symbol


class VenueNativeFeed(PriceFeed):
    """Price feed that delegates to a VenueAdapter's get_token_price"""

    def __init__(self, venue, name: Optional[str] = None, **kwargs):
        super().__init__(name=name or venue.name, kind=FeedKind.VENUE_NATIVE, **kwargs)
        self.venue = venue

    async def _query_price(self, symbol: str) -> Optional[Decimal]:
        base, quote = split_symbol(symbol)
        price = await self.venue.get_token_price(f"{base}-{quote}")
        return price if price and price > 0 else None

"""
Pyth Oracle Price Feed

Reads the latest signed price from Pyth's Hermes HTTP service. Hermes
returns integer prices with a base-10 exponent; price = price * 10**expo.
"""

import logging
from decimal import Decimal
from typing import Dict, Optional

import httpx

from perp_router.constants import PYTH_FEED_IDS
from perp_router.price_feeds.base import FeedKind, PriceFeed, split_symbol

logger = logging.getLogger(__name__)


class PythOracleFeed(PriceFeed):
    """Price feed backed by the Pyth Network oracle"""

    def __init__(
        self,
        hermes_url: str = "https://hermes.pyth.network",
        feed_ids: Optional[Dict[str, str]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        name: str = "Pyth",
        **kwargs,
    ):
        super().__init__(name=name, kind=FeedKind.ORACLE, **kwargs)
        self._hermes_url = hermes_url.rstrip("/")
        self._feed_ids = feed_ids if feed_ids is not None else PYTH_FEED_IDS
        self._client = http_client or httpx.AsyncClient(timeout=self.timeout_seconds)

    async def close(self):
        await self._client.aclose()

    def feed_id_for(self, symbol: str) -> Optional[str]:
        base, quote = split_symbol(symbol)
        return self._feed_ids.get(f"{base}/{quote}")

    async def _query_price(self, symbol: str) -> Optional[Decimal]:
        feed_id = self.feed_id_for(symbol)
        if feed_id is None:
            logger.debug(f"Pyth: no feed id for {symbol}")
            return None

        resp = await self._client.get(
            f"{self._hermes_url}/v2/updates/price/latest",
            params={"ids[]": feed_id, "parsed": "true"},
        )
        resp.raise_for_status()
        data = resp.json()

        parsed = data.get("parsed") or []
        if not parsed:
            return None

        return parse_hermes_price(parsed[0]["price"])


def parse_hermes_price(price_data: dict) -> Decimal:
    """Convert Hermes {"price": "6512345678", "expo": -8} into a Decimal"""
    mantissa = Decimal(str(price_data["price"]))
    expo = int(price_data["expo"])
    return mantissa.scaleb(expo)

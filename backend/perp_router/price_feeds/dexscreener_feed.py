"""
DexScreener Price Feed

Looks up a token on the DexScreener public API and uses the USD price of
its pair on one specific DEX (CroSwap on Cronos by default).

Endpoint used:
  GET /latest/dex/tokens/{tokenAddress}
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

import httpx

from perp_router.constants import token_for_symbol
from perp_router.price_feeds.base import FeedKind, PriceFeed, split_symbol

logger = logging.getLogger(__name__)

STABLE_QUOTES = ("USDC", "USDT")


class DexScreenerFeed(PriceFeed):
    """Price feed backed by DexScreener pair data for a single DEX"""

    def __init__(
        self,
        base_url: str = "https://api.dexscreener.com",
        chain_id: str = "cronos",
        dex_id: str = "croswap",
        http_client: Optional[httpx.AsyncClient] = None,
        name: str = "CroSwap",
        **kwargs,
    ):
        super().__init__(name=name, kind=FeedKind.EXTERNAL_AGGREGATOR, **kwargs)
        self._base_url = base_url.rstrip("/")
        self.chain_id = chain_id
        self.dex_id = dex_id
        self._client = http_client or httpx.AsyncClient(timeout=self.timeout_seconds)

    async def close(self):
        await self._client.aclose()

    async def _query_price(self, symbol: str) -> Optional[Decimal]:
        base, _ = split_symbol(symbol)
        try:
            token_address, _ = token_for_symbol(base)
        except KeyError:
            return None

        resp = await self._client.get(f"{self._base_url}/latest/dex/tokens/{token_address}")
        resp.raise_for_status()
        pairs = resp.json().get("pairs") or []

        pair = self.select_pair(pairs)
        if pair is None:
            logger.debug(f"{self.name}: no {self.dex_id} USD pair for {symbol}")
            return None

        try:
            return Decimal(str(pair["priceUsd"]))
        except (KeyError, InvalidOperation):
            return None

    def select_pair(self, pairs: List[dict]) -> Optional[dict]:
        """First pair on the configured chain/dex quoted in a USD stablecoin"""
        for pair in pairs:
            quote_symbol = (pair.get("quoteToken") or {}).get("symbol", "").upper()
            if (
                pair.get("chainId") == self.chain_id
                and pair.get("dexId") == self.dex_id
                and quote_symbol in STABLE_QUOTES
            ):
                return pair
        return None

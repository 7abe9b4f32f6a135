"""
AMM Router Price Feed

Prices a pair by asking a UniswapV2-style router how much of the quote
token one unit of the base token swaps into (getAmountsOut). Used for
MM Finance and VVS Finance on Cronos.
"""

import logging
from decimal import Decimal
from typing import Optional

from web3 import Web3

from perp_router.chain import call_view, from_units
from perp_router.constants import AMM_ROUTER_ABI, token_for_symbol
from perp_router.price_feeds.base import FeedKind, PriceFeed, split_symbol

logger = logging.getLogger(__name__)


class AmmRouterFeed(PriceFeed):
    """Price feed backed by an on-chain AMM router quote"""

    def __init__(self, w3: Web3, router_address: str, name: str, **kwargs):
        """
        Args:
            w3: Web3 connection to the router's chain
            router_address: UniswapV2-compatible router contract
            name: Source name (e.g., "VVS Finance")
            **kwargs: PriceFeed options (cache, rate limiter, TTL, timeout)
        """
        super().__init__(name=name, kind=FeedKind.ONCHAIN_ROUTER, **kwargs)
        self.w3 = w3
        self.router = w3.eth.contract(
            address=Web3.to_checksum_address(router_address),
            abi=AMM_ROUTER_ABI,
        )

    async def _query_price(self, symbol: str) -> Optional[Decimal]:
        base, quote = split_symbol(symbol)
        try:
            token_in, decimals_in = token_for_symbol(base)
            token_out, decimals_out = token_for_symbol(quote)
        except KeyError:
            logger.debug(f"{self.name}: unsupported symbol {symbol}")
            return None

        if token_in.lower() == token_out.lower():
            return None

        path = [Web3.to_checksum_address(token_in), Web3.to_checksum_address(token_out)]
        amounts = await call_view(self.router.functions.getAmountsOut(10 ** decimals_in, path))
        return from_units(amounts[-1], decimals_out)

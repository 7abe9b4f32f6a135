"""
Price Feed Contract

Reads USD prices from a Chainlink-style `getPrice(token)` contract with
30-decimal precision (Fulcrom's price feed on Cronos).
"""

from decimal import Decimal
from typing import Optional

from web3 import Web3

from perp_router.chain import call_view, from_units
from perp_router.constants import PRICE_FEED_ABI, PRICE_PRECISION_DECIMALS, token_for_symbol
from perp_router.price_feeds.base import FeedKind, PriceFeed, split_symbol

USD_QUOTES = ("USD", "USDC", "USDT")


class PriceFeedContractFeed(PriceFeed):
    """Price feed backed by an on-chain USD price contract"""

    def __init__(
        self,
        w3: Web3,
        feed_address: str,
        name: str = "Fulcrom",
        decimals: int = PRICE_PRECISION_DECIMALS,
        **kwargs,
    ):
        super().__init__(name=name, kind=FeedKind.PRICE_FEED_CONTRACT, **kwargs)
        self.decimals = decimals
        self.contract = w3.eth.contract(
            address=Web3.to_checksum_address(feed_address),
            abi=PRICE_FEED_ABI,
        )

    async def _query_price(self, symbol: str) -> Optional[Decimal]:
        base, quote = split_symbol(symbol)
        if quote not in USD_QUOTES:
            return None
        try:
            token, _ = token_for_symbol(base)
        except KeyError:
            return None

        raw = await call_view(self.contract.functions.getPrice(Web3.to_checksum_address(token)))
        return from_units(raw, self.decimals)

"""
Fulcrom Venue

Fulcrom is a gTrade-style venue: each trade lives in a (pairIndex, index)
slot per trader. Position keys are "{pairIndex}:{index}". Prices use 10
decimals and collateral is denominated in 18-decimal DAI.
"""

import logging
from decimal import Decimal
from typing import Optional, Tuple

from web3 import Web3

from perp_router.chain import TransactionSender, call_view, from_units, to_units
from perp_router.constants import (
    FULCROM_PAIR_INDEX,
    FULCROM_PRICE_DECIMALS,
    FULCROM_STORAGE_ABI,
    FULCROM_TRADING_ABI,
    ZERO_ADDRESS,
)
from perp_router.venues.base import (
    ClosePositionParams,
    OpenPositionParams,
    Position,
    VenueExecution,
    VenueKind,
)
from perp_router.venues.onchain import OnChainVenue

logger = logging.getLogger(__name__)

DAI_DECIMALS = 18
MARKET_ORDER = 0


def make_position_key(pair_index: int, index: int) -> str:
    return f"{pair_index}:{index}"


def parse_position_key(key: str) -> Tuple[int, int]:
    """
    Raises:
        ValueError: if the key is not "{pairIndex}:{index}"
    """
    try:
        pair_index, index = key.split(":")
        return int(pair_index), int(index)
    except ValueError:
        raise ValueError(f"Invalid Fulcrom position key: {key}")


def pair_index_for(pair: str) -> int:
    try:
        return FULCROM_PAIR_INDEX[pair.upper()]
    except KeyError:
        raise ValueError(f"Pair {pair} not supported on Fulcrom")


class FulcromVenue(OnChainVenue):
    """Fulcrom perpetuals via the trading and storage contracts"""

    kind = VenueKind.FULCROM
    name = "Fulcrom"

    def __init__(
        self,
        w3: Web3,
        trading_address: str,
        storage_address: str,
        sender: Optional[TransactionSender] = None,
    ):
        super().__init__(w3, sender)
        self.trading = self._contract(trading_address, FULCROM_TRADING_ABI)
        self.storage = self._contract(storage_address, FULCROM_STORAGE_ABI)

    # ========================================
    # TRADING
    # ========================================

    async def open_position(self, params: OpenPositionParams) -> VenueExecution:
        sender = self._require_sender()
        pair_index = pair_index_for(params.pair)
        trader = Web3.to_checksum_address(params.user_address)
        trade_index = await call_view(self.storage.functions.openTradesCount(trader, pair_index))

        trade = (
            trader,
            pair_index,
            trade_index,
            0,  # initialPosToken, set by the contract
            to_units(params.collateral_usd, DAI_DECIMALS),
            to_units(params.current_price, FULCROM_PRICE_DECIMALS),
            params.is_long,
            int(params.leverage),
            to_units(params.take_profit, FULCROM_PRICE_DECIMALS) if params.take_profit else 0,
            to_units(params.stop_loss, FULCROM_PRICE_DECIMALS) if params.stop_loss else 0,
        )
        slippage_p = to_units(params.acceptable_slippage_pct, FULCROM_PRICE_DECIMALS)

        logger.info(
            f"Opening Fulcrom position: pair={params.pair}, "
            f"side={'LONG' if params.is_long else 'SHORT'}, size=${params.size_usd}"
        )

        tx_hash, _ = await sender.send(
            self.trading.functions.openTrade(trade, MARKET_ORDER, slippage_p, ZERO_ADDRESS)
        )

        position_key = make_position_key(pair_index, trade_index)
        logger.info(f"Fulcrom position opened: tx_hash={tx_hash}, key={position_key}")

        return VenueExecution(
            tx_hash=tx_hash,
            position_key=position_key,
            status="success",
            entry_price=params.current_price,
            size_usd=params.size_usd,
        )

    async def close_position(self, params: ClosePositionParams) -> VenueExecution:
        sender = self._require_sender()
        pair_index, index = parse_position_key(params.position_key)

        logger.info(f"Closing Fulcrom position: {params.position_key}")

        tx_hash, _ = await sender.send(self.trading.functions.closeTradeMarket(pair_index, index))

        return VenueExecution(
            tx_hash=tx_hash,
            position_key=params.position_key,
            status="success",
            size_usd=params.size_usd,
        )

    # ========================================
    # MARKET DATA
    # ========================================

    async def get_position(self, user_address: str, pair: str, is_long: bool) -> Optional[Position]:
        """First open trade on the pair with the requested direction"""
        try:
            pair_index = pair_index_for(pair)
            trader = Web3.to_checksum_address(user_address)
            count = await call_view(self.storage.functions.openTradesCount(trader, pair_index))

            for i in range(count):
                trade = await call_view(self.storage.functions.openTrades(trader, pair_index, i))
                _, _, index, _, position_size_dai, open_price, buy, leverage, _, _ = trade
                if buy != is_long or position_size_dai == 0:
                    continue

                collateral = from_units(position_size_dai, DAI_DECIMALS)
                return Position(
                    key=make_position_key(pair_index, index),
                    account=trader,
                    pair=pair,
                    is_long=buy,
                    size_usd=collateral * leverage,
                    collateral_usd=collateral,
                    average_price=from_units(open_price, FULCROM_PRICE_DECIMALS),
                )
            return None
        except Exception as e:
            logger.error(f"Fulcrom get_position failed for {user_address} {pair}: {e}")
            return None

    async def get_token_price(self, pair: str) -> Decimal:
        # Fulcrom prices come from its separate feed contract (PriceFeedContractFeed)
        return Decimal("0")

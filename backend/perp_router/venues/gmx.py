"""
GMX Venue

Trades through the GMX-v1 order router. Orders are created on-chain and
executed by keepers, so each order carries a native-token execution fee.
Position keys are "{account}-{pair}-{LONG|SHORT}".
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from web3 import Web3

from perp_router.chain import TransactionSender, call_view, from_units, to_units
from perp_router.constants import (
    GMX_EXCHANGE_ROUTER_ABI,
    GMX_EXECUTION_FEE_WEI,
    GMX_READER_ABI,
    GMX_VAULT_ABI,
    PRICE_PRECISION_DECIMALS,
)
from perp_router.venues.base import (
    ClosePositionParams,
    OpenPositionParams,
    Position,
    VenueExecution,
    VenueKind,
    acceptable_price,
)
from perp_router.venues.onchain import OnChainVenue

logger = logging.getLogger(__name__)


def make_position_key(user_address: str, pair: str, is_long: bool) -> str:
    return f"{user_address}-{pair}-{'LONG' if is_long else 'SHORT'}"


def parse_position_key(key: str) -> Tuple[str, str, bool]:
    """
    Split a GMX position key into (account, pair, is_long).

    Raises:
        ValueError: if the key is not "{account}-{BASE}-{QUOTE}-{SIDE}"
    """
    parts = key.split("-")
    if len(parts) != 4 or parts[3] not in ("LONG", "SHORT"):
        raise ValueError(f"Invalid GMX position key: {key}")
    return parts[0], f"{parts[1]}-{parts[2]}", parts[3] == "LONG"


class GMXVenue(OnChainVenue):
    """GMX perpetuals via the exchange router, reader and vault"""

    kind = VenueKind.GMX
    name = "GMX"

    def __init__(
        self,
        w3: Web3,
        exchange_router_address: str,
        reader_address: str,
        vault_address: str,
        sender: Optional[TransactionSender] = None,
        execution_fee_wei: int = GMX_EXECUTION_FEE_WEI,
    ):
        super().__init__(w3, sender)
        self.exchange_router = self._contract(exchange_router_address, GMX_EXCHANGE_ROUTER_ABI)
        self.reader = self._contract(reader_address, GMX_READER_ABI)
        self.vault = self._contract(vault_address, GMX_VAULT_ABI)
        self.execution_fee_wei = execution_fee_wei

    # ========================================
    # TRADING
    # ========================================

    async def open_position(self, params: OpenPositionParams) -> VenueExecution:
        sender = self._require_sender()
        index_token = self._index_token(params.pair)
        trigger_price = to_units(
            acceptable_price(params.current_price, params.acceptable_slippage_pct, params.is_long, True),
            PRICE_PRECISION_DECIMALS,
        )

        logger.info(
            f"Opening GMX position: pair={params.pair}, "
            f"side={'LONG' if params.is_long else 'SHORT'}, size=${params.size_usd}"
        )

        tx_hash, _ = await sender.send(
            self.exchange_router.functions.createIncreaseOrder(
                [],  # path (empty for market order)
                index_token,
                to_units(params.collateral_usd, PRICE_PRECISION_DECIMALS),
                0,  # minOut
                to_units(params.size_usd, PRICE_PRECISION_DECIMALS),
                params.is_long,
                trigger_price,
                params.is_long,  # triggerAboveThreshold
                self.execution_fee_wei,
            ),
            value=self.execution_fee_wei,
        )

        position_key = make_position_key(params.user_address, params.pair, params.is_long)
        logger.info(f"GMX position opened: tx_hash={tx_hash}, key={position_key}")

        return VenueExecution(
            tx_hash=tx_hash,
            position_key=position_key,
            status="success",
            entry_price=params.current_price,
            size_usd=params.size_usd,
        )

    async def close_position(self, params: ClosePositionParams) -> VenueExecution:
        sender = self._require_sender()
        _, pair, is_long = parse_position_key(params.position_key)
        index_token = self._index_token(pair)
        trigger_price = to_units(
            acceptable_price(params.current_price, params.acceptable_slippage_pct, is_long, False),
            PRICE_PRECISION_DECIMALS,
        )

        logger.info(f"Closing GMX position: {params.position_key}")

        tx_hash, _ = await sender.send(
            self.exchange_router.functions.createDecreaseOrder(
                index_token,
                to_units(params.size_usd, PRICE_PRECISION_DECIMALS),
                index_token,  # collateral token
                0,  # collateralDelta (0 closes the whole position)
                is_long,
                trigger_price,
                not is_long,  # triggerAboveThreshold
            ),
            value=self.execution_fee_wei,
        )

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
        try:
            index_token = self._index_token(pair)
            account = Web3.to_checksum_address(user_address)
            result = await call_view(
                self.reader.functions.getPosition(account, index_token, index_token, is_long)
            )
            size, collateral, average_price, _funding, _reserve, realised_pnl, has_profit, last_increased = result

            if size == 0:
                return None

            pnl = from_units(realised_pnl, PRICE_PRECISION_DECIMALS)
            return Position(
                key=make_position_key(user_address, pair, is_long),
                account=account,
                pair=pair,
                is_long=is_long,
                size_usd=from_units(size, PRICE_PRECISION_DECIMALS),
                collateral_usd=from_units(collateral, PRICE_PRECISION_DECIMALS),
                average_price=from_units(average_price, PRICE_PRECISION_DECIMALS),
                realised_pnl=pnl if has_profit else -pnl,
                last_increased_at=datetime.utcfromtimestamp(last_increased) if last_increased else None,
            )
        except Exception as e:
            logger.error(f"GMX get_position failed for {user_address} {pair}: {e}")
            return None

    async def get_token_price(self, pair: str) -> Decimal:
        try:
            raw = await call_view(self.vault.functions.getMaxPrice(self._index_token(pair)))
            return from_units(raw, PRICE_PRECISION_DECIMALS)
        except Exception as e:
            logger.warning(f"GMX price lookup failed for {pair}: {e}")
            return Decimal("0")

"""
Moonlander Venue

Moonlander is a GMX-v1 style perpetual exchange on Cronos. Positions are
identified by a bytes32 key derived from (account, index token, side).
USD sizes and prices use 30 decimals; collateral uses 6 (USDC).
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from web3 import Web3
from web3.logs import DISCARD

from perp_router.chain import TransactionSender, call_view, from_units, to_units
from perp_router.constants import (
    COLLATERAL_DECIMALS,
    MOONLANDER_PERP_ABI,
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

# Fee estimate reported with each open (0.1% of size)
OPEN_FEE_RATE = Decimal("0.001")


class MoonlanderVenue(OnChainVenue):
    """Moonlander perpetuals via the vault contract"""

    kind = VenueKind.MOONLANDER
    name = "Moonlander"

    def __init__(self, w3: Web3, contract_address: str, sender: Optional[TransactionSender] = None):
        super().__init__(w3, sender)
        self.contract = self._contract(contract_address, MOONLANDER_PERP_ABI)

    # ========================================
    # TRADING
    # ========================================

    async def open_position(self, params: OpenPositionParams) -> VenueExecution:
        sender = self._require_sender()
        token = self._index_token(params.pair)

        collateral_delta = to_units(params.collateral_usd, COLLATERAL_DECIMALS)
        size_delta = to_units(params.size_usd, PRICE_PRECISION_DECIMALS)
        price_limit = to_units(
            acceptable_price(params.current_price, params.acceptable_slippage_pct, params.is_long, True),
            PRICE_PRECISION_DECIMALS,
        )

        logger.info(
            f"Opening {'LONG' if params.is_long else 'SHORT'} on Moonlander: "
            f"pair={params.pair}, size=${params.size_usd}, leverage={params.leverage}x, "
            f"collateral=${params.collateral_usd}"
        )

        tx_hash, receipt = await sender.send(
            self.contract.functions.openPosition(token, params.is_long, collateral_delta, size_delta, price_limit)
        )

        position_key = self._position_key_from_receipt(receipt)
        if position_key is None:
            raw_key = await call_view(
                self.contract.functions.getPositionKey(
                    Web3.to_checksum_address(params.user_address), token, params.is_long
                )
            )
            position_key = Web3.to_hex(raw_key)

        return VenueExecution(
            tx_hash=tx_hash,
            position_key=position_key,
            status="success",
            entry_price=params.current_price,
            size_usd=params.size_usd,
            fee_usd=params.size_usd * OPEN_FEE_RATE,
        )

    async def close_position(self, params: ClosePositionParams) -> VenueExecution:
        sender = self._require_sender()

        size_delta = to_units(params.size_usd, PRICE_PRECISION_DECIMALS)
        price_limit = to_units(
            acceptable_price(params.current_price, params.acceptable_slippage_pct, params.is_long, False),
            PRICE_PRECISION_DECIMALS,
        )

        logger.info(f"Closing position on Moonlander: {params.position_key}")

        tx_hash, _ = await sender.send(
            self.contract.functions.closePosition(
                Web3.to_bytes(hexstr=params.position_key), size_delta, price_limit
            )
        )

        return VenueExecution(
            tx_hash=tx_hash,
            position_key=params.position_key,
            status="success",
            size_usd=params.size_usd,
        )

    def _position_key_from_receipt(self, receipt) -> Optional[str]:
        """Key from the IncreasePosition event, if the receipt carries one"""
        try:
            events = self.contract.events.IncreasePosition().process_receipt(receipt, errors=DISCARD)
        except Exception as e:
            logger.debug(f"Could not decode Moonlander receipt logs: {e}")
            return None
        for event in events:
            return Web3.to_hex(event["args"]["key"])
        return None

    # ========================================
    # MARKET DATA
    # ========================================

    async def get_position(self, user_address: str, pair: str, is_long: bool) -> Optional[Position]:
        try:
            token = self._index_token(pair)
            account = Web3.to_checksum_address(user_address)
            (size, collateral, average_price, _funding, _reserve, realised_pnl, last_increased) = await call_view(
                self.contract.functions.getPosition(account, token, is_long)
            )

            if size == 0:
                return None

            key = await call_view(self.contract.functions.getPositionKey(account, token, is_long))

            return Position(
                key=Web3.to_hex(key),
                account=account,
                pair=pair,
                is_long=is_long,
                size_usd=from_units(size, PRICE_PRECISION_DECIMALS),
                collateral_usd=from_units(collateral, COLLATERAL_DECIMALS),
                average_price=from_units(average_price, PRICE_PRECISION_DECIMALS),
                realised_pnl=from_units(realised_pnl, COLLATERAL_DECIMALS),
                last_increased_at=datetime.utcfromtimestamp(last_increased) if last_increased else None,
            )
        except Exception as e:
            logger.error(f"Moonlander get_position failed for {user_address} {pair}: {e}")
            return None

    async def get_token_price(self, pair: str, use_max: bool = True) -> Decimal:
        try:
            token = self._index_token(pair)
            fn = self.contract.functions.getMaxPrice if use_max else self.contract.functions.getMinPrice
            raw = await call_view(fn(token))
            return from_units(raw, PRICE_PRECISION_DECIMALS)
        except Exception as e:
            logger.warning(f"Moonlander price lookup failed for {pair}: {e}")
            return Decimal("0")

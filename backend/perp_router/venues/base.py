"""
VenueAdapter Abstract Base Class

Defines the interface every perpetual trading venue implements. The router
only talks to venues through this interface, so adding a venue means adding
an adapter and registering it under a new VenueKind.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class VenueKind(str, Enum):
    MOONLANDER = "moonlander"
    GMX = "gmx"
    FULCROM = "fulcrom"


@dataclass
class OpenPositionParams:
    user_address: str
    pair: str  # "BTC-USD"
    is_long: bool
    size_usd: Decimal
    collateral_usd: Decimal
    leverage: Decimal
    current_price: Decimal
    acceptable_slippage_pct: Decimal = Decimal("0.5")
    stop_loss: Optional[Decimal] = None
    take_profit: Optional[Decimal] = None


@dataclass
class ClosePositionParams:
    user_address: str
    pair: str
    is_long: bool
    position_key: str
    size_usd: Decimal
    current_price: Decimal
    acceptable_slippage_pct: Decimal = Decimal("0.5")


@dataclass
class VenueExecution:
    """Outcome of an on-chain open or close"""
    tx_hash: str
    position_key: str
    status: str  # "success", "failed" or "pending"
    entry_price: Optional[Decimal] = None
    size_usd: Optional[Decimal] = None
    fee_usd: Optional[Decimal] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass
class Position:
    """Open position as reported by the venue"""
    key: str
    account: str
    pair: str
    is_long: bool
    size_usd: Decimal
    collateral_usd: Decimal
    average_price: Decimal
    realised_pnl: Decimal = Decimal("0")
    last_increased_at: Optional[datetime] = None

    def unrealised_pnl(self, current_price: Decimal) -> Decimal:
        if self.average_price <= 0:
            return Decimal("0")
        move = (current_price - self.average_price) / self.average_price
        return move * self.size_usd if self.is_long else -move * self.size_usd


class VenueAdapter(ABC):
    """
    Abstract base class for perpetual venues.

    Implementations sign and broadcast their own transactions; the router
    never sees key material.
    """

    kind: VenueKind
    name: str

    # ========================================
    # TRADING
    # ========================================

    @abstractmethod
    async def open_position(self, params: OpenPositionParams) -> VenueExecution:
        """
        Open (or increase) a leveraged position.

        Raises:
            Exception: if the transaction could not be built, sent or confirmed
        """
        pass

    @abstractmethod
    async def close_position(self, params: ClosePositionParams) -> VenueExecution:
        """Close (or decrease) a position previously opened on this venue."""
        pass

    # ========================================
    # MARKET DATA
    # ========================================

    @abstractmethod
    async def get_position(self, user_address: str, pair: str, is_long: bool) -> Optional[Position]:
        """
        Look up an open position.

        Returns:
            Position, or None if there is no open position (or lookup failed)
        """
        pass

    @abstractmethod
    async def get_token_price(self, pair: str) -> Decimal:
        """Venue mark price for the pair's base token, 0 on failure."""
        pass


def acceptable_price(
    current_price: Decimal, slippage_pct: Decimal, is_long: bool, is_opening: bool
) -> Decimal:
    """
    Worst execution price the trader accepts.

    Opening a long (or closing a short) buys, so the limit sits above the
    current price. Opening a short (or closing a long) sells, so it sits below.
    """
    slip = Decimal(slippage_pct) / 100
    buying = is_long if is_opening else not is_long
    return Decimal(current_price) * (1 + slip if buying else 1 - slip)

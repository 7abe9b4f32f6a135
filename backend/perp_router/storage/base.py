"""
TradeStore Interface

Persistence seam between the routing core and whatever database backs it.
The core only reads venues, reads recent trade outcomes and writes trades.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from perp_router.storage.models import Trade, Venue


@dataclass
class TradeRecord:
    """Fields for a new trade row"""
    user_address: str
    venue_id: str
    venue_kind: str
    pair: str
    side: str
    leverage: Decimal
    size_usd: Decimal
    entry_price: Decimal
    liquidation_price: Decimal
    tx_hash_open: str
    position_key: Optional[str] = None
    stop_loss: Optional[Decimal] = None
    take_profit: Optional[Decimal] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class TradeStore(ABC):
    """Async persistence interface used by TradeRouter and VenueScorer"""

    @abstractmethod
    async def list_active_venues(self, limit: Optional[int] = None) -> List[Venue]:
        """Active venues, highest reputation first."""
        pass

    @abstractmethod
    async def get_recent_trade_statuses(self, venue_id: str, limit: int = 100) -> List[str]:
        """Statuses of the venue's most recent trades, newest first."""
        pass

    @abstractmethod
    async def insert_trade(self, record: TradeRecord) -> Trade:
        """Persist a new open trade and return it with its id."""
        pass

    @abstractmethod
    async def get_trade(self, trade_id: int, user_address: str) -> Optional[Trade]:
        """Trade by id, only if owned by user_address."""
        pass

    @abstractmethod
    async def mark_trade_closed(
        self,
        trade_id: int,
        exit_price: Decimal,
        pnl_usd: Decimal,
        tx_hash_close: str,
    ) -> bool:
        """
        Move an open trade to closed.

        Returns:
            False if the trade was not open (nothing updated)
        """
        pass

    @abstractmethod
    async def add_venue(self, **fields) -> Venue:
        """Insert a venue row."""
        pass

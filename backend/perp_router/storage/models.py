"""Routing models: venues and trades."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    JSON,
    Numeric,
    String,
)

from perp_router.database import Base

TRADE_STATUS_OPEN = "open"
TRADE_STATUS_CLOSED = "closed"


class Venue(Base):
    """
    A perpetual venue the router may send trades to.

    `kind` selects the adapter (see VenueKind); `name` is display only.
    """
    __tablename__ = "dex_venues"

    id = Column(String, primary_key=True)  # e.g. "moonlander"
    name = Column(String, nullable=False)
    kind = Column(String, nullable=False)  # "moonlander", "gmx", "fulcrom"
    chain = Column(String, nullable=False, default="cronos")
    contract_address = Column(String, nullable=True)
    max_leverage = Column(Integer, default=50)
    trading_fee_bps = Column(Integer, default=10)  # 10 = 0.1%
    supported_pairs = Column(JSON, default=list)  # ["BTC-USD", "ETH-USD"]
    is_active = Column(Boolean, default=True, index=True)

    # Track record
    reputation_score = Column(Float, default=0.0)  # 0-100
    success_rate = Column(Float, default=0.0)  # 0-1
    avg_latency_ms = Column(Integer, default=0)
    total_volume = Column(Float, default=0.0)  # USD

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Trade(Base):
    """
    A leveraged position opened through the router.

    Created once with status "open" and moved to "closed" exactly once.
    """
    __tablename__ = "trades"

    id = Column(Integer, primary_key=True, index=True)
    user_address = Column(String, nullable=False, index=True)
    venue_id = Column(String, nullable=False, index=True)
    venue_kind = Column(String, nullable=False)  # Adapter that opened it; closes go back to it
    pair = Column(String, nullable=False)  # "BTC-USD"
    side = Column(String, nullable=False)  # "long" or "short"
    leverage = Column(Numeric(10, 2), nullable=False)
    size_usd = Column(Numeric(20, 8), nullable=False)
    entry_price = Column(Numeric(30, 10), nullable=False)
    liquidation_price = Column(Numeric(30, 10), nullable=False)
    stop_loss = Column(Numeric(30, 10), nullable=True)
    take_profit = Column(Numeric(30, 10), nullable=True)

    tx_hash_open = Column(String, nullable=False)
    position_key = Column(String, nullable=True)  # Venue-specific position identifier

    status = Column(String, nullable=False, default=TRADE_STATUS_OPEN, index=True)
    exit_price = Column(Numeric(30, 10), nullable=True)
    pnl_usd = Column(Numeric(20, 8), nullable=True)
    tx_hash_close = Column(String, nullable=True)

    # {"quote": {...}, "price_source": "...", "venue": "..."}
    trade_metadata = Column("metadata", JSON, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    closed_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_long(self) -> bool:
        return self.side == "long"

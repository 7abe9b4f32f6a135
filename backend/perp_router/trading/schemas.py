"""Trade request models and routing results"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class TradeQuoteRequest(BaseModel):
    pair: str = Field(..., pattern=r"^[A-Za-z0-9]+-[A-Za-z0-9]+$")  # "BTC-USD"
    side: str = Field(..., pattern="^(long|short)$")
    size_usd: Decimal = Field(..., gt=0)
    leverage: Decimal = Field(..., ge=1)

    @field_validator("pair")
    @classmethod
    def upper_pair(cls, v: str) -> str:
        return v.upper()

    @property
    def is_long(self) -> bool:
        return self.side == "long"


class TradeExecuteRequest(TradeQuoteRequest):
    user_address: str = Field(..., pattern="^0x[0-9a-fA-F]{40}$")
    stop_loss: Optional[Decimal] = Field(None, gt=0)
    take_profit: Optional[Decimal] = Field(None, gt=0)
    max_slippage_pct: Optional[Decimal] = Field(None, gt=0, le=10)


@dataclass
class VenueSummary:
    id: str
    name: str
    kind: str
    reputation_score: Decimal


@dataclass
class Quote:
    """Priced trade proposal. Informational only; not persisted"""
    venue: VenueSummary
    price_source: str
    price_source_count: int
    base_price: Decimal
    expected_price: Decimal
    expected_slippage_pct: Decimal
    price_impact_pct: Decimal
    liquidation_price: Decimal
    total_fees: Decimal
    estimated_execution_ms: int
    quote_latency_ms: int
    quoted_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict:
        """JSON-safe representation stored in trade metadata"""
        return {
            "venue": {
                "id": self.venue.id,
                "name": self.venue.name,
                "kind": self.venue.kind,
                "reputation_score": str(self.venue.reputation_score),
            },
            "price_source": self.price_source,
            "price_source_count": self.price_source_count,
            "base_price": str(self.base_price),
            "expected_price": str(self.expected_price),
            "expected_slippage_pct": str(self.expected_slippage_pct),
            "price_impact_pct": str(self.price_impact_pct),
            "liquidation_price": str(self.liquidation_price),
            "total_fees": str(self.total_fees),
            "estimated_execution_ms": self.estimated_execution_ms,
            "quote_latency_ms": self.quote_latency_ms,
            "quoted_at": self.quoted_at.isoformat(),
        }


@dataclass
class TradeResult:
    trade_id: int
    tx_hash: str
    venue: str
    entry_price: Decimal
    liquidation_price: Decimal
    actual_slippage_pct: Decimal
    execution_ms: int
    status: str = "success"


@dataclass
class CloseResult:
    trade_id: int
    tx_hash: str
    exit_price: Decimal
    pnl_usd: Decimal
    pnl_pct: Decimal
    execution_ms: int
    status: str = "success"


@dataclass
class VenueInfo:
    id: str
    name: str
    chain: str
    reputation_score: float
    success_rate: float
    avg_latency_ms: int
    max_leverage: int
    trading_fee_bps: int
    total_volume: float


@dataclass
class TradeExecutedEvent:
    """Published after a trade is opened and recorded"""
    trade_id: int
    tx_hash: str
    user_address: str
    venue_id: str
    venue_name: str
    pair: str
    side: str
    size_usd: Decimal
    leverage: Decimal
    entry_price: Decimal
    expected_slippage_pct: Decimal
    price_impact_pct: Decimal
    execution_ms: int
    success: bool = True
    occurred_at: datetime = field(default_factory=datetime.utcnow)

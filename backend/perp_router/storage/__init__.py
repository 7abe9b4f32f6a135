from perp_router.storage.base import TradeRecord, TradeStore
from perp_router.storage.models import TRADE_STATUS_CLOSED, TRADE_STATUS_OPEN, Trade, Venue
from perp_router.storage.sql_store import SqlTradeStore

__all__ = [
    "TradeRecord",
    "TradeStore",
    "SqlTradeStore",
    "Trade",
    "Venue",
    "TRADE_STATUS_OPEN",
    "TRADE_STATUS_CLOSED",
]

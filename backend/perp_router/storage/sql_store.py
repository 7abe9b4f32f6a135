"""
SQLAlchemy-backed TradeStore

Each operation opens its own short-lived AsyncSession from the injected
session maker, so the store is safe to share across concurrent requests.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from perp_router.storage.base import TradeRecord, TradeStore
from perp_router.storage.models import TRADE_STATUS_CLOSED, TRADE_STATUS_OPEN, Trade, Venue

logger = logging.getLogger(__name__)


class SqlTradeStore(TradeStore):
    """TradeStore over an async SQLAlchemy session maker"""

    def __init__(self, session_maker: async_sessionmaker):
        self._session_maker = session_maker

    async def list_active_venues(self, limit: Optional[int] = None) -> List[Venue]:
        query = (
            select(Venue)
            .where(Venue.is_active.is_(True))
            .order_by(Venue.reputation_score.desc(), Venue.name)
        )
        if limit is not None:
            query = query.limit(limit)

        async with self._session_maker() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def get_recent_trade_statuses(self, venue_id: str, limit: int = 100) -> List[str]:
        query = (
            select(Trade.status)
            .where(Trade.venue_id == venue_id)
            .order_by(Trade.created_at.desc(), Trade.id.desc())
            .limit(limit)
        )
        async with self._session_maker() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def insert_trade(self, record: TradeRecord) -> Trade:
        trade = Trade(
            user_address=record.user_address,
            venue_id=record.venue_id,
            venue_kind=record.venue_kind,
            pair=record.pair,
            side=record.side,
            leverage=record.leverage,
            size_usd=record.size_usd,
            entry_price=record.entry_price,
            liquidation_price=record.liquidation_price,
            stop_loss=record.stop_loss,
            take_profit=record.take_profit,
            tx_hash_open=record.tx_hash_open,
            position_key=record.position_key,
            status=TRADE_STATUS_OPEN,
            trade_metadata=record.metadata,
        )
        async with self._session_maker() as db:
            db.add(trade)
            await db.commit()
            await db.refresh(trade)

        logger.info(f"Trade {trade.id} recorded: {trade.side} {trade.pair} on {trade.venue_id}")
        return trade

    async def get_trade(self, trade_id: int, user_address: str) -> Optional[Trade]:
        query = select(Trade).where(Trade.id == trade_id, Trade.user_address == user_address)
        async with self._session_maker() as db:
            result = await db.execute(query)
            return result.scalars().first()

    async def mark_trade_closed(
        self,
        trade_id: int,
        exit_price: Decimal,
        pnl_usd: Decimal,
        tx_hash_close: str,
    ) -> bool:
        now = datetime.utcnow()
        stmt = (
            update(Trade)
            .where(Trade.id == trade_id, Trade.status == TRADE_STATUS_OPEN)
            .values(
                status=TRADE_STATUS_CLOSED,
                exit_price=exit_price,
                pnl_usd=pnl_usd,
                tx_hash_close=tx_hash_close,
                closed_at=now,
                updated_at=now,
            )
        )
        async with self._session_maker() as db:
            result = await db.execute(stmt)
            await db.commit()
            return result.rowcount == 1

    async def add_venue(self, **fields) -> Venue:
        venue = Venue(**fields)
        async with self._session_maker() as db:
            db.add(venue)
            await db.commit()
            await db.refresh(venue)
        return venue

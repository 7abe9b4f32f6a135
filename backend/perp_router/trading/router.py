"""
Trade Router

Picks the best venue for a leveraged trade, prices it against the best
aggregated market price, opens it through the venue's adapter and records
it. Reputation and validation side effects are queued rather than awaited,
so a slow registry never delays a trade.
"""

import asyncio
import logging
import time
from decimal import Decimal
from typing import Callable, List, Optional

from perp_router.config import Settings, settings
from perp_router.constants import FALLBACK_VENUES
from perp_router.events.queue import TradeEventQueue
from perp_router.exceptions import (
    NoPriceAvailableError,
    PersistenceAfterExecutionError,
    PositionNotFoundError,
    VenueExecutionError,
)
from perp_router.price_feeds.aggregator import PriceAggregator, to_symbol
from perp_router.scoring.venue_scorer import VenueScore, VenueScorer
from perp_router.storage.base import TradeRecord, TradeStore
from perp_router.storage.models import TRADE_STATUS_OPEN
from perp_router.trading import economics
from perp_router.trading.reconciliation import ReconciliationJournal
from perp_router.trading.schemas import (
    CloseResult,
    Quote,
    TradeExecutedEvent,
    TradeExecuteRequest,
    TradeQuoteRequest,
    TradeResult,
    VenueInfo,
    VenueSummary,
)
from perp_router.venues.base import ClosePositionParams, OpenPositionParams
from perp_router.venues.registry import VenueRegistry

logger = logging.getLogger(__name__)

# Typical time from submission to confirmation on Cronos
ESTIMATED_EXECUTION_MS = 3000

SORT_KEYS = {
    "reputation": (lambda v: v.reputation_score or 0, True),
    "volume": (lambda v: v.total_volume or 0, True),
    "latency": (lambda v: v.avg_latency_ms if v.avg_latency_ms is not None else 999, False),
    "fees": (lambda v: v.trading_fee_bps if v.trading_fee_bps is not None else 999, False),
}


class TradeRouter:
    """
    Routes trades to the best-scoring venue.

    Usage:
        router = TradeRouter(aggregator, scorer, store, registry, events, journal)
        quote = await router.get_quote(TradeQuoteRequest(pair="BTC-USD", side="long",
                                                         size_usd=1000, leverage=5))
        result = await router.execute_trade(execute_request)
        closed = await router.close_position(result.trade_id, execute_request.user_address)
    """

    def __init__(
        self,
        aggregator: PriceAggregator,
        scorer: VenueScorer,
        store: TradeStore,
        registry: VenueRegistry,
        events: Optional[TradeEventQueue] = None,
        journal: Optional[ReconciliationJournal] = None,
        config: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.aggregator = aggregator
        self.scorer = scorer
        self.store = store
        self.registry = registry
        self.events = events
        self.config = config or settings
        self.journal = journal or ReconciliationJournal(self.config.reconciliation_dir)
        self._clock = clock

    def _elapsed_ms(self, start: float) -> int:
        return max(0, int((self._clock() - start) * 1000))

    # ========================================
    # VENUE SELECTION
    # ========================================

    async def get_best_venue(self, request: Optional[TradeQuoteRequest] = None) -> VenueScore:
        """
        Highest composite-scoring active venue.

        Falls back to the synthetic default venue when none are configured.
        """
        start = self._clock()
        venues = await self.store.list_active_venues()
        ranked = await self.scorer.score(venues)
        best = ranked[0]

        logger.info(
            f"Best venue selected: {best.venue_name} (score={best.composite_score}, "
            f"candidates={len(venues)}, latency={self._elapsed_ms(start)}ms)"
        )
        return best

    # ========================================
    # QUOTES
    # ========================================

    async def get_quote(self, request: TradeQuoteRequest) -> Quote:
        """
        Price a trade on the best venue at the best aggregated price.

        Raises:
            NoPriceAvailableError: if no price source responded
        """
        start = self._clock()

        best_venue, price = await asyncio.gather(
            self.get_best_venue(request),
            self.aggregator.get_aggregated_price(to_symbol(request.pair)),
        )

        if not price.has_price:
            raise NoPriceAvailableError(request.pair)

        cfg = self.config
        slippage_bps = economics.slippage_bps_for_size(
            request.size_usd,
            small_bps=cfg.slippage_small_bps,
            large_bps=cfg.slippage_large_bps,
            threshold_usd=cfg.slippage_large_threshold_usd,
        )
        slippage = economics.slippage_pct(slippage_bps)
        expected_price = economics.apply_slippage(price.best_price, slippage, request.is_long)

        return Quote(
            venue=VenueSummary(
                id=best_venue.venue_id,
                name=best_venue.venue_name,
                kind=best_venue.venue_kind,
                reputation_score=best_venue.reputation_score,
            ),
            price_source=price.best_source,
            price_source_count=price.source_count,
            base_price=price.best_price,
            expected_price=expected_price,
            expected_slippage_pct=slippage,
            price_impact_pct=economics.price_impact_pct(slippage),
            liquidation_price=economics.liquidation_price(
                expected_price, request.leverage, request.is_long, cfg.maintenance_margin
            ),
            total_fees=economics.trading_fees(request.size_usd, cfg.trading_fee_rate),
            estimated_execution_ms=ESTIMATED_EXECUTION_MS,
            quote_latency_ms=self._elapsed_ms(start),
        )

    # ========================================
    # EXECUTION
    # ========================================

    async def execute_trade(self, request: TradeExecuteRequest) -> TradeResult:
        """
        Open a position on the best venue and record it.

        Raises:
            NoPriceAvailableError: no price source responded
            UnknownVenueError: the selected venue's kind has no adapter
            VenueExecutionError: the venue call failed (nothing recorded)
            PersistenceAfterExecutionError: opened on-chain but not recorded
        """
        start = self._clock()
        quote = await self.get_quote(request)
        adapter = self.registry.resolve(quote.venue.kind)

        logger.info(
            f"Executing trade: {request.side} {request.pair} ${request.size_usd} "
            f"x{request.leverage} on {quote.venue.name}"
        )

        params = OpenPositionParams(
            user_address=request.user_address,
            pair=request.pair,
            is_long=request.is_long,
            size_usd=request.size_usd,
            collateral_usd=request.size_usd / request.leverage,
            leverage=request.leverage,
            current_price=quote.expected_price,
            acceptable_slippage_pct=request.max_slippage_pct or self.config.default_acceptable_slippage_pct,
            stop_loss=request.stop_loss,
            take_profit=request.take_profit,
        )

        try:
            execution = await adapter.open_position(params)
        except Exception as e:
            logger.error(f"Trade execution failed on {quote.venue.name} for {request.pair}: {e}")
            raise VenueExecutionError(quote.venue.name, str(e))

        record = TradeRecord(
            user_address=request.user_address,
            venue_id=quote.venue.id,
            venue_kind=quote.venue.kind,
            pair=request.pair,
            side=request.side,
            leverage=request.leverage,
            size_usd=request.size_usd,
            entry_price=quote.expected_price,
            liquidation_price=quote.liquidation_price,
            stop_loss=request.stop_loss,
            take_profit=request.take_profit,
            tx_hash_open=execution.tx_hash,
            position_key=execution.position_key or None,
            metadata={
                "quote": quote.to_dict(),
                "price_source": quote.price_source,
                "venue": quote.venue.name,
            },
        )

        try:
            trade = await self.store.insert_trade(record)
        except Exception as e:
            await self.journal.record({
                "tx_hash": execution.tx_hash,
                "action": "open",
                "venue": quote.venue.name,
                "venue_id": quote.venue.id,
                "venue_kind": quote.venue.kind,
                "position_key": execution.position_key,
                "user_address": request.user_address,
                "pair": request.pair,
                "side": request.side,
                "leverage": str(request.leverage),
                "size_usd": str(request.size_usd),
                "entry_price": str(quote.expected_price),
                "liquidation_price": str(quote.liquidation_price),
                "error": str(e),
            })
            raise PersistenceAfterExecutionError(execution.tx_hash, quote.venue.name, cause=e)

        execution_ms = self._elapsed_ms(start)
        logger.info(
            f"Trade executed: id={trade.id}, tx_hash={execution.tx_hash}, "
            f"venue={quote.venue.name}, execution={execution_ms}ms"
        )

        if self.events is not None:
            self.events.publish(TradeExecutedEvent(
                trade_id=trade.id,
                tx_hash=execution.tx_hash,
                user_address=request.user_address,
                venue_id=quote.venue.id,
                venue_name=quote.venue.name,
                pair=request.pair,
                side=request.side,
                size_usd=request.size_usd,
                leverage=request.leverage,
                entry_price=quote.expected_price,
                expected_slippage_pct=quote.expected_slippage_pct,
                price_impact_pct=quote.price_impact_pct,
                execution_ms=execution_ms,
            ))

        return TradeResult(
            trade_id=trade.id,
            tx_hash=execution.tx_hash,
            venue=quote.venue.name,
            entry_price=quote.expected_price,
            liquidation_price=quote.liquidation_price,
            actual_slippage_pct=quote.expected_slippage_pct,
            execution_ms=execution_ms,
        )

    async def close_position(self, trade_id: int, user_address: str) -> CloseResult:
        """
        Close an open trade on the venue that opened it.

        Raises:
            PositionNotFoundError: trade missing, not owned, already closed,
                or no open position on the venue
            NoPriceAvailableError: no price source responded
            UnknownVenueError: the trade's venue kind has no adapter
            VenueExecutionError: the venue call failed
            PersistenceAfterExecutionError: closed on the venue but the trade
                could not be marked closed; the close tx hash is journaled
        """
        start = self._clock()

        trade = await self.store.get_trade(trade_id, user_address)
        if trade is None:
            raise PositionNotFoundError(f"Trade {trade_id} not found")
        if trade.status != TRADE_STATUS_OPEN:
            raise PositionNotFoundError(f"Trade {trade_id} is already {trade.status}")

        adapter = self.registry.resolve(trade.venue_kind)
        is_long = trade.is_long

        position, price = await asyncio.gather(
            adapter.get_position(user_address, trade.pair, is_long),
            self.aggregator.get_aggregated_price(to_symbol(trade.pair)),
        )

        if position is None:
            raise PositionNotFoundError(f"No open {trade.side} {trade.pair} position on {adapter.name}")
        if not price.has_price:
            raise NoPriceAvailableError(trade.pair)

        exit_price = price.best_price
        size_usd = Decimal(trade.size_usd)

        try:
            execution = await adapter.close_position(ClosePositionParams(
                user_address=user_address,
                pair=trade.pair,
                is_long=is_long,
                position_key=trade.position_key or position.key,
                size_usd=size_usd,
                current_price=exit_price,
                acceptable_slippage_pct=self.config.default_acceptable_slippage_pct,
            ))
        except Exception as e:
            logger.error(f"Close position failed for trade {trade_id} on {adapter.name}: {e}")
            raise VenueExecutionError(adapter.name, str(e))

        pnl = economics.position_pnl(Decimal(trade.entry_price), exit_price, size_usd, is_long)
        pnl_pct = economics.pnl_percentage(pnl, size_usd)

        try:
            updated = await self.store.mark_trade_closed(trade_id, exit_price, pnl, execution.tx_hash)
        except Exception as e:
            await self._journal_close(trade, adapter.name, execution.tx_hash, exit_price, pnl, str(e))
            raise PersistenceAfterExecutionError(execution.tx_hash, adapter.name, cause=e, action="Position closed")

        if not updated:
            logger.warning(f"Trade {trade_id} was closed concurrently (tx_hash={execution.tx_hash})")
            await self._journal_close(trade, adapter.name, execution.tx_hash, exit_price, pnl, "trade no longer open")
            raise PersistenceAfterExecutionError(execution.tx_hash, adapter.name, action="Position closed")

        execution_ms = self._elapsed_ms(start)
        logger.info(f"Position closed: trade={trade_id}, pnl=${pnl:.2f} ({pnl_pct:.2f}%), tx_hash={execution.tx_hash}")

        return CloseResult(
            trade_id=trade_id,
            tx_hash=execution.tx_hash,
            exit_price=exit_price,
            pnl_usd=pnl,
            pnl_pct=pnl_pct,
            execution_ms=execution_ms,
        )

    async def _journal_close(
        self, trade, venue: str, tx_hash: str, exit_price: Decimal, pnl: Decimal, error: str
    ):
        await self.journal.record({
            "tx_hash": tx_hash,
            "action": "close",
            "trade_id": trade.id,
            "tx_hash_open": trade.tx_hash_open,
            "tx_hash_close": tx_hash,
            "venue": venue,
            "venue_id": trade.venue_id,
            "venue_kind": trade.venue_kind,
            "user_address": trade.user_address,
            "pair": trade.pair,
            "side": trade.side,
            "exit_price": str(exit_price),
            "pnl_usd": str(pnl),
            "error": error,
        })

    # ========================================
    # VENUE LISTING
    # ========================================

    async def get_venues(self, sort_by: str = "reputation", limit: int = 10) -> List[VenueInfo]:
        """
        Active venues ranked by `sort_by` ("reputation", "volume", "latency",
        "fees"). An unknown key keeps the store's order.
        """
        venues = await self.store.list_active_venues()

        if not venues:
            return [VenueInfo(**v) for v in FALLBACK_VENUES[:limit]]

        sort_spec = SORT_KEYS.get(sort_by)
        if sort_spec is not None:
            key_fn, descending = sort_spec
            venues = sorted(venues, key=key_fn, reverse=descending)

        return [
            VenueInfo(
                id=v.id,
                name=v.name,
                chain=v.chain,
                reputation_score=v.reputation_score,
                success_rate=v.success_rate,
                avg_latency_ms=v.avg_latency_ms,
                max_leverage=v.max_leverage,
                trading_fee_bps=v.trading_fee_bps,
                total_volume=v.total_volume,
            )
            for v in venues[:limit]
        ]

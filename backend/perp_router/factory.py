"""
Composition root

Builds the process-wide objects (price cache, rate limiter, web3 connection,
venue adapters, store, event queue) once and injects them into the router.

Usage:
    container = await create_router()
    await container.start()
    quote = await container.router.get_quote(request)
    ...
    await container.shutdown()
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncEngine
from web3 import Web3

from perp_router.cache import PriceCache
from perp_router.chain import TransactionSender, make_web3
from perp_router.config import Settings, settings
from perp_router.database import create_engine, create_session_maker, init_db
from perp_router.events.queue import TradeEventQueue
from perp_router.events.reputation import ReputationRecorder
from perp_router.events.validation import ValidationRequester
from perp_router.price_feeds.aggregator import PriceAggregator
from perp_router.price_feeds.amm_router_feed import AmmRouterFeed
from perp_router.price_feeds.base import PriceFeed
from perp_router.price_feeds.contract_feed import PriceFeedContractFeed
from perp_router.price_feeds.dexscreener_feed import DexScreenerFeed
from perp_router.price_feeds.pyth_feed import PythOracleFeed
from perp_router.price_feeds.venue_feed import VenueNativeFeed
from perp_router.rate_limiter import SourceRateLimiter
from perp_router.scoring.venue_scorer import VenueScorer
from perp_router.storage import models  # noqa: F401  (registers tables)
from perp_router.storage.sql_store import SqlTradeStore
from perp_router.trading.reconciliation import ReconciliationJournal
from perp_router.trading.router import TradeRouter
from perp_router.venues.fulcrom import FulcromVenue
from perp_router.venues.gmx import GMXVenue
from perp_router.venues.moonlander import MoonlanderVenue
from perp_router.venues.registry import VenueRegistry

logger = logging.getLogger(__name__)


@dataclass
class RouterContainer:
    router: TradeRouter
    aggregator: PriceAggregator
    registry: VenueRegistry
    store: SqlTradeStore
    events: TradeEventQueue
    journal: ReconciliationJournal
    engine: AsyncEngine

    async def start(self):
        await self.events.start()

    async def shutdown(self):
        await self.events.stop()
        await self.aggregator.close()
        await self.engine.dispose()


def create_sender(w3: Web3, config: Settings) -> Optional[TransactionSender]:
    if not config.wallet_private_key:
        logger.warning("WALLET_PRIVATE_KEY not set, venues are read-only")
        return None
    return TransactionSender(w3, config.wallet_private_key, chain_id=config.chain_id)


def create_venue_registry(w3: Web3, sender: Optional[TransactionSender], config: Settings) -> VenueRegistry:
    return VenueRegistry([
        MoonlanderVenue(w3, config.moonlander_address, sender=sender),
        GMXVenue(w3, config.gmx_exchange_router, config.gmx_reader, config.gmx_vault, sender=sender),
        FulcromVenue(w3, config.fulcrom_trading, config.fulcrom_storage, sender=sender),
    ])


def create_price_feeds(
    w3: Web3,
    registry: VenueRegistry,
    cache: PriceCache,
    rate_limiter: SourceRateLimiter,
    config: Settings,
) -> List[PriceFeed]:
    """The six Cronos price sources"""
    shared = dict(
        cache=cache,
        rate_limiter=rate_limiter,
        cache_ttl_seconds=config.price_cache_ttl,
        timeout_seconds=config.price_feed_timeout,
    )
    vvs = dict(shared, cache_ttl_seconds=config.vvs_cache_ttl, min_interval_seconds=config.vvs_min_interval)

    return [
        PythOracleFeed(hermes_url=config.pyth_hermes_url, **shared),
        AmmRouterFeed(w3, config.vvs_finance_router, name="VVS Finance", **vvs),
        AmmRouterFeed(w3, config.mm_finance_router, name="MM Finance", **shared),
        PriceFeedContractFeed(w3, config.fulcrom_price_feed, name="Fulcrom", **shared),
        DexScreenerFeed(
            base_url=config.dexscreener_url,
            chain_id=config.dexscreener_chain_id,
            dex_id=config.dexscreener_dex_id,
            name="CroSwap",
            **shared,
        ),
        VenueNativeFeed(registry.resolve("moonlander"), name="Moonlander", **shared),
    ]


async def create_router(config: Optional[Settings] = None, w3: Optional[Web3] = None) -> RouterContainer:
    """Wire every component from settings and create the database tables"""
    config = config or settings
    w3 = w3 or make_web3(config.rpc_url)
    sender = create_sender(w3, config)

    cache = PriceCache()
    rate_limiter = SourceRateLimiter()
    registry = create_venue_registry(w3, sender, config)
    aggregator = PriceAggregator(create_price_feeds(w3, registry, cache, rate_limiter, config))

    engine = create_engine(config.database_url, echo=config.database_echo)
    await init_db(engine)
    store = SqlTradeStore(create_session_maker(engine))

    events = TradeEventQueue(maxsize=config.event_queue_size, max_attempts=config.event_max_attempts)
    events.subscribe(ReputationRecorder(config.reputation_registry_address, config.agent_id))
    events.subscribe(ValidationRequester(
        threshold_usd=config.validation_threshold_usd,
        registry_address=config.validation_registry_address,
        validator_address=config.validator_address,
        agent_id=config.agent_id,
        sender=sender,
    ))

    journal = ReconciliationJournal(config.reconciliation_dir)
    scorer = VenueScorer(
        store,
        liquidity_score=config.liquidity_placeholder_score,
        default_success_rate=config.default_success_rate,
    )
    router = TradeRouter(aggregator, scorer, store, registry, events=events, journal=journal, config=config)

    logger.info(f"Trade router ready: {len(aggregator.feeds)} price feeds, venues={[k.value for k in registry.kinds()]}")

    return RouterContainer(
        router=router,
        aggregator=aggregator,
        registry=registry,
        store=store,
        events=events,
        journal=journal,
        engine=engine,
    )

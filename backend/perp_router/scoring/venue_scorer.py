"""
Venue Scorer

Ranks venues by a weighted composite of reputation (historical success
rate), liquidity, fees and responsiveness. Scores are computed in Decimal
so the composite is reproducible and always within [0, 100].
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, List, Optional, Sequence

from perp_router.storage.base import TradeStore
from perp_router.storage.models import TRADE_STATUS_CLOSED

logger = logging.getLogger(__name__)

SCORE_MIN = Decimal("0")
SCORE_MAX = Decimal("100")

DEFAULT_VENUE_ID = "moonlander-default"
DEFAULT_VENUE_NAME = "Moonlander"
DEFAULT_VENUE_KIND = "moonlander"


@dataclass(frozen=True)
class ScoreWeights:
    """Composite weights; must sum to exactly 1"""
    reputation: Decimal = Decimal("0.4")
    liquidity: Decimal = Decimal("0.3")
    fees: Decimal = Decimal("0.2")
    latency: Decimal = Decimal("0.1")

    def __post_init__(self):
        total = self.reputation + self.liquidity + self.fees + self.latency
        if total != Decimal("1"):
            raise ValueError(f"Score weights must sum to 1, got {total}")
        for value in (self.reputation, self.liquidity, self.fees, self.latency):
            if value < 0:
                raise ValueError("Score weights must be non-negative")


@dataclass
class VenueScore:
    venue_id: str
    venue_name: str
    venue_kind: str
    reputation_score: Decimal
    liquidity_score: Decimal
    fee_score: Decimal
    latency_ms: int
    composite_score: Decimal


def clamp_score(value: Decimal) -> Decimal:
    return max(SCORE_MIN, min(SCORE_MAX, Decimal(value)))


def fee_score(fee_bps: int) -> Decimal:
    """100 at zero fees, losing one point per 5 bps"""
    return clamp_score(SCORE_MAX - Decimal(fee_bps or 0) / 5)


def latency_score(latency_ms: int) -> Decimal:
    """100 at zero latency, losing one point per 10 ms"""
    return clamp_score(SCORE_MAX - Decimal(latency_ms) / 10)


def success_rate_from_statuses(statuses: Sequence[str], default: Decimal) -> Decimal:
    """
    Fraction of trades that reached "closed".

    An empty history yields `default`, not a zero success rate.
    """
    if not statuses:
        return default
    closed = sum(1 for s in statuses if s == TRADE_STATUS_CLOSED)
    return Decimal(closed) / Decimal(len(statuses))


def composite_score(
    reputation: Decimal,
    liquidity: Decimal,
    fees: Decimal,
    latency: Decimal,
    weights: ScoreWeights,
) -> Decimal:
    """Weighted sum of clamped sub-scores, rounded to 2 dp"""
    total = (
        clamp_score(reputation) * weights.reputation
        + clamp_score(liquidity) * weights.liquidity
        + clamp_score(fees) * weights.fees
        + clamp_score(latency) * weights.latency
    )
    return clamp_score(total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def default_venue_score() -> VenueScore:
    """Synthetic venue used when no venues are configured"""
    return VenueScore(
        venue_id=DEFAULT_VENUE_ID,
        venue_name=DEFAULT_VENUE_NAME,
        venue_kind=DEFAULT_VENUE_KIND,
        reputation_score=SCORE_MAX,
        liquidity_score=SCORE_MAX,
        fee_score=SCORE_MAX,
        latency_ms=0,
        composite_score=SCORE_MAX,
    )


class VenueScorer:
    """
    Scores venues concurrently and ranks them best first.

    Usage:
        scorer = VenueScorer(store)
        ranked = await scorer.score(await store.list_active_venues())
        best = ranked[0]
    """

    def __init__(
        self,
        store: TradeStore,
        weights: Optional[ScoreWeights] = None,
        liquidity_score: float = 80.0,
        default_success_rate: float = 0.8,
        history_limit: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            store: Source of per-venue trade history
            weights: Composite weights (defaults 0.4/0.3/0.2/0.1)
            liquidity_score: Liquidity sub-score applied to every venue
            default_success_rate: Success rate for venues with no trades
            history_limit: Number of recent trades considered
            clock: Monotonic clock used to time the metric lookup
        """
        self.store = store
        self.weights = weights or ScoreWeights()
        self.liquidity_score = Decimal(str(liquidity_score))
        self.default_success_rate = Decimal(str(default_success_rate))
        self.history_limit = history_limit
        self._clock = clock

    async def score_venue(self, venue) -> VenueScore:
        start = self._clock()
        statuses = await self.store.get_recent_trade_statuses(venue.id, limit=self.history_limit)
        latency_ms = max(0, int((self._clock() - start) * 1000))

        reputation = clamp_score(success_rate_from_statuses(statuses, self.default_success_rate) * 100)
        fees = fee_score(venue.trading_fee_bps)
        liquidity = clamp_score(self.liquidity_score)

        return VenueScore(
            venue_id=venue.id,
            venue_name=venue.name,
            venue_kind=venue.kind,
            reputation_score=reputation,
            liquidity_score=liquidity,
            fee_score=fees,
            latency_ms=latency_ms,
            composite_score=composite_score(
                reputation, liquidity, fees, latency_score(latency_ms), self.weights
            ),
        )

    async def score(self, venues: Sequence) -> List[VenueScore]:
        """
        Score and rank venues, best first.

        Ties are broken by venue name. With no venues, returns the single
        synthetic default venue.
        """
        if not venues:
            return [default_venue_score()]

        scores = await asyncio.gather(*[self.score_venue(v) for v in venues])
        return sorted(scores, key=lambda s: (-s.composite_score, s.venue_name))

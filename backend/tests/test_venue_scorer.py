"""
Tests for backend/perp_router/scoring/venue_scorer.py

Covers:
- ScoreWeights validation
- Sub-score helpers (fee, latency, success rate, clamping)
- composite_score range and rounding
- VenueScorer.score_venue with and without trade history
- Ranking order, name tie-break and the synthetic default venue
"""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from perp_router.scoring.venue_scorer import (
    DEFAULT_VENUE_ID,
    ScoreWeights,
    VenueScorer,
    clamp_score,
    composite_score,
    fee_score,
    latency_score,
    success_rate_from_statuses,
)
from perp_router.storage.base import TradeStore


def _make_venue(venue_id="moonlander", name="Moonlander", kind="moonlander", fee_bps=10):
    return SimpleNamespace(id=venue_id, name=name, kind=kind, trading_fee_bps=fee_bps)


def _make_store(statuses_by_venue=None):
    statuses_by_venue = statuses_by_venue or {}
    store = MagicMock(spec=TradeStore)
    store.get_recent_trade_statuses = AsyncMock(
        side_effect=lambda venue_id, limit=100: statuses_by_venue.get(venue_id, [])
    )
    return store


class TestScoreWeights:
    def test_defaults_sum_to_one(self):
        w = ScoreWeights()
        assert w.reputation + w.liquidity + w.fees + w.latency == Decimal("1")

    def test_rejects_weights_not_summing_to_one(self):
        with pytest.raises(ValueError, match="sum to 1"):
            ScoreWeights(reputation=Decimal("0.5"))

    def test_rejects_negative_weight(self):
        with pytest.raises(ValueError):
            ScoreWeights(
                reputation=Decimal("1.1"),
                liquidity=Decimal("-0.1"),
                fees=Decimal("0"),
                latency=Decimal("0"),
            )


class TestSubScores:
    def test_clamp(self):
        assert clamp_score(Decimal("-5")) == Decimal("0")
        assert clamp_score(Decimal("150")) == Decimal("100")
        assert clamp_score(Decimal("42.5")) == Decimal("42.5")

    @pytest.mark.parametrize("bps,expected", [(0, "100"), (10, "98"), (500, "0"), (1000, "0")])
    def test_fee_score(self, bps, expected):
        assert fee_score(bps) == Decimal(expected)

    @pytest.mark.parametrize("ms,expected", [(0, "100"), (250, "75"), (5000, "0")])
    def test_latency_score(self, ms, expected):
        assert latency_score(ms) == Decimal(expected)

    def test_success_rate_default_without_history(self):
        assert success_rate_from_statuses([], Decimal("0.8")) == Decimal("0.8")

    def test_success_rate_counts_closed(self):
        rate = success_rate_from_statuses(["closed", "open", "closed", "closed"], Decimal("0.8"))
        assert rate == Decimal("0.75")

    def test_composite_rounds_half_up(self):
        # 0.4*33.335 + 0.3*0 + 0.2*0 + 0.1*0 = 13.334
        assert composite_score(
            Decimal("33.335"), Decimal("0"), Decimal("0"), Decimal("0"), ScoreWeights()
        ) == Decimal("13.33")

    @pytest.mark.parametrize("subs", [
        ("0", "0", "0", "0"),
        ("100", "100", "100", "100"),
        ("-50", "500", "100", "-1"),
    ])
    def test_composite_always_in_range(self, subs):
        result = composite_score(*[Decimal(s) for s in subs], ScoreWeights())
        assert Decimal("0") <= result <= Decimal("100")


class TestVenueScorer:
    @pytest.mark.asyncio
    async def test_venue_without_history_uses_default_success_rate(self, clock):
        """Happy path: 0.4*80 + 0.3*80 + 0.2*98 + 0.1*100 = 85.60"""
        scorer = VenueScorer(_make_store(), clock=clock)

        score = await scorer.score_venue(_make_venue())

        assert score.reputation_score == Decimal("80")
        assert score.liquidity_score == Decimal("80")
        assert score.fee_score == Decimal("98")
        assert score.latency_ms == 0
        assert score.composite_score == Decimal("85.60")

    @pytest.mark.asyncio
    async def test_history_drives_reputation(self, clock):
        store = _make_store({"gmx": ["closed"] * 9 + ["open"]})
        scorer = VenueScorer(store, clock=clock)

        score = await scorer.score_venue(_make_venue("gmx", "GMX", "gmx"))

        assert score.reputation_score == Decimal("90")
        store.get_recent_trade_statuses.assert_awaited_once_with("gmx", limit=100)

    @pytest.mark.asyncio
    async def test_ranked_best_first(self, clock):
        store = _make_store({
            "moonlander": ["closed"] * 10,
            "gmx": ["open"] * 10,
        })
        scorer = VenueScorer(store, clock=clock)

        ranked = await scorer.score([
            _make_venue("gmx", "GMX", "gmx"),
            _make_venue("moonlander", "Moonlander", "moonlander"),
        ])

        assert [s.venue_id for s in ranked] == ["moonlander", "gmx"]
        assert ranked[0].composite_score > ranked[1].composite_score

    @pytest.mark.asyncio
    async def test_ties_broken_by_name(self, clock):
        scorer = VenueScorer(_make_store(), clock=clock)

        ranked = await scorer.score([
            _make_venue("z", "Zeta", "gmx"),
            _make_venue("a", "Alpha", "fulcrom"),
        ])

        assert [s.venue_name for s in ranked] == ["Alpha", "Zeta"]

    @pytest.mark.asyncio
    async def test_no_venues_returns_default(self):
        """Edge case: no venues configured yields the synthetic Moonlander default."""
        ranked = await VenueScorer(_make_store()).score([])

        assert len(ranked) == 1
        assert ranked[0].venue_id == DEFAULT_VENUE_ID
        assert ranked[0].venue_kind == "moonlander"
        assert ranked[0].composite_score == Decimal("100")

    @pytest.mark.asyncio
    async def test_composite_in_range_for_every_venue(self, clock):
        store = _make_store({"a": ["closed"], "b": []})
        scorer = VenueScorer(store, liquidity_score=250, clock=clock)

        ranked = await scorer.score([
            _make_venue("a", "A", fee_bps=0),
            _make_venue("b", "B", fee_bps=10000),
        ])

        for score in ranked:
            assert Decimal("0") <= score.composite_score <= Decimal("100")

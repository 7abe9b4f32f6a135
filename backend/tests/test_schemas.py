"""
Tests for backend/perp_router/trading/schemas.py

Covers:
- TradeQuoteRequest validation (pair format, side, size, leverage)
- TradeExecuteRequest address and slippage bounds
- Quote.to_dict is JSON-safe
"""

import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from perp_router.trading.schemas import Quote, TradeExecuteRequest, TradeQuoteRequest, VenueSummary

USER = "0x" + "a" * 40


class TestTradeQuoteRequest:
    def test_valid_request_uppercases_pair(self):
        request = TradeQuoteRequest(pair="btc-usd", side="long", size_usd="1000", leverage="5")
        assert request.pair == "BTC-USD"
        assert request.size_usd == Decimal("1000")
        assert request.is_long is True

    @pytest.mark.parametrize("field,value", [
        ("pair", "BTCUSD"),
        ("pair", "BTC/USD"),
        ("side", "buy"),
        ("size_usd", "0"),
        ("size_usd", "-10"),
        ("leverage", "0.5"),
    ])
    def test_invalid_fields(self, field, value):
        fields = dict(pair="BTC-USD", side="short", size_usd="1000", leverage="2")
        fields[field] = value
        with pytest.raises(ValidationError):
            TradeQuoteRequest(**fields)


class TestTradeExecuteRequest:
    def test_valid(self):
        request = TradeExecuteRequest(
            pair="ETH-USD", side="short", size_usd="500", leverage="3",
            user_address=USER, max_slippage_pct="1",
        )
        assert request.is_long is False
        assert request.stop_loss is None

    @pytest.mark.parametrize("overrides", [
        {"user_address": "0x123"},
        {"user_address": "a" * 42},
        {"max_slippage_pct": "11"},
        {"stop_loss": "0"},
    ])
    def test_invalid(self, overrides):
        fields = dict(pair="ETH-USD", side="long", size_usd="500", leverage="3", user_address=USER)
        fields.update(overrides)
        with pytest.raises(ValidationError):
            TradeExecuteRequest(**fields)


class TestQuote:
    def test_to_dict_is_json_serializable(self):
        quote = Quote(
            venue=VenueSummary(id="moonlander", name="Moonlander", kind="moonlander", reputation_score=Decimal("80")),
            price_source="Pyth",
            price_source_count=3,
            base_price=Decimal("50000"),
            expected_price=Decimal("50100"),
            expected_slippage_pct=Decimal("0.2"),
            price_impact_pct=Decimal("0.1"),
            liquidation_price=Decimal("41082"),
            total_fees=Decimal("1"),
            estimated_execution_ms=3000,
            quote_latency_ms=45,
        )

        data = json.loads(json.dumps(quote.to_dict()))

        assert data["expected_price"] == "50100"
        assert data["venue"]["kind"] == "moonlander"

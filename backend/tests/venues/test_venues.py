"""
Tests for backend/perp_router/venues/

All Web3 calls are mocked -- no real RPC or on-chain activity.

Covers:
- acceptable_price direction (via the adapters' encoded price limits)
- MoonlanderVenue open/close/get_position/get_token_price
- GMXVenue order creation with execution fee, position keys, reader decoding
- FulcromVenue trade tuple, close by key, open-trade scan
- Read-only venues (no signer) refuse to trade
- VenueRegistry dispatch and parse_venue_kind
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from perp_router.exceptions import UnknownVenueError, ValidationError
from perp_router.venues import fulcrom, gmx
from perp_router.venues.base import ClosePositionParams, OpenPositionParams, VenueKind
from perp_router.venues.fulcrom import FulcromVenue
from perp_router.venues.gmx import GMXVenue
from perp_router.venues.moonlander import MoonlanderVenue
from perp_router.venues.registry import VenueRegistry, parse_venue_kind

USER = "0x1234567890abcdef1234567890abcdef12345678"
CONTRACT = "0x" + "c" * 40
KEY_BYTES = b"\x11" * 32
KEY_HEX = "0x" + "11" * 32


# =========================================================
# Fixtures
# =========================================================


@pytest.fixture
def mock_w3():
    """Mocked Web3 whose contract() hands out a fresh MagicMock per contract."""
    w3 = MagicMock()
    w3.eth.contract.side_effect = lambda address, abi: MagicMock(name=f"contract:{address}")
    return w3


@pytest.fixture
def mock_sender():
    sender = MagicMock()
    sender.address = USER
    sender.send = AsyncMock(return_value=("0xtxhash", {"status": 1, "logs": []}))
    return sender


def _view(contract_fn, result):
    """Make contract.functions.X(...).call() return result."""
    contract_fn.return_value.call.return_value = result


def _open_params(**overrides):
    fields = dict(
        user_address=USER,
        pair="BTC-USD",
        is_long=True,
        size_usd=Decimal("1000"),
        collateral_usd=Decimal("200"),
        leverage=Decimal("5"),
        current_price=Decimal("50000"),
        acceptable_slippage_pct=Decimal("0.5"),
    )
    fields.update(overrides)
    return OpenPositionParams(**fields)


def _close_params(position_key, **overrides):
    fields = dict(
        user_address=USER,
        pair="BTC-USD",
        is_long=True,
        position_key=position_key,
        size_usd=Decimal("1000"),
        current_price=Decimal("50000"),
        acceptable_slippage_pct=Decimal("0.5"),
    )
    fields.update(overrides)
    return ClosePositionParams(**fields)


# =========================================================
# Moonlander
# =========================================================


class TestMoonlanderVenue:
    @pytest.mark.asyncio
    async def test_open_position_encodes_units_and_reads_key_from_receipt(self, mock_w3, mock_sender):
        venue = MoonlanderVenue(mock_w3, CONTRACT, sender=mock_sender)
        venue.contract.events.IncreasePosition.return_value.process_receipt.return_value = [
            {"args": {"key": KEY_BYTES}}
        ]

        execution = await venue.open_position(_open_params())

        token, is_long, collateral, size, price_limit = venue.contract.functions.openPosition.call_args.args
        assert is_long is True
        assert collateral == 200 * 10**6
        assert size == 1000 * 10**30
        # Long open buys: limit above current price
        assert price_limit == 50250 * 10**30
        assert execution.tx_hash == "0xtxhash"
        assert execution.position_key == KEY_HEX
        assert execution.fee_usd == Decimal("1")
        venue.contract.functions.getPositionKey.assert_not_called()

    @pytest.mark.asyncio
    async def test_open_falls_back_to_position_key_view(self, mock_w3, mock_sender):
        venue = MoonlanderVenue(mock_w3, CONTRACT, sender=mock_sender)
        venue.contract.events.IncreasePosition.return_value.process_receipt.return_value = []
        _view(venue.contract.functions.getPositionKey, KEY_BYTES)

        execution = await venue.open_position(_open_params(is_long=False))

        assert execution.position_key == KEY_HEX
        account, _, is_long = venue.contract.functions.getPositionKey.call_args.args
        assert account.lower() == USER
        assert is_long is False
        price_limit = venue.contract.functions.openPosition.call_args.args[4]
        assert price_limit == 49750 * 10**30

    @pytest.mark.asyncio
    async def test_close_position(self, mock_w3, mock_sender):
        venue = MoonlanderVenue(mock_w3, CONTRACT, sender=mock_sender)

        execution = await venue.close_position(_close_params(KEY_HEX))

        key, size, price_limit = venue.contract.functions.closePosition.call_args.args
        assert key == KEY_BYTES
        assert size == 1000 * 10**30
        # Closing a long sells: limit below current price
        assert price_limit == 49750 * 10**30
        assert execution.position_key == KEY_HEX

    @pytest.mark.asyncio
    async def test_read_only_venue_refuses_to_trade(self, mock_w3):
        venue = MoonlanderVenue(mock_w3, CONTRACT)
        with pytest.raises(RuntimeError, match="no signing key"):
            await venue.open_position(_open_params())

    @pytest.mark.asyncio
    async def test_unknown_token_raises(self, mock_w3, mock_sender):
        venue = MoonlanderVenue(mock_w3, CONTRACT, sender=mock_sender)
        with pytest.raises(ValueError):
            await venue.open_position(_open_params(pair="PEPE-USD"))
        mock_sender.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_position(self, mock_w3):
        venue = MoonlanderVenue(mock_w3, CONTRACT)
        _view(venue.contract.functions.getPosition, (
            1000 * 10**30, 200 * 10**6, 50000 * 10**30, 0, 0, 5 * 10**6, 1700000000,
        ))
        _view(venue.contract.functions.getPositionKey, KEY_BYTES)

        position = await venue.get_position(USER, "BTC-USD", True)

        assert position.key == KEY_HEX
        assert position.size_usd == Decimal("1000")
        assert position.collateral_usd == Decimal("200")
        assert position.average_price == Decimal("50000")
        assert position.realised_pnl == Decimal("5")
        assert position.last_increased_at is not None
        assert position.unrealised_pnl(Decimal("55000")) == Decimal("100")

    @pytest.mark.asyncio
    async def test_get_position_empty(self, mock_w3):
        venue = MoonlanderVenue(mock_w3, CONTRACT)
        _view(venue.contract.functions.getPosition, (0, 0, 0, 0, 0, 0, 0))
        assert await venue.get_position(USER, "BTC-USD", True) is None

    @pytest.mark.asyncio
    async def test_get_position_rpc_failure(self, mock_w3):
        venue = MoonlanderVenue(mock_w3, CONTRACT)
        venue.contract.functions.getPosition.return_value.call.side_effect = ConnectionError("rpc down")
        assert await venue.get_position(USER, "BTC-USD", True) is None

    @pytest.mark.asyncio
    async def test_get_token_price(self, mock_w3):
        venue = MoonlanderVenue(mock_w3, CONTRACT)
        _view(venue.contract.functions.getMaxPrice, 50010 * 10**30)
        _view(venue.contract.functions.getMinPrice, 49990 * 10**30)

        assert await venue.get_token_price("BTC-USD") == Decimal("50010")
        assert await venue.get_token_price("BTC-USD", use_max=False) == Decimal("49990")

    @pytest.mark.asyncio
    async def test_get_token_price_failure_is_zero(self, mock_w3):
        venue = MoonlanderVenue(mock_w3, CONTRACT)
        venue.contract.functions.getMaxPrice.return_value.call.side_effect = ValueError("reverted")
        assert await venue.get_token_price("BTC-USD") == Decimal("0")


# =========================================================
# GMX
# =========================================================


class TestGMXPositionKeys:
    def test_round_trip(self):
        key = gmx.make_position_key(USER, "ETH-USD", False)
        assert key == f"{USER}-ETH-USD-SHORT"
        assert gmx.parse_position_key(key) == (USER, "ETH-USD", False)

    @pytest.mark.parametrize("key", ["bad", f"{USER}-ETH-USD-SIDEWAYS", f"{USER}-ETH-LONG"])
    def test_invalid(self, key):
        with pytest.raises(ValueError):
            gmx.parse_position_key(key)


class TestGMXVenue:
    def _venue(self, mock_w3, sender=None):
        return GMXVenue(mock_w3, CONTRACT, "0x" + "d" * 40, "0x" + "e" * 40, sender=sender, execution_fee_wei=123)

    @pytest.mark.asyncio
    async def test_open_sends_execution_fee(self, mock_w3, mock_sender):
        venue = self._venue(mock_w3, mock_sender)

        execution = await venue.open_position(_open_params())

        assert mock_sender.send.call_args.kwargs["value"] == 123
        args = venue.exchange_router.functions.createIncreaseOrder.call_args.args
        assert args[0] == []
        assert args[4] == 1000 * 10**30
        assert args[-1] == 123
        assert execution.position_key == f"{USER}-BTC-USD-LONG"

    @pytest.mark.asyncio
    async def test_close_parses_key(self, mock_w3, mock_sender):
        venue = self._venue(mock_w3, mock_sender)

        await venue.close_position(_close_params(f"{USER}-BTC-USD-SHORT", is_long=False))

        args = venue.exchange_router.functions.createDecreaseOrder.call_args.args
        assert args[4] is False
        # Closing a short buys back: limit above current price
        assert args[5] == 50250 * 10**30
        assert mock_sender.send.call_args.kwargs["value"] == 123

    @pytest.mark.asyncio
    async def test_get_position_loss(self, mock_w3):
        venue = self._venue(mock_w3)
        _view(venue.reader.functions.getPosition, (
            500 * 10**30, 100 * 10**30, 3000 * 10**30, 0, 0, 7 * 10**30, False, 0,
        ))

        position = await venue.get_position(USER, "ETH-USD", True)

        assert position.key == f"{USER}-ETH-USD-LONG"
        assert position.realised_pnl == Decimal("-7")
        assert position.last_increased_at is None

    @pytest.mark.asyncio
    async def test_get_token_price(self, mock_w3):
        venue = self._venue(mock_w3)
        _view(venue.vault.functions.getMaxPrice, 3000 * 10**30)
        assert await venue.get_token_price("ETH-USD") == Decimal("3000")


# =========================================================
# Fulcrom
# =========================================================


class TestFulcromVenue:
    def _venue(self, mock_w3, sender=None):
        return FulcromVenue(mock_w3, CONTRACT, "0x" + "d" * 40, sender=sender)

    def test_position_key_helpers(self):
        assert fulcrom.make_position_key(1, 2) == "1:2"
        assert fulcrom.parse_position_key("1:2") == (1, 2)
        with pytest.raises(ValueError):
            fulcrom.parse_position_key("nope")
        with pytest.raises(ValueError):
            fulcrom.pair_index_for("DOGE-USD")

    @pytest.mark.asyncio
    async def test_open_builds_trade_tuple(self, mock_w3, mock_sender):
        venue = self._venue(mock_w3, mock_sender)
        _view(venue.storage.functions.openTradesCount, 2)

        execution = await venue.open_position(_open_params(take_profit=Decimal("60000")))

        trade, order_type, slippage_p, referrer = venue.trading.functions.openTrade.call_args.args
        assert trade[0].lower() == USER
        assert trade[1] == 0  # BTC-USD pair index
        assert trade[2] == 2
        assert trade[4] == 200 * 10**18
        assert trade[5] == 50000 * 10**10
        assert trade[7] == 5
        assert trade[8] == 60000 * 10**10
        assert trade[9] == 0
        assert order_type == 0
        assert slippage_p == 5 * 10**9
        assert execution.position_key == "0:2"

    @pytest.mark.asyncio
    async def test_close_by_key(self, mock_w3, mock_sender):
        venue = self._venue(mock_w3, mock_sender)
        await venue.close_position(_close_params("1:3"))
        venue.trading.functions.closeTradeMarket.assert_called_once_with(1, 3)

    @pytest.mark.asyncio
    async def test_get_position_scans_open_trades(self, mock_w3):
        venue = self._venue(mock_w3)
        _view(venue.storage.functions.openTradesCount, 2)
        trades = [
            (USER, 1, 0, 0, 50 * 10**18, 3000 * 10**10, False, 10, 0, 0),
            (USER, 1, 1, 0, 100 * 10**18, 3100 * 10**10, True, 5, 0, 0),
        ]
        venue.storage.functions.openTrades.return_value.call.side_effect = trades

        position = await venue.get_position(USER, "ETH-USD", True)

        assert position.key == "1:1"
        assert position.collateral_usd == Decimal("100")
        assert position.size_usd == Decimal("500")
        assert position.average_price == Decimal("3100")

    @pytest.mark.asyncio
    async def test_token_price_not_served(self, mock_w3):
        assert await self._venue(mock_w3).get_token_price("BTC-USD") == Decimal("0")


# =========================================================
# Registry
# =========================================================


class TestVenueRegistry:
    def test_parse_venue_kind(self):
        assert parse_venue_kind("GMX") is VenueKind.GMX
        assert parse_venue_kind(VenueKind.FULCROM) is VenueKind.FULCROM
        with pytest.raises(UnknownVenueError) as exc_info:
            parse_venue_kind("dydx")
        assert isinstance(exc_info.value, ValidationError)
        assert exc_info.value.status_code == 400

    def test_resolve_and_contains(self, venue_factory):
        moonlander = venue_factory()
        registry = VenueRegistry([moonlander])

        assert registry.resolve("moonlander") is moonlander
        assert "moonlander" in registry
        assert "gmx" not in registry
        assert "bogus" not in registry
        assert registry.kinds() == [VenueKind.MOONLANDER]

    def test_resolve_unregistered_kind(self, venue_factory):
        registry = VenueRegistry([venue_factory()])
        with pytest.raises(UnknownVenueError) as exc_info:
            registry.resolve("gmx")
        assert exc_info.value.kind == "gmx"

    def test_duplicate_registration_rejected(self, venue_factory):
        registry = VenueRegistry([venue_factory()])
        with pytest.raises(ValueError):
            registry.register(venue_factory())

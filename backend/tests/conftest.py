"""
Shared test fixtures for perp_router tests.

Provides reusable fixtures for:
- Controllable clock for TTL / rate-limit / latency tests
- Async database + SqlTradeStore (in-memory SQLite)
- Mock price feeds and venue adapters
- Settings with test-friendly overrides
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from perp_router.config import Settings
from perp_router.venues.base import Position, VenueAdapter, VenueExecution, VenueKind


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def async_engine():
    """Create an in-memory async SQLite engine for testing."""
    from perp_router.database import Base
    from perp_router.storage import models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_maker(async_engine):
    from perp_router.database import create_session_maker

    return create_session_maker(async_engine)


@pytest.fixture
def store(session_maker):
    """SqlTradeStore backed by the in-memory database."""
    from perp_router.storage.sql_store import SqlTradeStore

    return SqlTradeStore(session_maker)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        reconciliation_dir=str(tmp_path / "reconciliation"),
        wallet_private_key="",
    )


# ---------------------------------------------------------------------------
# Mock collaborators
# ---------------------------------------------------------------------------


def make_mock_venue(kind=VenueKind.MOONLANDER, name="Moonlander", tx_hash="0xabc", position_key="0xkey"):
    """Create a mock VenueAdapter that opens, finds and closes positions."""
    venue = MagicMock(spec=VenueAdapter)
    venue.kind = kind
    venue.name = name
    venue.open_position = AsyncMock(return_value=VenueExecution(
        tx_hash=tx_hash,
        position_key=position_key,
        status="success",
        entry_price=Decimal("50100"),
        size_usd=Decimal("1000"),
        fee_usd=Decimal("1"),
    ))
    venue.close_position = AsyncMock(return_value=VenueExecution(
        tx_hash=tx_hash + "c1053",
        position_key=position_key,
        status="success",
    ))
    venue.get_position = AsyncMock(return_value=Position(
        key=position_key,
        account="0x" + "1" * 40,
        pair="BTC-USD",
        is_long=True,
        size_usd=Decimal("1000"),
        collateral_usd=Decimal("200"),
        average_price=Decimal("50100"),
    ))
    venue.get_token_price = AsyncMock(return_value=Decimal("50000"))
    return venue


@pytest.fixture
def venue_factory():
    return make_mock_venue


@pytest.fixture
def mock_venue():
    return make_mock_venue()

"""
Trade economics

Pure Decimal helpers for quote pricing and PnL. Slippage is always applied
against the trader: longs buy higher, shorts sell lower.
"""

from decimal import Decimal

from perp_router.venues.base import acceptable_price

__all__ = [
    "acceptable_price",
    "apply_slippage",
    "liquidation_price",
    "pnl_percentage",
    "position_pnl",
    "price_impact_pct",
    "slippage_bps_for_size",
    "slippage_pct",
    "trading_fees",
]

BPS_PER_PERCENT = Decimal("100")
BPS_PER_UNIT = Decimal("10000")


def _require_leverage(leverage: Decimal):
    if Decimal(leverage) < 1:
        raise ValueError(f"Leverage must be >= 1, got {leverage}")


def slippage_bps_for_size(
    size_usd: Decimal,
    small_bps: int = 20,
    large_bps: int = 50,
    threshold_usd: Decimal = Decimal("10000"),
) -> int:
    """Expected slippage bucket: `small_bps` up to the threshold, `large_bps` above"""
    return large_bps if Decimal(size_usd) > threshold_usd else small_bps


def slippage_pct(slippage_bps: int) -> Decimal:
    """Basis points -> percent (20 bps -> 0.2)"""
    return Decimal(slippage_bps) / BPS_PER_PERCENT


def apply_slippage(base_price: Decimal, slippage_pct_value: Decimal, is_long: bool) -> Decimal:
    """Expected fill price: base x (1 + s) for longs, base x (1 - s) for shorts"""
    fraction = Decimal(slippage_pct_value) / 100
    if is_long:
        return Decimal(base_price) * (1 + fraction)
    return Decimal(base_price) * (1 - fraction)


def liquidation_price(
    entry_price: Decimal,
    leverage: Decimal,
    is_long: bool,
    maintenance_margin: Decimal = Decimal("0.9"),
) -> Decimal:
    """
    Approximate liquidation price.

    Longs liquidate below entry at entry x (1 - m/leverage), shorts above
    at entry x (1 + m/leverage).

    Raises:
        ValueError: if leverage < 1
    """
    _require_leverage(leverage)
    move = Decimal(maintenance_margin) / Decimal(leverage)
    if is_long:
        return Decimal(entry_price) * (1 - move)
    return Decimal(entry_price) * (1 + move)


def trading_fees(size_usd: Decimal, fee_rate: Decimal = Decimal("0.001")) -> Decimal:
    return Decimal(size_usd) * Decimal(fee_rate)


def price_impact_pct(slippage_pct_value: Decimal) -> Decimal:
    """Approximate price impact: half the expected slippage"""
    return Decimal(slippage_pct_value) / 2


def position_pnl(entry_price: Decimal, exit_price: Decimal, size_usd: Decimal, is_long: bool) -> Decimal:
    """
    USD PnL of a position of notional `size_usd` opened at `entry_price`.

    Raises:
        ValueError: if entry_price is not positive
    """
    entry = Decimal(entry_price)
    if entry <= 0:
        raise ValueError("entry_price must be positive")
    units = Decimal(size_usd) / entry
    pnl = (Decimal(exit_price) - entry) * units
    return pnl if is_long else -pnl


def pnl_percentage(pnl_usd: Decimal, size_usd: Decimal) -> Decimal:
    size = Decimal(size_usd)
    if size == 0:
        return Decimal("0")
    return Decimal(pnl_usd) / size * 100

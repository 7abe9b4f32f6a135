"""
Post-trade side effects

TradeEventQueue delivers TradeExecutedEvent to the reputation and
validation handlers without blocking the trade path.
"""

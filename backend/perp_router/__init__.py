"""
perp_router: price aggregation and best-venue routing for leveraged trades
on Cronos perpetual exchanges.
"""

__version__ = "0.1.0"

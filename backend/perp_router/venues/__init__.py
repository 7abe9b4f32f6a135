"""
Trading Venue Abstraction Layer

Every perpetual venue implements VenueAdapter. The router resolves the
adapter for a venue through VenueRegistry by its VenueKind.

Supported venues:
- Moonlander (MoonlanderVenue)
- GMX (GMXVenue)
- Fulcrom (FulcromVenue)
"""

from perp_router.venues.base import (
    ClosePositionParams,
    OpenPositionParams,
    Position,
    VenueAdapter,
    VenueExecution,
    VenueKind,
)
from perp_router.venues.registry import VenueRegistry, parse_venue_kind

__all__ = [
    "ClosePositionParams",
    "OpenPositionParams",
    "Position",
    "VenueAdapter",
    "VenueExecution",
    "VenueKind",
    "VenueRegistry",
    "parse_venue_kind",
]

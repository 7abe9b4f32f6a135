"""
Venue Registry

Maps each VenueKind to exactly one adapter. Venue rows in storage carry an
explicit kind, so dispatch is a dictionary lookup rather than name matching.
"""

import logging
from typing import Dict, Iterable, List, Optional, Union

from perp_router.exceptions import UnknownVenueError
from perp_router.venues.base import VenueAdapter, VenueKind

logger = logging.getLogger(__name__)


def parse_venue_kind(value: Union[str, VenueKind]) -> VenueKind:
    """
    Raises:
        UnknownVenueError: if the value is not a known venue kind
    """
    if isinstance(value, VenueKind):
        return value
    try:
        return VenueKind(str(value).lower())
    except ValueError:
        raise UnknownVenueError(str(value))


class VenueRegistry:
    """Closed mapping from VenueKind to its adapter"""

    def __init__(self, adapters: Optional[Iterable[VenueAdapter]] = None):
        self._adapters: Dict[VenueKind, VenueAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: VenueAdapter):
        """
        Raises:
            ValueError: if an adapter is already registered for the kind
        """
        if adapter.kind in self._adapters:
            raise ValueError(f"Adapter already registered for venue kind '{adapter.kind.value}'")
        self._adapters[adapter.kind] = adapter
        logger.info(f"Registered venue adapter: {adapter.kind.value} -> {type(adapter).__name__}")

    def resolve(self, kind: Union[str, VenueKind]) -> VenueAdapter:
        """
        Adapter for a venue kind.

        Raises:
            UnknownVenueError: if the kind is unknown or has no adapter
        """
        venue_kind = parse_venue_kind(kind)
        adapter = self._adapters.get(venue_kind)
        if adapter is None:
            raise UnknownVenueError(venue_kind.value)
        return adapter

    def kinds(self) -> List[VenueKind]:
        return list(self._adapters)

    def __contains__(self, kind) -> bool:
        try:
            return parse_venue_kind(kind) in self._adapters
        except UnknownVenueError:
            return False

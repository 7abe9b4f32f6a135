"""
Shared plumbing for venues that trade through EVM contracts.
"""

import logging
from typing import Optional

from web3 import Web3

from perp_router.chain import TransactionSender
from perp_router.constants import base_token_for_pair
from perp_router.venues.base import VenueAdapter

logger = logging.getLogger(__name__)


class OnChainVenue(VenueAdapter):
    """VenueAdapter backed by a Web3 connection and an optional signer"""

    def __init__(self, w3: Web3, sender: Optional[TransactionSender] = None):
        """
        Args:
            w3: Web3 connection used for reads and contract bindings
            sender: Signs and submits transactions; read-only venue when None
        """
        self.w3 = w3
        self.sender = sender

    def _contract(self, address: str, abi: list):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def _require_sender(self) -> TransactionSender:
        if self.sender is None:
            raise RuntimeError(f"{self.name}: no signing key configured")
        return self.sender

    @staticmethod
    def _index_token(pair: str) -> str:
        """
        Checksummed address of the pair's base token.

        Raises:
            ValueError: if the token is not supported on Cronos
        """
        try:
            address, _ = base_token_for_pair(pair)
        except KeyError:
            raise ValueError(f"Unknown token for pair {pair}")
        return Web3.to_checksum_address(address)

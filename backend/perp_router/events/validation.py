"""
Validation requests for high-value trades

Trades at or above the threshold are submitted to the ERC-8004 validation
registry so an independent validator can attest to the execution. The
request hash is keccak256 of the canonical JSON payload.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from web3 import Web3

from perp_router.chain import TransactionSender
from perp_router.constants import VALIDATION_REGISTRY_ABI, ZERO_ADDRESS
from perp_router.trading.schemas import TradeExecutedEvent

logger = logging.getLogger(__name__)


@dataclass
class ValidationOutcome:
    requested: bool
    request_hash: Optional[str] = None
    tx_hash: Optional[str] = None
    reason: Optional[str] = None


def build_request_payload(event: TradeExecutedEvent) -> Dict[str, Any]:
    return {
        "trade_id": event.trade_id,
        "tx_hash": event.tx_hash,
        "pair": event.pair,
        "side": event.side,
        "size_usd": str(event.size_usd),
        "leverage": str(event.leverage),
        "venue": event.venue_name,
        "expected_price": str(event.entry_price),
        "slippage_pct": str(event.expected_slippage_pct),
        "execution_ms": event.execution_ms,
        "timestamp": event.occurred_at.isoformat(),
    }


def request_hash(payload: Dict[str, Any]) -> str:
    """keccak256 of the payload serialized with sorted keys and no whitespace"""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return Web3.to_hex(Web3.keccak(text=canonical))


class ValidationRequester:
    """TradeEventQueue handler that requests validation for large trades"""

    def __init__(
        self,
        threshold_usd: Decimal = Decimal("10000"),
        registry_address: str = "",
        validator_address: str = "",
        agent_id: int = 0,
        sender: Optional[TransactionSender] = None,
    ):
        self.threshold_usd = Decimal(threshold_usd)
        self.registry_address = registry_address
        self.validator_address = validator_address
        self.agent_id = agent_id
        self.sender = sender

    def requires_validation(self, size_usd: Decimal) -> bool:
        return Decimal(size_usd) >= self.threshold_usd

    def _missing_config(self) -> Optional[str]:
        if not self.registry_address or self.agent_id <= 0:
            return "validation registry not configured"
        if not self.validator_address or self.validator_address == ZERO_ADDRESS:
            return "validator address not configured"
        if self.sender is None:
            return "no signing key configured"
        return None

    async def __call__(self, event: TradeExecutedEvent):
        await self.request(event)

    async def request(self, event: TradeExecutedEvent) -> ValidationOutcome:
        """
        Submit a validation request if the trade qualifies.

        Raises:
            Exception: if the on-chain submission fails (the queue retries)
        """
        if not self.requires_validation(event.size_usd):
            return ValidationOutcome(requested=False, reason="below threshold")

        missing = self._missing_config()
        if missing:
            logger.info(
                f"High-value trade {event.trade_id} (${event.size_usd}) detected, "
                f"validation recommended ({missing})"
            )
            return ValidationOutcome(requested=False, reason=missing)

        payload = build_request_payload(event)
        req_hash = request_hash(payload)

        registry = self.sender.w3.eth.contract(
            address=Web3.to_checksum_address(self.registry_address),
            abi=VALIDATION_REGISTRY_ABI,
        )
        tx_hash, _ = await self.sender.send(
            registry.functions.validationRequest(
                Web3.to_checksum_address(self.validator_address),
                self.agent_id,
                "",  # requestURI
                Web3.to_bytes(hexstr=req_hash),
            )
        )

        logger.info(
            f"Validation requested for trade {event.trade_id}: "
            f"request_hash={req_hash}, validator={self.validator_address}, tx_hash={tx_hash}"
        )
        return ValidationOutcome(requested=True, request_hash=req_hash, tx_hash=tx_hash)

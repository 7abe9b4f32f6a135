"""
Web3 helpers shared by the on-chain price feeds, venue adapters and the
validation registry client.

web3.py is synchronous, so every RPC round-trip runs in a worker thread via
asyncio.to_thread to keep the event loop responsive.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from eth_account import Account
from web3 import Web3

logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 500000
RECEIPT_TIMEOUT_SECONDS = 120


def make_web3(rpc_url: str) -> Web3:
    return Web3(Web3.HTTPProvider(rpc_url))


def to_units(amount: Decimal, decimals: int) -> int:
    """Decimal amount -> integer base units (truncated)"""
    return int(Decimal(amount).scaleb(decimals))


def from_units(raw: int, decimals: int) -> Decimal:
    """Integer base units -> Decimal amount"""
    return Decimal(raw).scaleb(-decimals)


async def call_view(fn) -> Any:
    """Run a read-only contract call off the event loop"""
    return await asyncio.to_thread(fn.call)


class TransactionSender:
    """
    Builds, signs and broadcasts contract transactions for one wallet.

    The private key never leaves this object; transactions are signed
    locally and submitted with send_raw_transaction.
    """

    def __init__(
        self,
        w3: Web3,
        private_key: str,
        chain_id: Optional[int] = None,
        receipt_timeout: int = RECEIPT_TIMEOUT_SECONDS,
    ):
        self.w3 = w3
        self.account = Account.from_key(private_key)
        self.address = self.account.address
        self.chain_id = chain_id
        self.receipt_timeout = receipt_timeout

    async def send(self, fn, value: int = 0, gas: int = DEFAULT_GAS_LIMIT) -> Tuple[str, Dict]:
        """
        Sign and submit a contract function call, then wait for the receipt.

        Args:
            fn: Bound contract function (contract.functions.foo(args))
            value: Native token value in wei (payable functions)
            gas: Gas limit

        Returns:
            (tx_hash_hex, receipt)

        Raises:
            RuntimeError: if the transaction reverted
        """
        def _build():
            tx_params = {
                "from": self.address,
                "gas": gas,
                "gasPrice": self.w3.eth.gas_price,
                "nonce": self.w3.eth.get_transaction_count(self.address),
                "value": value,
            }
            if self.chain_id is not None:
                tx_params["chainId"] = self.chain_id
            return fn.build_transaction(tx_params)

        txn = await asyncio.to_thread(_build)
        signed = self.account.sign_transaction(txn)

        tx_hash = await asyncio.to_thread(
            lambda: self.w3.eth.send_raw_transaction(signed.raw_transaction)
        )
        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"Transaction sent: tx_hash={tx_hash_hex}")

        receipt = await asyncio.to_thread(
            lambda: self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        )

        if receipt["status"] != 1:
            raise RuntimeError(f"Transaction reverted: {tx_hash_hex}")

        logger.info(f"Transaction confirmed: tx_hash={tx_hash_hex}, gas_used={receipt.get('gasUsed')}")
        return tx_hash_hex, receipt

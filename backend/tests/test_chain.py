"""
Tests for backend/perp_router/chain.py

All Web3 calls are mocked -- no real RPC or on-chain activity.

Covers:
- to_units / from_units Decimal conversion
- call_view runs the bound call
- TransactionSender build -> sign -> send -> receipt flow
- Reverted transactions raise
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from perp_router.chain import TransactionSender, call_view, from_units, to_units

# Well-known throwaway key (never funded)
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


@pytest.fixture
def mock_w3():
    w3 = MagicMock()
    w3.eth.gas_price = 5000 * 10**9
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.send_raw_transaction.return_value = b"\xab" * 32
    w3.eth.wait_for_transaction_receipt.return_value = {"status": 1, "gasUsed": 210000}
    return w3


@pytest.fixture
def sender(mock_w3):
    sender = TransactionSender(mock_w3, TEST_PRIVATE_KEY, chain_id=25, receipt_timeout=30)
    sender.account = MagicMock()
    sender.account.sign_transaction.return_value = MagicMock(raw_transaction=b"\x01\x02")
    return sender


class TestUnits:
    def test_to_units(self):
        assert to_units(Decimal("1.5"), 6) == 1500000
        assert to_units(Decimal("50000"), 30) == 50000 * 10**30

    def test_to_units_truncates(self):
        assert to_units(Decimal("0.0000019"), 6) == 1

    def test_from_units(self):
        assert from_units(91234, 6) == Decimal("0.091234")
        assert from_units(3000 * 10**30, 30) == Decimal("3000")


class TestCallView:
    @pytest.mark.asyncio
    async def test_call_view(self):
        fn = MagicMock()
        fn.call.return_value = 42
        assert await call_view(fn) == 42
        fn.call.assert_called_once_with()


class TestTransactionSender:
    def test_address_derived_from_key(self, mock_w3):
        sender = TransactionSender(mock_w3, TEST_PRIVATE_KEY)
        assert sender.address.startswith("0x")
        assert len(sender.address) == 42

    @pytest.mark.asyncio
    async def test_send_flow(self, sender, mock_w3):
        fn = MagicMock()
        fn.build_transaction.return_value = {"to": "0x" + "c" * 40, "data": "0x"}

        tx_hash, receipt = await sender.send(fn, value=123, gas=300000)

        tx_params = fn.build_transaction.call_args.args[0]
        assert tx_params["from"] == sender.address
        assert tx_params["gas"] == 300000
        assert tx_params["nonce"] == 7
        assert tx_params["value"] == 123
        assert tx_params["chainId"] == 25
        sender.account.sign_transaction.assert_called_once_with(fn.build_transaction.return_value)
        mock_w3.eth.send_raw_transaction.assert_called_once_with(b"\x01\x02")
        mock_w3.eth.wait_for_transaction_receipt.assert_called_once_with(b"\xab" * 32, timeout=30)
        assert tx_hash == "0x" + "ab" * 32
        assert receipt["status"] == 1

    @pytest.mark.asyncio
    async def test_reverted_transaction_raises(self, sender, mock_w3):
        mock_w3.eth.wait_for_transaction_receipt.return_value = {"status": 0}
        fn = MagicMock()
        fn.build_transaction.return_value = {}

        with pytest.raises(RuntimeError, match="reverted"):
            await sender.send(fn)

    @pytest.mark.asyncio
    async def test_no_chain_id(self, mock_w3):
        sender = TransactionSender(mock_w3, TEST_PRIVATE_KEY)
        sender.account = MagicMock()
        fn = MagicMock()
        fn.build_transaction.return_value = {}

        await sender.send(fn)

        assert "chainId" not in fn.build_transaction.call_args.args[0]

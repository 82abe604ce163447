"""Fixtures for SDK tests: web3-shaped log dicts and mocked clients."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from sec7970.protocol.address import parse_address
from sec7970.protocol.events import MessageSent, encode_message_sent
from sec7970.sdk.client import SECClient
from sec7970.sdk.config import SDKConfig

SEC_ADDRESS = parse_address("0x" + "5e" * 20)


@pytest.fixture()
def contract_address() -> str:
    return SEC_ADDRESS


@pytest.fixture()
def make_log():
    """Build a web3-style log dict for a MessageSent event."""

    def _make(from_address, to_address, message_type=2, data=b"", block=1, index=0):
        topics, encoded = encode_message_sent(
            MessageSent(from_address, to_address, message_type, data)
        )
        return {
            "address": SEC_ADDRESS,
            "topics": list(topics),
            "data": encoded,
            "blockNumber": block,
            "logIndex": index,
            "transactionHash": bytes([block]) * 32,
        }

    return _make


@pytest.fixture()
def mock_w3():
    w3 = MagicMock()
    w3.eth.get_logs = AsyncMock(return_value=[])
    w3.eth.wait_for_transaction_receipt = AsyncMock(return_value={"status": 1})

    async def _chain_id():
        return 31337

    type(w3.eth).chain_id = property(lambda self: _chain_id())
    return w3


@pytest.fixture()
def mock_contract():
    return MagicMock()


@pytest.fixture()
def client(mock_w3, mock_contract, contract_address) -> SECClient:
    """SECClient wired to a mocked web3 and contract instance."""
    c = SECClient(config=SDKConfig(contract_address=contract_address), w3=mock_w3)
    c._contract = mock_contract
    return c

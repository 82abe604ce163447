"""SECClient -- talk to a deployed ``IERC7970`` contract over JSON-RPC.

Uses web3.py ``AsyncHTTPProvider`` for calls, transactions and
``eth_getLogs``.  Log decoding goes through
:func:`sec7970.protocol.events.decode_message_sent`, so the same wire
contract applies to on-chain and local logs.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from web3 import AsyncWeb3
from web3.providers import AsyncHTTPProvider

from sec7970.contracts.interface import IERC7970_INTERFACE_ID
from sec7970.protocol import (
    ERC165_INTERFACE_ID,
    INVALID_INTERFACE_ID,
    REFERENCE_SEC_SPEC,
    InvalidLogError,
    InvocationAbortedError,
    SECError,
    coerce_message_type,
    coerce_payload,
    message_filter_topics,
    normalize_interface_id,
    parse_address,
    to_abi_json,
)
from sec7970.sdk.config import SDKConfig
from sec7970.sdk.message import ReceivedMessage

logger = logging.getLogger(__name__)


def _hex_topics(topics: list) -> list:
    """Render a topic filter the way JSON-RPC expects (``0x`` hex strings)."""

    def render(position: Any) -> Any:
        if position is None:
            return None
        if isinstance(position, list):
            return [render(p) for p in position]
        return "0x" + bytes(position).hex()

    return [render(p) for p in topics]


class SECClient:
    """Async client for one SEC contract.

    web3 and the contract instance are created lazily on first use, so
    constructing a client never touches the network.  Pass ``w3`` to reuse
    an existing ``AsyncWeb3`` instance.
    """

    def __init__(
        self,
        contract_address: str | None = None,
        rpc_url: str | None = None,
        config: SDKConfig | None = None,
        w3: AsyncWeb3 | None = None,
    ) -> None:
        self.config = config or SDKConfig(
            rpc_url=rpc_url, contract_address=contract_address
        )
        self._contract_address = contract_address or self.config.contract_address
        self._rpc_url = rpc_url or self.config.rpc_url
        self._abi = to_abi_json(REFERENCE_SEC_SPEC)
        self._w3 = w3
        self._contract = None

    @property
    def contract_address(self) -> str | None:
        return self._contract_address

    async def _get_contract(self):
        """Lazy-initialize web3 and contract instance."""
        if self._contract is None:
            if not self._contract_address:
                raise SECError(
                    "Contract address not configured. "
                    "Pass contract_address or set SEC_CONTRACT_ADDRESS."
                )
            if self._w3 is None:
                self._w3 = AsyncWeb3(AsyncHTTPProvider(self._rpc_url))
            await self._check_chain_id()
            self._contract = self._w3.eth.contract(
                address=parse_address(self._contract_address),
                abi=self._abi,
            )
        return self._contract

    async def _check_chain_id(self) -> None:
        """Refuse to talk to a node on a different chain than configured."""
        try:
            node_chain_id = int(await self._w3.eth.chain_id)
        except Exception as exc:
            raise SECError(f"eth_chainId failed: {exc}") from exc
        if node_chain_id != self.config.chain_id:
            raise SECError(
                f"Node at {self._rpc_url} is on chain {node_chain_id}, "
                f"expected {self.config.chain_id}. Set SEC_CHAIN_ID to match."
            )

    async def _call(self, fn_name: str, *args: Any) -> Any:
        contract = await self._get_contract()
        try:
            return await getattr(contract.functions, fn_name)(*args).call()
        except SECError:
            raise
        except Exception as exc:
            raise SECError(f"{fn_name} call failed: {exc}") from exc

    # -----------------------------------------------------------------------
    # Read-only accessors
    # -----------------------------------------------------------------------

    async def name(self) -> str:
        return await self._call("name")

    async def supports_interface(self, interface_id: bytes | str | int) -> bool:
        return bool(
            await self._call("supportsInterface", normalize_interface_id(interface_id))
        )

    async def get_interface_id(self) -> bytes:
        return bytes(await self._call("getInterfaceId"))

    async def is_ierc7970(self) -> bool:
        return bool(await self._call("isIERC7970"))

    async def detect(self) -> bool:
        """Run the ERC-165 detection procedure for ``IERC7970``.

        The contract must answer true for ``0x01ffc9a7``, false for
        ``0xffffffff``, and true for the ``IERC7970`` identifier.  A failing
        call counts as "not supported".
        """
        try:
            if not await self.supports_interface(ERC165_INTERFACE_ID):
                return False
            if await self.supports_interface(INVALID_INTERFACE_ID):
                return False
            return await self.supports_interface(IERC7970_INTERFACE_ID)
        except SECError:
            logger.debug(
                "ERC-165 detection failed for %s", self._contract_address, exc_info=True
            )
            return False

    async def block_number(self) -> int:
        await self._get_contract()
        try:
            return int(await self._w3.eth.block_number)
        except Exception as exc:
            raise SECError(f"eth_blockNumber failed: {exc}") from exc

    # -----------------------------------------------------------------------
    # Sending
    # -----------------------------------------------------------------------

    async def send_message(
        self,
        sender: str,
        to: str,
        message_type: int,
        data: bytes,
        wait: bool = True,
    ) -> bytes:
        """Submit ``sendMessage(to, message_type, data)`` from *sender*.

        *sender* must be an account the node can sign for.  With *wait*,
        blocks until the receipt is available.

        Returns:
            The transaction hash.

        Raises:
            InvocationAbortedError: If the mined transaction failed.
            SECError: On any RPC failure.
        """
        contract = await self._get_contract()
        fn = contract.functions.sendMessage(
            parse_address(to), coerce_message_type(message_type), coerce_payload(data)
        )
        try:
            tx_hash = await fn.transact({"from": parse_address(sender)})
            if wait:
                receipt = await self._w3.eth.wait_for_transaction_receipt(tx_hash)
                if receipt["status"] != 1:
                    raise InvocationAbortedError(
                        f"sendMessage transaction 0x{bytes(tx_hash).hex()} failed",
                        receipt=receipt,
                    )
        except SECError:
            raise
        except Exception as exc:
            raise SECError(f"sendMessage failed: {exc}") from exc

        logger.debug(
            "Sent message type %d from %s to %s (tx 0x%s)",
            message_type,
            sender,
            to,
            bytes(tx_hash).hex(),
        )
        return bytes(tx_hash)

    # -----------------------------------------------------------------------
    # Observing
    # -----------------------------------------------------------------------

    async def get_messages(
        self,
        from_block: Optional[int] = None,
        to_block: int | str = "latest",
        from_address: Optional[str | Sequence[str]] = None,
        to_address: Optional[str | Sequence[str]] = None,
        message_type: Optional[int | Sequence[int]] = None,
    ) -> list[ReceivedMessage]:
        """Fetch and decode ``MessageSent`` logs in emission order.

        Filters are applied by the node on the indexed topics.  Logs that do
        not decode are skipped with a warning.
        """
        await self._get_contract()
        params = {
            "address": parse_address(self._contract_address),
            "fromBlock": self.config.from_block if from_block is None else from_block,
            "toBlock": to_block,
            "topics": _hex_topics(
                message_filter_topics(from_address, to_address, message_type)
            ),
        }
        try:
            logs = await self._w3.eth.get_logs(params)
        except Exception as exc:
            raise SECError(f"eth_getLogs failed: {exc}") from exc

        messages = []
        for log in logs:
            try:
                messages.append(ReceivedMessage.from_log(log))
            except InvalidLogError as exc:
                logger.warning("Skipping undecodable log: %s", exc)
        messages.sort(key=lambda m: m.position)
        return messages

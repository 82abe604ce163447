"""ReceivedMessage -- frozen data object for observed ``MessageSent`` logs.

``__str__`` deliberately omits the payload: ``data`` is opaque (usually
ciphertext) and must be extracted explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from eth_utils import to_bytes

from sec7970.protocol.address import parse_address
from sec7970.protocol.events import LogEntry, decode_message_sent
from sec7970.protocol.types import MessageType, describe_message_type


@dataclass(frozen=True)
class ReceivedMessage:
    """A decoded message record plus its position in the log."""

    from_address: str
    to_address: str
    message_type: int
    data: bytes
    block_number: int = 0
    log_index: int = 0
    transaction_hash: bytes = b""
    contract_address: Optional[str] = None

    @classmethod
    def from_log(cls, log: LogEntry | Mapping) -> ReceivedMessage:
        """Decode a :class:`LogEntry` or a web3 / JSON-RPC log mapping.

        Raises:
            InvalidLogError: If the log is not a ``MessageSent`` event.
        """
        event = decode_message_sent(log)
        if isinstance(log, LogEntry):
            block_number = log.block_number
            log_index = log.log_index
            tx_hash = log.transaction_hash
            address: Optional[str] = log.address
        else:
            block_number = _as_int(log.get("blockNumber", 0))
            log_index = _as_int(log.get("logIndex", 0))
            tx_hash = _as_bytes(log.get("transactionHash", b""))
            raw_address = log.get("address")
            address = parse_address(raw_address) if raw_address else None
        return cls(
            from_address=event.from_address,
            to_address=event.to_address,
            message_type=event.message_type,
            data=event.data,
            block_number=block_number,
            log_index=log_index,
            transaction_hash=tx_hash,
            contract_address=address,
        )

    @property
    def position(self) -> tuple[int, int]:
        """Sort key giving emission order: ``(block_number, log_index)``."""
        return (self.block_number, self.log_index)

    @property
    def is_handshake(self) -> bool:
        """True for the connection request/response conventions (0 and 1)."""
        return self.message_type in (
            MessageType.CONNECTION_REQUEST,
            MessageType.CONNECTION_RESPONSE,
        )

    def __str__(self) -> str:
        return (
            f"{describe_message_type(self.message_type)} from {self.from_address} "
            f"to {self.to_address} at block {self.block_number}"
        )

    def __repr__(self) -> str:
        return (
            f"ReceivedMessage(from_address={self.from_address!r}, "
            f"to_address={self.to_address!r}, "
            f"message_type={self.message_type!r}, "
            f"data_length={len(self.data)}, "
            f"block_number={self.block_number!r}, "
            f"log_index={self.log_index!r})"
        )


def _as_int(value: Any) -> int:
    # JSON-RPC returns quantities as hex strings; web3 converts them to int
    if isinstance(value, str):
        return int(value, 16)
    return int(value)


def _as_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return to_bytes(hexstr=value)
    return bytes(value)

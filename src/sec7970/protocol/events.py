"""``MessageSent`` event -- the sole observable artifact, and its log layout.

Wire contract for off-chain consumers::

    topics[0] = keccak256("MessageSent(address,address,uint256,bytes)")
    topics[1] = from         (32-byte ABI word)
    topics[2] = to           (32-byte ABI word)
    topics[3] = messageType  (32-byte ABI word)
    data      = abi.encode(bytes data)

Python attribute names use ``from_address`` / ``to_address`` because
``from`` is a reserved keyword.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

import eth_abi
from eth_abi.exceptions import DecodingError
from eth_utils import to_bytes

from sec7970.protocol.abi import MESSAGE_SENT_EVENT
from sec7970.protocol.address import parse_address
from sec7970.protocol.errors import InvalidAddressError, InvalidLogError
from sec7970.protocol.types import coerce_message_type, coerce_payload

MESSAGE_SENT_TOPIC = MESSAGE_SENT_EVENT.topic

# topic0 plus one topic per indexed field
_TOPIC_COUNT = 1 + len(MESSAGE_SENT_EVENT.indexed_inputs)


@dataclass(frozen=True)
class MessageSent:
    """One emitted message record.  Immutable once created."""

    from_address: str
    to_address: str
    message_type: int
    data: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "from_address", parse_address(self.from_address))
        object.__setattr__(self, "to_address", parse_address(self.to_address))
        object.__setattr__(self, "message_type", coerce_message_type(self.message_type))
        object.__setattr__(self, "data", coerce_payload(self.data))


@dataclass(frozen=True)
class LogEntry:
    """A committed log record as seen by ``eth_getLogs`` consumers."""

    address: str
    topics: tuple[bytes, ...]
    data: bytes
    block_number: int = 0
    transaction_index: int = 0
    log_index: int = 0
    transaction_hash: bytes = b""

    def to_dict(self) -> dict:
        """Hex-encoded, JSON-ready form using JSON-RPC field names."""
        return {
            "address": self.address,
            "topics": ["0x" + t.hex() for t in self.topics],
            "data": "0x" + self.data.hex(),
            "blockNumber": self.block_number,
            "transactionIndex": self.transaction_index,
            "logIndex": self.log_index,
            "transactionHash": "0x" + self.transaction_hash.hex(),
        }


def encode_message_sent(event: MessageSent) -> tuple[tuple[bytes, ...], bytes]:
    """Return the ``(topics, data)`` log encoding of *event*."""
    topics = (
        MESSAGE_SENT_TOPIC,
        eth_abi.encode(["address"], [event.from_address]),
        eth_abi.encode(["address"], [event.to_address]),
        eth_abi.encode(["uint256"], [event.message_type]),
    )
    data = eth_abi.encode(["bytes"], [event.data])
    return topics, data


def _as_bytes(value: Any) -> bytes:
    # web3 hands back HexBytes; JSON sources hand back "0x..." strings
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return to_bytes(hexstr=value)
        except ValueError as exc:
            raise InvalidLogError(f"Invalid hex value: {value!r}") from exc
    raise InvalidLogError(f"Expected bytes or hex string, got {type(value).__name__}")


def _log_fields(log: LogEntry | Mapping) -> tuple[Sequence[Any], Any]:
    if isinstance(log, LogEntry):
        return log.topics, log.data
    try:
        return log["topics"], log["data"]
    except (KeyError, TypeError) as exc:
        raise InvalidLogError(f"Log is missing topics/data: {exc}") from exc


def decode_message_sent(log: LogEntry | Mapping) -> MessageSent:
    """Decode a ``MessageSent`` log.

    Accepts a :class:`LogEntry` or any mapping with ``topics`` and ``data``
    (web3 ``AttributeDict`` logs, JSON-RPC dicts).

    Raises:
        InvalidLogError: If the log is not a well-formed ``MessageSent``.
    """
    raw_topics, raw_data = _log_fields(log)
    topics = [_as_bytes(t) for t in raw_topics]
    if len(topics) != _TOPIC_COUNT:
        raise InvalidLogError(
            f"MessageSent has {_TOPIC_COUNT} topics, log has {len(topics)}"
        )
    if topics[0] != MESSAGE_SENT_TOPIC:
        raise InvalidLogError(f"Not a MessageSent log: topic0=0x{topics[0].hex()}")

    try:
        (from_address,) = eth_abi.decode(["address"], topics[1])
        (to_address,) = eth_abi.decode(["address"], topics[2])
        (message_type,) = eth_abi.decode(["uint256"], topics[3])
        (data,) = eth_abi.decode(["bytes"], _as_bytes(raw_data))
    except (DecodingError, ValueError) as exc:
        raise InvalidLogError(f"Cannot decode MessageSent log: {exc}") from exc

    try:
        return MessageSent(
            from_address=from_address,
            to_address=to_address,
            message_type=message_type,
            data=data,
        )
    except InvalidAddressError as exc:
        raise InvalidLogError(str(exc)) from exc


def _topic_word(abi_type: str, value: Any) -> bytes:
    return eth_abi.encode([abi_type], [value])


def message_filter_topics(
    from_address: Optional[str | Sequence[str]] = None,
    to_address: Optional[str | Sequence[str]] = None,
    message_type: Optional[int | Sequence[int]] = None,
) -> list:
    """Build an ``eth_getLogs`` topic filter for ``MessageSent``.

    ``None`` leaves a position as a wildcard; a list or tuple matches any of
    its values.  Trailing wildcards are dropped, as JSON-RPC nodes expect.
    """

    def position(abi_type: str, value: Any, coerce) -> Optional[Any]:
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            return [_topic_word(abi_type, coerce(v)) for v in value]
        return _topic_word(abi_type, coerce(value))

    topics: list = [
        MESSAGE_SENT_TOPIC,
        position("address", from_address, parse_address),
        position("address", to_address, parse_address),
        position("uint256", message_type, coerce_message_type),
    ]
    while topics and topics[-1] is None:
        topics.pop()
    return topics

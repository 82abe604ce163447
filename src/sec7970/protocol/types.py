"""Core types, constants, and utility functions for the SEC protocol."""

from __future__ import annotations

from enum import IntEnum

from sec7970.protocol.errors import InvalidMessageTypeError, InvalidPayloadError


# Fixed identifying name reported by the reference implementation
REFERENCE_NAME = "ReferenceSEC"

# Largest value representable by the on-chain ``uint256`` message type
UINT256_MAX = 2**256 - 1

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# ERC-165 identifiers: supportsInterface(bytes4) and the reserved invalid id
ERC165_INTERFACE_ID = bytes.fromhex("01ffc9a7")
INVALID_INTERFACE_ID = bytes.fromhex("ffffffff")


class MessageType(IntEnum):
    """Reserved message-type conventions.

    Using ``IntEnum`` so that ``MessageType.CONNECTION_REQUEST == 0`` is True.
    These are documentation only: any ``uint256`` is a valid message type and
    nothing in the protocol enforces the meaning of these values.
    """

    CONNECTION_REQUEST = 0
    CONNECTION_RESPONSE = 1
    ENCRYPTED_TEXT = 2


def coerce_message_type(value: int) -> int:
    """Return *value* as a plain ``int`` if it is a well-typed ``uint256``.

    Values outside :class:`MessageType` are accepted unchanged.

    Raises:
        InvalidMessageTypeError: If *value* is not an integer in
            ``[0, 2**256 - 1]``.
    """
    # bool is an int subclass but never a meaningful classifier
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidMessageTypeError(
            f"Message type must be an integer, got {type(value).__name__}"
        )
    if value < 0 or value > UINT256_MAX:
        raise InvalidMessageTypeError(f"Message type out of uint256 range: {value}")
    return int(value)


def coerce_payload(value: bytes) -> bytes:
    """Return *value* as immutable ``bytes``.

    Raises:
        InvalidPayloadError: If *value* is not ``bytes``, ``bytearray`` or
            ``memoryview``.
    """
    # bytes(5) would silently become five NUL bytes
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise InvalidPayloadError(
            f"Payload must be bytes, got {type(value).__name__}"
        )
    return bytes(value)


def describe_message_type(value: int) -> str:
    """Return a human-readable label for a message type value."""
    try:
        return MessageType(value).name.lower().replace("_", "-")
    except ValueError:
        return f"custom({value})"

"""ERC-165 capability introspection, as a composable check.

Implementations answer ``supportsInterface`` by OR-ing a match against their
own identifiers with :func:`supports_erc165`; no base class is involved.
"""

from __future__ import annotations

from typing import Iterable

from sec7970.protocol.errors import InvalidInterfaceIdError
from sec7970.protocol.types import ERC165_INTERFACE_ID, INVALID_INTERFACE_ID


def normalize_interface_id(value: bytes | str | int) -> bytes:
    """Return *value* as a 4-byte interface identifier.

    Accepts 4 raw bytes, a hex string with or without ``0x`` (``"01ffc9a7"``),
    or a non-negative integer below ``2**32``.

    Raises:
        InvalidInterfaceIdError: If *value* is not a 4-byte identifier.
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, bool):
        raise InvalidInterfaceIdError("Interface id cannot be a bool")
    elif isinstance(value, int):
        if value < 0 or value > 0xFFFFFFFF:
            raise InvalidInterfaceIdError(f"Interface id out of range: {value}")
        raw = value.to_bytes(4, "big")
    elif isinstance(value, str):
        text = value.strip()
        if text.startswith(("0x", "0X")):
            text = text[2:]
        try:
            raw = bytes.fromhex(text)
        except ValueError as exc:
            raise InvalidInterfaceIdError(f"Invalid interface id: {value!r}") from exc
    else:
        raise InvalidInterfaceIdError(
            f"Invalid interface id type: {type(value).__name__}"
        )

    if len(raw) != 4:
        raise InvalidInterfaceIdError(
            f"Interface id must be 4 bytes, got {len(raw)}"
        )
    return raw


def supports_erc165(interface_id: bytes | str | int) -> bool:
    """Return True only for the ERC-165 identifier itself (``0x01ffc9a7``)."""
    return normalize_interface_id(interface_id) == ERC165_INTERFACE_ID


def supports_any(
    interface_id: bytes | str | int, own_ids: Iterable[bytes]
) -> bool:
    """Return True if *interface_id* is one of *own_ids* or ERC-165.

    ``0xffffffff`` is never supported, whatever *own_ids* contains.
    """
    interface_id = normalize_interface_id(interface_id)
    if interface_id == INVALID_INTERFACE_ID:
        return False
    return interface_id in {bytes(i) for i in own_ids} or supports_erc165(interface_id)

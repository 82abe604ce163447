"""Account address parsing.

An address is a 20-byte account identifier, represented in EIP-55
checksum form (e.g. ``0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed``).
"""

from __future__ import annotations

from eth_utils import is_address, is_hex_address, to_checksum_address

from sec7970.protocol.errors import InvalidAddressError
from sec7970.protocol.types import ZERO_ADDRESS

_ADDRESS_BYTES = 20


def parse_address(raw: str | bytes) -> str:
    """Parse an account address and return its checksum form.

    Accepts a ``0x``-prefixed hex string (any case; mixed case must carry a
    valid EIP-55 checksum) or exactly 20 raw bytes.  Only the shape is
    checked: the zero address and addresses with no account behind them
    are valid.

    Raises:
        InvalidAddressError: If *raw* is not a 20-byte address.
    """
    if isinstance(raw, (bytes, bytearray)):
        if len(raw) != _ADDRESS_BYTES:
            raise InvalidAddressError(
                f"Address must be {_ADDRESS_BYTES} bytes, got {len(raw)}"
            )
        return to_checksum_address(bytes(raw))
    if not isinstance(raw, str):
        raise InvalidAddressError(f"Invalid address type: {type(raw).__name__}")

    normalized = raw.strip()
    if not normalized.startswith("0x"):
        raise InvalidAddressError(f"Address must be 0x-prefixed: {raw!r}")
    if not is_hex_address(normalized):
        raise InvalidAddressError(f"Invalid address: {raw!r}")
    if not is_address(normalized):
        raise InvalidAddressError(f"Address checksum mismatch: {raw!r}")
    return to_checksum_address(normalized)


def is_zero_address(address: str | bytes) -> bool:
    """Return True if *address* is the all-zero address."""
    return parse_address(address) == ZERO_ADDRESS

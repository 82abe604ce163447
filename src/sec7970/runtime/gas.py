"""Gas schedule and metering for the local execution environment.

Costs follow the Ethereum yellow paper for the operations the host models:
transaction intrinsic cost, calldata bytes, and ``LOGn``.
"""

from __future__ import annotations

import logging

from sec7970.protocol.errors import OutOfGasError

logger = logging.getLogger(__name__)

G_TRANSACTION = 21000
G_TXDATA_ZERO = 4
G_TXDATA_NONZERO = 16
G_LOG = 375
G_LOGTOPIC = 375
G_LOGDATA = 8

DEFAULT_BLOCK_GAS_LIMIT = 30_000_000


def intrinsic_gas(calldata: bytes) -> int:
    """Base transaction cost plus the per-byte calldata cost."""
    zeros = calldata.count(0)
    return G_TRANSACTION + zeros * G_TXDATA_ZERO + (len(calldata) - zeros) * G_TXDATA_NONZERO


def log_gas(topic_count: int, data_length: int) -> int:
    """Cost of one ``LOGn`` with *topic_count* topics and *data_length* bytes."""
    return G_LOG + topic_count * G_LOGTOPIC + data_length * G_LOGDATA


class GasMeter:
    """Tracks gas consumed by one invocation against its limit."""

    def __init__(self, limit: int) -> None:
        if limit <= 0:
            raise ValueError(f"Gas limit must be positive, got {limit}")
        self.limit = limit
        self.used = 0

    @property
    def remaining(self) -> int:
        return self.limit - self.used

    def charge(self, amount: int, reason: str) -> None:
        """Consume *amount* gas.

        Raises:
            OutOfGasError: If *amount* exceeds the remaining gas.  All gas is
                consumed, as on-chain.
        """
        if amount > self.remaining:
            needed = self.used + amount
            self.used = self.limit
            raise OutOfGasError(
                f"Out of gas during {reason}: needed {needed}, limit {self.limit}"
            )
        self.used += amount
        logger.debug("Charged %d gas for %s (%d remaining)", amount, reason, self.remaining)

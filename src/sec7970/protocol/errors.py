"""SEC exception hierarchy.

All library-specific exceptions inherit from :class:`SECError`.  Sending a
message has no domain errors of its own; only type-level coercion and
environment-level aborts can fail.
"""

from __future__ import annotations


class SECError(Exception):
    """Base exception for all SEC errors."""


class InvalidAddressError(SECError):
    """Raised when a value is not a 20-byte account address."""


class InvalidMessageTypeError(SECError):
    """Raised when a message type is not a ``uint256`` value."""


class InvalidPayloadError(SECError):
    """Raised when a message payload is not a byte string."""


class InvalidInterfaceIdError(SECError):
    """Raised when an interface identifier is not exactly 4 bytes."""


class InvalidLogError(SECError):
    """Raised when a log entry is not a well-formed ``MessageSent`` event."""


class InvalidCalldataError(SECError):
    """Raised when calldata does not match any function of a contract ABI."""


class ContractNotFoundError(SECError):
    """Raised when no contract is deployed at the requested address."""


class InvocationAbortedError(SECError):
    """Raised when the execution environment aborts an invocation.

    No event is emitted and no state changes when this happens.  When raised
    by the host, :attr:`receipt` holds the failed transaction receipt.
    """

    def __init__(self, message: str = "", receipt=None) -> None:
        super().__init__(message)
        self.receipt = receipt


class OutOfGasError(InvocationAbortedError):
    """Raised when an invocation exhausts its gas limit."""


class StaticCallViolationError(InvocationAbortedError):
    """Raised when a read-only call attempts to emit a log."""

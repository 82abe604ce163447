"""SEC Protocol -- stateless encrypted communication wire library.

Public API re-exports for ``sec7970.protocol``.
"""

from sec7970.protocol.types import (
    REFERENCE_NAME,
    UINT256_MAX,
    ZERO_ADDRESS,
    ERC165_INTERFACE_ID,
    INVALID_INTERFACE_ID,
    MessageType,
    coerce_message_type,
    coerce_payload,
    describe_message_type,
)

from sec7970.protocol.errors import (
    SECError,
    InvalidAddressError,
    InvalidMessageTypeError,
    InvalidPayloadError,
    InvalidInterfaceIdError,
    InvalidLogError,
    InvalidCalldataError,
    ContractNotFoundError,
    InvocationAbortedError,
    OutOfGasError,
    StaticCallViolationError,
)

from sec7970.protocol.address import parse_address, is_zero_address

from sec7970.protocol.abi import (
    FunctionSpec,
    EventSpec,
    InterfaceSpec,
    Param,
    IERC165_SPEC,
    IERC7970_SPEC,
    REFERENCE_SEC_SPEC,
    MESSAGE_SENT_EVENT,
    function_selector,
    event_topic,
    xor_selectors,
    to_abi_json,
    encode_call,
    decode_call,
    encode_return,
    decode_return,
)

from sec7970.protocol.introspection import (
    normalize_interface_id,
    supports_erc165,
    supports_any,
)

from sec7970.protocol.events import (
    MESSAGE_SENT_TOPIC,
    MessageSent,
    LogEntry,
    encode_message_sent,
    decode_message_sent,
    message_filter_topics,
)

__all__ = [
    # Types
    "REFERENCE_NAME",
    "UINT256_MAX",
    "ZERO_ADDRESS",
    "ERC165_INTERFACE_ID",
    "INVALID_INTERFACE_ID",
    "MessageType",
    "coerce_message_type",
    "coerce_payload",
    "describe_message_type",
    # Errors
    "SECError",
    "InvalidAddressError",
    "InvalidMessageTypeError",
    "InvalidPayloadError",
    "InvalidInterfaceIdError",
    "InvalidLogError",
    "InvalidCalldataError",
    "ContractNotFoundError",
    "InvocationAbortedError",
    "OutOfGasError",
    "StaticCallViolationError",
    # Address
    "parse_address",
    "is_zero_address",
    # ABI
    "FunctionSpec",
    "EventSpec",
    "InterfaceSpec",
    "Param",
    "IERC165_SPEC",
    "IERC7970_SPEC",
    "REFERENCE_SEC_SPEC",
    "MESSAGE_SENT_EVENT",
    "function_selector",
    "event_topic",
    "xor_selectors",
    "to_abi_json",
    "encode_call",
    "decode_call",
    "encode_return",
    "decode_return",
    # Introspection
    "normalize_interface_id",
    "supports_erc165",
    "supports_any",
    # Events
    "MESSAGE_SENT_TOPIC",
    "MessageSent",
    "LogEntry",
    "encode_message_sent",
    "decode_message_sent",
    "message_filter_topics",
]

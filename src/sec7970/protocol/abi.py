"""Selector derivation and ABI descriptions for SEC interfaces.

Function selectors, event topics and ERC-165 interface identifiers follow
the Ethereum convention bit-for-bit, so identifiers computed here match
those produced by Solidity's ``type(I).interfaceId`` and ``I.f.selector``.

Every hash delegates to eth-utils (keccak-256); every encoding delegates to
eth-abi.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import reduce
from typing import Any, Iterable, Optional

import eth_abi
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import event_signature_to_log_topic, function_signature_to_4byte_selector

from sec7970.protocol.errors import InvalidCalldataError


# ---------------------------------------------------------------------------
# Hash-derived identifiers
# ---------------------------------------------------------------------------

def function_selector(signature: str) -> bytes:
    """Return the 4-byte selector of a canonical function signature.

    >>> function_selector("name()").hex()
    '06fdde03'
    """
    return function_signature_to_4byte_selector(signature)


def event_topic(signature: str) -> bytes:
    """Return the 32-byte topic0 of a canonical event signature."""
    return event_signature_to_log_topic(signature)


def xor_selectors(selectors: Iterable[bytes]) -> bytes:
    """XOR 4-byte selectors together into an ERC-165 interface identifier.

    An empty set yields ``0x00000000``.
    """
    value = reduce(
        lambda acc, sel: acc ^ int.from_bytes(sel, "big"), selectors, 0
    )
    return value.to_bytes(4, "big")


# ---------------------------------------------------------------------------
# Interface descriptions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Param:
    """A named, typed ABI parameter."""

    name: str
    type: str
    indexed: bool = False

    def to_abi(self, *, event: bool = False) -> dict:
        d: dict = {"name": self.name, "type": self.type}
        if event:
            d["indexed"] = self.indexed
        return d


@dataclass(frozen=True)
class FunctionSpec:
    """An ABI function: name, inputs, outputs, state mutability."""

    name: str
    inputs: tuple[Param, ...] = ()
    outputs: tuple[Param, ...] = ()
    state_mutability: str = "nonpayable"

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.type for p in self.inputs)})"

    @property
    def selector(self) -> bytes:
        return function_selector(self.signature)

    @property
    def input_types(self) -> list[str]:
        return [p.type for p in self.inputs]

    @property
    def output_types(self) -> list[str]:
        return [p.type for p in self.outputs]

    @property
    def read_only(self) -> bool:
        """True for ``view`` and ``pure`` functions."""
        return self.state_mutability in ("view", "pure")

    def to_abi(self) -> dict:
        return {
            "type": "function",
            "name": self.name,
            "inputs": [p.to_abi() for p in self.inputs],
            "outputs": [p.to_abi() for p in self.outputs],
            "stateMutability": self.state_mutability,
        }


@dataclass(frozen=True)
class EventSpec:
    """An ABI event; ``indexed`` parameters become log topics."""

    name: str
    inputs: tuple[Param, ...] = ()
    anonymous: bool = False

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.type for p in self.inputs)})"

    @property
    def topic(self) -> bytes:
        return event_topic(self.signature)

    @property
    def indexed_inputs(self) -> tuple[Param, ...]:
        return tuple(p for p in self.inputs if p.indexed)

    @property
    def data_inputs(self) -> tuple[Param, ...]:
        return tuple(p for p in self.inputs if not p.indexed)

    def to_abi(self) -> dict:
        return {
            "type": "event",
            "name": self.name,
            "inputs": [p.to_abi(event=True) for p in self.inputs],
            "anonymous": self.anonymous,
        }


@dataclass(frozen=True)
class InterfaceSpec:
    """A set of functions and events declared by one interface.

    ``bases`` lists inherited interfaces.  Following the ERC-165 rule,
    :attr:`interface_id` covers only the functions declared here, never
    inherited ones; :meth:`all_functions` covers both.
    """

    name: str
    functions: tuple[FunctionSpec, ...] = ()
    events: tuple[EventSpec, ...] = ()
    bases: tuple["InterfaceSpec", ...] = field(default=())

    @property
    def interface_id(self) -> bytes:
        return xor_selectors(fn.selector for fn in self.functions)

    def all_functions(self) -> tuple[FunctionSpec, ...]:
        seen: dict[str, FunctionSpec] = {}
        for base in self.bases:
            for fn in base.all_functions():
                seen.setdefault(fn.signature, fn)
        for fn in self.functions:
            seen[fn.signature] = fn
        return tuple(seen.values())

    def all_events(self) -> tuple[EventSpec, ...]:
        seen: dict[str, EventSpec] = {}
        for base in self.bases:
            for ev in base.all_events():
                seen.setdefault(ev.signature, ev)
        for ev in self.events:
            seen[ev.signature] = ev
        return tuple(seen.values())

    def function(self, name: str) -> FunctionSpec:
        """Look up a function (own or inherited) by name.

        Raises:
            InvalidCalldataError: If no function has that name.
        """
        for fn in self.all_functions():
            if fn.name == name:
                return fn
        raise InvalidCalldataError(f"{self.name} has no function {name!r}")

    def function_by_selector(self, selector: bytes) -> FunctionSpec:
        """Look up a function (own or inherited) by its 4-byte selector.

        Raises:
            InvalidCalldataError: If no function matches.
        """
        for fn in self.all_functions():
            if fn.selector == selector:
                return fn
        raise InvalidCalldataError(
            f"{self.name} has no function with selector 0x{bytes(selector).hex()}"
        )


IERC165_SPEC = InterfaceSpec(
    name="IERC165",
    functions=(
        FunctionSpec(
            name="supportsInterface",
            inputs=(Param("interfaceId", "bytes4"),),
            outputs=(Param("", "bool"),),
            state_mutability="view",
        ),
    ),
)

MESSAGE_SENT_EVENT = EventSpec(
    name="MessageSent",
    inputs=(
        Param("from", "address", indexed=True),
        Param("to", "address", indexed=True),
        Param("messageType", "uint256", indexed=True),
        Param("data", "bytes"),
    ),
)

IERC7970_SPEC = InterfaceSpec(
    name="IERC7970",
    functions=(
        FunctionSpec(
            name="name",
            outputs=(Param("", "string"),),
            state_mutability="view",
        ),
        FunctionSpec(
            name="sendMessage",
            inputs=(
                Param("to", "address"),
                Param("messageType", "uint256"),
                Param("data", "bytes"),
            ),
        ),
    ),
    events=(MESSAGE_SENT_EVENT,),
    bases=(IERC165_SPEC,),
)

REFERENCE_SEC_SPEC = InterfaceSpec(
    name="ReferenceSEC",
    functions=(
        FunctionSpec(
            name="getInterfaceId",
            outputs=(Param("", "bytes4"),),
            state_mutability="pure",
        ),
        FunctionSpec(
            name="isIERC7970",
            outputs=(Param("", "bool"),),
            state_mutability="pure",
        ),
    ),
    bases=(IERC7970_SPEC,),
)


def to_abi_json(*specs: InterfaceSpec) -> list[dict]:
    """Build a web3-compatible JSON ABI covering *specs* (bases included)."""
    functions: dict[str, FunctionSpec] = {}
    events: dict[str, EventSpec] = {}
    for spec in specs:
        for fn in spec.all_functions():
            functions.setdefault(fn.signature, fn)
        for ev in spec.all_events():
            events.setdefault(ev.signature, ev)
    return [fn.to_abi() for fn in functions.values()] + [
        ev.to_abi() for ev in events.values()
    ]


# ---------------------------------------------------------------------------
# Calldata and return-data codec
# ---------------------------------------------------------------------------

def encode_call(spec: InterfaceSpec, fn_name: str, args: Iterable[Any] = ()) -> bytes:
    """ABI-encode a call to *fn_name*: selector followed by arguments.

    Raises:
        InvalidCalldataError: If the function is unknown or the arguments do
            not match its input types.
    """
    fn = spec.function(fn_name)
    args = tuple(args)
    if len(args) != len(fn.inputs):
        raise InvalidCalldataError(
            f"{fn.signature} takes {len(fn.inputs)} arguments, got {len(args)}"
        )
    try:
        return fn.selector + eth_abi.encode(fn.input_types, args)
    except (EncodingError, TypeError, ValueError) as exc:
        raise InvalidCalldataError(f"Cannot encode {fn.signature}: {exc}") from exc


def decode_call(spec: InterfaceSpec, calldata: bytes) -> tuple[FunctionSpec, tuple]:
    """Split *calldata* into the matching function and its decoded arguments.

    Raises:
        InvalidCalldataError: On a short payload, unknown selector, or
            undecodable arguments.
    """
    calldata = bytes(calldata)
    if len(calldata) < 4:
        raise InvalidCalldataError("Calldata shorter than a selector")
    fn = spec.function_by_selector(calldata[:4])
    try:
        args = eth_abi.decode(fn.input_types, calldata[4:])
    except (DecodingError, ValueError) as exc:
        raise InvalidCalldataError(f"Cannot decode {fn.signature}: {exc}") from exc
    return fn, tuple(args)


def encode_return(fn: FunctionSpec, value: Any) -> bytes:
    """ABI-encode the return value of *fn* (empty for no outputs)."""
    if not fn.outputs:
        return b""
    values = value if len(fn.outputs) > 1 else (value,)
    return eth_abi.encode(fn.output_types, values)


def decode_return(fn: FunctionSpec, data: bytes) -> Optional[Any]:
    """Decode return data of *fn*; a single output is unwrapped."""
    if not fn.outputs:
        return None
    values = eth_abi.decode(fn.output_types, bytes(data))
    return values[0] if len(values) == 1 else values

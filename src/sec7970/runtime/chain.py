"""LocalChain -- in-process execution environment for SEC contracts.

Models the parts of an Ethereum node the protocol relies on:

  - caller identity injected per invocation (``msg.sender``)
  - all-or-nothing invocations: logs are committed only on success
  - gas metering, with out-of-gas as the environment-level abort
  - a global, append-only log ordered by processing order
  - ``eth_call``-style read-only calls that may not emit

Single-threaded: one transaction per block, processed in call order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from eth_utils import keccak, to_bytes

from sec7970.contracts.interface import IERC7970
from sec7970.protocol.abi import decode_call, decode_return, encode_call, encode_return
from sec7970.protocol.address import parse_address
from sec7970.protocol.errors import (
    ContractNotFoundError,
    InvocationAbortedError,
    OutOfGasError,
)
from sec7970.protocol.events import LogEntry
from sec7970.protocol.types import ZERO_ADDRESS
from sec7970.runtime.context import CallContext
from sec7970.runtime.gas import DEFAULT_BLOCK_GAS_LIMIT, GasMeter, intrinsic_gas

logger = logging.getLogger(__name__)

DEFAULT_CHAIN_ID = 31337
DEFAULT_DEPLOYER = "0x00000000000000000000000000000000000de910"

LogCallback = Callable[[LogEntry], Any]


@dataclass(frozen=True)
class Receipt:
    """Outcome of one transaction.  ``status`` is 1 on success, 0 on abort."""

    transaction_hash: bytes
    block_number: int
    sender: str
    to: str
    status: int
    gas_used: int
    logs: tuple[LogEntry, ...] = ()
    return_data: bytes = b""
    error: Optional[str] = None
    out_of_gas: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    def raise_for_status(self) -> None:
        """Raise if the transaction was aborted.

        Raises:
            OutOfGasError: If the transaction ran out of gas.
            InvocationAbortedError: For any other abort.
        """
        if self.succeeded:
            return
        exc_type = OutOfGasError if self.out_of_gas else InvocationAbortedError
        raise exc_type(self.error or "Invocation aborted", receipt=self)


@dataclass
class _Subscription:
    callback: LogCallback
    address: Optional[str] = None
    topics: Optional[list] = None


def _topic_bytes(value: Any) -> bytes:
    return to_bytes(hexstr=value) if isinstance(value, str) else bytes(value)


def _normalize_topics(topics: Optional[Sequence]) -> Optional[list]:
    if topics is None:
        return None
    normalized: list = []
    for position in topics:
        if position is None:
            normalized.append(None)
        elif isinstance(position, (list, tuple)):
            normalized.append({_topic_bytes(t) for t in position})
        else:
            normalized.append({_topic_bytes(position)})
    return normalized


def _log_matches(log: LogEntry, address: Optional[str], topics: Optional[list]) -> bool:
    if address is not None and log.address != address:
        return False
    if topics is None:
        return True
    if len(log.topics) < len(topics):
        return False
    return all(
        wanted is None or log.topics[i] in wanted for i, wanted in enumerate(topics)
    )


class LocalChain:
    """A single-threaded host that executes contracts and keeps the log.

    Usage::

        chain = LocalChain()
        sec = chain.deploy(ReferenceSEC())
        receipt = chain.transact(alice, sec, "sendMessage", bob, 0, b"")
        chain.get_logs(address=sec)
    """

    def __init__(
        self,
        chain_id: int = DEFAULT_CHAIN_ID,
        block_gas_limit: int = DEFAULT_BLOCK_GAS_LIMIT,
    ) -> None:
        self.chain_id = chain_id
        self.block_gas_limit = block_gas_limit
        self._contracts: dict[str, IERC7970] = {}
        self._nonces: dict[str, int] = {}
        self._logs: list[LogEntry] = []
        self._subscriptions: list[_Subscription] = []
        self._block_number = 0

    # -----------------------------------------------------------------------
    # Accounts and deployment
    # -----------------------------------------------------------------------

    @property
    def block_number(self) -> int:
        return self._block_number

    def nonce(self, address: str) -> int:
        return self._nonces.get(parse_address(address), 0)

    def _next_nonce(self, address: str) -> int:
        nonce = self._nonces.get(address, 0)
        self._nonces[address] = nonce + 1
        return nonce

    def deploy(self, contract: IERC7970, deployer: str = DEFAULT_DEPLOYER) -> str:
        """Deploy *contract* and return its address.

        The address is derived from the deployer and its nonce, so
        deployments are deterministic for a given sequence of calls.
        """
        deployer = parse_address(deployer)
        nonce = self._next_nonce(deployer)
        digest = keccak(bytes.fromhex(deployer[2:]) + nonce.to_bytes(32, "big"))
        address = parse_address(digest[-20:])
        self._contracts[address] = contract
        logger.debug("Deployed %s at %s", type(contract).__name__, address)
        return address

    def contract_at(self, address: str) -> IERC7970:
        """Return the contract deployed at *address*.

        Raises:
            ContractNotFoundError: If nothing is deployed there.
        """
        address = parse_address(address)
        try:
            return self._contracts[address]
        except KeyError:
            raise ContractNotFoundError(f"No contract at {address}") from None

    # -----------------------------------------------------------------------
    # Transactions
    # -----------------------------------------------------------------------

    def send_transaction(
        self,
        sender: str,
        to: str,
        calldata: bytes,
        gas_limit: Optional[int] = None,
    ) -> Receipt:
        """Execute raw *calldata* against the contract at *to*.

        The transaction always produces a receipt.  Logs emitted during
        execution are committed only if it completes; an abort (out of gas,
        unknown selector, undecodable arguments, failure inside the
        contract) yields ``status == 0`` and no logs.
        """
        sender = parse_address(sender)
        to = parse_address(to)
        contract = self.contract_at(to)
        calldata = bytes(calldata)

        nonce = self._next_nonce(sender)
        self._block_number += 1
        block_number = self._block_number
        tx_hash = keccak(
            self.chain_id.to_bytes(32, "big")
            + bytes.fromhex(sender[2:])
            + nonce.to_bytes(32, "big")
            + calldata
        )

        meter = GasMeter(gas_limit if gas_limit is not None else self.block_gas_limit)
        ctx = CallContext(
            sender=sender,
            contract_address=to,
            block_number=block_number,
            _meter=meter,
        )

        try:
            meter.charge(intrinsic_gas(calldata), "intrinsic")
            fn, args = decode_call(contract.SPEC, calldata)
            result = contract.dispatch(ctx, fn, args)
            return_data = encode_return(fn, result)
        except OutOfGasError as exc:
            logger.warning("Transaction 0x%s aborted: %s", tx_hash.hex(), exc)
            return Receipt(
                transaction_hash=tx_hash,
                block_number=block_number,
                sender=sender,
                to=to,
                status=0,
                gas_used=meter.used,
                error=str(exc),
                out_of_gas=True,
            )
        except Exception as exc:
            # Any failure inside the invocation reverts it as a whole
            logger.warning("Transaction 0x%s reverted: %s", tx_hash.hex(), exc)
            return Receipt(
                transaction_hash=tx_hash,
                block_number=block_number,
                sender=sender,
                to=to,
                status=0,
                gas_used=meter.used,
                error=str(exc) or type(exc).__name__,
            )

        logs = tuple(
            LogEntry(
                address=to,
                topics=topics,
                data=data,
                block_number=block_number,
                transaction_index=0,
                log_index=i,
                transaction_hash=tx_hash,
            )
            for i, (topics, data) in enumerate(ctx.pending_logs)
        )
        self._logs.extend(logs)
        logger.debug(
            "Transaction 0x%s from %s: %s in block %d, %d log(s), %d gas",
            tx_hash.hex(),
            sender,
            fn.name,
            block_number,
            len(logs),
            meter.used,
        )
        self._notify(logs)

        return Receipt(
            transaction_hash=tx_hash,
            block_number=block_number,
            sender=sender,
            to=to,
            status=1,
            gas_used=meter.used,
            logs=logs,
            return_data=return_data,
        )

    def transact(
        self,
        sender: str,
        to: str,
        fn_name: str,
        *args: Any,
        gas_limit: Optional[int] = None,
    ) -> Receipt:
        """ABI-encode a call to *fn_name* and send it as a transaction.

        Raises:
            InvalidCalldataError: If the arguments cannot be encoded (the
                transaction is never sent).
        """
        contract = self.contract_at(to)
        calldata = encode_call(contract.SPEC, fn_name, args)
        return self.send_transaction(sender, to, calldata, gas_limit=gas_limit)

    def call(self, to: str, fn_name: str, *args: Any, sender: str = ZERO_ADDRESS) -> Any:
        """Execute a read-only call and return its decoded result.

        Nothing is committed.  Emitting a log aborts the call.

        Raises:
            ContractNotFoundError: If nothing is deployed at *to*.
            InvocationAbortedError: If the call fails, including an unknown
                function or arguments that cannot be encoded.
        """
        to = parse_address(to)
        contract = self.contract_at(to)
        ctx = CallContext(
            sender=parse_address(sender),
            contract_address=to,
            block_number=self._block_number,
            static=True,
            _meter=GasMeter(self.block_gas_limit),
        )
        try:
            calldata = encode_call(contract.SPEC, fn_name, args)
            fn, decoded = decode_call(contract.SPEC, calldata)
            result = contract.dispatch(ctx, fn, decoded)
            return decode_return(fn, encode_return(fn, result))
        except InvocationAbortedError:
            raise
        except Exception as exc:
            raise InvocationAbortedError(f"Call to {fn_name} failed: {exc}") from exc

    # -----------------------------------------------------------------------
    # Log access
    # -----------------------------------------------------------------------

    def get_logs(
        self,
        address: Optional[str] = None,
        topics: Optional[Sequence] = None,
        from_block: int = 0,
        to_block: Optional[int] = None,
    ) -> list[LogEntry]:
        """Return committed logs matching an ``eth_getLogs``-style filter.

        *topics* positions may be ``None`` (any), a single 32-byte value, or
        a list of alternatives.  Logs come back in emission order.
        """
        address = parse_address(address) if address is not None else None
        wanted = _normalize_topics(topics)
        last = self._block_number if to_block is None else to_block
        return [
            log
            for log in self._logs
            if from_block <= log.block_number <= last
            and _log_matches(log, address, wanted)
        ]

    def subscribe(
        self,
        callback: LogCallback,
        address: Optional[str] = None,
        topics: Optional[Sequence] = None,
    ) -> Callable[[], None]:
        """Call *callback* with each newly committed matching log.

        Returns:
            A function that cancels the subscription.
        """
        sub = _Subscription(
            callback=callback,
            address=parse_address(address) if address is not None else None,
            topics=_normalize_topics(topics),
        )
        self._subscriptions.append(sub)

        def unsubscribe() -> None:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

        return unsubscribe

    def _notify(self, logs: Sequence[LogEntry]) -> None:
        for log in logs:
            for sub in list(self._subscriptions):
                if not _log_matches(log, sub.address, sub.topics):
                    continue
                try:
                    sub.callback(log)
                except Exception:
                    logger.exception("Log subscriber %r failed", sub.callback)

    # -----------------------------------------------------------------------
    # State inspection
    # -----------------------------------------------------------------------

    def snapshot(self, address: str) -> dict:
        """Capture all queryable state of the contract at *address*.

        Includes the result of every argument-free read-only function and
        any instance attributes the contract object carries.
        """
        contract = self.contract_at(address)
        views = {
            fn.name: self.call(address, fn.name)
            for fn in contract.SPEC.all_functions()
            if fn.read_only and not fn.inputs
        }
        return {
            "views": views,
            "attributes": dict(getattr(contract, "__dict__", {})),
        }

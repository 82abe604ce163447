"""Per-invocation call context injected by the execution environment.

The caller identity lives here and only here: contracts read
``ctx.sender`` and have no way to supply their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sec7970.protocol.errors import StaticCallViolationError
from sec7970.protocol.events import MessageSent, encode_message_sent
from sec7970.runtime.gas import GasMeter, log_gas


@dataclass(frozen=True)
class CallContext:
    """Environment of one invocation.

    Created by :class:`~sec7970.runtime.chain.LocalChain` only.  Emitted
    events go to a pending journal that the host commits if, and only if,
    the invocation completes.
    """

    sender: str
    contract_address: str
    block_number: int
    static: bool = False
    _meter: GasMeter = field(default=None, repr=False, compare=False)
    _journal: list = field(default_factory=list, repr=False, compare=False)

    def emit(self, event: MessageSent) -> None:
        """Record *event* as a pending log of this invocation.

        Raises:
            StaticCallViolationError: In a read-only call.
            OutOfGasError: If the ``LOG`` cost exceeds the remaining gas.
        """
        if self.static:
            raise StaticCallViolationError("Log emission in a read-only call")
        topics, data = encode_message_sent(event)
        if self._meter is not None:
            # topic0 is charged as one of the LOG4 topics
            self._meter.charge(log_gas(len(topics), len(data)), "LOG")
        self._journal.append((topics, data))

    @property
    def pending_logs(self) -> tuple:
        """``(topics, data)`` pairs emitted so far, not yet committed."""
        return tuple(self._journal)

"""``IERC7970`` -- the capability set a conforming implementation exposes.

Pure declaration: a name, a message-send operation, the ``MessageSent``
event (see :data:`sec7970.protocol.abi.MESSAGE_SENT_EVENT`) and ERC-165
introspection.  Implementations hold no state.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any

from sec7970.protocol.abi import IERC7970_SPEC, FunctionSpec, InterfaceSpec
from sec7970.protocol.errors import InvalidCalldataError

if TYPE_CHECKING:
    from sec7970.runtime.context import CallContext

IERC7970_INTERFACE_ID = IERC7970_SPEC.interface_id


class IERC7970(abc.ABC):
    """Stateless encrypted communication interface.

    Subclasses must keep ``__slots__ = ()`` so that no instance state can
    exist.  ``SPEC`` is the ABI the host decodes calldata against and
    ``METHODS`` maps ABI function names to Python method names.
    """

    __slots__ = ()

    SPEC: InterfaceSpec = IERC7970_SPEC
    METHODS: dict[str, str] = {
        "name": "name",
        "sendMessage": "send_message",
        "supportsInterface": "supports_interface",
    }

    @abc.abstractmethod
    def name(self) -> str:
        """Return a stable, non-empty identifying name."""

    @abc.abstractmethod
    def send_message(
        self, ctx: CallContext, to: str, message_type: int, data: bytes
    ) -> None:
        """Emit one ``MessageSent`` event attributed to ``ctx.sender``.

        Must accept any well-typed input without inspecting *to*,
        *message_type* or *data*.
        """

    @abc.abstractmethod
    def supports_interface(self, interface_id: bytes) -> bool:
        """ERC-165: return True if this component implements *interface_id*."""

    def dispatch(self, ctx: CallContext, fn: FunctionSpec, args: tuple) -> Any:
        """Invoke the Python method bound to ABI function *fn*.

        Read-only functions are called without the context; state-changing
        ones receive it first.
        """
        method_name = self.METHODS.get(fn.name)
        if method_name is None:
            raise InvalidCalldataError(f"{type(self).__name__} does not implement {fn.signature}")
        method = getattr(self, method_name)
        if fn.read_only:
            return method(*args)
        return method(ctx, *args)

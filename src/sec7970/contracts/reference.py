"""``ReferenceSEC`` -- reference implementation of ``IERC7970``."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sec7970.contracts.interface import IERC7970, IERC7970_INTERFACE_ID
from sec7970.protocol.abi import REFERENCE_SEC_SPEC
from sec7970.protocol.events import MessageSent
from sec7970.protocol.introspection import supports_any
from sec7970.protocol.types import REFERENCE_NAME

if TYPE_CHECKING:
    from sec7970.runtime.context import CallContext


class ReferenceSEC(IERC7970):
    """Re-emits every send request as a ``MessageSent`` log.

    Message types 0 and 1 are conventionally connection request and
    response, 2 is encrypted text.  None of this is enforced here: every
    ``to``, ``message_type`` and ``data`` is accepted as-is.
    """

    __slots__ = ()

    SPEC = REFERENCE_SEC_SPEC
    METHODS = {
        **IERC7970.METHODS,
        "getInterfaceId": "get_interface_id",
        "isIERC7970": "is_ierc7970",
    }

    def name(self) -> str:
        return REFERENCE_NAME

    def send_message(
        self, ctx: CallContext, to: str, message_type: int, data: bytes
    ) -> None:
        ctx.emit(
            MessageSent(
                from_address=ctx.sender,
                to_address=to,
                message_type=message_type,
                data=data,
            )
        )

    def supports_interface(self, interface_id: bytes) -> bool:
        return supports_any(interface_id, (IERC7970_INTERFACE_ID,))

    def get_interface_id(self) -> bytes:
        """Return the ERC-165 identifier of ``IERC7970``."""
        return IERC7970_INTERFACE_ID

    def is_ierc7970(self) -> bool:
        return True

"""SEC 7970 -- stateless encrypted communication signalling.

Top-level convenience re-exports::

    from sec7970 import LocalChain, ReferenceSEC
    from sec7970.protocol import MessageType, decode_message_sent  # wire format
"""

__version__ = "0.1.0"

from sec7970.contracts import IERC7970, ReferenceSEC
from sec7970.runtime import CallContext, LocalChain, Receipt

__all__ = [
    "__version__",
    "IERC7970",
    "ReferenceSEC",
    "CallContext",
    "LocalChain",
    "Receipt",
]

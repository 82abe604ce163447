"""Local execution environment: call contexts, gas, and the log."""

from sec7970.runtime.chain import DEFAULT_CHAIN_ID, LocalChain, Receipt
from sec7970.runtime.context import CallContext
from sec7970.runtime.gas import GasMeter, intrinsic_gas, log_gas

__all__ = [
    "DEFAULT_CHAIN_ID",
    "LocalChain",
    "Receipt",
    "CallContext",
    "GasMeter",
    "intrinsic_gas",
    "log_gas",
]

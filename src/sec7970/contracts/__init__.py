"""SEC contracts: the ``IERC7970`` interface and its reference implementation."""

from sec7970.contracts.interface import IERC7970, IERC7970_INTERFACE_ID
from sec7970.contracts.reference import ReferenceSEC

__all__ = ["IERC7970", "IERC7970_INTERFACE_ID", "ReferenceSEC"]

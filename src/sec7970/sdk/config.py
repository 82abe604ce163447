"""SDK configuration via dataclass (no pydantic -- instant construction)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from sec7970.protocol.address import parse_address

logger = logging.getLogger(__name__)

_DEFAULT_RPC_URL = "http://127.0.0.1:8545"
_DEFAULT_CHAIN_ID = 31337
_DEFAULT_POLL_INTERVAL = 2.0


@dataclass
class SDKConfig:
    """Configuration for an off-chain SEC client or listener.

    ``rpc_url``, ``contract_address`` and ``chain_id`` can be overridden via
    environment variables (``SEC_RPC_URL``, ``SEC_CONTRACT_ADDRESS``,
    ``SEC_CHAIN_ID``) or the ``[chain]`` table of ``config.toml`` in
    ``data_dir``.

    Priority (highest wins): constructor arg > env var > config.toml > default.
    """

    rpc_url: Optional[str] = None
    contract_address: Optional[str] = None
    chain_id: Optional[int] = None
    from_block: Optional[int] = None
    poll_interval: Optional[float] = None
    data_dir: Path | str | None = None

    def __post_init__(self) -> None:
        # SEC_HOME env var overrides ~/.sec7970 (useful for testing / isolation).
        if self.data_dir is None:
            sec_home = os.getenv("SEC_HOME")
            self.data_dir = Path(sec_home) if sec_home else Path.home() / ".sec7970"
        else:
            self.data_dir = Path(self.data_dir)

        file_values = self._load_config_file(Path(self.data_dir) / "config.toml")

        if self.rpc_url is None:
            self.rpc_url = (
                os.getenv("SEC_RPC_URL") or file_values.get("rpc_url") or _DEFAULT_RPC_URL
            )

        if self.contract_address is None:
            self.contract_address = (
                os.getenv("SEC_CONTRACT_ADDRESS") or file_values.get("contract_address")
            )
        if self.contract_address is not None:
            self.contract_address = parse_address(self.contract_address)

        if self.chain_id is None:
            raw_chain_id = os.getenv("SEC_CHAIN_ID") or file_values.get("chain_id")
            self.chain_id = _DEFAULT_CHAIN_ID if raw_chain_id is None else raw_chain_id
        try:
            self.chain_id = int(self.chain_id)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid chain_id {self.chain_id!r}") from None
        if self.chain_id <= 0:
            raise ValueError(f"chain_id must be positive, got {self.chain_id}")

        if self.from_block is None:
            self.from_block = int(file_values.get("from_block", 0))
        if self.from_block < 0:
            raise ValueError(f"from_block must be >= 0, got {self.from_block}")

        if self.poll_interval is None:
            self.poll_interval = float(
                file_values.get("poll_interval", _DEFAULT_POLL_INTERVAL)
            )
        if self.poll_interval <= 0:
            raise ValueError(
                f"poll_interval must be positive, got {self.poll_interval}"
            )

    @staticmethod
    def _load_config_file(path: Path) -> dict[str, Any]:
        """Load the ``[chain]`` table of an optional config.toml."""
        if not path.exists():
            return {}
        try:
            import tomllib
        except ModuleNotFoundError:
            import tomli as tomllib  # type: ignore[no-redef]  # Python 3.10 fallback

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError):
            logger.warning("Failed to load config file %s", path, exc_info=True)
            return {}

        return data.get("chain", {})

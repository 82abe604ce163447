"""Shared test fixtures for SEC tests."""

from __future__ import annotations

import pytest

from sec7970.contracts.reference import ReferenceSEC
from sec7970.protocol.address import parse_address
from sec7970.runtime.chain import LocalChain


@pytest.fixture(autouse=True)
def sec_home(tmp_path, monkeypatch):
    """Isolate SDK configuration from the host environment."""
    home = tmp_path / "sec_home"
    home.mkdir()
    monkeypatch.setenv("SEC_HOME", str(home))
    for var in ("SEC_RPC_URL", "SEC_CONTRACT_ADDRESS", "SEC_CHAIN_ID"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture()
def alice() -> str:
    return parse_address("0x" + "a1" * 20)


@pytest.fixture()
def bob() -> str:
    return parse_address("0x" + "b0" * 20)


@pytest.fixture()
def carol() -> str:
    return parse_address("0x" + "c4" * 20)


@pytest.fixture()
def chain() -> LocalChain:
    return LocalChain()


@pytest.fixture()
def sec_address(chain) -> str:
    """Address of a ReferenceSEC deployed on the local chain."""
    return chain.deploy(ReferenceSEC())

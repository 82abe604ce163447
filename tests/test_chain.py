"""Tests for sec7970.runtime.chain (LocalChain execution environment)."""

from __future__ import annotations

import logging

import pytest

from sec7970.contracts.reference import ReferenceSEC
from sec7970.protocol.abi import REFERENCE_SEC_SPEC, encode_call
from sec7970.protocol.address import parse_address
from sec7970.protocol.errors import (
    ContractNotFoundError,
    InvalidCalldataError,
    InvocationAbortedError,
    OutOfGasError,
    StaticCallViolationError,
)
from sec7970.protocol.events import (
    MESSAGE_SENT_TOPIC,
    MessageSent,
    decode_message_sent,
    encode_message_sent,
    message_filter_topics,
)
from sec7970.protocol.types import UINT256_MAX, ZERO_ADDRESS, MessageType
from sec7970.runtime.chain import LocalChain
from sec7970.runtime.gas import intrinsic_gas, log_gas


def _send(chain, sender, sec_address, to, message_type=2, data=b"", **kwargs):
    return chain.transact(sender, sec_address, "sendMessage", to, message_type, data, **kwargs)


# ---------------------------------------------------------------------------
# Deployment
# ---------------------------------------------------------------------------


class TestDeploy:
    def test_returns_checksum_address(self, chain):
        address = chain.deploy(ReferenceSEC())
        assert len(address) == 42
        assert parse_address(address.lower()) == address

    def test_contract_at(self, chain):
        sec = ReferenceSEC()
        address = chain.deploy(sec)
        assert chain.contract_at(address) is sec

    def test_distinct_addresses(self, chain):
        assert chain.deploy(ReferenceSEC()) != chain.deploy(ReferenceSEC())

    def test_deterministic(self):
        assert LocalChain().deploy(ReferenceSEC()) == LocalChain().deploy(ReferenceSEC())

    def test_unknown_address(self, chain, bob):
        with pytest.raises(ContractNotFoundError):
            chain.contract_at(bob)


# ---------------------------------------------------------------------------
# Sending messages
# ---------------------------------------------------------------------------


class TestSendMessage:
    def test_single_event(self, chain, sec_address, alice, bob):
        receipt = _send(chain, alice, sec_address, bob, 2, b"ciphertext")
        assert receipt.succeeded
        assert len(receipt.logs) == 1
        assert decode_message_sent(receipt.logs[0]) == MessageSent(alice, bob, 2, b"ciphertext")

    def test_log_attributed_to_contract(self, chain, sec_address, alice, bob):
        receipt = _send(chain, alice, sec_address, bob)
        assert receipt.logs[0].address == sec_address
        assert receipt.logs[0].transaction_hash == receipt.transaction_hash

    def test_from_follows_transaction_sender(self, chain, sec_address, alice, bob, carol):
        # payload naming another account changes nothing
        receipt = _send(chain, carol, sec_address, bob, 2, bytes.fromhex(alice[2:]))
        assert decode_message_sent(receipt.logs[0]).from_address == carol

    def test_send_to_self(self, chain, sec_address, alice):
        receipt = _send(chain, alice, sec_address, alice)
        assert receipt.succeeded
        assert decode_message_sent(receipt.logs[0]).to_address == alice

    def test_send_to_zero_address(self, chain, sec_address, alice):
        receipt = _send(chain, alice, sec_address, ZERO_ADDRESS)
        assert receipt.succeeded
        assert decode_message_sent(receipt.logs[0]).to_address == ZERO_ADDRESS

    def test_send_to_contract_itself(self, chain, sec_address, alice):
        assert _send(chain, alice, sec_address, sec_address).succeeded

    @pytest.mark.parametrize("message_type", [0, 1, 2, 3, 255, UINT256_MAX])
    def test_any_message_type(self, chain, sec_address, alice, bob, message_type):
        receipt = _send(chain, alice, sec_address, bob, message_type)
        assert decode_message_sent(receipt.logs[0]).message_type == message_type

    def test_large_payload(self, chain, sec_address, alice, bob):
        payload = b"\xa5" * 20_000
        receipt = _send(chain, alice, sec_address, bob, 2, payload)
        assert decode_message_sent(receipt.logs[0]).data == payload

    def test_gas_used(self, chain, sec_address, alice, bob):
        calldata = encode_call(REFERENCE_SEC_SPEC, "sendMessage", (bob, 2, b"hi"))
        receipt = chain.send_transaction(alice, sec_address, calldata)
        _, data = encode_message_sent(MessageSent(alice, bob, 2, b"hi"))
        assert receipt.gas_used == intrinsic_gas(calldata) + log_gas(4, len(data))

    def test_nonce_increments(self, chain, sec_address, alice, bob):
        _send(chain, alice, sec_address, bob)
        _send(chain, alice, sec_address, bob)
        assert chain.nonce(alice) == 2
        assert chain.nonce(bob) == 0

    def test_repeated_sends_are_independent(self, chain, sec_address, alice, bob):
        first = _send(chain, alice, sec_address, bob, 2, b"same")
        second = _send(chain, alice, sec_address, bob, 2, b"same")
        assert first.transaction_hash != second.transaction_hash
        assert len(chain.get_logs(address=sec_address)) == 2

    def test_transaction_hash_depends_on_chain_id(self, alice, bob):
        hashes = []
        for chain_id in (1, 31337, 31337):
            chain = LocalChain(chain_id=chain_id)
            sec = chain.deploy(ReferenceSEC())
            hashes.append(_send(chain, alice, sec, bob, 2, b"same").transaction_hash)
        assert hashes[0] != hashes[1]
        assert hashes[1] == hashes[2]

    def test_uncodable_arguments_raise_before_sending(self, chain, sec_address, alice, bob):
        with pytest.raises(InvalidCalldataError):
            _send(chain, alice, sec_address, bob, -1)
        assert chain.block_number == 0


class TestHandshakeScenario:
    def test_request_then_response(self, chain, sec_address, alice, bob):
        request = _send(chain, alice, sec_address, bob, MessageType.CONNECTION_REQUEST, b"")
        response = _send(chain, bob, sec_address, alice, MessageType.CONNECTION_RESPONSE, b"")

        assert request.block_number < response.block_number
        events = [decode_message_sent(log) for log in chain.get_logs(address=sec_address)]
        assert events == [
            MessageSent(alice, bob, 0, b""),
            MessageSent(bob, alice, 1, b""),
        ]


# ---------------------------------------------------------------------------
# All-or-nothing invocations
# ---------------------------------------------------------------------------


class _RevertingSEC(ReferenceSEC):
    """Emits, then fails -- the emission must not survive."""

    __slots__ = ()

    def send_message(self, ctx, to, message_type, data):
        super().send_message(ctx, to, message_type, data)
        raise RuntimeError("boom")


class TestAborts:
    def test_out_of_gas_intrinsic(self, chain, sec_address, alice, bob):
        receipt = _send(chain, alice, sec_address, bob, gas_limit=21000)
        assert receipt.status == 0
        assert receipt.out_of_gas
        assert receipt.logs == ()
        assert receipt.gas_used == 21000
        assert chain.get_logs() == []

    def test_out_of_gas_during_log(self, chain, sec_address, alice, bob):
        calldata = encode_call(REFERENCE_SEC_SPEC, "sendMessage", (bob, 2, b"hi"))
        _, data = encode_message_sent(MessageSent(alice, bob, 2, b"hi"))
        needed = intrinsic_gas(calldata) + log_gas(4, len(data))

        short = chain.send_transaction(alice, sec_address, calldata, gas_limit=needed - 1)
        assert short.out_of_gas
        assert chain.get_logs() == []

        exact = chain.send_transaction(alice, sec_address, calldata, gas_limit=needed)
        assert exact.succeeded
        assert len(chain.get_logs()) == 1

    def test_raise_for_status_out_of_gas(self, chain, sec_address, alice, bob):
        receipt = _send(chain, alice, sec_address, bob, gas_limit=21000)
        with pytest.raises(OutOfGasError) as exc_info:
            receipt.raise_for_status()
        assert exc_info.value.receipt is receipt

    def test_raise_for_status_success(self, chain, sec_address, alice, bob):
        _send(chain, alice, sec_address, bob).raise_for_status()

    def test_unknown_selector(self, chain, sec_address, alice):
        receipt = chain.send_transaction(alice, sec_address, b"\xde\xad\xbe\xef")
        assert receipt.status == 0
        assert "selector" in receipt.error
        with pytest.raises(InvocationAbortedError):
            receipt.raise_for_status()

    def test_undecodable_arguments(self, chain, sec_address, alice, bob):
        calldata = encode_call(REFERENCE_SEC_SPEC, "sendMessage", (bob, 2, b"hi"))
        receipt = chain.send_transaction(alice, sec_address, calldata[:20])
        assert receipt.status == 0
        assert chain.get_logs() == []

    def test_failure_after_emission_discards_log(self, chain, alice, bob):
        address = chain.deploy(_RevertingSEC())
        receipt = _send(chain, alice, address, bob)
        assert receipt.status == 0
        assert receipt.error == "boom"
        assert chain.get_logs() == []

    def test_abort_is_logged(self, chain, sec_address, alice, bob, caplog):
        with caplog.at_level(logging.WARNING, logger="sec7970.runtime.chain"):
            _send(chain, alice, sec_address, bob, gas_limit=21000)
        assert "aborted" in caplog.text

    def test_abort_still_uses_a_block(self, chain, sec_address, alice, bob):
        _send(chain, alice, sec_address, bob, gas_limit=21000)
        ok = _send(chain, alice, sec_address, bob)
        assert ok.block_number == 2


# ---------------------------------------------------------------------------
# Read-only calls and statelessness
# ---------------------------------------------------------------------------


class TestCall:
    def test_name(self, chain, sec_address):
        assert chain.call(sec_address, "name") == "ReferenceSEC"

    def test_interface_id_roundtrip(self, chain, sec_address):
        interface_id = chain.call(sec_address, "getInterfaceId")
        assert chain.call(sec_address, "supportsInterface", interface_id) is True

    def test_supports_erc165(self, chain, sec_address):
        assert chain.call(sec_address, "supportsInterface", b"\x01\xff\xc9\xa7") is True

    def test_unrelated_interface(self, chain, sec_address):
        assert chain.call(sec_address, "supportsInterface", b"\x00\x00\x00\x00") is False
        assert chain.call(sec_address, "supportsInterface", b"\xde\xad\xbe\xef") is False

    def test_is_ierc7970(self, chain, sec_address):
        assert chain.call(sec_address, "isIERC7970") is True

    def test_send_in_static_call_aborts(self, chain, sec_address, alice, bob):
        with pytest.raises(StaticCallViolationError):
            chain.call(sec_address, "sendMessage", bob, 0, b"", sender=alice)
        assert chain.get_logs() == []

    def test_call_does_not_mine(self, chain, sec_address):
        chain.call(sec_address, "name")
        assert chain.block_number == 0

    def test_unknown_function_is_abort(self, chain, sec_address):
        with pytest.raises(InvocationAbortedError, match="nope"):
            chain.call(sec_address, "nope")

    def test_unencodable_argument_is_abort(self, chain, sec_address):
        with pytest.raises(InvocationAbortedError):
            chain.call(sec_address, "supportsInterface", b"\x01" * 5)

    def test_missing_contract(self, chain, bob):
        with pytest.raises(ContractNotFoundError):
            chain.call(bob, "name")

    def test_contract_failure_is_abort(self, chain, alice, bob):
        address = chain.deploy(_RevertingSEC())
        with pytest.raises(InvocationAbortedError):
            # static emission fails first; either way the call aborts
            chain.call(address, "sendMessage", bob, 0, b"", sender=alice)


class TestStatelessness:
    def test_snapshot_unchanged_by_sends(self, chain, sec_address, alice, bob):
        before = chain.snapshot(sec_address)
        _send(chain, alice, sec_address, bob, 0, b"")
        _send(chain, bob, sec_address, alice, 1, b"")
        _send(chain, alice, sec_address, ZERO_ADDRESS, 999, b"\x00" * 100)
        after = chain.snapshot(sec_address)

        assert before == after
        assert len(chain.get_logs(address=sec_address)) == 3

    def test_snapshot_contents(self, chain, sec_address):
        snap = chain.snapshot(sec_address)
        assert snap["views"]["name"] == "ReferenceSEC"
        assert snap["views"]["isIERC7970"] is True
        assert len(snap["views"]["getInterfaceId"]) == 4
        assert snap["attributes"] == {}


# ---------------------------------------------------------------------------
# Log queries and subscriptions
# ---------------------------------------------------------------------------


class TestGetLogs:
    @pytest.fixture()
    def populated(self, chain, sec_address, alice, bob, carol):
        _send(chain, alice, sec_address, bob, 0)
        _send(chain, bob, sec_address, alice, 1)
        _send(chain, alice, sec_address, carol, 2)
        return chain

    def test_all_in_order(self, populated, sec_address):
        logs = populated.get_logs(address=sec_address)
        assert [log.block_number for log in logs] == [1, 2, 3]

    def test_filter_by_recipient(self, populated, sec_address, alice):
        logs = populated.get_logs(
            address=sec_address, topics=message_filter_topics(to_address=alice)
        )
        assert [decode_message_sent(log).message_type for log in logs] == [1]

    def test_filter_by_sender(self, populated, alice):
        logs = populated.get_logs(topics=message_filter_topics(from_address=alice))
        assert len(logs) == 2

    def test_filter_by_type_alternatives(self, populated):
        logs = populated.get_logs(topics=message_filter_topics(message_type=[0, 2]))
        assert [decode_message_sent(log).message_type for log in logs] == [0, 2]

    def test_hex_topic_filter(self, populated):
        logs = populated.get_logs(topics=["0x" + MESSAGE_SENT_TOPIC.hex()])
        assert len(logs) == 3

    def test_block_range(self, populated):
        logs = populated.get_logs(from_block=2, to_block=2)
        assert len(logs) == 1

    def test_other_address(self, populated, carol):
        assert populated.get_logs(address=carol) == []


class TestSubscribe:
    def test_receives_committed_logs(self, chain, sec_address, alice, bob):
        seen = []
        chain.subscribe(seen.append, address=sec_address)
        _send(chain, alice, sec_address, bob)
        assert len(seen) == 1
        assert decode_message_sent(seen[0]).from_address == alice

    def test_not_called_on_abort(self, chain, sec_address, alice, bob):
        seen = []
        chain.subscribe(seen.append)
        _send(chain, alice, sec_address, bob, gas_limit=21000)
        assert seen == []

    def test_topic_filter(self, chain, sec_address, alice, bob):
        seen = []
        chain.subscribe(seen.append, topics=message_filter_topics(to_address=alice))
        _send(chain, alice, sec_address, bob)
        _send(chain, bob, sec_address, alice)
        assert [decode_message_sent(log).to_address for log in seen] == [alice]

    def test_unsubscribe(self, chain, sec_address, alice, bob):
        seen = []
        unsubscribe = chain.subscribe(seen.append)
        unsubscribe()
        _send(chain, alice, sec_address, bob)
        assert seen == []

    def test_failing_subscriber_does_not_undo_commit(self, chain, sec_address, alice, bob):
        def broken(log):
            raise ValueError("subscriber bug")

        seen = []
        chain.subscribe(broken)
        chain.subscribe(seen.append)
        receipt = _send(chain, alice, sec_address, bob)
        assert receipt.succeeded
        assert len(seen) == 1
        assert len(chain.get_logs()) == 1

"""SEC CLI -- inspect the wire format and talk to a deployed contract.

Thin wrapper around the protocol library and :class:`SECClient` using click.
Offline commands (interface-id, abi, encode-log, decode-log) need no node.
"""

from __future__ import annotations

import asyncio
import json

import click
from eth_utils import to_bytes

from sec7970.contracts.interface import IERC7970_INTERFACE_ID
from sec7970.protocol import (
    ERC165_INTERFACE_ID,
    IERC7970_SPEC,
    REFERENCE_SEC_SPEC,
    MessageSent,
    SECError,
    decode_message_sent,
    describe_message_type,
    encode_message_sent,
    to_abi_json,
)
from sec7970.sdk.client import SECClient
from sec7970.sdk.config import SDKConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error(msg: str) -> None:
    """Print an error message to stderr and exit 1."""
    click.echo(msg, err=True)
    raise SystemExit(1)


def _parse_hex(value: str | None) -> bytes:
    if not value:
        return b""
    try:
        return to_bytes(hexstr=value)
    except ValueError:
        raise click.BadParameter(f"not a hex string: {value!r}") from None


def _payload(data: str | None, text: str | None) -> bytes:
    if data and text:
        raise click.UsageError("Use either --data or --text, not both.")
    if text is not None:
        return text.encode("utf-8")
    return _parse_hex(data)


def _event_dict(event: MessageSent) -> dict:
    return {
        "from": event.from_address,
        "to": event.to_address,
        "messageType": event.message_type,
        "data": "0x" + event.data.hex(),
    }


def _client(ctx: click.Context) -> SECClient:
    try:
        config = SDKConfig(
            rpc_url=ctx.obj.get("rpc_url"),
            contract_address=ctx.obj.get("contract"),
        )
    except (SECError, ValueError) as exc:
        _error(f"Error: {exc}")
    return SECClient(config=config)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="sec7970")
@click.option("--rpc-url", default=None, help="JSON-RPC endpoint (env: SEC_RPC_URL).")
@click.option(
    "--contract",
    "-c",
    default=None,
    help="Deployed contract address (env: SEC_CONTRACT_ADDRESS).",
)
@click.pass_context
def cli(ctx: click.Context, rpc_url: str | None, contract: str | None) -> None:
    """SEC -- stateless encrypted communication CLI."""
    ctx.ensure_object(dict)
    ctx.obj["rpc_url"] = rpc_url
    ctx.obj["contract"] = contract


# ---------------------------------------------------------------------------
# Offline commands
# ---------------------------------------------------------------------------


@cli.command("interface-id")
def interface_id() -> None:
    """Print the ERC-165 identifiers the reference implementation supports."""
    click.echo(f"{IERC7970_SPEC.name}: 0x{IERC7970_INTERFACE_ID.hex()}")
    click.echo(f"IERC165: 0x{ERC165_INTERFACE_ID.hex()}")


@cli.command()
@click.option("--indent", default=2, show_default=True, help="JSON indentation.")
def abi(indent: int) -> None:
    """Print the JSON ABI of ReferenceSEC."""
    click.echo(json.dumps(to_abi_json(REFERENCE_SEC_SPEC), indent=indent))


@cli.command("encode-log")
@click.option("--from", "from_address", required=True, help="Sender address.")
@click.option("--to", "to_address", required=True, help="Recipient address.")
@click.option("--type", "message_type", default=0, type=int, help="Message type.")
@click.option("--data", default=None, help="Payload as 0x-hex.")
@click.option("--text", default=None, help="Payload as UTF-8 text.")
def encode_log(
    from_address: str,
    to_address: str,
    message_type: int,
    data: str | None,
    text: str | None,
) -> None:
    """Print the log topics and data of a MessageSent event."""
    try:
        event = MessageSent(
            from_address=from_address,
            to_address=to_address,
            message_type=message_type,
            data=_payload(data, text),
        )
    except SECError as exc:
        _error(f"Error: {exc}")
    topics, encoded = encode_message_sent(event)
    click.echo(
        json.dumps(
            {"topics": ["0x" + t.hex() for t in topics], "data": "0x" + encoded.hex()},
            indent=2,
        )
    )


@cli.command("decode-log")
@click.argument("source", type=click.File("r"), default="-")
def decode_log(source) -> None:
    """Decode MessageSent log(s) from a JSON file (or stdin).

    Accepts one log object or a list of them, each with ``topics`` and
    ``data``.
    """
    try:
        payload = json.load(source)
    except json.JSONDecodeError as exc:
        _error(f"Error: invalid JSON: {exc}")
    logs = payload if isinstance(payload, list) else [payload]
    try:
        decoded = [_event_dict(decode_message_sent(log)) for log in logs]
    except SECError as exc:
        _error(f"Error: {exc}")
    click.echo(json.dumps(decoded if isinstance(payload, list) else decoded[0], indent=2))


# ---------------------------------------------------------------------------
# Online commands
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("to_address")
@click.option("--from", "sender", required=True, help="Sending account (node-managed).")
@click.option("--type", "message_type", default=2, type=int, help="Message type.")
@click.option("--data", default=None, help="Payload as 0x-hex.")
@click.option("--text", default=None, help="Payload as UTF-8 text.")
@click.pass_context
def send(
    ctx: click.Context,
    to_address: str,
    sender: str,
    message_type: int,
    data: str | None,
    text: str | None,
) -> None:
    """Send a message through the contract."""
    client = _client(ctx)
    try:
        tx_hash = asyncio.run(
            client.send_message(sender, to_address, message_type, _payload(data, text))
        )
    except SECError as exc:
        _error(f"Error: {exc}")
    click.echo(f"Sent: 0x{tx_hash.hex()}")


@cli.command()
@click.option("--from-block", default=None, type=int, help="First block to scan.")
@click.option("--sender", default=None, help="Only messages from this address.")
@click.option("--recipient", default=None, help="Only messages to this address.")
@click.option("--type", "message_type", default=None, type=int, help="Only this type.")
@click.pass_context
def messages(
    ctx: click.Context,
    from_block: int | None,
    sender: str | None,
    recipient: str | None,
    message_type: int | None,
) -> None:
    """List MessageSent events emitted by the contract."""
    client = _client(ctx)
    try:
        found = asyncio.run(
            client.get_messages(
                from_block=from_block,
                from_address=sender,
                to_address=recipient,
                message_type=message_type,
            )
        )
    except SECError as exc:
        _error(f"Error: {exc}")

    if not found:
        click.echo("No messages.")
        return
    for msg in found:
        click.echo(
            f"[{msg.block_number}:{msg.log_index}] "
            f"{describe_message_type(msg.message_type)} "
            f"{msg.from_address} -> {msg.to_address} ({len(msg.data)} bytes)"
        )


@cli.command()
@click.pass_context
def detect(ctx: click.Context) -> None:
    """Check whether the contract implements IERC7970 (ERC-165 detection)."""
    client = _client(ctx)
    if not client.contract_address:
        _error(
            "Error: contract address not configured. "
            "Pass --contract or set SEC_CONTRACT_ADDRESS."
        )
    supported = asyncio.run(client.detect())
    if supported:
        click.echo(f"{client.contract_address} implements {IERC7970_SPEC.name}")
    else:
        _error(f"{client.contract_address} does not implement {IERC7970_SPEC.name}")


if __name__ == "__main__":
    cli()

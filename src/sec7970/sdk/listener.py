"""MessageListener -- route observed ``MessageSent`` logs to handlers.

Handlers are registered per message type.  The listener attaches no
meaning to the reserved types (0/1 connection handshake, 2 encrypted
text): it only routes, and session logic lives in the handlers.

Sources:
  - :meth:`MessageListener.feed` for a single log from anywhere
  - :meth:`MessageListener.attach` for a :class:`LocalChain` subscription
  - :meth:`MessageListener.poll_once` / :meth:`MessageListener.run` for a
    JSON-RPC node via :class:`SECClient` (block-cursor polling)
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Callable, Mapping, Optional

from sec7970.protocol import (
    MESSAGE_SENT_TOPIC,
    InvalidLogError,
    LogEntry,
    SECError,
    coerce_message_type,
    parse_address,
)
from sec7970.sdk.message import ReceivedMessage

if TYPE_CHECKING:
    from sec7970.runtime.chain import LocalChain
    from sec7970.sdk.client import SECClient

logger = logging.getLogger(__name__)

Handler = Callable[[ReceivedMessage], None]


class MessageListener:
    """Dispatches decoded messages to handlers in emission order.

    A failing handler is logged and does not stop the remaining handlers.
    """

    def __init__(self, contract_address: str | None = None) -> None:
        self._contract_address = (
            parse_address(contract_address) if contract_address else None
        )
        self._handlers: dict[int, list[Handler]] = defaultdict(list)
        self._catch_all: list[Handler] = []
        self._next_block: Optional[int] = None

    def on(self, message_type: int) -> Callable[[Handler], Handler]:
        """Decorator registering a handler for one message type."""
        message_type = coerce_message_type(message_type)

        def register(handler: Handler) -> Handler:
            self._handlers[message_type].append(handler)
            return handler

        return register

    def on_any(self, handler: Handler) -> Handler:
        """Register a handler for every message; usable as a decorator."""
        self._catch_all.append(handler)
        return handler

    def dispatch(self, message: ReceivedMessage) -> int:
        """Run the handlers for *message*.

        Returns:
            The number of handlers that completed without raising.
        """
        handlers = self._handlers.get(message.message_type, []) + self._catch_all
        if not handlers:
            logger.debug("No handler for %s", message)
            return 0
        completed = 0
        for handler in handlers:
            try:
                handler(message)
                completed += 1
            except Exception:
                logger.exception("Handler %r failed for %s", handler, message)
        return completed

    def feed(self, log: LogEntry | Mapping) -> Optional[ReceivedMessage]:
        """Decode and dispatch one log.

        Logs from another contract, or that are not ``MessageSent``, are
        skipped and ``None`` is returned.
        """
        try:
            message = ReceivedMessage.from_log(log)
        except InvalidLogError as exc:
            logger.warning("Skipping undecodable log: %s", exc)
            return None
        if (
            self._contract_address is not None
            and message.contract_address is not None
            and message.contract_address != self._contract_address
        ):
            logger.debug("Ignoring log from %s", message.contract_address)
            return None
        self.dispatch(message)
        return message

    def attach(self, chain: LocalChain) -> Callable[[], None]:
        """Subscribe to ``MessageSent`` logs committed on *chain*.

        Returns:
            A function that detaches the listener.
        """
        return chain.subscribe(
            self.feed,
            address=self._contract_address,
            topics=[MESSAGE_SENT_TOPIC],
        )

    async def poll_once(self, client: SECClient) -> list[ReceivedMessage]:
        """Fetch and dispatch messages from blocks not yet seen."""
        latest = await client.block_number()
        start = self._next_block
        if start is None:
            start = client.config.from_block
        if start > latest:
            return []

        messages = await client.get_messages(from_block=start, to_block=latest)
        for message in messages:
            self.dispatch(message)
        self._next_block = latest + 1
        logger.debug(
            "Polled blocks %d-%d: %d message(s)", start, latest, len(messages)
        )
        return messages

    async def run(
        self,
        client: SECClient,
        stop: asyncio.Event | None = None,
        poll_interval: float | None = None,
    ) -> None:
        """Poll *client* until *stop* is set.

        RPC failures are logged and retried on the next interval.
        """
        stop = stop or asyncio.Event()
        interval = poll_interval or client.config.poll_interval
        while not stop.is_set():
            try:
                await self.poll_once(client)
            except SECError:
                logger.warning("Polling failed, retrying in %ss", interval, exc_info=True)
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

"""SEC SDK -- off-chain client, listener, and configuration."""

from sec7970.sdk.client import SECClient
from sec7970.sdk.config import SDKConfig
from sec7970.sdk.listener import MessageListener
from sec7970.sdk.message import ReceivedMessage

__all__ = ["SECClient", "SDKConfig", "MessageListener", "ReceivedMessage"]

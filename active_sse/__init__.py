"""
Activeledger SSE helper.

Sets up and configures Server-Sent Events subscriptions to an Activeledger node.
Connection and key handling live in `activeledger`, transaction building in
`active_txbuilder`.
"""

from active_sse.client import ActiveSSE
from active_sse.config import Settings, settings, setup_logging
from active_sse.models import Event, SubscriptionConfig, SubscriptionKind
from active_sse.receiver import EventReceiver
from active_sse.utils.exceptions import (
    AuthenticationError,
    ConfigError,
    ContractNotSetError,
    IncompatibleConfigError,
    InvalidConfigError,
    SSEConnectionError,
    SSEError,
    StreamClosedError,
)

# Shorter name for the config builder
Config = SubscriptionConfig

__version__ = "0.2.0"

__all__ = [
    "ActiveSSE",
    "AuthenticationError",
    "Config",
    "ConfigError",
    "ContractNotSetError",
    "Event",
    "EventReceiver",
    "IncompatibleConfigError",
    "InvalidConfigError",
    "SSEConnectionError",
    "SSEError",
    "Settings",
    "StreamClosedError",
    "SubscriptionConfig",
    "SubscriptionKind",
    "settings",
    "setup_logging",
]

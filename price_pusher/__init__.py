"""
price-pusher: keeps a NEAR Pyth price feed in sync with the price service.

Each poll cycle compares the price service's publish time with the
on-chain one. When the gap exceeds the threshold, one update transaction
is signed once and raced against every configured RPC endpoint, each
with its own bounded retry loop. Outcomes are published as events and
logged per endpoint.
"""

__version__ = "0.1.0"

from price_pusher.account import NearAccount, Price
from price_pusher.broadcast import BroadcastEngine, BroadcastRound
from price_pusher.config import PusherConfig, get_config
from price_pusher.errors import (
    ConfigError,
    CredentialError,
    ErrorCode,
    InvalidNonce,
    NoAuthorizedKey,
    PriceFeedError,
    PusherError,
    RpcError,
    SerializationError,
)
from price_pusher.events import BroadcastEvent, BroadcastEventType, EventBus, log_event
from price_pusher.price_feed import HermesClient, PriceUpdate
from price_pusher.pusher import CycleResult, PricePusher

__all__ = [
    "BroadcastEngine",
    "BroadcastEvent",
    "BroadcastEventType",
    "BroadcastRound",
    "ConfigError",
    "CredentialError",
    "CycleResult",
    "ErrorCode",
    "EventBus",
    "HermesClient",
    "InvalidNonce",
    "NearAccount",
    "NoAuthorizedKey",
    "Price",
    "PriceFeedError",
    "PricePusher",
    "PriceUpdate",
    "PusherConfig",
    "PusherError",
    "RpcError",
    "SerializationError",
    "get_config",
    "log_event",
]

"""
Pusher configuration.

One network preset per environment name, overlaid with environment
variables. ``get_config`` is the only place that reads the environment;
everything downstream receives a frozen ``PusherConfig``.

Environment variables:
    NODE_URL                    Primary NEAR JSON-RPC URL.
    PUSHER_ACCOUNT_ID           Account that signs price updates.
    PRIVATE_KEY_PATH            Key file (default ~/.near-credentials/...).
    MAX_SECONDS_GAP             Update trigger threshold in seconds (50).
    ENABLE_UPDATE               Broadcast updates when truthy (off).
    PRICE_ID                    Hex price feed identifier (NEAR/USD).
    STANDBY_NODE_URLS           Comma-separated standby RPC URLs.
    STANDBY_NODE_RETRY_NUMBER   Attempts per endpoint (3).
    RPC_TIMEOUT_SECONDS         Deadline per network round trip (10).
    POLL_INTERVAL_SECONDS       Sleep between poll cycles (20).
    UPDATE_FEE_YOCTO            Deposit attached to update_price_feeds.
    UPDATE_GAS                  Gas attached to update_price_feeds.
    ESTIMATE_UPDATE_FEE         Ask the contract for the fee when truthy.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from price_pusher.errors import ConfigError

# Crypto.NEAR/USD
DEFAULT_PRICE_ID = "27e867f0f4f61076456d1a73b14c7edc1cf5cef4f4d6193a33424288f11bd0f4"
DEFAULT_MAX_SECONDS_GAP = 50
DEFAULT_RETRY_NUMBER = 3
DEFAULT_RPC_TIMEOUT_S = 10.0
DEFAULT_POLL_INTERVAL_S = 20.0
# 300 TGas
DEFAULT_UPDATE_GAS = 300 * 10**12
# 0.02 NEAR, above the contract's 0.0192 NEAR estimate for one feed
DEFAULT_UPDATE_FEE = 2 * 10**22

_FALSE_STRINGS = {"", "0", "false", "no", "off"}

_PRESETS: dict[str, dict[str, str]] = {
    "mainnet": {
        "network_id": "mainnet",
        "node_url": "https://rpc.mainnet.near.org",
        "pyth_contract_id": "pyth-oracle.near",
        "price_service_url": "https://hermes.pyth.network/v2/updates/price/latest?ids[]=",
    },
    "testnet": {
        "network_id": "testnet",
        "node_url": "https://rpc.testnet.near.org",
        "pyth_contract_id": "pyth-oracle.testnet",
        "price_service_url": "https://hermes-beta.pyth.network/v2/updates/price/latest?ids[]=",
    },
}

_ENV_ALIASES = {
    "production": "mainnet",
    "mainnet": "mainnet",
    "development": "testnet",
    "testnet": "testnet",
}


@dataclass(frozen=True)
class PusherConfig:
    """Resolved configuration for one pusher process."""

    network_id: str
    node_url: str
    pyth_contract_id: str
    price_service_url: str
    account_id: str | None = None
    private_key_path: str | None = None
    max_seconds_gap: int = DEFAULT_MAX_SECONDS_GAP
    enable_update: bool = False
    price_id: str = DEFAULT_PRICE_ID
    standby_node_urls: tuple[str, ...] = field(default_factory=tuple)
    standby_node_retry_number: int = DEFAULT_RETRY_NUMBER
    rpc_timeout_s: float = DEFAULT_RPC_TIMEOUT_S
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    update_fee: int = DEFAULT_UPDATE_FEE
    update_gas: int = DEFAULT_UPDATE_GAS
    estimate_update_fee: bool = False

    def endpoint_set(self) -> list[str]:
        """Endpoints a signed update is raced against.

        Empty when no standby node is configured: the update then goes
        through the primary connection only. Otherwise the standbys
        followed by the primary node. Order only affects log attribution.
        """
        if not self.standby_node_urls:
            return []
        return [*self.standby_node_urls, self.node_url]


def _parse_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(
            f"{name} must be an integer, got: {raw!r}",
            details={"variable": name, "value": raw},
        ) from e


def _parse_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(
            f"{name} must be a number, got: {raw!r}",
            details={"variable": name, "value": raw},
        ) from e


def _parse_bool(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "").strip().lower() not in _FALSE_STRINGS


def _parse_url_list(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(url.strip() for url in raw.split(",") if url.strip())


def get_config(env: str, environ: Mapping[str, str] | None = None) -> PusherConfig:
    """Build the configuration for an environment name.

    Args:
        env: "mainnet"/"production" or "testnet"/"development".
        environ: Variable source. Defaults to ``os.environ``.

    Raises:
        ConfigError: Unknown environment or malformed numeric variable.
    """
    if environ is None:
        environ = os.environ

    network = _ENV_ALIASES.get(env)
    if network is None:
        raise ConfigError(
            f"Unconfigured environment {env!r}. Can be configured in price_pusher/config.py.",
            details={"env": env},
        )
    preset = _PRESETS[network]

    retry_number = _parse_int(environ, "STANDBY_NODE_RETRY_NUMBER", DEFAULT_RETRY_NUMBER)
    if retry_number < 1:
        raise ConfigError(
            f"STANDBY_NODE_RETRY_NUMBER must be >= 1, got: {retry_number}",
            details={"variable": "STANDBY_NODE_RETRY_NUMBER", "value": retry_number},
        )

    return PusherConfig(
        network_id=preset["network_id"],
        node_url=environ.get("NODE_URL") or preset["node_url"],
        pyth_contract_id=preset["pyth_contract_id"],
        price_service_url=preset["price_service_url"],
        account_id=environ.get("PUSHER_ACCOUNT_ID") or None,
        private_key_path=environ.get("PRIVATE_KEY_PATH") or None,
        max_seconds_gap=_parse_int(environ, "MAX_SECONDS_GAP", DEFAULT_MAX_SECONDS_GAP),
        enable_update=_parse_bool(environ, "ENABLE_UPDATE"),
        price_id=environ.get("PRICE_ID") or DEFAULT_PRICE_ID,
        standby_node_urls=_parse_url_list(environ.get("STANDBY_NODE_URLS")),
        standby_node_retry_number=retry_number,
        rpc_timeout_s=_parse_float(environ, "RPC_TIMEOUT_SECONDS", DEFAULT_RPC_TIMEOUT_S),
        poll_interval_s=_parse_float(environ, "POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_S),
        update_fee=_parse_int(environ, "UPDATE_FEE_YOCTO", DEFAULT_UPDATE_FEE),
        update_gas=_parse_int(environ, "UPDATE_GAS", DEFAULT_UPDATE_GAS),
        estimate_update_fee=_parse_bool(environ, "ESTIMATE_UPDATE_FEE"),
    )

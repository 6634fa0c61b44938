"""
Tests for get_config and PusherConfig.

Test plan:
- Presets: testnet/development and mainnet/production resolve to the
  right contract and node, unknown env → ConfigError
- Overrides: NODE_URL, numeric variables, STANDBY_NODE_URLS parsing
- Validation: malformed numbers and retry count < 1 → ConfigError
- ENABLE_UPDATE truthiness
- endpoint_set: empty without standbys, standbys then primary otherwise
"""

import pytest

from price_pusher.config import (
    DEFAULT_MAX_SECONDS_GAP,
    DEFAULT_PRICE_ID,
    DEFAULT_RETRY_NUMBER,
    get_config,
)
from price_pusher.errors import ConfigError, ErrorCode


class TestPresets:
    @pytest.mark.parametrize("env", ["testnet", "development"])
    def test_testnet(self, env: str) -> None:
        config = get_config(env, {})
        assert config.network_id == "testnet"
        assert config.pyth_contract_id == "pyth-oracle.testnet"
        assert config.node_url == "https://rpc.testnet.near.org"

    @pytest.mark.parametrize("env", ["mainnet", "production"])
    def test_mainnet(self, env: str) -> None:
        config = get_config(env, {})
        assert config.network_id == "mainnet"
        assert config.pyth_contract_id == "pyth-oracle.near"

    def test_unknown_env(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            get_config("staging", {})
        assert exc_info.value.error_code == ErrorCode.CONFIG_INVALID
        assert exc_info.value.details == {"env": "staging"}

    def test_defaults(self) -> None:
        config = get_config("testnet", {})
        assert config.account_id is None
        assert config.max_seconds_gap == DEFAULT_MAX_SECONDS_GAP
        assert config.standby_node_retry_number == DEFAULT_RETRY_NUMBER
        assert config.price_id == DEFAULT_PRICE_ID
        assert config.enable_update is False
        assert config.standby_node_urls == ()


class TestOverrides:
    def test_environment_values(self) -> None:
        config = get_config("testnet", {
            "NODE_URL": "https://rpc.custom",
            "PUSHER_ACCOUNT_ID": "pusher.testnet",
            "MAX_SECONDS_GAP": "120",
            "STANDBY_NODE_RETRY_NUMBER": "5",
            "RPC_TIMEOUT_SECONDS": "2.5",
            "UPDATE_FEE_YOCTO": "1000",
        })
        assert config.node_url == "https://rpc.custom"
        assert config.account_id == "pusher.testnet"
        assert config.max_seconds_gap == 120
        assert config.standby_node_retry_number == 5
        assert config.rpc_timeout_s == 2.5
        assert config.update_fee == 1000

    def test_standby_urls_trimmed(self) -> None:
        config = get_config("testnet", {"STANDBY_NODE_URLS": " https://a , ,https://b,"})
        assert config.standby_node_urls == ("https://a", "https://b")

    def test_blank_number_uses_default(self) -> None:
        assert get_config("testnet", {"MAX_SECONDS_GAP": "  "}).max_seconds_gap == DEFAULT_MAX_SECONDS_GAP

    def test_malformed_number(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            get_config("testnet", {"MAX_SECONDS_GAP": "fifty"})
        assert exc_info.value.details["variable"] == "MAX_SECONDS_GAP"

    @pytest.mark.parametrize("value", ["0", "-1"])
    def test_retry_number_must_be_positive(self, value: str) -> None:
        with pytest.raises(ConfigError):
            get_config("testnet", {"STANDBY_NODE_RETRY_NUMBER": value})

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("true", True), ("1", True), ("yes", True), ("", False), ("0", False), ("false", False), ("OFF", False)],
    )
    def test_enable_update(self, value: str, expected: bool) -> None:
        assert get_config("testnet", {"ENABLE_UPDATE": value}).enable_update is expected


class TestEndpointSet:
    def test_empty_without_standbys(self) -> None:
        assert get_config("testnet", {}).endpoint_set() == []

    def test_standbys_then_primary(self) -> None:
        config = get_config("testnet", {
            "NODE_URL": "https://primary",
            "STANDBY_NODE_URLS": "https://a,https://b",
        })
        assert config.endpoint_set() == ["https://a", "https://b", "https://primary"]

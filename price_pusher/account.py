"""
NEAR account facade for the Pyth price contract.

Composes the pure layer (tx.py, outcome.py) with the network boundary
(client.py, signer.py) and the broadcast engine:

    - ``get_price_unsafe()``: view call, on-chain price for one feed.
    - ``get_update_fee_estimate()``: view call, fee for an update payload.
    - ``update_price_feeds()``: resolve nonce/block once, sign once,
      broadcast. Fire-and-log: results arrive as events, nothing raises
      into the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from price_pusher.broadcast import BroadcastEngine, BroadcastRound
from price_pusher.config import DEFAULT_RETRY_NUMBER, DEFAULT_UPDATE_GAS, PusherConfig
from price_pusher.errors import ConfigError, PusherError, SerializationError
from price_pusher.events import BroadcastEvent, BroadcastEventType, EventBus, log_event
from price_pusher.log import update_tag
from price_pusher.near.access_keys import AccessKeyCache, NonceResolver
from price_pusher.near.client import NearClient
from price_pusher.near.jsonrpc_client import NearRpcClient
from price_pusher.near.signer import InMemorySigner, Signer
from price_pusher.near.transport import HttpxTransport
from price_pusher.near.tx import function_call, sign_transaction

logger = logging.getLogger("price_pusher.account")

UPDATE_METHOD = "update_price_feeds"


@dataclass(frozen=True)
class Price:
    """On-chain price as returned by ``get_price_unsafe``."""

    price: int
    conf: int
    expo: int
    publish_time: int

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Price:
        return cls(
            price=int(data["price"]),
            conf=int(data["conf"]),
            expo=int(data["expo"]),
            publish_time=int(data["publish_time"]),
        )


class NearAccount:
    """Signs and broadcasts price updates for one account.

    Args:
        signer: Account identity and key.
        client: Primary connection. Used for view calls, nonce resolution
            and direct submission.
        contract_id: Pyth contract account.
        endpoints: Endpoint set for the fan-out. Empty means direct mode.
        retry_number: Attempts per endpoint.
        gas: Gas attached to update_price_feeds.
        engine: Broadcast engine. Built from ``client`` when omitted.
        cache: Access key cache shared with the resolver.
    """

    def __init__(
        self,
        signer: Signer,
        client: NearClient,
        contract_id: str,
        *,
        endpoints: Sequence[str] = (),
        retry_number: int = DEFAULT_RETRY_NUMBER,
        gas: int = DEFAULT_UPDATE_GAS,
        engine: BroadcastEngine | None = None,
        cache: AccessKeyCache | None = None,
    ) -> None:
        self._signer = signer
        self._client = client
        self._contract_id = contract_id
        self._endpoints = list(endpoints)
        self._retry_number = retry_number
        self._gas = gas
        self._engine = engine or BroadcastEngine(client)
        self._resolver = NonceResolver(client, signer, cache)

    @classmethod
    def from_config(cls, config: PusherConfig, *, bus: EventBus | None = None) -> NearAccount:
        """Build the account from configuration and the key file.

        Raises:
            ConfigError: PUSHER_ACCOUNT_ID is not set.
            CredentialError: The key file is missing or invalid.
        """
        if not config.account_id:
            raise ConfigError("PUSHER_ACCOUNT_ID is not set")
        signer = InMemorySigner.from_key_file(
            config.network_id, config.account_id, config.private_key_path
        )
        client = NearRpcClient(config.node_url, HttpxTransport(timeout=config.rpc_timeout_s))
        if bus is None:
            bus = EventBus()
            bus.subscribe(log_event)
        engine = BroadcastEngine(client, bus=bus, attempt_timeout_s=config.rpc_timeout_s)
        return cls(
            signer,
            client,
            config.pyth_contract_id,
            endpoints=config.endpoint_set(),
            retry_number=config.standby_node_retry_number,
            gas=config.update_gas,
            engine=engine,
        )

    @property
    def account_id(self) -> str:
        return self._signer.account_id

    @property
    def engine(self) -> BroadcastEngine:
        return self._engine

    @property
    def endpoints(self) -> list[str]:
        return list(self._endpoints)

    async def get_price_unsafe(self, price_id: str) -> Price | None:
        """On-chain price for ``price_id``, or None if the feed is unknown."""
        result = await self._client.call_function(
            self._contract_id, "get_price_unsafe", {"price_identifier": price_id}
        )
        if result is None:
            return None
        return Price.from_json(result)

    async def get_update_fee_estimate(self, data: str) -> int:
        result = await self._client.call_function(
            self._contract_id, "get_update_fee_estimate", {"data": data}
        )
        return int(result)

    async def update_price_feeds(
        self,
        update_id: str,
        price_ids: Sequence[str],
        data: str,
        update_fee: int,
    ) -> BroadcastRound | None:
        """Submit a price update and report per endpoint via events.

        Returns the dispatched round, or None when the update was skipped
        before broadcast (a SKIPPED event is published then). Never raises
        for update failures.
        """
        ids = tuple(price_ids)
        try:
            action = function_call(UPDATE_METHOD, {"data": data}, self._gas, update_fee)
            nonce, block_hash = await self._resolver.resolve(self._contract_id, [action])
            signed_tx = sign_transaction(
                self._signer, self._contract_id, [action], nonce, block_hash
            )
        except SerializationError as e:
            logger.error(
                "%s cannot encode %s arguments: %s (details: %s)",
                update_tag(update_id, ids), UPDATE_METHOD, e.message, e.details,
            )
            self._skip(update_id, ids, e)
            return None
        except PusherError as e:
            self._skip(update_id, ids, e)
            return None
        except Exception as e:
            logger.exception("%s update preparation failed", update_tag(update_id, ids))
            self._skip(update_id, ids, e)
            return None

        logger.debug(
            "%s signed tx %s with nonce %d", update_tag(update_id, ids), signed_tx.hash, nonce
        )
        return self._engine.broadcast(
            signed_tx,
            self._endpoints,
            self._retry_number,
            update_id=update_id,
            price_ids=ids,
        )

    def _skip(self, update_id: str, price_ids: tuple[str, ...], exc: Exception) -> None:
        self._engine.bus.publish(
            BroadcastEvent(
                type=BroadcastEventType.SKIPPED,
                update_id=update_id,
                price_ids=price_ids,
                error=str(exc) or type(exc).__name__,
                error_type=type(exc).__name__,
            )
        )

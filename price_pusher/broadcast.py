"""
Multi-endpoint broadcast engine.

Takes one signed transaction and races the identical payload against
every endpoint of the endpoint set. Each endpoint runs its own bounded
retry loop as an independent asyncio task:

    submit → classify → publish SUCCEEDED / EXECUTION_FAILED
    InvalidNonce      → publish INVALID_NONCE, stop (payload is immutable)
    anything else     → retry, up to max_attempts; publish EXHAUSTED

Intermediate transient failures are logged at DEBUG only. Every
endpoint publishes exactly one event to the EventBus.

``broadcast()`` returns as soon as the tasks are dispatched. The
returned ``BroadcastRound`` can be awaited for observability, but no
caller has to. There is no cancellation: each loop runs to success,
terminal nonce failure or exhaustion. A per-attempt deadline keeps a
hung endpoint from stalling its own loop, and a timed-out attempt counts
like any other transient failure.

With an empty endpoint set the engine makes one direct submission
through the primary client instead.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from price_pusher.errors import InvalidNonce
from price_pusher.events import BroadcastEvent, BroadcastEventType, EventBus, log_event
from price_pusher.near.client import NearClient
from price_pusher.near.jsonrpc_client import NearRpcClient, error_type_of
from price_pusher.near.outcome import classify
from price_pusher.near.transport import HttpxTransport
from price_pusher.near.tx import SignedTransaction

logger = logging.getLogger("price_pusher.broadcast")

ClientFactory = Callable[[str], NearClient]


def _error_type(exc: BaseException) -> str:
    node_type = getattr(exc, "error_type", None)
    if node_type:
        return str(node_type)
    details = getattr(exc, "details", None)
    if isinstance(details, dict) and details.get("error") is not None:
        return error_type_of(details["error"]) or type(exc).__name__
    return type(exc).__name__


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class BroadcastRound:
    """Handle on the endpoint tasks of one broadcast."""

    def __init__(
        self,
        update_id: str,
        tx_hash: str,
        tasks: Sequence[asyncio.Task[BroadcastEvent]],
    ) -> None:
        self.update_id = update_id
        self.tx_hash = tx_hash
        self._tasks = list(tasks)

    @property
    def done(self) -> bool:
        return all(t.done() for t in self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    async def wait(self) -> list[BroadcastEvent]:
        """Wait for every endpoint; events in endpoint order."""
        return list(await asyncio.gather(*self._tasks))


class BroadcastEngine:
    """Fans one signed transaction out to many endpoints.

    Args:
        primary: Client used for direct submission when the endpoint set
            is empty.
        bus: Where completion events are published. A fresh bus with the
            logging subscriber is created when omitted.
        client_factory: Builds a client for an endpoint URL. Defaults to
            NearRpcClient over HttpxTransport with ``attempt_timeout_s``.
        attempt_timeout_s: Deadline for one submission. None disables it.
        retry_delay_s: Pause between attempts on the same endpoint.
    """

    def __init__(
        self,
        primary: NearClient,
        *,
        bus: EventBus | None = None,
        client_factory: ClientFactory | None = None,
        attempt_timeout_s: float | None = 10.0,
        retry_delay_s: float = 0.0,
    ) -> None:
        self._primary = primary
        if bus is None:
            bus = EventBus()
            bus.subscribe(log_event)
        self._bus = bus
        self._attempt_timeout_s = attempt_timeout_s
        self._retry_delay_s = retry_delay_s
        self._client_factory = client_factory or self._default_client
        self._clients: dict[str, NearClient] = {}
        self._inflight: set[asyncio.Task[BroadcastEvent]] = set()

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def _default_client(self, url: str) -> NearClient:
        timeout = self._attempt_timeout_s or 10.0
        return NearRpcClient(url, HttpxTransport(timeout=timeout))

    def client_for(self, url: str) -> NearClient:
        if url == self._primary.url:
            return self._primary
        client = self._clients.get(url)
        if client is None:
            client = self._client_factory(url)
            self._clients[url] = client
        return client

    def broadcast(
        self,
        signed_tx: SignedTransaction,
        endpoints: Sequence[str],
        max_attempts: int,
        *,
        update_id: str,
        price_ids: Iterable[str] = (),
    ) -> BroadcastRound:
        """Dispatch ``signed_tx`` to every endpoint and return immediately.

        Must be called with a running event loop.

        Args:
            signed_tx: Built and signed once; never modified here.
            endpoints: Endpoint URLs. Empty means direct submission.
            max_attempts: Attempts per endpoint (>= 1).
            update_id: Correlation id for events and logs.
            price_ids: Price feeds carried by the update.
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got: {max_attempts}")

        # Encoded once: every endpoint receives the same bytes.
        payload = signed_tx.to_base64()
        tx_hash = signed_tx.hash
        ids = tuple(price_ids)

        if endpoints:
            targets = [(self.client_for(url), max_attempts) for url in endpoints]
        else:
            targets = [(self._primary, 1)]

        tasks = []
        for client, attempts in targets:
            task = asyncio.create_task(
                self._run_endpoint(client, payload, attempts, update_id, ids, tx_hash),
                name=f"broadcast:{update_id}:{client.url}",
            )
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            tasks.append(task)
        return BroadcastRound(update_id, tx_hash, tasks)

    async def drain(self) -> None:
        """Wait for every in-flight endpoint task of every round."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight))

    async def _submit(self, client: NearClient, payload: str) -> dict[str, Any]:
        if self._attempt_timeout_s is None:
            return await client.send_tx(payload)
        return await asyncio.wait_for(client.send_tx(payload), timeout=self._attempt_timeout_s)

    async def _run_endpoint(
        self,
        client: NearClient,
        payload: str,
        max_attempts: int,
        update_id: str,
        price_ids: tuple[str, ...],
        tx_hash: str,
    ) -> BroadcastEvent:
        attempt = 0
        while True:
            attempt += 1
            try:
                raw = await self._submit(client, payload)
            except InvalidNonce as e:
                return self._publish(
                    BroadcastEventType.INVALID_NONCE,
                    update_id, price_ids, client.url, attempt, tx_hash,
                    error=_error_message(e), error_type=_error_type(e),
                )
            except Exception as e:
                if attempt >= max_attempts:
                    return self._publish(
                        BroadcastEventType.EXHAUSTED,
                        update_id, price_ids, client.url, attempt, tx_hash,
                        error=_error_message(e), error_type=_error_type(e),
                    )
                logger.debug(
                    "attempt %d/%d to %s failed: %r", attempt, max_attempts, client.url, e
                )
                if self._retry_delay_s > 0:
                    await asyncio.sleep(self._retry_delay_s)
                continue

            try:
                verdict = classify(raw)
            except Exception as e:
                logger.debug("unreadable outcome from %s: %r", client.url, raw)
                return self._publish(
                    BroadcastEventType.EXECUTION_FAILED,
                    update_id, price_ids, client.url, attempt, tx_hash,
                    error=f"unreadable execution outcome: {_error_message(e)}",
                    error_type=_error_type(e),
                )
            if verdict.success:
                return self._publish(
                    BroadcastEventType.SUCCEEDED,
                    update_id, price_ids, client.url, attempt, verdict.tx_hash or tx_hash,
                )
            return self._publish(
                BroadcastEventType.EXECUTION_FAILED,
                update_id, price_ids, client.url, attempt, verdict.tx_hash or tx_hash,
                failures=verdict.failures,
            )

    def _publish(
        self,
        event_type: BroadcastEventType,
        update_id: str,
        price_ids: tuple[str, ...],
        endpoint: str,
        attempts: int,
        tx_hash: str | None,
        **fields: Any,
    ) -> BroadcastEvent:
        event = BroadcastEvent(
            type=event_type,
            update_id=update_id,
            price_ids=price_ids,
            endpoint=endpoint,
            attempts=attempts,
            tx_hash=tx_hash,
            **fields,
        )
        self._bus.publish(event)
        return event

"""
Broadcast completion events.

Each endpoint task of a broadcast round publishes exactly one event when
it reaches a final state. Subscribers (the logger, tests, metrics) see
structured events instead of parsing log text.

Event types:
    SUCCEEDED         Node executed the transaction, no receipt failed.
    EXECUTION_FAILED  Node executed it, at least one receipt failed.
    INVALID_NONCE     Node rejected the nonce. Terminal for the endpoint.
    EXHAUSTED         Every attempt hit a transient error.
    SKIPPED           The update never reached broadcast (no authorized
                      key, unencodable arguments, resolver failure).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from price_pusher.log import update_tag
from price_pusher.near.outcome import ReceiptStatus

logger = logging.getLogger("price_pusher.events")


class BroadcastEventType(StrEnum):
    """Final states of one endpoint in a broadcast round."""

    SUCCEEDED = "SUCCEEDED"
    EXECUTION_FAILED = "EXECUTION_FAILED"
    INVALID_NONCE = "INVALID_NONCE"
    EXHAUSTED = "EXHAUSTED"
    SKIPPED = "SKIPPED"


def _now_utc() -> str:
    """RFC3339 UTC timestamp."""
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S+00:00")


@dataclass(frozen=True)
class BroadcastEvent:
    """Completion event for one endpoint (or for a skipped update).

    Attributes:
        type: Final state.
        update_id: Correlates every event of one logical update.
        price_ids: Price feeds carried by the update.
        endpoint: Node URL, None for SKIPPED.
        attempts: Submissions made to this endpoint.
        tx_hash: Hash of the signed transaction, if one was built.
        failures: Failing receipt statuses (EXECUTION_FAILED only).
        error: Error message for INVALID_NONCE, EXHAUSTED and SKIPPED.
        error_type: Error class or node error name.
        created_at: RFC3339 UTC timestamp.
    """

    type: BroadcastEventType
    update_id: str
    price_ids: tuple[str, ...]
    endpoint: str | None = None
    attempts: int = 0
    tx_hash: str | None = None
    failures: tuple[ReceiptStatus, ...] = field(default_factory=tuple)
    error: str | None = None
    error_type: str | None = None
    created_at: str = field(default_factory=_now_utc)

    @property
    def success(self) -> bool:
        return self.type == BroadcastEventType.SUCCEEDED

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": str(self.type),
            "update_id": self.update_id,
            "price_ids": list(self.price_ids),
            "endpoint": self.endpoint,
            "attempts": self.attempts,
            "tx_hash": self.tx_hash,
            "failures": [f.to_json() for f in self.failures],
            "error": self.error,
            "error_type": self.error_type,
            "created_at": self.created_at,
        }


Subscriber = Callable[[BroadcastEvent], None]


class EventBus:
    """Fan-out of broadcast events to subscribers.

    A subscriber that raises is logged and skipped; it never affects the
    publisher or other subscribers.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register ``subscriber``. Returns a function that unsubscribes it."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def publish(self, event: BroadcastEvent) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                logger.exception("event subscriber %r failed on %s", subscriber, event.type)


def log_event(event: BroadcastEvent) -> None:
    """Default subscriber: one log line per event, tagged with the update."""
    tag = update_tag(event.update_id, event.price_ids)
    extra = {
        "update_id": event.update_id,
        "price_ids": list(event.price_ids),
        "endpoint": event.endpoint,
        "event_type": str(event.type),
    }
    if event.type == BroadcastEventType.SUCCEEDED:
        logger.info(
            "%s updatePriceFeeds tx successful. nodeUrl: %s Tx hash: %s",
            tag, event.endpoint, event.tx_hash, extra=extra,
        )
    elif event.type == BroadcastEventType.EXECUTION_FAILED:
        logger.error(
            "%s nodeUrl: %s updatePriceFeeds tx failed: %s",
            tag, event.endpoint,
            json.dumps([f.to_json() for f in event.failures], indent=2, default=str)
            if event.failures else event.error,
            extra=extra,
        )
    elif event.type == BroadcastEventType.INVALID_NONCE:
        logger.error(
            "%s nodeUrl: %s updatePriceFeeds InvalidNonce failed: %s",
            tag, event.endpoint, event.error, extra=extra,
        )
    elif event.type == BroadcastEventType.EXHAUSTED:
        logger.error(
            "%s nodeUrl: %s updatePriceFeeds failed after %d attempts: %s",
            tag, event.endpoint, event.attempts, event.error, extra=extra,
        )
    else:
        logger.error("%s updatePriceFeeds skipped: %s", tag, event.error, extra=extra)

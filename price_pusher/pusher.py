"""
Poll loop: keep the on-chain price no staler than ``max_seconds_gap``.

One cycle:
    1. Fetch the latest update from the price service.
    2. Warn when its publish time is not advancing.
    3. Read the on-chain price and compute the gap.
    4. If the source is ahead by more than ``max_seconds_gap``, log
       "Need update" and, when updates are enabled, submit one.

Submission is fire-and-log: the cycle returns once the signed
transaction is dispatched, without waiting for any endpoint. Errors in a
cycle are logged and the loop moves on.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from price_pusher.account import NearAccount
from price_pusher.broadcast import BroadcastRound
from price_pusher.config import PusherConfig
from price_pusher.price_feed import HermesClient

logger = logging.getLogger("price_pusher.pusher")


@dataclass(frozen=True)
class CycleResult:
    """What one poll cycle observed and did.

    Attributes:
        publish_time: Price source publish time. None if the fetch failed.
        on_chain_publish_time: On-chain publish time (0 if no price yet).
        gap: publish_time - on_chain_publish_time.
        needs_update: The gap exceeded the threshold.
        update_id: Correlation id of the submitted update, if any.
        round: Dispatched broadcast round, if any.
        error: Error message if the cycle failed early.
    """

    publish_time: int | None = None
    on_chain_publish_time: int | None = None
    gap: int | None = None
    needs_update: bool = False
    update_id: str | None = None
    round: BroadcastRound | None = None
    error: str | None = None


def _new_update_id() -> str:
    return uuid.uuid4().hex[:12]


class PricePusher:
    """Drives poll cycles for one price feed.

    Args:
        config: Thresholds, feed id and update switches.
        feed: Price source client.
        account: Account that reads and updates the contract.
        sleep: Awaitable sleep, injectable for tests.
        id_factory: Produces update correlation ids.
    """

    def __init__(
        self,
        config: PusherConfig,
        feed: HermesClient,
        account: NearAccount,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        id_factory: Callable[[], str] = _new_update_id,
    ) -> None:
        self._config = config
        self._feed = feed
        self._account = account
        self._sleep = sleep
        self._id_factory = id_factory
        self._prev_publish_time = 0

    async def run_once(self) -> CycleResult:
        try:
            return await self._cycle()
        except Exception as e:
            logger.exception("poll cycle failed")
            return CycleResult(error=str(e) or type(e).__name__)

    async def _cycle(self) -> CycleResult:
        config = self._config
        price_id = config.price_id

        update = await self._feed.latest(price_id)
        publish_time = update.publish_time
        if self._prev_publish_time != 0 and publish_time <= self._prev_publish_time:
            logger.warning(
                "Warning! Publish time may be freezing. prev_publish:%d, cur_publish:%d, gap:%d",
                self._prev_publish_time, publish_time, publish_time - self._prev_publish_time,
            )
        self._prev_publish_time = publish_time

        on_chain = await self._account.get_price_unsafe(price_id)
        on_chain_publish_time = on_chain.publish_time if on_chain is not None else 0
        gap = publish_time - on_chain_publish_time
        logger.info(
            "publish_time [Center, Onchain]: [%d, %d], gap: %d",
            publish_time, on_chain_publish_time, gap,
        )

        needs_update = publish_time > on_chain_publish_time and gap > config.max_seconds_gap
        if not needs_update:
            return CycleResult(publish_time, on_chain_publish_time, gap)

        logger.info("Need update, %d seconds ahead", gap)
        if not config.enable_update:
            return CycleResult(publish_time, on_chain_publish_time, gap, needs_update=True)

        fee = config.update_fee
        if config.estimate_update_fee:
            fee = await self._account.get_update_fee_estimate(update.hex_data)

        update_id = self._id_factory()
        broadcast_round = await self._account.update_price_feeds(
            update_id, [price_id], update.hex_data, fee
        )
        return CycleResult(
            publish_time,
            on_chain_publish_time,
            gap,
            needs_update=True,
            update_id=update_id,
            round=broadcast_round,
        )

    async def run(self, max_cycles: int | None = None) -> None:
        """Poll until ``max_cycles`` cycles ran (forever when None)."""
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            await self.run_once()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            await self._sleep(self._config.poll_interval_s)

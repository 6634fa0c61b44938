"""
Hermes price service client.

    GET <price_service_url><price_id>
    {
      "binary": {"encoding": "hex", "data": ["<update payload>"]},
      "parsed": [{"id": "...", "price": {"price": "...", "conf": "...",
                  "expo": -8, "publish_time": 1724935521}, ...}]
    }

Only the first entry of ``binary.data`` and ``parsed`` is used: the pusher
requests one feed per call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from price_pusher.errors import PriceFeedError


@dataclass(frozen=True)
class PriceUpdate:
    """Latest update for one feed.

    Attributes:
        price_id: Feed identifier (hex).
        hex_data: Signed update payload, as passed to update_price_feeds.
        publish_time: Unix seconds asserted by the price source.
    """

    price_id: str
    hex_data: str
    publish_time: int


def parse_latest(price_id: str, body: Any) -> PriceUpdate:
    """Extract the update payload and publish time from a Hermes body.

    Raises:
        PriceFeedError: If the body does not have the expected shape.
    """
    try:
        hex_data = body["binary"]["data"][0]
        publish_time = int(body["parsed"][0]["price"]["publish_time"])
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise PriceFeedError(
            f"unexpected price service response: {e!r}",
            details={"price_id": price_id},
        ) from e
    if not isinstance(hex_data, str) or not hex_data:
        raise PriceFeedError("price service returned no update data", details={"price_id": price_id})
    return PriceUpdate(price_id=price_id, hex_data=hex_data, publish_time=publish_time)


class HermesClient:
    """Fetches the latest price update for a feed.

    Args:
        base_url: Query URL ending in ``ids[]=``; the price id is appended.
        timeout_s: Request timeout in seconds.
    """

    def __init__(self, base_url: str, *, timeout_s: float = 10.0) -> None:
        self._base_url = base_url
        self._timeout_s = timeout_s

    async def latest(self, price_id: str) -> PriceUpdate:
        """
        Raises:
            PriceFeedError: On timeout, connection failure, HTTP error or
                unexpected body.
        """
        url = f"{self._base_url}{price_id}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout_s) as client:
                response = await client.get(url, headers={"accept": "application/json"})
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException as e:
            raise PriceFeedError(
                f"price service timed out after {self._timeout_s}s",
                details={"url": url},
            ) from e
        except httpx.HTTPError as e:
            raise PriceFeedError(
                f"price service request failed: {e}",
                details={"url": url},
            ) from e
        except ValueError as e:
            raise PriceFeedError(
                "price service response was not valid JSON",
                details={"url": url},
            ) from e
        return parse_latest(price_id, body)

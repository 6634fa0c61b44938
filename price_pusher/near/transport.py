"""
Transport protocol for NEAR JSON-RPC calls.

Defines the seam where the HTTP implementation plugs in. The JSON-RPC
client depends on this protocol, not on httpx directly, so tests can
swap in canned responses without touching client logic.

Concrete implementations:
    - HttpxTransport (default, uses httpx.AsyncClient)
    - FakeTransport (tests, returns canned responses)
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx

DEFAULT_TIMEOUT_S = 10.0


@runtime_checkable
class JsonRpcTransport(Protocol):
    """Async transport for JSON-RPC POST requests."""

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a JSON-RPC request and return the parsed response.

        Args:
            url: The JSON-RPC endpoint URL.
            payload: The JSON-RPC request body (jsonrpc, id, method, params).

        Returns:
            Parsed JSON response as a dict.

        Raises:
            Exception: On transport-level failures (connection refused,
                timeout, TLS error, non-2xx status). Callers treat these
                as transient.
        """
        ...


class HttpxTransport:
    """Default transport using httpx.AsyncClient.

    Every request carries a bounded deadline so a hung node cannot stall
    its caller indefinitely.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_S) -> None:
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send JSON-RPC request via httpx."""
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
            # Some providers answer JSON-RPC errors with a 4xx/5xx status.
            # Keep the error body so InvalidNonce can still be recognized.
            if response.is_error and _has_jsonrpc_error(response):
                return response.json()
            response.raise_for_status()
            result: dict[str, Any] = response.json()
            return result


def _has_jsonrpc_error(response: httpx.Response) -> bool:
    try:
        body = response.json()
    except ValueError:
        return False
    return isinstance(body, dict) and "error" in body

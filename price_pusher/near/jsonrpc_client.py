"""
NEAR JSON-RPC client — real network implementation of NearClient.

Translates JSON-RPC responses into result objects or typed errors.
Uses an injectable transport (JsonRpcTransport) so the HTTP layer can be
swapped for test fakes without changing parsing logic.

No retry loops. No secrets.

Response conventions (nearcore):
    - Success: {"jsonrpc": "2.0", "id": ..., "result": {...}}
    - Structured error: {"error": {"name": "HANDLER_ERROR",
        "cause": {"name": "INVALID_TRANSACTION", "info": {...}},
        "data": {"TxExecutionError": {"InvalidTxError":
            {"InvalidNonce": {"tx_nonce": 5, "ak_nonce": 7}}}}}}
    - Legacy query error: {"result": {"error": "access key ... does not
        exist while viewing", "logs": []}}
"""

from __future__ import annotations

import base64
import itertools
import json
from typing import Any

from price_pusher.canonical_json import canonical_json_bytes
from price_pusher.errors import AccessKeyNotFound, InvalidNonce, RpcError
from price_pusher.near.client import AccessKeyPermission, AccessKeyView
from price_pusher.near.transport import HttpxTransport, JsonRpcTransport

INVALID_NONCE = "InvalidNonce"
UNKNOWN_ACCESS_KEY = "UNKNOWN_ACCESS_KEY"

_request_ids = itertools.count(1)


class NearRpcClient:
    """NEAR JSON-RPC client implementing the NearClient protocol.

    Args:
        url: The node's JSON-RPC endpoint (e.g. "https://rpc.testnet.near.org").
        transport: Injectable transport for HTTP POST. Defaults to
            HttpxTransport. Pass a FakeTransport for testing.
    """

    def __init__(
        self,
        url: str,
        transport: JsonRpcTransport | None = None,
    ) -> None:
        self._url = url
        self._transport = transport or HttpxTransport()

    @property
    def url(self) -> str:
        """The JSON-RPC endpoint URL."""
        return self._url

    async def _call(self, method: str, params: Any) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(_request_ids),
            "method": method,
            "params": params,
        }
        response = await self._transport.post_json(self._url, payload)
        return _unwrap_response(response, method)

    # -----------------------------------------------------------------
    # NearClient protocol methods
    # -----------------------------------------------------------------

    async def view_access_key(self, account_id: str, public_key: str) -> AccessKeyView:
        result = await self._call(
            "query",
            {
                "request_type": "view_access_key",
                "finality": "optimistic",
                "account_id": account_id,
                "public_key": public_key,
            },
        )
        _raise_for_query_error(result, "view_access_key")
        try:
            return AccessKeyView(
                public_key=public_key,
                nonce=int(result["nonce"]),
                permission=AccessKeyPermission.from_json(result["permission"]),
                block_hash=result.get("block_hash"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RpcError(
                f"malformed view_access_key result: {e}",
                details={"result": result},
            ) from e

    async def final_block_hash(self) -> str:
        result = await self._call("block", {"finality": "final"})
        try:
            block_hash = result["header"]["hash"]
        except (KeyError, TypeError) as e:
            raise RpcError(
                "block response has no header.hash",
                details={"result": result},
            ) from e
        if not isinstance(block_hash, str):
            raise RpcError("block hash is not a string", details={"result": result})
        return block_hash

    async def call_function(
        self, contract_id: str, method_name: str, args: dict[str, Any]
    ) -> Any:
        result = await self._call(
            "query",
            {
                "request_type": "call_function",
                "finality": "optimistic",
                "account_id": contract_id,
                "method_name": method_name,
                "args_base64": base64.b64encode(canonical_json_bytes(args)).decode("ascii"),
            },
        )
        _raise_for_query_error(result, method_name)
        raw = result.get("result") if isinstance(result, dict) else None
        if not isinstance(raw, list):
            raise RpcError(
                f"{method_name} returned no result bytes",
                details={"result": result},
            )
        try:
            return json.loads(bytes(raw).decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            raise RpcError(
                f"{method_name} returned non-JSON result: {e}",
                details={"contract_id": contract_id, "method_name": method_name},
            ) from e

    async def send_tx(self, signed_tx_base64: str) -> dict[str, Any]:
        result = await self._call("broadcast_tx_commit", [signed_tx_base64])
        if not isinstance(result, dict):
            raise RpcError("broadcast_tx_commit returned no outcome", details={"result": result})
        return result


# =====================================================================
# Error mapping (pure functions, no I/O)
# =====================================================================


def _contains_key(value: Any, name: str) -> bool:
    """Whether ``name`` appears as a dict key or inside a string, at any depth."""
    if isinstance(value, dict):
        return any(k == name or _contains_key(v, name) for k, v in value.items())
    if isinstance(value, list):
        return any(_contains_key(v, name) for v in value)
    if isinstance(value, str):
        return name in value
    return False


def error_type_of(error: Any) -> str | None:
    """Best-effort innermost error name of a JSON-RPC error object."""
    if _contains_key(error, INVALID_NONCE):
        return INVALID_NONCE
    if isinstance(error, dict):
        cause = error.get("cause")
        if isinstance(cause, dict) and isinstance(cause.get("name"), str):
            return cause["name"]
        if isinstance(error.get("name"), str):
            return error["name"]
    return None


def _unwrap_response(response: dict[str, Any], method: str) -> Any:
    error = response.get("error")
    if error is not None:
        error_type = error_type_of(error)
        message = error.get("message") if isinstance(error, dict) else str(error)
        details = {"method": method, "error": error}
        if error_type == INVALID_NONCE:
            raise InvalidNonce(
                f"{method}: transaction nonce rejected",
                error_type=error_type,
                details=details,
            )
        if error_type == UNKNOWN_ACCESS_KEY:
            raise AccessKeyNotFound(
                f"{method}: access key does not exist",
                error_type=error_type,
                details=details,
            )
        raise RpcError(
            f"{method}: {message or error_type or 'unknown error'}",
            error_type=error_type,
            details=details,
        )
    if "result" not in response:
        raise RpcError(f"{method}: response has no result", details={"response": response})
    return response["result"]


def _raise_for_query_error(result: Any, request: str) -> None:
    """Legacy nodes report query failures inside a successful result."""
    if not isinstance(result, dict) or "error" not in result:
        return
    message = str(result["error"])
    if "does not exist" in message and request == "view_access_key":
        raise AccessKeyNotFound(message, error_type=UNKNOWN_ACCESS_KEY, details={"result": result})
    raise RpcError(f"{request}: {message}", details={"result": result})

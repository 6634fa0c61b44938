"""
Error taxonomy for the price pusher.

Every error carries a machine-readable ``error_code`` and a ``details``
dict so log lines and events can record what went wrong without parsing
messages.

Terminal vs transient:
    - ``NoAuthorizedKey``, ``SerializationError``: fatal for the current
      update attempt. Logged, skipped until the next poll.
    - ``InvalidNonce``: terminal for one endpoint. The signed payload is
      immutable, so resubmitting it cannot succeed.
    - ``RpcError`` (other): transient. Retried up to the per-endpoint limit.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Machine-readable error categories."""

    CONFIG_INVALID = "CONFIG_INVALID"
    CREDENTIALS_INVALID = "CREDENTIALS_INVALID"
    SERIALIZATION_FAILED = "SERIALIZATION_FAILED"
    NO_AUTHORIZED_KEY = "NO_AUTHORIZED_KEY"
    ACCESS_KEY_NOT_FOUND = "ACCESS_KEY_NOT_FOUND"
    INVALID_NONCE = "INVALID_NONCE"
    RPC_ERROR = "RPC_ERROR"
    PRICE_FEED_ERROR = "PRICE_FEED_ERROR"


class PusherError(Exception):
    """Base class for all price pusher errors."""

    default_code: ErrorCode = ErrorCode.RPC_ERROR

    def __init__(
        self,
        message: str,
        *,
        error_code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}


class ConfigError(PusherError):
    default_code = ErrorCode.CONFIG_INVALID


class CredentialError(PusherError):
    default_code = ErrorCode.CREDENTIALS_INVALID


class SerializationError(PusherError):
    """Action arguments could not be encoded to the wire format."""

    default_code = ErrorCode.SERIALIZATION_FAILED


class NoAuthorizedKey(PusherError):
    """No access key on the account may sign the requested actions."""

    default_code = ErrorCode.NO_AUTHORIZED_KEY


class PriceFeedError(PusherError):
    default_code = ErrorCode.PRICE_FEED_ERROR


class RpcError(PusherError):
    """Error returned by a NEAR JSON-RPC endpoint.

    Attributes:
        error_type: The innermost error name reported by the node
            (e.g. "InvalidNonce", "TIMEOUT_ERROR"), if known.
    """

    default_code = ErrorCode.RPC_ERROR

    def __init__(
        self,
        message: str,
        *,
        error_type: str | None = None,
        error_code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, details=details)
        self.error_type = error_type


class InvalidNonce(RpcError):
    """The node rejected the transaction nonce as stale or already used."""

    default_code = ErrorCode.INVALID_NONCE


class AccessKeyNotFound(RpcError):
    """The queried access key is not registered on the account."""

    default_code = ErrorCode.ACCESS_KEY_NOT_FOUND

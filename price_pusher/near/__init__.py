"""
NEAR backend for the price pusher.

Public API:

    Pure layer (no I/O):
        - ``function_call()``, ``build_signed()``, ``sign_transaction()`` —
          transaction builder.
        - ``SignedTransaction`` — immutable signed payload.
        - ``classify()`` — execution outcome → Verdict.
        - Borsh serialization: ``serialize_transaction``,
          ``serialize_signed_transaction``.

    Impure layer (network I/O):
        - ``NonceResolver`` — next nonce + final block hash.
        - ``NearRpcClient`` — JSON-RPC implementation of NearClient.

    Protocols (for dependency injection):
        - ``NearClient`` — network boundary.
        - ``Signer`` — secrets boundary.
        - ``JsonRpcTransport`` — HTTP boundary.
"""

from price_pusher.near.access_keys import AccessKeyCache, NonceResolver
from price_pusher.near.client import AccessKeyPermission, AccessKeyView, NearClient
from price_pusher.near.jsonrpc_client import NearRpcClient
from price_pusher.near.keys import Credentials, KeyPair, PublicKey, load_credentials
from price_pusher.near.outcome import (
    ExecutionOutcome,
    ReceiptOutcome,
    ReceiptStatus,
    ReceiptStatusKind,
    Verdict,
    classify,
)
from price_pusher.near.serialize import serialize_signed_transaction, serialize_transaction
from price_pusher.near.signer import InMemorySigner, Signer
from price_pusher.near.transport import HttpxTransport, JsonRpcTransport
from price_pusher.near.tx import (
    FunctionCall,
    SignedTransaction,
    Transaction,
    build_signed,
    function_call,
    sign_transaction,
)

__all__ = [
    "AccessKeyCache",
    "AccessKeyPermission",
    "AccessKeyView",
    "Credentials",
    "ExecutionOutcome",
    "FunctionCall",
    "HttpxTransport",
    "InMemorySigner",
    "JsonRpcTransport",
    "KeyPair",
    "NearClient",
    "NearRpcClient",
    "NonceResolver",
    "PublicKey",
    "ReceiptOutcome",
    "ReceiptStatus",
    "ReceiptStatusKind",
    "SignedTransaction",
    "Signer",
    "Transaction",
    "Verdict",
    "build_signed",
    "classify",
    "function_call",
    "load_credentials",
    "serialize_signed_transaction",
    "serialize_transaction",
    "sign_transaction",
]

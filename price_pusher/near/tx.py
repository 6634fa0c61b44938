"""
NEAR transaction builder.

Builds one function-call action, wraps it in a transaction and signs it.
Pure: no network access, deterministic for identical inputs (ed25519
signatures are deterministic too).

The nonce and block hash are inputs, not looked up here. They come from
the resolver (access_keys.py) immediately before building, and the
resulting ``SignedTransaction`` is built exactly once per logical update:
every endpoint receives the same bytes.
"""

from __future__ import annotations

import base64
import hashlib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import base58

from price_pusher.canonical_json import canonical_json_bytes
from price_pusher.errors import SerializationError
from price_pusher.near.keys import ED25519_KEY_TYPE
from price_pusher.near.serialize import serialize_signed_transaction, serialize_transaction
from price_pusher.near.signer import Signer


@dataclass(frozen=True)
class FunctionCall:
    """A single contract call.

    Attributes:
        method_name: Contract method to call.
        args: Encoded call arguments (JSON bytes).
        gas: Attached gas, in gas units.
        deposit: Attached deposit, in yoctoNEAR.
    """

    method_name: str
    args: bytes
    gas: int
    deposit: int


def function_call(
    method_name: str,
    args: Mapping[str, Any] | bytes,
    gas: int,
    deposit: int,
) -> FunctionCall:
    """Build a function-call action.

    Mapping args are encoded as compact JSON; bytes pass through as-is.

    Raises:
        SerializationError: If args cannot be JSON-encoded or gas/deposit
            are negative.
    """
    if not method_name:
        raise SerializationError("method_name must be non-empty")
    if gas < 0 or deposit < 0:
        raise SerializationError(
            "gas and deposit must be non-negative",
            details={"method_name": method_name, "gas": gas, "deposit": deposit},
        )
    if isinstance(args, bytes):
        encoded = args
    else:
        try:
            encoded = canonical_json_bytes(args)
        except SerializationError as e:
            raise SerializationError(
                f"cannot encode arguments for {method_name}: {e.message}",
                details={"method_name": method_name, "args": repr(args)},
            ) from e
    return FunctionCall(method_name=method_name, args=encoded, gas=gas, deposit=deposit)


@dataclass(frozen=True)
class Transaction:
    """An unsigned NEAR transaction."""

    signer_id: str
    public_key: bytes
    nonce: int
    receiver_id: str
    block_hash: bytes
    actions: tuple[FunctionCall, ...]
    public_key_type: int = ED25519_KEY_TYPE

    def to_bytes(self) -> bytes:
        return serialize_transaction(self)

    def hash_bytes(self) -> bytes:
        return hashlib.sha256(self.to_bytes()).digest()


@dataclass(frozen=True)
class SignedTransaction:
    """A signed transaction, addressed by its hash.

    Immutable once built. The same object (and thus the same bytes) is
    handed to every endpoint of a broadcast round.
    """

    transaction: Transaction
    signature: bytes

    @property
    def hash(self) -> str:
        """Transaction hash as reported by NEAR (base58 of sha256)."""
        return base58.b58encode(self.transaction.hash_bytes()).decode("ascii")

    @property
    def nonce(self) -> int:
        return self.transaction.nonce

    def to_bytes(self) -> bytes:
        return serialize_signed_transaction(self)

    def to_base64(self) -> str:
        return base64.b64encode(self.to_bytes()).decode("ascii")


def decode_block_hash(block_hash: str | bytes) -> bytes:
    """Accept a base58 block hash (as returned by RPC) or 32 raw bytes."""
    if isinstance(block_hash, str):
        try:
            raw = base58.b58decode(block_hash)
        except ValueError as e:
            raise SerializationError(
                "block hash is not valid base58",
                details={"block_hash": block_hash},
            ) from e
    else:
        raw = block_hash
    if len(raw) != 32:
        raise SerializationError(
            f"block hash must be 32 bytes, got {len(raw)}",
            details={"block_hash": repr(block_hash)},
        )
    return raw


def sign_transaction(
    signer: Signer,
    receiver_id: str,
    actions: Sequence[FunctionCall],
    nonce: int,
    block_hash: str | bytes,
) -> SignedTransaction:
    """Assemble and sign a transaction from already-built actions.

    The signature covers sha256(borsh(transaction)).
    """
    tx = Transaction(
        signer_id=signer.account_id,
        public_key=signer.public_key.data,
        nonce=nonce,
        receiver_id=receiver_id,
        block_hash=decode_block_hash(block_hash),
        actions=tuple(actions),
    )
    signature = signer.sign(tx.hash_bytes())
    return SignedTransaction(transaction=tx, signature=signature)


def build_signed(
    signer: Signer,
    contract_id: str,
    method_name: str,
    args: Mapping[str, Any] | bytes,
    gas: int,
    deposit: int,
    nonce: int,
    block_hash: str | bytes,
) -> SignedTransaction:
    """Build and sign a single-action contract call.

    Args:
        signer: Holds the account id and key pair.
        contract_id: Receiver of the call.
        method_name: Contract method.
        args: Call arguments (JSON-serializable mapping or raw bytes).
        gas: Attached gas.
        deposit: Attached deposit in yoctoNEAR.
        nonce: Access key nonce to use (already incremented).
        block_hash: Recent final block hash (base58 or raw bytes).

    Raises:
        SerializationError: If args or numeric fields cannot be encoded.
    """
    action = function_call(method_name, args, gas, deposit)
    return sign_transaction(signer, contract_id, [action], nonce, block_hash)

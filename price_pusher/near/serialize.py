"""
Borsh encoding for NEAR transactions.

Only the shapes this pusher signs are supported:

    Transaction {
        signer_id: string,
        public_key: PublicKey,          # u8 key type + 32 bytes
        nonce: u64,
        receiver_id: string,
        block_hash: [u8; 32],
        actions: Vec<Action>,
    }
    Action::FunctionCall {              # enum index 2
        method_name: string,
        args: Vec<u8>,
        gas: u64,
        deposit: u128,
    }
    SignedTransaction {
        transaction: Transaction,
        signature: Signature,           # u8 key type + 64 bytes
    }

Strings and vectors are prefixed with their u32 length. All integers are
little-endian.
"""

from __future__ import annotations

import struct
from typing import TYPE_CHECKING

from price_pusher.errors import SerializationError

if TYPE_CHECKING:
    from price_pusher.near.tx import FunctionCall, SignedTransaction, Transaction

FUNCTION_CALL_ACTION = 2

_U64_MAX = 2**64 - 1
_U128_MAX = 2**128 - 1


class BorshWriter:
    """Append-only Borsh buffer."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def u8(self, value: int) -> BorshWriter:
        self._buf += struct.pack("<B", value)
        return self

    def u32(self, value: int) -> BorshWriter:
        self._buf += struct.pack("<I", value)
        return self

    def u64(self, value: int) -> BorshWriter:
        if not 0 <= value <= _U64_MAX:
            raise SerializationError(f"u64 out of range: {value}", details={"value": value})
        self._buf += struct.pack("<Q", value)
        return self

    def u128(self, value: int) -> BorshWriter:
        if not 0 <= value <= _U128_MAX:
            raise SerializationError(f"u128 out of range: {value}", details={"value": value})
        self._buf += value.to_bytes(16, "little")
        return self

    def fixed(self, data: bytes, length: int) -> BorshWriter:
        if len(data) != length:
            raise SerializationError(
                f"expected {length} bytes, got {len(data)}",
                details={"length": len(data)},
            )
        self._buf += data
        return self

    def bytes_(self, data: bytes) -> BorshWriter:
        self.u32(len(data))
        self._buf += data
        return self

    def string(self, value: str) -> BorshWriter:
        return self.bytes_(value.encode("utf-8"))

    def getvalue(self) -> bytes:
        return bytes(self._buf)


def _write_function_call(w: BorshWriter, action: FunctionCall) -> None:
    w.u8(FUNCTION_CALL_ACTION)
    w.string(action.method_name)
    w.bytes_(action.args)
    w.u64(action.gas)
    w.u128(action.deposit)


def _write_transaction(w: BorshWriter, tx: Transaction) -> None:
    w.string(tx.signer_id)
    w.u8(tx.public_key_type)
    w.fixed(tx.public_key, 32)
    w.u64(tx.nonce)
    w.string(tx.receiver_id)
    w.fixed(tx.block_hash, 32)
    w.u32(len(tx.actions))
    for action in tx.actions:
        _write_function_call(w, action)


def serialize_transaction(tx: Transaction) -> bytes:
    w = BorshWriter()
    _write_transaction(w, tx)
    return w.getvalue()


def serialize_signed_transaction(signed: SignedTransaction) -> bytes:
    w = BorshWriter()
    _write_transaction(w, signed.transaction)
    w.u8(signed.transaction.public_key_type)
    w.fixed(signed.signature, 64)
    return w.getvalue()

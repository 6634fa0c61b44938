"""
Tests for the NEAR transaction builder and Borsh serialization.

Test plan:
- function_call: args encoded as compact sorted JSON, bytes pass through,
  unencodable args raise SerializationError with context, negative
  gas/deposit rejected
- Borsh: transaction layout matches the field order byte for byte,
  signed transaction appends key type + 64-byte signature
- build_signed: exactly one action, signature verifies over
  sha256(tx bytes), hash is base58(sha256), deterministic
- Block hash: base58 string and raw bytes accepted, wrong length rejected
"""

import base64
import hashlib
import struct

import base58
import pytest

from price_pusher.errors import SerializationError
from price_pusher.near.keys import KeyPair
from price_pusher.near.serialize import serialize_transaction
from price_pusher.near.signer import InMemorySigner
from price_pusher.near.tx import (
    FunctionCall,
    SignedTransaction,
    Transaction,
    build_signed,
    decode_block_hash,
    function_call,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

SAMPLE_ACCOUNT = "pusher.testnet"
SAMPLE_CONTRACT = "pyth-oracle.testnet"
SAMPLE_BLOCK_HASH_BYTES = bytes(range(32))
SAMPLE_BLOCK_HASH = base58.b58encode(SAMPLE_BLOCK_HASH_BYTES).decode("ascii")
SAMPLE_GAS = 300 * 10**12
SAMPLE_DEPOSIT = 2 * 10**22


def _signer() -> InMemorySigner:
    seed = bytes([7]) * 32
    key = KeyPair.from_string("ed25519:" + base58.b58encode(seed).decode("ascii"))
    return InMemorySigner("testnet", SAMPLE_ACCOUNT, key)


def _build(**overrides: object) -> SignedTransaction:
    kwargs: dict[str, object] = {
        "signer": _signer(),
        "contract_id": SAMPLE_CONTRACT,
        "method_name": "update_price_feeds",
        "args": {"data": "504e4155"},
        "gas": SAMPLE_GAS,
        "deposit": SAMPLE_DEPOSIT,
        "nonce": 42,
        "block_hash": SAMPLE_BLOCK_HASH,
    }
    kwargs.update(overrides)
    return build_signed(**kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# function_call
# ---------------------------------------------------------------------------


class TestFunctionCall:
    def test_args_are_compact_json(self) -> None:
        action = function_call("m", {"b": 1, "a": "x"}, 10, 0)
        assert action.args == b'{"a":"x","b":1}'

    def test_bytes_args_pass_through(self) -> None:
        action = function_call("m", b"\x00\x01", 10, 0)
        assert action.args == b"\x00\x01"

    def test_unencodable_args_raise(self) -> None:
        with pytest.raises(SerializationError) as exc_info:
            function_call("update_price_feeds", {"data": {1, 2}}, 10, 0)
        assert exc_info.value.details["method_name"] == "update_price_feeds"
        assert "data" in exc_info.value.details["args"]

    def test_nan_rejected(self) -> None:
        with pytest.raises(SerializationError):
            function_call("m", {"x": float("nan")}, 10, 0)

    def test_negative_deposit_rejected(self) -> None:
        with pytest.raises(SerializationError):
            function_call("m", {}, 10, -1)

    def test_empty_method_rejected(self) -> None:
        with pytest.raises(SerializationError):
            function_call("", {}, 10, 0)


# ---------------------------------------------------------------------------
# Borsh layout
# ---------------------------------------------------------------------------


def _borsh_string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


class TestBorshLayout:
    def test_transaction_bytes(self) -> None:
        tx = Transaction(
            signer_id="alice.near",
            public_key=b"\x01" * 32,
            nonce=1,
            receiver_id="pyth-oracle.near",
            block_hash=b"\x02" * 32,
            actions=(FunctionCall("m", b"{}", 1, 2),),
        )
        expected = (
            _borsh_string("alice.near")
            + b"\x00" + b"\x01" * 32
            + struct.pack("<Q", 1)
            + _borsh_string("pyth-oracle.near")
            + b"\x02" * 32
            + struct.pack("<I", 1)
            + b"\x02"
            + _borsh_string("m")
            + struct.pack("<I", 2) + b"{}"
            + struct.pack("<Q", 1)
            + (2).to_bytes(16, "little")
        )
        assert serialize_transaction(tx) == expected

    def test_signed_appends_signature(self) -> None:
        signed = _build()
        tx_bytes = signed.transaction.to_bytes()
        signed_bytes = signed.to_bytes()
        assert signed_bytes[: len(tx_bytes)] == tx_bytes
        assert signed_bytes[len(tx_bytes)] == 0
        assert signed_bytes[len(tx_bytes) + 1 :] == signed.signature
        assert len(signed.signature) == 64

    def test_deposit_overflow_rejected(self) -> None:
        with pytest.raises(SerializationError):
            _build(deposit=2**128).to_bytes()


# ---------------------------------------------------------------------------
# build_signed
# ---------------------------------------------------------------------------


class TestBuildSigned:
    def test_single_action(self) -> None:
        signed = _build()
        assert len(signed.transaction.actions) == 1
        action = signed.transaction.actions[0]
        assert action.method_name == "update_price_feeds"
        assert action.gas == SAMPLE_GAS
        assert action.deposit == SAMPLE_DEPOSIT

    def test_carries_nonce_and_ids(self) -> None:
        signed = _build()
        assert signed.nonce == 42
        assert signed.transaction.signer_id == SAMPLE_ACCOUNT
        assert signed.transaction.receiver_id == SAMPLE_CONTRACT
        assert signed.transaction.block_hash == SAMPLE_BLOCK_HASH_BYTES

    def test_signature_verifies_over_tx_hash(self) -> None:
        signer = _signer()
        signed = _build(signer=signer)
        digest = hashlib.sha256(signed.transaction.to_bytes()).digest()
        assert signer.public_key.verify(signed.signature, digest)

    def test_hash_is_base58_sha256(self) -> None:
        signed = _build()
        digest = hashlib.sha256(signed.transaction.to_bytes()).digest()
        assert signed.hash == base58.b58encode(digest).decode("ascii")

    def test_deterministic(self) -> None:
        assert _build().to_bytes() == _build().to_bytes()

    def test_different_nonce_different_hash(self) -> None:
        assert _build(nonce=1).hash != _build(nonce=2).hash

    def test_base64_roundtrips_bytes(self) -> None:
        signed = _build()
        assert base64.b64decode(signed.to_base64()) == signed.to_bytes()

    def test_is_immutable(self) -> None:
        signed = _build()
        with pytest.raises(AttributeError):
            signed.signature = b""  # type: ignore[misc]


class TestBlockHash:
    def test_accepts_raw_bytes(self) -> None:
        assert decode_block_hash(SAMPLE_BLOCK_HASH_BYTES) == SAMPLE_BLOCK_HASH_BYTES

    def test_accepts_base58(self) -> None:
        assert decode_block_hash(SAMPLE_BLOCK_HASH) == SAMPLE_BLOCK_HASH_BYTES

    def test_wrong_length_rejected(self) -> None:
        with pytest.raises(SerializationError):
            decode_block_hash(b"\x00" * 31)

    def test_invalid_base58_rejected(self) -> None:
        with pytest.raises(SerializationError):
            decode_block_hash("0OIl")

"""
NEAR key material and credential files.

Keys use the NEAR string form ``ed25519:<base58>``. Secret keys are the
64-byte expanded form (32-byte seed followed by the public key) written
by near-cli; a bare 32-byte seed is accepted too.

Credential files are JSON objects keyed by network and account:

    ~/.near-credentials/<network_id>/<account_id>.json
    {"account_id": "...", "public_key": "ed25519:...", "private_key": "ed25519:..."}

Older files use ``secret_key`` instead of ``private_key``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from price_pusher.errors import CredentialError

ED25519 = "ed25519"
# Borsh enum index of KeyType::ED25519
ED25519_KEY_TYPE = 0


def _split_key_string(value: str) -> tuple[str, bytes]:
    if ":" in value:
        curve, encoded = value.split(":", 1)
    else:
        curve, encoded = ED25519, value
    if curve.lower() != ED25519:
        raise CredentialError(
            f"unsupported key type: {curve!r}",
            details={"key_type": curve},
        )
    try:
        return ED25519, base58.b58decode(encoded)
    except ValueError as e:
        raise CredentialError("key is not valid base58") from e


@dataclass(frozen=True)
class PublicKey:
    """An ed25519 public key (32 raw bytes)."""

    data: bytes

    @classmethod
    def from_string(cls, value: str) -> PublicKey:
        _, data = _split_key_string(value)
        if len(data) != 32:
            raise CredentialError(
                f"ed25519 public key must be 32 bytes, got {len(data)}"
            )
        return cls(data)

    def to_string(self) -> str:
        return f"{ED25519}:{base58.b58encode(self.data).decode('ascii')}"

    def verify(self, signature: bytes, message: bytes) -> bool:
        try:
            Ed25519PublicKey.from_public_bytes(self.data).verify(signature, message)
        except (InvalidSignature, ValueError):
            return False
        return True

    def __str__(self) -> str:
        return self.to_string()


class KeyPair:
    """An ed25519 signing key. The secret never leaves this object."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._sk = private_key
        raw = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        self._public_key = PublicKey(raw)

    @classmethod
    def from_string(cls, value: str) -> KeyPair:
        """Parse ``ed25519:<base58 secret>``.

        Raises:
            CredentialError: Unsupported curve, bad base58, wrong length,
                or a 64-byte secret whose public half does not match.
        """
        _, data = _split_key_string(value)
        if len(data) not in (32, 64):
            raise CredentialError(
                f"ed25519 secret key must be 32 or 64 bytes, got {len(data)}"
            )
        key_pair = cls(Ed25519PrivateKey.from_private_bytes(data[:32]))
        if len(data) == 64 and data[32:] != key_pair.public_key.data:
            raise CredentialError("secret key does not match its embedded public key")
        return key_pair

    @classmethod
    def generate(cls) -> KeyPair:
        return cls(Ed25519PrivateKey.generate())

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    def sign(self, message: bytes) -> bytes:
        return self._sk.sign(message)

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self._public_key.to_string()!r})"


@dataclass(frozen=True)
class Credentials:
    """Contents of a key file."""

    account_id: str
    key_pair: KeyPair


def default_key_path(network_id: str, account_id: str) -> Path:
    return Path.home() / ".near-credentials" / network_id / f"{account_id}.json"


def load_credentials(
    network_id: str,
    account_id: str,
    path: str | Path | None = None,
) -> Credentials:
    """Read and parse a NEAR key file.

    Args:
        network_id: Network the key belongs to (used for the default path).
        account_id: Account the key belongs to (used for the default path).
        path: Explicit key file path. Overrides the default location.

    Raises:
        CredentialError: Missing or unreadable file, invalid JSON, missing
            account_id or key, or an unparseable key.
    """
    key_path = Path(path) if path is not None else default_key_path(network_id, account_id)
    try:
        info = json.loads(key_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise CredentialError(
            f"cannot read key file {key_path}: {e}",
            details={"path": str(key_path)},
        ) from e
    except json.JSONDecodeError as e:
        raise CredentialError(
            "Invalid key file!",
            details={"path": str(key_path), "error": str(e)},
        ) from e

    if not isinstance(info, dict):
        raise CredentialError("Invalid key file!", details={"path": str(key_path)})

    private_key = info.get("private_key") or info.get("secret_key")
    file_account_id = info.get("account_id")
    if not file_account_id or not private_key:
        raise CredentialError("Invalid key file!", details={"path": str(key_path)})

    return Credentials(
        account_id=file_account_id,
        key_pair=KeyPair.from_string(private_key),
    )

"""
Signer — the secrets boundary.

The transaction builder passes bytes to sign and gets a signature back.
It never sees the secret key, only the public key it must embed in the
transaction.

Concrete implementations:
    - InMemorySigner (key loaded from a credential file)
    - fakes in tests
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from price_pusher.errors import CredentialError
from price_pusher.near.keys import Credentials, KeyPair, PublicKey, load_credentials


@runtime_checkable
class Signer(Protocol):
    """Interface for NEAR transaction signing.

    Properties:
        account_id: The account that signs (transaction signer_id).
        network_id: Network the key is registered on.
        public_key: Public half of the signing key.
    """

    @property
    def account_id(self) -> str: ...

    @property
    def network_id(self) -> str: ...

    @property
    def public_key(self) -> PublicKey: ...

    def sign(self, message: bytes) -> bytes:
        """Return the ed25519 signature of ``message``."""
        ...


class InMemorySigner:
    """Holds the key pair of exactly one account. Immutable after construction."""

    def __init__(self, network_id: str, account_id: str, key_pair: KeyPair) -> None:
        self._network_id = network_id
        self._account_id = account_id
        self._key_pair = key_pair

    @classmethod
    def from_credentials(cls, network_id: str, credentials: Credentials) -> InMemorySigner:
        return cls(network_id, credentials.account_id, credentials.key_pair)

    @classmethod
    def from_key_file(
        cls,
        network_id: str,
        account_id: str,
        path: str | None = None,
    ) -> InMemorySigner:
        """Load the signer from a NEAR credential file.

        Raises:
            CredentialError: If the key file is missing or invalid, or
                belongs to another account.
        """
        credentials = load_credentials(network_id, account_id, path)
        if credentials.account_id != account_id:
            raise CredentialError(
                f"key file belongs to {credentials.account_id}, not {account_id}",
                details={"expected": account_id, "found": credentials.account_id},
            )
        return cls.from_credentials(network_id, credentials)

    @property
    def account_id(self) -> str:
        return self._account_id

    @property
    def network_id(self) -> str:
        return self._network_id

    @property
    def public_key(self) -> PublicKey:
        return self._key_pair.public_key

    def sign(self, message: bytes) -> bytes:
        return self._key_pair.sign(message)

    def __repr__(self) -> str:
        return (
            f"InMemorySigner(network_id={self._network_id!r}, "
            f"account_id={self._account_id!r}, public_key={self.public_key.to_string()!r})"
        )

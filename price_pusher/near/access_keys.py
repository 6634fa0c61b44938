"""
Access key cache and nonce/block resolver.

The resolver answers one question right before a transaction is signed:
which nonce and which block hash should it carry?

    resolve(receiver_id, actions) -> (nonce, block_hash)

Steps:
    1. Invalidate the cached entry for the signer's key.
    2. Query the key fresh and check it may sign every action.
    3. Query the latest final block hash.
    4. Return (access_key.nonce + 1, block_hash).

Single-writer precondition:
    ``nonce + 1`` assumes no other process signs with the same key at the
    same time. If one does, the network rejects one of the transactions
    with InvalidNonce. The broadcast engine treats that as terminal for
    the endpoint; the resolver never retries.

The cache is an explicit object, shared by reference between whoever
needs it. It has no lock: only one resolution runs at a time per account.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from price_pusher.errors import AccessKeyNotFound, NoAuthorizedKey
from price_pusher.near.client import AccessKeyView, NearClient
from price_pusher.near.signer import Signer
from price_pusher.near.tx import FunctionCall

logger = logging.getLogger("price_pusher.near.access_keys")

CacheKey = tuple[str, str, str]


class AccessKeyCache:
    """Access key views keyed by (network_id, account_id, public_key)."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, AccessKeyView] = {}

    def get(self, key: CacheKey) -> AccessKeyView | None:
        return self._entries.get(key)

    def put(self, key: CacheKey, view: AccessKeyView) -> None:
        self._entries[key] = view

    def invalidate(self, key: CacheKey | None = None) -> None:
        """Drop one entry, or every entry when ``key`` is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class NonceResolver:
    """Derives the next nonce and a fresh block hash for one signer.

    Args:
        client: Authoritative endpoint for both queries.
        signer: Whose access key is looked up.
        cache: Shared access key cache. Invalidated before every resolution.
    """

    def __init__(
        self,
        client: NearClient,
        signer: Signer,
        cache: AccessKeyCache | None = None,
    ) -> None:
        self._client = client
        self._signer = signer
        self._cache = cache if cache is not None else AccessKeyCache()

    @property
    def cache(self) -> AccessKeyCache:
        return self._cache

    def cache_key(self) -> CacheKey:
        return (
            self._signer.network_id,
            self._signer.account_id,
            self._signer.public_key.to_string(),
        )

    async def find_access_key(
        self, receiver_id: str, actions: Sequence[FunctionCall]
    ) -> AccessKeyView:
        """Fetch the signer's key and check it may sign ``actions``.

        Raises:
            NoAuthorizedKey: The key does not exist on the account, or its
                permission does not cover every action.
        """
        key = self.cache_key()
        self._cache.invalidate(key)
        account_id = self._signer.account_id
        network_id = self._signer.network_id
        try:
            view = await self._client.view_access_key(account_id, key[2])
        except AccessKeyNotFound as e:
            raise NoAuthorizedKey(
                f"Can not sign transactions for account {account_id} on network "
                f"{network_id}, no matching key pair exists for this account",
                details={"account_id": account_id, "network_id": network_id},
            ) from e

        for action in actions:
            if not view.permission.allows(receiver_id, action.method_name, action.deposit):
                raise NoAuthorizedKey(
                    f"access key {key[2]} of {account_id} may not call "
                    f"{receiver_id}.{action.method_name} with deposit {action.deposit}",
                    details={
                        "account_id": account_id,
                        "receiver_id": receiver_id,
                        "method_name": action.method_name,
                    },
                )

        self._cache.put(key, view)
        return view

    async def resolve(
        self, receiver_id: str, actions: Sequence[FunctionCall]
    ) -> tuple[int, str]:
        """Return ``(next_nonce, final_block_hash)`` for signing ``actions``.

        Raises:
            NoAuthorizedKey: No key of the signer may sign the actions.
            RpcError: Either query failed on the node side.
        """
        view = await self.find_access_key(receiver_id, actions)
        block_hash = await self._client.final_block_hash()
        nonce = view.nonce + 1
        logger.debug(
            "resolved nonce %d and block %s for %s", nonce, block_hash, self._signer.account_id
        )
        return nonce, block_hash

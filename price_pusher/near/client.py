"""
NEAR client protocol — the network boundary.

Defines the interface the resolver, broadcast engine and account facade
depend on, not a concrete implementation. This keeps them testable and
keeps HTTP out of business logic.

Concrete implementations:
    - NearRpcClient (JSON-RPC over an injectable transport)
    - FakeClient (tests)

Expected node-side failures are raised as ``RpcError`` subclasses
(``InvalidNonce``, ``AccessKeyNotFound``). Transport failures propagate
unchanged; callers treat them as transient.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


# =========================================================================
# Result types
# =========================================================================


@dataclass(frozen=True)
class AccessKeyPermission:
    """Permission attached to an access key.

    Attributes:
        full_access: True for a FullAccess key. Other fields are unused then.
        receiver_id: Contract a FunctionCall key may call.
        method_names: Allowed methods. Empty means any method.
        allowance: Remaining gas allowance in yoctoNEAR. None is unlimited.
    """

    full_access: bool
    receiver_id: str | None = None
    method_names: tuple[str, ...] = field(default_factory=tuple)
    allowance: int | None = None

    @classmethod
    def from_json(cls, value: Any) -> AccessKeyPermission:
        if value == "FullAccess":
            return cls(full_access=True)
        if isinstance(value, dict) and isinstance(value.get("FunctionCall"), dict):
            fc = value["FunctionCall"]
            allowance = fc.get("allowance")
            return cls(
                full_access=False,
                receiver_id=fc.get("receiver_id"),
                method_names=tuple(fc.get("method_names") or ()),
                allowance=int(allowance) if allowance is not None else None,
            )
        raise ValueError(f"unrecognized access key permission: {value!r}")

    def allows(self, receiver_id: str, method_name: str, deposit: int) -> bool:
        """Whether this key may sign a call of ``method_name`` on ``receiver_id``."""
        if self.full_access:
            return True
        if deposit > 0:
            return False
        if self.receiver_id != receiver_id:
            return False
        return not self.method_names or method_name in self.method_names


@dataclass(frozen=True)
class AccessKeyView:
    """Current state of one access key.

    Attributes:
        public_key: The key, in ``ed25519:<base58>`` form.
        nonce: Nonce of the last transaction accepted for this key.
        permission: What the key may sign.
        block_hash: Block the view was taken at, if reported.
    """

    public_key: str
    nonce: int
    permission: AccessKeyPermission
    block_hash: str | None = None


# =========================================================================
# Protocol
# =========================================================================


@runtime_checkable
class NearClient(Protocol):
    """Interface for NEAR network operations used by the pusher."""

    @property
    def url(self) -> str:
        """Endpoint address, used for log attribution."""
        ...

    async def view_access_key(self, account_id: str, public_key: str) -> AccessKeyView:
        """Fetch the current state of one access key.

        Raises:
            AccessKeyNotFound: The account has no such key.
        """
        ...

    async def final_block_hash(self) -> str:
        """Hash (base58) of the latest final block."""
        ...

    async def call_function(
        self, contract_id: str, method_name: str, args: dict[str, Any]
    ) -> Any:
        """Run a view method and return its JSON-decoded result."""
        ...

    async def send_tx(self, signed_tx_base64: str) -> dict[str, Any]:
        """Submit a signed transaction and wait for its execution outcome.

        Returns:
            The raw final execution outcome (transaction, receipts_outcome...).

        Raises:
            InvalidNonce: The node rejected the nonce.
            RpcError: Any other node-side error.
        """
        ...

"""
Execution outcome classification.

A final execution outcome holds one transaction outcome and an ordered
list of receipt outcomes. Each receipt status is either a success marker
(``SuccessValue`` / ``SuccessReceiptId``) or ``{"Failure": <detail>}``.
The failure detail is kept opaque: it is logged, never interpreted.

    classify(raw) -> Verdict(success, failures)

A transaction is successful when no receipt failed. Zero receipts means
no failing receipt was observed, so the verdict is successful too.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

FAILURE = "Failure"


class ReceiptStatusKind(StrEnum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


@dataclass(frozen=True)
class ReceiptStatus:
    """Status of one receipt: ``SUCCESS`` or ``FAILURE`` with opaque detail.

    ``raw`` is the status exactly as the node reported it.
    """

    kind: ReceiptStatusKind
    detail: Any = None
    raw: Any = None

    @classmethod
    def from_json(cls, status: Any) -> ReceiptStatus:
        if isinstance(status, dict) and FAILURE in status:
            return cls(kind=ReceiptStatusKind.FAILURE, detail=status[FAILURE], raw=status)
        return cls(kind=ReceiptStatusKind.SUCCESS, raw=status)

    @property
    def is_failure(self) -> bool:
        return self.kind == ReceiptStatusKind.FAILURE

    def to_json(self) -> Any:
        if self.raw is not None:
            return self.raw
        if self.is_failure:
            return {FAILURE: self.detail}
        return {"SuccessValue": ""}


@dataclass(frozen=True)
class ReceiptOutcome:
    receipt_id: str | None
    status: ReceiptStatus


@dataclass(frozen=True)
class ExecutionOutcome:
    """Parsed final execution outcome. Read-only, never persisted."""

    tx_hash: str | None
    receipts: tuple[ReceiptOutcome, ...] = field(default_factory=tuple)

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> ExecutionOutcome:
        tx_hash = None
        transaction = raw.get("transaction")
        if isinstance(transaction, dict):
            tx_hash = transaction.get("hash")
        if tx_hash is None:
            tx_outcome = raw.get("transaction_outcome")
            if isinstance(tx_outcome, dict):
                tx_hash = tx_outcome.get("id")

        receipts_raw = raw.get("receipts_outcome")
        if isinstance(receipts_raw, dict):
            receipts_raw = list(receipts_raw.values())
        elif not isinstance(receipts_raw, list):
            receipts_raw = []

        receipts = []
        for item in receipts_raw:
            if not isinstance(item, dict):
                item = {}
            outcome = item.get("outcome")
            status = outcome.get("status") if isinstance(outcome, dict) else None
            receipts.append(
                ReceiptOutcome(receipt_id=item.get("id"), status=ReceiptStatus.from_json(status))
            )
        return cls(tx_hash=tx_hash, receipts=tuple(receipts))


@dataclass(frozen=True)
class Verdict:
    """Result of classifying one execution outcome.

    Attributes:
        success: False if any receipt failed.
        failures: Failing receipt statuses, in receipt order.
        tx_hash: Transaction hash reported by the node, if any.
    """

    success: bool
    failures: tuple[ReceiptStatus, ...] = field(default_factory=tuple)
    tx_hash: str | None = None


def classify(raw: dict[str, Any] | ExecutionOutcome) -> Verdict:
    """Scan every receipt for a failure marker.

    Pure function; accepts the raw JSON outcome or a parsed one.
    """
    outcome = raw if isinstance(raw, ExecutionOutcome) else ExecutionOutcome.from_json(raw)
    failures = tuple(r.status for r in outcome.receipts if r.status.is_failure)
    return Verdict(success=not failures, failures=failures, tx_hash=outcome.tx_hash)

"""
Tests for execution outcome classification.

Test plan:
- classify: [ok, fail, ok] → success False with exactly the one failure,
  all ok → success, zero receipts → vacuous success, failures keep order
- ReceiptStatus: Failure → FAILURE with opaque detail, SuccessValue and
  SuccessReceiptId → SUCCESS, raw status preserved
- ExecutionOutcome: tx hash from transaction.hash or transaction_outcome.id,
  malformed receipt entries parse without raising
"""

from typing import Any

import pytest

from price_pusher.near.outcome import (
    ExecutionOutcome,
    ReceiptStatus,
    ReceiptStatusKind,
    classify,
)

OK = {"SuccessValue": ""}
OK_RECEIPT = {"SuccessReceiptId": "9Yfd"}
FAIL_A = {"Failure": {"ActionError": {"index": 0, "kind": {"FunctionCallError": {"ExecutionError": "Smart contract panicked: stale"}}}}}
FAIL_B = {"Failure": {"ActionError": {"index": 0, "kind": "LackBalanceForState"}}}


def _outcome(*statuses: Any, tx_hash: str = "Fx1") -> dict[str, Any]:
    return {
        "status": {"SuccessValue": ""},
        "transaction": {"hash": tx_hash, "signer_id": "pusher.testnet"},
        "transaction_outcome": {"id": tx_hash, "outcome": {"status": OK_RECEIPT}},
        "receipts_outcome": [
            {"id": f"r{i}", "outcome": {"status": status, "logs": []}}
            for i, status in enumerate(statuses)
        ],
    }


class TestClassify:
    def test_one_failure_among_successes(self) -> None:
        verdict = classify(_outcome(OK, FAIL_A, OK))
        assert verdict.success is False
        assert len(verdict.failures) == 1
        assert verdict.failures[0].raw == FAIL_A

    def test_all_success(self) -> None:
        verdict = classify(_outcome(OK_RECEIPT, OK))
        assert verdict.success is True
        assert verdict.failures == ()

    def test_zero_receipts_is_vacuous_success(self) -> None:
        verdict = classify(_outcome())
        assert verdict.success is True
        assert verdict.failures == ()

    def test_missing_receipts_key_is_vacuous_success(self) -> None:
        verdict = classify({"transaction": {"hash": "h"}})
        assert verdict.success is True

    def test_failures_keep_receipt_order(self) -> None:
        verdict = classify(_outcome(FAIL_B, OK, FAIL_A))
        assert [f.raw for f in verdict.failures] == [FAIL_B, FAIL_A]

    def test_tx_hash_reported(self) -> None:
        assert classify(_outcome(OK, tx_hash="Abc")).tx_hash == "Abc"

    def test_accepts_parsed_outcome(self) -> None:
        parsed = ExecutionOutcome.from_json(_outcome(FAIL_A))
        assert classify(parsed).success is False


class TestReceiptStatus:
    def test_failure_detail_is_opaque(self) -> None:
        status = ReceiptStatus.from_json(FAIL_B)
        assert status.kind == ReceiptStatusKind.FAILURE
        assert status.detail == FAIL_B["Failure"]
        assert status.to_json() == FAIL_B

    def test_success_value(self) -> None:
        assert not ReceiptStatus.from_json(OK).is_failure

    def test_success_receipt_id(self) -> None:
        assert ReceiptStatus.from_json(OK_RECEIPT).kind == ReceiptStatusKind.SUCCESS


class TestExecutionOutcome:
    def test_hash_falls_back_to_transaction_outcome(self) -> None:
        raw = _outcome(OK)
        del raw["transaction"]
        assert ExecutionOutcome.from_json(raw).tx_hash == "Fx1"

    def test_receipt_ids(self) -> None:
        parsed = ExecutionOutcome.from_json(_outcome(OK, OK))
        assert [r.receipt_id for r in parsed.receipts] == ["r0", "r1"]

    @pytest.mark.parametrize(
        "receipts",
        [
            [{"id": "r0", "outcome": None}],
            [{"id": "r0"}],
            [None, "r1"],
            "not-a-list",
        ],
    )
    def test_malformed_receipts_parse(self, receipts: object) -> None:
        parsed = ExecutionOutcome.from_json({"transaction": {"hash": "h"}, "receipts_outcome": receipts})
        assert all(not r.status.is_failure for r in parsed.receipts)
        assert classify(parsed).success is True

    def test_malformed_receipt_keeps_sibling_failure(self) -> None:
        raw = {"receipts_outcome": [{"id": "r0", "outcome": None}, {"id": "r1", "outcome": {"status": FAIL_A}}]}
        verdict = classify(raw)
        assert verdict.success is False
        assert [f.raw for f in verdict.failures] == [FAIL_A]

"""Unit tests for the ReconciliationEngine.

Pure tests: records in, transfers and warnings out.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.services.payment_file.reconciler import (
    MERGE_MARKER,
    ReconciliationEngine,
    normalize_key,
)
from tests.factories import BOB_IBAN, JANE_IBAN, JOHN_IBAN, make_record

DUPLICATE_WARNING = "duplicate transfer(s) removed (same IBAN, amount, and card ID)"


@pytest.fixture
def engine() -> ReconciliationEngine:
    return ReconciliationEngine()


def _jane(refund_id: int, amount: str = "15.50", card: str = "CARD002"):
    return make_record(
        refund_id,
        first_name="Jane",
        last_name="Smith",
        account=JANE_IBAN,
        amount=amount,
        card=card,
    )


# ── Duplicate pass ───────────────────────────────────────────────────


class TestDuplicateRemoval:
    def test_exact_duplicate_removed(self, engine: ReconciliationEngine):
        records = [make_record(1), make_record(2), _jane(3)]

        result = engine.reconcile(records)

        assert len(result.transactions) == 2
        assert result.total_amount == Decimal("43.50")
        assert [r.id for r in result.duplicates_removed] == [2]
        assert f"1 {DUPLICATE_WARNING}" in result.warnings

    def test_first_record_survives(self, engine: ReconciliationEngine):
        records = [make_record(7, amount="10.00"), make_record(3, amount="10.00")]

        result = engine.reconcile(records)

        assert result.transactions[0].refund_id == 7
        assert result.transactions[0].refund_ids == [7]

    def test_card_identifier_is_case_and_space_insensitive(
        self, engine: ReconciliationEngine
    ):
        records = [
            make_record(1, card="card001", account="be18001778394865"),
            make_record(2, card=" CARD 001 "),
        ]

        result = engine.reconcile(records)

        assert len(result.transactions) == 1
        assert result.transactions[0].iban == JOHN_IBAN
        assert result.total_amount == Decimal("28.00")

    def test_same_card_different_amount_still_duplicate(
        self, engine: ReconciliationEngine
    ):
        """Card identifier alone decides in the default mode."""
        records = [make_record(1, amount="28.00"), make_record(2, amount="15.00")]

        result = engine.reconcile(records)

        assert len(result.transactions) == 1
        assert result.total_amount == Decimal("28.00")
        assert f"1 {DUPLICATE_WARNING}" in result.warnings

    def test_multiple_duplicate_sets_single_warning(
        self, engine: ReconciliationEngine
    ):
        records = [
            make_record(1, amount="20.00", card="CARD001"),
            make_record(2, amount="20.00", card="CARD001"),
            _jane(3, amount="30.00", card="CARD002"),
            _jane(4, amount="30.00", card="CARD002"),
            make_record(
                5,
                first_name="Bob",
                last_name="Brown",
                account=BOB_IBAN,
                amount="25.00",
                card="CARD003",
            ),
        ]

        result = engine.reconcile(records)

        assert len(result.transactions) == 3
        assert result.total_amount == Decimal("75.00")
        duplicate_warnings = [w for w in result.warnings if DUPLICATE_WARNING in w]
        assert duplicate_warnings == [f"2 {DUPLICATE_WARNING}"]

    def test_records_without_card_never_deduplicated(
        self, engine: ReconciliationEngine
    ):
        records = [
            _jane(1, card=None),
            make_record(2, card=""),
            make_record(3, card=None, account=BOB_IBAN),
        ]

        result = engine.reconcile(records)

        assert result.duplicates_removed == []
        assert result.total_amount == Decimal("71.50")


class TestStrictDuplicateMatch:
    def test_strict_requires_amount_match(self):
        engine = ReconciliationEngine(duplicate_match="strict")
        records = [make_record(1, amount="28.00"), make_record(2, amount="15.00")]

        result = engine.reconcile(records)

        # Not duplicates, but same IBAN -> merged
        assert result.duplicates_removed == []
        assert len(result.transactions) == 1
        assert result.total_amount == Decimal("43.00")

    def test_strict_removes_full_match(self):
        engine = ReconciliationEngine(duplicate_match="strict")
        records = [
            make_record(1, account="be18 0017 7839 4865"),
            make_record(2, amount=Decimal("28.0")),
        ]

        result = engine.reconcile(records)

        assert [r.id for r in result.duplicates_removed] == [2]


# ── Merge pass ───────────────────────────────────────────────────────


class TestMerge:
    def test_same_iban_different_cards_merged(self, engine: ReconciliationEngine):
        records = [
            make_record(1, amount="28.00", card="CARD001"),
            make_record(2, amount="12.50", card="CARD002"),
        ]

        result = engine.reconcile(records)

        assert len(result.transactions) == 1
        txn = result.transactions[0]
        assert txn.amount == Decimal("40.50")
        assert txn.merged is True
        assert txn.refund_ids == [1, 2]
        assert txn.refund_id == 1
        assert MERGE_MARKER in txn.remittance_info
        assert result.merged_records == 2
        assert result.merged_groups == 1
        assert "2 transfer(s) merged into 1 grouped transfer(s) (same IBAN)" in (
            result.warnings
        )

    def test_iban_grouping_ignores_spacing_and_case(
        self, engine: ReconciliationEngine
    ):
        records = [
            make_record(1, card="A", account="be18 0017 7839 4865"),
            make_record(2, card="B", account="BE18001778394865"),
        ]

        result = engine.reconcile(records)

        assert len(result.transactions) == 1
        assert result.transactions[0].iban == "BE18001778394865"

    def test_singletons_pass_through(self, engine: ReconciliationEngine):
        records = [make_record(1), _jane(2)]

        result = engine.reconcile(records)

        assert [t.merged for t in result.transactions] == [False, False]
        assert result.transactions[1].remittance_info == (
            "Remboursement Les Aperos du chateau"
        )
        assert result.warnings == []

    def test_order_follows_first_occurrence(self, engine: ReconciliationEngine):
        records = [_jane(1), make_record(2, card="X"), _jane(3, card="Y")]

        result = engine.reconcile(records)

        assert [t.refund_id for t in result.transactions] == [1, 2]
        assert result.transactions[0].refund_ids == [1, 3]

    def test_marker_survives_long_remittance_text(self):
        engine = ReconciliationEngine(remittance_text="R" * 80)
        records = [make_record(1, card="A"), make_record(2, card="B")]

        txn = engine.reconcile(records).transactions[0]

        assert txn.remittance_info.startswith(f"2 {MERGE_MARKER}")


class TestMoneyConservation:
    def test_total_equals_surviving_records(self, engine: ReconciliationEngine):
        records = [
            make_record(1, amount="10.10", card="A"),
            make_record(2, amount="20.20", card="A"),  # duplicate of 1
            make_record(3, amount="30.30", card="B"),  # merged with 1
            _jane(4, amount="40.40", card="C"),
        ]

        result = engine.reconcile(records)

        removed = sum(r.amount_recharged for r in result.duplicates_removed)
        total_in = sum(r.amount_recharged for r in records)
        assert result.total_amount == total_in - removed == Decimal("80.80")

    def test_input_not_mutated(self, engine: ReconciliationEngine):
        records = [make_record(1, card="A"), make_record(2, card="B")]
        before = [r.model_dump() for r in records]

        engine.reconcile(records)

        assert [r.model_dump() for r in records] == before


@pytest.mark.parametrize(
    "raw, expected",
    [("card001", "CARD001"), (" ca rd 1 ", "CARD1"), (None, ""), ("", "")],
)
def test_normalize_key(raw, expected):
    assert normalize_key(raw) == expected

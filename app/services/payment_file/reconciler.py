"""Duplicate removal and same-payee merging of refund candidates.

The upstream matching step can emit several records for one physical
payout: a payee re-scanned, or matched through two different cards. Before
records become wire transfers they go through two passes:

1. Exact duplicates (same card identifier, or card + IBAN + amount in
   strict mode) collapse to the first record in input order. The others are
   dropped and counted in a warning.
2. Survivors sharing a destination IBAN are merged into one transfer whose
   amount is the sum of the group.

Both passes compare normalized keys (whitespace removed, uppercased). The
keys are only used for grouping, the display values come from the records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal, Optional, Sequence

from app.core.logging import get_logger, mask_iban
from app.schemas.refund import CandidateRefundRecord, ReconciledTransaction
from app.services.payment_file.formatting import round_amount, sanitize_text
from app.services.payment_file.iban import normalize_iban

logger = get_logger(__name__)

MERGE_MARKER = "remboursements regroupes"
DEFAULT_REMITTANCE_TEXT = "Remboursement Les Aperos du chateau"


def normalize_key(value: Optional[str]) -> str:
    """Canonical grouping key: no whitespace, uppercase."""
    if not value:
        return ""
    return "".join(value.split()).upper()


@dataclass
class ReconciliationResult:
    """Container for reconciliation outcomes.

    Attributes:
        transactions: One entry per outgoing transfer, in input order of
            each group's first record.
        duplicates_removed: Records dropped as exact duplicates.
        merged_records: Records folded into a grouped transfer.
        merged_groups: Number of grouped transfers produced.
        warnings: Human-readable summary of the above.
    """

    transactions: list[ReconciledTransaction] = field(default_factory=list)
    duplicates_removed: list[CandidateRefundRecord] = field(default_factory=list)
    merged_records: int = 0
    merged_groups: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def total_amount(self) -> Decimal:
        return sum((t.amount for t in self.transactions), Decimal(0))


class ReconciliationEngine:
    """Turns validated refund candidates into the set of transfers to pay.

    Args:
        duplicate_match: ``card`` treats records sharing a card identifier
            as duplicates; ``strict`` also requires the same IBAN and amount.
        remittance_text: Unstructured remittance written on every transfer.
    """

    def __init__(
        self,
        duplicate_match: Literal["card", "strict"] = "card",
        remittance_text: str = DEFAULT_REMITTANCE_TEXT,
    ) -> None:
        self.duplicate_match = duplicate_match
        self.remittance_text = remittance_text

    def reconcile(
        self, records: Sequence[CandidateRefundRecord]
    ) -> ReconciliationResult:
        """Run the duplicate pass then the merge pass.

        Args:
            records: Validated candidates; never mutated, order preserved.

        Returns:
            A ``ReconciliationResult``. The total of its transactions equals
            the total of the records that survived the duplicate pass.
        """
        result = ReconciliationResult()

        survivors, removed = self._remove_duplicates(records)
        result.duplicates_removed = removed
        if removed:
            result.warnings.append(
                f"{len(removed)} duplicate transfer(s) removed "
                "(same IBAN, amount, and card ID)"
            )

        # --- merge pass: group survivors by destination IBAN -------------
        groups: dict[str, list[CandidateRefundRecord]] = {}
        for record in survivors:
            groups.setdefault(normalize_iban(record.account), []).append(record)

        for iban, group in groups.items():
            result.transactions.append(self._to_transaction(iban, group))
            if len(group) > 1:
                result.merged_groups += 1
                result.merged_records += len(group)
                logger.debug(
                    "Merged %d refunds into one transfer to %s",
                    len(group),
                    mask_iban(iban),
                )

        if result.merged_groups:
            result.warnings.append(
                f"{result.merged_records} transfer(s) merged into "
                f"{result.merged_groups} grouped transfer(s) (same IBAN)"
            )

        logger.info(
            "Reconciliation complete: records=%d removed=%d merged=%d transfers=%d",
            len(records),
            len(removed),
            result.merged_records,
            len(result.transactions),
        )
        return result

    # ── Private helpers ──────────────────────────────────────────────

    def _duplicate_key(self, record: CandidateRefundRecord) -> Optional[tuple]:
        card = normalize_key(record.matched_card)
        if not card:
            # Without a card identifier nothing proves two records are one payout
            return None
        if self.duplicate_match == "strict":
            return (
                card,
                normalize_iban(record.account),
                round_amount(record.amount_recharged),
            )
        return (card,)

    def _remove_duplicates(
        self, records: Sequence[CandidateRefundRecord]
    ) -> tuple[list[CandidateRefundRecord], list[CandidateRefundRecord]]:
        """Keep the first record of every duplicate group, in input order."""
        seen: set[tuple] = set()
        survivors: list[CandidateRefundRecord] = []
        removed: list[CandidateRefundRecord] = []

        for record in records:
            key = self._duplicate_key(record)
            if key is None:
                survivors.append(record)
            elif key in seen:
                removed.append(record)
                logger.debug(
                    "Dropping duplicate refund %d (card %s)",
                    record.id,
                    normalize_key(record.matched_card),
                )
            else:
                seen.add(key)
                survivors.append(record)

        return survivors, removed

    def _to_transaction(
        self, iban: str, group: list[CandidateRefundRecord]
    ) -> ReconciledTransaction:
        first = group[0]
        merged = len(group) > 1
        if merged:
            remittance = f"{len(group)} {MERGE_MARKER} - {self.remittance_text}"
        else:
            remittance = self.remittance_text

        return ReconciledTransaction(
            refund_id=first.id,
            refund_ids=[r.id for r in group],
            creditor_name=sanitize_text(first.full_name),
            iban=iban,
            amount=sum((r.amount_recharged for r in group), Decimal(0)),
            merged=merged,
            remittance_info=remittance,
        )

"""Record- and batch-level validation of refund candidates.

Each ``check_*`` function inspects one record and returns the list of
problems it found (empty when the record is fine). Checks never stop at the
first failure: the caller needs every problem of every record so the whole
batch can be fixed in one go.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from app.core.logging import get_logger
from app.schemas.payment_file import (
    ValidationErrorType,
    ValidationIssue,
    ValidationReport,
)
from app.schemas.refund import CandidateRefundRecord
from app.services.payment_file.formatting import (
    MAX_TEXT_LENGTH,
    has_allowed_characters,
)
from app.services.payment_file.iban import is_valid_belgian_iban

logger = get_logger(__name__)

MAX_AMOUNT = Decimal("999999999.99")
_CENT = Decimal("0.01")

DEFAULT_WARNING_NOTE = "flagged for review by the matching step"


def _blank(value) -> bool:
    return value is None or not str(value).strip()


# ── Per-record checks ───────────────────────────────────────────────


def check_names(record: CandidateRefundRecord) -> list[ValidationIssue]:
    """First and last name must both be present."""
    issues: list[ValidationIssue] = []
    for field, label in (("first_name", "First name"), ("last_name", "Last name")):
        value = getattr(record, field)
        if _blank(value):
            issues.append(
                ValidationIssue(
                    error_type=ValidationErrorType.MISSING_REQUIRED_FIELD,
                    field=field,
                    value=value,
                    error_message=f"{label} is required",
                    refund_id=record.id,
                )
            )
    return issues


def check_account(record: CandidateRefundRecord) -> list[ValidationIssue]:
    """The payee account must be a valid Belgian IBAN."""
    if _blank(record.account):
        return [
            ValidationIssue(
                error_type=ValidationErrorType.MISSING_REQUIRED_FIELD,
                field="account",
                value=record.account,
                error_message="Account (IBAN) is required",
                refund_id=record.id,
            )
        ]
    if not is_valid_belgian_iban(record.account):
        return [
            ValidationIssue(
                error_type=ValidationErrorType.INVALID_IBAN,
                field="account",
                value=record.account,
                error_message="Invalid IBAN format",
                refund_id=record.id,
            )
        ]
    return []


def check_amount(record: CandidateRefundRecord) -> list[ValidationIssue]:
    """Amount must be a finite number in (0, 999,999,999.99], in whole cents."""
    amount = record.amount_recharged
    if (
        not isinstance(amount, Decimal)
        or not amount.is_finite()
        or amount <= 0
    ):
        return [
            ValidationIssue(
                error_type=ValidationErrorType.INVALID_AMOUNT,
                field="amount_recharged",
                value=amount,
                error_message="Amount must be a positive number",
                refund_id=record.id,
            )
        ]
    if amount > MAX_AMOUNT:
        return [
            ValidationIssue(
                error_type=ValidationErrorType.INVALID_AMOUNT,
                field="amount_recharged",
                value=amount,
                error_message="Amount exceeds maximum limit (999,999,999.99 EUR)",
                refund_id=record.id,
            )
        ]
    # Whole cents only: InstdAmt and CtrlSum carry exactly two decimals
    if amount != amount.quantize(_CENT):
        return [
            ValidationIssue(
                error_type=ValidationErrorType.INVALID_AMOUNT,
                field="amount_recharged",
                value=amount,
                error_message="Amount must not have more than two decimals",
                refund_id=record.id,
            )
        ]
    return []


def check_creditor_name(record: CandidateRefundRecord) -> list[ValidationIssue]:
    """The combined 'first last' name must fit the bank's charset and length."""
    issues: list[ValidationIssue] = []
    full_name = record.full_name
    if not has_allowed_characters(full_name):
        issues.append(
            ValidationIssue(
                error_type=ValidationErrorType.INVALID_CHARACTER_SET,
                field="name",
                value=full_name,
                error_message="Name contains invalid characters",
                refund_id=record.id,
            )
        )
    if len(full_name) > MAX_TEXT_LENGTH:
        issues.append(
            ValidationIssue(
                error_type=ValidationErrorType.FIELD_TOO_LONG,
                field="name",
                value=full_name,
                error_message=(
                    f"Name exceeds maximum length ({MAX_TEXT_LENGTH} characters)"
                ),
                refund_id=record.id,
            )
        )
    return issues


RECORD_CHECKS = (check_names, check_account, check_amount, check_creditor_name)


# ── Batch validation ────────────────────────────────────────────────


class RecordValidator:
    """Validates a batch of refund candidates before any XML is produced."""

    def validate(self, records: Sequence[CandidateRefundRecord]) -> ValidationReport:
        """Run every check on every record and collect the outcome.

        Args:
            records: Candidate refunds in upstream order.

        Returns:
            A ``ValidationReport``; the batch is valid iff it has no errors.
            Upstream ``warning`` notes are carried through as warnings.
        """
        if not records:
            return ValidationReport(
                is_valid=False,
                errors=[
                    ValidationIssue(
                        error_type=ValidationErrorType.MISSING_REQUIRED_FIELD,
                        field="refunds",
                        value=None,
                        error_message="No refund data provided",
                    )
                ],
            )

        errors: list[ValidationIssue] = []
        warnings: list[str] = []
        seen_ids: set[int] = set()

        for record in records:
            for check in RECORD_CHECKS:
                errors.extend(check(record))

            # Identifiers are derived from the refund id, so it must be unique
            if record.id in seen_ids:
                errors.append(
                    ValidationIssue(
                        error_type=ValidationErrorType.DUPLICATE_REFUND_ID,
                        field="id",
                        value=record.id,
                        error_message="Refund id appears more than once in the batch",
                        refund_id=record.id,
                    )
                )
            seen_ids.add(record.id)

            if record.validation_status == "warning":
                notes = [n for n in record.validation_notes if n and n.strip()]
                warnings.append(
                    f"Refund {record.id}: {', '.join(notes) or DEFAULT_WARNING_NOTE}"
                )

        if errors:
            logger.info(
                "Validation failed: records=%d errors=%d", len(records), len(errors)
            )
        else:
            logger.debug("Validation passed: records=%d", len(records))

        return ValidationReport(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
        )

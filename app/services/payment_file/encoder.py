"""Payment file encoder: public entry point of the refund payout core.

One encoder is built per debtor configuration. Each ``generate`` call:
  1. Validates the candidate refunds (all-or-nothing).
  2. Removes duplicates and merges transfers to the same IBAN.
  3. Assigns identifiers, formats amounts and text.
  4. Serializes the pain.001.001.03 document.

The encoder holds nothing but its immutable configuration, so a single
instance can be shared between threads or requests.
"""

from __future__ import annotations

import re
import time
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional, Sequence

from app.core.exceptions import ConfigurationError
from app.core.logging import get_logger, mask_iban
from app.schemas.payment_file import (
    DebtorConfiguration,
    DryRunReport,
    GenerationOptions,
    GenerationResult,
)
from app.schemas.refund import CandidateRefundRecord
from app.services.payment_file.document import DocumentBuilder
from app.services.payment_file.formatting import (
    format_amount,
    has_allowed_characters,
    round_amount,
)
from app.services.payment_file.iban import is_valid_belgian_iban
from app.services.payment_file.identifiers import IdentifierGenerator, utc_now
from app.services.payment_file.reconciler import ReconciliationEngine
from app.services.payment_file.validator import RecordValidator

logger = get_logger(__name__)

_BIC_RE = re.compile(r"^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$")


class PaymentFileEncoder:
    """Generates SEPA credit transfer files for refund payouts.

    Args:
        debtor: Identity and account of the paying organisation.
        options: Identifier prefixes and payment type settings.
        clock: Returns the current time; injectable for tests.

    Raises:
        ConfigurationError: At construction, on the first invalid debtor field.
    """

    def __init__(
        self,
        debtor: DebtorConfiguration,
        options: Optional[GenerationOptions] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.debtor = debtor
        self.options = options or GenerationOptions()
        self.clock = clock
        self.validator = RecordValidator()
        self.reconciler = ReconciliationEngine(
            duplicate_match=self.options.duplicate_match,
            remittance_text=self.options.remittance_text,
        )
        self.builder = DocumentBuilder(self.debtor, self.options)

        self._validate_debtor_configuration()

    # ── Public API ───────────────────────────────────────────────────

    def dry_run(self, records: Sequence[CandidateRefundRecord]) -> DryRunReport:
        """Validate and report the count and total that would be sent.

        Amounts that are missing or not finite are left out of the total;
        they already appear as validation errors.
        """
        report = self.validator.validate(records)
        amounts = [
            r.amount_recharged
            for r in records or []
            if r.amount_recharged is not None and r.amount_recharged.is_finite()
        ]
        return DryRunReport(
            is_valid=report.is_valid,
            errors=report.errors,
            warnings=report.warnings,
            transaction_count=len(records or []),
            total_amount=round_amount(sum(amounts, Decimal(0))),
        )

    def generate(self, records: Sequence[CandidateRefundRecord]) -> GenerationResult:
        """Produce a payment file for *records*.

        Never raises. Invalid input yields ``success=False`` with every
        validation error; an unexpected failure yields ``success=False``
        with a single generic message. No XML is returned in either case.
        """
        started = time.perf_counter()
        logger.info(
            "Payment file generation started: records=%d", len(records or [])
        )

        try:
            # 1. Validate
            report = self.validator.validate(records)
            if not report.is_valid:
                return GenerationResult(
                    success=False,
                    errors=[issue.describe() for issue in report.errors],
                    warnings=report.warnings,
                    generation_time_ms=self._elapsed_ms(started),
                )

            warnings = list(report.warnings)

            # 2. Reconcile
            reconciled = self.reconciler.reconcile(records)
            warnings.extend(reconciled.warnings)
            transactions = reconciled.transactions

            # 3. Identifiers and batch totals
            identifiers = IdentifierGenerator(
                message_id_prefix=self.options.message_id_prefix,
                payment_info_id_prefix=self.options.payment_info_id_prefix,
                clock=self.clock,
            )
            header = self.builder.build_header(
                transactions, identifiers, self._execution_date(identifiers.now)
            )

            # 4. Serialize
            xml_content = self.builder.build(header, transactions, identifiers)

        except Exception as exc:
            logger.exception("Payment file generation failed")
            return GenerationResult(
                success=False,
                errors=[f"XML generation failed: {exc}"],
                generation_time_ms=self._elapsed_ms(started),
            )

        logger.info(
            "Payment file generated: message_id=%s transactions=%d total=%s",
            header.message_id,
            header.transaction_count,
            format_amount(header.control_sum),
        )

        return GenerationResult(
            success=True,
            xml_content=xml_content,
            message_id=header.message_id,
            payment_info_id=header.payment_info_id,
            transaction_count=header.transaction_count,
            total_amount=round_amount(header.control_sum),
            warnings=warnings,
            generation_time_ms=self._elapsed_ms(started),
        )

    # ── Private helpers ──────────────────────────────────────────────

    def _validate_debtor_configuration(self) -> None:
        debtor = self.debtor
        if not debtor.name or not debtor.name.strip():
            raise ConfigurationError("Debtor name is required", field="name")
        if not debtor.iban:
            raise ConfigurationError("Debtor IBAN is required", field="iban")
        if not is_valid_belgian_iban(debtor.iban):
            raise ConfigurationError(
                f"Invalid debtor IBAN format: {debtor.iban}", field="iban"
            )
        if not debtor.country or not debtor.country.strip():
            raise ConfigurationError("Debtor country is required", field="country")
        if not has_allowed_characters(debtor.name):
            raise ConfigurationError(
                "Debtor name contains invalid characters", field="name"
            )
        if not _BIC_RE.match(debtor.bic.strip().upper()):
            raise ConfigurationError(
                f"Invalid debtor BIC format: {debtor.bic}", field="bic"
            )

        logger.debug(
            "Encoder configured: debtor=%s iban=%s",
            debtor.name,
            mask_iban(debtor.iban),
        )

    def _execution_date(self, now: datetime) -> date:
        if self.options.requested_execution_date:
            return self.options.requested_execution_date
        return (now + timedelta(days=1)).date()

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)

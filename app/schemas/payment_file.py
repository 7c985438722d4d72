"""Pydantic schemas for debtor configuration, options and generation results."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.refund import CandidateRefundRecord

DEFAULT_DEBTOR_BIC = "GKCCBEBB"
DEFAULT_ORGANIZATION_ISSUER = "KBO-BCE"


class DebtorConfiguration(BaseModel):
    """Identity and account of the organisation sending the transfers."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    iban: str = ""
    bic: str = DEFAULT_DEBTOR_BIC
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    country: str = ""
    organization_id: Optional[str] = None
    organization_issuer: Optional[str] = None

    @property
    def address_lines(self) -> list[str]:
        return [
            line
            for line in (self.address_line1, self.address_line2)
            if line and line.strip()
        ]


class GenerationOptions(BaseModel):
    """Per-encoder knobs for identifiers and the payment type block."""

    model_config = ConfigDict(frozen=True)

    message_id_prefix: str = "CBC"
    payment_info_id_prefix: str = "PMT"
    instruction_priority: Literal["NORM", "HIGH"] = "NORM"
    service_level: Literal["SEPA", "PRPT"] = "SEPA"
    category_purpose: Literal["SUPP", "SALA", "INTC", "TREA", "TAXS"] = "SUPP"
    charge_bearer: Literal["SLEV", "SHAR"] = "SLEV"
    batch_booking: bool = True
    requested_execution_date: Optional[date] = Field(
        None,
        description="Defaults to the next calendar day when unset",
    )
    remittance_text: str = "Remboursement Les Aperos du chateau"
    duplicate_match: Literal["card", "strict"] = Field(
        "card",
        description=(
            "card: same card identifier is a duplicate; "
            "strict: card identifier, IBAN and amount must all match"
        ),
    )


class ValidationErrorType(str, Enum):
    INVALID_IBAN = "INVALID_IBAN"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_CHARACTER_SET = "INVALID_CHARACTER_SET"
    FIELD_TOO_LONG = "FIELD_TOO_LONG"
    DUPLICATE_REFUND_ID = "DUPLICATE_REFUND_ID"


class ValidationIssue(BaseModel):
    """A single validation failure, tied to a record when there is one."""

    error_type: ValidationErrorType
    field: str
    value: Any = None
    error_message: str
    refund_id: Optional[int] = None

    def describe(self) -> str:
        if self.refund_id is None:
            return self.error_message
        return f"Refund {self.refund_id}: {self.error_message}"


class ValidationReport(BaseModel):
    """Outcome of validating a whole batch."""

    is_valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class GenerationResult(BaseModel):
    """Returned by every generate call; success=False never carries XML."""

    success: bool
    xml_content: Optional[str] = None
    message_id: Optional[str] = None
    payment_info_id: Optional[str] = None
    transaction_count: Optional[int] = None
    total_amount: Optional[Decimal] = None
    errors: Optional[list[str]] = None
    warnings: list[str] = Field(default_factory=list)
    generation_time_ms: int = 0

    def download_filename(self, now: Optional[datetime] = None) -> str:
        """Attachment name used when the file is handed to a browser."""
        stamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
        return f"CBC_Refunds_{self.message_id}_{stamp}.xml"


class GenerateRequest(BaseModel):
    """Request body for the payment file endpoints."""

    records: list[CandidateRefundRecord] = Field(default_factory=list)
    options: Optional[GenerationOptions] = None
    max_refunds: Optional[int] = Field(
        None,
        ge=1,
        description="Only the first max_refunds records are encoded",
    )
    include_warnings: bool = Field(
        False,
        description="Keep records the matching step flagged with a warning",
    )


class DryRunReport(ValidationReport):
    """Validation outcome plus the totals of the records that would be paid.

    Totals are taken over the selected records before duplicate removal and
    merging, so ``transaction_count`` is an upper bound on the transfers.
    """

    transaction_count: int = 0
    total_amount: Decimal = Decimal("0.00")

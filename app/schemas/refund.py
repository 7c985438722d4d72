"""Pydantic schemas for candidate refund records and reconciled transfers."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CandidateRefundRecord(BaseModel):
    """One refund candidate as emitted by the upstream matching step.

    Text fields are deliberately unconstrained: a blank name or a malformed
    IBAN must reach the record validator so it can be reported alongside
    every other problem in the batch, instead of failing at parse time.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Refund request identifier")
    created_at: Optional[datetime] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    account: Optional[str] = Field(
        None,
        description="Payee IBAN, any casing or spacing",
    )
    matched_card: Optional[str] = Field(
        None,
        description="Card identifier the refund was matched against",
    )
    amount_recharged: Optional[Decimal] = Field(
        None,
        description="Amount to refund, currency-less",
    )
    validation_status: Literal["valid", "warning", "error"] = "valid"
    validation_notes: list[str] = Field(default_factory=list)

    # Informational upstream fields, not written to the file
    email: Optional[str] = None
    id_card: Optional[str] = None
    card_balance: Optional[Decimal] = None
    card_exists: Optional[bool] = None

    @field_validator("amount_recharged", "card_balance", mode="before")
    @classmethod
    def _float_through_str(cls, value):
        # 28.1 as a float is not 28.1; go through its shortest repr instead
        if isinstance(value, float):
            return Decimal(repr(value))
        return value

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}"


class ReconciledTransaction(BaseModel):
    """One outgoing wire transfer after duplicate removal and merging."""

    model_config = ConfigDict(frozen=True)

    refund_id: int = Field(
        ...,
        description="First contributing refund; drives the payment identifiers",
    )
    refund_ids: list[int] = Field(
        ...,
        description="Every refund folded into this transfer, in input order",
    )
    creditor_name: str
    iban: str = Field(..., description="Normalized (compact, uppercase) IBAN")
    amount: Decimal
    merged: bool = False
    remittance_info: str

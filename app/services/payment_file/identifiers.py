"""Message, batch and per-transfer identifiers for a payment file."""

from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Callable, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IdentifierGenerator:
    """Builds the references written into one payment file.

    An instance is meant to live for a single generate call: the timestamp
    is captured once at construction so every identifier in the file agrees,
    and the random source is private to the instance so concurrent calls
    never share state.

    Args:
        message_id_prefix: Prefix of the group header message id.
        payment_info_id_prefix: Prefix of the payment information id.
        clock: Returns the current time; injectable for tests.
        rng: Random source for the message id suffix.
    """

    def __init__(
        self,
        message_id_prefix: str = "CBC",
        payment_info_id_prefix: str = "PMT",
        clock: Callable[[], datetime] = utc_now,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.message_id_prefix = message_id_prefix
        self.payment_info_id_prefix = payment_info_id_prefix
        self.now = clock()
        self._rng = rng or random.Random()

    @property
    def compact_timestamp(self) -> str:
        """YYYYMMDDHHMMSS"""
        return self.now.strftime("%Y%m%d%H%M%S")

    def message_id(self) -> str:
        """CBC20250815070000_042"""
        suffix = self._rng.randrange(1000)
        return f"{self.message_id_prefix}{self.compact_timestamp}_{suffix:03d}"

    def payment_info_id(self) -> str:
        """PMT_20250815070000"""
        return f"{self.payment_info_id_prefix}_{self.compact_timestamp}"

    def instruction_id(self, refund_id: int) -> str:
        """TXN000042_20250815"""
        return f"TXN{refund_id:06d}_{self.now.strftime('%Y%m%d')}"

    @staticmethod
    def end_to_end_id(refund_id: int) -> str:
        """REFUND_000042"""
        return f"REFUND_{refund_id:06d}"

    def creation_datetime(self) -> str:
        """ISO-8601 timestamp with time, second precision."""
        return self.now.isoformat(timespec="seconds")

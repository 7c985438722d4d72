"""Tests for payment file identifier generation."""

import random
from datetime import datetime, timezone

from app.services.payment_file.identifiers import IdentifierGenerator

NOW = datetime(2025, 8, 15, 7, 30, 45, tzinfo=timezone.utc)


def _generator(**kwargs) -> IdentifierGenerator:
    return IdentifierGenerator(clock=lambda: NOW, **kwargs)


class TestIdentifierGenerator:
    def test_message_id_layout(self):
        message_id = _generator(rng=random.Random(7)).message_id()
        prefix, suffix = message_id.split("_")
        assert prefix == "CBC20250815073045"
        assert len(suffix) == 3 and suffix.isdigit()

    def test_message_id_custom_prefix(self):
        gen = _generator(message_id_prefix="APERO")
        assert gen.message_id().startswith("APERO20250815073045_")

    def test_message_id_is_reproducible_with_seeded_rng(self):
        a = _generator(rng=random.Random(42)).message_id()
        b = _generator(rng=random.Random(42)).message_id()
        assert a == b

    def test_payment_info_id(self):
        assert _generator().payment_info_id() == "PMT_20250815073045"
        gen = _generator(payment_info_id_prefix="BATCH")
        assert gen.payment_info_id() == "BATCH_20250815073045"

    def test_instruction_id_is_zero_padded(self):
        assert _generator().instruction_id(42) == "TXN000042_20250815"

    def test_end_to_end_id_is_zero_padded(self):
        assert IdentifierGenerator.end_to_end_id(7) == "REFUND_000007"
        assert IdentifierGenerator.end_to_end_id(1234567) == "REFUND_1234567"

    def test_per_record_ids_are_unique_for_unique_refunds(self):
        gen = _generator()
        ids = range(1, 200)
        assert len({gen.instruction_id(i) for i in ids}) == len(ids)
        assert len({gen.end_to_end_id(i) for i in ids}) == len(ids)

    def test_clock_read_once(self):
        """All identifiers of one file share a single timestamp."""
        calls = []

        def clock():
            calls.append(1)
            return NOW

        gen = IdentifierGenerator(clock=clock)
        gen.message_id()
        gen.payment_info_id()
        gen.instruction_id(1)
        assert len(calls) == 1

    def test_creation_datetime_is_iso_with_time(self):
        assert _generator().creation_datetime() == "2025-08-15T07:30:45+00:00"

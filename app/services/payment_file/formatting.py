"""Text and amount formatting for the payment file.

Banks accept only a restricted Latin character set in pain.001 free-text
fields, and amounts must always carry exactly two decimals. These helpers
are pure and shared by the validator and the document builder.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

# Maximum length of a name / unstructured remittance field we emit
MAX_TEXT_LENGTH = 70

# Letters (accented Latin included, × and ÷ excluded), digits, space
# and / - ? : ( ) . , ' +
_ALLOWED_CHARS = r"A-Za-z0-9À-ÖØ-öø-ÿ/\-?:().,'+ "
_ALLOWED_TEXT_RE = re.compile(rf"[{_ALLOWED_CHARS}]*")
_DISALLOWED_CHAR_RE = re.compile(rf"[^{_ALLOWED_CHARS}]")
_WHITESPACE_RE = re.compile(r"\s+")

_CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def has_allowed_characters(text: Optional[str]) -> bool:
    """True if every character of *text* is in the bank's character set."""
    return _ALLOWED_TEXT_RE.fullmatch(text or "") is not None


def sanitize_text(text: Optional[str], max_length: int = MAX_TEXT_LENGTH) -> str:
    """Make free text safe for the file.

    Disallowed characters become a space, runs of whitespace collapse to
    one space, and the result is trimmed and clamped to *max_length*.

    Args:
        text: Raw text, may be None.
        max_length: Field limit, 70 for names.

    Returns:
        The cleaned text, or an empty string for empty input.
    """
    if not text:
        return ""
    cleaned = _DISALLOWED_CHAR_RE.sub(" ", text)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return cleaned[:max_length].rstrip()


def to_decimal(amount: Number) -> Decimal:
    """Convert to Decimal, going through str() for floats."""
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        return Decimal(repr(amount))
    return Decimal(amount)


def round_amount(amount: Number) -> Decimal:
    """Round half away from zero to cents."""
    return to_decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP)


def format_amount(amount: Number) -> str:
    """Format an amount with exactly two decimals: 28 -> '28.00'.

    Rounds half away from zero, so 999999.999 becomes '1000000.00'.
    Zero and negative values are formatted as-is; rejecting them is the
    validator's job.
    """
    return f"{round_amount(amount):.2f}"

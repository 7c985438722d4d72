"""Belgian IBAN validation (structure + ISO 7064 mod-97 checksum)."""

from __future__ import annotations

import re
from typing import Optional

_BELGIAN_IBAN_RE = re.compile(r"^BE\d{14}$")


def normalize_iban(iban: Optional[str]) -> str:
    """Strip all whitespace and uppercase: ' be68 5390 ' -> 'BE685390'."""
    if not iban:
        return ""
    return "".join(iban.split()).upper()


def iban_checksum_ok(iban: str) -> bool:
    """Run the mod-97 check on an already-normalized IBAN.

    The first four characters move to the end, letters become two-digit
    numbers (A=10 ... Z=35), and the resulting digit string is reduced
    digit by digit. A valid IBAN leaves a remainder of exactly 1.
    """
    rearranged = iban[4:] + iban[:4]
    numeric = "".join(
        str(ord(ch) - 55) if ch.isalpha() else ch for ch in rearranged
    )

    remainder = 0
    for digit in numeric:
        if not digit.isdigit():
            return False
        remainder = (remainder * 10 + int(digit)) % 97
    return remainder == 1


def is_valid_belgian_iban(iban: Optional[str]) -> bool:
    """Return True for a structurally valid Belgian IBAN with a good checksum.

    Never raises: empty, None, foreign or malformed input returns False.
    """
    clean = normalize_iban(iban)
    if not _BELGIAN_IBAN_RE.match(clean):
        return False
    return iban_checksum_ok(clean)

"""PII shape detection for user reference IDs.

User references embedded by host pages must be opaque (e.g. ``cust_ab12f9``).
A reference that looks like an e-mail, a phone number or a national/financial
identifier is treated as PII: the widget refuses (strict mode) or warns
(permissive mode) before it is sent anywhere.
"""

import re

# Known PII shapes, checked in order
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
CONTIGUOUS_DIGITS_PATTERN = re.compile(r"\d{10,}")
PHONE_PATTERN = re.compile(r"\+\d[\d\s\-()]{8,}\d")
CARD_PATTERN = re.compile(r"\b\d{4}[- ]\d{4}[- ]\d{4}[- ]\d{4}\b")
SSN_PATTERN = re.compile(r"\b\d{3}-\d{2}-\d{4}\b")
IBAN_PATTERN = re.compile(r"\b[A-Z]{2}\d{2}\s?\d{4}\s?\d{6}\b")
PASSPORT_PATTERN = re.compile(r"\b[A-Z]{2}\d{8}\b")
AADHAAR_PATTERN = re.compile(r"\b\d{4}\s\d{4}\s\d{4}\b")

IDENTIFIER_PATTERNS: tuple[re.Pattern[str], ...] = (
    CONTIGUOUS_DIGITS_PATTERN,
    PHONE_PATTERN,
    CARD_PATTERN,
    SSN_PATTERN,
    IBAN_PATTERN,
    PASSPORT_PATTERN,
    AADHAAR_PATTERN,
)


def is_potential_pii(value: object) -> bool:
    """Return True if value looks like personal data rather than an opaque ID.

    Heuristics:
    - anything containing both ``@`` and ``.`` (e-mail shaped)
    - 10 or more contiguous digits (phone, Aadhaar, account numbers)
    - international phone numbers with separators
    - card, SSN, IBAN and passport shaped strings

    Non-strings and empty strings are never PII.
    """
    if not value or not isinstance(value, str):
        return False

    if "@" in value and "." in value:
        return True

    return any(pattern.search(value) for pattern in IDENTIFIER_PATTERNS)

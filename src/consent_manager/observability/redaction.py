"""Redaction helpers for safe logging. All external data must pass through these."""

import hashlib
import re
from typing import Any

from consent_manager.domain.pii import (
    CARD_PATTERN,
    EMAIL_PATTERN,
    IBAN_PATTERN,
    PASSPORT_PATTERN,
    SSN_PATTERN,
)

# Patterns that should never appear in logs. Card/SSN run before the generic
# phone pattern so their separators are consumed as one match.
_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_REDACT_PATTERNS = (
    CARD_PATTERN,
    SSN_PATTERN,
    IBAN_PATTERN,
    PASSPORT_PATTERN,
    _PHONE_PATTERN,
    EMAIL_PATTERN,
)

_REDACTED = "[REDACTED]"


def redact_string(value: str) -> str:
    """Redact PII patterns from a string."""
    result = value
    for pattern in _REDACT_PATTERNS:
        result = pattern.sub(_REDACTED, result)
    return result


def redact_value(value: Any) -> str:
    """Redact any value for safe logging. Returns string representation."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        # For dicts, only log keys (structure), never values
        return f"dict(keys={list(value.keys())})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    # For any other type, only log type name
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted."""
    return {k: redact_value(v) for k, v in kwargs.items()}


def hash_identifier(value: str) -> str:
    """Non-reversible short hash for logging user references (sha256, 12 chars)."""
    return hashlib.sha256(value.encode()).hexdigest()[:12]

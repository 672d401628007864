"""Consent submission parsing and normalisation.

The submission endpoint is public (called by the widget from arbitrary host
pages), so the body is parsed by hand rather than through a strict schema:
missing fields map to a 400 envelope, optional fields get the widget's
defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from consent_manager.infra.time import from_millis, now_millis

SUBMISSION_STATUSES = ("accepted", "rejected", "partial")

DEFAULT_PLATFORM = "web"
DEFAULT_LANGUAGE = "en"


class InvalidSubmissionError(Exception):
    """Raised when a consent submission body is unusable."""

    def __init__(self, error: str, message: str) -> None:
        super().__init__(message)
        self.error = error
        self.message = message


@dataclass(frozen=True)
class ConsentSubmission:
    """Validated consent submission (wire payload, snake_case)."""

    template_id: str
    user_reference_id: str
    status: str
    purposes: list[str] = field(default_factory=list)
    timestamp: int = 0
    platform: str = DEFAULT_PLATFORM
    language: str = DEFAULT_LANGUAGE


def parse_submission(payload: Any) -> ConsentSubmission:
    """Validate a raw submission body.

    Raises:
        InvalidSubmissionError: On missing required fields, unknown status
            or malformed purposes/timestamp.
    """
    if not isinstance(payload, dict):
        raise InvalidSubmissionError("Invalid body", "Request body must be a JSON object")

    template_id = payload.get("templateId")
    user_reference_id = payload.get("userReferenceId")
    status = payload.get("status")

    if not template_id or not user_reference_id or not status:
        raise InvalidSubmissionError(
            "Missing required fields",
            "templateId, userReferenceId, and status are required",
        )

    if status not in SUBMISSION_STATUSES:
        raise InvalidSubmissionError(
            "Invalid status",
            "status must be accepted, rejected, or partial",
        )

    purposes = payload.get("purposes") or []
    if not isinstance(purposes, list) or not all(isinstance(p, str) for p in purposes):
        raise InvalidSubmissionError("Invalid purposes", "purposes must be a list of purpose IDs")

    timestamp = payload.get("timestamp") or now_millis()
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        raise InvalidSubmissionError("Invalid timestamp", "timestamp must be epoch milliseconds")
    try:
        from_millis(int(timestamp))
    except (OverflowError, ValueError, OSError):
        raise InvalidSubmissionError(
            "Invalid timestamp", "timestamp is outside the supported date range"
        ) from None

    return ConsentSubmission(
        template_id=str(template_id),
        user_reference_id=str(user_reference_id),
        status=status,
        purposes=_dedupe(purposes),
        timestamp=int(timestamp),
        platform=payload.get("platform") or DEFAULT_PLATFORM,
        language=payload.get("language") or DEFAULT_LANGUAGE,
    )


def with_required_purposes(purposes: list[str], required: list[str]) -> list[str]:
    """Ensure required purpose IDs are present, keeping submitted order.

    Missing required IDs are prepended in template order.
    """
    missing = [pid for pid in required if pid not in purposes]
    return missing + list(purposes)


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result

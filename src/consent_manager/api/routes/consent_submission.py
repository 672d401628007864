"""Consent Store endpoint: widget submissions and admin retrieval.

POST /api/blutic-svc/api/v1/public/consent-template/update-user  → upsert (public)
GET  /api/blutic-svc/api/v1/public/consent-template/update-user  → list (viewer+)

The POST path is part of the widget contract and must not move. Records are
keyed by (templateId, userReferenceId); repeated submissions update the
latest record and bump its version instead of adding rows.

Security: userReferenceId is never logged raw, only as a short hash.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from consent_manager.api.rbac import OrgRoleContext, require_org_role
from consent_manager.api.responses import error_response, success_response
from consent_manager.domain.consent import (
    InvalidSubmissionError,
    parse_submission,
    with_required_purposes,
)
from consent_manager.domain.pii import is_potential_pii
from consent_manager.domain.templates import required_purpose_ids
from consent_manager.infra.db import txn
from consent_manager.infra.repositories.consent_records_repository import (
    list_consent_records,
    upsert_consent_record,
)
from consent_manager.infra.repositories.templates_repository import get_template
from consent_manager.infra.time import to_iso, to_millis
from consent_manager.observability.correlation import get_correlation_id
from consent_manager.observability.logging import get_logger
from consent_manager.observability.redaction import hash_identifier, safe_log_context

SUBMISSION_PATH = "/api/blutic-svc/api/v1/public/consent-template/update-user"

router = APIRouter(tags=["consent"])
admin_router = APIRouter(tags=["consent"])

logger = get_logger(__name__)


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or "unknown"


def _record_to_response(record: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": record["id"],
        "templateId": record["template_id"],
        "userReferenceId": record["user_reference_id"],
        "status": record["status"],
        "purposes": record["accepted_purposes"],
        "timestamp": to_millis(record["consent_timestamp"]),
        "platform": record["platform"],
        "language": record["language"],
    }


@router.post(SUBMISSION_PATH)
async def submit_consent(request: Request) -> JSONResponse:
    """Record a consent decision from the widget.

    - 200 {success, message, data: record}
    - 400 invalid JSON / missing fields / invalid status / inactive template
    - 404 template does not exist
    - 500 on unexpected errors
    """
    correlation_id = get_correlation_id()

    try:
        payload = await request.json()
    except ValueError:
        logger.warning(
            "invalid json body",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return error_response(400, "Invalid JSON", "Request body must be valid JSON")

    try:
        submission = parse_submission(payload)
    except InvalidSubmissionError as e:
        logger.warning(
            "consent submission rejected",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id, error=e.error)},
        )
        return error_response(400, e.error, e.message)

    user_hash = hash_identifier(submission.user_reference_id)
    if is_potential_pii(submission.user_reference_id):
        logger.warning(
            "userReferenceId looks like PII",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id, user_hash=user_hash)},
        )

    try:
        with txn() as cur:
            template = get_template(cur, submission.template_id)
            if template is None:
                return error_response(
                    404,
                    "Template not found",
                    f"Template {submission.template_id} does not exist",
                )
            if template["status"] != "active":
                return error_response(
                    400, "Template not active", "Cannot collect consent for inactive template"
                )

            purposes = with_required_purposes(submission.purposes, required_purpose_ids(template))
            if purposes != submission.purposes:
                submission = replace(submission, purposes=purposes)

            record, created = upsert_consent_record(
                cur,
                submission,
                user_agent=request.headers.get("user-agent") or "unknown",
                ip_address=_client_ip(request),
            )
    except Exception:
        logger.exception(
            "consent collection failed",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    template_id=submission.template_id,
                    user_hash=user_hash,
                )
            },
        )
        return error_response(500, "Internal server error", "Failed to save consent record")

    logger.info(
        "consent saved",
        extra={
            "extra_fields": safe_log_context(
                correlationId=correlation_id,
                record_id=record["id"],
                template_id=submission.template_id,
                user_hash=user_hash,
                status=record["status"],
                purpose_count=len(record["accepted_purposes"]),
                version=record["version"],
                created=created,
                platform=record["platform"],
                language=record["language"],
            )
        },
    )
    return success_response(_record_to_response(record), message="Consent saved successfully")


@admin_router.get(SUBMISSION_PATH)
def list_consents(
    template_id: str | None = Query(None, alias="templateId"),
    user_reference_id: str | None = Query(None, alias="userReferenceId"),
    ctx: OrgRoleContext = Depends(require_org_role("viewer")),
) -> JSONResponse:
    """List consent records of the organization.

    At least one of templateId / userReferenceId is required so the
    endpoint cannot be used to dump every decision.
    """
    if not template_id and not user_reference_id:
        return error_response(
            400, "Filter required", "Please provide templateId or userReferenceId parameter"
        )

    with txn() as cur:
        records = list_consent_records(
            cur,
            template_id=template_id,
            user_reference_id=user_reference_id,
            organization_id=ctx.organization_id,
        )

    data = [
        {
            "id": r["id"],
            "templateId": r["template_id"],
            "userReferenceId": r["user_reference_id"],
            "status": r["status"],
            "acceptedPurposes": r["accepted_purposes"],
            "platform": r["platform"],
            "language": r["language"],
            "userAgent": r["user_agent"],
            "ipAddress": r["ip_address"],
            "consentTimestamp": to_iso(r["consent_timestamp"]),
            "expiryDate": to_iso(r["expiry_date"]),
            "version": r["version"],
            "createdAt": to_iso(r["created_at"]),
            "updatedAt": to_iso(r["updated_at"]),
        }
        for r in records
    ]
    return success_response(data, total=len(data))

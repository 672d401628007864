"""Consent analytics endpoint for the admin dashboard.

GET /api/analytics/consent?organization_id=...&templateId=&startDate=&endDate=&status=

READ-only aggregation over the organization's consent records. Dates are
ISO calendar dates, both ends inclusive.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from consent_manager.api.rbac import OrgRoleContext, require_org_role
from consent_manager.api.responses import error_response, success_response
from consent_manager.domain.analytics import compute_consent_analytics, filter_records
from consent_manager.infra.db import txn
from consent_manager.infra.repositories.consent_records_repository import list_consent_records
from consent_manager.infra.repositories.templates_repository import list_template_summaries
from consent_manager.infra.time import utc_now
from consent_manager.observability.logging import get_logger
from consent_manager.observability.redaction import safe_log_context

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

logger = get_logger(__name__)


def _parse_day(value: str | None, *, end_of_day: bool) -> datetime | None:
    """Parse YYYY-MM-DD to an aware UTC datetime bound.

    Raises:
        ValueError: If the value is not an ISO date.
    """
    if not value:
        return None
    day = date.fromisoformat(value)
    bound = time.max if end_of_day else time.min
    return datetime.combine(day, bound, tzinfo=timezone.utc)


@router.get("/consent")
def consent_analytics(
    template_id: str | None = Query(None, alias="templateId"),
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    status: str | None = Query(None),
    ctx: OrgRoleContext = Depends(require_org_role("viewer")),
) -> JSONResponse:
    """Overview, per-template, daily (30 days), platform, language and purpose stats."""
    try:
        start = _parse_day(start_date, end_of_day=False)
        end = _parse_day(end_date, end_of_day=True)
    except ValueError:
        return error_response(400, "Invalid date", "startDate and endDate must be YYYY-MM-DD")

    with txn() as cur:
        templates = list_template_summaries(cur, organization_id=ctx.organization_id)
        records = list_consent_records(
            cur,
            template_id=template_id,
            organization_id=ctx.organization_id,
            start=start,
            end=end,
        )

    if template_id:
        templates = [t for t in templates if t["id"] == template_id]

    records = filter_records(records, status=status)
    analytics = compute_consent_analytics(records, templates, today=utc_now().date())

    logger.info(
        "consent analytics computed",
        extra={
            "extra_fields": safe_log_context(
                organization_id=ctx.organization_id,
                template_id=template_id,
                record_count=len(records),
            )
        },
    )
    return success_response(analytics)

"""Public template endpoint consumed by the consent widget (Template Store).

GET /api/public/templates/{template_id}?language=..&platform=..

No authentication: the script loader and the banner iframe call this from
arbitrary host pages. Only active templates are served.
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Query
from fastapi.responses import JSONResponse

from consent_manager.api.responses import error_response, success_response
from consent_manager.domain.consent import DEFAULT_LANGUAGE, DEFAULT_PLATFORM
from consent_manager.domain.templates import (
    TemplateInactiveError,
    TemplateNotFoundError,
    build_public_snapshot,
)
from consent_manager.infra.db import txn
from consent_manager.infra.repositories.templates_repository import get_template
from consent_manager.observability.logging import get_logger
from consent_manager.observability.redaction import safe_log_context

router = APIRouter(prefix="/api/public/templates", tags=["public"])

logger = get_logger(__name__)


@router.get("/{template_id}")
def get_public_template(
    template_id: str = Path(..., description="Template ID"),
    language: str = Query(DEFAULT_LANGUAGE),
    platform: str = Query(DEFAULT_PLATFORM),
) -> JSONResponse:
    """Return the TemplateSnapshot for the widget.

    - 200 {success: true, data: snapshot}
    - 404 Template not found / Template not available (inactive)
    - 500 on unexpected errors
    """
    try:
        with txn() as cur:
            template = get_template(cur, template_id)

        if template is None:
            raise TemplateNotFoundError(template_id)

        snapshot = build_public_snapshot(template, language=language, platform=platform)

    except TemplateNotFoundError:
        return error_response(
            404, "Template not found", f"Template with ID {template_id} does not exist"
        )

    except TemplateInactiveError:
        return error_response(404, "Template not available", "Template is not active")

    except Exception:
        logger.exception(
            "public template fetch failed",
            extra={"extra_fields": safe_log_context(template_id=template_id)},
        )
        return error_response(500, "Internal server error", "Failed to fetch template")

    logger.info(
        "public template served",
        extra={
            "extra_fields": safe_log_context(
                template_id=template_id,
                language=language,
                platform=platform,
                purpose_count=len(snapshot["purposes"]),
            )
        },
    )
    return success_response(snapshot)

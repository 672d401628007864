"""Application settings of an organization.

GET /api/settings?organization_id=...  → current settings, defaults if unset (viewer+)
PUT /api/settings?organization_id=...  → update provided settings (admin)
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from consent_manager.api.rbac import OrgRoleContext, require_org_role
from consent_manager.api.responses import error_response, success_response
from consent_manager.infra.db import txn
from consent_manager.infra.repositories.settings_repository import (
    get_app_settings,
    save_app_settings,
)
from consent_manager.observability.logging import get_logger
from consent_manager.observability.redaction import safe_log_context

router = APIRouter(prefix="/api/settings", tags=["settings"])

logger = get_logger(__name__)

# Wire name → column
_FIELD_COLUMNS = {
    "allowPurposeCreationInBanner": "allow_purpose_creation_in_banner",
    "requirePurposeApproval": "require_purpose_approval",
    "defaultPurposeValidity": "default_purpose_validity",
    "enableAdvancedPurposeFields": "enable_advanced_purpose_fields",
}


class UpdateSettingsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    allowPurposeCreationInBanner: bool | None = None
    requirePurposeApproval: bool | None = None
    defaultPurposeValidity: int | None = Field(None, ge=1, le=120)
    enableAdvancedPurposeFields: bool | None = None


def _settings_to_dict(settings: dict[str, Any]) -> dict[str, Any]:
    return {field: settings[column] for field, column in _FIELD_COLUMNS.items()}


@router.get("")
def get_settings(
    ctx: OrgRoleContext = Depends(require_org_role("viewer")),
) -> JSONResponse:
    with txn() as cur:
        settings = get_app_settings(cur, organization_id=ctx.organization_id)

    return success_response(_settings_to_dict(settings))


@router.put("")
def update_settings(
    body: UpdateSettingsRequest,
    ctx: OrgRoleContext = Depends(require_org_role("admin")),
) -> JSONResponse:
    """Settings left out of the body keep their current value."""
    provided = body.model_dump(exclude_none=True)
    if not provided:
        return error_response(400, "No fields to update")

    with txn() as cur:
        current = get_app_settings(cur, organization_id=ctx.organization_id)
        merged = {**current, **{_FIELD_COLUMNS[k]: v for k, v in provided.items()}}
        settings = save_app_settings(cur, organization_id=ctx.organization_id, settings=merged)

    logger.info(
        "app settings updated",
        extra={
            "extra_fields": safe_log_context(
                organization_id=ctx.organization_id,
                fields=",".join(sorted(provided)),
            )
        },
    )
    return success_response(_settings_to_dict(settings), message="Settings updated successfully")

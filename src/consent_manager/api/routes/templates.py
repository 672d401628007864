"""Consent template endpoints for the admin console.

GET    /api/templates?organization_id=...&status=&page=&limit=  → list   (viewer+)
POST   /api/templates?organization_id=...                       → create (editor+)
GET    /api/templates/{id}?organization_id=...                  → read   (viewer+)
PUT    /api/templates/{id}?organization_id=...                  → update (editor+)
DELETE /api/templates/{id}?organization_id=...                  → delete (admin)

Templates are created as drafts; the widget only ever sees active ones.
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from consent_manager.api.rbac import OrgRoleContext, require_org_role
from consent_manager.api.responses import error_response, success_response
from consent_manager.domain.templates import HEX_COLOR_REGEX, PURPOSE_ID_REGEX
from consent_manager.infra.db import txn
from consent_manager.infra.repositories.templates_repository import (
    delete_template,
    get_template,
    insert_template,
    list_templates,
    update_template,
)
from consent_manager.infra.time import to_iso
from consent_manager.observability.logging import get_logger
from consent_manager.observability.redaction import safe_log_context

router = APIRouter(prefix="/api/templates", tags=["templates"])

# Only description may be cleared with an explicit null
_NOT_NULL_FIELDS = ("name", "status", "config", "purposes", "translations")

logger = get_logger(__name__)


# ── Schemas ───────────────────────────────────────────────────────────────────


class BannerConfigModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    acceptButtonText: str = Field(..., min_length=1)
    rejectButtonText: str = Field(..., min_length=1)
    customizeButtonText: str = Field(..., min_length=1)
    position: Literal["bottom", "top", "center"] = "bottom"
    theme: Literal["light", "dark", "auto"] = "light"
    primaryColor: str = Field("#3b82f6", pattern=HEX_COLOR_REGEX)
    backgroundColor: str = Field("#ffffff", pattern=HEX_COLOR_REGEX)
    textColor: str = Field("#374151", pattern=HEX_COLOR_REGEX)


class PurposeModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1, pattern=PURPOSE_ID_REGEX)
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    required: bool = False
    category: Literal["essential", "analytics", "marketing", "personalization", "other"]


class CreateTemplateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    description: str | None = None
    status: Literal["active", "inactive", "draft"] = "draft"
    config: BannerConfigModel
    purposes: list[PurposeModel] = Field(..., min_length=1)
    translations: dict[str, dict[str, Any]] = Field(default_factory=dict)


class UpdateTemplateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1)
    description: str | None = None
    status: Literal["active", "inactive", "draft"] | None = None
    config: BannerConfigModel | None = None
    purposes: list[PurposeModel] | None = Field(None, min_length=1)
    translations: dict[str, dict[str, Any]] | None = None


# ── Helper ────────────────────────────────────────────────────────────────────


def _template_to_dict(template: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": template["id"],
        "organizationId": template["organization_id"],
        "name": template["name"],
        "description": template["description"],
        "status": template["status"],
        "config": template["banner_config"],
        "purposes": template["purposes"],
        "translations": template["translations"],
        "createdBy": template["created_by"],
        "createdAt": to_iso(template["created_at"]),
        "updatedAt": to_iso(template["updated_at"]),
    }


def _duplicate_purpose_ids(purposes: list[PurposeModel]) -> bool:
    ids = [p.id for p in purposes]
    return len(ids) != len(set(ids))


# ── GET /api/templates ────────────────────────────────────────────────────────


@router.get("")
def list_consent_templates(
    status: Literal["active", "inactive", "draft"] | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    ctx: OrgRoleContext = Depends(require_org_role("viewer")),
) -> JSONResponse:
    """List the organization's templates, most recently updated first."""
    with txn() as cur:
        templates, total = list_templates(
            cur,
            organization_id=ctx.organization_id,
            status=status,
            limit=limit,
            offset=(page - 1) * limit,
        )

    return success_response(
        [_template_to_dict(t) for t in templates],
        pagination={
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    )


# ── POST /api/templates ───────────────────────────────────────────────────────


@router.post("")
def create_consent_template(
    body: CreateTemplateRequest,
    ctx: OrgRoleContext = Depends(require_org_role("editor")),
) -> JSONResponse:
    """Create a template. Purpose ids must be unique within the template."""
    if _duplicate_purpose_ids(body.purposes):
        return error_response(400, "Validation failed", "Purpose IDs must be unique")

    with txn() as cur:
        template = insert_template(
            cur,
            organization_id=ctx.organization_id,
            name=body.name,
            description=body.description,
            status=body.status,
            banner_config=body.config.model_dump(),
            purposes=[p.model_dump() for p in body.purposes],
            translations=body.translations,
            created_by=ctx.user.id,
        )

    logger.info(
        "template created",
        extra={
            "extra_fields": safe_log_context(
                template_id=template["id"],
                organization_id=ctx.organization_id,
                status=template["status"],
                purpose_count=len(template["purposes"]),
            )
        },
    )
    return success_response(
        _template_to_dict(template), status_code=201, message="Template created successfully"
    )


# ── GET /api/templates/{template_id} ──────────────────────────────────────────


@router.get("/{template_id}")
def get_consent_template(
    template_id: str = Path(..., description="Template ID"),
    ctx: OrgRoleContext = Depends(require_org_role("viewer")),
) -> JSONResponse:
    with txn() as cur:
        template = get_template(cur, template_id)

    # Templates of other organizations are reported as missing
    if template is None or template["organization_id"] != ctx.organization_id:
        return error_response(404, "Template not found")

    return success_response(_template_to_dict(template))


# ── PUT /api/templates/{template_id} ──────────────────────────────────────────


@router.put("/{template_id}")
def update_consent_template(
    template_id: str = Path(..., description="Template ID"),
    body: UpdateTemplateRequest = ...,
    ctx: OrgRoleContext = Depends(require_org_role("editor")),
) -> JSONResponse:
    """Partial update: only the provided fields change."""
    provided = body.model_dump(exclude_unset=True)
    if not provided:
        return error_response(400, "No fields to update")
    null_fields = sorted(k for k in _NOT_NULL_FIELDS if k in provided and provided[k] is None)
    if null_fields:
        return error_response(400, "Validation failed", f"{', '.join(null_fields)} cannot be null")
    if body.purposes is not None and _duplicate_purpose_ids(body.purposes):
        return error_response(400, "Validation failed", "Purpose IDs must be unique")

    if "config" in provided:
        provided["banner_config"] = provided.pop("config")

    with txn() as cur:
        template = update_template(
            cur, template_id, organization_id=ctx.organization_id, fields=provided
        )

    if template is None:
        return error_response(404, "Template not found")

    logger.info(
        "template updated",
        extra={
            "extra_fields": safe_log_context(
                template_id=template_id,
                organization_id=ctx.organization_id,
                fields=",".join(sorted(provided)),
            )
        },
    )
    return success_response(_template_to_dict(template), message="Template updated successfully")


# ── DELETE /api/templates/{template_id} ───────────────────────────────────────


@router.delete("/{template_id}")
def delete_consent_template(
    template_id: str = Path(..., description="Template ID"),
    ctx: OrgRoleContext = Depends(require_org_role("admin")),
) -> JSONResponse:
    with txn() as cur:
        deleted = delete_template(cur, template_id, organization_id=ctx.organization_id)

    if not deleted:
        return error_response(404, "Template not found")

    logger.info(
        "template deleted",
        extra={
            "extra_fields": safe_log_context(
                template_id=template_id, organization_id=ctx.organization_id
            )
        },
    )
    return success_response({"id": template_id}, message="Template deleted successfully")

"""Purpose library endpoints (reusable purposes of an organization).

GET    /api/purposes?organization_id=...        → list   (viewer+)
POST   /api/purposes?organization_id=...        → create (editor+)
GET    /api/purposes/{id}?organization_id=...   → read   (viewer+)
PUT    /api/purposes/{id}?organization_id=...   → update (editor+)
DELETE /api/purposes/{id}?organization_id=...   → delete (admin)
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, Path
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from consent_manager.api.rbac import OrgRoleContext, require_org_role
from consent_manager.api.responses import error_response, success_response
from consent_manager.infra.db import txn
from consent_manager.infra.repositories.purposes_repository import (
    delete_purpose,
    get_purpose,
    insert_purpose,
    list_purposes,
    update_purpose,
)
from consent_manager.infra.time import to_iso

router = APIRouter(prefix="/api/purposes", tags=["purposes"])

Category = Literal["essential", "analytics", "marketing", "personalization", "other"]


# ── Schemas ───────────────────────────────────────────────────────────────────


class CreatePurposeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    required: bool = False
    category: Category = "other"
    is_active: bool = True


class UpdatePurposeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1)
    description: str | None = Field(None, min_length=1)
    required: bool | None = None
    category: Category | None = None
    is_active: bool | None = None


# ── Helper ────────────────────────────────────────────────────────────────────


def _purpose_to_dict(purpose: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": purpose["id"],
        "name": purpose["name"],
        "description": purpose["description"],
        "required": purpose["required"],
        "category": purpose["category"],
        "isActive": purpose["is_active"],
        "usageCount": purpose["usage_count"],
        "createdAt": to_iso(purpose["created_at"]),
        "updatedAt": to_iso(purpose["updated_at"]),
    }


# ── GET /api/purposes ─────────────────────────────────────────────────────────


@router.get("")
def list_consent_purposes(
    ctx: OrgRoleContext = Depends(require_org_role("viewer")),
) -> JSONResponse:
    with txn() as cur:
        purposes = list_purposes(cur, organization_id=ctx.organization_id)

    return success_response([_purpose_to_dict(p) for p in purposes], total=len(purposes))


# ── POST /api/purposes ────────────────────────────────────────────────────────


@router.post("")
def create_consent_purpose(
    body: CreatePurposeRequest,
    ctx: OrgRoleContext = Depends(require_org_role("editor")),
) -> JSONResponse:
    with txn() as cur:
        purpose = insert_purpose(
            cur,
            organization_id=ctx.organization_id,
            name=body.name,
            description=body.description,
            required=body.required,
            category=body.category,
            is_active=body.is_active,
        )

    return success_response(
        _purpose_to_dict(purpose), status_code=201, message="Purpose created successfully"
    )


# ── GET /api/purposes/{purpose_id} ────────────────────────────────────────────


@router.get("/{purpose_id}")
def get_consent_purpose(
    purpose_id: str = Path(..., description="Purpose ID"),
    ctx: OrgRoleContext = Depends(require_org_role("viewer")),
) -> JSONResponse:
    with txn() as cur:
        purpose = get_purpose(cur, purpose_id, organization_id=ctx.organization_id)

    if purpose is None:
        return error_response(404, "Purpose not found")
    return success_response(_purpose_to_dict(purpose))


# ── PUT /api/purposes/{purpose_id} ────────────────────────────────────────────


@router.put("/{purpose_id}")
def update_consent_purpose(
    purpose_id: str = Path(..., description="Purpose ID"),
    body: UpdatePurposeRequest = ...,
    ctx: OrgRoleContext = Depends(require_org_role("editor")),
) -> JSONResponse:
    """Partial update: only non-null fields are written."""
    fields = body.model_dump(exclude_none=True)
    if not fields:
        return error_response(400, "No fields to update")

    with txn() as cur:
        purpose = update_purpose(
            cur, purpose_id, organization_id=ctx.organization_id, fields=fields
        )

    if purpose is None:
        return error_response(404, "Purpose not found")
    return success_response(_purpose_to_dict(purpose), message="Purpose updated successfully")


# ── DELETE /api/purposes/{purpose_id} ─────────────────────────────────────────


@router.delete("/{purpose_id}")
def delete_consent_purpose(
    purpose_id: str = Path(..., description="Purpose ID"),
    ctx: OrgRoleContext = Depends(require_org_role("admin")),
) -> JSONResponse:
    with txn() as cur:
        deleted = delete_purpose(cur, purpose_id, organization_id=ctx.organization_id)

    if not deleted:
        return error_response(404, "Purpose not found")
    return success_response({"id": purpose_id}, message="Purpose deleted successfully")

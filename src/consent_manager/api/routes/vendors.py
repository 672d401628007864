"""Vendor and Data Processing Agreement (DPA) endpoints.

GET    /api/vendors?organization_id=...                  → list + stats (viewer+)
POST   /api/vendors?organization_id=...                  → create       (editor+)
POST   /api/vendors/bulk-actions?organization_id=...     → bulk DPA/activation (admin)
POST   /api/vendors/access-check?organization_id=...     → access decision (viewer+)
GET    /api/vendors/{id}?organization_id=...             → read         (viewer+)
PUT    /api/vendors/{id}?organization_id=...             → update       (editor+)
DELETE /api/vendors/{id}?organization_id=...             → delete       (admin)
POST   /api/vendors/{id}/approve?organization_id=...     → approve DPA  (admin)
DELETE /api/vendors/{id}/approve?organization_id=...     → reject DPA   (admin)
POST   /api/vendors/{id}/upload-dpa?organization_id=...  → upload DPA PDF (editor+)
"""

from __future__ import annotations

import os
import re
from datetime import date
from pathlib import Path as FsPath
from typing import Any, Literal

from fastapi import APIRouter, Depends, File, Path, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from consent_manager.api.rbac import OrgRoleContext, require_org_role
from consent_manager.api.responses import error_response, success_response
from consent_manager.domain.vendors import DPA_DEFAULT_VALIDITY, check_vendor_access
from consent_manager.infra.db import txn
from consent_manager.infra.repositories.vendors_repository import (
    delete_vendor,
    get_vendor,
    insert_vendor,
    list_vendors,
    update_vendor,
    vendor_stats,
)
from consent_manager.infra.time import now_millis, to_iso, utc_now
from consent_manager.observability.logging import get_logger
from consent_manager.observability.redaction import safe_log_context

router = APIRouter(prefix="/api/vendors", tags=["vendors"])

logger = get_logger(__name__)

Category = Literal["analytics", "kyc", "messaging", "infra", "payments", "other"]
DataType = Literal["name", "email", "phone", "address", "aadhaar", "pan", "device_data"]
VendorPurpose = Literal[
    "user_authentication",
    "kyc_verification",
    "fraud_detection",
    "analytics",
    "communication",
    "customer_support",
]

MAX_DPA_BYTES = 10 * 1024 * 1024


# ── Schemas ───────────────────────────────────────────────────────────────────


class CreateVendorRequest(BaseModel):
    """Required fields are checked in the handler (400, not 422)."""

    model_config = ConfigDict(extra="forbid")

    vendor_name: str | None = None
    category: Category | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    notes: str | None = None


class UpdateVendorRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    vendor_name: str | None = None
    category: Category | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    notes: str | None = None
    allowed_purposes: list[VendorPurpose] | None = None
    allowed_data_types: list[DataType] | None = None
    is_active: bool | None = None


class ApproveDpaRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dpa_signed_on: date | None = None
    dpa_valid_till: date | None = None
    dpa_file_url: str | None = None


class BulkActionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    action: str | None = None
    vendor_ids: list[str] | None = None


class AccessCheckRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    vendor_id: str | None = None
    purpose: str | None = None
    data_types: list[str] | None = None


# ── Helpers ───────────────────────────────────────────────────────────────────


def _vendor_to_dict(vendor: dict[str, Any]) -> dict[str, Any]:
    return {
        "vendor_id": vendor["vendor_id"],
        "vendor_name": vendor["vendor_name"],
        "category": vendor["category"],
        "contact_name": vendor["contact_name"],
        "contact_email": vendor["contact_email"],
        "notes": vendor["notes"],
        "dpa_status": vendor["dpa_status"],
        "dpa_file_url": vendor["dpa_file_url"],
        "dpa_signed_on": to_iso(vendor["dpa_signed_on"]),
        "dpa_valid_till": to_iso(vendor["dpa_valid_till"]),
        "allowed_purposes": vendor["allowed_purposes"],
        "allowed_data_types": vendor["allowed_data_types"],
        "risk_level": vendor["risk_level"],
        "is_active": vendor["is_active"],
        "created_at": to_iso(vendor["created_at"]),
        "updated_at": to_iso(vendor["updated_at"]),
    }


def _bulk_fields(action: str) -> dict[str, Any] | None:
    """Fields written by a bulk action (None for unknown actions)."""
    if action == "approve":
        today = utc_now().date()
        return {
            "dpa_status": "APPROVED",
            "dpa_signed_on": today,
            "dpa_valid_till": today + DPA_DEFAULT_VALIDITY,
        }
    if action == "reject":
        return {"dpa_status": "REJECTED"}
    if action == "activate":
        return {"is_active": True}
    if action == "deactivate":
        return {"is_active": False}
    return None


def _dpa_upload_dir() -> FsPath:
    return FsPath(os.environ.get("DPA_UPLOAD_DIR", "uploads/dpa"))


def _dpa_public_prefix() -> str:
    return os.environ.get("DPA_PUBLIC_URL_PREFIX", "/uploads/dpa").rstrip("/")


# ── GET /api/vendors ──────────────────────────────────────────────────────────


@router.get("")
def list_all_vendors(
    ctx: OrgRoleContext = Depends(require_org_role("viewer")),
) -> JSONResponse:
    with txn() as cur:
        vendors = list_vendors(cur, organization_id=ctx.organization_id)
        stats = vendor_stats(cur, organization_id=ctx.organization_id)

    return success_response([_vendor_to_dict(v) for v in vendors], stats=stats)


# ── POST /api/vendors ─────────────────────────────────────────────────────────


@router.post("")
def create_vendor(
    body: CreateVendorRequest,
    ctx: OrgRoleContext = Depends(require_org_role("editor")),
) -> JSONResponse:
    if not (body.vendor_name and body.category and body.contact_name and body.contact_email):
        return error_response(400, "Missing required fields")

    with txn() as cur:
        vendor = insert_vendor(
            cur,
            organization_id=ctx.organization_id,
            vendor_name=body.vendor_name,
            category=body.category,
            contact_name=body.contact_name,
            contact_email=body.contact_email,
            notes=body.notes,
        )

    logger.info(
        "vendor created",
        extra={
            "extra_fields": safe_log_context(
                vendor_id=vendor["vendor_id"],
                organization_id=ctx.organization_id,
                category=vendor["category"],
                risk_level=vendor["risk_level"],
            )
        },
    )
    return success_response(
        _vendor_to_dict(vendor), status_code=201, message="Vendor created successfully"
    )


# ── POST /api/vendors/bulk-actions ────────────────────────────────────────────


@router.post("/bulk-actions")
def bulk_vendor_action(
    body: BulkActionRequest,
    ctx: OrgRoleContext = Depends(require_org_role("admin")),
) -> JSONResponse:
    """Apply one action to many vendors; unknown ids are skipped."""
    if not body.action or body.vendor_ids is None:
        return error_response(400, "Missing action or vendor_ids")

    fields = _bulk_fields(body.action)
    if fields is None:
        return error_response(400, "Invalid action")

    results = []
    with txn() as cur:
        for vendor_id in body.vendor_ids:
            vendor = update_vendor(
                cur, vendor_id, organization_id=ctx.organization_id, fields=fields
            )
            if vendor is not None:
                results.append(vendor)

    logger.info(
        "vendor bulk action",
        extra={
            "extra_fields": safe_log_context(
                organization_id=ctx.organization_id,
                action=body.action,
                requested=len(body.vendor_ids),
                updated=len(results),
            )
        },
    )
    return success_response(
        [_vendor_to_dict(v) for v in results],
        message=f"Bulk {body.action} completed for {len(results)} vendors",
    )


# ── POST /api/vendors/access-check ────────────────────────────────────────────


@router.post("/access-check")
def vendor_access_check(
    body: AccessCheckRequest,
    ctx: OrgRoleContext = Depends(require_org_role("viewer")),
) -> JSONResponse:
    if not body.vendor_id or not body.purpose or body.data_types is None:
        return error_response(400, "Missing required fields: vendor_id, purpose, data_types")

    with txn() as cur:
        vendor = get_vendor(cur, body.vendor_id, organization_id=ctx.organization_id)

    if vendor is None:
        return error_response(404, "Vendor not found")

    decision = check_vendor_access(
        vendor, purpose=body.purpose, data_types=body.data_types, today=utc_now().date()
    )

    logger.info(
        "vendor access checked",
        extra={
            "extra_fields": safe_log_context(
                vendor_id=body.vendor_id,
                purpose=body.purpose,
                data_types=",".join(body.data_types),
                access_granted=decision.granted,
            )
        },
    )
    return success_response(
        {
            "vendor_id": body.vendor_id,
            "purpose": body.purpose,
            "data_types": body.data_types,
            "access_granted": decision.granted,
            "reason": decision.reason,
        }
    )


# ── GET /api/vendors/{vendor_id} ──────────────────────────────────────────────


@router.get("/{vendor_id}")
def get_vendor_by_id(
    vendor_id: str = Path(..., description="Vendor ID"),
    ctx: OrgRoleContext = Depends(require_org_role("viewer")),
) -> JSONResponse:
    with txn() as cur:
        vendor = get_vendor(cur, vendor_id, organization_id=ctx.organization_id)

    if vendor is None:
        return error_response(404, "Vendor not found")
    return success_response(_vendor_to_dict(vendor))


# ── PUT /api/vendors/{vendor_id} ──────────────────────────────────────────────


@router.put("/{vendor_id}")
def update_vendor_by_id(
    vendor_id: str = Path(..., description="Vendor ID"),
    body: UpdateVendorRequest = ...,
    ctx: OrgRoleContext = Depends(require_org_role("editor")),
) -> JSONResponse:
    """Partial update: only non-null fields are written."""
    fields = body.model_dump(exclude_none=True)
    if not fields:
        return error_response(400, "No fields to update")

    with txn() as cur:
        vendor = update_vendor(cur, vendor_id, organization_id=ctx.organization_id, fields=fields)

    if vendor is None:
        return error_response(404, "Vendor not found")
    return success_response(_vendor_to_dict(vendor), message="Vendor updated successfully")


# ── DELETE /api/vendors/{vendor_id} ───────────────────────────────────────────


@router.delete("/{vendor_id}")
def delete_vendor_by_id(
    vendor_id: str = Path(..., description="Vendor ID"),
    ctx: OrgRoleContext = Depends(require_org_role("admin")),
) -> JSONResponse:
    with txn() as cur:
        deleted = delete_vendor(cur, vendor_id, organization_id=ctx.organization_id)

    if not deleted:
        return error_response(404, "Vendor not found")

    logger.info(
        "vendor deleted",
        extra={
            "extra_fields": safe_log_context(
                vendor_id=vendor_id, organization_id=ctx.organization_id
            )
        },
    )
    return success_response({"vendor_id": vendor_id}, message="Vendor deleted successfully")


# ── POST/DELETE /api/vendors/{vendor_id}/approve ──────────────────────────────


@router.post("/{vendor_id}/approve")
def approve_vendor_dpa(
    vendor_id: str = Path(..., description="Vendor ID"),
    body: ApproveDpaRequest | None = None,
    ctx: OrgRoleContext = Depends(require_org_role("admin")),
) -> JSONResponse:
    """Approve the DPA. Signed date defaults to today."""
    body = body or ApproveDpaRequest()
    fields: dict[str, Any] = {
        "dpa_status": "APPROVED",
        "dpa_signed_on": body.dpa_signed_on or utc_now().date(),
    }
    if body.dpa_valid_till is not None:
        fields["dpa_valid_till"] = body.dpa_valid_till
    if body.dpa_file_url is not None:
        fields["dpa_file_url"] = body.dpa_file_url

    with txn() as cur:
        vendor = update_vendor(cur, vendor_id, organization_id=ctx.organization_id, fields=fields)

    if vendor is None:
        return error_response(404, "Vendor not found")

    logger.info(
        "vendor dpa approved",
        extra={
            "extra_fields": safe_log_context(
                vendor_id=vendor_id,
                organization_id=ctx.organization_id,
                risk_level=vendor["risk_level"],
            )
        },
    )
    return success_response(_vendor_to_dict(vendor), message="Vendor DPA approved successfully")


@router.delete("/{vendor_id}/approve")
def reject_vendor_dpa(
    vendor_id: str = Path(..., description="Vendor ID"),
    ctx: OrgRoleContext = Depends(require_org_role("admin")),
) -> JSONResponse:
    with txn() as cur:
        vendor = update_vendor(
            cur, vendor_id, organization_id=ctx.organization_id, fields={"dpa_status": "REJECTED"}
        )

    if vendor is None:
        return error_response(404, "Vendor not found")

    logger.info(
        "vendor dpa rejected",
        extra={
            "extra_fields": safe_log_context(
                vendor_id=vendor_id, organization_id=ctx.organization_id
            )
        },
    )
    return success_response(_vendor_to_dict(vendor), message="Vendor DPA rejected")


# ── POST /api/vendors/{vendor_id}/upload-dpa ──────────────────────────────────


@router.post("/{vendor_id}/upload-dpa")
def upload_vendor_dpa(
    vendor_id: str = Path(..., description="Vendor ID"),
    dpa_file: UploadFile | None = File(None),
    ctx: OrgRoleContext = Depends(require_org_role("editor")),
) -> JSONResponse:
    """Store a signed DPA (PDF, at most 10MB) and link it to the vendor."""
    if dpa_file is None:
        return error_response(400, "No file provided")
    if dpa_file.content_type != "application/pdf":
        return error_response(400, "Only PDF files are allowed")

    content = dpa_file.file.read(MAX_DPA_BYTES + 1)
    if len(content) > MAX_DPA_BYTES:
        return error_response(400, "File size must be less than 10MB")

    with txn() as cur:
        vendor = get_vendor(cur, vendor_id, organization_id=ctx.organization_id, for_update=True)
        if vendor is None:
            return error_response(404, "Vendor not found")

        safe_name = re.sub(r"[^a-zA-Z0-9]", "_", vendor["vendor_name"])
        filename = f"{safe_name}_{now_millis()}.pdf"
        upload_dir = _dpa_upload_dir()
        upload_dir.mkdir(parents=True, exist_ok=True)
        (upload_dir / filename).write_bytes(content)

        file_url = f"{_dpa_public_prefix()}/{filename}"
        updated = update_vendor(
            cur, vendor_id, organization_id=ctx.organization_id, fields={"dpa_file_url": file_url}
        )

    logger.info(
        "vendor dpa uploaded",
        extra={
            "extra_fields": safe_log_context(
                vendor_id=vendor_id,
                organization_id=ctx.organization_id,
                size_bytes=len(content),
            )
        },
    )
    return success_response(
        {"vendor": _vendor_to_dict(updated), "file_url": file_url, "filename": filename},
        message="DPA file uploaded successfully",
    )

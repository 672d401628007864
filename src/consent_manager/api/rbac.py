"""RBAC (Role-Based Access Control) by organization.

Provides:
- Role hierarchy: viewer < editor < admin
- require_org_role(): FastAPI dependency for organization-scoped authorization

Viewers read templates, purposes, consent records and analytics; editors
manage templates and purposes; admins may delete.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, HTTPException, Query

from consent_manager.api.auth import CurrentUser, get_current_user

# Role hierarchy: lower index = less privilege
ROLE_HIERARCHY = ["viewer", "editor", "admin"]


@dataclass
class OrgRoleContext:
    """Context returned by require_org_role."""

    user: CurrentUser
    organization_id: str
    role: str


def _role_level(role: str) -> int:
    """Numeric level for role (higher = more privilege, -1 if unknown)."""
    try:
        return ROLE_HIERARCHY.index(role)
    except ValueError:
        return -1


def _get_user_role_for_org(user_id: str, organization_id: str) -> str | None:
    """Lookup a user's role in an organization (None if no membership)."""
    from consent_manager.infra.db import txn

    with txn() as cur:
        cur.execute(
            "SELECT role FROM user_organization_roles WHERE user_id = %s AND organization_id = %s",
            (user_id, organization_id),
        )
        row = cur.fetchone()
        return row[0] if row else None


def require_org_role(min_role: str) -> Callable[..., OrgRoleContext]:
    """Create a dependency that requires a minimum role in an organization.

    Usage:
        @router.get("/something")
        def endpoint(ctx: OrgRoleContext = Depends(require_org_role("editor"))):
            ...
    """
    min_level = _role_level(min_role)
    if min_level < 0:
        raise ValueError(f"Invalid role: {min_role}")

    def dependency(
        organization_id: str = Query(..., description="Organization ID"),
        user: CurrentUser = Depends(get_current_user),
    ) -> OrgRoleContext:
        role = _get_user_role_for_org(user.id, organization_id)

        if role is None:
            raise HTTPException(status_code=403, detail="No access to organization")

        if _role_level(role) < min_level:
            raise HTTPException(status_code=403, detail="Insufficient role")

        return OrgRoleContext(user=user, organization_id=organization_id, role=role)

    return dependency

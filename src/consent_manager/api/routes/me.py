"""User identity and organization scope endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from consent_manager.api.auth import CurrentUser, get_current_user

router = APIRouter(tags=["me"])


def _list_user_organization_roles(user_id: str) -> list[dict]:
    """All organization memberships of a user, ordered by organization_id."""
    from consent_manager.infra.db import txn

    with txn() as cur:
        cur.execute(
            """
            SELECT organization_id, role
            FROM user_organization_roles
            WHERE user_id = %s
            ORDER BY organization_id
            """,
            (user_id,),
        )
        return [{"organization_id": row[0], "role": row[1]} for row in cur.fetchall()]


@router.get("/me")
def get_me(user: CurrentUser = Depends(get_current_user)) -> dict:
    """Return the authenticated user with the organizations they can manage."""
    return {
        "id": user.id,
        "external_subject": user.external_subject,
        "email": user.email,
        "name": user.name,
        "organizations": _list_user_organization_roles(user.id),
    }

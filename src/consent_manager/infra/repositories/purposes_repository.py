"""Consent purposes library repository (raw SQL, psycopg2)."""

from __future__ import annotations

import secrets
import time
from typing import Any

from psycopg2.extensions import cursor as PgCursor

_PURPOSE_COLUMNS = """
    id, organization_id, name, description, required, category,
    is_active, usage_count, created_at, updated_at
"""

_UPDATABLE = ("name", "description", "required", "category", "is_active")


def new_purpose_id() -> str:
    return f"purpose_{int(time.time() * 1000)}_{secrets.token_hex(4)[:7]}"


def row_to_purpose(row: tuple) -> dict[str, Any]:
    return {
        "id": row[0],
        "organization_id": row[1],
        "name": row[2],
        "description": row[3],
        "required": row[4],
        "category": row[5],
        "is_active": row[6],
        "usage_count": row[7] or 0,
        "created_at": row[8],
        "updated_at": row[9],
    }


def list_purposes(cur: PgCursor, *, organization_id: str) -> list[dict[str, Any]]:
    cur.execute(
        f"""
        SELECT {_PURPOSE_COLUMNS} FROM consent_purposes
        WHERE organization_id = %s
        ORDER BY updated_at DESC
        """,
        (organization_id,),
    )
    return [row_to_purpose(r) for r in cur.fetchall()]


def get_purpose(cur: PgCursor, purpose_id: str, *, organization_id: str) -> dict[str, Any] | None:
    cur.execute(
        f"SELECT {_PURPOSE_COLUMNS} FROM consent_purposes WHERE id = %s AND organization_id = %s",
        (purpose_id, organization_id),
    )
    row = cur.fetchone()
    return row_to_purpose(row) if row else None


def insert_purpose(
    cur: PgCursor,
    *,
    organization_id: str,
    name: str,
    description: str,
    required: bool,
    category: str,
    is_active: bool,
) -> dict[str, Any]:
    cur.execute(
        f"""
        INSERT INTO consent_purposes (
            id, organization_id, name, description, required, category, is_active
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        RETURNING {_PURPOSE_COLUMNS}
        """,
        (new_purpose_id(), organization_id, name, description, required, category, is_active),
    )
    return row_to_purpose(cur.fetchone())


def update_purpose(
    cur: PgCursor,
    purpose_id: str,
    *,
    organization_id: str,
    fields: dict[str, Any],
) -> dict[str, Any] | None:
    sets: list[str] = ["updated_at = now()"]
    params: list[Any] = []
    for column in _UPDATABLE:
        if column in fields:
            sets.append(f"{column} = %s")
            params.append(fields[column])

    params.extend([purpose_id, organization_id])
    cur.execute(
        f"""
        UPDATE consent_purposes
        SET {", ".join(sets)}
        WHERE id = %s AND organization_id = %s
        RETURNING {_PURPOSE_COLUMNS}
        """,  # noqa: S608 – no user input in SET clause, only whitelisted column names
        params,
    )
    row = cur.fetchone()
    return row_to_purpose(row) if row else None


def delete_purpose(cur: PgCursor, purpose_id: str, *, organization_id: str) -> bool:
    cur.execute(
        "DELETE FROM consent_purposes WHERE id = %s AND organization_id = %s RETURNING id",
        (purpose_id, organization_id),
    )
    return cur.fetchone() is not None

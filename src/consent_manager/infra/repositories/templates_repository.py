"""Consent templates repository.

Uses raw SQL with psycopg2 (no ORM). Banner config, purposes and
translations are JSONB columns on consent_templates.
"""

from __future__ import annotations

import json
import secrets
import time
from typing import Any

from psycopg2.extensions import cursor as PgCursor

_TEMPLATE_COLUMNS = """
    id, organization_id, name, description, status, banner_config,
    purposes, translations, created_by, created_at, updated_at
"""

# Maps request field name → column; JSONB columns are cast on write
_UPDATABLE = {
    "name": "name",
    "description": "description",
    "status": "status",
    "banner_config": "banner_config",
    "purposes": "purposes",
    "translations": "translations",
}
_JSONB = {"banner_config", "purposes", "translations"}


def new_template_id() -> str:
    return f"template_{int(time.time() * 1000)}_{secrets.token_hex(4)[:7]}"


def _json(value: Any) -> Any:
    return json.loads(value) if isinstance(value, str) else value


def row_to_template(row: tuple) -> dict[str, Any]:
    """Map a consent_templates row (``_TEMPLATE_COLUMNS`` order) to a dict."""
    return {
        "id": row[0],
        "organization_id": row[1],
        "name": row[2],
        "description": row[3],
        "status": row[4],
        "banner_config": _json(row[5]) or {},
        "purposes": _json(row[6]) or [],
        "translations": _json(row[7]) or {},
        "created_by": row[8],
        "created_at": row[9],
        "updated_at": row[10],
    }


def get_template(cur: PgCursor, template_id: str) -> dict[str, Any] | None:
    cur.execute(
        f"SELECT {_TEMPLATE_COLUMNS} FROM consent_templates WHERE id = %s",
        (template_id,),
    )
    row = cur.fetchone()
    return row_to_template(row) if row else None


def list_templates(
    cur: PgCursor,
    *,
    organization_id: str,
    status: str | None = None,
    limit: int = 10,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """List an organization's templates, most recently updated first.

    Returns:
        Tuple of (templates page, total matching count).
    """
    where = "organization_id = %s"
    params: list[Any] = [organization_id]
    if status:
        where += " AND status = %s"
        params.append(status)

    cur.execute(f"SELECT COUNT(*) FROM consent_templates WHERE {where}", params)
    total = cur.fetchone()[0]

    cur.execute(
        f"""
        SELECT {_TEMPLATE_COLUMNS}
        FROM consent_templates
        WHERE {where}
        ORDER BY updated_at DESC
        LIMIT %s OFFSET %s
        """,
        [*params, limit, offset],
    )
    return [row_to_template(r) for r in cur.fetchall()], total


def insert_template(
    cur: PgCursor,
    *,
    organization_id: str,
    name: str,
    description: str | None,
    status: str,
    banner_config: dict[str, Any],
    purposes: list[dict[str, Any]],
    translations: dict[str, Any],
    created_by: str,
) -> dict[str, Any]:
    cur.execute(
        f"""
        INSERT INTO consent_templates (
            id, organization_id, name, description, status,
            banner_config, purposes, translations, created_by
        )
        VALUES (%s, %s, %s, %s, %s, %s::jsonb, %s::jsonb, %s::jsonb, %s)
        RETURNING {_TEMPLATE_COLUMNS}
        """,
        (
            new_template_id(),
            organization_id,
            name,
            description,
            status,
            json.dumps(banner_config),
            json.dumps(purposes),
            json.dumps(translations),
            created_by,
        ),
    )
    return row_to_template(cur.fetchone())


def update_template(
    cur: PgCursor,
    template_id: str,
    *,
    organization_id: str,
    fields: dict[str, Any],
) -> dict[str, Any] | None:
    """Partial update. Only keys of ``_UPDATABLE`` are written.

    Returns:
        The updated template, or None if it does not exist in the organization.
    """
    sets: list[str] = ["updated_at = now()"]
    params: list[Any] = []

    for key, column in _UPDATABLE.items():
        if key not in fields:
            continue
        if key in _JSONB:
            sets.append(f"{column} = %s::jsonb")
            params.append(json.dumps(fields[key]))
        else:
            sets.append(f"{column} = %s")
            params.append(fields[key])

    params.extend([template_id, organization_id])
    cur.execute(
        f"""
        UPDATE consent_templates
        SET {", ".join(sets)}
        WHERE id = %s AND organization_id = %s
        RETURNING {_TEMPLATE_COLUMNS}
        """,  # noqa: S608 – no user input in SET clause, only whitelisted column names
        params,
    )
    row = cur.fetchone()
    return row_to_template(row) if row else None


def delete_template(cur: PgCursor, template_id: str, *, organization_id: str) -> bool:
    cur.execute(
        "DELETE FROM consent_templates WHERE id = %s AND organization_id = %s RETURNING id",
        (template_id, organization_id),
    )
    return cur.fetchone() is not None


def list_template_summaries(cur: PgCursor, *, organization_id: str) -> list[dict[str, Any]]:
    """id/name/status of every template of an organization (for analytics)."""
    cur.execute(
        """
        SELECT id, name, status FROM consent_templates
        WHERE organization_id = %s
        ORDER BY updated_at DESC
        """,
        (organization_id,),
    )
    return [{"id": r[0], "name": r[1], "status": r[2]} for r in cur.fetchall()]

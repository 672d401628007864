"""Vendors repository (raw SQL, psycopg2).

Allowed purposes and data types are JSONB arrays on ``vendors``. The risk
level is derived, so every write recomputes it from the merged row.
"""

from __future__ import annotations

import json
import secrets
import time
from datetime import date, datetime
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from consent_manager.domain.vendors import calculate_risk_level

_VENDOR_COLUMNS = """
    vendor_id, organization_id, vendor_name, category, contact_name,
    contact_email, notes, dpa_status, dpa_file_url, dpa_signed_on,
    dpa_valid_till, allowed_purposes, allowed_data_types, risk_level,
    is_active, created_at, updated_at
"""

_UPDATABLE = (
    "vendor_name",
    "category",
    "contact_name",
    "contact_email",
    "notes",
    "dpa_status",
    "dpa_file_url",
    "dpa_signed_on",
    "dpa_valid_till",
    "allowed_purposes",
    "allowed_data_types",
    "is_active",
)
_JSONB = {"allowed_purposes", "allowed_data_types"}


def new_vendor_id() -> str:
    return f"vendor_{int(time.time() * 1000)}_{secrets.token_hex(4)[:7]}"


def _json(value: Any) -> Any:
    return json.loads(value) if isinstance(value, str) else value


def _as_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    return value


def row_to_vendor(row: tuple) -> dict[str, Any]:
    """Map a vendors row (``_VENDOR_COLUMNS`` order) to a dict."""
    return {
        "vendor_id": row[0],
        "organization_id": row[1],
        "vendor_name": row[2],
        "category": row[3],
        "contact_name": row[4],
        "contact_email": row[5],
        "notes": row[6],
        "dpa_status": row[7],
        "dpa_file_url": row[8],
        "dpa_signed_on": _as_date(row[9]),
        "dpa_valid_till": _as_date(row[10]),
        "allowed_purposes": _json(row[11]) or [],
        "allowed_data_types": _json(row[12]) or [],
        "risk_level": row[13],
        "is_active": row[14],
        "created_at": row[15],
        "updated_at": row[16],
    }


def list_vendors(cur: PgCursor, *, organization_id: str) -> list[dict[str, Any]]:
    cur.execute(
        f"""
        SELECT {_VENDOR_COLUMNS} FROM vendors
        WHERE organization_id = %s
        ORDER BY updated_at DESC
        """,
        (organization_id,),
    )
    return [row_to_vendor(r) for r in cur.fetchall()]


def vendor_stats(cur: PgCursor, *, organization_id: str) -> dict[str, int]:
    cur.execute(
        """
        SELECT
            COUNT(*),
            COUNT(*) FILTER (WHERE dpa_status = 'APPROVED'),
            COUNT(*) FILTER (WHERE dpa_status = 'PENDING'),
            COUNT(*) FILTER (WHERE risk_level = 'HIGH')
        FROM vendors
        WHERE organization_id = %s
        """,
        (organization_id,),
    )
    row = cur.fetchone()
    return {
        "total_vendors": row[0] or 0,
        "approved_vendors": row[1] or 0,
        "pending_dpa": row[2] or 0,
        "high_risk_vendors": row[3] or 0,
    }


def get_vendor(
    cur: PgCursor, vendor_id: str, *, organization_id: str, for_update: bool = False
) -> dict[str, Any] | None:
    lock = " FOR UPDATE" if for_update else ""
    cur.execute(
        f"SELECT {_VENDOR_COLUMNS} FROM vendors"
        f" WHERE vendor_id = %s AND organization_id = %s{lock}",
        (vendor_id, organization_id),
    )
    row = cur.fetchone()
    return row_to_vendor(row) if row else None


def insert_vendor(
    cur: PgCursor,
    *,
    organization_id: str,
    vendor_name: str,
    category: str,
    contact_name: str,
    contact_email: str,
    notes: str | None,
) -> dict[str, Any]:
    """Create a vendor with a pending DPA and no allowed purposes or data."""
    risk_level = calculate_risk_level(
        category=category, allowed_data_types=[], dpa_status="PENDING"
    )
    cur.execute(
        f"""
        INSERT INTO vendors (
            vendor_id, organization_id, vendor_name, category, contact_name,
            contact_email, notes, dpa_status, allowed_purposes,
            allowed_data_types, risk_level, is_active
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, 'PENDING', '[]'::jsonb, '[]'::jsonb, %s, true)
        RETURNING {_VENDOR_COLUMNS}
        """,
        (
            new_vendor_id(),
            organization_id,
            vendor_name,
            category,
            contact_name,
            contact_email,
            notes,
            risk_level,
        ),
    )
    return row_to_vendor(cur.fetchone())


def update_vendor(
    cur: PgCursor,
    vendor_id: str,
    *,
    organization_id: str,
    fields: dict[str, Any],
) -> dict[str, Any] | None:
    """Apply whitelisted ``fields`` and recompute the risk level.

    Returns None when the vendor does not exist in the organization.
    """
    # Step 1: lock current row
    existing = get_vendor(cur, vendor_id, organization_id=organization_id, for_update=True)
    if existing is None:
        return None

    # Step 2: risk level of the merged row
    merged = {**existing, **fields}
    risk_level = calculate_risk_level(
        category=merged["category"],
        allowed_data_types=merged["allowed_data_types"],
        dpa_status=merged["dpa_status"],
    )

    # Step 3: write
    sets: list[str] = ["risk_level = %s", "updated_at = now()"]
    params: list[Any] = [risk_level]
    for column in _UPDATABLE:
        if column not in fields:
            continue
        if column in _JSONB:
            sets.append(f"{column} = %s::jsonb")
            params.append(json.dumps(fields[column]))
        else:
            sets.append(f"{column} = %s")
            params.append(fields[column])

    params.extend([vendor_id, organization_id])
    cur.execute(
        f"""
        UPDATE vendors
        SET {", ".join(sets)}
        WHERE vendor_id = %s AND organization_id = %s
        RETURNING {_VENDOR_COLUMNS}
        """,  # noqa: S608 – only whitelisted column names in SET clause
        params,
    )
    row = cur.fetchone()
    return row_to_vendor(row) if row else None


def delete_vendor(cur: PgCursor, vendor_id: str, *, organization_id: str) -> bool:
    cur.execute(
        "DELETE FROM vendors WHERE vendor_id = %s AND organization_id = %s RETURNING vendor_id",
        (vendor_id, organization_id),
    )
    return cur.fetchone() is not None

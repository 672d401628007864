"""Consent records repository - upsert-by-latest-record for the Consent Store.

Uses raw SQL with psycopg2 (no ORM).

Upsert strategy
───────────────
The widget performs no client-side deduplication and may retry a submission
whose first write succeeded but whose response was lost. Convergence is
guaranteed here instead:

  1. Look up the most recent record for (template_id, user_reference_id),
     locking the row FOR UPDATE.
  2. Found → UPDATE status, purposes, context and timestamp; version + 1.
  3. Not found → INSERT a new record with version 1.

The caller is responsible for running this inside a transaction
(with txn() as cur:).
"""

from __future__ import annotations

import json
import secrets
import time
from datetime import datetime
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from consent_manager.domain.consent import ConsentSubmission
from consent_manager.infra.time import from_millis

_RECORD_COLUMNS = """
    id, template_id, user_reference_id, status, accepted_purposes,
    platform, language, user_agent, ip_address, consent_timestamp,
    expiry_date, version, created_at, updated_at
"""


def new_record_id() -> str:
    """Record IDs look like ``consent_<millis>_<random>``."""
    return f"consent_{int(time.time() * 1000)}_{secrets.token_hex(4)[:7]}"


def row_to_record(row: tuple) -> dict[str, Any]:
    """Map a consent_records row (``_RECORD_COLUMNS`` order) to a dict."""
    purposes = row[4]
    if isinstance(purposes, str):
        purposes = json.loads(purposes)
    return {
        "id": row[0],
        "template_id": row[1],
        "user_reference_id": row[2],
        "status": row[3],
        "accepted_purposes": purposes or [],
        "platform": row[5],
        "language": row[6],
        "user_agent": row[7],
        "ip_address": row[8],
        "consent_timestamp": row[9],
        "expiry_date": row[10],
        "version": row[11],
        "created_at": row[12],
        "updated_at": row[13],
    }


def upsert_consent_record(
    cur: PgCursor,
    submission: ConsentSubmission,
    *,
    user_agent: str = "unknown",
    ip_address: str = "unknown",
) -> tuple[dict[str, Any], bool]:
    """Record a consent decision, converging on one row per (template, user).

    Args:
        cur: Database cursor (must be inside a transaction).
        submission: Validated submission.
        user_agent: Client user agent for the audit trail.
        ip_address: Client IP for the audit trail.

    Returns:
        Tuple of (record, created).
        - record: The stored record dict.
        - created: True if a new row was inserted, False if the latest
          existing row was updated.
    """
    consent_ts = from_millis(submission.timestamp)
    purposes_json = json.dumps(submission.purposes)

    # ── Step 1: latest existing record ────────────────────────────────────────
    cur.execute(
        """
        SELECT id FROM consent_records
        WHERE user_reference_id = %s AND template_id = %s
        ORDER BY created_at DESC
        LIMIT 1
        FOR UPDATE
        """,
        (submission.user_reference_id, submission.template_id),
    )
    row = cur.fetchone()

    # ── Step 2: update in place, bump version ─────────────────────────────────
    if row:
        cur.execute(
            f"""
            UPDATE consent_records
            SET status            = %s,
                accepted_purposes = %s::jsonb,
                platform          = %s,
                language          = %s,
                user_agent        = %s,
                ip_address        = %s,
                consent_timestamp = %s,
                updated_at        = now(),
                version           = version + 1
            WHERE id = %s
            RETURNING {_RECORD_COLUMNS}
            """,
            (
                submission.status,
                purposes_json,
                submission.platform,
                submission.language,
                user_agent,
                ip_address,
                consent_ts,
                row[0],
            ),
        )
        return (row_to_record(cur.fetchone()), False)

    # ── Step 3: first decision for this (template, user) ──────────────────────
    cur.execute(
        f"""
        INSERT INTO consent_records (
            id, template_id, user_reference_id, status, accepted_purposes,
            platform, language, user_agent, ip_address, consent_timestamp, version
        )
        VALUES (%s, %s, %s, %s, %s::jsonb, %s, %s, %s, %s, %s, 1)
        RETURNING {_RECORD_COLUMNS}
        """,
        (
            new_record_id(),
            submission.template_id,
            submission.user_reference_id,
            submission.status,
            purposes_json,
            submission.platform,
            submission.language,
            user_agent,
            ip_address,
            consent_ts,
        ),
    )
    return (row_to_record(cur.fetchone()), True)


def list_consent_records(
    cur: PgCursor,
    *,
    template_id: str | None = None,
    user_reference_id: str | None = None,
    organization_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[dict[str, Any]]:
    """List consent records, newest decision first.

    Filters are ANDed; organization scoping joins through consent_templates.
    """
    where: list[str] = []
    params: list[Any] = []

    if template_id:
        where.append("r.template_id = %s")
        params.append(template_id)
    if user_reference_id:
        where.append("r.user_reference_id = %s")
        params.append(user_reference_id)
    if organization_id:
        where.append("t.organization_id = %s")
        params.append(organization_id)
    if start is not None:
        where.append("r.consent_timestamp >= %s")
        params.append(start)
    if end is not None:
        where.append("r.consent_timestamp <= %s")
        params.append(end)

    columns = ", ".join(f"r.{c.strip()}" for c in _RECORD_COLUMNS.split(","))
    cur.execute(
        f"""
        SELECT {columns}
        FROM consent_records r
        JOIN consent_templates t ON t.id = r.template_id
        {"WHERE " + " AND ".join(where) if where else ""}
        ORDER BY r.consent_timestamp DESC
        """,  # noqa: S608 – only whitelisted fragments, values are parameterised
        params,
    )
    return [row_to_record(r) for r in cur.fetchall()]

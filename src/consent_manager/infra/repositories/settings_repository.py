"""Per-organization application settings (one app_settings row per org)."""

from __future__ import annotations

from typing import Any

from psycopg2.extensions import cursor as PgCursor

DEFAULT_SETTINGS: dict[str, Any] = {
    "allow_purpose_creation_in_banner": True,
    "require_purpose_approval": False,
    "default_purpose_validity": 12,  # months
    "enable_advanced_purpose_fields": True,
}

_SETTINGS_COLUMNS = (
    "allow_purpose_creation_in_banner",
    "require_purpose_approval",
    "default_purpose_validity",
    "enable_advanced_purpose_fields",
)


def _row_to_settings(row: tuple) -> dict[str, Any]:
    return dict(zip(_SETTINGS_COLUMNS, row))


def get_app_settings(cur: PgCursor, *, organization_id: str) -> dict[str, Any]:
    """Stored settings, or the defaults when the organization has none."""
    cur.execute(
        f"SELECT {', '.join(_SETTINGS_COLUMNS)} FROM app_settings WHERE organization_id = %s",
        (organization_id,),
    )
    row = cur.fetchone()
    return _row_to_settings(row) if row else dict(DEFAULT_SETTINGS)


def save_app_settings(
    cur: PgCursor, *, organization_id: str, settings: dict[str, Any]
) -> dict[str, Any]:
    """Insert or replace the organization's settings row."""
    values = [settings[c] for c in _SETTINGS_COLUMNS]
    cur.execute(
        f"""
        INSERT INTO app_settings (organization_id, {", ".join(_SETTINGS_COLUMNS)})
        VALUES (%s, %s, %s, %s, %s)
        ON CONFLICT (organization_id) DO UPDATE SET
            allow_purpose_creation_in_banner = EXCLUDED.allow_purpose_creation_in_banner,
            require_purpose_approval = EXCLUDED.require_purpose_approval,
            default_purpose_validity = EXCLUDED.default_purpose_validity,
            enable_advanced_purpose_fields = EXCLUDED.enable_advanced_purpose_fields,
            updated_at = now()
        RETURNING {", ".join(_SETTINGS_COLUMNS)}
        """,
        [organization_id, *values],
    )
    return _row_to_settings(cur.fetchone())

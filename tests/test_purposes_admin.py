"""Tests for the purpose library endpoints (/api/purposes)."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from consent_manager.api.auth import CurrentUser, get_current_user
from consent_manager.api.factory import create_app

from .helpers import mock_txn_cursor

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _purpose_row(purpose_id="purpose_1_abc", name="Analytics", usage_count=None):
    return (purpose_id, "org-1", name, "Usage statistics", False, "analytics", True, usage_count,
            NOW, NOW)


@pytest.fixture
def client():
    user = CurrentUser(id=str(uuid4()), external_subject="user-123", email=None, name=None)
    app = create_app(role="admin")
    app.dependency_overrides[get_current_user] = lambda: user
    with patch("consent_manager.api.rbac._get_user_role_for_org", return_value="editor"):
        yield TestClient(app)


@pytest.fixture
def cur():
    cursor = MagicMock()
    with patch("consent_manager.api.routes.purposes.txn") as mock_txn:
        mock_txn_cursor(mock_txn, cursor)
        yield cursor


def test_list_purposes(client, cur):
    cur.fetchall.return_value = [_purpose_row(), _purpose_row("purpose_2_def", "Marketing", 4)]

    response = client.get("/api/purposes?organization_id=org-1")

    body = response.json()
    assert response.status_code == 200
    assert body["total"] == 2
    assert body["data"][0]["usageCount"] == 0
    assert body["data"][1]["usageCount"] == 4
    assert body["data"][0]["isActive"] is True


def test_create_purpose_defaults(client, cur):
    cur.fetchone.return_value = _purpose_row()

    response = client.post(
        "/api/purposes?organization_id=org-1",
        json={"name": "Analytics", "description": "Usage statistics"},
    )

    assert response.status_code == 201
    params = cur.execute.call_args[0][1]
    # id, organization_id, name, description, required, category, is_active
    assert params[1:] == ("org-1", "Analytics", "Usage statistics", False, "other", True)


def test_create_purpose_invalid_category(client):
    response = client.post(
        "/api/purposes?organization_id=org-1",
        json={"name": "X", "description": "Y", "category": "tracking"},
    )
    assert response.status_code == 422


def test_get_missing_purpose(client, cur):
    cur.fetchone.return_value = None
    response = client.get("/api/purposes/nope?organization_id=org-1")
    assert response.status_code == 404
    assert response.json()["error"] == "Purpose not found"


def test_update_only_provided_fields(client, cur):
    cur.fetchone.return_value = _purpose_row(name="Stats")

    response = client.put(
        "/api/purposes/purpose_1_abc?organization_id=org-1", json={"name": "Stats"}
    )

    assert response.status_code == 200
    sql, params = cur.execute.call_args[0]
    assert "name = %s" in sql
    assert "category" not in sql.split("WHERE")[0]
    assert params == ["Stats", "purpose_1_abc", "org-1"]


def test_update_empty_body(client, cur):
    response = client.put("/api/purposes/purpose_1_abc?organization_id=org-1", json={})
    assert response.status_code == 400

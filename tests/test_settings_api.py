"""Tests for organization app settings (/api/settings)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from consent_manager.api.auth import CurrentUser, get_current_user
from consent_manager.api.factory import create_app

from .helpers import mock_txn_cursor

ORG = "org-1"
DEFAULTS = {
    "allowPurposeCreationInBanner": True,
    "requirePurposeApproval": False,
    "defaultPurposeValidity": 12,
    "enableAdvancedPurposeFields": True,
}


@pytest.fixture
def client():
    user = CurrentUser(id=str(uuid4()), external_subject="user-123", email=None, name=None)
    app = create_app(role="admin")
    app.dependency_overrides[get_current_user] = lambda: user
    return TestClient(app)


@pytest.fixture
def role():
    with patch("consent_manager.api.rbac._get_user_role_for_org", return_value="admin") as mock:
        yield mock


@pytest.fixture
def cur():
    cursor = MagicMock()
    with patch("consent_manager.api.routes.settings.txn") as mock_txn:
        mock_txn_cursor(mock_txn, cursor)
        yield cursor


class TestGetSettings:
    def test_defaults_when_unset(self, client, role, cur):
        cur.fetchone.return_value = None

        response = client.get(f"/api/settings?organization_id={ORG}")

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": DEFAULTS}

    def test_stored_settings(self, client, role, cur):
        cur.fetchone.return_value = (False, True, 6, False)

        response = client.get(f"/api/settings?organization_id={ORG}")

        assert response.json()["data"] == {
            "allowPurposeCreationInBanner": False,
            "requirePurposeApproval": True,
            "defaultPurposeValidity": 6,
            "enableAdvancedPurposeFields": False,
        }
        assert cur.execute.call_args[0][1] == (ORG,)

    def test_viewer_can_read(self, client, cur):
        cur.fetchone.return_value = None
        with patch("consent_manager.api.rbac._get_user_role_for_org", return_value="viewer"):
            assert client.get(f"/api/settings?organization_id={ORG}").status_code == 200


class TestUpdateSettings:
    def test_partial_update_merges_current(self, client, role, cur):
        cur.fetchone.side_effect = [None, (True, True, 12, True)]

        response = client.put(
            f"/api/settings?organization_id={ORG}", json={"requirePurposeApproval": True}
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Settings updated successfully"
        assert response.json()["data"]["requirePurposeApproval"] is True
        upsert_sql, params = cur.execute.call_args_list[1][0]
        assert "ON CONFLICT (organization_id)" in upsert_sql
        assert params == [ORG, True, True, 12, True]

    def test_keeps_stored_values(self, client, role, cur):
        cur.fetchone.side_effect = [(False, True, 6, False), (False, True, 24, False)]

        client.put(f"/api/settings?organization_id={ORG}", json={"defaultPurposeValidity": 24})

        _, params = cur.execute.call_args_list[1][0]
        assert params == [ORG, False, True, 24, False]

    def test_empty_body(self, client, role, cur):
        response = client.put(f"/api/settings?organization_id={ORG}", json={})
        assert response.status_code == 400
        cur.execute.assert_not_called()

    def test_validity_bounds(self, client, role, cur):
        response = client.put(
            f"/api/settings?organization_id={ORG}", json={"defaultPurposeValidity": 0}
        )
        assert response.status_code == 422

    def test_unknown_field(self, client, role, cur):
        response = client.put(f"/api/settings?organization_id={ORG}", json={"theme": "dark"})
        assert response.status_code == 422

    def test_editor_cannot_update(self, client, cur):
        with patch("consent_manager.api.rbac._get_user_role_for_org", return_value="editor"):
            response = client.put(
                f"/api/settings?organization_id={ORG}", json={"requirePurposeApproval": True}
            )
        assert response.status_code == 403

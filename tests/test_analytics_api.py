"""Tests for GET /api/analytics/consent."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from consent_manager.api.auth import CurrentUser, get_current_user
from consent_manager.api.factory import create_app

from .helpers import mock_txn_cursor


def _record_row(record_id, template_id, status, purposes):
    ts = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)
    return (record_id, template_id, "cust_001", status, purposes, "web", "en", "ua", "ip",
            ts, None, 1, ts, ts)


@pytest.fixture
def client():
    user = CurrentUser(id=str(uuid4()), external_subject="user-123", email=None, name=None)
    app = create_app(role="admin")
    app.dependency_overrides[get_current_user] = lambda: user
    with patch("consent_manager.api.rbac._get_user_role_for_org", return_value="viewer"):
        yield TestClient(app)


@pytest.fixture
def cur():
    cursor = MagicMock()
    cursor.fetchall.side_effect = [
        [("t1", "Main", "active"), ("t2", "Checkout", "inactive")],
        [
            _record_row("c1", "t1", "accepted", ["essential", "analytics"]),
            _record_row("c2", "t1", "rejected", ["essential"]),
            _record_row("c3", "t2", "partial", ["essential"]),
        ],
    ]
    with patch("consent_manager.api.routes.analytics.txn") as mock_txn:
        mock_txn_cursor(mock_txn, cursor)
        yield cursor


def test_analytics_overview(client, cur):
    response = client.get("/api/analytics/consent?organization_id=org-1")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["overview"]["totalConsents"] == 3
    assert data["overview"]["activeTemplates"] == 1
    assert data["overview"]["acceptanceRate"] == 33.33
    assert {"purposeId": "essential", "count": 3} in data["purposeStats"]
    assert len(data["dailyStats"]) == 30


def test_status_filter(client, cur):
    response = client.get("/api/analytics/consent?organization_id=org-1&status=rejected")

    overview = response.json()["data"]["overview"]
    assert overview["totalConsents"] == 1
    assert overview["rejectedConsents"] == 1


def test_template_filter_limits_template_stats(client, cur):
    response = client.get("/api/analytics/consent?organization_id=org-1&templateId=t1")

    stats = response.json()["data"]["templateStats"]
    assert [s["templateId"] for s in stats] == ["t1"]


def test_date_range_passed_to_query(client, cur):
    client.get(
        "/api/analytics/consent?organization_id=org-1&startDate=2026-03-01&endDate=2026-03-31"
    )

    params = cur.execute.call_args_list[1][0][1]
    assert params[0] == "org-1"
    assert params[1] == datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert params[2].date().isoformat() == "2026-03-31"
    assert params[2].hour == 23


def test_invalid_date(client):
    response = client.get("/api/analytics/consent?organization_id=org-1&startDate=03/01/2026")
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid date"

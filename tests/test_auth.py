"""Tests for OIDC JWT authentication of the admin console."""

from __future__ import annotations

import time
from unittest.mock import patch
from uuid import uuid4

import pytest
import requests
from fastapi.testclient import TestClient

from consent_manager.api.factory import create_app

from .helpers import OIDC_ENV, _create_jwks, _create_token, _generate_rsa_keypair


@pytest.fixture
def rsa_keypair():
    return _generate_rsa_keypair()


@pytest.fixture
def jwks(rsa_keypair):
    _, public_key = rsa_keypair
    return _create_jwks(public_key)


@pytest.fixture
def oidc_env():
    return dict(OIDC_ENV)


@pytest.fixture
def mock_jwks_fetch(jwks):
    with patch("consent_manager.api.auth._fetch_jwks") as mock:
        mock.return_value = jwks
        yield mock


@pytest.fixture
def mock_db_user():
    """Mock the users table lookup: only "user-123" exists."""
    user_id = str(uuid4())

    def mock_get_user(external_subject: str):
        from consent_manager.api.auth import CurrentUser

        if external_subject == "user-123":
            return CurrentUser(
                id=user_id,
                external_subject="user-123",
                email="dpo@example.com",
                name="Data Protection Officer",
            )
        return None

    with patch("consent_manager.api.auth._get_user_from_db", side_effect=mock_get_user) as mock:
        mock.user_id = user_id
        yield mock


def _whoami(env: dict, token: str | None = None, scheme: str = "Bearer"):
    headers = {"Authorization": f"{scheme} {token}"} if token else {}
    with patch.dict("os.environ", env):
        client = TestClient(create_app(role="admin"))
        return client.get("/auth/whoami", headers=headers)


class TestAuthNoToken:
    def test_missing_auth_header(self, oidc_env):
        response = _whoami(oidc_env)
        assert response.status_code == 401
        assert "Missing authorization header" in response.json()["detail"]

    def test_oidc_not_configured(self, rsa_keypair):
        private_key, _ = rsa_keypair
        env = {"OIDC_ISSUER": "", "OIDC_AUDIENCE": "", "OIDC_JWKS_URL": ""}
        response = _whoami(env, _create_token(private_key))
        assert response.status_code == 401
        assert "OIDC not configured" in response.json()["detail"]


class TestAuthInvalidToken:
    def test_malformed_token(self, oidc_env, mock_jwks_fetch):
        response = _whoami(oidc_env, "abc")
        assert response.status_code == 401
        assert "Invalid token" in response.json()["detail"]

    def test_invalid_bearer_format(self, oidc_env):
        response = _whoami(oidc_env, "abc", scheme="Basic")
        assert response.status_code == 401
        assert "Invalid authorization header" in response.json()["detail"]

    def test_expired_token(self, oidc_env, rsa_keypair, mock_jwks_fetch):
        private_key, _ = rsa_keypair
        token = _create_token(private_key, exp=int(time.time()) - 3600)

        response = _whoami(oidc_env, token)
        assert response.status_code == 401
        assert "Token expired" in response.json()["detail"]

    def test_wrong_issuer(self, oidc_env, rsa_keypair, mock_jwks_fetch):
        private_key, _ = rsa_keypair
        token = _create_token(private_key, iss="https://wrong-issuer.com")

        response = _whoami(oidc_env, token)
        assert response.status_code == 401
        assert "Invalid token" in response.json()["detail"]

    def test_wrong_audience(self, oidc_env, rsa_keypair, mock_jwks_fetch):
        private_key, _ = rsa_keypair
        token = _create_token(private_key, aud="wrong-audience")

        response = _whoami(oidc_env, token)
        assert response.status_code == 401

    def test_unknown_kid(self, oidc_env, rsa_keypair, mock_jwks_fetch):
        private_key, _ = rsa_keypair
        token = _create_token(private_key, kid="unknown-key")

        response = _whoami(oidc_env, token)
        assert response.status_code == 401
        # Unknown kid forces one refresh before giving up
        assert mock_jwks_fetch.call_count == 2

    def test_token_signed_by_other_key(self, oidc_env, mock_jwks_fetch):
        other_private_key, _ = _generate_rsa_keypair()
        token = _create_token(other_private_key)

        response = _whoami(oidc_env, token)
        assert response.status_code == 401
        assert "Invalid token" in response.json()["detail"]


class TestAuthUserNotFound:
    def test_user_not_found(self, oidc_env, rsa_keypair, mock_jwks_fetch):
        private_key, _ = rsa_keypair
        token = _create_token(private_key, sub="unknown-user")

        with patch("consent_manager.api.auth._get_user_from_db", return_value=None):
            response = _whoami(oidc_env, token)
        assert response.status_code == 403
        assert "User not found" in response.json()["detail"]


class TestAuthSuccess:
    def test_valid_token_and_user(self, oidc_env, rsa_keypair, mock_jwks_fetch, mock_db_user):
        private_key, _ = rsa_keypair
        token = _create_token(private_key, sub="user-123")

        response = _whoami(oidc_env, token)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == mock_db_user.user_id
        assert data["external_subject"] == "user-123"
        assert data["email"] == "dpo@example.com"
        assert data["name"] == "Data Protection Officer"


class TestAuthorizedParties:
    def test_azp_valid(self, oidc_env, rsa_keypair, mock_jwks_fetch, mock_db_user):
        private_key, _ = rsa_keypair
        token = _create_token(private_key, sub="user-123", azp="admin-console")

        env = {**oidc_env, "OIDC_AUTHORIZED_PARTIES": "admin-console,cli"}
        assert _whoami(env, token).status_code == 200

    def test_azp_invalid(self, oidc_env, rsa_keypair, mock_jwks_fetch):
        private_key, _ = rsa_keypair
        token = _create_token(private_key, sub="user-123", azp="unauthorized-app")

        env = {**oidc_env, "OIDC_AUTHORIZED_PARTIES": "admin-console"}
        assert _whoami(env, token).status_code == 401

    def test_azp_not_required_when_not_configured(
        self, oidc_env, rsa_keypair, mock_jwks_fetch, mock_db_user
    ):
        private_key, _ = rsa_keypair
        token = _create_token(private_key, sub="user-123", azp="any-app")

        assert _whoami(oidc_env, token).status_code == 200


class TestJWKSCache:
    def test_jwks_cached(self, oidc_env, rsa_keypair, mock_db_user):
        private_key, public_key = rsa_keypair
        token = _create_token(private_key, sub="user-123")

        with patch(
            "consent_manager.api.auth._fetch_jwks", return_value=_create_jwks(public_key)
        ) as mock_fetch:
            with patch.dict("os.environ", oidc_env):
                client = TestClient(create_app(role="admin"))
                headers = {"Authorization": f"Bearer {token}"}

                assert client.get("/auth/whoami", headers=headers).status_code == 200
                assert client.get("/auth/whoami", headers=headers).status_code == 200
                assert mock_fetch.call_count == 1

    def test_jwks_refresh_on_unknown_kid(self, oidc_env, rsa_keypair, mock_db_user):
        private_key, public_key = rsa_keypair
        token = _create_token(private_key, sub="user-123")

        with patch(
            "consent_manager.api.auth._fetch_jwks",
            side_effect=[{"keys": []}, _create_jwks(public_key)],
        ) as mock_fetch:
            response = _whoami(oidc_env, token)

        assert response.status_code == 200
        assert mock_fetch.call_count == 2


class TestJWKSFetchError:
    @pytest.mark.parametrize(
        "error", [requests.RequestException("Network error"), requests.Timeout("Timeout")]
    )
    def test_jwks_fetch_failure_returns_503(self, oidc_env, rsa_keypair, error):
        private_key, _ = rsa_keypair
        token = _create_token(private_key, sub="user-123")

        with patch("consent_manager.api.auth._fetch_jwks", side_effect=error):
            response = _whoami(oidc_env, token)

        assert response.status_code == 503
        assert "Auth temporarily unavailable" in response.json()["detail"]


class TestAuthRouteAvailability:
    def test_auth_available_on_admin(self, oidc_env):
        # 401, not 404: route exists but no auth header
        assert _whoami(oidc_env).status_code == 401

    def test_auth_not_available_on_public(self):
        client = TestClient(create_app(role="public"))
        assert client.get("/auth/whoami").status_code == 404

"""Shared test helpers (plain functions and fakes, not fixtures)."""

from __future__ import annotations

import base64
import logging
import time
from typing import Any

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

OIDC_ENV = {
    "OIDC_ISSUER": "https://auth.example.com",
    "OIDC_AUDIENCE": "consent-manager-api",
    "OIDC_JWKS_URL": "https://auth.example.com/.well-known/jwks.json",
}


def _generate_rsa_keypair():
    """Generate RSA key pair for test JWT signing."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048,
    )
    public_key = private_key.public_key()
    return private_key, public_key


def _create_jwks(public_key, kid: str = "test-key-1") -> dict:
    """Create JWKS from public key."""
    public_numbers = public_key.public_numbers()

    def int_to_base64(n: int) -> str:
        byte_length = (n.bit_length() + 7) // 8
        return (
            base64.urlsafe_b64encode(n.to_bytes(byte_length, "big"))
            .rstrip(b"=")
            .decode()
        )

    return {
        "keys": [
            {
                "kty": "RSA",
                "use": "sig",
                "alg": "RS256",
                "kid": kid,
                "n": int_to_base64(public_numbers.n),
                "e": int_to_base64(public_numbers.e),
            }
        ]
    }


def _create_token(
    private_key,
    kid: str = "test-key-1",
    sub: str = "user-123",
    iss: str = "https://auth.example.com",
    aud: str = "consent-manager-api",
    exp: int | None = None,
    azp: str | None = None,
) -> str:
    """Create signed JWT for testing."""
    now = int(time.time())
    payload = {
        "sub": sub,
        "iss": iss,
        "aud": aud,
        "exp": exp if exp is not None else now + 3600,
        "iat": now,
    }
    if azp:
        payload["azp"] = azp

    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": kid})


def mock_txn_cursor(mock_txn, cur) -> None:
    """Wire a patched ``txn`` so ``with txn() as cur`` yields ``cur``."""
    mock_txn.return_value.__enter__.return_value = cur
    mock_txn.return_value.__exit__.return_value = False


class ListHandler(logging.Handler):
    """Collects records; the JSON loggers do not propagate to caplog."""

    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def messages(self, level: int | None = None) -> list[str]:
        return [r.getMessage() for r in self.records if level is None or r.levelno == level]


class FakeConsentApi:
    """In-memory ConsentApiClient.

    ``templates`` maps template_id → snapshot dict; ``submit_failures`` is the
    number of submit calls that fail before one succeeds.
    """

    def __init__(
        self,
        templates: dict[str, dict[str, Any]] | None = None,
        *,
        template_error: Exception | None = None,
        submit_failures: int = 0,
        submit_error: Exception | None = None,
    ) -> None:
        self.templates = templates or {}
        self.template_error = template_error
        self.submit_failures = submit_failures
        self.submit_error = submit_error
        self.template_calls: list[tuple[str, str, str]] = []
        self.submissions: list[dict[str, Any]] = []

    def get_template(self, template_id: str, *, language: str, platform: str) -> dict[str, Any]:
        from consent_manager.widget.client import ConsentApiError

        self.template_calls.append((template_id, language, platform))
        if self.template_error is not None:
            raise self.template_error
        if template_id not in self.templates:
            raise ConsentApiError("HTTP 404", status_code=404)
        return {**self.templates[template_id], "language": language, "platform": platform}

    def submit_consent(self, payload: dict[str, Any]) -> dict[str, Any]:
        from consent_manager.widget.client import ConsentApiError

        self.submissions.append(payload)
        if len(self.submissions) <= self.submit_failures:
            raise self.submit_error or ConsentApiError("HTTP 503", status_code=503)
        return {"success": True, "message": "Consent saved successfully", "data": {"id": "consent_1"}}


def snapshot_dict(template_id: str = "t1", purposes: list[dict] | None = None) -> dict[str, Any]:
    """Template snapshot body as served by the public template endpoint."""
    return {
        "id": template_id,
        "name": "Site consent",
        "config": {
            "title": "We value your privacy",
            "description": "Choose what we may use.",
            "acceptButtonText": "Accept All",
            "rejectButtonText": "Reject All",
            "customizeButtonText": "Customize",
            "position": "bottom",
            "theme": "light",
            "primaryColor": "#3b82f6",
            "backgroundColor": "#ffffff",
            "textColor": "#374151",
        },
        "purposes": purposes
        if purposes is not None
        else [
            {"id": "essential", "name": "Essential", "description": "Needed", "required": True, "category": "essential"},
            {"id": "analytics", "name": "Analytics", "description": "Stats", "required": False, "category": "analytics"},
        ],
        "language": "en",
        "platform": "web",
    }

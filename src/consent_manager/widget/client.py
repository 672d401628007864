"""HTTP client for the Template Store and Consent Store endpoints.

The loader depends on the ``ConsentApiClient`` protocol so tests can swap in
a fake; ``HttpConsentApiClient`` is the requests-based implementation.
"""

from __future__ import annotations

from typing import Any, Protocol

import requests

from consent_manager.widget.settings import WidgetSettings


class ConsentApiError(Exception):
    """Non-2xx status, unusable body or ``success: false`` envelope."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConsentApiClient(Protocol):
    def get_template(self, template_id: str, *, language: str, platform: str) -> dict[str, Any]:
        """Return the template snapshot dict (the envelope's ``data``)."""
        ...

    def submit_consent(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a submission; return the response body."""
        ...


class HttpConsentApiClient:
    """requests-based client bound to one deployment origin."""

    def __init__(self, settings: WidgetSettings, session: requests.Session | None = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()

    def _json(self, response: requests.Response) -> dict[str, Any]:
        if not response.ok:
            raise ConsentApiError(f"HTTP {response.status_code}", status_code=response.status_code)
        try:
            body = response.json()
        except ValueError:
            raise ConsentApiError("invalid JSON body", status_code=response.status_code)
        if not isinstance(body, dict):
            raise ConsentApiError("unexpected body", status_code=response.status_code)
        return body

    def get_template(self, template_id: str, *, language: str, platform: str) -> dict[str, Any]:
        """Fetch a template snapshot.

        Raises:
            requests.RequestException: On transport errors.
            ConsentApiError: On non-2xx or ``success: false``.
        """
        response = self._session.get(
            self._settings.template_url(template_id),
            params={"language": language, "platform": platform},
            headers={"Accept": "application/json", "Cache-Control": "max-age=300"},
            timeout=self._settings.http_timeout,
        )
        body = self._json(response)
        if not body.get("success"):
            raise ConsentApiError(body.get("message") or body.get("error") or "template fetch failed")
        return body.get("data")

    def submit_consent(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a consent submission.

        Raises:
            requests.RequestException: On transport errors.
            ConsentApiError: On non-2xx.
        """
        response = self._session.post(
            self._settings.submission_url,
            json=payload,
            headers={"Accept": "application/json"},
            timeout=self._settings.http_timeout,
        )
        return self._json(response)

"""Deployment settings for the consent widget.

One component serves both builds: ``development`` is lenient (PII warning
only, plain HTTP allowed, no sandbox, errors swallowed) and ``production``
is strict. Both are parameterized by the deployment origin, i.e. the
scheme://host the loader script, banner iframe and API are served from.

Environment (``WidgetSettings.from_env``):
- CONSENT_WIDGET_ORIGIN: deployment origin (required)
- CONSENT_WIDGET_MODE: "development" (default) or "production"
- CONSENT_HTTP_TIMEOUT: HTTP timeout in seconds (default 10)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from urllib.parse import quote, urlsplit

DEFAULT_HTTP_TIMEOUT = 10.0

IFRAME_SANDBOX = "allow-scripts allow-same-origin allow-forms"

TEMPLATE_PATH = "/api/public/templates"
SUBMISSION_PATH = "/api/blutic-svc/api/v1/public/consent-template/update-user"
IFRAME_PATH = "/iframe"
SDK_SCRIPT_PATH = "/sdk/consent-manager.js"


@dataclass(frozen=True)
class WidgetSettings:
    """Per-deployment widget behaviour."""

    origin: str
    strict_pii: bool = False
    enforce_https: bool = False
    sandbox: str | None = None
    retry_delay: float = 1.0
    max_retries: int = 1
    emit_error_events: bool = False
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    def __post_init__(self) -> None:
        if not self.origin:
            raise ValueError("origin is required")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")
        # "https://x.com/" and "https://x.com" are one origin
        origin = self.origin.rstrip("/")
        parts = urlsplit(origin)
        if not parts.scheme or not parts.netloc or parts.path or parts.query or parts.fragment:
            raise ValueError(f"origin must be scheme://host[:port], got {origin!r}")
        object.__setattr__(self, "origin", origin)

    @classmethod
    def development(cls, origin: str, **overrides) -> WidgetSettings:
        return replace(cls(origin=origin, retry_delay=1.0), **overrides)

    @classmethod
    def production(cls, origin: str, **overrides) -> WidgetSettings:
        settings = cls(
            origin=origin,
            strict_pii=True,
            enforce_https=True,
            sandbox=IFRAME_SANDBOX,
            retry_delay=2.0,
            emit_error_events=True,
        )
        return replace(settings, **overrides)

    @classmethod
    def from_env(cls) -> WidgetSettings:
        """Build settings from environment variables.

        Raises:
            RuntimeError: If CONSENT_WIDGET_ORIGIN is missing or the mode is unknown.
        """
        origin = os.environ.get("CONSENT_WIDGET_ORIGIN", "")
        if not origin:
            raise RuntimeError("CONSENT_WIDGET_ORIGIN environment variable not set")

        timeout = float(os.environ.get("CONSENT_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT))
        mode = os.environ.get("CONSENT_WIDGET_MODE", "development")
        if mode == "development":
            return cls.development(origin, http_timeout=timeout)
        if mode == "production":
            return cls.production(origin, http_timeout=timeout)
        raise RuntimeError(f"Unknown CONSENT_WIDGET_MODE: {mode}")

    # ── URLs ──────────────────────────────────────────────────────────────────

    def template_url(self, template_id: str) -> str:
        return f"{self.origin}{TEMPLATE_PATH}/{quote(template_id, safe='')}"

    @property
    def submission_url(self) -> str:
        return f"{self.origin}{SUBMISSION_PATH}"

    def iframe_url(self, template_id: str) -> str:
        return f"{self.origin}{IFRAME_PATH}/{quote(template_id, safe='')}"

    @property
    def sdk_script_url(self) -> str:
        return f"{self.origin}{SDK_SCRIPT_PATH}"

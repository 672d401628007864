"""Tests for widget deployment settings."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from consent_manager.widget.settings import IFRAME_SANDBOX, WidgetSettings

ORIGIN = "https://consent.example.com"


class TestWidgetSettings:
    def test_development_preset(self):
        settings = WidgetSettings.development(ORIGIN)
        assert settings.strict_pii is False
        assert settings.enforce_https is False
        assert settings.sandbox is None
        assert settings.emit_error_events is False
        assert settings.max_retries == 1
        assert settings.retry_delay == 1.0

    def test_production_preset(self):
        settings = WidgetSettings.production(ORIGIN)
        assert settings.strict_pii is True
        assert settings.enforce_https is True
        assert settings.sandbox == IFRAME_SANDBOX
        assert settings.emit_error_events is True
        assert settings.retry_delay == 2.0

    def test_overrides(self):
        settings = WidgetSettings.production(ORIGIN, retry_delay=0.5, max_retries=3)
        assert settings.retry_delay == 0.5
        assert settings.max_retries == 3
        assert settings.strict_pii is True

    def test_trailing_slash_stripped(self):
        assert WidgetSettings(origin=f"{ORIGIN}/").origin == ORIGIN

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"origin": ""},
            {"origin": ORIGIN, "max_retries": -1},
            {"origin": ORIGIN, "retry_delay": -1},
            {"origin": f"{ORIGIN}/consent"},
            {"origin": f"{ORIGIN}?env=prod"},
            {"origin": "consent.example.com"},
        ],
    )
    def test_invalid_settings(self, kwargs):
        with pytest.raises(ValueError):
            WidgetSettings(**kwargs)

    def test_urls(self):
        settings = WidgetSettings(origin=ORIGIN)
        assert settings.template_url("t 1") == f"{ORIGIN}/api/public/templates/t%201"
        assert settings.submission_url == (
            f"{ORIGIN}/api/blutic-svc/api/v1/public/consent-template/update-user"
        )
        assert settings.iframe_url("t1") == f"{ORIGIN}/iframe/t1"
        assert settings.sdk_script_url == f"{ORIGIN}/sdk/consent-manager.js"

    def test_origin_with_port(self):
        assert WidgetSettings(origin="http://localhost:3000").origin == "http://localhost:3000"


class TestWidgetSettingsFromEnv:
    def test_missing_origin(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="CONSENT_WIDGET_ORIGIN"):
                WidgetSettings.from_env()

    def test_production_mode(self):
        env = {
            "CONSENT_WIDGET_ORIGIN": ORIGIN,
            "CONSENT_WIDGET_MODE": "production",
            "CONSENT_HTTP_TIMEOUT": "3",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = WidgetSettings.from_env()
        assert settings.strict_pii is True
        assert settings.http_timeout == 3.0

    def test_default_mode_is_development(self):
        with patch.dict(os.environ, {"CONSENT_WIDGET_ORIGIN": ORIGIN}, clear=True):
            assert WidgetSettings.from_env().strict_pii is False

    def test_unknown_mode(self):
        env = {"CONSENT_WIDGET_ORIGIN": ORIGIN, "CONSENT_WIDGET_MODE": "staging"}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(RuntimeError, match="staging"):
                WidgetSettings.from_env()

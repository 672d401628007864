"""Script loader: bootstraps the consent widget on a host page.

Flow:
  1. find the SDK script tag and read WidgetConfig from its data-* attributes
  2. fetch the TemplateSnapshot (fallback template on any failure, no retry)
  3. inject one full-viewport iframe pointing at the banner page
  4. receive banner messages (exact origin match only)
  5. POST consent decisions, retrying after ``retry_delay`` up to ``max_retries``

No public operation raises into the host page: failures are logged and the
widget degrades (no banner, fallback template, dropped message, error event).

Security: the user reference is never logged raw, only as a short hash.
"""

from __future__ import annotations

import functools
import json
import time
from dataclasses import dataclass, replace
from typing import Any, Callable
from urllib.parse import urlencode

from consent_manager.domain.pii import is_potential_pii
from consent_manager.infra.time import now_millis
from consent_manager.observability.correlation import bound_correlation_id, generate_correlation_id
from consent_manager.observability.logging import get_logger
from consent_manager.observability.redaction import hash_identifier, safe_log_context
from consent_manager.widget.client import ConsentApiClient, HttpConsentApiClient
from consent_manager.widget.host import CustomEvent, HostPage, IFrameElement, ScriptElement
from consent_manager.widget.languages import SUPPORTED_LANGUAGES
from consent_manager.widget.messages import (
    CLOSE_BANNER,
    CONSENT_ACTION,
    LANGUAGE_CHANGE,
    MalformedMessageError,
    MessageEvent,
    parse_message,
)
from consent_manager.widget.models import (
    ConsentDecision,
    TemplateSnapshot,
    WidgetConfig,
    build_submission,
    fallback_template,
)
from consent_manager.widget.settings import WidgetSettings

logger = get_logger(__name__)

SDK_VERSION = "1.0.0"
GLOBAL_NAME = "DPDPConsentManager"

CONSENT_SAVED_EVENT = "dpdp-consent-saved"
CONSENT_ERROR_EVENT = "dpdp-consent-error"

IFRAME_TITLE = "DPDP Consent Manager"
IFRAME_ARIA_LABEL = "Cookie and Privacy Consent"
IFRAME_STYLE = {
    "position": "fixed",
    "bottom": "0",
    "left": "0",
    "width": "100%",
    "height": "100%",
    "border": "none",
    "z-index": "999999",
    "background": "transparent",
    "pointer-events": "auto",
}

_LOCALHOST = "localhost"


def _strip_query(url: str) -> str:
    return url.split("#", 1)[0].split("?", 1)[0]


# ── Script lookup ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ScriptLookup:
    """Result of locating the SDK script tag.

    ``strategy`` is one of "current-script", "src-match", "data-attribute",
    or None when nothing matched.
    """

    script: ScriptElement | None
    strategy: str | None

    @property
    def found(self) -> bool:
        return self.script is not None

    @classmethod
    def not_found(cls) -> ScriptLookup:
        return cls(script=None, strategy=None)


def find_sdk_script(page: HostPage, script_url: str) -> ScriptLookup:
    """Locate the SDK script tag.

    Order: the currently executing script, then the last script loaded from
    ``script_url`` (query string and fragment ignored), then the last script
    carrying data-template-id.
    """
    if page.current_script is not None:
        return ScriptLookup(page.current_script, "current-script")

    scripts = page.query_scripts()

    by_src = [s for s in scripts if s.src and _strip_query(s.src) == script_url]
    if by_src:
        return ScriptLookup(by_src[-1], "src-match")

    by_data = [s for s in scripts if "templateId" in s.dataset]
    if by_data:
        return ScriptLookup(by_data[-1], "data-attribute")

    return ScriptLookup.not_found()


# ── Session ───────────────────────────────────────────────────────────────────


def _guarded(default: Any = None) -> Callable:
    """Log and contain any exception escaping a public widget operation."""

    def decorator(method: Callable) -> Callable:
        @functools.wraps(method)
        def wrapper(self: WidgetSession, *args: Any, **kwargs: Any) -> Any:
            with bound_correlation_id(self.session_id):
                try:
                    return method(self, *args, **kwargs)
                except Exception:
                    logger.exception(
                        "widget operation failed",
                        extra={"extra_fields": safe_log_context(operation=method.__name__)},
                    )
                    return default

        return wrapper

    return decorator


class WidgetSession:
    """State of one widget on one page load.

    Exposed on the host page as ``DPDPConsentManager``; the public API
    methods mirror the JavaScript names in snake_case.
    """

    version = SDK_VERSION

    def __init__(
        self,
        page: HostPage,
        settings: WidgetSettings,
        client: ConsentApiClient | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], int] = now_millis,
        session_id: str | None = None,
    ) -> None:
        self.page = page
        self.settings = settings
        self.client = client if client is not None else HttpConsentApiClient(settings)
        self.session_id = session_id or generate_correlation_id()
        self.config: WidgetConfig | None = None
        self.template: TemplateSnapshot | None = None
        self.iframe: IFrameElement | None = None
        self.initialized = False
        self._sleep = sleep
        self._clock = clock

    def _log_ctx(self, **kwargs: Any) -> dict[str, str]:
        if self.config is not None:
            kwargs.setdefault("template_id", self.config.template_id)
            kwargs.setdefault("user_hash", hash_identifier(self.config.user_reference_id))
        return safe_log_context(**kwargs)

    # ── Initialize ────────────────────────────────────────────────────────────

    @_guarded(default=False)
    def initialize(self) -> bool:
        """Read config, inject the banner and start listening.

        Returns:
            True once the widget is live (also for repeated calls), False if
            initialization was refused.
        """
        if self.initialized:
            return True

        location = self.page.location
        if (
            self.settings.enforce_https
            and location.protocol != "https:"
            and location.hostname != _LOCALHOST
        ):
            logger.error(
                "widget requires https host page",
                extra={"extra_fields": safe_log_context(protocol=location.protocol)},
            )
            return False

        lookup = find_sdk_script(self.page, self.settings.sdk_script_url)
        if not lookup.found:
            logger.error("sdk script tag not found")
            return False

        config = WidgetConfig.from_dataset(lookup.script.dataset)
        if config is None:
            logger.error(
                "missing required configuration: templateId and userId are required",
                extra={"extra_fields": safe_log_context(lookup=lookup.strategy)},
            )
            return False

        user_hash = hash_identifier(config.user_reference_id)
        if is_potential_pii(config.user_reference_id):
            if self.settings.strict_pii:
                logger.error(
                    "userId looks like PII, initialization blocked",
                    extra={"extra_fields": safe_log_context(user_hash=user_hash)},
                )
                return False
            logger.warning(
                "userId looks like PII, use opaque reference ids",
                extra={"extra_fields": safe_log_context(user_hash=user_hash)},
            )

        self.config = config
        logger.info(
            "widget initializing",
            extra={
                "extra_fields": self._log_ctx(
                    lookup=lookup.strategy,
                    platform=config.platform,
                    language=config.language,
                )
            },
        )

        snapshot = self.fetch_template(config.template_id, config.language, config.platform)
        self.inject_banner(snapshot)
        self.page.add_message_listener(self.handle_message)
        self.initialized = True
        return True

    # ── Template ──────────────────────────────────────────────────────────────

    def fetch_template(self, template_id: str, language: str, platform: str) -> TemplateSnapshot:
        """Single GET; the fallback template replaces any failure."""
        try:
            data = self.client.get_template(template_id, language=language, platform=platform)
            return TemplateSnapshot.from_dict(data)
        except Exception as e:
            logger.warning(
                "template fetch failed, using fallback template",
                extra={
                    "extra_fields": self._log_ctx(
                        template_id=template_id, error_type=type(e).__name__
                    )
                },
            )
            return fallback_template(template_id, language=language, platform=platform)

    def _iframe_src(self, snapshot: TemplateSnapshot) -> str:
        query = urlencode({
            "userId": self.config.user_reference_id,
            "platform": self.config.platform,
            "language": self.config.language,
            "templateData": json.dumps(snapshot.to_dict(), separators=(",", ":"), ensure_ascii=False),
        })
        return f"{self.settings.iframe_url(self.config.template_id)}?{query}"

    # ── Banner ────────────────────────────────────────────────────────────────

    @_guarded()
    def inject_banner(self, snapshot: TemplateSnapshot) -> IFrameElement | None:
        """Create the banner iframe; no-op while one already exists."""
        if self.iframe is not None:
            return self.iframe
        if self.config is None:
            return None

        iframe = self.page.create_iframe()
        iframe.src = self._iframe_src(snapshot)
        iframe.style.update(IFRAME_STYLE)
        iframe.set_attribute("title", IFRAME_TITLE)
        iframe.set_attribute("aria-label", IFRAME_ARIA_LABEL)
        if self.settings.sandbox:
            iframe.set_attribute("sandbox", self.settings.sandbox)

        self.page.append_to_body(iframe)
        self.iframe = iframe
        self.template = snapshot

        logger.info(
            "consent banner injected",
            extra={
                "extra_fields": self._log_ctx(
                    template_name=snapshot.name, purpose_count=len(snapshot.purposes)
                )
            },
        )
        return iframe

    # ── Messages ──────────────────────────────────────────────────────────────

    @_guarded()
    def handle_message(self, event: MessageEvent) -> None:
        """Entry point for every message from the banner iframe."""
        if event.origin != self.settings.origin:
            logger.warning(
                "message from unauthorized origin dropped",
                extra={"extra_fields": safe_log_context(origin=event.origin)},
            )
            return
        if not self.initialized:
            return

        try:
            message_type, payload = parse_message(event.data)
        except MalformedMessageError as e:
            logger.warning(
                "malformed message ignored",
                extra={"extra_fields": safe_log_context(error=str(e))},
            )
            return

        if message_type == CONSENT_ACTION:
            try:
                decision = ConsentDecision.from_payload(payload)
            except ValueError as e:
                logger.warning(
                    "invalid consent action ignored",
                    extra={"extra_fields": self._log_ctx(error=str(e))},
                )
                return
            self.submit_consent(decision)
        elif message_type == LANGUAGE_CHANGE:
            language = payload.get("language")
            if isinstance(language, str) and language:
                self.update_language(language)
        elif message_type == CLOSE_BANNER:
            self.hide_banner()
        else:
            logger.info(
                "unknown message type ignored",
                extra={"extra_fields": safe_log_context(message_type=message_type)},
            )

    # ── Submission ────────────────────────────────────────────────────────────

    @_guarded(default=False)
    def submit_consent(self, decision: ConsentDecision) -> bool:
        """POST the decision, retrying with an identical body.

        Returns:
            True if any attempt succeeded.
        """
        if self.config is None:
            return False

        payload = build_submission(self.config, decision, now=self._clock())
        log_ctx = self._log_ctx(status=payload["status"], purpose_count=len(payload["purposes"]))

        last_error: Exception | None = None
        for attempt in range(self.settings.max_retries + 1):
            try:
                self.client.submit_consent(payload)
            except Exception as e:
                last_error = e
                if attempt < self.settings.max_retries:
                    logger.warning(
                        "consent submission failed, retrying",
                        extra={
                            "extra_fields": {
                                **log_ctx,
                                **safe_log_context(attempt=attempt, error_type=type(e).__name__),
                            }
                        },
                    )
                    self._sleep(self.settings.retry_delay)
                    continue
                break

            logger.info(
                "consent saved",
                extra={"extra_fields": {**log_ctx, **safe_log_context(attempt=attempt)}},
            )
            self._hide()
            self.page.dispatch_event(
                CustomEvent(
                    CONSENT_SAVED_EVENT,
                    {
                        "templateId": payload["templateId"],
                        "status": payload["status"],
                        "purposes": payload["purposes"],
                        "timestamp": payload["timestamp"],
                    },
                )
            )
            return True

        logger.error(
            "consent submission failed, consent not saved",
            extra={
                "extra_fields": {
                    **log_ctx,
                    **safe_log_context(error_type=type(last_error).__name__),
                }
            },
        )
        if self.settings.emit_error_events:
            self.page.dispatch_event(
                CustomEvent(CONSENT_ERROR_EVENT, {"error": str(last_error), "payload": payload})
            )
        return False

    # ── Language ──────────────────────────────────────────────────────────────

    @_guarded()
    def update_language(self, language: str) -> None:
        """Switch language by re-fetching the template and reloading the iframe."""
        if self.config is None:
            return
        self.config = replace(self.config, language=language)
        if self.iframe is None:
            return

        snapshot = self.fetch_template(self.config.template_id, language, self.config.platform)
        self.template = snapshot
        self.iframe.src = self._iframe_src(snapshot)
        logger.info(
            "banner reloaded with new language",
            extra={"extra_fields": self._log_ctx(language=language)},
        )

    # ── Public API ────────────────────────────────────────────────────────────

    def _hide(self) -> None:
        if self.iframe is not None:
            self.iframe.style["display"] = "none"

    @_guarded()
    def show_banner(self) -> None:
        if self.iframe is not None:
            self.iframe.style["display"] = "block"

    @_guarded()
    def hide_banner(self) -> None:
        self._hide()

    def get_current_language(self) -> str | None:
        return self.config.language if self.config else None

    def get_supported_languages(self) -> list[dict[str, str]]:
        return [dict(lang) for lang in SUPPORTED_LANGUAGES]

    def get_consent_status(self) -> dict[str, Any]:
        config = self.config
        return {
            "templateId": config.template_id if config else None,
            "userId": config.user_reference_id if config else None,
            "platform": config.platform if config else None,
            "language": config.language if config else None,
            "initialized": self.initialized,
        }


def install(
    page: HostPage,
    settings: WidgetSettings,
    client: ConsentApiClient | None = None,
    **kwargs: Any,
) -> WidgetSession:
    """Create a session, expose it as ``DPDPConsentManager`` and initialize it.

    Mirrors what the script does when the host page loads it.
    """
    session = WidgetSession(page, settings, client, **kwargs)
    page.expose(GLOBAL_NAME, session)
    session.initialize()
    return session

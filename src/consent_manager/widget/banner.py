"""Banner page rendered inside the consent iframe.

States:
  LOADING → QUICK_ACTIONS ⇄ DETAILED_PREFERENCES → HIDDEN

Accept All / Reject All work from both visible states; Customize opens the
per-purpose toggles, Save emits the toggled set as "updated". A required
purpose can never be switched off and is always part of an emitted decision.

The page never reaches into the host page: all output goes through the
``post_to_parent`` callable with target origin "*".
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Callable
from urllib.parse import parse_qs, unquote, urlsplit

import requests

from consent_manager.infra.time import now_millis
from consent_manager.observability.logging import get_logger
from consent_manager.observability.redaction import safe_log_context
from consent_manager.widget.client import ConsentApiError
from consent_manager.widget.messages import (
    ANY_TARGET_ORIGIN,
    CLOSE_BANNER,
    CONSENT_ACTION,
    LANGUAGE_CHANGE,
    UPDATE_LANGUAGE,
    MalformedMessageError,
    MessageEvent,
    make_message,
    parse_message,
)
from consent_manager.widget.models import (
    DEFAULT_LANGUAGE,
    DEFAULT_PLATFORM,
    BannerConfig,
    Purpose,
    TemplateSnapshot,
)

logger = get_logger(__name__)

PostToParent = Callable[[dict[str, Any], str], None]
TemplateFetcher = Callable[..., dict[str, Any]]

# Shown when neither templateData nor the template endpoint yields a template
DEFAULT_PURPOSES = (
    Purpose(
        id="essential",
        name="Essential Cookies",
        description="Required for basic website functionality and security",
        required=True,
        category="essential",
    ),
    Purpose(
        id="analytics",
        name="Analytics & Performance",
        description="Help us understand how visitors interact with our website",
        category="analytics",
    ),
    Purpose(
        id="marketing",
        name="Marketing & Advertising",
        description="Used to deliver personalized advertisements and content",
        category="marketing",
    ),
    Purpose(
        id="personalization",
        name="Personalization",
        description="Remember your preferences and provide customized experience",
        category="personalization",
    ),
)


class BannerState(str, Enum):
    LOADING = "loading"
    QUICK_ACTIONS = "quick_actions"
    DETAILED_PREFERENCES = "detailed_preferences"
    HIDDEN = "hidden"


_VISIBLE = (BannerState.QUICK_ACTIONS, BannerState.DETAILED_PREFERENCES)


class BannerPage:
    """Consent UI state for one iframe page instance."""

    def __init__(
        self,
        template_id: str,
        *,
        post_to_parent: PostToParent,
        user_id: str | None = None,
        platform: str = DEFAULT_PLATFORM,
        language: str = DEFAULT_LANGUAGE,
        template_data: str | None = None,
        fetch_template: TemplateFetcher | None = None,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self.template_id = template_id
        self.user_id = user_id
        self.platform = platform
        self.language = language
        self.state = BannerState.LOADING
        self.template: TemplateSnapshot | None = None
        self.purposes: tuple[Purpose, ...] = ()
        self._enabled: dict[str, bool] = {}
        self._template_data = template_data
        self._fetch_template = fetch_template
        self._post = post_to_parent
        self._clock = clock

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> BannerPage:
        """Build from the iframe URL the loader generated.

        ``/iframe/{templateId}?userId=&platform=&language=&templateData=``
        """
        parts = urlsplit(url)
        template_id = unquote(parts.path.rstrip("/").rsplit("/", 1)[-1])
        query = {k: v[0] for k, v in parse_qs(parts.query).items()}
        return cls(
            template_id,
            user_id=query.get("userId"),
            platform=query.get("platform") or DEFAULT_PLATFORM,
            language=query.get("language") or DEFAULT_LANGUAGE,
            template_data=query.get("templateData"),
            **kwargs,
        )

    # ── Loading ───────────────────────────────────────────────────────────────

    def _resolve_template(self) -> TemplateSnapshot | None:
        if self._template_data:
            try:
                return TemplateSnapshot.from_dict(json.loads(self._template_data))
            except ValueError as e:
                logger.warning(
                    "templateData parameter unusable",
                    extra={"extra_fields": safe_log_context(error=str(e))},
                )

        if self._fetch_template is not None:
            try:
                data = self._fetch_template(
                    self.template_id, language=self.language, platform=self.platform
                )
                return TemplateSnapshot.from_dict(data)
            except (requests.RequestException, ConsentApiError, ValueError) as e:
                logger.warning(
                    "banner template fetch failed",
                    extra={
                        "extra_fields": safe_log_context(
                            template_id=self.template_id, error_type=type(e).__name__
                        )
                    },
                )
        return None

    def load(self) -> BannerState:
        """Resolve template data and show the quick actions. Never blocks on failure."""
        self.template = self._resolve_template()
        self.purposes = self.template.purposes if self.template else DEFAULT_PURPOSES
        self._enabled = {p.id: p.required for p in self.purposes}
        self.state = BannerState.QUICK_ACTIONS
        return self.state

    @property
    def display_config(self) -> BannerConfig:
        return self.template.config if self.template else BannerConfig()

    @property
    def required_ids(self) -> list[str]:
        return [p.id for p in self.purposes if p.required]

    @property
    def enabled_purpose_ids(self) -> list[str]:
        """Enabled purposes in template order; required ones are always on."""
        return [p.id for p in self.purposes if p.required or self._enabled.get(p.id)]

    def is_enabled(self, purpose_id: str) -> bool:
        return purpose_id in self.enabled_purpose_ids

    # ── User actions ──────────────────────────────────────────────────────────

    def accept_all(self) -> None:
        if self.state not in _VISIBLE:
            return
        self._enabled = {p.id: True for p in self.purposes}
        self.emit_consent_action("accepted", [p.id for p in self.purposes])

    def reject_all(self) -> None:
        if self.state not in _VISIBLE:
            return
        self._enabled = {p.id: p.required for p in self.purposes}
        self.emit_consent_action("rejected", self.required_ids)

    def customize(self) -> None:
        if self.state == BannerState.QUICK_ACTIONS:
            self.state = BannerState.DETAILED_PREFERENCES

    def close_details(self) -> None:
        if self.state == BannerState.DETAILED_PREFERENCES:
            self.state = BannerState.QUICK_ACTIONS

    def toggle_purpose(self, purpose_id: str, enabled: bool) -> None:
        """Switch a purpose; required and unknown purposes are ignored."""
        if self.state != BannerState.DETAILED_PREFERENCES:
            return
        purpose = next((p for p in self.purposes if p.id == purpose_id), None)
        if purpose is None or purpose.required:
            return
        self._enabled[purpose_id] = bool(enabled)

    def save_preferences(self) -> None:
        if self.state != BannerState.DETAILED_PREFERENCES:
            return
        self.emit_consent_action("updated", self.enabled_purpose_ids)

    def close(self) -> None:
        """Dismiss without deciding."""
        if self.state not in _VISIBLE:
            return
        self._post(make_message(CLOSE_BANNER), ANY_TARGET_ORIGIN)
        self.state = BannerState.HIDDEN

    def show(self) -> None:
        """Re-enter quick actions after the host re-displayed the iframe."""
        if self.state == BannerState.HIDDEN:
            self.state = BannerState.QUICK_ACTIONS

    # ── Messages ──────────────────────────────────────────────────────────────

    def emit_consent_action(self, status: str, enabled_ids: list[str]) -> dict[str, Any]:
        """Post CONSENT_ACTION to the parent and hide.

        Required purposes are added whatever ``enabled_ids`` holds; the
        result keeps template order.
        """
        chosen = set(enabled_ids)
        purposes = [p.id for p in self.purposes if p.required or p.id in chosen]
        message = make_message(
            CONSENT_ACTION,
            {
                "status": status,
                "purposes": purposes,
                "timestamp": self._clock(),
                "language": self.language,
            },
        )
        self._post(message, ANY_TARGET_ORIGIN)
        self.state = BannerState.HIDDEN
        logger.info(
            "consent action emitted",
            extra={
                "extra_fields": safe_log_context(
                    template_id=self.template_id, status=status, purpose_count=len(purposes)
                )
            },
        )
        return message

    def emit_language_change(self, language: str) -> None:
        self.language = language
        self._post(make_message(LANGUAGE_CHANGE, {"language": language}), ANY_TARGET_ORIGIN)

    def receive_parent_message(self, event: MessageEvent) -> None:
        """Handle UPDATE_LANGUAGE in place; anything else is ignored."""
        try:
            message_type, payload = parse_message(event.data)
        except MalformedMessageError:
            return
        if message_type != UPDATE_LANGUAGE:
            return
        language = payload.get("language")
        if isinstance(language, str) and language:
            self.language = language

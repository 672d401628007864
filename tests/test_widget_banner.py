"""Tests for the banner page state machine."""

from __future__ import annotations

import json

import pytest
import requests

from consent_manager.widget.banner import DEFAULT_PURPOSES, BannerPage, BannerState
from consent_manager.widget.client import ConsentApiError
from consent_manager.widget.messages import (
    CLOSE_BANNER,
    CONSENT_ACTION,
    LANGUAGE_CHANGE,
    UPDATE_LANGUAGE,
    MessageEvent,
    make_message,
)

from .helpers import snapshot_dict

PURPOSES = [
    {"id": "analytics", "name": "Analytics", "required": False, "category": "analytics"},
    {"id": "essential", "name": "Essential", "required": True, "category": "essential"},
    {"id": "marketing", "name": "Marketing", "required": False, "category": "marketing"},
]


class Parent:
    """Collects messages posted to the parent window."""

    def __init__(self):
        self.messages: list[tuple[dict, str]] = []

    def __call__(self, message, target_origin):
        self.messages.append((message, target_origin))

    @property
    def last(self) -> dict:
        return self.messages[-1][0]


@pytest.fixture
def parent():
    return Parent()


def _banner(parent, purposes=PURPOSES, **kwargs) -> BannerPage:
    banner = BannerPage(
        "t1",
        post_to_parent=parent,
        user_id="cust_001",
        template_data=json.dumps(snapshot_dict(purposes=purposes)),
        clock=lambda: 1234,
        **kwargs,
    )
    banner.load()
    return banner


class TestLoading:
    def test_template_data_used(self, parent):
        banner = _banner(parent)
        assert banner.state == BannerState.QUICK_ACTIONS
        assert [p.id for p in banner.purposes] == ["analytics", "essential", "marketing"]
        assert banner.enabled_purpose_ids == ["essential"]
        assert banner.display_config.acceptButtonText == "Accept All"

    def test_fetcher_used_when_no_template_data(self, parent):
        calls = []

        def fetch(template_id, *, language, platform):
            calls.append((template_id, language, platform))
            return snapshot_dict()

        banner = BannerPage("t1", post_to_parent=parent, language="hi", fetch_template=fetch)
        banner.load()

        assert calls == [("t1", "hi", "web")]
        assert [p.id for p in banner.purposes] == ["essential", "analytics"]

    def test_bad_template_data_falls_back_to_fetcher(self, parent):
        banner = BannerPage(
            "t1",
            post_to_parent=parent,
            template_data="{not json",
            fetch_template=lambda tid, **kw: snapshot_dict(),
        )
        banner.load()
        assert banner.template is not None
        assert banner.template.id == "t1"

    @pytest.mark.parametrize(
        "error", [requests.ConnectionError("down"), ConsentApiError("HTTP 404", status_code=404)]
    )
    def test_default_purposes_when_fetch_fails(self, parent, error):
        def fetch(template_id, **kwargs):
            raise error

        banner = BannerPage("t1", post_to_parent=parent, fetch_template=fetch)
        banner.load()

        assert banner.template is None
        assert banner.purposes == DEFAULT_PURPOSES
        assert banner.required_ids == ["essential"]
        assert banner.display_config.title == "Privacy & Cookie Consent"

    def test_from_url(self, parent):
        banner = BannerPage.from_url(
            "https://consent.example.com/iframe/t%201?userId=cust_001&platform=mobile&language=ta",
            post_to_parent=parent,
        )
        assert banner.template_id == "t 1"
        assert banner.user_id == "cust_001"
        assert (banner.platform, banner.language) == ("mobile", "ta")


class TestQuickActions:
    def test_accept_all(self, parent):
        banner = _banner(parent)
        banner.accept_all()

        message, target = parent.messages[0]
        assert target == "*"
        assert message == make_message(
            CONSENT_ACTION,
            {"status": "accepted", "purposes": ["analytics", "essential", "marketing"],
             "timestamp": 1234, "language": "en"},
        )
        assert banner.state == BannerState.HIDDEN

    def test_reject_all_keeps_required(self, parent):
        banner = _banner(parent)
        banner.reject_all()

        assert parent.last["payload"]["status"] == "rejected"
        assert parent.last["payload"]["purposes"] == ["essential"]

    def test_actions_ignored_while_hidden(self, parent):
        banner = _banner(parent)
        banner.reject_all()
        banner.accept_all()
        banner.close()
        assert len(parent.messages) == 1

    def test_close(self, parent):
        banner = _banner(parent)
        banner.close()

        assert parent.last == make_message(CLOSE_BANNER)
        assert banner.state == BannerState.HIDDEN
        banner.show()
        assert banner.state == BannerState.QUICK_ACTIONS


class TestDetailedPreferences:
    def test_customize_and_back(self, parent):
        banner = _banner(parent)
        banner.customize()
        assert banner.state == BannerState.DETAILED_PREFERENCES
        banner.close_details()
        assert banner.state == BannerState.QUICK_ACTIONS

    def test_toggle_ignored_outside_details(self, parent):
        banner = _banner(parent)
        banner.toggle_purpose("marketing", True)
        assert not banner.is_enabled("marketing")

    def test_save_preferences(self, parent):
        banner = _banner(parent)
        banner.customize()
        banner.toggle_purpose("marketing", True)

        banner.save_preferences()

        assert parent.last["payload"]["status"] == "updated"
        assert parent.last["payload"]["purposes"] == ["essential", "marketing"]
        assert banner.state == BannerState.HIDDEN

    @pytest.mark.parametrize(
        "toggles",
        [
            [("essential", False)],
            [("analytics", True), ("essential", False), ("analytics", False)],
            [("unknown", True), ("essential", False), ("marketing", True)],
        ],
    )
    def test_required_always_enabled(self, parent, toggles):
        banner = _banner(parent)
        banner.customize()
        for purpose_id, enabled in toggles:
            banner.toggle_purpose(purpose_id, enabled)
            assert banner.is_enabled("essential")

        banner.save_preferences()

        assert "essential" in parent.last["payload"]["purposes"]
        assert "unknown" not in parent.last["payload"]["purposes"]

    def test_emit_adds_required_in_template_order(self, parent):
        banner = _banner(parent)
        message = banner.emit_consent_action("updated", ["marketing"])
        assert message["payload"]["purposes"] == ["essential", "marketing"]


class TestLanguage:
    def test_emit_language_change(self, parent):
        banner = _banner(parent)
        banner.emit_language_change("hi")

        assert banner.language == "hi"
        assert parent.last == make_message(LANGUAGE_CHANGE, {"language": "hi"})

    def test_update_language_from_parent(self, parent):
        banner = _banner(parent)
        banner.receive_parent_message(
            MessageEvent(origin="https://shop.example.com",
                         data=make_message(UPDATE_LANGUAGE, {"language": "bn"}))
        )
        assert banner.language == "bn"

    @pytest.mark.parametrize(
        "data", [None, make_message("OTHER", {"language": "bn"}), make_message(UPDATE_LANGUAGE)]
    )
    def test_other_parent_messages_ignored(self, parent, data):
        banner = _banner(parent)
        banner.receive_parent_message(MessageEvent(origin="https://shop.example.com", data=data))
        assert banner.language == "en"

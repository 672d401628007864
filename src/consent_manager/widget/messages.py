"""postMessage protocol between the banner iframe and the host page."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# iframe → parent
CONSENT_ACTION = "CONSENT_ACTION"
LANGUAGE_CHANGE = "LANGUAGE_CHANGE"
CLOSE_BANNER = "CLOSE_BANNER"

# parent → iframe
UPDATE_LANGUAGE = "UPDATE_LANGUAGE"

# The banner cannot know the host page origin in advance
ANY_TARGET_ORIGIN = "*"


class MalformedMessageError(ValueError):
    """Raised when message data is not ``{type: str, payload: object}``."""

    pass


@dataclass(frozen=True)
class MessageEvent:
    """A delivered message: sender origin plus structured-clone data."""

    origin: str
    data: Any
    source: Any = None


def make_message(message_type: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
    return {"type": message_type, "payload": payload or {}}


def parse_message(data: Any) -> tuple[str, dict[str, Any]]:
    """Split message data into (type, payload).

    Raises:
        MalformedMessageError: If data is not a typed message.
    """
    if not isinstance(data, dict):
        raise MalformedMessageError("message data must be an object")
    message_type = data.get("type")
    if not isinstance(message_type, str) or not message_type:
        raise MalformedMessageError("message type missing")
    payload = data.get("payload")
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise MalformedMessageError("message payload must be an object")
    return message_type, payload

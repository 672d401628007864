"""Widget data model: configuration, template snapshot, decisions, wire payload.

Snapshots travel as camelCase dicts (template endpoint body, ``templateData``
iframe parameter); ``from_dict``/``to_dict`` convert at those edges.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_PLATFORM = "web"
DEFAULT_LANGUAGE = "en"

DECISION_STATUSES = ("accepted", "rejected", "updated")

# Banner "Save preferences" is stored as a partial consent
_WIRE_STATUS = {"accepted": "accepted", "rejected": "rejected", "updated": "partial"}


@dataclass(frozen=True)
class WidgetConfig:
    """Configuration read from the SDK script tag."""

    template_id: str
    user_reference_id: str
    platform: str = DEFAULT_PLATFORM
    language: str = DEFAULT_LANGUAGE

    @classmethod
    def from_dataset(cls, dataset: dict[str, str]) -> WidgetConfig | None:
        """Parse ``data-*`` attributes; None if templateId or userId is missing."""
        template_id = dataset.get("templateId")
        user_id = dataset.get("userId")
        if not template_id or not user_id:
            return None
        return cls(
            template_id=template_id,
            user_reference_id=user_id,
            platform=dataset.get("platform") or DEFAULT_PLATFORM,
            language=dataset.get("language") or DEFAULT_LANGUAGE,
        )


@dataclass(frozen=True)
class Purpose:
    id: str
    name: str
    description: str = ""
    required: bool = False
    category: str = "other"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Purpose:
        if not isinstance(data, dict) or not data.get("id"):
            raise ValueError("purpose requires an id")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            description=str(data.get("description") or ""),
            required=bool(data.get("required", False)),
            category=str(data.get("category") or "other"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "required": self.required,
            "category": self.category,
        }


@dataclass(frozen=True)
class BannerConfig:
    title: str = "Privacy & Cookie Consent"
    description: str = "We use cookies to enhance your experience and analyze our traffic."
    acceptButtonText: str = "Accept All"
    rejectButtonText: str = "Reject All"
    customizeButtonText: str = "Customize"
    position: str = "bottom"
    theme: str = "light"
    primaryColor: str = "#3b82f6"
    backgroundColor: str = "#ffffff"
    textColor: str = "#374151"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BannerConfig:
        """Missing or empty keys keep their defaults."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("config must be an object")
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__ and v}
        return cls(**known)

    def to_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.__dataclass_fields__}


@dataclass(frozen=True)
class TemplateSnapshot:
    """Template as served to the widget. Immutable once fetched."""

    id: str
    name: str
    config: BannerConfig
    purposes: tuple[Purpose, ...]
    language: str = DEFAULT_LANGUAGE
    platform: str = DEFAULT_PLATFORM
    description: str | None = None
    translations: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> TemplateSnapshot:
        """Parse a snapshot body.

        Raises:
            ValueError: If the body is not a usable snapshot.
        """
        if not isinstance(data, dict) or not data.get("id"):
            raise ValueError("template snapshot requires an id")
        purposes = data.get("purposes") or []
        if not isinstance(purposes, list):
            raise ValueError("purposes must be a list")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            config=BannerConfig.from_dict(data.get("config")),
            purposes=tuple(Purpose.from_dict(p) for p in purposes),
            language=data.get("language") or DEFAULT_LANGUAGE,
            platform=data.get("platform") or DEFAULT_PLATFORM,
            description=data.get("description"),
            translations=data.get("translations"),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "config": self.config.to_dict(),
            "purposes": [p.to_dict() for p in self.purposes],
            "language": self.language,
            "platform": self.platform,
        }
        if self.description is not None:
            data["description"] = self.description
        if self.translations is not None:
            data["translations"] = self.translations
        return data

    @property
    def required_purpose_ids(self) -> list[str]:
        return [p.id for p in self.purposes if p.required]


def fallback_template(template_id: str, *, language: str, platform: str) -> TemplateSnapshot:
    """Built-in template used when the template endpoint cannot be reached."""
    return TemplateSnapshot(
        id=template_id,
        name="Default Consent",
        config=BannerConfig(),
        purposes=(
            Purpose(
                id="essential",
                name="Essential Cookies",
                description="Required for basic website functionality",
                required=True,
                category="essential",
            ),
        ),
        language=language,
        platform=platform,
    )


@dataclass(frozen=True)
class ConsentDecision:
    """Decision reported by the banner in a CONSENT_ACTION message."""

    status: str
    purposes: list[str] = field(default_factory=list)
    timestamp: int | None = None
    language: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> ConsentDecision:
        """Validate a CONSENT_ACTION payload.

        Raises:
            ValueError: On unknown status or malformed purposes.
        """
        if not isinstance(payload, dict):
            raise ValueError("payload must be an object")
        status = payload.get("status")
        if status not in DECISION_STATUSES:
            raise ValueError(f"unknown consent status: {status!r}")
        purposes = payload.get("purposes") or []
        if not isinstance(purposes, list) or not all(isinstance(p, str) for p in purposes):
            raise ValueError("purposes must be a list of purpose ids")
        timestamp = payload.get("timestamp")
        if timestamp is not None and (isinstance(timestamp, bool) or not isinstance(timestamp, (int, float))):
            raise ValueError("timestamp must be epoch milliseconds")
        return cls(
            status=status,
            purposes=list(purposes),
            timestamp=int(timestamp) if timestamp is not None else None,
            language=payload.get("language") or None,
        )


def build_submission(config: WidgetConfig, decision: ConsentDecision, *, now: int) -> dict[str, Any]:
    """Wire payload for the consent submission endpoint."""
    return {
        "templateId": config.template_id,
        "userReferenceId": config.user_reference_id,
        "status": _WIRE_STATUS[decision.status],
        "purposes": list(decision.purposes),
        "timestamp": decision.timestamp or now,
        "platform": config.platform,
        "language": decision.language or config.language,
    }

"""Consent template domain logic.

A template bundles the banner copy and colours, the purposes a user can
consent to, and per-language translations. The public snapshot is what the
widget renders: banner config + purposes with the requested language's
translations merged over the defaults.
"""

from __future__ import annotations

from typing import Any

HEX_COLOR_REGEX = r"^#[0-9A-Fa-f]{6}$"
PURPOSE_ID_REGEX = r"^[a-z0-9-_]+$"

BANNER_CONFIG_KEYS = (
    "title",
    "description",
    "acceptButtonText",
    "rejectButtonText",
    "customizeButtonText",
    "position",
    "theme",
    "primaryColor",
    "backgroundColor",
    "textColor",
)

# Translatable banner texts
_TRANSLATED_KEYS = (
    "title",
    "description",
    "acceptButtonText",
    "rejectButtonText",
    "customizeButtonText",
)


class TemplateNotFoundError(Exception):
    """Raised when a template ID does not exist."""

    pass


class TemplateInactiveError(Exception):
    """Raised when a template exists but is not active."""

    pass


def build_public_snapshot(
    template: dict[str, Any],
    *,
    language: str,
    platform: str,
) -> dict[str, Any]:
    """Shape a stored template into the snapshot served to the widget.

    Args:
        template: Template dict as returned by the templates repository.
        language: Requested ISO 639-1 language code.
        platform: Requesting platform ("web", "mobile", ...).

    Returns:
        TemplateSnapshot dict (camelCase keys, wire format).

    Raises:
        TemplateInactiveError: If the template status is not "active".
    """
    if template.get("status") != "active":
        raise TemplateInactiveError(template.get("id"))

    banner = template.get("banner_config") or {}
    config = {key: banner.get(key) for key in BANNER_CONFIG_KEYS}

    purposes = [
        {
            "id": p.get("id"),
            "name": p.get("name"),
            "description": p.get("description"),
            "required": bool(p.get("required", False)),
            "category": p.get("category", "other"),
        }
        for p in template.get("purposes") or []
    ]

    translation = (template.get("translations") or {}).get(language)

    if translation:
        for key in _TRANSLATED_KEYS:
            config[key] = translation.get(key) or config[key]

        purpose_texts = translation.get("purposes") or {}
        for purpose in purposes:
            texts = purpose_texts.get(purpose["id"]) or {}
            purpose["name"] = texts.get("name") or purpose["name"]
            purpose["description"] = texts.get("description") or purpose["description"]

    return {
        "id": template["id"],
        "name": template.get("name"),
        "description": template.get("description"),
        "config": config,
        "purposes": purposes,
        "translations": translation or None,
        "language": language,
        "platform": platform,
        "createdAt": template.get("created_at"),
        "updatedAt": template.get("updated_at"),
    }


def required_purpose_ids(template: dict[str, Any]) -> list[str]:
    """IDs of purposes flagged as required, in template order."""
    return [p["id"] for p in template.get("purposes") or [] if p.get("required")]

"""Consent analytics aggregation.

Pure functions over consent record dicts (as returned by the consent records
repository) so the numbers can be tested without a database.
"""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Iterable

from consent_manager.domain.consent import SUBMISSION_STATUSES

DAILY_WINDOW_DAYS = 30
TOP_PURPOSES = 10


def _empty_counts() -> dict[str, int]:
    return {"total": 0, **{status: 0 for status in SUBMISSION_STATUSES}}


def _rate(accepted: int, total: int) -> float:
    return round(accepted / total * 100, 2) if total else 0.0


def filter_records(
    records: Iterable[dict[str, Any]],
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    status: str | None = None,
) -> list[dict[str, Any]]:
    """Apply date range (inclusive) and status filters."""
    result = []
    for record in records:
        ts = record["consent_timestamp"]
        if start is not None and ts < start:
            continue
        if end is not None and ts > end:
            continue
        if status in SUBMISSION_STATUSES and record["status"] != status:
            continue
        result.append(record)
    return result


def _grouped(records: list[dict[str, Any]], key: str, label: str) -> list[dict[str, Any]]:
    groups: dict[str, dict[str, int]] = {}
    for record in records:
        counts = groups.setdefault(record[key], _empty_counts())
        counts["total"] += 1
        counts[record["status"]] = counts.get(record["status"], 0) + 1
    return [{label: name, **counts} for name, counts in groups.items()]


def compute_consent_analytics(
    records: list[dict[str, Any]],
    templates: list[dict[str, Any]],
    *,
    today: date,
) -> dict[str, Any]:
    """Build the analytics payload.

    Args:
        records: Filtered consent records.
        templates: Templates in scope (id, name, status).
        today: Last day of the daily window.

    Returns:
        Dict with overview, templateStats, dailyStats, platformStats,
        languageStats and purposeStats (top 10).
    """
    status_counts = Counter(r["status"] for r in records)
    total = len(records)

    overview = {
        "totalConsents": total,
        "acceptedConsents": status_counts["accepted"],
        "rejectedConsents": status_counts["rejected"],
        "partialConsents": status_counts["partial"],
        "acceptanceRate": _rate(status_counts["accepted"], total),
        "totalTemplates": len(templates),
        "activeTemplates": sum(1 for t in templates if t.get("status") == "active"),
    }

    template_stats = []
    for template in templates:
        own = Counter(r["status"] for r in records if r["template_id"] == template["id"])
        own_total = sum(own.values())
        template_stats.append({
            "templateId": template["id"],
            "templateName": template.get("name"),
            "totalConsents": own_total,
            "accepted": own["accepted"],
            "rejected": own["rejected"],
            "partial": own["partial"],
            "acceptanceRate": _rate(own["accepted"], own_total),
        })

    by_day: dict[date, dict[str, int]] = {}
    for record in records:
        counts = by_day.setdefault(record["consent_timestamp"].date(), _empty_counts())
        counts["total"] += 1
        counts[record["status"]] = counts.get(record["status"], 0) + 1

    daily_stats = []
    for offset in range(DAILY_WINDOW_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        daily_stats.append({"date": day.isoformat(), **by_day.get(day, _empty_counts())})

    purpose_counts: Counter[str] = Counter()
    for record in records:
        purpose_counts.update(record.get("accepted_purposes") or [])

    return {
        "overview": overview,
        "templateStats": template_stats,
        "dailyStats": daily_stats,
        "platformStats": _grouped(records, "platform", "platform"),
        "languageStats": _grouped(records, "language", "language"),
        "purposeStats": [
            {"purposeId": pid, "count": count}
            for pid, count in purpose_counts.most_common(TOP_PURPOSES)
        ],
    }

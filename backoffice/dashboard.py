"""Placeholder figures for the CRM dashboard.

Everything here is literal data; nothing is read from storage.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional


def mock_stats() -> Dict[str, Dict[str, Any]]:
    """Return the headline CRM figures shown on the dashboard cards."""

    return {
        "invoices_awaiting": {"current": 45, "total": 76, "amount": 5569, "percentage": 56},
        "converted_leads": {"current": 48, "total": 86, "completed": 52, "percentage": 63},
        "projects_progress": {"current": 16, "total": 20, "percentage": 78},
        "conversion_rate": {"rate": 46.59, "amount": 2254, "percentage": 46},
    }


def mock_notifications(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Return the notification feed, timestamped relative to ``now``."""

    if now is None:
        now = datetime.now(timezone.utc)
    return [
        {
            "id": 1,
            "user_name": "Malanie Hanvey",
            "user_avatar": "2.png",
            "message": "We should talk about that at lunch!",
            "created_at": now - timedelta(minutes=2),
        },
        {
            "id": 2,
            "user_name": "Valentine Maton",
            "user_avatar": "3.png",
            "message": "You can download the latest invoices now.",
            "created_at": now - timedelta(minutes=36),
        },
        {
            "id": 3,
            "user_name": "Archie Cantones",
            "user_avatar": "4.png",
            "message": "Don't forget to pickup Jeremy after school!",
            "created_at": now - timedelta(minutes=53),
        },
    ]


def time_since(value: datetime, now: Optional[datetime] = None) -> str:
    """Render a coarse "N minutes ago" label for ``value``."""

    if now is None:
        now = datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)

    seconds = int((now - value).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        count, unit = seconds // 60, "minute"
    elif seconds < 86400:
        count, unit = seconds // 3600, "hour"
    else:
        count, unit = seconds // 86400, "day"
    suffix = "" if count == 1 else "s"
    return f"{count} {unit}{suffix} ago"


__all__ = ["mock_notifications", "mock_stats", "time_since"]

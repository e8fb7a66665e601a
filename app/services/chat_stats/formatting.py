"""
Display helpers for dashboard stat cards.
"""

from __future__ import annotations

from datetime import datetime


def format_response_time(seconds: float) -> str:
    """Compact latency label: "--", "45s", "3m", "2h"."""
    if seconds <= 0:
        return "--"
    if seconds < 60:
        return f"{round(seconds)}s"
    if seconds < 3600:
        return f"{round(seconds / 60)}m"
    return f"{round(seconds / 3600)}h"


def format_last_activity(last_activity: datetime | None, now: datetime) -> str:
    """Relative label for a project's most recent message."""
    if last_activity is None:
        return "No activity"

    elapsed = (now - last_activity).total_seconds()
    minutes = int(elapsed // 60)
    hours = int(elapsed // 3600)
    days = int(elapsed // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return last_activity.date().isoformat()

"""
Trend Calculator — recent half of the lookback window vs the prior half.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Sequence

from app.config import settings
from app.models.chat_stats import Message, Trend


def trend_from_counts(
    recent_count: int,
    prior_count: int,
    threshold_pct: float | None = None,
) -> tuple[Trend, float]:
    """Direction and absolute % change of recent vs prior volume.

    No prior volume means there is no baseline: always (stable, 0.0).
    """
    threshold = (
        threshold_pct
        if threshold_pct is not None
        else settings.chat_stats_trend_threshold_pct
    )
    if prior_count == 0:
        return Trend.STABLE, 0.0

    change = (recent_count - prior_count) * 100 / prior_count
    if change > threshold:
        trend = Trend.UP
    elif change < -threshold:
        trend = Trend.DOWN
    else:
        trend = Trend.STABLE
    return trend, abs(change)


def split_window(
    messages: Sequence[Message],
    now: datetime,
    lookback_days: int | None = None,
) -> tuple[int, int]:
    """(recent_count, prior_count) around the window midpoint.

    prior_count is the remainder of the fetched set, not a separate query.
    """
    days = lookback_days if lookback_days is not None else (
        settings.chat_stats_lookback_days
    )
    midpoint = now - timedelta(days=days) / 2
    recent = sum(1 for m in messages if m.timestamp >= midpoint)
    return recent, len(messages) - recent


def calculate_trend(
    messages: Sequence[Message],
    now: datetime,
    lookback_days: int | None = None,
    threshold_pct: float | None = None,
) -> tuple[Trend, float]:
    recent, prior = split_window(messages, now, lookback_days)
    return trend_from_counts(recent, prior, threshold_pct)

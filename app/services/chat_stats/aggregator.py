"""
Chat Stats Aggregator — per-project pipeline + global rollup.

Pipeline, per project (projects run concurrently, bounded by a semaphore):
  1. Fetch active/pending conversations  → active_conversations
  2. Fetch messages in the lookback window → volume, 24h volume, last activity
  3. Fetch all conversations               → total_leads
  4. Response time / trend / channel breakdown over the message set

Fetches 1–3 run in parallel. A failing data source degrades to empty for
that source only; an exception escaping the pipeline yields all-zero stats
for that project. Nothing crosses project boundaries.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Iterable, Sequence, TypeVar

from app.config import settings
from app.models.chat_stats import (
    ChatStatsSnapshot,
    Conversation,
    ConversationStatus,
    GlobalStats,
    Message,
    ProjectStats,
)
from app.services.chat_stats.channels import channel_breakdown
from app.services.chat_stats.errors import AccessDenied, RecordFetchError
from app.services.chat_stats.record_store import RecordStore
from app.services.chat_stats.response_time import response_time_metrics
from app.services.chat_stats.trend import calculate_trend

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ACTIVE_STATUSES = (ConversationStatus.ACTIVE, ConversationStatus.PENDING)


async def _safe_fetch(
    project_id: str, source: str, fetch: Awaitable[list[T]]
) -> list[T]:
    """Await a record fetch, degrading any failure to an empty list."""
    try:
        return await fetch
    except AccessDenied:
        # Collection not provisioned for this project — expected, stay quiet
        logger.debug("Chat stats: %s not available for project %s", source, project_id)
        return []
    except RecordFetchError as e:
        logger.warning("Chat stats: %s", e)
        return []
    except Exception as e:
        logger.warning(
            "Chat stats: unexpected error fetching %s for project %s: %s",
            source,
            project_id,
            e,
        )
        return []


def _build_stats(
    project_id: str,
    now: datetime,
    active: Sequence[Conversation],
    messages: Sequence[Message],
    conversations: Sequence[Conversation],
) -> ProjectStats:
    recent_cutoff = now - timedelta(hours=settings.chat_stats_recent_hours)
    response_times = response_time_metrics(messages)
    trend, trend_pct = calculate_trend(messages, now)

    return ProjectStats(
        project_id=project_id,
        active_conversations=len(active),
        total_messages=len(messages),
        messages_24h=sum(1 for m in messages if m.timestamp >= recent_cutoff),
        total_leads=sum(1 for c in conversations if c.has_lead),
        avg_response_time_seconds=response_times.avg_seconds,
        response_times=response_times,
        last_activity=max((m.timestamp for m in messages), default=None),
        channel_breakdown=channel_breakdown(messages),
        trend=trend,
        trend_percentage=trend_pct,
    )


async def compute_project_stats(
    store: RecordStore,
    project_id: str,
    now: datetime,
) -> ProjectStats:
    """Stats for one project. Never raises for per-project failures."""
    since = now - timedelta(days=settings.chat_stats_lookback_days)
    try:
        active, messages, conversations = await asyncio.gather(
            _safe_fetch(
                project_id,
                "active conversations",
                store.query_conversations(
                    project_id, _ACTIVE_STATUSES, settings.chat_stats_active_limit
                ),
            ),
            _safe_fetch(
                project_id,
                "messages",
                store.query_messages(
                    project_id, since, settings.chat_stats_message_limit
                ),
            ),
            _safe_fetch(
                project_id,
                "conversations",
                store.query_conversations(
                    project_id, None, settings.chat_stats_conversation_limit
                ),
            ),
        )
        return _build_stats(project_id, now, active, messages, conversations)
    except Exception:
        logger.exception("Chat stats: pipeline failed for project %s", project_id)
        return ProjectStats.empty(project_id)


def rollup(stats: Iterable[ProjectStats]) -> GlobalStats:
    """Fold per-project stats into the dashboard summary."""
    total_active = 0
    total_24h = 0
    total_leads = 0
    with_activity = 0
    response_avgs: list[float] = []

    for s in stats:
        total_active += s.active_conversations
        total_24h += s.messages_24h
        total_leads += s.total_leads
        if s.total_messages > 0:
            with_activity += 1
        # Projects without reply pairs stay out of the denominator
        if s.avg_response_time_seconds > 0:
            response_avgs.append(s.avg_response_time_seconds)

    return GlobalStats(
        total_active_chats=total_active,
        total_messages_24h=total_24h,
        total_leads=total_leads,
        avg_response_time_seconds=(
            sum(response_avgs) / len(response_avgs) if response_avgs else 0.0
        ),
        projects_with_activity=with_activity,
    )


def rank_projects(stats: dict[str, ProjectStats]) -> list[str]:
    """Project ids by active conversations, then most recent activity."""

    def _key(project_id: str) -> tuple[int, float]:
        s = stats[project_id]
        last = s.last_activity.timestamp() if s.last_activity else float("-inf")
        return (s.active_conversations, last)

    return sorted(stats, key=_key, reverse=True)


def unique_project_ids(project_ids: Iterable[str]) -> list[str]:
    """Distinct ids, first occurrence order."""
    return list(dict.fromkeys(project_ids))


async def compute_chat_stats(
    store: RecordStore,
    project_ids: Sequence[str],
    now: datetime,
    max_concurrency: int | None = None,
) -> ChatStatsSnapshot:
    """Stats for every project plus the global rollup.

    Each project is an independent task returning (project_id, stats); the
    map is assembled here once all tasks finish.
    """
    limit = max_concurrency or settings.chat_stats_max_concurrency
    semaphore = asyncio.Semaphore(max(1, limit))

    async def _run(project_id: str) -> tuple[str, ProjectStats]:
        async with semaphore:
            return project_id, await compute_project_stats(store, project_id, now)

    results = await asyncio.gather(
        *(_run(pid) for pid in unique_project_ids(project_ids))
    )

    stats = {project_id: project_stats for project_id, project_stats in results}
    return ChatStatsSnapshot(
        stats=stats,
        global_stats=rollup(stats.values()),
        ranking=rank_projects(stats),
        computed_at=now,
    )

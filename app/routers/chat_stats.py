"""
Chat Stats Router — dashboard endpoints for chat activity.

Endpoints:
  POST /chat-stats/refresh                 — Recompute stats for a project set
  GET  /chat-stats                         — Current controller state
  GET  /chat-stats/projects/{project_id}   — One project's card
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from app.models.chat_stats import (
    ChatStatsDashboard,
    ChatStatsRefreshRequest,
    ChatStatsSnapshot,
    ProjectStats,
    ProjectStatsCard,
    RefreshState,
)
from app.services.chat_stats.controller import (
    BATCH_ERROR_MESSAGE,
    RefreshController,
    get_refresh_controller,
)
from app.services.chat_stats.errors import BatchFailure, RefreshSuperseded
from app.services.chat_stats.formatting import (
    format_last_activity,
    format_response_time,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _card(stats: ProjectStats, now: datetime) -> ProjectStatsCard:
    return ProjectStatsCard(
        stats=stats,
        response_time_label=format_response_time(stats.avg_response_time_seconds),
        last_activity_label=format_last_activity(stats.last_activity, now),
    )


def _dashboard(snapshot: ChatStatsSnapshot) -> ChatStatsDashboard:
    now = _utcnow()
    return ChatStatsDashboard(
        global_stats=snapshot.global_stats,
        projects=[_card(snapshot.stats[pid], now) for pid in snapshot.ranking],
        computed_at=snapshot.computed_at,
    )


# =============================================================================
# REFRESH
# =============================================================================


@router.post("/refresh")
async def refresh_stats(
    body: ChatStatsRefreshRequest,
    controller: RefreshController = Depends(get_refresh_controller),
) -> ChatStatsDashboard:
    """Recompute stats for the requested projects."""
    try:
        snapshot = await controller.refresh(body.project_ids)
    except RefreshSuperseded:
        raise HTTPException(status_code=409, detail="Refresh superseded")
    except BatchFailure:
        raise HTTPException(status_code=500, detail=BATCH_ERROR_MESSAGE)

    return _dashboard(snapshot)


# =============================================================================
# READ
# =============================================================================


@router.get("")
async def get_state(
    controller: RefreshController = Depends(get_refresh_controller),
) -> RefreshState:
    """Current status, error and last published snapshot."""
    return controller.state()


@router.get("/projects/{project_id}")
async def get_project_stats(
    project_id: str,
    controller: RefreshController = Depends(get_refresh_controller),
) -> ProjectStatsCard:
    """Last computed stats for one project."""
    stats = controller.get_stats(project_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="No stats for project")

    return _card(stats, _utcnow())

"""
Chat Stats Refresh Controller — entry point for dashboard stats.

States: idle → loading → ready | error. A refresh issued while another is
loading cancels the older one; only the newest call publishes its result
and the superseded caller gets RefreshSuperseded.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from app.config import settings
from app.models.chat_stats import (
    ChatStatsSnapshot,
    GlobalStats,
    ProjectStats,
    RefreshState,
    RefreshStatus,
)
from app.services.chat_stats.aggregator import compute_chat_stats, unique_project_ids
from app.services.chat_stats.errors import BatchFailure, RefreshSuperseded
from app.services.chat_stats.record_store import RecordStore, SupabaseRecordStore

logger = logging.getLogger(__name__)

BATCH_ERROR_MESSAGE = "Failed to load chat statistics"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validate_project_ids(project_ids: Any) -> list[str]:
    """Distinct, non-empty string ids or BatchFailure."""
    if isinstance(project_ids, (str, bytes)):
        raise BatchFailure("project_ids must be a list of ids, not a single string")
    try:
        ids = list(project_ids)
    except TypeError as e:
        raise BatchFailure("project_ids is not iterable") from e

    for pid in ids:
        if not isinstance(pid, str) or not pid.strip():
            raise BatchFailure(f"invalid project id: {pid!r}")
    return unique_project_ids(ids)


class RefreshController:
    """Holds the latest stats snapshot and runs refresh cycles."""

    def __init__(
        self,
        store: RecordStore | None = None,
        max_concurrency: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store or SupabaseRecordStore()
        self._max_concurrency = max_concurrency or settings.chat_stats_max_concurrency
        self._clock = clock

        self._status = RefreshStatus.IDLE
        self._error: str | None = None
        self._snapshot = ChatStatsSnapshot()
        self._generation = 0
        self._task: asyncio.Task[ChatStatsSnapshot] | None = None

    # -- exposed state --------------------------------------------------------

    @property
    def status(self) -> RefreshStatus:
        return self._status

    @property
    def is_loading(self) -> bool:
        return self._status == RefreshStatus.LOADING

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def stats(self) -> dict[str, ProjectStats]:
        return self._snapshot.stats

    @property
    def global_stats(self) -> GlobalStats:
        return self._snapshot.global_stats

    @property
    def snapshot(self) -> ChatStatsSnapshot:
        return self._snapshot

    def get_stats(self, project_id: str) -> ProjectStats | None:
        return self._snapshot.stats.get(project_id)

    def state(self) -> RefreshState:
        return RefreshState(
            status=self._status,
            is_loading=self.is_loading,
            error=self._error,
            snapshot=self._snapshot,
        )

    # -- refresh --------------------------------------------------------------

    def _cancel_in_flight(self) -> None:
        if self._task is not None and not self._task.done():
            logger.info("Chat stats: superseding in-flight refresh")
            self._task.cancel()
        self._task = None

    def _publish(self, snapshot: ChatStatsSnapshot) -> None:
        self._snapshot = snapshot
        self._status = RefreshStatus.READY
        self._error = None

    async def refresh(self, project_ids: Any) -> ChatStatsSnapshot:
        """Recompute stats for the given projects and publish them.

        Raises:
            BatchFailure: the project list itself could not be processed.
            RefreshSuperseded: a newer refresh replaced this one.
        """
        self._generation += 1
        generation = self._generation
        self._cancel_in_flight()

        try:
            ids = _validate_project_ids(project_ids)
        except BatchFailure as e:
            logger.warning("Chat stats: rejected refresh: %s", e)
            self._status = RefreshStatus.ERROR
            self._error = BATCH_ERROR_MESSAGE
            raise

        now = self._clock()
        if not ids:
            snapshot = ChatStatsSnapshot(computed_at=now)
            self._publish(snapshot)
            return snapshot

        self._status = RefreshStatus.LOADING
        self._error = None
        logger.info("Chat stats: refreshing %d project(s)", len(ids))

        task = asyncio.create_task(
            compute_chat_stats(self._store, ids, now, self._max_concurrency)
        )
        self._task = task
        try:
            snapshot = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                raise RefreshSuperseded("refresh superseded by a newer call") from None
            # Caller went away; nothing newer is loading
            self._status = RefreshStatus.IDLE
            raise
        except Exception as e:
            if generation == self._generation:
                self._status = RefreshStatus.ERROR
                self._error = BATCH_ERROR_MESSAGE
            logger.exception("Chat stats: refresh failed")
            raise BatchFailure(BATCH_ERROR_MESSAGE) from e
        finally:
            if self._task is task:
                self._task = None

        if generation != self._generation:
            raise RefreshSuperseded("refresh superseded by a newer call")

        self._publish(snapshot)
        logger.info(
            "Chat stats: refreshed %d project(s), %d with activity",
            len(snapshot.stats),
            snapshot.global_stats.projects_with_activity,
        )
        return snapshot


# Singleton
_controller: RefreshController | None = None


def get_refresh_controller() -> RefreshController:
    """Get or create the singleton refresh controller."""
    global _controller
    if _controller is None:
        _controller = RefreshController()
    return _controller


def reset_refresh_controller() -> None:
    """Reset the singleton (for testing)."""
    global _controller
    _controller = None

"""
Chat Stats Record Store — read-only queries over conversations and messages.

The aggregator only depends on the RecordStore interface. Failures surface as
exactly one of AccessDenied or RecordFetchError; no other exception type
leaves a query method.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Iterable

from postgrest.exceptions import APIError
from pydantic import ValidationError

from app.config import settings
from app.models.chat_stats import Conversation, ConversationStatus, Message
from app.services.chat_stats.errors import AccessDenied, RecordFetchError
from app.services.supabase import get_supabase_client

logger = logging.getLogger(__name__)

# PostgREST / Postgres codes meaning "this project can't read that table"
_ACCESS_DENIED_CODES = {"42501", "42P01", "PGRST301", "PGRST302", "401", "403"}


class RecordStore(ABC):
    """Query interface consumed by the aggregator."""

    @abstractmethod
    async def query_conversations(
        self,
        project_id: str,
        statuses: Iterable[ConversationStatus] | None,
        limit: int,
    ) -> list[Conversation]:
        """Conversations for a project; statuses=None means all of them."""

    @abstractmethod
    async def query_messages(
        self,
        project_id: str,
        since: datetime,
        limit: int,
    ) -> list[Message]:
        """Messages newer than `since`, newest first."""


def _is_access_denied(exc: APIError) -> bool:
    return str(exc.code or "") in _ACCESS_DENIED_CODES


class SupabaseRecordStore(RecordStore):
    """RecordStore backed by the Supabase conversation/message tables."""

    def __init__(
        self,
        conversations_table: str | None = None,
        messages_table: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.conversations_table = (
            conversations_table or settings.chat_stats_conversations_table
        )
        self.messages_table = messages_table or settings.chat_stats_messages_table
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.chat_stats_fetch_timeout_seconds
        )

    async def _execute(
        self, project_id: str, source: str, query: Any
    ) -> list[dict[str, Any]]:
        """Run a built query, translating failures into the two error classes."""
        try:
            result = await asyncio.wait_for(query.execute(), self.timeout_seconds)
        except APIError as e:
            if _is_access_denied(e):
                raise AccessDenied(project_id, source, e.message or "") from e
            raise RecordFetchError(project_id, source, e.message or str(e)) from e
        except asyncio.TimeoutError as e:
            raise RecordFetchError(
                project_id, source, f"timed out after {self.timeout_seconds}s"
            ) from e
        except Exception as e:
            raise RecordFetchError(project_id, source, str(e)) from e
        return result.data or []

    async def query_conversations(
        self,
        project_id: str,
        statuses: Iterable[ConversationStatus] | None,
        limit: int,
    ) -> list[Conversation]:
        source = "conversations" if statuses is None else "active conversations"
        sb = await get_supabase_client()
        query = (
            sb.table(self.conversations_table)
            .select("*")
            .eq("project_id", project_id)
        )
        if statuses is not None:
            query = query.in_("status", [s.value for s in statuses])
        rows = await self._execute(project_id, source, query.limit(limit))

        try:
            return [Conversation(**row) for row in rows]
        except ValidationError as e:
            raise RecordFetchError(project_id, source, "malformed row") from e

    async def query_messages(
        self,
        project_id: str,
        since: datetime,
        limit: int,
    ) -> list[Message]:
        sb = await get_supabase_client()
        query = (
            sb.table(self.messages_table)
            .select("*")
            .eq("project_id", project_id)
            .gte("timestamp", since.isoformat())
            .order("timestamp", desc=True)
            .limit(limit)
        )
        rows = await self._execute(project_id, "messages", query)

        try:
            return [Message(**row) for row in rows]
        except ValidationError as e:
            raise RecordFetchError(project_id, "messages", "malformed row") from e

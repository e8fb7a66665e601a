"""Shared test helpers for chat stats tests.

Regular functions and a fake record store (not fixtures) that any test
module can import.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Iterable
from uuid import uuid4

from app.models.chat_stats import Conversation, ConversationStatus, Message
from app.services.chat_stats.record_store import RecordStore

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_message(
    project_id: str,
    *,
    seconds_ago: float = 0,
    direction: str = "inbound",
    channel: str = "web",
    sender: str | None = "visitor",
    recipient: str | None = "bot",
) -> Message:
    """Build a message `seconds_ago` before NOW."""
    return Message(
        id=str(uuid4()),
        project_id=project_id,
        timestamp=NOW - timedelta(seconds=seconds_ago),
        direction=direction,
        channel=channel,
        sender_id=sender,
        recipient_id=recipient,
    )


def make_exchange(
    project_id: str,
    *,
    seconds_ago: float,
    reply_after: float,
    visitor: str = "visitor",
    channel: str = "web",
) -> list[Message]:
    """An inbound question plus the outbound reply `reply_after` seconds later."""
    return [
        make_message(
            project_id,
            seconds_ago=seconds_ago,
            direction="inbound",
            channel=channel,
            sender=visitor,
            recipient="bot",
        ),
        make_message(
            project_id,
            seconds_ago=seconds_ago - reply_after,
            direction="outbound",
            channel=channel,
            sender="bot",
            recipient=visitor,
        ),
    ]


def make_conversation(
    project_id: str,
    *,
    status: str = "active",
    lead_id: str | None = None,
) -> Conversation:
    return Conversation(
        id=str(uuid4()),
        project_id=project_id,
        status=status,
        lead_id=lead_id,
    )


class FakeRecordStore(RecordStore):
    """In-memory RecordStore with per-project failure injection.

    `errors[(project_id, source)]` is raised instead of returning data, where
    source is "active", "messages" or "all". `gates[project_id]` is awaited
    before every query for that project.
    """

    def __init__(
        self,
        conversations: dict[str, list[Conversation]] | None = None,
        messages: dict[str, list[Message]] | None = None,
    ) -> None:
        self.conversations = conversations or {}
        self.messages = messages or {}
        self.errors: dict[tuple[str, str], Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[tuple[str, str, int]] = []
        self.message_since: dict[str, datetime] = {}
        self.in_flight = 0
        self.peak_in_flight = 0

    async def _enter(self, project_id: str, source: str) -> None:
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            gate = self.gates.get(project_id)
            if gate is not None:
                await gate.wait()
            else:
                await asyncio.sleep(0)
        finally:
            self.in_flight -= 1
        error = self.errors.get((project_id, source))
        if error is not None:
            raise error

    async def query_conversations(
        self,
        project_id: str,
        statuses: Iterable[ConversationStatus] | None,
        limit: int,
    ) -> list[Conversation]:
        source = "all" if statuses is None else "active"
        self.calls.append((project_id, source, limit))
        await self._enter(project_id, source)

        rows = self.conversations.get(project_id, [])
        if statuses is not None:
            wanted = set(statuses)
            rows = [c for c in rows if c.status in wanted]
        return rows[:limit]

    async def query_messages(
        self,
        project_id: str,
        since: datetime,
        limit: int,
    ) -> list[Message]:
        self.calls.append((project_id, "messages", limit))
        self.message_since[project_id] = since
        await self._enter(project_id, "messages")

        rows = [m for m in self.messages.get(project_id, []) if m.timestamp >= since]
        rows.sort(key=lambda m: m.timestamp, reverse=True)
        return rows[:limit]

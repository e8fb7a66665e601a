"""
Response Time Estimator — how quickly inbound messages get a reply.

Each inbound message is paired with the earliest outbound message sent to
its sender after it. Pairs whose gap falls outside (0, max_seconds) are
dropped as stale or abandoned threads. Pairing is not exclusive: several
inbound messages may share one reply.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from app.config import settings
from app.models.chat_stats import Message, MessageDirection, ResponseTimeMetrics

logger = logging.getLogger(__name__)


def _find_reply(inbound: Message, outbound: Sequence[Message]) -> Message | None:
    """Earliest outbound message after `inbound` addressed to its sender."""
    reply: Message | None = None
    for out in outbound:
        if out.timestamp <= inbound.timestamp:
            continue
        if out.recipient_id != inbound.sender_id:
            continue
        if reply is None or out.timestamp < reply.timestamp:
            reply = out
    return reply


def response_deltas(
    messages: Sequence[Message],
    max_seconds: float | None = None,
) -> list[float]:
    """Accepted reply latencies in seconds, in inbound fetch order."""
    limit = max_seconds if max_seconds is not None else (
        settings.chat_stats_max_response_seconds
    )
    inbound = [m for m in messages if m.direction == MessageDirection.INBOUND]
    outbound = [m for m in messages if m.direction == MessageDirection.OUTBOUND]
    if not inbound or not outbound:
        return []

    deltas: list[float] = []
    for msg in inbound:
        if msg.sender_id is None:
            continue
        reply = _find_reply(msg, outbound)
        if reply is None:
            continue
        delta = _seconds_between(msg.timestamp, reply.timestamp)
        if 0 < delta < limit:
            deltas.append(delta)
    return deltas


def _seconds_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds()


def response_time_metrics(
    messages: Sequence[Message],
    max_seconds: float | None = None,
) -> ResponseTimeMetrics:
    """Average plus min/max/median/p95 of accepted reply latencies."""
    deltas = sorted(response_deltas(messages, max_seconds))
    if not deltas:
        return ResponseTimeMetrics()

    n = len(deltas)
    return ResponseTimeMetrics(
        avg_seconds=sum(deltas) / n,
        min_seconds=deltas[0],
        max_seconds=deltas[-1],
        median_seconds=deltas[n // 2],
        p95_seconds=deltas[min(int(n * 0.95), n - 1)],
        sample_size=n,
    )


def average_response_time(
    messages: Sequence[Message],
    max_seconds: float | None = None,
) -> float:
    """Mean accepted reply latency in seconds, 0.0 when no pair qualifies."""
    return response_time_metrics(messages, max_seconds).avg_seconds

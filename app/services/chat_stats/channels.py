"""
Channel Aggregator — message volume per channel, largest first.
"""

from __future__ import annotations

from typing import Sequence

from app.models.chat_stats import Channel, ChannelCount, Message


def channel_breakdown(messages: Sequence[Message]) -> list[ChannelCount]:
    """Per-channel counts sorted descending; ties keep first-seen order."""
    counts: dict[Channel, int] = {}
    for msg in messages:
        counts[msg.channel] = counts.get(msg.channel, 0) + 1

    # sorted() is stable and dicts keep insertion order
    ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [ChannelCount(channel=channel, count=count) for channel, count in ordered]

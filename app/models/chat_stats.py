"""
Chat Stats Models — record shapes read from the store and the derived
per-project / global statistics served to the dashboard.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

# =============================================================================
# ENUMS
# =============================================================================


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    CLOSED = "closed"
    OTHER = "other"


class MessageDirection(str, Enum):
    INBOUND = "inbound"  # from visitor
    OUTBOUND = "outbound"  # from assistant / agent


class Channel(str, Enum):
    WEB = "web"
    WHATSAPP = "whatsapp"
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    OTHER = "other"


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class RefreshStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


# =============================================================================
# RECORDS (read-only, from the record store)
# =============================================================================


class Conversation(BaseModel):
    """Row from the conversations table."""

    id: str
    project_id: str
    status: ConversationStatus = ConversationStatus.OTHER
    lead_id: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v: Any) -> Any:
        if v is None:
            return ConversationStatus.OTHER
        try:
            return ConversationStatus(v)
        except ValueError:
            return ConversationStatus.OTHER

    @field_validator("lead_id", mode="before")
    @classmethod
    def _blank_lead(cls, v: Any) -> Any:
        # Empty string means no lead captured
        return v or None

    @property
    def has_lead(self) -> bool:
        return self.lead_id is not None


class Message(BaseModel):
    """Row from the messages table."""

    id: str
    project_id: str
    timestamp: datetime
    direction: MessageDirection
    channel: Channel = Channel.OTHER
    sender_id: str | None = None
    recipient_id: str | None = None

    @field_validator("channel", mode="before")
    @classmethod
    def _normalize_channel(cls, v: Any) -> Any:
        if v is None:
            return Channel.OTHER
        try:
            return Channel(v)
        except ValueError:
            return Channel.OTHER

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        # Postgres `timestamp` columns come back without an offset
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


# =============================================================================
# DERIVED STATS
# =============================================================================


class ChannelCount(BaseModel):
    """One row of a project's channel breakdown."""

    channel: Channel
    count: int


class ResponseTimeMetrics(BaseModel):
    """Distribution of accepted inbound → outbound reply latencies."""

    avg_seconds: float = 0.0
    min_seconds: float = 0.0
    max_seconds: float = 0.0
    median_seconds: float = 0.0
    p95_seconds: float = 0.0
    sample_size: int = 0


class ProjectStats(BaseModel):
    """Per-project chat activity, recomputed on every refresh."""

    project_id: str
    active_conversations: int = 0
    total_messages: int = 0  # over the lookback window
    messages_24h: int = 0
    total_leads: int = 0
    avg_response_time_seconds: float = 0.0  # 0 when no reply pairs qualify
    response_times: ResponseTimeMetrics = Field(default_factory=ResponseTimeMetrics)
    last_activity: datetime | None = None
    channel_breakdown: list[ChannelCount] = Field(default_factory=list)
    trend: Trend = Trend.STABLE
    trend_percentage: float = 0.0

    @classmethod
    def empty(cls, project_id: str) -> ProjectStats:
        """All-zero stats, used when a project's pipeline fails outright."""
        return cls(project_id=project_id)


class GlobalStats(BaseModel):
    """Fold of every ProjectStats in one refresh."""

    total_active_chats: int = 0
    total_messages_24h: int = 0
    total_leads: int = 0
    avg_response_time_seconds: float = 0.0  # mean of non-zero project averages
    projects_with_activity: int = 0


class ChatStatsSnapshot(BaseModel):
    """Result of one refresh cycle."""

    stats: dict[str, ProjectStats] = Field(default_factory=dict)
    global_stats: GlobalStats = Field(default_factory=GlobalStats)
    ranking: list[str] = Field(default_factory=list)
    computed_at: datetime | None = None


class RefreshState(BaseModel):
    """Controller state exposed to the dashboard."""

    status: RefreshStatus = RefreshStatus.IDLE
    is_loading: bool = False
    error: str | None = None
    snapshot: ChatStatsSnapshot = Field(default_factory=ChatStatsSnapshot)


# =============================================================================
# REQUEST MODELS
# =============================================================================


class ChatStatsRefreshRequest(BaseModel):
    """Project set to (re)compute stats for."""

    project_ids: list[str] = Field(default_factory=list)


# =============================================================================
# RESPONSE MODELS
# =============================================================================


class ProjectStatsCard(BaseModel):
    """ProjectStats plus display labels for one dashboard card."""

    stats: ProjectStats
    response_time_label: str
    last_activity_label: str


class ChatStatsDashboard(BaseModel):
    """Refresh response: summary + project cards in ranking order."""

    global_stats: GlobalStats
    projects: list[ProjectStatsCard]
    computed_at: datetime | None = None

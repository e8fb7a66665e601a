"""
Quimera Chat Stats Configuration

All environment variables and settings for the chat-activity stats service.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==========================================================================
    # APP
    # ==========================================================================
    app_name: str = "Quimera Chat Stats"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # ==========================================================================
    # SUPABASE (record store for conversations + messages)
    # ==========================================================================
    supabase_url: str
    supabase_service_key: str

    # ==========================================================================
    # CHAT STATS
    # ==========================================================================
    chat_stats_conversations_table: str = "social_conversations"
    chat_stats_messages_table: str = "social_messages"

    chat_stats_lookback_days: int = 7
    chat_stats_recent_hours: int = 24

    # Query caps
    chat_stats_active_limit: int = 100
    chat_stats_message_limit: int = 500
    chat_stats_conversation_limit: int = 1000

    # Max project pipelines in flight against the record store
    chat_stats_max_concurrency: int = 8
    chat_stats_fetch_timeout_seconds: float = 10.0

    chat_stats_max_response_seconds: float = 3600.0
    chat_stats_trend_threshold_pct: float = 5.0

    # ==========================================================================
    # CORS
    # ==========================================================================
    cors_origins: str = "*"

    # ==========================================================================
    # SERVER
    # ==========================================================================
    host: str = "0.0.0.0"
    port: int = 8000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

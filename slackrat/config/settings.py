"""
Configuration settings for the SlackRat search bot
"""

from typing import Optional
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Server Configuration
    server_name: str = "slackrat"
    server_host: str = "0.0.0.0"
    server_port: int = Field(3000, validation_alias=AliasChoices("server_port", "port"))
    transport: str = "sse"  # "sse" or "stdio"

    # Slack credentials (optional at import, checked per operation)
    slack_bot_token: Optional[str] = None
    slack_signing_secret: Optional[str] = None
    slack_app_token: Optional[str] = None  # Socket Mode only
    default_channel: Optional[str] = None

    # Search behaviour
    history_limit: int = 100
    max_results_displayed: int = 5
    preview_length: int = 100
    search_history_size: int = 10
    multi_search_delay_seconds: float = 1.0
    timezone: str = "UTC"

    # Rate Limiting
    rate_limit_per_minute: int = 30
    rate_limit_burst: int = 5

    # Caching
    cache_ttl_seconds: int = Field(
        3600, validation_alias=AliasChoices("cache_ttl_seconds", "cache_ttl")
    )
    cache_max_entries: int = 256

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Create a singleton instance
settings = Settings()

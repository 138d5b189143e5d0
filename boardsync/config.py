"""
Application configuration using Pydantic Settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Trello
    trello_api_key: str = ""
    trello_api_token: str = ""
    trello_api_secret: Optional[str] = None
    trello_callback_url: str = ""
    trello_board_id: str = ""
    trello_board_ids: str = ""  # comma separated

    # Google Calendar
    google_calendar_id: str = ""
    google_client_id: str = ""
    google_client_secret: str = ""
    google_refresh_token: str = ""

    # Database
    database_url: str = "sqlite+aiosqlite:///./cards.db"

    # Server
    server_host: str = "0.0.0.0"
    server_port: int = 8080

    # Outbound calls
    http_timeout_seconds: float = 30.0
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 10.0

    # Webhook processing
    max_concurrent_webhooks: int = 10
    shutdown_timeout_seconds: float = 10.0

    # App Settings
    debug: bool = False
    log_level: str = "INFO"

    @property
    def board_ids(self) -> list[str]:
        """All configured board ids, de-duplicated, in declaration order."""
        raw = [self.trello_board_id, *self.trello_board_ids.split(",")]
        ids: list[str] = []
        for board_id in raw:
            board_id = board_id.strip()
            if board_id and board_id not in ids:
                ids.append(board_id)
        return ids

    @property
    def sync_database_url(self) -> str:
        """Return synchronous database URL for Alembic."""
        return (
            self.database_url
            .replace("sqlite+aiosqlite://", "sqlite://")
            .replace("postgresql+asyncpg://", "postgresql://")
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

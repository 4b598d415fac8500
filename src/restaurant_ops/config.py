"""
Runtime configuration loaded from the environment (and an optional `.env`).

Every component receives a `Settings` instance in its constructor instead of
reading module-level globals, so tests can build one with explicit values:

    Settings(telegram_bot_token="123:abc", telegram_chat_id=-100, ...)

Environment variables use the `RESTAURANT_OPS_` prefix, e.g.
`RESTAURANT_OPS_TELEGRAM_BOT_TOKEN`.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with defaults for local development."""

    model_config = SettingsConfigDict(
        env_prefix="RESTAURANT_OPS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Telegram Bot API
    telegram_bot_token: str = ""
    telegram_chat_id: int = 0  # Group chats are negative ids
    telegram_api_url: str = "https://api.telegram.org"
    telegram_timeout: float = 10.0  # Seconds, per request

    # Document store
    mongo_url: str = "mongodb://localhost:27017"
    mongo_database: str = "restaurant_ops"

    # Attachments (GridFS bucket + public URL prefix that serves it)
    attachments_bucket: str = "attachments"
    attachments_base_url: str = "http://localhost:8000/attachments"

    # Billing
    tax_rate: float = 0.15

    # Rendering
    display_timezone: str = "UTC"

    # Temporal
    temporal_address: str = "localhost:7233"
    temporal_namespace: str = "default"
    approval_task_queue: str = "order-approvals"

    log_level: str = "INFO"

    @property
    def telegram_bot_url(self) -> str:
        return f"{self.telegram_api_url.rstrip('/')}/bot{self.telegram_bot_token}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

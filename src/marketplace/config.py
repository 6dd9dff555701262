"""Runtime settings, read from the environment (``MARKETPLACE_*``)."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MARKETPLACE_", env_file=".env", extra="ignore")

    environment: str = "development"
    database_url: str = "sqlite:///./marketplace.db"
    echo_sql: bool = False
    log_level: str | None = None
    log_dir: str | None = None
    max_cart_quantity: int = 10
    notification_channel: str = "fake"
    cors_origins: list[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    return Settings()

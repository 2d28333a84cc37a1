from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="Activation Server", alias="APP_NAME")
    database_url: str = Field(default="sqlite:///./activations.db", alias="DATABASE_URL")
    store_backend: str = Field(default="sql", alias="STORE_BACKEND")
    store_page_size: int = Field(default=100, ge=1, alias="STORE_PAGE_SIZE")
    store_retry_attempts: int = Field(default=3, ge=1, alias="STORE_RETRY_ATTEMPTS")
    store_retry_backoff_seconds: float = Field(default=0.1, ge=0, alias="STORE_RETRY_BACKOFF_SECONDS")
    arbitration_max_conflict_retries: int = Field(default=5, ge=1, alias="ARBITRATION_MAX_CONFLICT_RETRIES")
    stale_timeout_seconds: int = Field(default=600, ge=1, alias="STALE_TIMEOUT_SECONDS")
    heartbeat_interval_seconds: int = Field(default=300, ge=1, alias="HEARTBEAT_INTERVAL_SECONDS")
    activation_key_prefix: str = Field(default="NGAJ", min_length=1, alias="ACTIVATION_KEY_PREFIX")
    admin_secret: str | None = Field(default=None, alias="ADMIN_SECRET")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


@lru_cache
def get_settings() -> Settings:
    return Settings()

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    api_url: str = Field(default="http://localhost:8000", alias="ACTIVATION_API_URL")
    activation_key: str = Field(alias="ACTIVATION_KEY")
    activation_salt: str = Field(alias="ACTIVATION_SALT")
    host_machine_id: str = Field(alias="HOST_MACHINE_ID")
    api_timeout_seconds: float = Field(default=5.0, gt=0, alias="API_TIMEOUT_SECONDS")
    heartbeat_interval_seconds: int = Field(default=300, ge=1, alias="HEARTBEAT_INTERVAL_SECONDS")
    max_consecutive_expired: int = Field(default=3, ge=1, alias="HEARTBEAT_MAX_CONSECUTIVE_EXPIRED")

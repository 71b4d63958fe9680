from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "local"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Database
    database_url: str

    # Redis
    redis_url: str | None = None
    notification_queue_key: str = "notifications:outbound"

    # Clock
    hospital_timezone: str = "UTC"

    # Identity matching
    phone_country_code: str = "92"
    phone_trunk_prefix: str = "0"

    # Retry policy
    sequence_max_attempts: int = 5
    storage_max_attempts: int = 3
    retry_backoff_seconds: float = 0.05

    # Queue estimates
    minutes_per_token: int = 15

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance so the .env is parsed once.
    """
    return Settings()

"""Service settings, read from the environment or a local .env file"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Deposit service configuration. Field names map to upper-case env variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = "sqlite:///./term_savings.db"
    service_name: str = "term-savings"
    log_level: str = "INFO"

    settlement_webhook_url: str = Field(
        "http://localhost:8002/mock-settlement",
        description="Receives DEPOSIT_CLAIMED and DEPOSIT_EARLY_WITHDRAWN events",
    )
    http_timeout_seconds: float = 5.0
    webhook_max_retries: int = Field(5, ge=1)
    webhook_backoff_base: float = Field(1.0, ge=0, description="Seconds; doubled after each failed attempt")


settings = Settings()

"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "postgresql+asyncpg://marketlinks:marketlinks_dev_password@db:5432/marketlinks"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Simulated marketplace matching: a SKU matches when crc32 % 10 falls below this
    simulated_match_threshold: int = 3

    model_config = SettingsConfigDict(
        env_prefix="MARKETLINKS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()

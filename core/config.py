"""
Application configuration using Pydantic Settings
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Universe API
    UNIVERSE_CLIENT_ID: Optional[str] = None
    UNIVERSE_CLIENT_SECRET: Optional[str] = None
    UNIVERSE_TOKEN_URL: str = "https://www.universe.com/oauth/token"
    UNIVERSE_GRAPHQL_URL: str = "https://www.universe.com/graphql"
    UNIVERSE_EVENT_BASE_URL: str = "https://www.universe.com"

    # Source of truth
    SOURCE_BACKEND: str = "airtable"  # airtable | csv
    AIRTABLE_API_KEY: Optional[str] = None
    AIRTABLE_BASE_ID: Optional[str] = None
    AIRTABLE_TABLE_NAME: Optional[str] = None
    AIRTABLE_API_URL: str = "https://api.airtable.com/v0"
    CSV_SOURCE_PATH: str = "data/events.csv"

    # Batch processing
    BATCH_SIZE: int = Field(default=5, ge=1)
    DELAY_BETWEEN_BATCHES: int = Field(default=2000, ge=0)  # milliseconds
    MAX_RETRIES: int = Field(default=3, ge=0)
    RETRY_DELAY_MS: int = Field(default=1000, ge=0)
    HTTP_TIMEOUT: float = 30.0

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"


settings = Settings()

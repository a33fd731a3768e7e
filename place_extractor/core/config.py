"""Application configuration."""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.

    Environment variables will be loaded and validated using Pydantic.
    """

    app_name: str = "Japan Place Extractor"
    version: str = "0.1.0"

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = True

    # LLM Settings
    LLM_PROVIDER: str = "openai"
    LLM_MODEL_NAME: str = "google/gemini-2.5-flash"
    LLM_TEMPERATURE: float = Field(default=0.2, ge=0, le=1)
    LLM_MAX_TOKENS: int | None = None
    LLM_BASE_URL: str = "https://openrouter.ai/api/v1"

    # API Keys
    OPENROUTER_API_KEY: str | None = None

    # Resolution Settings
    RESOLUTION_CONCURRENCY: int = Field(default=3, ge=1)
    LOOKUP_MAX_MATCHES: int = Field(default=3, ge=1)

    # Working set persistence
    ROW_STORE_BACKEND: Literal["file", "redis", "memory"] = "file"
    ROW_STORE_PATH: str = ".place_extractor/rows.json"
    REDIS_URL: str = "redis://localhost:6379"
    ROW_STORE_KEY: str = "jp-place-extractor-rows"

    # Export Settings
    EXPORT_FILENAME: str = "japan_places.csv"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",  # Allow extra fields in environment
    )

    @model_validator(mode="after")
    def use_test_configs_for_testing(self) -> "Settings":
        """Keep tests away from the operator's persisted working set."""
        import os

        if os.getenv("TESTING") == "true":
            self.ROW_STORE_BACKEND = "memory"
            test_redis_url = os.getenv("TEST_REDIS_URL")
            if test_redis_url:
                self.REDIS_URL = test_redis_url
        return self


# Create settings instance
settings = Settings()

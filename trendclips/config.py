"""
Application settings loaded from environment variables and .env files.
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field, PositiveInt, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

POPULAR_CREATORS = [
    "IShowSpeed",
    "Kai Cenat",
    "Flensha",
    "xQc",
    "PewDiePie",
    "MrBeast",
    "Dude Perfect",
    "KSI",
]


class Settings(BaseSettings):
    """Runtime settings for the trending clip pipeline."""

    youtube_api_key: Optional[SecretStr] = Field(default=None, alias="YOUTUBE_API_KEY")
    youtube_access_token: Optional[SecretStr] = Field(default=None, alias="YOUTUBE_ACCESS_TOKEN")

    ollama_host: Optional[str] = Field(default=None, alias="OLLAMA_HOST")
    llm_model: str = Field(default="qwen2.5:7b", alias="LLM_MODEL")
    llm_timeout_seconds: float = Field(default=60.0, gt=0, alias="LLM_TIMEOUT_SECONDS")

    metadata_timeout_seconds: float = Field(default=8.0, gt=0, alias="METADATA_TIMEOUT_SECONDS")
    search_timeout_seconds: float = Field(default=30.0, gt=0, alias="SEARCH_TIMEOUT_SECONDS")
    max_search_queries: PositiveInt = Field(default=5, alias="MAX_SEARCH_QUERIES")
    transcript_prompt_segments: PositiveInt = Field(default=50, alias="TRANSCRIPT_PROMPT_SEGMENTS")
    event_log_size: PositiveInt = Field(default=500, alias="EVENT_LOG_SIZE")

    popular_creators: list[str] = Field(default_factory=lambda: list(POPULAR_CREATORS))

    output_dir: str = Field(default="clips", alias="OUTPUT_DIR")
    watermark_path: Optional[str] = Field(default=None, alias="WATERMARK_PATH")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""
    return Settings()

"""
Settings for the practice service.

Read from FLASHDRILL_* environment variables or a local .env file.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FLASHDRILL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: str = Field(default="data", description="Where schedule and run CSVs are written")
    catalog_path: Optional[str] = Field(default=None, description="CSV catalog; built-in words when unset")
    default_language: str = "pt"
    languages: List[str] = Field(default_factory=lambda: ["pt", "fr"])
    default_card_count: int = 10
    distractor_count: int = 2
    save_debounce_seconds: float = 0.25
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: List[str] = Field(default_factory=lambda: [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ])


@lru_cache
def get_settings() -> Settings:
    return Settings()

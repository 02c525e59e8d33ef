import json
from functools import lru_cache
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Armadollars API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Calendar day boundaries for "once per day" task completions
    REFERENCE_TIMEZONE: str = "UTC"

    CORS_ORIGINS: Annotated[list[str], NoDecode] = ["*"]

    # Demo employees, tasks and rewards loaded into a fresh store
    SEED_DEMO_DATA: bool = True

    MANAGER_ROLES: Annotated[list[str], NoDecode] = [
        "admin",
        "manager",
        "general manager",
        "assistant manager",
    ]
    LEADERBOARD_SIZE: int = 5

    PASSWORD_SCHEMES: Annotated[list[str], NoDecode] = ["pbkdf2_sha256"]

    @field_validator("CORS_ORIGINS", "MANAGER_ROLES", "PASSWORD_SCHEMES", mode="before")
    @classmethod
    def parse_list(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [item.strip() for item in v.split(",") if item.strip()]
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

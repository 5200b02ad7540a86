"""Application settings loaded from the environment and .env."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .layout import LayoutSettings

DEFAULT_API_BASE_URL = "http://localhost:8000"


class Settings(BaseSettings):
    """Chat tree client settings."""

    api_base_url: str = DEFAULT_API_BASE_URL
    access_token: str | None = None

    http_read_timeout: float = Field(300.0, gt=0)
    http_write_timeout: float = Field(10.0, gt=0)
    http_connect_timeout: float = Field(2.0, gt=0)

    request_rate_limit: int = Field(40, ge=1)
    request_rate_window: float = Field(60.0, gt=0)

    # Seconds to wait after a stream ends before reloading the snapshot
    reload_delay: float = Field(1.0, ge=0)

    log_file: str = "chat_tree.log"

    layout: LayoutSettings = Field(default_factory=LayoutSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @field_validator("access_token", mode="before")
    @classmethod
    def parse_optional_str(cls, v):
        if v == "":
            return None
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings."""
    return Settings()

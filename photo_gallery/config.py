"""
Application configuration using Pydantic Settings.
Manages all environment variables and settings.
"""
from enum import Enum
from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator, model_validator


class Environment(str, Enum):
    """Application environment modes."""
    DEV = "DEV"
    PRODUCTION = "PRODUCTION"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: Environment = Field(
        default=Environment.DEV,
        description="Application environment: DEV or PRODUCTION"
    )

    # Application
    app_name: str = Field(default="Photo Gallery")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)

    @model_validator(mode='after')
    def set_debug_from_environment(self):
        """Set debug mode based on environment if not explicitly set via environment variable."""
        import os
        if 'DEBUG' not in os.environ:
            self.debug = self.environment == Environment.DEV
        return self

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEV

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    # Local cache database (browser local-storage equivalent)
    cache_database_url: str = Field(default="sqlite+aiosqlite:///./gallery_cache.db")

    @field_validator("cache_database_url", mode="before")
    @classmethod
    def coerce_empty_database_url(cls, v: str) -> str:
        if not v or not str(v).strip():
            return "sqlite+aiosqlite:///./gallery_cache.db"
        return v

    # Supabase (row tables + object storage)
    supabase_url: str = Field(default="", description="Project URL, e.g. https://xyz.supabase.co")
    supabase_key: str = Field(default="", description="anon or service-role API key")
    supabase_timeout_seconds: float = Field(default=30.0)
    galleries_table: str = Field(default="galleries")
    favorites_table: str = Field(default="gallery_favorites")
    comments_table: str = Field(default="gallery_comments")
    default_bucket: str = Field(default="photos")

    # Admin panel
    admin_password: str = Field(default="change-me-in-production")
    jwt_secret_key: str = Field(default="jwt-secret-change-in-production")
    jwt_algorithm: str = Field(default="HS256")
    admin_session_minutes: int = Field(default=60 * 24)

    # Viewer password sessions
    viewer_cookie_name: str = Field(default="gallery_viewer")
    viewer_cookie_max_age_days: int = Field(default=365)

    # Upload limits
    max_upload_size_bytes: int = Field(default=50 * 1024 * 1024)

    # Logging. Empty log_dir keeps logs on stdout/stderr only
    log_dir: str = Field(default="", description="Directory for NDJSON log files")
    node_name: str = Field(default="", description="Node identifier for logs and metrics")

    @field_validator("supabase_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: object) -> str:
        if v is None:
            return ""
        return str(v).strip().rstrip("/")

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    class Config:
        env_file = None
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Using lru_cache to avoid re-reading the environment on every request.
    """
    return Settings()

"""Configuration management for the Trial Dashboard Widget Engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Anthropic configuration (required)
    ANTHROPIC_API_KEY: str = Field(..., description="Anthropic API key")

    # Environment
    WIDGET_ENGINE_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")
    LOG_LEVEL: str | None = Field(
        default=None, description="Explicit log level (DEBUG, INFO, ...); overrides the env default"
    )

    # Restructuring configuration
    RESTRUCTURE_MODEL: str = Field(
        default="claude-sonnet-4-5-20250929", description="Model for markdown restructuring"
    )
    RESTRUCTURE_MAX_TOKENS: int = Field(
        default=8000, description="Max output tokens for a restructuring call"
    )
    RESTRUCTURE_TEMPERATURE: float = Field(
        default=0.2, description="Sampling temperature for restructuring calls"
    )

    # Supabase configuration (only needed when widgets are persisted)
    SUPABASE_URL: str | None = Field(default=None, description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str | None = Field(
        default=None, description="Supabase service role key"
    )
    DASHBOARD_WIDGETS_TABLE: str = Field(
        default="dashboard_widgets", description="Table holding flattened dashboard widgets"
    )

    # Batch generation
    BATCH_USER_ID: str = Field(
        default="system-agent", description="User id stamped on widgets produced by batch runs"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()

"""Configuration management for the Patent Pattern Engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # Anthropic configuration (pattern synthesis only)
    ANTHROPIC_API_KEY: str = Field(default="", description="Anthropic API key")

    # Environment
    PATTERN_ENGINE_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Pattern synthesis
    PATTERN_MODEL: str = Field(
        default="claude-sonnet-4-20250514", description="Model for pattern synthesis"
    )
    PATTERN_MAX_TOKENS: int = Field(default=2000, description="Max tokens for synthesis response")
    PATTERN_PROMPT_VERSION: str = Field(
        default="patterns_v1", description="Pattern prompt version for tracking"
    )
    PATTERN_PROMPT_MAX_EXAMPLES: int = Field(
        default=200, description="Max corrections sent to the model (most recent kept)"
    )
    PATTERN_CONTEXT_WINDOW: int = Field(
        default=500, description="Chars of source text kept on each side of a corrected value"
    )

    # Opportunity tracking
    PATTERN_READY_THRESHOLD: int = Field(
        default=5, description="Unspent corrections needed before synthesis"
    )

    # Validation tiering
    PATTERN_HIGH_PASS_RATE: float = Field(default=0.9, description="Pass rate for high confidence")
    PATTERN_HIGH_MIN_TESTED: int = Field(
        default=10, description="Corpus size needed for high confidence"
    )
    PATTERN_MEDIUM_PASS_RATE: float = Field(
        default=0.7, description="Pass rate for medium confidence"
    )

    # Registry
    PATTERN_REGISTRY_TTL_SECONDS: float = Field(
        default=30.0, description="Seconds before a cached rule chain is reloaded"
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

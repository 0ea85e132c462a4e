"""Configuration management for the Gatekeeper quality-control core."""

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

    # Environment
    GATEKEEPER_ENV: str = Field(default="dev", description="Environment: dev, staging, prod, test")

    # Grounding guard
    GUARD_MODE_DEFAULT: str = Field(
        default="balanced", description="Default guard mode: strict, balanced, lenient"
    )
    GUARD_RATE_LIMIT_PER_MINUTE: int = Field(
        default=120, description="Guard evaluations allowed per client key per minute"
    )
    RATE_LIMIT_MAX_KEYS: int = Field(
        default=10_000, description="Max live (client, window) buckets kept in memory"
    )

    # Edit search
    EDIT_SEARCH_DEPTH: int = Field(default=2, description="Beam search rounds")
    EDIT_SEARCH_BEAM_WIDTH: int = Field(default=4, description="Beam width per round")
    EDIT_SEARCH_MIN_GAIN: float = Field(
        default=1.0, description="Score gain over baseline required to report a better variant"
    )
    EDIT_SEARCH_MAX_ATTEMPTS: int = Field(
        default=3, description="Failed fix attempts before escalating to fallback"
    )
    ATTEMPT_HISTORY_TTL_SECONDS: int = Field(
        default=900, description="How long a repair session's attempt history is kept"
    )
    ATTEMPT_HISTORY_MAX_KEYS: int = Field(
        default=10_000, description="Max repair sessions kept in memory"
    )
    ATTEMPT_HISTORY_MAX_LEN: int = Field(
        default=50, ge=1, description="Max attempts kept per repair session (newest win)"
    )

    # Adaptive routing
    RL_LEARNING_RATE: float = Field(default=0.1, description="Prior update step size")
    SNAPSHOT_BACKEND: str = Field(
        default="memory", description="Routing snapshot storage: memory or supabase"
    )

    # Cost telemetry
    PRICING_UNSET: bool = Field(
        default=True, description="When true, cost estimates report 0 cents and pending=true"
    )
    COST_CPM_USD: float = Field(default=3.0, description="USD per 1k tokens")
    COST_TOKENS_PER_1K_CHARS: int = Field(default=250, description="Token estimate per 1k chars")
    COST_LAT_MS: int = Field(default=400, description="Assumed end-to-end latency in ms")

    # Supabase configuration (only needed for SNAPSHOT_BACKEND=supabase)
    SUPABASE_URL: str | None = Field(default=None, description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str | None = Field(
        default=None, description="Supabase service role key"
    )

    # Admin endpoints
    ADMIN_API_KEY: str | None = Field(
        default=None, description="When set, admin routes require a matching X-Admin-Key header"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If environment variables hold invalid values
    """
    return Settings()

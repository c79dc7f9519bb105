"""
Centralized settings configuration using Pydantic BaseSettings.

All environment variables are defined here with types, defaults, and validation.
Use get_settings() for dependency injection compatibility in FastAPI.

Usage:
    from backend.settings import get_settings, Settings

    # In FastAPI endpoints (dependency injection)
    @app.get("/")
    def read_root(settings: Settings = Depends(get_settings)):
        return {"environment": settings.environment}

    # Direct access (module-level)
    settings = get_settings()
    print(settings.validation_confidence_threshold)
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Core Environment
    # -------------------------------------------------------------------------
    environment: str = Field(
        default="development",
        description="Runtime environment: development, staging, production",
    )

    # -------------------------------------------------------------------------
    # Supabase Database
    # -------------------------------------------------------------------------
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL",
    )
    supabase_service_role_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key (full access)",
    )
    supabase_anon_key: Optional[str] = Field(
        default=None,
        description="Supabase anonymous key (limited access)",
    )

    @property
    def supabase_key(self) -> Optional[str]:
        """Get the best available Supabase key (service role preferred)."""
        return self.supabase_service_role_key or self.supabase_anon_key

    catalog_source: str = Field(
        default="supabase",
        description="Exercise catalog backend: supabase or seed (YAML, in-memory)",
    )

    # -------------------------------------------------------------------------
    # LLM Providers
    # -------------------------------------------------------------------------
    llm_provider: str = Field(
        default="anthropic",
        description="Provider used for validation, extraction and disambiguation",
    )
    anthropic_api_key: Optional[str] = Field(
        default=None,
        description="Anthropic API key",
    )
    anthropic_model: str = Field(
        default="claude-3-5-haiku-latest",
        description="Anthropic model for workout parsing prompts",
    )
    openai_api_key: Optional[str] = Field(
        default=None,
        description="OpenAI API key for completions and embedding generation",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model for workout parsing prompts",
    )
    llm_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout applied to every LLM call",
    )

    # -------------------------------------------------------------------------
    # Observability - Helicone
    # -------------------------------------------------------------------------
    helicone_enabled: bool = Field(
        default=False,
        description="Proxy LLM traffic through Helicone",
    )
    helicone_api_key: Optional[str] = Field(
        default=None,
        description="Helicone API key",
    )

    # -------------------------------------------------------------------------
    # Embeddings
    # -------------------------------------------------------------------------
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="OpenAI embedding model name",
    )

    # -------------------------------------------------------------------------
    # Parsing Pipeline
    # -------------------------------------------------------------------------
    validation_confidence_threshold: float = Field(
        default=0.7,
        description="Minimum validator confidence to accept input (inclusive)",
    )
    validator_keyword_prefilter: bool = Field(
        default=True,
        description="Accept obvious workouts by keyword heuristics without an LLM call",
    )
    extraction_max_retries: int = Field(
        default=2,
        ge=0,
        description="Re-prompts allowed when extracted JSON violates the schema",
    )
    fulltext_min_score: float = Field(
        default=0.5,
        description="Minimum token-overlap score for a full-text match",
    )
    trigram_min_similarity: float = Field(
        default=0.3,
        description="Minimum trigram similarity for a fuzzy match",
    )
    trigram_weak_similarity: float = Field(
        default=0.2,
        description="Trigram similarity treated as weak signal for disambiguation",
    )
    semantic_max_distance: float = Field(
        default=0.25,
        description="Maximum cosine distance for a semantic match",
    )
    semantic_weak_distance: float = Field(
        default=0.5,
        description="Cosine distance treated as weak signal for disambiguation",
    )
    near_tie_margin: float = Field(
        default=0.05,
        description="Score gap under which two accepted candidates count as tied",
    )
    disambiguation_top_k: int = Field(
        default=5,
        ge=1,
        description="Candidates shown to the LLM during disambiguation",
    )
    resolver_max_concurrency: int = Field(
        default=4,
        ge=1,
        description="Exercise names resolved in parallel per request",
    )
    resolver_describe_new_exercises: bool = Field(
        default=True,
        description="Ask the LLM for a display name and tags when creating a flagged exercise",
    )

    # -------------------------------------------------------------------------
    # Observability - Sentry
    # -------------------------------------------------------------------------
    sentry_dsn: Optional[str] = Field(
        default=None,
        description="Sentry DSN for error tracking",
    )

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is a valid value."""
        valid_environments = {"development", "staging", "production", "test"}
        if v.lower() not in valid_environments:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {valid_environments}"
            )
        return v.lower()

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        """Ensure the LLM provider is supported."""
        valid_providers = {"anthropic", "openai"}
        if v.lower() not in valid_providers:
            raise ValueError(
                f"Invalid llm_provider '{v}'. Must be one of: {valid_providers}"
            )
        return v.lower()

    @field_validator("catalog_source")
    @classmethod
    def validate_catalog_source(cls, v: str) -> str:
        """Ensure the catalog source is supported."""
        valid_sources = {"supabase", "seed"}
        if v.lower() not in valid_sources:
            raise ValueError(
                f"Invalid catalog_source '{v}'. Must be one of: {valid_sources}"
            )
        return v.lower()

    @field_validator(
        "validation_confidence_threshold",
        "fulltext_min_score",
        "trigram_min_similarity",
        "trigram_weak_similarity",
        "semantic_max_distance",
        "semantic_weak_distance",
        "near_tie_margin",
    )
    @classmethod
    def validate_unit_interval(cls, v: float) -> float:
        """Thresholds are scores or distances in the 0..1 range."""
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Threshold must be between 0 and 1, got {v}")
        return v

    # -------------------------------------------------------------------------
    # Helper Properties
    # -------------------------------------------------------------------------
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.environment == "test"

    @property
    def llm_model(self) -> str:
        """Model name for the configured provider."""
        if self.llm_provider == "openai":
            return self.openai_model
        return self.anthropic_model


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    For testing, you can clear the cache with get_settings.cache_clear().

    Returns:
        Settings: Application settings instance
    """
    return Settings()

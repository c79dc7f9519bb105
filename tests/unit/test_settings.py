"""
Unit tests for backend/settings.py
"""

import pytest
from pydantic import ValidationError

from backend.settings import Settings, get_settings


# Environment variables that CI might set which we need to clear for default tests
CI_ENV_VARS = [
    "ENVIRONMENT",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_ANON_KEY",
    "CATALOG_SOURCE",
    "LLM_PROVIDER",
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "VALIDATION_CONFIDENCE_THRESHOLD",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Clear CI environment variables to test true defaults."""
    for var in CI_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.mark.unit
class TestSettingsDefaults:
    """Test that Settings applies correct defaults."""

    def test_environment_default(self, clean_env):
        """Default environment should be development."""
        settings = Settings(_env_file=None)
        assert settings.environment == "development"

    def test_supabase_fields_default_to_none(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.supabase_url is None
        assert settings.supabase_key is None

    def test_pipeline_defaults(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.validation_confidence_threshold == 0.7
        assert settings.extraction_max_retries == 2
        assert settings.fulltext_min_score == 0.5
        assert settings.trigram_min_similarity == 0.3
        assert settings.semantic_max_distance == 0.25
        assert settings.resolver_max_concurrency == 4
        assert settings.resolver_describe_new_exercises is True

    def test_llm_defaults(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.llm_provider == "anthropic"
        assert settings.llm_model == settings.anthropic_model


@pytest.mark.unit
class TestSettingsFromEnvironment:
    def test_reads_env_vars(self, clean_env, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        monkeypatch.setenv("VALIDATION_CONFIDENCE_THRESHOLD", "0.85")
        settings = Settings(_env_file=None)
        assert settings.is_production
        assert settings.llm_model == settings.openai_model
        assert settings.validation_confidence_threshold == 0.85

    def test_service_role_key_preferred(self, clean_env):
        settings = Settings(supabase_service_role_key="service", supabase_anon_key="anon", _env_file=None)
        assert settings.supabase_key == "service"


@pytest.mark.unit
class TestSettingsValidation:
    def test_invalid_environment(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(environment="qa", _env_file=None)

    def test_invalid_provider(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(llm_provider="mistral", _env_file=None)

    def test_invalid_catalog_source(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(catalog_source="sqlite", _env_file=None)

    @pytest.mark.parametrize("field", ["validation_confidence_threshold", "trigram_min_similarity"])
    def test_unit_interval(self, clean_env, field):
        with pytest.raises(ValidationError):
            Settings(**{field: 1.2}, _env_file=None)

    def test_negative_retries(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(extraction_max_retries=-1, _env_file=None)


@pytest.mark.unit
def test_get_settings_is_cached():
    assert get_settings() is get_settings()

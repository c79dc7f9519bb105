"""
Unit tests for backend/main.py
"""

import pytest
from fastapi import FastAPI
from unittest.mock import patch

from backend.main import create_app, _init_sentry
from backend.settings import Settings


@pytest.mark.unit
class TestCreateApp:
    """Test the create_app() factory function."""

    def test_create_app_returns_fastapi_instance(self):
        """create_app() should return a FastAPI application instance."""
        settings = Settings(environment="test", _env_file=None)
        app = create_app(settings=settings)
        assert isinstance(app, FastAPI)

    def test_create_app_uses_default_settings_when_none_provided(self):
        """create_app() should use get_settings() when no settings provided."""
        with patch("backend.main.get_settings") as mock_get_settings:
            mock_get_settings.return_value = Settings(environment="test", _env_file=None)

            app = create_app(settings=None)

            mock_get_settings.assert_called_once()
            assert isinstance(app, FastAPI)

    def test_create_app_configures_app_metadata(self):
        settings = Settings(environment="test", _env_file=None)
        app = create_app(settings=settings)

        assert app.title == "Workout Parser API"
        assert app.version == "1.0.0"

    def test_routes_registered(self):
        app = create_app(settings=Settings(environment="test", _env_file=None))
        paths = {route.path for route in app.routes}
        assert "/health" in paths
        assert "/workouts/parse" in paths


@pytest.mark.unit
class TestInitSentry:
    """Test Sentry initialization."""

    def test_init_sentry_skipped_when_no_dsn(self):
        settings = Settings(sentry_dsn=None, _env_file=None)

        with patch("backend.main.sentry_sdk.init") as mock_init:
            _init_sentry(settings)
            mock_init.assert_not_called()

    def test_init_sentry_called_when_dsn_provided(self):
        settings = Settings(
            sentry_dsn="https://test@sentry.io/123",
            environment="test",
            _env_file=None,
        )

        with patch("backend.main.sentry_sdk.init") as mock_init:
            _init_sentry(settings)
            mock_init.assert_called_once()
            assert mock_init.call_args.kwargs["environment"] == "test"

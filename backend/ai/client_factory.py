"""AI client factory with Helicone integration support."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict

import httpx
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from backend.settings import Settings, get_settings


logger = logging.getLogger(__name__)

# Helicone proxy URLs (private - implementation detail)
_HELICONE_OPENAI_BASE_URL = "https://oai.helicone.ai/v1"
_HELICONE_ANTHROPIC_BASE_URL = "https://anthropic.helicone.ai"

DEFAULT_TIMEOUT = 60.0

# Header name validation pattern (RFC 7230)
_VALID_HEADER_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9\-]+$")


def _sanitize_header_value(value: str) -> str:
    """
    Sanitize a header value to prevent header injection.

    Keeps only printable ASCII so newlines and control characters
    cannot break out of the header.
    """
    return "".join(char for char in value if char.isprintable() and ord(char) < 128)


def _sanitize_header_name(name: str) -> str:
    """Normalize a custom property key to a header name, or '' if invalid."""
    sanitized = name.replace("_", "-").title()
    if _VALID_HEADER_NAME_PATTERN.match(sanitized):
        return sanitized
    return ""


@dataclass
class AIRequestContext:
    """Context for AI requests, used for tracking and observability."""

    user_id: str | None = None
    session_id: str | None = None
    feature_name: str | None = None
    request_id: str | None = None
    custom_properties: Dict[str, str] = field(default_factory=dict)

    def to_tracking_headers(self, environment: str | None = None) -> Dict[str, str]:
        """Convert context to provider-specific tracking headers.

        Generates Helicone headers. Header values are sanitized to prevent
        header injection.
        """
        headers: Dict[str, str] = {}

        if self.user_id:
            headers["Helicone-User-Id"] = _sanitize_header_value(self.user_id)

        if self.session_id:
            headers["Helicone-Session-Id"] = _sanitize_header_value(self.session_id)

        if self.feature_name:
            headers["Helicone-Property-Feature"] = _sanitize_header_value(self.feature_name)

        if self.request_id:
            headers["Helicone-Request-Id"] = _sanitize_header_value(self.request_id)

        headers["Helicone-Property-Environment"] = _sanitize_header_value(
            environment or get_settings().environment
        )

        for key, value in self.custom_properties.items():
            header_name = _sanitize_header_name(key)
            if header_name:
                headers[f"Helicone-Property-{header_name}"] = _sanitize_header_value(str(value))

        return headers


def _helicone_kwargs(
    settings: Settings,
    base_url: str,
    context: AIRequestContext | None,
    timeout: float,
    provider: str,
) -> Dict[str, Any]:
    """Build client kwargs that route a provider through Helicone, if enabled."""
    if not settings.helicone_enabled:
        return {}
    if not settings.helicone_api_key:
        logger.warning(
            "helicone_enabled=true but helicone_api_key not set. "
            "Falling back to direct %s API calls.",
            provider,
        )
        return {}

    default_headers = {"Helicone-Auth": f"Bearer {settings.helicone_api_key}"}
    if context:
        default_headers.update(context.to_tracking_headers(settings.environment))

    logger.debug("Creating %s client with Helicone proxy", provider)
    return {
        "base_url": base_url,
        "default_headers": default_headers,
        "http_client": httpx.AsyncClient(
            timeout=timeout,
            limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
        ),
    }


class AIClientFactory:
    """Factory for creating async AI clients with optional Helicone integration."""

    @staticmethod
    def create_openai_client(
        context: AIRequestContext | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        settings: Settings | None = None,
    ) -> AsyncOpenAI:
        """
        Create an OpenAI client, optionally proxied through Helicone.

        Args:
            context: Request context for tracking and observability
            timeout: Client timeout in seconds
            settings: Settings to read keys from (defaults to get_settings())

        Returns:
            AsyncOpenAI client instance

        Raises:
            ValueError: If the API key is not configured
        """
        settings = settings or get_settings()
        if not settings.openai_api_key:
            raise ValueError("OpenAI API key not configured. Set OPENAI_API_KEY environment variable.")

        client_kwargs: Dict[str, Any] = {
            "api_key": settings.openai_api_key,
            "timeout": timeout,
        }
        client_kwargs.update(
            _helicone_kwargs(settings, _HELICONE_OPENAI_BASE_URL, context, timeout, "OpenAI")
        )
        return AsyncOpenAI(**client_kwargs)

    @staticmethod
    def create_anthropic_client(
        context: AIRequestContext | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        settings: Settings | None = None,
    ) -> AsyncAnthropic:
        """
        Create an Anthropic client, optionally proxied through Helicone.

        Args:
            context: Request context for tracking and observability
            timeout: Client timeout in seconds
            settings: Settings to read keys from (defaults to get_settings())

        Returns:
            AsyncAnthropic client instance

        Raises:
            ValueError: If the API key is not configured
        """
        settings = settings or get_settings()
        if not settings.anthropic_api_key:
            raise ValueError("Anthropic API key not configured. Set ANTHROPIC_API_KEY environment variable.")

        client_kwargs: Dict[str, Any] = {
            "api_key": settings.anthropic_api_key,
            "timeout": timeout,
        }
        client_kwargs.update(
            _helicone_kwargs(settings, _HELICONE_ANTHROPIC_BASE_URL, context, timeout, "Anthropic")
        )
        return AsyncAnthropic(**client_kwargs)

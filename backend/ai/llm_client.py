"""
Async LLM completion clients for the workout parsing pipeline.

Each client wraps one provider SDK behind the LLMClient port: a single
prompt in, raw text out. Calls are bounded by an explicit timeout and are
never retried here; callers decide what to retry.
"""

import asyncio
import json
import logging
from typing import Any, Optional

from application.exceptions import LLMServiceError
from backend.ai.client_factory import AIClientFactory, AIRequestContext
from backend.ai.retry import is_retryable_error
from backend.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Pull the first balanced JSON object out of an LLM reply.

    Handles replies wrapped in markdown fences or surrounded by prose.

    Args:
        text: Raw completion text

    Returns:
        Parsed JSON object

    Raises:
        ValueError: If no JSON object can be found or decoded
    """
    start = text.find("{")
    if start == -1:
        raise ValueError("No JSON object found in response")

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                try:
                    parsed = json.loads(text[start:index + 1])
                except json.JSONDecodeError as e:
                    raise ValueError(f"Invalid JSON in response: {e}") from e
                if not isinstance(parsed, dict):
                    raise ValueError("Response JSON is not an object")
                return parsed

    raise ValueError("Unbalanced JSON object in response")


class _BaseLLMClient:
    """Shared timeout and error mapping for provider clients."""

    provider = "llm"

    def __init__(self, settings: Settings, model: Optional[str] = None):
        self._settings = settings
        self._model = model or settings.llm_model
        self._timeout = settings.llm_timeout_seconds

    def _extra_headers(self, context: Optional[AIRequestContext]) -> dict[str, str]:
        if context and self._settings.helicone_enabled and self._settings.helicone_api_key:
            return context.to_tracking_headers(self._settings.environment)
        return {}

    async def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        context: Optional[AIRequestContext] = None,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> str:
        feature = context.feature_name if context else None
        try:
            text = await asyncio.wait_for(
                self._create(prompt, system, context, max_tokens, json_mode),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning(
                "%s completion timed out after %.1fs (feature=%s)",
                self.provider, self._timeout, feature,
            )
            raise LLMServiceError(
                f"{self.provider} request timed out after {self._timeout:.0f}s",
                retryable=True,
            ) from e
        except LLMServiceError:
            raise
        except Exception as e:
            logger.error("%s completion failed (feature=%s): %s", self.provider, feature, e)
            raise LLMServiceError(
                f"{self.provider} request failed: {e}",
                retryable=is_retryable_error(e),
            ) from e

        if not text or not text.strip():
            raise LLMServiceError(f"{self.provider} returned an empty response", retryable=True)
        return text

    async def _create(
        self,
        prompt: str,
        system: Optional[str],
        context: Optional[AIRequestContext],
        max_tokens: int,
        json_mode: bool,
    ) -> str:
        raise NotImplementedError


class AnthropicLLMClient(_BaseLLMClient):
    """Completion client backed by the Anthropic Messages API."""

    provider = "anthropic"

    def __init__(self, settings: Optional[Settings] = None, model: Optional[str] = None):
        settings = settings or get_settings()
        super().__init__(settings, model or settings.anthropic_model)
        self._client = AIClientFactory.create_anthropic_client(
            timeout=self._timeout, settings=settings
        )

    async def _create(self, prompt, system, context, max_tokens, json_mode) -> str:
        messages: list[dict[str, str]] = [{"role": "user", "content": prompt}]
        if json_mode:
            # Assistant prefill; the reply continues this object
            messages.append({"role": "assistant", "content": "{"})

        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system
        extra_headers = self._extra_headers(context)
        if extra_headers:
            kwargs["extra_headers"] = extra_headers

        response = await self._client.messages.create(**kwargs)
        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        return "{" + text if json_mode else text


class OpenAILLMClient(_BaseLLMClient):
    """Completion client backed by OpenAI chat completions."""

    provider = "openai"

    def __init__(self, settings: Optional[Settings] = None, model: Optional[str] = None):
        settings = settings or get_settings()
        super().__init__(settings, model or settings.openai_model)
        self._client = AIClientFactory.create_openai_client(
            timeout=self._timeout, settings=settings
        )

    async def _create(self, prompt, system, context, max_tokens, json_mode) -> str:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": 0,
            "messages": messages,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        extra_headers = self._extra_headers(context)
        if extra_headers:
            kwargs["extra_headers"] = extra_headers

        response = await self._client.chat.completions.create(**kwargs)
        return response.choices[0].message.content or ""


def create_llm_client(settings: Optional[Settings] = None) -> _BaseLLMClient:
    """Build the completion client for the configured provider."""
    settings = settings or get_settings()
    if settings.llm_provider == "openai":
        return OpenAILLMClient(settings)
    return AnthropicLLMClient(settings)

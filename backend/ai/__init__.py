"""AI provider clients, request context and retry helpers."""

from backend.ai.client_factory import AIClientFactory, AIRequestContext
from backend.ai.llm_client import (
    AnthropicLLMClient,
    OpenAILLMClient,
    create_llm_client,
    extract_json_object,
)
from backend.ai.retry import is_retryable_error, schema_retrying

__all__ = [
    "AIClientFactory",
    "AIRequestContext",
    "AnthropicLLMClient",
    "OpenAILLMClient",
    "create_llm_client",
    "extract_json_object",
    "is_retryable_error",
    "schema_retrying",
]

"""
LLM Client Interface (Port).

Defines the black-box text completion function used by the validator,
the structure extractor and exercise disambiguation. The pipeline owns
response-schema validation; implementations only return text.
"""

from typing import Optional, Protocol

from backend.ai.client_factory import AIRequestContext


class LLMClient(Protocol):
    """Abstract interface for a single-turn text completion."""

    async def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        context: Optional[AIRequestContext] = None,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> str:
        """
        Complete a prompt.

        Args:
            prompt: User prompt text
            system: Optional system instructions
            context: AI request context for observability
            max_tokens: Upper bound on generated tokens
            json_mode: Ask the provider to answer with a JSON object

        Returns:
            Raw completion text

        Raises:
            LLMServiceError: On timeout, transport failure or empty response
        """
        ...

"""
Embedding Service for exercise names via OpenAI.

Calls OpenAI's text-embedding-3-small model to convert exercise names into
1536-dimension vectors for cosine similarity search against the catalog.
"""

import logging
from typing import Optional

from backend.ai import AIClientFactory, AIRequestContext
from backend.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class EmbeddingService:
    """Generates text embeddings using OpenAI's embedding API."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        user_id: Optional[str] = None,
    ):
        """
        Initialize the embedding service.

        The API key is obtained from settings via AIClientFactory.

        Args:
            settings: Settings to read model and keys from
            user_id: Optional user ID for tracking/observability
        """
        settings = settings or get_settings()
        context = AIRequestContext(
            user_id=user_id,
            feature_name="exercise_embedding",
            custom_properties={"model": settings.embedding_model},
        )
        self._client = AIClientFactory.create_openai_client(context=context, settings=settings)
        self._model = settings.embedding_model

    async def generate_query_embedding(self, text: str) -> list[float]:
        """
        Generate an embedding vector for the given text.

        Args:
            text: Exercise name (abbreviations already expanded)

        Returns:
            List of floats representing the embedding vector (1536 dimensions)

        Raises:
            Exception: If OpenAI API call fails
        """
        response = await self._client.embeddings.create(input=text, model=self._model)
        logger.debug("Embedded %r with %s", text, self._model)
        return response.data[0].embedding

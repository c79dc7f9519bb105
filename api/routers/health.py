"""
Health check router.

This router provides health check endpoints for monitoring and load balancers.
"""

import logging

from fastapi import APIRouter, Depends

from backend.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Health"],
)


@router.get("/health")
def health():
    """
    Simple liveness endpoint.

    Returns:
        dict: Status indicator for health checks
    """
    return {"status": "ok"}


@router.get("/health/config")
def health_config(settings: Settings = Depends(get_settings)):
    """
    Report which backends are configured, without exposing secrets.

    Returns:
        dict: Environment, LLM provider, catalog source and semantic search status
    """
    return {
        "environment": settings.environment,
        "llm_provider": settings.llm_provider,
        "llm_model": settings.llm_model,
        "catalog_source": settings.catalog_source,
        "semantic_search": bool(settings.openai_api_key),
        "database": bool(settings.supabase_url and settings.supabase_key),
    }

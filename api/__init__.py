"""
API package for the Workout Parser API.

This package contains:
- deps.py: FastAPI dependency providers for DI
- routers/: API route handlers
"""

# Re-export dependency providers for convenient access
from api.deps import (
    get_settings,
    get_supabase_client,
    get_supabase_client_required,
    get_exercise_catalog,
    get_workout_repo,
    get_llm_client,
    get_embedding_service,
    get_parse_workout_use_case,
)

__all__ = [
    # Settings
    "get_settings",
    # Database
    "get_supabase_client",
    "get_supabase_client_required",
    # Repositories
    "get_exercise_catalog",
    "get_workout_repo",
    # AI
    "get_llm_client",
    "get_embedding_service",
    # Use cases
    "get_parse_workout_use_case",
]

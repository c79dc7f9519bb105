"""
FastAPI Dependency Providers for the Workout Parser API.

This module provides FastAPI dependency injection functions that return
interface types (Protocols) rather than concrete implementations. This
enables clean separation of concerns and easy testing with fakes.

Architecture:
- Settings, Supabase client, catalog and AI clients are cached per-process (lru_cache)
- Repositories and use cases are built per-request around the cached handles
- catalog_source=seed swaps Supabase for the YAML-seeded in-memory store

Usage in routers:
    from api.deps import get_parse_workout_use_case

    @router.post("/workouts/parse")
    async def parse(use_case: ParseWorkoutUseCase = Depends(get_parse_workout_use_case)):
        ...

Testing:
    # Override dependencies in tests
    app.dependency_overrides[get_parse_workout_use_case] = lambda: fake_use_case
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException
from supabase import Client, create_client

from application.ports import EmbeddingService, ExerciseCatalog, LLMClient, WorkoutRepository
from application.use_cases import ParseWorkoutUseCase
from backend.ai.llm_client import create_llm_client
from backend.core.exercise_resolver import ExerciseResolver, ResolverConfig
from backend.services.database_formatter import DatabaseFormatter
from backend.services.embedding_service import EmbeddingService as OpenAIEmbeddingService
from backend.services.structure_extractor import StructureExtractor
from backend.services.workout_validator import WorkoutValidator
from backend.settings import Settings, get_settings as _get_settings
from infrastructure import (
    InMemoryExerciseCatalog,
    InMemoryWorkoutRepository,
    SupabaseExerciseCatalog,
    SupabaseWorkoutRepository,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Settings Provider
# =============================================================================


def get_settings() -> Settings:
    """
    Get application settings.

    Returns cached Settings instance from backend.settings.

    Returns:
        Settings: Application settings instance
    """
    return _get_settings()


# =============================================================================
# Supabase Client Provider
# =============================================================================


@lru_cache
def get_supabase_client() -> Optional[Client]:
    """
    Get Supabase client instance (cached).

    Returns:
        Client: Supabase client instance, or None if not configured
    """
    settings = _get_settings()
    if not settings.supabase_url or not settings.supabase_key:
        return None
    return create_client(settings.supabase_url, settings.supabase_key)


def get_supabase_client_required() -> Client:
    """
    Get Supabase client instance, raising if not configured.

    Raises:
        HTTPException: 503 if Supabase is not configured
    """
    client = get_supabase_client()
    if client is None:
        raise HTTPException(
            status_code=503,
            detail="Database not available. Supabase credentials not configured.",
        )
    return client


# =============================================================================
# Catalog and Repository Providers
# =============================================================================


@lru_cache
def _seed_catalog() -> InMemoryExerciseCatalog:
    return InMemoryExerciseCatalog.from_yaml()


@lru_cache
def _seed_workout_repo() -> InMemoryWorkoutRepository:
    return InMemoryWorkoutRepository(_seed_catalog())


def get_exercise_catalog(settings: Settings = Depends(get_settings)) -> ExerciseCatalog:
    """
    Get the shared ExerciseCatalog.

    Returns:
        ExerciseCatalog: Seeded in-memory catalog or Supabase catalog
    """
    if settings.catalog_source == "seed":
        return _seed_catalog()
    return SupabaseExerciseCatalog(get_supabase_client_required())


def get_workout_repo(settings: Settings = Depends(get_settings)) -> WorkoutRepository:
    """
    Get WorkoutRepository implementation.

    Returns:
        WorkoutRepository: Repository for atomic parsed-workout persistence
    """
    if settings.catalog_source == "seed":
        return _seed_workout_repo()
    return SupabaseWorkoutRepository(get_supabase_client_required())


# =============================================================================
# AI Providers
# =============================================================================


@lru_cache
def _llm_client() -> LLMClient:
    return create_llm_client(_get_settings())


def get_llm_client() -> LLMClient:
    """
    Get the completion client for the configured provider.

    Raises:
        HTTPException: 503 if the provider API key is missing
    """
    try:
        return _llm_client()
    except ValueError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e


@lru_cache
def _embedding_service() -> Optional[EmbeddingService]:
    settings = _get_settings()
    if not settings.openai_api_key:
        logger.info("OPENAI_API_KEY not set; semantic exercise search disabled")
        return None
    return OpenAIEmbeddingService(settings)


def get_embedding_service() -> Optional[EmbeddingService]:
    """
    Get the embedding service, or None when semantic search is unavailable.
    """
    return _embedding_service()


# =============================================================================
# Use Case Providers
# =============================================================================


def get_parse_workout_use_case(
    settings: Settings = Depends(get_settings),
    catalog: ExerciseCatalog = Depends(get_exercise_catalog),
    workout_repo: WorkoutRepository = Depends(get_workout_repo),
    llm_client: LLMClient = Depends(get_llm_client),
    embedding_service: Optional[EmbeddingService] = Depends(get_embedding_service),
) -> ParseWorkoutUseCase:
    """
    Get ParseWorkoutUseCase with all dependencies wired.

    Returns:
        ParseWorkoutUseCase: Use case for the parsing pipeline
    """
    return ParseWorkoutUseCase(
        validator=WorkoutValidator.from_settings(llm_client, settings),
        extractor=StructureExtractor(llm_client, max_retries=settings.extraction_max_retries),
        resolver=ExerciseResolver(
            config=ResolverConfig.from_settings(settings),
            llm_client=llm_client,
            embedding_service=embedding_service,
        ),
        formatter=DatabaseFormatter(),
        catalog=catalog,
        workout_repo=workout_repo,
    )

"""
Fake Implementations for Testing.

This package provides in-memory fakes of the pipeline's external
dependencies for fast, isolated testing. No database, LLM or network
access required.

Features:
- Fakes implement the same Protocol interfaces as real implementations
- LLM replies are queued per pipeline feature
- Factory functions wire a complete pipeline around the seed catalog

Usage:
    from tests.fakes import FakeLLMClient, create_use_case

    llm = FakeLLMClient().reply("workout_extraction", extraction_reply(...))
    use_case, catalog, repo = create_use_case(llm)
"""
from typing import Iterable, Optional, Tuple

from application.use_cases import ParseWorkoutUseCase
from backend.core.exercise_resolver import ExerciseResolver, ResolverConfig
from backend.services.database_formatter import DatabaseFormatter
from backend.services.structure_extractor import StructureExtractor
from backend.services.workout_validator import WorkoutValidator
from domain.models.exercise import Exercise
from infrastructure.memory import InMemoryExerciseCatalog, InMemoryWorkoutRepository
from tests.fakes.llm_client import (
    FakeEmbeddingService,
    FakeLLMClient,
    RecordedCall,
    extraction_reply,
)


# =============================================================================
# Factory Functions
# =============================================================================


def create_seed_catalog(extra: Optional[Iterable[Exercise]] = None) -> InMemoryExerciseCatalog:
    """
    Create an InMemoryExerciseCatalog loaded from the seed YAML.

    Args:
        extra: Additional exercises to add after the seed entries

    Returns:
        Populated InMemoryExerciseCatalog
    """
    catalog = InMemoryExerciseCatalog.from_yaml()
    for exercise in extra or []:
        catalog.add(exercise)
    return catalog


def create_use_case(
    llm_client: FakeLLMClient,
    *,
    catalog: Optional[InMemoryExerciseCatalog] = None,
    embedding_service: Optional[FakeEmbeddingService] = None,
    config: Optional[ResolverConfig] = None,
    max_retries: int = 2,
    keyword_prefilter: bool = False,
    workout_repo: Optional[InMemoryWorkoutRepository] = None,
) -> Tuple[ParseWorkoutUseCase, InMemoryExerciseCatalog, InMemoryWorkoutRepository]:
    """
    Wire a ParseWorkoutUseCase around fakes.

    The keyword pre-filter is off by default so tests control the
    validator verdict through the fake LLM. A workout_repo passed in must
    share the catalog.

    Returns:
        (use_case, catalog, workout_repo)
    """
    catalog = catalog if catalog is not None else create_seed_catalog()
    repo = workout_repo if workout_repo is not None else InMemoryWorkoutRepository(catalog)
    use_case = ParseWorkoutUseCase(
        validator=WorkoutValidator(llm_client, keyword_prefilter=keyword_prefilter),
        extractor=StructureExtractor(llm_client, max_retries=max_retries),
        resolver=ExerciseResolver(
            config=config,
            llm_client=llm_client,
            embedding_service=embedding_service,
        ),
        formatter=DatabaseFormatter(),
        catalog=catalog,
        workout_repo=repo,
    )
    return use_case, catalog, repo


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Fake implementations
    "FakeLLMClient",
    "FakeEmbeddingService",
    "RecordedCall",
    # Reply builders
    "extraction_reply",
    # Factory functions
    "create_seed_catalog",
    "create_use_case",
]

"""Pipeline stage services for the Workout Parser."""

from backend.services.database_formatter import DatabaseFormatter
from backend.services.embedding_service import EmbeddingService
from backend.services.structure_extractor import StructureExtractor
from backend.services.workout_validator import WorkoutValidator

__all__ = [
    "DatabaseFormatter",
    "EmbeddingService",
    "StructureExtractor",
    "WorkoutValidator",
]

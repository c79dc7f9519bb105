"""
Application ports (interfaces) for the workout parsing pipeline.

These Protocols describe what the use cases need from the outside
world. Concrete implementations live in infrastructure/ (Supabase,
in-memory) and backend/ (LLM and embedding clients).
"""

from application.ports.embedding_service import EmbeddingService
from application.ports.exercise_catalog import ExerciseCatalog
from application.ports.llm_client import LLMClient
from application.ports.workout_repository import WorkoutRepository

__all__ = [
    "EmbeddingService",
    "ExerciseCatalog",
    "LLMClient",
    "WorkoutRepository",
]

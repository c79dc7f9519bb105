"""In-memory adapters for local development and tests."""

from infrastructure.memory.exercise_catalog import InMemoryExerciseCatalog
from infrastructure.memory.workout_repository import InMemoryWorkoutRepository

__all__ = [
    "InMemoryExerciseCatalog",
    "InMemoryWorkoutRepository",
]

"""
Infrastructure Layer for the Workout Parser API.

This package contains concrete implementations of the application ports:
- db/: Supabase database implementations
- memory/: In-memory implementations for local development and tests
"""

from infrastructure.db import SupabaseExerciseCatalog, SupabaseWorkoutRepository
from infrastructure.memory import InMemoryExerciseCatalog, InMemoryWorkoutRepository

__all__ = [
    "SupabaseExerciseCatalog",
    "SupabaseWorkoutRepository",
    "InMemoryExerciseCatalog",
    "InMemoryWorkoutRepository",
]

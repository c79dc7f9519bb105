"""
Supabase database implementations of the application ports.
"""

from infrastructure.db.exercise_catalog import SupabaseExerciseCatalog
from infrastructure.db.workout_repository import SupabaseWorkoutRepository

__all__ = [
    "SupabaseExerciseCatalog",
    "SupabaseWorkoutRepository",
]

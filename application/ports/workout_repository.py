"""
Workout Repository Interface (Port).

Persists parsed workouts together with any exercises created while
resolving them, as one atomic unit.
"""

from typing import Dict, List, Optional, Protocol

from domain.models.exercise import Exercise
from domain.models.formatted import FormattedWorkout


class WorkoutRepository(Protocol):
    """Abstract interface for parsed workout persistence."""

    def save_parsed_workout(
        self,
        workout: FormattedWorkout,
        new_exercises: List[Exercise],
        user_id: Optional[str] = None,
        embeddings: Optional[Dict[str, List[float]]] = None,
    ) -> List[Exercise]:
        """
        Atomically save a workout and the flagged exercises it references.

        Either everything is committed or nothing is. New exercises are
        upserted by slug; if another writer already created a slug, the
        existing row is kept and returned.

        Args:
            workout: Fully formatted workout
            new_exercises: Exercises staged during resolution, with
                provisional ids as referenced by the workout
            user_id: Owner of the workout, if known
            embeddings: Name embeddings for new exercises, keyed by provisional id

        Returns:
            Committed exercises, in the same order as new_exercises

        Raises:
            PipelinePersistenceError: If the transaction failed
        """
        ...

    def get_workout(self, workout_id: str) -> Optional[FormattedWorkout]:
        """
        Get a saved workout by id.

        Returns:
            The workout, or None if not found
        """
        ...

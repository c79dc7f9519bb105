"""
In-memory implementation of WorkoutRepository.

Commits a workout and its staged exercises under one lock held across
both stores, so a failed save leaves neither changed.
"""

import logging
import threading
from typing import Dict, List, Optional

from application.exceptions import PipelinePersistenceError
from domain.models.exercise import Exercise
from domain.models.formatted import FormattedWorkout
from infrastructure.memory.exercise_catalog import InMemoryExerciseCatalog

logger = logging.getLogger(__name__)


class InMemoryWorkoutRepository:
    """
    Thread-safe in-memory workout store.

    Attributes:
        fail_next_save: When set, the next save raises PipelinePersistenceError
            without committing anything
        saved_user_ids: Owner recorded per workout id
    """

    def __init__(self, catalog: InMemoryExerciseCatalog):
        self._catalog = catalog
        self._lock = threading.Lock()
        self._workouts: Dict[str, FormattedWorkout] = {}
        self.saved_user_ids: Dict[str, Optional[str]] = {}
        self.fail_next_save = False

    def save_parsed_workout(
        self,
        workout: FormattedWorkout,
        new_exercises: List[Exercise],
        user_id: Optional[str] = None,
        embeddings: Optional[Dict[str, List[float]]] = None,
    ) -> List[Exercise]:
        embeddings = embeddings or {}
        with self._catalog.locked(), self._lock:
            if self.fail_next_save:
                self.fail_next_save = False
                raise PipelinePersistenceError("Simulated persistence failure", stage="persisting")
            if workout.id in self._workouts:
                raise PipelinePersistenceError(
                    f"Workout {workout.id} already exists", stage="persisting"
                )

            staged_ids = {exercise.id for exercise in new_exercises}
            missing = sorted({
                eid for eid in workout.exercise_ids()
                if eid not in staged_ids and self._catalog.get_by_id(eid) is None
            })
            if missing:
                raise PipelinePersistenceError(
                    f"Workout references unknown exercises: {missing}", stage="persisting"
                )

            committed = [
                self._catalog.insert_or_get(exercise, embeddings.get(exercise.id))
                for exercise in new_exercises
            ]
            id_map = {staged.id: row.id for staged, row in zip(new_exercises, committed)}
            stored = workout.with_exercise_ids(id_map)
            self._workouts[stored.id] = stored
            self.saved_user_ids[stored.id] = user_id
            logger.info(
                "Saved workout %s with %d new exercises", stored.id, len(new_exercises)
            )
            return committed

    def get_workout(self, workout_id: str) -> Optional[FormattedWorkout]:
        with self._lock:
            return self._workouts.get(workout_id)

    def count(self) -> int:
        with self._lock:
            return len(self._workouts)

"""
Supabase implementation of WorkoutRepository.

Saving goes through the save_parsed_workout stored procedure so the
workout, its blocks, exercise instances, sets, and any newly flagged
catalog exercises are written in a single transaction. If any insert
fails, the entire operation is rolled back.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from application.exceptions import PipelinePersistenceError
from domain.models.exercise import Exercise
from domain.models.formatted import FormattedWorkout

logger = logging.getLogger(__name__)


class SupabaseWorkoutRepository:
    """
    Supabase implementation of WorkoutRepository protocol.

    The client is injected via constructor for testability.
    """

    def __init__(self, client: Client):
        """
        Initialize with Supabase client.

        Args:
            client: Supabase client instance (injected, not global)
        """
        self._client = client

    def save_parsed_workout(
        self,
        workout: FormattedWorkout,
        new_exercises: List[Exercise],
        user_id: Optional[str] = None,
        embeddings: Optional[Dict[str, List[float]]] = None,
    ) -> List[Exercise]:
        embeddings = embeddings or {}
        exercises_payload: List[Dict[str, Any]] = []
        for exercise in new_exercises:
            row = exercise.model_dump(mode="json")
            row["embedding"] = embeddings.get(exercise.id)
            exercises_payload.append(row)

        try:
            response = self._client.rpc(
                "save_parsed_workout",
                {
                    "p_workout": json.dumps(workout.model_dump(mode="json")),
                    "p_exercises": json.dumps(exercises_payload),
                    "p_user_id": user_id,
                },
            ).execute()
        except Exception as e:
            logger.exception("Atomic save of workout %s failed", workout.id)
            raise PipelinePersistenceError(
                f"Atomic workout save failed: {e}", stage="persisting"
            ) from e

        if response.data is None:
            raise PipelinePersistenceError("RPC returned no data", stage="persisting")

        rows = response.data.get("exercises", []) if isinstance(response.data, dict) else response.data
        committed = [
            Exercise(
                id=str(row["id"]),
                slug=row["slug"],
                name=row["name"],
                tags=row.get("tags") or [],
                needs_review=bool(row.get("needs_review", False)),
            )
            for row in rows
        ]
        logger.info("Saved workout %s with %d new exercises", workout.id, len(committed))
        return committed

    def get_workout(self, workout_id: str) -> Optional[FormattedWorkout]:
        try:
            result = self._client.rpc("get_parsed_workout", {"p_workout_id": workout_id}).execute()
        except Exception:
            logger.exception("Error fetching workout %s", workout_id)
            return None
        if not result.data:
            return None
        return FormattedWorkout.model_validate(result.data)

"""
Database Formatter: assigns ids to every node of a resolved workout.

Walks the tree depth-first (workout, blocks, exercises, sets) and gives
each node a fresh identifier from a single id source, so ids are unique
across node types. Node counts and order are preserved exactly.
"""

import datetime
import logging
import uuid
from typing import Callable, Optional, Set

from domain.models.formatted import (
    FormattedBlock,
    FormattedExercise,
    FormattedSet,
    FormattedWorkout,
)
from domain.models.resolved import ResolvedWorkout

logger = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class DatabaseFormatter:
    """Converts a ResolvedWorkout into a persistable FormattedWorkout."""

    def __init__(
        self,
        id_factory: Callable[[], str] = new_id,
        clock: Callable[[], datetime.datetime] = utc_now,
    ):
        self._id_factory = id_factory
        self._clock = clock

    def format(self, workout: ResolvedWorkout, today: Optional[datetime.date] = None) -> FormattedWorkout:
        """
        Assign ids and fill structural defaults.

        Args:
            workout: Resolved workout
            today: Date used if the workout has none

        Returns:
            FormattedWorkout with 1 + B + E + S distinct ids

        Raises:
            ValueError: If the id factory produced a duplicate id
        """
        issued: Set[str] = set()

        def next_id() -> str:
            value = self._id_factory()
            if value in issued:
                raise ValueError(f"Id factory produced duplicate id {value!r}")
            issued.add(value)
            return value

        now = self._clock()
        workout_id = next_id()
        blocks = []
        for block in workout.blocks:
            block_id = next_id()
            exercises = []
            for exercise in block.exercises:
                exercise_id = next_id()
                sets = [
                    FormattedSet(
                        id=next_id(),
                        set_number=s.set_number,
                        reps=s.reps,
                        weight=s.weight,
                        weight_unit=s.weight_unit,
                        duration=s.duration,
                        rpe=s.rpe,
                        notes=s.notes,
                    )
                    for s in exercise.sets
                ]
                exercises.append(
                    FormattedExercise(
                        id=exercise_id,
                        exercise_id=exercise.exercise_id,
                        order_in_block=exercise.order_in_block,
                        prescription=exercise.prescription,
                        notes=exercise.notes,
                        sets=sets,
                    )
                )
            blocks.append(
                FormattedBlock(id=block_id, label=block.label, notes=block.notes, exercises=exercises)
            )

        formatted = FormattedWorkout(
            id=workout_id,
            name=workout.name,
            date=workout.date or today or now.date(),
            last_modified_time=workout.last_modified_time or now,
            notes=workout.notes,
            blocks=blocks,
        )
        logger.debug("Formatted workout %s with %d ids", workout_id, len(issued))
        return formatted

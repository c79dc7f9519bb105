"""
Resolved workout graph: same shape as the placeholder graph, with every
exercise bound to a catalog id.
"""

import datetime
from typing import List, Optional

from pydantic import Field

from domain.models.base import CamelModel
from domain.models.exercise import ExerciseResolution
from domain.models.placeholder import PlaceholderWorkout, WorkoutSet


class ResolvedExercise(CamelModel):
    exercise_id: str
    raw_name: str
    order_in_block: int = Field(..., ge=0)
    prescription: Optional[str] = None
    notes: Optional[str] = None
    sets: List[WorkoutSet] = Field(..., min_length=1)


class ResolvedBlock(CamelModel):
    label: Optional[str] = None
    notes: Optional[str] = None
    exercises: List[ResolvedExercise] = Field(..., min_length=1)


class ResolvedWorkout(CamelModel):
    """Workout whose exercise identities are fixed."""

    name: Optional[str] = None
    date: Optional[datetime.date] = None
    notes: Optional[str] = None
    last_modified_time: Optional[datetime.datetime] = None
    blocks: List[ResolvedBlock] = Field(..., min_length=1)

    @classmethod
    def from_placeholder(
        cls,
        workout: PlaceholderWorkout,
        resolutions: List[ExerciseResolution],
    ) -> "ResolvedWorkout":
        """
        Bind placeholder exercises to ids.

        Args:
            workout: Extracted workout
            resolutions: One resolution per exercise instance, in the
                positional order of workout.exercise_names()

        Raises:
            ValueError: If the resolution count does not match
        """
        names = workout.exercise_names()
        if len(resolutions) != len(names):
            raise ValueError(
                f"Expected {len(names)} resolutions, got {len(resolutions)}"
            )

        remaining = iter(resolutions)
        blocks = []
        for block in workout.blocks:
            exercises = []
            for exercise in block.exercises:
                resolution = next(remaining)
                exercises.append(
                    ResolvedExercise(
                        exercise_id=resolution.exercise_id,
                        raw_name=exercise.exercise_name,
                        order_in_block=exercise.order_in_block,
                        prescription=exercise.prescription,
                        notes=exercise.notes,
                        sets=list(exercise.sets),
                    )
                )
            blocks.append(ResolvedBlock(label=block.label, notes=block.notes, exercises=exercises))

        return cls(name=workout.name, date=workout.date, notes=workout.notes, blocks=blocks)

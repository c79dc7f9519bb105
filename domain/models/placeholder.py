"""
Placeholder workout graph produced by structure extraction.

Exercises are still identified by the raw name found in the text. The
validators here are the schema the extractor enforces on LLM output:
positions must be contiguous, set numbers start at 1, exercise order
starts at 0.
"""

import datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from domain.models.base import CamelModel, WeightUnit


class WorkoutSet(CamelModel):
    """
    One performed set. Shared by the placeholder and resolved graphs.

    Examples:
        >>> WorkoutSet(set_number=1, reps=8, weight=135, weight_unit="lbs")
    """

    set_number: int = Field(..., ge=1)
    reps: Optional[int] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, ge=0)
    weight_unit: Optional[WeightUnit] = None
    duration: Optional[int] = Field(default=None, ge=0, description="Whole seconds")
    rpe: Optional[float] = Field(default=None, ge=1, le=10)
    notes: Optional[str] = None


def _check_set_numbers(sets: List[WorkoutSet]) -> None:
    numbers = [s.set_number for s in sets]
    expected = list(range(1, len(sets) + 1))
    if numbers != expected:
        raise ValueError(f"setNumber must run {expected} in order, got {numbers}")


def _check_order_in_block(orders: List[int]) -> None:
    expected = list(range(len(orders)))
    if orders != expected:
        raise ValueError(f"orderInBlock must run {expected} in order, got {orders}")


class PlaceholderExercise(CamelModel):
    """An exercise instance still referencing its source-text name."""

    exercise_name: str = Field(..., min_length=1)
    order_in_block: int = Field(..., ge=0)
    prescription: Optional[str] = None
    notes: Optional[str] = None
    sets: List[WorkoutSet] = Field(..., min_length=1)

    @field_validator("exercise_name")
    @classmethod
    def validate_exercise_name(cls, v: str) -> str:
        v = v.strip()
        if not any(ch.isalnum() for ch in v):
            raise ValueError("exerciseName must contain letters or digits")
        return v

    @model_validator(mode="after")
    def validate_set_numbers(self) -> "PlaceholderExercise":
        _check_set_numbers(self.sets)
        return self


class PlaceholderBlock(CamelModel):
    """A labelled group of exercises."""

    label: Optional[str] = None
    notes: Optional[str] = None
    exercises: List[PlaceholderExercise] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_order(self) -> "PlaceholderBlock":
        _check_order_in_block([e.order_in_block for e in self.exercises])
        return self


class PlaceholderWorkout(CamelModel):
    """
    Extracted workout with no identifiers assigned yet.

    Examples:
        >>> PlaceholderWorkout.model_validate({
        ...     "name": "Push Day",
        ...     "blocks": [{"exercises": [{
        ...         "exerciseName": "Bench Press",
        ...         "orderInBlock": 0,
        ...         "sets": [{"setNumber": 1, "reps": 8}],
        ...     }]}],
        ... })
    """

    name: Optional[str] = None
    date: Optional[datetime.date] = None
    notes: Optional[str] = None
    blocks: List[PlaceholderBlock] = Field(..., min_length=1)

    def exercise_names(self) -> List[str]:
        """Raw exercise names in positional order (duplicates kept)."""
        return [e.exercise_name for b in self.blocks for e in b.exercises]

    def set_count(self) -> int:
        return sum(len(e.sets) for b in self.blocks for e in b.exercises)

    def with_defaults(
        self, default_date: datetime.date, default_unit: WeightUnit
    ) -> "PlaceholderWorkout":
        """Fill a missing date and per-set weight units."""
        blocks = [
            block.model_copy(update={
                "exercises": [
                    exercise.model_copy(update={
                        "sets": [
                            s if s.weight_unit else s.model_copy(update={"weight_unit": default_unit})
                            for s in exercise.sets
                        ]
                    })
                    for exercise in block.exercises
                ]
            })
            for block in self.blocks
        ]
        return self.model_copy(update={"date": self.date or default_date, "blocks": blocks})

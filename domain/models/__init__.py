"""
Domain models for the Workout Parser.

This package contains pure domain models that are independent of
infrastructure concerns (database, API, external services).

A parse moves a workout through three shapes of the same tree:
- PlaceholderWorkout: extracted structure, exercises known only by name
- ResolvedWorkout: every exercise bound to a catalog id
- FormattedWorkout: every node carries a unique id, ready to persist

Supporting models:
- Exercise: Catalog entry
- ExerciseCandidate / ExerciseResolution: Search results and outcomes
- ValidationResult: Workout-or-not verdict
- ParseRequest: Raw input plus hints

Usage:
    >>> from domain.models import PlaceholderWorkout

    >>> workout = PlaceholderWorkout.model_validate({
    ...     "blocks": [{"exercises": [{
    ...         "exerciseName": "Bench Press",
    ...         "orderInBlock": 0,
    ...         "sets": [{"setNumber": 1, "reps": 8}],
    ...     }]}]
    ... })
    >>> workout.exercise_names()
    ['Bench Press']
"""

from domain.models.base import CamelModel, WeightUnit
from domain.models.exercise import (
    Exercise,
    ExerciseCandidate,
    ExerciseMetadata,
    ExerciseResolution,
    MatchStrategy,
)
from domain.models.formatted import (
    FormattedBlock,
    FormattedExercise,
    FormattedSet,
    FormattedWorkout,
)
from domain.models.placeholder import (
    PlaceholderBlock,
    PlaceholderExercise,
    PlaceholderWorkout,
    WorkoutSet,
)
from domain.models.request import ParseRequest
from domain.models.resolved import ResolvedBlock, ResolvedExercise, ResolvedWorkout
from domain.models.validation import ValidationResult

__all__ = [
    # Base
    "CamelModel",
    "WeightUnit",
    # Catalog
    "Exercise",
    "ExerciseCandidate",
    "ExerciseMetadata",
    "ExerciseResolution",
    "MatchStrategy",
    # Pipeline shapes
    "WorkoutSet",
    "PlaceholderExercise",
    "PlaceholderBlock",
    "PlaceholderWorkout",
    "ResolvedExercise",
    "ResolvedBlock",
    "ResolvedWorkout",
    "FormattedSet",
    "FormattedExercise",
    "FormattedBlock",
    "FormattedWorkout",
    # Input / verdict
    "ParseRequest",
    "ValidationResult",
]

"""
Domain layer for the Workout Parser.

This package contains pure domain models that are independent of
infrastructure concerns (database, API, external services).
"""

from domain.models import (
    Exercise,
    FormattedWorkout,
    ParseRequest,
    PlaceholderWorkout,
    ResolvedWorkout,
    ValidationResult,
)

__all__ = [
    "Exercise",
    "FormattedWorkout",
    "ParseRequest",
    "PlaceholderWorkout",
    "ResolvedWorkout",
    "ValidationResult",
]

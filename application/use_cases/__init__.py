"""
Application Use Cases for the Workout Parser API.

Use cases orchestrate domain logic and coordinate between ports and
adapters. Dependencies are injected via constructors for testability,
and use cases return domain models, not API responses.

Usage:
    from application.use_cases import ParseWorkoutUseCase

    use_case = ParseWorkoutUseCase(
        validator=validator,
        extractor=extractor,
        resolver=resolver,
        formatter=formatter,
        catalog=catalog,
        workout_repo=workout_repo,
    )
    result = await use_case.execute(ParseRequest(text="Bench Press: 3x8"))
"""

from application.use_cases.parse_workout import (
    ParseWorkoutResult,
    ParseWorkoutUseCase,
    PipelineRun,
    PipelineStage,
)

__all__ = [
    "ParseWorkoutUseCase",
    "ParseWorkoutResult",
    "PipelineRun",
    "PipelineStage",
]

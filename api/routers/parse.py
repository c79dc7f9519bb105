"""
Workout parsing router.

Exposes the parsing pipeline: free-form workout text in, a saved,
fully resolved workout out.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from api.deps import get_parse_workout_use_case
from application.exceptions import (
    LLMExtractionError,
    LLMServiceError,
    NotAWorkoutError,
    PipelinePersistenceError,
    WorkoutParseError,
)
from application.use_cases import ParseWorkoutUseCase
from domain.models.base import CamelModel
from domain.models.exercise import Exercise, ExerciseResolution
from domain.models.formatted import FormattedWorkout
from domain.models.request import ParseRequest

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/workouts",
    tags=["Parsing"],
)


# =============================================================================
# Response Models
# =============================================================================


class ParseWorkoutResponse(CamelModel):
    """Saved workout plus how each exercise name was resolved."""

    workout: FormattedWorkout
    new_exercises: List[Exercise]
    resolutions: List[ExerciseResolution]


def _status_for(error: WorkoutParseError) -> int:
    if isinstance(error, NotAWorkoutError):
        return 422
    if isinstance(error, LLMExtractionError):
        return 502
    if isinstance(error, LLMServiceError):
        return 503 if error.retryable else 502
    if isinstance(error, PipelinePersistenceError):
        return 503
    return 500


def to_http_exception(error: WorkoutParseError) -> HTTPException:
    """Map a pipeline error to an HTTPException with a structured detail."""
    return HTTPException(
        status_code=_status_for(error),
        detail={
            "error": type(error).__name__,
            "stage": error.stage,
            "retryable": error.retryable,
            "message": error.detail,
        },
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/parse", response_model=ParseWorkoutResponse, response_model_by_alias=True)
async def parse_workout(
    request: ParseRequest,
    use_case: ParseWorkoutUseCase = Depends(get_parse_workout_use_case),
    x_user_id: Optional[str] = Header(default=None),
    x_request_id: Optional[str] = Header(default=None),
) -> ParseWorkoutResponse:
    """
    Parse free-form workout text and save the result.

    Every exercise is bound to a catalog id. Names with no confident
    match are saved as new exercises flagged for review rather than
    failing the request.

    Returns:
        ParseWorkoutResponse with the saved workout

    Raises:
        HTTPException: 422 not a workout, 502/503 LLM or storage failure
    """
    try:
        result = await use_case.execute(request, user_id=x_user_id, request_id=x_request_id)
    except WorkoutParseError as e:
        raise to_http_exception(e) from e

    return ParseWorkoutResponse(
        workout=result.workout,
        new_exercises=result.new_exercises,
        resolutions=result.resolutions,
    )

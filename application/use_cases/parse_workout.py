"""
ParseWorkout Use Case.

Orchestrates the workout parsing pipeline:
1. Validate that the text describes a workout
2. Extract the placeholder structure with the LLM
3. Resolve every exercise name to a catalog id
4. Format the tree with fresh ids
5. Persist the workout and any flagged exercises atomically

Stages only move forward. Any failure ends the run in FAILED with the
stage it happened in; nothing is retried across stage boundaries.
Exercise creations are staged per request and written only in the final
transaction, so a failed or cancelled run leaves the catalog untouched.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING, List, Optional

from application.exceptions import PipelinePersistenceError, WorkoutParseError
from application.ports import ExerciseCatalog, WorkoutRepository
from backend.ai.client_factory import AIRequestContext
from backend.core.staged_catalog import StagedExerciseCatalog
from domain.models.exercise import Exercise, ExerciseResolution
from domain.models.formatted import FormattedWorkout
from domain.models.request import ParseRequest
from domain.models.resolved import ResolvedWorkout
from domain.models.validation import ValidationResult

if TYPE_CHECKING:
    from backend.core.exercise_resolver import ExerciseResolver
    from backend.services.database_formatter import DatabaseFormatter
    from backend.services.structure_extractor import StructureExtractor
    from backend.services.workout_validator import WorkoutValidator

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    """States of one parse run, in order."""

    VALIDATING = "validating"
    EXTRACTING = "extracting"
    RESOLVING = "resolving"
    FORMATTING = "formatting"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


_STAGE_ORDER = [
    PipelineStage.VALIDATING,
    PipelineStage.EXTRACTING,
    PipelineStage.RESOLVING,
    PipelineStage.FORMATTING,
    PipelineStage.PERSISTING,
    PipelineStage.DONE,
]


class PipelineRun:
    """Forward-only stage tracker for a single request."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        self.stage = PipelineStage.VALIDATING
        self.history: List[PipelineStage] = [PipelineStage.VALIDATING]
        self.failed_stage: Optional[PipelineStage] = None

    def advance(self, stage: PipelineStage) -> None:
        """
        Move to the next stage.

        Raises:
            RuntimeError: If the move is not exactly one step forward
        """
        if self.stage is PipelineStage.FAILED:
            raise RuntimeError("Pipeline already failed")
        current = _STAGE_ORDER.index(self.stage)
        if stage not in _STAGE_ORDER or _STAGE_ORDER.index(stage) != current + 1:
            raise RuntimeError(f"Illegal transition {self.stage.value} -> {stage.value}")
        logger.info("[%s] %s -> %s", self.request_id, self.stage.value, stage.value)
        self.stage = stage
        self.history.append(stage)

    def fail(self) -> PipelineStage:
        """Enter FAILED and return the stage that failed."""
        self.failed_stage = self.stage
        self.stage = PipelineStage.FAILED
        self.history.append(PipelineStage.FAILED)
        return self.failed_stage


@dataclass
class ParseWorkoutResult:
    """Result of a successful ParseWorkout execution."""

    workout: FormattedWorkout
    validation: ValidationResult
    resolutions: List[ExerciseResolution] = field(default_factory=list)
    new_exercises: List[Exercise] = field(default_factory=list)
    stages: List[PipelineStage] = field(default_factory=list)


class ParseWorkoutUseCase:
    """
    Use case for turning free-form workout text into a saved workout.

    Dependencies are injected via constructor for testability.

    Usage:
        >>> use_case = ParseWorkoutUseCase(
        ...     validator=validator,
        ...     extractor=extractor,
        ...     resolver=resolver,
        ...     formatter=formatter,
        ...     catalog=catalog,
        ...     workout_repo=workout_repo,
        ... )
        >>> result = await use_case.execute(ParseRequest(text="Bench Press: 3x8"))
        >>> result.workout.blocks[0].exercises[0].exercise_id
    """

    def __init__(
        self,
        validator: "WorkoutValidator",
        extractor: "StructureExtractor",
        resolver: "ExerciseResolver",
        formatter: "DatabaseFormatter",
        catalog: ExerciseCatalog,
        workout_repo: WorkoutRepository,
    ) -> None:
        """
        Initialize the use case with required dependencies.

        Args:
            validator: Stage 1, accepts or rejects the text
            extractor: Stage 2, builds the placeholder graph
            resolver: Stage 3, binds exercise names to catalog ids
            formatter: Stage 4, assigns node ids
            catalog: Shared exercise catalog (read-mostly)
            workout_repo: Atomic persistence for the result
        """
        self._validator = validator
        self._extractor = extractor
        self._resolver = resolver
        self._formatter = formatter
        self._catalog = catalog
        self._workout_repo = workout_repo

    async def execute(
        self,
        request: ParseRequest,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> ParseWorkoutResult:
        """
        Run the full pipeline.

        Args:
            request: Text plus optional date and weight unit hints
            user_id: Owner of the saved workout
            request_id: Correlation id for logs and LLM tracking

        Returns:
            ParseWorkoutResult with the persisted workout

        Raises:
            WorkoutParseError: Any pipeline failure, with .stage set
        """
        run = PipelineRun(request_id or str(uuid.uuid4()))
        context = AIRequestContext(user_id=user_id, request_id=run.request_id)
        staged = StagedExerciseCatalog(self._catalog)

        try:
            validation = await self._validator.validate(request.text, context=context)

            run.advance(PipelineStage.EXTRACTING)
            placeholder = await self._extractor.extract(
                request.text,
                default_date=request.date,
                default_weight_unit=request.weight_unit,
                context=context,
            )

            run.advance(PipelineStage.RESOLVING)
            resolutions = await self._resolver.resolve_all(
                placeholder.exercise_names(), staged, context=context
            )
            resolved = ResolvedWorkout.from_placeholder(placeholder, resolutions)

            run.advance(PipelineStage.FORMATTING)
            formatted = self._formatter.format(resolved, today=request.date)

            run.advance(PipelineStage.PERSISTING)
            new_exercises = staged.pending
            committed = await self._persist(formatted, new_exercises, staged, user_id)
            # A committed row with another id was written by a concurrent request
            inserted: List[Exercise] = []
            id_map = {}
            for provisional, row in zip(new_exercises, committed):
                if provisional.id == row.id:
                    inserted.append(row)
                else:
                    id_map[provisional.id] = row.id
            if id_map:
                logger.info("[%s] %d new exercises already existed, remapping", run.request_id, len(id_map))
            formatted = formatted.with_exercise_ids(id_map)
            resolutions = [
                r.model_copy(update={"exercise_id": id_map[r.exercise_id], "created": False})
                if r.exercise_id in id_map
                else r
                for r in resolutions
            ]

            run.advance(PipelineStage.DONE)
        except asyncio.CancelledError:
            logger.info("[%s] cancelled during %s", run.request_id, run.stage.value)
            run.fail()
            raise
        except WorkoutParseError as e:
            failed = run.fail()
            if e.stage is None:
                e.stage = failed.value
            logger.warning(
                "[%s] failed during %s: %s (retryable=%s)",
                run.request_id, failed.value, e.detail, e.retryable,
            )
            raise
        except Exception as e:
            failed = run.fail()
            logger.exception("[%s] unexpected error during %s", run.request_id, failed.value)
            raise WorkoutParseError(
                f"Unexpected error during {failed.value}: {e}", stage=failed.value
            ) from e

        logger.info(
            "[%s] parsed workout %s: %d exercises, %d flagged for review",
            run.request_id, formatted.id, len(resolutions), len(inserted),
        )
        return ParseWorkoutResult(
            workout=formatted,
            validation=validation,
            resolutions=resolutions,
            new_exercises=inserted,
            stages=list(run.history),
        )

    async def _persist(
        self,
        workout: FormattedWorkout,
        new_exercises: List[Exercise],
        staged: StagedExerciseCatalog,
        user_id: Optional[str],
    ) -> List[Exercise]:
        loop = asyncio.get_running_loop()
        save = partial(
            self._workout_repo.save_parsed_workout,
            workout,
            new_exercises,
            user_id,
            embeddings=staged.pending_embeddings,
        )
        try:
            committed = await loop.run_in_executor(None, save)
        except PipelinePersistenceError:
            raise
        except Exception as e:
            raise PipelinePersistenceError(f"Failed to save workout: {e}") from e

        if len(committed) != len(new_exercises):
            raise PipelinePersistenceError(
                f"Repository returned {len(committed)} exercises for {len(new_exercises)} staged"
            )
        return committed

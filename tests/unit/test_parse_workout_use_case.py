"""
Tests for ParseWorkoutUseCase.

Runs the whole pipeline against the seed catalog with a fake LLM.
"""

import asyncio
import datetime

import pytest

from application.exceptions import (
    LLMExtractionError,
    LLMServiceError,
    NotAWorkoutError,
    PipelinePersistenceError,
    WorkoutParseError,
)
from application.use_cases import PipelineRun, PipelineStage
from domain.models.exercise import Exercise, MatchStrategy
from domain.models.request import ParseRequest
from infrastructure.memory import InMemoryWorkoutRepository
from tests.fakes import FakeLLMClient, create_seed_catalog, create_use_case, extraction_reply

ACCEPT = {"isWorkout": True, "confidence": 0.95, "reason": None}
REJECT = {"isWorkout": False, "confidence": 0.9, "reason": "This is a grocery list"}
NO_MATCH = {"choice": None, "reason": "no candidate is the same movement"}


def _llm(extraction, disambiguation=NO_MATCH) -> FakeLLMClient:
    return (
        FakeLLMClient()
        .reply("workout_validation", ACCEPT)
        .reply("workout_extraction", extraction)
        .reply("exercise_disambiguation", disambiguation)
    )


BENCH = {"name": "Bench Press", "sets": [(8, 135), (8, 135), (8, 135)]}
GET_UP = {"name": "Turkish Get-Up", "sets": [(3, 24)], "unit": "kg"}


class RacingWorkoutRepository(InMemoryWorkoutRepository):
    """Another request commits the same new slugs just before each save."""

    def save_parsed_workout(self, workout, new_exercises, user_id=None, embeddings=None):
        for exercise in new_exercises:
            self._catalog.add(
                Exercise(id=f"other-{exercise.slug}", slug=exercise.slug, name=exercise.name, needs_review=True)
            )
        return super().save_parsed_workout(workout, new_exercises, user_id, embeddings)


@pytest.mark.unit
class TestHappyPath:
    @pytest.mark.asyncio
    async def test_bench_press_three_by_eight(self):
        use_case, catalog, repo = create_use_case(_llm(extraction_reply(BENCH)))
        catalog_size = len(catalog)

        result = await use_case.execute(ParseRequest(text="Bench Press: 3x8 @ 135"))

        workout = result.workout
        [block] = workout.blocks
        [exercise] = block.exercises
        assert exercise.exercise_id == "seed-bench-press"
        assert [(s.set_number, s.reps, s.weight, s.weight_unit) for s in exercise.sets] == [
            (1, 8, 135, "lbs"), (2, 8, 135, "lbs"), (3, 8, 135, "lbs"),
        ]
        assert len(set(workout.all_ids())) == 6
        assert result.new_exercises == []
        assert len(catalog) == catalog_size
        assert repo.get_workout(workout.id) == workout

    @pytest.mark.asyncio
    async def test_stages_run_in_order(self):
        use_case, _, _ = create_use_case(_llm(extraction_reply(BENCH)))

        result = await use_case.execute(ParseRequest(text="Bench Press: 3x8"))

        assert result.stages == [
            PipelineStage.VALIDATING,
            PipelineStage.EXTRACTING,
            PipelineStage.RESOLVING,
            PipelineStage.FORMATTING,
            PipelineStage.PERSISTING,
            PipelineStage.DONE,
        ]

    @pytest.mark.asyncio
    async def test_request_hints_applied(self):
        use_case, _, _ = create_use_case(_llm(extraction_reply(BENCH)))

        result = await use_case.execute(
            ParseRequest(text="Bench Press: 3x8", date=datetime.date(2026, 2, 3), weight_unit="kg")
        )

        assert result.workout.date == datetime.date(2026, 2, 3)
        assert result.workout.blocks[0].exercises[0].sets[0].weight_unit == "kg"

    @pytest.mark.asyncio
    async def test_user_id_recorded_and_forwarded(self):
        llm = _llm(extraction_reply(BENCH))
        use_case, _, repo = create_use_case(llm)

        result = await use_case.execute(ParseRequest(text="Bench Press: 3x8"), user_id="user-7")

        assert repo.saved_user_ids[result.workout.id] == "user-7"
        assert {c.user_id for c in llm.calls} == {"user-7"}

    @pytest.mark.asyncio
    async def test_equivalent_names_share_an_id(self):
        reply = extraction_reply(
            {"name": "Chin-Up", "sets": [(8, None)]},
            {"name": "chin up", "sets": [(6, None)]},
            {"name": "CHIN UP", "sets": [(5, None)]},
        )
        use_case, _, _ = create_use_case(_llm(reply))

        result = await use_case.execute(ParseRequest(text="chin-ups 8, 6, 5"))

        assert set(result.workout.exercise_ids()) == {"seed-chin-up"}


@pytest.mark.unit
class TestNewExercises:
    """Unmatched names become exactly one flagged catalog entry."""

    @pytest.mark.asyncio
    async def test_novel_exercise_created_once(self):
        reply = extraction_reply(GET_UP, BENCH, {"name": "turkish get up", "sets": [(2, 24)]})
        use_case, catalog, repo = create_use_case(_llm(reply))
        catalog_size = len(catalog)

        result = await use_case.execute(ParseRequest(text="TGU 3 @ 24kg, bench 3x8, tgu 2"))

        assert len(catalog) == catalog_size + 1
        created = catalog.lookup_exact("turkish-get-up")
        assert created.needs_review is True
        assert result.new_exercises == [created]
        ids = result.workout.exercise_ids()
        assert ids[0] == ids[2] == created.id
        assert repo.get_workout(result.workout.id).exercise_ids() == ids
        [resolution] = [r for r in result.resolutions if r.raw_name == "Turkish Get-Up"]
        assert resolution.created is True

    @pytest.mark.asyncio
    async def test_next_request_matches_created_exercise(self):
        first_llm = _llm(extraction_reply(GET_UP))
        use_case, catalog, _ = create_use_case(first_llm)
        first = await use_case.execute(ParseRequest(text="TGU 3 @ 24kg"))

        second_use_case, _, _ = create_use_case(_llm(extraction_reply(GET_UP)), catalog=catalog)
        second = await second_use_case.execute(ParseRequest(text="TGU 3 @ 24kg"))

        assert second.new_exercises == []
        assert second.workout.exercise_ids() == first.workout.exercise_ids()
        assert second.resolutions[0].strategy == MatchStrategy.EXACT

    @pytest.mark.asyncio
    async def test_concurrent_requests_create_one_entry(self, seed_catalog):
        use_case_a, _, repo = create_use_case(_llm(extraction_reply(GET_UP)), catalog=seed_catalog)
        use_case_b, _, _ = create_use_case(_llm(extraction_reply(GET_UP)), catalog=seed_catalog)
        catalog_size = len(seed_catalog)

        a, b = await asyncio.gather(
            use_case_a.execute(ParseRequest(text="TGU 3 @ 24kg")),
            use_case_b.execute(ParseRequest(text="TGU 3 @ 24kg")),
        )

        assert len(seed_catalog) == catalog_size + 1
        created = seed_catalog.lookup_exact("turkish-get-up")
        assert a.workout.exercise_ids() == b.workout.exercise_ids() == [created.id]
        assert sorted(len(r.new_exercises) for r in (a, b)) == [0, 1]

    @pytest.mark.asyncio
    async def test_row_committed_by_another_request_is_not_reported_new(self):
        catalog = create_seed_catalog()
        repo = RacingWorkoutRepository(catalog)
        use_case, _, _ = create_use_case(_llm(extraction_reply(GET_UP)), catalog=catalog, workout_repo=repo)

        result = await use_case.execute(ParseRequest(text="TGU 3 @ 24kg"))

        assert result.new_exercises == []
        [resolution] = result.resolutions
        assert resolution.created is False
        assert resolution.exercise_id == "other-turkish-get-up"
        assert result.workout.exercise_ids() == ["other-turkish-get-up"]
        assert repo.get_workout(result.workout.id).exercise_ids() == ["other-turkish-get-up"]

    @pytest.mark.asyncio
    async def test_sibling_spellings_in_one_request_create_one_entry(self):
        reply = extraction_reply(
            {"name": "Landmine Rotation", "sets": [(10, None)]},
            {"name": "Landmine Rotations", "sets": [(8, None)]},
        )
        use_case, catalog, _ = create_use_case(_llm(reply))
        catalog_size = len(catalog)

        result = await use_case.execute(ParseRequest(text="landmine rotation 10, landmine rotations 8"))

        [created] = result.new_exercises
        assert result.workout.exercise_ids() == [created.id, created.id]
        assert len(catalog) == catalog_size + 1

    @pytest.mark.asyncio
    async def test_non_latin_name_creates_flagged_exercise(self):
        reply = extraction_reply({"name": "Жим лёжа", "sets": [(8, 60)], "unit": "kg"})
        use_case, catalog, _ = create_use_case(_llm(reply))

        result = await use_case.execute(ParseRequest(text="Жим лёжа 8 x 60кг"))

        [created] = result.new_exercises
        assert created.slug == "жим-лежа"
        assert created.name == "Жим лёжа"
        assert created.needs_review is True
        assert catalog.lookup_exact("жим-лежа") == created
        assert result.workout.exercise_ids() == [created.id]

    @pytest.mark.asyncio
    async def test_new_exercise_named_and_tagged_by_llm(self):
        llm = _llm(extraction_reply({"name": "TGU", "sets": [(3, 24)]})).reply(
            "exercise_creation", {"name": "Turkish Get-Up", "tags": ["core", "kettlebell", "shoulders"]}
        )
        use_case, catalog, _ = create_use_case(llm)

        result = await use_case.execute(ParseRequest(text="TGU 3 @ 24"))

        [created] = result.new_exercises
        assert created.slug == "tgu"
        assert created.name == "Turkish Get-Up"
        assert catalog.lookup_exact("tgu").tags == ["core", "kettlebell", "shoulders"]


@pytest.mark.unit
class TestFailures:
    """Any failure ends the run with its stage and leaves storage unchanged."""

    @pytest.mark.asyncio
    async def test_not_a_workout(self):
        llm = FakeLLMClient().reply("workout_validation", REJECT)
        use_case, _, repo = create_use_case(llm)

        with pytest.raises(NotAWorkoutError) as exc_info:
            await use_case.execute(ParseRequest(text="eggs, milk, bread"))

        assert exc_info.value.stage == "validating"
        assert exc_info.value.retryable is False
        assert llm.calls_for("workout_extraction") == []
        assert repo.count() == 0

    @pytest.mark.asyncio
    async def test_extraction_exhausted(self):
        llm = FakeLLMClient().reply("workout_validation", ACCEPT).reply("workout_extraction", "nope")
        use_case, catalog, repo = create_use_case(llm, max_retries=1)
        catalog_size = len(catalog)

        with pytest.raises(LLMExtractionError) as exc_info:
            await use_case.execute(ParseRequest(text="some workout"))

        assert exc_info.value.stage == "extracting"
        assert exc_info.value.attempts == 2
        assert len(catalog) == catalog_size
        assert repo.count() == 0

    @pytest.mark.asyncio
    async def test_persistence_failure_commits_nothing(self):
        use_case, catalog, repo = create_use_case(_llm(extraction_reply(GET_UP, BENCH)))
        repo.fail_next_save = True
        catalog_size = len(catalog)

        with pytest.raises(PipelinePersistenceError) as exc_info:
            await use_case.execute(ParseRequest(text="TGU 3 @ 24kg, bench 3x8"))

        assert exc_info.value.stage == "persisting"
        assert exc_info.value.retryable is True
        assert len(catalog) == catalog_size
        assert catalog.lookup_exact("turkish-get-up") is None
        assert repo.count() == 0

    @pytest.mark.asyncio
    async def test_resolution_service_error_gets_stage(self):
        use_case, catalog, repo = create_use_case(_llm(extraction_reply(GET_UP), disambiguation="garbage"))
        catalog_size = len(catalog)

        with pytest.raises(LLMServiceError) as exc_info:
            await use_case.execute(ParseRequest(text="TGU 3 @ 24kg"))

        assert exc_info.value.stage == "resolving"
        assert len(catalog) == catalog_size
        assert repo.count() == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self):
        llm = _llm(extraction_reply(GET_UP), disambiguation=RuntimeError("boom"))
        use_case, _, _ = create_use_case(llm)

        with pytest.raises(WorkoutParseError) as exc_info:
            await use_case.execute(ParseRequest(text="TGU 3 @ 24kg"))

        assert type(exc_info.value) is WorkoutParseError
        assert exc_info.value.stage == "resolving"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_cancellation_commits_nothing(self):
        llm = _llm(extraction_reply(BENCH))
        llm.delay = 0.5
        use_case, catalog, repo = create_use_case(llm)

        task = asyncio.ensure_future(use_case.execute(ParseRequest(text="Bench Press: 3x8")))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert repo.count() == 0


@pytest.mark.unit
class TestPipelineRun:
    def test_forward_one_step(self):
        run = PipelineRun("req-1")
        run.advance(PipelineStage.EXTRACTING)
        assert run.stage is PipelineStage.EXTRACTING

    def test_skipping_a_stage_rejected(self):
        run = PipelineRun("req-1")
        with pytest.raises(RuntimeError):
            run.advance(PipelineStage.RESOLVING)

    def test_no_backward_moves(self):
        run = PipelineRun("req-1")
        run.advance(PipelineStage.EXTRACTING)
        with pytest.raises(RuntimeError):
            run.advance(PipelineStage.VALIDATING)

    def test_failed_is_terminal(self):
        run = PipelineRun("req-1")
        run.advance(PipelineStage.EXTRACTING)
        assert run.fail() is PipelineStage.EXTRACTING
        with pytest.raises(RuntimeError):
            run.advance(PipelineStage.RESOLVING)

import argparse
import asyncio
import datetime
import sys

from application.exceptions import WorkoutParseError
from application.use_cases import ParseWorkoutUseCase
from backend.ai.llm_client import create_llm_client
from backend.core.exercise_resolver import ExerciseResolver, ResolverConfig
from backend.services.database_formatter import DatabaseFormatter
from backend.services.embedding_service import EmbeddingService
from backend.services.structure_extractor import StructureExtractor
from backend.services.workout_validator import WorkoutValidator
from backend.settings import get_settings
from domain.models.request import ParseRequest
from infrastructure.memory import InMemoryExerciseCatalog, InMemoryWorkoutRepository


def build_use_case(settings) -> ParseWorkoutUseCase:
    """Wire the pipeline against the seeded in-memory catalog."""
    llm_client = create_llm_client(settings)
    catalog = InMemoryExerciseCatalog.from_yaml()
    embedding_service = EmbeddingService(settings) if settings.openai_api_key else None
    return ParseWorkoutUseCase(
        validator=WorkoutValidator.from_settings(llm_client, settings),
        extractor=StructureExtractor(llm_client, max_retries=settings.extraction_max_retries),
        resolver=ExerciseResolver(
            config=ResolverConfig.from_settings(settings),
            llm_client=llm_client,
            embedding_service=embedding_service,
        ),
        formatter=DatabaseFormatter(),
        catalog=catalog,
        workout_repo=InMemoryWorkoutRepository(catalog),
    )


def main():
    parser = argparse.ArgumentParser(description="Parse workout text into structured JSON")
    parser.add_argument("input", help="Input text file path, or - for stdin")
    parser.add_argument("-o", "--output", help="Output JSON file path (default: stdout)")
    parser.add_argument("--date", type=datetime.date.fromisoformat, help="Workout date (YYYY-MM-DD)")
    parser.add_argument("--unit", choices=["lbs", "kg"], help="Default weight unit")

    args = parser.parse_args()

    try:
        if args.input == "-":
            text = sys.stdin.read()
        else:
            with open(args.input, "r") as f:
                text = f.read()

        use_case = build_use_case(get_settings())
        request = ParseRequest(text=text, date=args.date, weight_unit=args.unit)
        result = asyncio.run(use_case.execute(request))
        output = result.workout.model_dump_json(by_alias=True, indent=2)

        if args.output:
            with open(args.output, "w") as f:
                f.write(output)
        else:
            print(output)

        for exercise in result.new_exercises:
            print(f"New exercise flagged for review: {exercise.name}", file=sys.stderr)

    except FileNotFoundError:
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        sys.exit(1)
    except WorkoutParseError as e:
        print(f"Error during {e.stage}: {e.detail}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

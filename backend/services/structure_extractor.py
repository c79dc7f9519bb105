"""
Structure Extractor: turns validated workout text into a placeholder graph.

The LLM is prompted with the target schema and normalization rules; its
reply is parsed and validated against the PlaceholderWorkout model. On a
schema violation the extractor re-prompts with the validation errors, up
to a fixed retry budget, then fails with LLMExtractionError.

Only schema violations are retried. Timeouts and transport errors from
the LLM client propagate unchanged.
"""

import datetime
import logging
from typing import Callable, Optional

from pydantic import ValidationError

from application.exceptions import LLMExtractionError
from application.ports.llm_client import LLMClient
from backend.ai.client_factory import AIRequestContext
from backend.ai.llm_client import extract_json_object
from backend.ai.retry import schema_retrying
from domain.models.base import WeightUnit
from domain.models.placeholder import PlaceholderWorkout

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 2
DEFAULT_WEIGHT_UNIT: WeightUnit = "lbs"

# Cap on validation error text echoed back to the LLM
MAX_FEEDBACK_CHARS = 2000

EXTRACTION_SYSTEM_PROMPT = "You are a workout text parser. You answer with a single JSON object and nothing else."

EXTRACTION_PROMPT = """Convert the workout text below into structured JSON.

<text>
{text}
</text>

Return a JSON object with exactly this shape:
{{
  "name": "workout name from the text, or null",
  "date": "YYYY-MM-DD if the text states a date, otherwise null",
  "notes": "workout-level notes, or null",
  "blocks": [
    {{
      "label": "section name like 'Warm Up' or 'Superset A', or null",
      "notes": "block-level notes, or null",
      "exercises": [
        {{
          "exerciseName": "exercise name as written, without sets/reps/weight",
          "orderInBlock": 0,
          "prescription": "concise summary such as '3 x 8 x 135 lbs', or null",
          "notes": "exercise-level notes, or null",
          "sets": [
            {{
              "setNumber": 1,
              "reps": 8,
              "weight": 135,
              "weightUnit": "lbs",
              "duration": null,
              "rpe": null,
              "notes": null
            }}
          ]
        }}
      ]
    }}
  ]
}}

Rules:
- One set object per performed set: "3x8" means three sets, each with "reps": 8.
- "setNumber" starts at 1 and increases by 1 within each exercise.
- "orderInBlock" starts at 0 and increases by 1 within each block.
- "weightUnit" must be "lbs" or "kg". Omit it (null) if the text gives no unit.
- "duration" is a whole number of seconds ("1 min" is 60). Use null when not timed.
- "rpe" is a number from 1 to 10, or null when not stated.
- For "Exercise A or Exercise B" use only the first option.
- Every exercise needs at least one set; if no sets are given, use a single set.
- Never invent exercises, sets or values that are not in the text.
- Use null for anything the text does not state."""

RETRY_PROMPT_SUFFIX = """

Your previous answer did not match the required schema:
<errors>
{errors}
</errors>

Return the corrected JSON object only."""


class _SchemaViolation(Exception):
    """LLM output failed JSON parsing or schema validation."""


class StructureExtractor:
    """Extracts a PlaceholderWorkout from workout text using an LLM."""

    def __init__(
        self,
        llm_client: LLMClient,
        max_retries: int = DEFAULT_MAX_RETRIES,
        today: Callable[[], datetime.date] = datetime.date.today,
    ):
        """
        Initialize the extractor.

        Args:
            llm_client: Completion client
            max_retries: Re-prompts allowed after the first schema violation
            today: Source of the default workout date
        """
        self._llm = llm_client
        self._max_retries = max_retries
        self._today = today

    @staticmethod
    def parse_response(text: str) -> PlaceholderWorkout:
        """
        Parse and validate one LLM reply.

        Raises:
            ValueError: If no JSON object is found
            ValidationError: If the object violates the schema
        """
        return PlaceholderWorkout.model_validate(extract_json_object(text))

    async def extract(
        self,
        text: str,
        default_date: Optional[datetime.date] = None,
        default_weight_unit: Optional[WeightUnit] = None,
        context: Optional[AIRequestContext] = None,
    ) -> PlaceholderWorkout:
        """
        Extract the workout structure from text.

        Args:
            text: Validated workout text
            default_date: Date used when the text states none (defaults to today)
            default_weight_unit: Unit for sets without one (defaults to lbs)
            context: AI request context for observability

        Returns:
            PlaceholderWorkout with defaults filled in

        Raises:
            LLMExtractionError: If output is still invalid after the retry budget
            LLMServiceError: If the LLM call itself fails
        """
        llm_context = AIRequestContext(
            user_id=context.user_id if context else None,
            session_id=context.session_id if context else None,
            request_id=context.request_id if context else None,
            feature_name="workout_extraction",
        )
        base_prompt = EXTRACTION_PROMPT.format(text=text)
        feedback: Optional[str] = None
        attempts = 0
        workout: Optional[PlaceholderWorkout] = None

        try:
            async for attempt in schema_retrying(self._max_retries, _SchemaViolation):
                with attempt:
                    attempts += 1
                    prompt = base_prompt
                    if feedback:
                        prompt += RETRY_PROMPT_SUFFIX.format(errors=feedback)

                    response = await self._llm.complete(
                        prompt,
                        system=EXTRACTION_SYSTEM_PROMPT,
                        context=llm_context,
                        max_tokens=8192,
                        json_mode=True,
                    )
                    try:
                        workout = self.parse_response(response)
                    except (ValueError, ValidationError) as e:
                        feedback = str(e)[:MAX_FEEDBACK_CHARS]
                        logger.warning(
                            "Extraction attempt %d/%d violated schema: %s",
                            attempts, self._max_retries + 1, feedback.splitlines()[0],
                        )
                        raise _SchemaViolation(feedback) from e
        except _SchemaViolation as e:
            raise LLMExtractionError(
                f"Workout structure invalid after {attempts} attempts: {e}",
                attempts=attempts,
            ) from e

        logger.info(
            "Extracted %d blocks, %d exercises, %d sets in %d attempt(s)",
            len(workout.blocks), len(workout.exercise_names()), workout.set_count(), attempts,
        )
        return workout.with_defaults(
            default_date or self._today(),
            default_weight_unit or DEFAULT_WEIGHT_UNIT,
        )

"""
Workout Validator: gates whether input text describes a workout at all.

Hybrid approach:
1. Keyword pre-filter (free, instant) - accepts text with set/rep notation
   plus a training keyword or load unit
2. LLM classification for everything else

The confidence threshold is inclusive: a score exactly at the threshold
is accepted.
"""

import logging
import re
from typing import List, Optional

from pydantic import ValidationError

from application.exceptions import LLMServiceError, NotAWorkoutError
from application.ports.llm_client import LLMClient
from backend.ai.client_factory import AIRequestContext
from backend.ai.llm_client import extract_json_object
from backend.settings import Settings, get_settings
from domain.models.validation import ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.7

# Confidence reported when the keyword pre-filter decides on its own
KEYWORD_CONFIDENCE = 0.95

VALIDATION_SYSTEM_PROMPT = """You are a workout content validator. Decide whether the provided text describes a fitness workout, exercise routine, training session, or similar physical activity plan.

Valid workout content includes:
- Exercise lists with sets/reps
- Training programs and workout routines
- Warm-up/cool-down sequences
- Fitness class descriptions and athletic training plans

NOT valid workout content:
- Recipes or nutrition plans
- Random text, code, stories, or other non-fitness content

Return ONLY a JSON object:
{"isWorkout": true|false, "confidence": 0.0-1.0, "reason": "brief explanation if not a workout"}"""

VALIDATION_PROMPT = "Validate the following text:\n\n{text}"

SET_REP_PATTERNS = [
    re.compile(r"\b\d+\s*[x×]\s*\d+", re.IGNORECASE),
    re.compile(r"\b\d+\s*(?:sets?|reps?|rounds?)\b", re.IGNORECASE),
]

LOAD_PATTERN = re.compile(r"\b\d+(?:\.\d+)?\s*(?:lbs?|kgs?|pounds?|kilos?)\b", re.IGNORECASE)

WORKOUT_KEYWORDS = [
    # Movements
    "squat", "deadlift", "bench", "press", "row", "curl", "lunge",
    "pull up", "pull-up", "pullup", "push up", "push-up", "pushup",
    "chin up", "chin-up", "dip", "plank", "swing", "clean", "snatch",
    "raise", "extension", "fly", "thrust", "burpee",
    # Equipment
    "dumbbell", "barbell", "kettlebell", "cable", "machine", "db", "bb", "kb",
    # Structure
    "warm up", "warmup", "superset", "circuit", "emom", "amrap", "rpe", "rest",
    "workout", "training",
]


class WorkoutValidator:
    """
    Classifies raw text as a workout or not.

    Raises NotAWorkoutError when the text is rejected; returns the
    ValidationResult when it is accepted.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        keyword_prefilter: bool = True,
    ):
        """
        Initialize the validator.

        Args:
            llm_client: Completion client used for ambiguous text
            confidence_threshold: Minimum confidence to accept (inclusive)
            keyword_prefilter: Accept obvious workouts without an LLM call
        """
        self._llm = llm_client
        self._threshold = confidence_threshold
        self._keyword_prefilter = keyword_prefilter
        escaped = [re.escape(kw) for kw in WORKOUT_KEYWORDS]
        self._keyword_pattern = re.compile(r"\b(" + "|".join(escaped) + r")\b", re.IGNORECASE)

    @classmethod
    def from_settings(cls, llm_client: LLMClient, settings: Optional[Settings] = None) -> "WorkoutValidator":
        settings = settings or get_settings()
        return cls(
            llm_client,
            confidence_threshold=settings.validation_confidence_threshold,
            keyword_prefilter=settings.validator_keyword_prefilter,
        )

    @property
    def threshold(self) -> float:
        return self._threshold

    def is_accepted(self, result: ValidationResult) -> bool:
        """Accept when the verdict is positive and confidence >= threshold."""
        return result.is_workout and result.confidence >= self._threshold

    def _keyword_filter(self, text: str) -> Optional[ValidationResult]:
        """
        Decide obvious workouts without the LLM.

        Returns:
            An accepting ValidationResult, or None when inconclusive
        """
        has_notation = any(p.search(text) for p in SET_REP_PATTERNS)
        if not has_notation:
            return None

        keywords: List[str] = sorted({m.lower() for m in self._keyword_pattern.findall(text)})
        has_load = bool(LOAD_PATTERN.search(text))
        if not keywords and not has_load:
            return None

        evidence = ", ".join(keywords[:3]) if keywords else "load units"
        return ValidationResult(
            is_workout=True,
            confidence=KEYWORD_CONFIDENCE,
            reason=f"Set/rep notation with {evidence}",
        )

    async def _llm_classify(self, text: str, context: Optional[AIRequestContext]) -> ValidationResult:
        response = await self._llm.complete(
            VALIDATION_PROMPT.format(text=text),
            system=VALIDATION_SYSTEM_PROMPT,
            context=context,
            max_tokens=200,
            json_mode=True,
        )
        try:
            return ValidationResult.model_validate(extract_json_object(response))
        except (ValueError, ValidationError) as e:
            logger.warning("Validator returned an unusable response: %s", e)
            raise LLMServiceError(
                f"Malformed validation response: {e}", stage="validating", retryable=True
            ) from e

    async def validate(
        self, text: str, context: Optional[AIRequestContext] = None
    ) -> ValidationResult:
        """
        Classify text and enforce the acceptance policy.

        Args:
            text: Raw workout text
            context: AI request context for observability

        Returns:
            The accepting ValidationResult

        Raises:
            NotAWorkoutError: If the text is empty, not a workout, or below threshold
            LLMServiceError: If the LLM call fails or returns malformed JSON
        """
        if not text or not text.strip():
            raise NotAWorkoutError("Input text is empty", confidence=0.0)

        result = self._keyword_filter(text) if self._keyword_prefilter else None
        if result is not None:
            logger.info("Keyword pre-filter accepted input: %s", result.reason)
            return result

        llm_context = AIRequestContext(
            user_id=context.user_id if context else None,
            session_id=context.session_id if context else None,
            request_id=context.request_id if context else None,
            feature_name="workout_validation",
        )
        result = await self._llm_classify(text, llm_context)
        logger.info(
            "LLM validation: is_workout=%s confidence=%.2f threshold=%.2f",
            result.is_workout, result.confidence, self._threshold,
        )

        if not self.is_accepted(result):
            reason = result.reason or (
                "Text does not describe a workout"
                if not result.is_workout
                else f"Confidence {result.confidence:.2f} is below {self._threshold:.2f}"
            )
            raise NotAWorkoutError(reason, confidence=result.confidence)
        return result

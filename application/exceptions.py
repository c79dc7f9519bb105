"""
Application-layer exceptions for the workout parsing pipeline.

These exceptions are used across application, infrastructure and API layers.
Every error carries the pipeline stage it was raised in and whether the
caller may retry the same request unchanged.
"""

from typing import Optional


class WorkoutParseError(Exception):
    """Base error for a failed parse request.

    Attributes:
        stage: Pipeline stage that failed (e.g. "validating", "persisting")
        retryable: Whether resubmitting the same input may succeed
        detail: Human-readable explanation
    """

    retryable: bool = False

    def __init__(
        self,
        detail: str,
        stage: Optional[str] = None,
        retryable: Optional[bool] = None,
    ):
        super().__init__(detail)
        self.detail = detail
        self.stage = stage
        if retryable is not None:
            self.retryable = retryable


class NotAWorkoutError(WorkoutParseError):
    """Input text was rejected by the validator.

    User-facing; retrying without editing the input will not help.
    """

    retryable = False

    def __init__(self, reason: str, confidence: Optional[float] = None, stage: Optional[str] = "validating"):
        super().__init__(reason, stage=stage)
        self.reason = reason
        self.confidence = confidence


class LLMExtractionError(WorkoutParseError):
    """LLM output stayed schema-invalid after the retry budget was spent."""

    retryable = True

    def __init__(self, detail: str, attempts: int = 0, stage: Optional[str] = "extracting"):
        super().__init__(detail, stage=stage)
        self.attempts = attempts


class LLMServiceError(WorkoutParseError):
    """LLM call failed: timeout, transport error, or unusable response."""

    retryable = True


class PipelinePersistenceError(WorkoutParseError):
    """Atomic save of the parsed workout failed; nothing was committed."""

    retryable = True

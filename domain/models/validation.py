"""
Validation verdict for raw workout text.
"""

from typing import Optional

from pydantic import Field

from domain.models.base import CamelModel


class ValidationResult(CamelModel):
    """
    Outcome of classifying input text as a workout or not.

    Produced once per request and never persisted.

    Examples:
        >>> ValidationResult(is_workout=True, confidence=0.92)
        ValidationResult(is_workout=True, confidence=0.92, reason=None)
    """

    is_workout: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: Optional[str] = None

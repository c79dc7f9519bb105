"""
Parse request value object (raw input plus hints).
"""

import datetime
from typing import Optional

from pydantic import Field

from domain.models.base import CamelModel, WeightUnit


class ParseRequest(CamelModel):
    """
    Free-form workout text and optional request-level hints.

    Examples:
        >>> ParseRequest(text="Bench Press 3x8 @135lbs", weight_unit="lbs")
    """

    text: str = Field(..., max_length=20_000, description="Workout description")
    date: Optional[datetime.date] = Field(
        default=None, description="Workout date; defaults to today"
    )
    weight_unit: Optional[WeightUnit] = Field(
        default=None, description="Default unit for sets that give a weight without one"
    )

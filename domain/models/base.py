"""
Shared pydantic configuration for workout parsing models.

Python attributes are snake_case; JSON on the wire (LLM output, API
responses) is camelCase.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

WeightUnit = Literal["lbs", "kg"]


class CamelModel(BaseModel):
    """Frozen value object that reads and writes camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

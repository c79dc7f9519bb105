"""
Catalog exercise entity and resolution value objects.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from domain.models.base import CamelModel


class Exercise(CamelModel):
    """
    Canonical exercise in the shared catalog.

    `needs_review=True` marks entries created automatically while parsing,
    pending human curation. Slugs are unique and always equal to
    normalize_exercise_name(name) for entries created by the resolver.

    Examples:
        >>> Exercise(id="ex-1", slug="bench-press", name="Bench Press", tags=["chest"])
    """

    id: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    tags: List[str] = Field(default_factory=list)
    needs_review: bool = False


class MatchStrategy(str, Enum):
    """Search strategy that produced a candidate."""

    EXACT = "exact"
    FULLTEXT = "fulltext"
    TRIGRAM = "trigram"
    SEMANTIC = "semantic"
    LLM = "llm"


class ExerciseCandidate(CamelModel):
    """
    A scored catalog hit produced during resolution. Never persisted.

    `score` is in 0..1 for every strategy; semantic hits use 1 - distance.
    """

    id: str
    slug: str
    name: str
    tags: List[str] = Field(default_factory=list)
    score: float = Field(..., ge=0.0, le=1.0)
    strategy: MatchStrategy

    @classmethod
    def from_exercise(
        cls, exercise: Exercise, score: float, strategy: MatchStrategy
    ) -> "ExerciseCandidate":
        return cls(
            id=exercise.id,
            slug=exercise.slug,
            name=exercise.name,
            tags=list(exercise.tags),
            score=max(0.0, min(1.0, score)),
            strategy=strategy,
        )


class ExerciseResolution(CamelModel):
    """
    How one raw exercise name was bound to a catalog id.

    `strategy` is None when no strategy matched and a flagged entry was
    created instead (`created=True`).
    """

    raw_name: str
    exercise_id: str
    exercise_name: str
    strategy: Optional[MatchStrategy] = None
    score: Optional[float] = None
    created: bool = False


class ExerciseMetadata(CamelModel):
    """
    LLM-suggested display name and tags for a newly created exercise.

    Tags are lowercased and de-duplicated; at most six are kept.
    """

    name: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = " ".join(v.split())
        return v if any(ch.isalnum() for ch in v) else None

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        tags = [tag.strip().lower() for tag in v if tag.strip()]
        return list(dict.fromkeys(tags))[:6]

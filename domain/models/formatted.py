"""
Persistable workout entity tree.

Every node carries its own id, and ids are unique across the whole tree
regardless of node type.
"""

import datetime
from typing import List, Optional

from pydantic import Field

from domain.models.base import CamelModel, WeightUnit


class FormattedSet(CamelModel):
    id: str
    set_number: int = Field(..., ge=1)
    reps: Optional[int] = None
    weight: Optional[float] = None
    weight_unit: Optional[WeightUnit] = None
    duration: Optional[int] = None
    rpe: Optional[float] = None
    notes: Optional[str] = None


class FormattedExercise(CamelModel):
    id: str
    exercise_id: str
    order_in_block: int = Field(..., ge=0)
    prescription: Optional[str] = None
    notes: Optional[str] = None
    sets: List[FormattedSet]


class FormattedBlock(CamelModel):
    id: str
    label: Optional[str] = None
    notes: Optional[str] = None
    exercises: List[FormattedExercise]


class FormattedWorkout(CamelModel):
    """Final workout record, the only pipeline output that is persisted."""

    id: str
    name: Optional[str] = None
    date: datetime.date
    last_modified_time: datetime.datetime
    notes: Optional[str] = None
    blocks: List[FormattedBlock]

    def all_ids(self) -> List[str]:
        """Every node id in depth-first order."""
        ids = [self.id]
        for block in self.blocks:
            ids.append(block.id)
            for exercise in block.exercises:
                ids.append(exercise.id)
                ids.extend(s.id for s in exercise.sets)
        return ids

    def exercise_ids(self) -> List[str]:
        """Catalog exercise ids referenced by this workout, in order."""
        return [e.exercise_id for b in self.blocks for e in b.exercises]

    def with_exercise_ids(self, id_map: dict[str, str]) -> "FormattedWorkout":
        """Copy with catalog exercise ids replaced per id_map."""
        if not id_map:
            return self
        blocks = [
            block.model_copy(update={
                "exercises": [
                    e.model_copy(update={"exercise_id": id_map.get(e.exercise_id, e.exercise_id)})
                    for e in block.exercises
                ]
            })
            for block in self.blocks
        ]
        return self.model_copy(update={"blocks": blocks})

"""
In-memory implementation of ExerciseCatalog.

Backs local development (catalog_source=seed) and tests. Search scoring
uses the same primitives as the Postgres functions in
supabase/migrations, so rankings match the database.
"""

import logging
import pathlib
import threading
import uuid
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import yaml

from backend.core.lexical import cosine_distances, token_overlap, trigram_similarity, unit_rows
from backend.core.normalize import ROOT, display_name, normalize_exercise_name, search_tokens
from domain.models.exercise import Exercise

logger = logging.getLogger(__name__)

SEED_CATALOG_PATH = ROOT / "shared" / "dictionaries" / "exercise_catalog.yaml"


def _ranked(hits: Iterable[Tuple[Exercise, float]], limit: int) -> List[Tuple[Exercise, float]]:
    return sorted(hits, key=lambda hit: (-hit[1], hit[0].slug))[:limit]


class InMemoryExerciseCatalog:
    """
    Thread-safe in-memory exercise catalog.

    Attributes:
        upsert_calls: Names passed to upsert_by_normalized_slug, for assertions
    """

    def __init__(self, exercises: Optional[Iterable[Exercise]] = None):
        self._lock = threading.RLock()
        self._by_id: Dict[str, Exercise] = {}
        self._by_slug: Dict[str, Exercise] = {}
        self._tokens: Dict[str, List[str]] = {}
        self._embeddings: Dict[str, List[float]] = {}
        self._semantic_index: Optional[Tuple[List[Exercise], np.ndarray]] = None
        self.upsert_calls: List[str] = []
        for exercise in exercises or []:
            self.add(exercise)

    @classmethod
    def from_yaml(cls, path: pathlib.Path = SEED_CATALOG_PATH) -> "InMemoryExerciseCatalog":
        """Build a catalog from a YAML file with an `exercises` list."""
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        exercises = []
        for entry in data.get("exercises") or []:
            slug = entry.get("slug") or normalize_exercise_name(entry["name"])
            exercises.append(
                Exercise(
                    id=entry.get("id") or f"seed-{slug}",
                    slug=slug,
                    name=entry["name"],
                    tags=entry.get("tags") or [],
                    needs_review=bool(entry.get("needs_review", False)),
                )
            )
        logger.info("Loaded %d seed exercises from %s", len(exercises), path.name)
        return cls(exercises)

    def add(self, exercise: Exercise, embedding: Optional[Sequence[float]] = None) -> Exercise:
        """
        Insert an exercise directly.

        Raises:
            ValueError: If the slug or id is already taken
        """
        with self._lock:
            if exercise.slug in self._by_slug:
                raise ValueError(f"Duplicate exercise slug: {exercise.slug}")
            if exercise.id in self._by_id:
                raise ValueError(f"Duplicate exercise id: {exercise.id}")
            self._by_id[exercise.id] = exercise
            self._by_slug[exercise.slug] = exercise
            self._tokens[exercise.id] = search_tokens(exercise.name)
            if embedding is not None:
                self._embeddings[exercise.id] = list(embedding)
                self._semantic_index = None
            return exercise

    def all(self) -> List[Exercise]:
        with self._lock:
            return sorted(self._by_id.values(), key=lambda e: e.slug)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_id)

    # ------------------------------------------------------------------
    # ExerciseCatalog
    # ------------------------------------------------------------------

    def lookup_exact(self, normalized_name: str) -> Optional[Exercise]:
        with self._lock:
            return self._by_slug.get(normalized_name)

    def search_fulltext(self, name: str, limit: int = 10) -> List[Tuple[Exercise, float]]:
        query = search_tokens(name)
        if not query:
            return []
        with self._lock:
            hits = [
                (exercise, token_overlap(query, self._tokens[exercise.id]))
                for exercise in self._by_id.values()
            ]
        return _ranked(((e, s) for e, s in hits if s > 0), limit)

    def search_trigram(
        self, name: str, threshold: float, limit: int = 10
    ) -> List[Tuple[Exercise, float]]:
        with self._lock:
            exercises = list(self._by_id.values())
        hits = ((e, trigram_similarity(name, e.name)) for e in exercises)
        return _ranked(((e, s) for e, s in hits if s >= threshold), limit)

    def search_semantic(
        self, embedding: Sequence[float], k: int = 10
    ) -> List[Tuple[Exercise, float]]:
        with self._lock:
            if not self._embeddings:
                return []
            if self._semantic_index is None:
                ids = list(self._embeddings)
                self._semantic_index = (
                    [self._by_id[eid] for eid in ids],
                    unit_rows([self._embeddings[eid] for eid in ids]),
                )
            exercises, index = self._semantic_index
        distances = cosine_distances(index, embedding)
        # Closest first; distance ascending
        order = sorted(range(len(exercises)), key=lambda i: (distances[i], exercises[i].slug))
        return [(exercises[i], float(distances[i])) for i in order[:k]]

    def upsert_by_normalized_slug(
        self,
        name: str,
        tags: Sequence[str] = (),
        needs_review: bool = True,
        embedding: Optional[Sequence[float]] = None,
        canonical_name: Optional[str] = None,
    ) -> Exercise:
        slug = normalize_exercise_name(name)
        if not slug:
            raise ValueError(f"Cannot derive a slug from exercise name {name!r}")

        with self._lock:
            self.upsert_calls.append(name)
            existing = self._by_slug.get(slug)
            if existing is not None:
                return existing
            exercise = Exercise(
                id=str(uuid.uuid4()),
                slug=slug,
                name=display_name(canonical_name or name),
                tags=list(tags),
                needs_review=needs_review,
            )
            logger.info("Created exercise %s (needs_review=%s)", slug, needs_review)
            return self.add(exercise, embedding)

    def insert_or_get(
        self, exercise: Exercise, embedding: Optional[Sequence[float]] = None
    ) -> Exercise:
        """Commit a staged exercise, keeping an existing row with the same slug."""
        with self._lock:
            existing = self._by_slug.get(exercise.slug)
            if existing is not None:
                return existing
            return self.add(exercise, embedding)

    def locked(self) -> threading.RLock:
        """Lock guarding the catalog, for callers committing several rows at once."""
        return self._lock

    def get_by_id(self, exercise_id: str) -> Optional[Exercise]:
        with self._lock:
            return self._by_id.get(exercise_id)

    def has_embedding(self, exercise_id: str) -> bool:
        with self._lock:
            return exercise_id in self._embeddings

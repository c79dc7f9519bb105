"""
Request-scoped view over the shared exercise catalog.

Reads go to the shared catalog, with this request's staged exercises
merged into the search results. Fallback creations are staged locally
instead of written, so a parse request commits its new exercises together
with the workout or not at all. Staging is insert-or-fetch on the
normalized slug: a name already in the shared catalog or already staged
in this request is returned, never duplicated.
"""

import logging
import threading
import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from application.ports.exercise_catalog import ExerciseCatalog
from backend.core.lexical import cosine_distances, token_overlap, trigram_similarity, unit_rows
from backend.core.normalize import display_name, normalize_exercise_name, search_tokens
from domain.models.exercise import Exercise

logger = logging.getLogger(__name__)

Hit = Tuple[Exercise, float]


def _merged(shared: List[Hit], staged: List[Hit], limit: int, descending: bool = True) -> List[Hit]:
    sign = -1 if descending else 1
    hits = sorted(shared + staged, key=lambda hit: (sign * hit[1], hit[0].slug))
    return hits[:limit]


class StagedExerciseCatalog:
    """ExerciseCatalog that buffers upserts until the request commits."""

    def __init__(self, shared: ExerciseCatalog):
        self._shared = shared
        self._lock = threading.Lock()
        self._pending: Dict[str, Exercise] = {}
        self._embeddings: Dict[str, List[float]] = {}

    @property
    def pending(self) -> List[Exercise]:
        """Staged exercises in creation order."""
        with self._lock:
            return list(self._pending.values())

    @property
    def pending_embeddings(self) -> Dict[str, List[float]]:
        """Embeddings of staged exercises keyed by provisional id."""
        with self._lock:
            return dict(self._embeddings)

    def lookup_exact(self, normalized_name: str) -> Optional[Exercise]:
        with self._lock:
            staged = self._pending.get(normalized_name)
        if staged is not None:
            return staged
        return self._shared.lookup_exact(normalized_name)

    def search_fulltext(self, name: str, limit: int = 10) -> List[Hit]:
        shared = self._shared.search_fulltext(name, limit)
        query = search_tokens(name)
        if not query:
            return shared
        staged = []
        for exercise in self.pending:
            score = token_overlap(query, search_tokens(exercise.name))
            if score > 0:
                staged.append((exercise, score))
        return _merged(shared, staged, limit)

    def search_trigram(self, name: str, threshold: float, limit: int = 10) -> List[Hit]:
        shared = self._shared.search_trigram(name, threshold, limit)
        staged = []
        for exercise in self.pending:
            similarity = trigram_similarity(name, exercise.name)
            if similarity >= threshold:
                staged.append((exercise, similarity))
        return _merged(shared, staged, limit)

    def search_semantic(self, embedding: Sequence[float], k: int = 10) -> List[Hit]:
        shared = self._shared.search_semantic(embedding, k)
        with self._lock:
            by_id = {e.id: e for e in self._pending.values()}
            vectors = dict(self._embeddings)
        if not vectors:
            return shared
        ids = list(vectors)
        distances = cosine_distances(unit_rows([vectors[i] for i in ids]), embedding)
        staged = [(by_id[i], float(d)) for i, d in zip(ids, distances)]
        return _merged(shared, staged, k, descending=False)

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
            staged = self._pending.get(slug)
            if staged is not None:
                return staged

        existing = self._shared.lookup_exact(slug)
        if existing is not None:
            return existing

        with self._lock:
            # Another task in this request may have staged it meanwhile
            staged = self._pending.get(slug)
            if staged is None:
                staged = Exercise(
                    id=str(uuid.uuid4()),
                    slug=slug,
                    name=display_name(canonical_name or name),
                    tags=list(tags),
                    needs_review=needs_review,
                )
                self._pending[slug] = staged
                if embedding is not None:
                    self._embeddings[staged.id] = list(embedding)
                logger.info("Staged new exercise %s for review", slug)
            return staged

    def get_by_id(self, exercise_id: str) -> Optional[Exercise]:
        with self._lock:
            for staged in self._pending.values():
                if staged.id == exercise_id:
                    return staged
        return self._shared.get_by_id(exercise_id)

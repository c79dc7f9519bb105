"""
Supabase implementation of ExerciseCatalog.

Exact lookups and inserts use the exercises table directly. Full-text,
trigram and semantic search call the Postgres functions defined in
supabase/migrations/001_exercise_catalog.sql.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from supabase import Client

from backend.core.normalize import display_name, normalize_exercise_name, search_tokens
from domain.models.exercise import Exercise

logger = logging.getLogger(__name__)

EXERCISE_COLUMNS = "id, slug, name, tags, needs_review"


def _row_to_exercise(row: Dict[str, Any]) -> Exercise:
    return Exercise(
        id=str(row["id"]),
        slug=row["slug"],
        name=row["name"],
        tags=row.get("tags") or [],
        needs_review=bool(row.get("needs_review", False)),
    )


def _ranked_rows(
    rows: List[Dict[str, Any]], value_key: str, descending: bool = True
) -> List[Tuple[Exercise, float]]:
    hits = [(_row_to_exercise(row), float(row[value_key])) for row in rows]
    sign = -1 if descending else 1
    return sorted(hits, key=lambda hit: (sign * hit[1], hit[0].slug))


class SupabaseExerciseCatalog:
    """
    Supabase-backed exercise catalog.

    Read failures are logged and reported as "no hits" so resolution
    degrades to creating a flagged entry; the slug upsert makes that safe.
    Write failures propagate.
    """

    def __init__(self, client: Client):
        """
        Initialize with Supabase client.

        Args:
            client: Supabase client instance (injected, not global)
        """
        self._client = client

    def lookup_exact(self, normalized_name: str) -> Optional[Exercise]:
        try:
            result = (
                self._client.table("exercises")
                .select(EXERCISE_COLUMNS)
                .eq("slug", normalized_name)
                .limit(1)
                .execute()
            )
        except Exception:
            logger.exception("Error looking up exercise slug %s", normalized_name)
            return None
        if result.data:
            return _row_to_exercise(result.data[0])
        return None

    def search_fulltext(self, name: str, limit: int = 10) -> List[Tuple[Exercise, float]]:
        # Same tokens the in-memory catalog scores with
        tokens = search_tokens(name)
        if not tokens:
            return []
        try:
            result = self._client.rpc(
                "search_exercises_fulltext",
                {"p_query": " ".join(tokens), "p_limit": limit},
            ).execute()
        except Exception:
            logger.exception("Error in full-text exercise search for %s", name)
            return []
        return _ranked_rows(result.data or [], "score")

    def search_trigram(
        self, name: str, threshold: float, limit: int = 10
    ) -> List[Tuple[Exercise, float]]:
        try:
            result = self._client.rpc(
                "search_exercises_trigram",
                {"p_query": name, "p_threshold": threshold, "p_limit": limit},
            ).execute()
        except Exception:
            logger.exception("Error in trigram exercise search for %s", name)
            return []
        return _ranked_rows(result.data or [], "similarity")

    def search_semantic(
        self, embedding: Sequence[float], k: int = 10
    ) -> List[Tuple[Exercise, float]]:
        result = self._client.rpc(
            "match_exercises",
            {"query_embedding": list(embedding), "match_count": k},
        ).execute()
        return _ranked_rows(result.data or [], "distance", descending=False)

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

        row: Dict[str, Any] = {
            "slug": slug,
            "name": display_name(canonical_name or name),
            "tags": list(tags),
            "needs_review": needs_review,
        }
        if embedding is not None:
            row["embedding"] = list(embedding)

        # ignore_duplicates keeps the first writer's row when slugs collide
        self._client.table("exercises").upsert(
            row, on_conflict="slug", ignore_duplicates=True
        ).execute()

        exercise = self.lookup_exact(slug)
        if exercise is None:
            raise RuntimeError(f"Exercise {slug} missing after upsert")
        return exercise

    def get_by_id(self, exercise_id: str) -> Optional[Exercise]:
        try:
            result = (
                self._client.table("exercises")
                .select(EXERCISE_COLUMNS)
                .eq("id", exercise_id)
                .limit(1)
                .execute()
            )
        except Exception:
            logger.exception("Error fetching exercise by id %s", exercise_id)
            return None
        if result.data:
            return _row_to_exercise(result.data[0])
        return None

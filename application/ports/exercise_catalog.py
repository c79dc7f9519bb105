"""
Exercise Catalog Interface (Port).

Defines the abstract interface for the shared store of canonical
exercises and its search indexes. The catalog is read-mostly: the only
write is the idempotent insert-or-fetch used when an exercise name
cannot be matched.
"""

from typing import List, Optional, Protocol, Sequence, Tuple

from domain.models.exercise import Exercise


class ExerciseCatalog(Protocol):
    """
    Abstract interface for canonical exercise lookup and search.

    All search methods return hits sorted best first, ties broken by the
    smaller slug.
    """

    def lookup_exact(self, normalized_name: str) -> Optional[Exercise]:
        """
        Look up an exercise by its normalized slug.

        Args:
            normalized_name: Output of normalize_exercise_name()

        Returns:
            The exercise, or None if no slug matches
        """
        ...

    def search_fulltext(self, name: str, limit: int = 10) -> List[Tuple[Exercise, float]]:
        """
        Word-based ranked search.

        Args:
            name: Exercise name as written by the user
            limit: Maximum hits

        Returns:
            (exercise, score) pairs with score in 0..1
        """
        ...

    def search_trigram(
        self, name: str, threshold: float, limit: int = 10
    ) -> List[Tuple[Exercise, float]]:
        """
        Character trigram similarity search.

        Args:
            name: Exercise name as written by the user
            threshold: Minimum similarity to include
            limit: Maximum hits

        Returns:
            (exercise, similarity) pairs with similarity >= threshold
        """
        ...

    def search_semantic(
        self, embedding: Sequence[float], k: int = 10
    ) -> List[Tuple[Exercise, float]]:
        """
        Nearest neighbours by cosine distance over name embeddings.

        Args:
            embedding: Query embedding
            k: Number of neighbours

        Returns:
            (exercise, distance) pairs, closest first
        """
        ...

    def upsert_by_normalized_slug(
        self,
        name: str,
        tags: Sequence[str] = (),
        needs_review: bool = True,
        embedding: Optional[Sequence[float]] = None,
        canonical_name: Optional[str] = None,
    ) -> Exercise:
        """
        Insert-or-fetch an exercise keyed on normalize_exercise_name(name).

        If an entry with that slug already exists it is returned unchanged,
        so concurrent callers creating the same novel name converge on one row.

        Args:
            name: Name the slug is derived from; display name unless canonical_name is given
            tags: Tags for a new entry
            needs_review: Flag for human curation
            embedding: Optional name embedding stored with a new entry
            canonical_name: Display name for a new entry, when it differs from name

        Returns:
            The existing or newly created exercise
        """
        ...

    def get_by_id(self, exercise_id: str) -> Optional[Exercise]:
        """
        Get an exercise by id.

        Returns:
            The exercise, or None if not found
        """
        ...

"""
Scoring primitives for catalog search.

These mirror what the Postgres indexes compute so the in-memory catalog
ranks the same way the database does:
- trigram_similarity follows pg_trgm's similarity()
- token_overlap is the word-level Jaccard score of search_exercises_fulltext
- cosine_distances matches pgvector's <=> operator
"""

import re
from typing import Iterable, Sequence

import numpy as np

# Letters and digits of any script; pg_trgm splits words on everything else
_WORD = re.compile(r"[^\W_]+")


def trigrams(text: str) -> set[str]:
    """
    pg_trgm style trigram set.

    Each word is padded with two spaces in front and one behind, so short
    words still contribute prefix trigrams.
    """
    grams: set[str] = set()
    for word in _WORD.findall(text.casefold()):
        padded = f"  {word} "
        for i in range(len(padded) - 2):
            grams.add(padded[i:i + 3])
    return grams


def trigram_similarity(a: str, b: str) -> float:
    """Shared trigrams over the union of both sets, 0..1."""
    grams_a = trigrams(a)
    grams_b = trigrams(b)
    if not grams_a or not grams_b:
        return 0.0
    shared = len(grams_a & grams_b)
    return shared / (len(grams_a) + len(grams_b) - shared)


def token_overlap(query_tokens: Iterable[str], document_tokens: Iterable[str]) -> float:
    """Jaccard overlap of two token sets, 0..1."""
    query = set(query_tokens)
    document = set(document_tokens)
    if not query or not document:
        return 0.0
    return len(query & document) / len(query | document)


def unit_rows(vectors: Sequence[Sequence[float]]) -> np.ndarray:
    """
    Stack vectors into a matrix of unit-length rows.

    Zero rows stay zero, so they sit at distance 1 from every query.

    Raises:
        ValueError: If there are no vectors or their dimensions differ
    """
    if len(vectors) == 0:
        raise ValueError("No vectors to index")
    matrix = np.array(vectors, dtype=np.float64)
    if matrix.ndim != 2:
        raise ValueError("Embedding dimensions differ")
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms = np.where(norms == 0, 1, norms)
    return matrix / norms


def cosine_distances(index: np.ndarray, query: Sequence[float]) -> np.ndarray:
    """
    Cosine distance in 0..2 from the query to every row of a unit_rows() index.

    Raises:
        ValueError: If the query is a zero vector or its dimension differs
    """
    vector = np.asarray(query, dtype=np.float64)
    if vector.ndim != 1 or vector.shape[0] != index.shape[1]:
        raise ValueError(f"Embedding dimensions differ: {vector.shape[-1]} != {index.shape[1]}")
    norm = np.linalg.norm(vector)
    if norm == 0:
        raise ValueError("Cannot compare a zero vector")
    return 1.0 - index @ (vector / norm)

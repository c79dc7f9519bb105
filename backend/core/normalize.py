"""
Exercise name normalization.

normalize_exercise_name() is the single canonical key function: catalog
slugs are generated with it and exact lookups query with it, so identical
user intent always lands on the same slug.
"""

import pathlib
import re
import unicodedata
from functools import lru_cache

import yaml

ROOT = pathlib.Path(__file__).resolve().parents[2]
DICTIONARY_PATH = ROOT / "shared" / "dictionaries" / "normalization.yaml"

_SEPARATORS = re.compile(r"[-/'\s_]+")
_NON_SLUG_CHARS = re.compile(r"[^\w-]")
_REPEATED_DASH = re.compile(r"-{2,}")
_WORD = re.compile(r"[^\W_]+")


@lru_cache
def load_dictionary() -> dict:
    """Load abbreviation, stopword and plural tables from YAML."""
    data = yaml.safe_load(DICTIONARY_PATH.read_text(encoding="utf-8")) or {}
    return {
        "expand": data.get("expand") or {},
        "stopwords": frozenset(data.get("stopwords") or []),
        "plural_to_singular": data.get("plural_to_singular") or {},
    }


def fold(text: str) -> str:
    """Case-fold and strip diacritics, keeping letters of every script ("Café" -> "cafe")."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


@lru_cache
def _expansion_patterns() -> tuple[tuple[re.Pattern, str], ...]:
    expansions = load_dictionary()["expand"]
    # Longest keys first so "lat pulldown" wins over shorter overlaps
    ordered = sorted(expansions.items(), key=lambda kv: (-len(kv[0]), kv[0]))
    return tuple(
        (re.compile(rf"(?<!\w){re.escape(fold(str(key)))}(?!\w)"), str(value))
        for key, value in ordered
    )


def normalize_exercise_name(name: str) -> str:
    """
    Canonical slug form of an exercise name.

    Case-folds and strips diacritics, collapses runs of '-', '/', "'", '_'
    and whitespace into a single '-', then drops any other punctuation.
    Letters and digits of any script are kept.

    >>> normalize_exercise_name("Chin-Up")
    'chin-up'
    >>> normalize_exercise_name("  CHIN   up ")
    'chin-up'
    """
    slug = _SEPARATORS.sub("-", fold(name).strip())
    slug = _NON_SLUG_CHARS.sub("", slug)
    slug = _REPEATED_DASH.sub("-", slug)
    return slug.strip("-")


def expand_abbreviations(name: str) -> str:
    """Expand gym shorthand ("db", "rdl", "ohp") to full words, lowercased."""
    text = " ".join(fold(name).replace("_", " ").split())
    for pattern, replacement in _expansion_patterns():
        text = pattern.sub(replacement, text)
    return text


def _singular(word: str, plurals: dict) -> str:
    if word in plurals:
        return plurals[word]
    if len(word) > 3 and word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def search_tokens(name: str) -> list[str]:
    """
    Word tokens used for full-text matching.

    Abbreviations are expanded, stopwords dropped and plurals folded, so
    "DB Bench Presses" and "dumbbell bench press" tokenize identically.
    Order is preserved and duplicates removed.
    """
    dictionary = load_dictionary()
    stopwords = dictionary["stopwords"]
    plurals = dictionary["plural_to_singular"]

    tokens: list[str] = []
    for word in _WORD.findall(expand_abbreviations(name)):
        if word in stopwords:
            continue
        token = _singular(word, plurals)
        if token not in tokens:
            tokens.append(token)
    return tokens


def display_name(name: str) -> str:
    """Tidy a raw name for storage on a newly created exercise."""
    return " ".join(name.strip().split())

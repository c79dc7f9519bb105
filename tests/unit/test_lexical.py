import pytest

from backend.core.lexical import (
    cosine_distances,
    token_overlap,
    trigram_similarity,
    trigrams,
    unit_rows,
)


@pytest.mark.unit
class TestTrigrams:
    def test_short_word_is_padded(self):
        assert trigrams("chin") == {"  c", " ch", "chi", "hin", "in "}

    def test_case_insensitive(self):
        assert trigrams("Chin") == trigrams("CHIN")

    def test_punctuation_splits_words(self):
        assert trigrams("chin-up") == trigrams("chin up")

    def test_non_ascii_letters_are_word_characters(self):
        assert trigrams("жим") == {"  ж", " жи", "жим", "им "}


@pytest.mark.unit
class TestTrigramSimilarity:
    def test_identical(self):
        assert trigram_similarity("bench press", "Bench Press") == 1.0

    def test_short_query_overlaps_unrelated_name(self):
        """3 shared trigrams out of 20: below any useful threshold."""
        assert trigram_similarity("chin", "Ab Crunch Machine") == pytest.approx(0.15)

    def test_typo_scores_high(self):
        assert trigram_similarity("benchpress", "bench press") < 1.0
        assert trigram_similarity("bench pres", "bench press") > 0.6

    def test_empty(self):
        assert trigram_similarity("", "plank") == 0.0


@pytest.mark.unit
class TestTokenOverlap:
    def test_jaccard(self):
        assert token_overlap(["chin"], ["chin", "up"]) == 0.5

    def test_disjoint(self):
        assert token_overlap(["chin"], ["ab", "crunch", "machine"]) == 0.0

    def test_empty(self):
        assert token_overlap([], ["press"]) == 0.0


@pytest.mark.unit
class TestCosineDistances:
    def test_rows_are_unit_length(self):
        index = unit_rows([[3.0, 4.0], [0.0, 2.0]])
        assert index.tolist() == pytest.approx([[0.6, 0.8], [0.0, 1.0]])

    def test_distance_per_row(self):
        index = unit_rows([[1.0, 2.0], [0.0, 1.0], [-1.0, 0.0]])

        distances = cosine_distances(index, [2.0, 4.0])

        assert distances[0] == pytest.approx(0.0, abs=1e-9)
        assert distances[1] == pytest.approx(1.0 - 2.0 / 5 ** 0.5)
        assert distances[2] == pytest.approx(1.0 + 1.0 / 5 ** 0.5)

    def test_zero_row_is_orthogonal_to_everything(self):
        index = unit_rows([[0.0, 0.0]])
        assert cosine_distances(index, [1.0, 0.0])[0] == pytest.approx(1.0)

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError, match="dimensions"):
            cosine_distances(unit_rows([[1.0, 0.0]]), [1.0])

    def test_mixed_dimensions_rejected(self):
        with pytest.raises(ValueError):
            unit_rows([[1.0], [1.0, 0.0]])

    def test_zero_query(self):
        with pytest.raises(ValueError):
            cosine_distances(unit_rows([[1.0, 0.0]]), [0.0, 0.0])

    def test_empty_index(self):
        with pytest.raises(ValueError):
            unit_rows([])

import pytest

from backend.core.normalize import (
    display_name,
    expand_abbreviations,
    normalize_exercise_name,
    search_tokens,
)


@pytest.mark.unit
class TestNormalizeExerciseName:
    """Tests for the canonical slug function."""

    def test_separator_variants_share_a_slug(self):
        """Hyphen, space, underscore and slash all collapse to one dash."""
        variants = ["Chin-Up", "chin up", "CHIN UP", "chin_up", "chin/up", "  Chin -  Up  "]
        assert {normalize_exercise_name(v) for v in variants} == {"chin-up"}

    def test_punctuation_dropped(self):
        assert normalize_exercise_name("Bench Press!") == "bench-press"
        assert normalize_exercise_name("Squat (Barbell)") == "squat-barbell"

    def test_apostrophe_is_a_separator(self):
        assert normalize_exercise_name("Farmer's Walk") == "farmer-s-walk"

    def test_idempotent(self):
        for name in ["Close Grip Bench Press", "T-Bar Row", "a  b", "Farmer's Walk"]:
            once = normalize_exercise_name(name)
            assert normalize_exercise_name(once) == once

    def test_no_leading_or_trailing_dash(self):
        assert normalize_exercise_name("-- Plank --") == "plank"

    def test_empty_and_symbol_only(self):
        assert normalize_exercise_name("") == ""
        assert normalize_exercise_name("!!!") == ""

    def test_accents_folded(self):
        assert normalize_exercise_name("Café Curl") == "cafe-curl"
        assert normalize_exercise_name("Pec Déck Flye") == "pec-deck-flye"

    def test_non_latin_letters_kept(self):
        bench = normalize_exercise_name("Жим лёжа")
        squat = normalize_exercise_name("Приседания")
        assert bench == "жим-лежа"
        assert squat == "приседания"
        assert normalize_exercise_name("ЖИМ  ЛЕЖА") == bench

    def test_underscore_is_a_separator_not_a_letter(self):
        assert normalize_exercise_name("__plank__") == "plank"


@pytest.mark.unit
class TestExpandAbbreviations:
    """Tests for gym shorthand expansion."""

    def test_expand_abbreviations(self):
        """Test that abbreviations are expanded."""
        assert expand_abbreviations("db bench press") == "dumbbell bench press"
        assert expand_abbreviations("BB Row") == "barbell row"
        assert expand_abbreviations("KB swing") == "kettlebell swing"
        assert expand_abbreviations("RDL") == "romanian deadlift"

    def test_only_whole_words_expand(self):
        """'db' inside another word is left alone."""
        assert expand_abbreviations("dbl press") == "dbl press"

    def test_multi_word_key(self):
        assert expand_abbreviations("Lat Pulldown") == "lat pull down"

    def test_whitespace_collapsed(self):
        assert expand_abbreviations("  ohp   heavy ") == "overhead press heavy"


@pytest.mark.unit
class TestSearchTokens:
    """Tests for full-text tokenization."""

    def test_abbreviation_and_plural_fold_together(self):
        assert search_tokens("DB Bench Presses") == search_tokens("dumbbell bench press")
        assert search_tokens("dumbbell bench press") == ["dumbbell", "bench", "press"]

    def test_stopwords_removed(self):
        assert search_tokens("Press with the Barbell") == ["press", "barbell"]

    def test_generic_plural_rule(self):
        """Words without a table entry lose a trailing s, but not 'ss'."""
        assert search_tokens("Box Jumps") == ["box", "jump"]
        assert search_tokens("Press") == ["press"]

    def test_duplicates_removed(self):
        assert search_tokens("row row row") == ["row"]

    def test_hyphenated_words_split(self):
        assert search_tokens("Push-ups") == ["push", "up"]

    def test_non_latin_words_tokenized(self):
        assert search_tokens("Жим лёжа") == ["жим", "лежа"]


@pytest.mark.unit
def test_display_name_collapses_whitespace():
    assert display_name("  Zercher   Squat ") == "Zercher Squat"

import pytest

from convo_core.services.text_match import (
    best_match,
    normalize,
    phrase_coverage,
    similarity,
    squash_repeats,
    tokens,
)


class TestNormalize:
    def test_strips_diacritics_and_case(self):
        assert normalize("¿Cuánto CUESTA el Baño?") == "cuanto cuesta el bano"

    def test_punctuation_becomes_space(self):
        assert normalize("hola,mundo!!  ok") == "hola mundo ok"

    def test_empty_and_none(self):
        assert normalize("") == ""
        assert normalize(None) == ""

    @pytest.mark.parametrize(
        "text",
        ["Ñandú", "  multiple   spaces ", "ﬁnal", "16-30 lbs", "Crème brûlée!", "İstanbul", "a_b-c", "ß"],
    )
    def test_idempotent(self, text):
        once = normalize(text)
        assert normalize(once) == once


class TestSimilarity:
    def test_identical_sets(self):
        assert similarity("Hola mundo", "mundo hola") == 1.0

    def test_partial_overlap(self):
        assert similarity("precio bano", "precio corte") == pytest.approx(1 / 3)

    def test_empty_inputs(self):
        assert similarity("", "") == 0.0
        assert similarity("hola", None) == 0.0

    def test_duplicates_do_not_count_twice(self):
        assert tokens("hola hola hola") == {"hola"}
        assert similarity("hola hola", "hola") == 1.0


class TestBestMatch:
    def test_returns_highest_above_threshold(self):
        match = best_match("precio del bano", ["horario", "precio bano", "precio"], 0.3)
        assert match is not None
        assert match.candidate == "precio bano"
        assert match.index == 1

    def test_tie_keeps_first_candidate(self):
        match = best_match("a b", ["a c", "b d"], 0.1)
        assert match.candidate == "a c"
        assert match.index == 0

    def test_threshold_is_strict(self):
        assert best_match("a b", ["a c"], 1 / 3) is None

    @pytest.mark.parametrize("threshold", [0.0, 0.2, 0.34, 0.5, 0.99, 1.0])
    def test_null_iff_every_candidate_at_or_below_threshold(self, threshold):
        text = "quiero precio del bano"
        candidates = ["precio bano", "horario", "quiero precio", "bano"]
        match = best_match(text, candidates, threshold)
        all_below = all(similarity(text, c) <= threshold for c in candidates)
        assert (match is None) == all_below

    def test_empty_candidates(self):
        assert best_match("hola", [], 0.0) is None


class TestPhraseCoverage:
    def test_ignores_stopwords_in_pattern(self):
        assert phrase_coverage("precio bano hoy", "el precio del bano") == 1.0

    def test_never_below_similarity(self):
        assert phrase_coverage("hola", "hola") >= similarity("hola", "hola")

    def test_stopword_only_pattern(self):
        assert phrase_coverage("como estas", "como") == 1.0


def test_squash_repeats():
    assert squash_repeats("preciiiooos") == "precios"
    assert squash_repeats("2000") == "2000"

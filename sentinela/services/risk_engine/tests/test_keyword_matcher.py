"""Tests for KeywordMatcher.

The matcher is pure: same text and rules, same output.
"""
import pytest

from sentinela.shared.models import KeywordRule, SymptomCategory
from sentinela.services.risk_engine.keyword_matcher import KeywordMatcher, normalize_text


def rule(phrase, weight=3, category=SymptomCategory.ANXIETY, scope="inst_001"):
    return KeywordRule(symptom_category=category, phrase=phrase, weight=weight, scope=scope)


@pytest.fixture
def matcher():
    return KeywordMatcher()


class TestNormalizeText:

    def test_lowercases_and_collapses_whitespace(self):
        assert normalize_text("  Me   SIENTO\tmal \n") == "me siento mal"


class TestDirectMatch:
    """Case-insensitive substring containment."""

    def test_single_keyword_detected(self, matcher):
        result = matcher.match("ya no aguanto, me quiero suicidar", [rule("suicidar", weight=5)])

        assert result.keyword_count == 1
        detected = result.detected_keywords[0]
        assert detected.phrase == "suicidar"
        assert detected.weight == 5
        assert detected.exact_match is True

    def test_case_insensitive(self, matcher):
        result = matcher.match("Me siento muy ESTRESADO hoy", [rule("estresado")])
        assert result.has_hits

    def test_no_hits_for_unrelated_text(self, matcher):
        result = matcher.match("hola, ¿cómo estás?", [rule("ansiedad"), rule("pánico")])

        assert result.has_hits is False
        assert result.total_weight == 0
        assert result.detected_keywords == ()

    def test_empty_catalog(self, matcher):
        result = matcher.match("me quiero suicidar", [])
        assert result.has_hits is False

    def test_substring_inside_longer_word(self, matcher):
        """Containment is substring based, not whole-word."""
        result = matcher.match("pienso en el suicidio", [rule("suicid", weight=5)])
        assert result.has_hits


class TestMultiWordMatch:
    """Multi-word phrases tolerate reordering and insertions."""

    def test_all_words_present_in_other_order(self, matcher):
        result = matcher.match(
            "tuve un ataque muy fuerte de panico",
            [rule("ataque de panico", weight=4)],
        )

        assert result.keyword_count == 1
        assert result.detected_keywords[0].phrase == "ataque de panico"
        assert result.detected_keywords[0].exact_match is False

    def test_missing_word_is_no_match(self, matcher):
        result = matcher.match("tuve un ataque de tos", [rule("ataque de panico")])
        assert result.has_hits is False

    def test_contiguous_phrase_is_exact(self, matcher):
        result = matcher.match("creo que tuve un ataque de panico", [rule("ataque de panico")])
        assert result.detected_keywords[0].exact_match is True


class TestSingularRetry:
    """One trailing "s" is stripped when the plural is absent."""

    def test_plural_rule_matches_singular_text(self, matcher):
        result = matcher.match("anoche tuve un ataque", [rule("ataques")])

        assert result.keyword_count == 1
        assert result.detected_keywords[0].exact_match is False

    def test_short_stem_is_not_retried(self, matcher):
        """"mas" -> "ma" is too short to be meaningful."""
        result = matcher.match("hablé con mi mamá", [rule("mas")])
        assert result.has_hits is False

    def test_naive_singular(self):
        assert KeywordMatcher.naive_singular("crisis") == "crisi"
        assert KeywordMatcher.naive_singular("miedo") == "miedo"


class TestContextWindow:

    def test_window_covers_five_words_each_side(self, matcher):
        words = [f"w{i}" for i in range(20)]
        words[10] = "angustia"

        result = matcher.match(" ".join(words), [rule("angustia")])

        context = result.detected_keywords[0].context_window
        assert context == tuple(words[5:16])

    def test_window_clipped_at_message_start(self, matcher):
        result = matcher.match("ya no aguanto, me quiero suicidar", [rule("suicidar", weight=5)])

        assert result.detected_keywords[0].context_window == (
            "ya", "no", "aguanto,", "me", "quiero", "suicidar",
        )

    def test_window_keeps_original_casing(self, matcher):
        result = matcher.match("Tengo MUCHA Ansiedad", [rule("ansiedad")])
        assert result.detected_keywords[0].context == "Tengo MUCHA Ansiedad"

    def test_match_inside_word_anchors_on_that_word(self):
        matcher = KeywordMatcher(context_window_words=0)

        result = matcher.match("tengo depresion hoy", [rule("presion")])

        assert result.detected_keywords[0].context_window == ("depresion",)

    def test_multi_word_anchors_on_first_word(self):
        matcher = KeywordMatcher(context_window_words=1)

        result = matcher.match("uno dos ataque tres de cuatro panico", [rule("ataque de panico")])

        assert result.detected_keywords[0].context_window == ("dos", "ataque", "tres")


class TestOrdering:

    def test_sorted_by_weight_then_phrase(self, matcher):
        rules = [
            rule("tristeza", weight=2),
            rule("suicidar", weight=5),
            rule("ansiedad", weight=3),
            rule("angustia", weight=3),
        ]

        result = matcher.match(
            "tristeza, ansiedad y angustia, me quiero suicidar",
            rules,
        )

        assert [kw.phrase for kw in result.detected_keywords] == [
            "suicidar", "angustia", "ansiedad", "tristeza",
        ]
        assert result.total_weight == 13
        assert result.weights() == [5, 3, 3, 2]

    def test_same_phrase_ordered_by_category(self, matcher):
        rules = [
            rule("nervios", weight=3, category=SymptomCategory.STRESS),
            rule("nervios", weight=3, category=SymptomCategory.ANXIETY),
        ]

        result = matcher.match("tengo muchos nervios", rules)

        assert [kw.symptom_category for kw in result.detected_keywords] == [
            SymptomCategory.ANXIETY, SymptomCategory.STRESS,
        ]

    def test_deterministic(self, matcher):
        rules = [rule("ansiedad", 3), rule("miedo", 2), rule("morir", 5)]
        text = "tengo miedo y ansiedad, a veces pienso en morir"

        assert matcher.match(text, rules) == matcher.match(text, list(reversed(rules)))

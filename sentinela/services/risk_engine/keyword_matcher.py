"""Local keyword matcher - stage 1 of the hybrid pipeline.

Scans text for the expert catalog's phrases:
1. Direct case-insensitive substring containment
2. Multi-word phrases: every word present, in any order
3. Naive singular retry (one trailing "s" stripped)

Pure and deterministic - identical text and rules give identical output.
"""
import logging
from typing import Iterable, List, Optional, Tuple

from sentinela.shared.models import DetectedKeyword, KeywordMatchResult, KeywordRule

logger = logging.getLogger(__name__)


def normalize_text(text: str) -> str:
    """Lowercase and collapse whitespace."""
    return " ".join(text.lower().split())


class KeywordMatcher:
    """Matches catalog rules against a message."""

    def __init__(self, context_window_words: int = 5, min_singular_length: int = 3):
        """Initialize matcher.

        Args:
            context_window_words: Words kept on each side of a hit
            min_singular_length: Shortest stem the singular retry may use
        """
        self.context_window_words = context_window_words
        self.min_singular_length = min_singular_length

    def match(self, text: str, rules: Iterable[KeywordRule]) -> KeywordMatchResult:
        """Find every rule whose phrase occurs in text.

        Args:
            text: Raw message text
            rules: Active rules of one scope

        Returns:
            KeywordMatchResult sorted by weight (desc), phrase, category
        """
        normalized = normalize_text(text)
        tokens = text.split()
        detected: List[DetectedKeyword] = []

        for rule in rules:
            found = self.find_phrase(normalized, rule.phrase)
            if found is None:
                continue

            needle, exact = found
            detected.append(DetectedKeyword(
                phrase=rule.phrase,
                symptom_category=rule.symptom_category,
                weight=rule.weight,
                context_window=self.extract_context(normalized, tokens, needle),
                exact_match=exact,
            ))

        detected.sort(key=lambda kw: (-kw.weight, kw.phrase, kw.symptom_category.value))
        total_weight = sum(kw.weight for kw in detected)

        logger.debug(
            "KEYWORD_MATCH_COMPLETED",
            extra={
                "keywords_detected": len(detected),
                "total_weight": total_weight,
            }
        )

        return KeywordMatchResult(
            detected_keywords=tuple(detected),
            total_weight=total_weight,
        )

    def find_phrase(self, normalized_text: str, phrase: str) -> Optional[Tuple[str, bool]]:
        """Locate a phrase in normalized text.

        Returns:
            (needle used to anchor the context window, exact_match) or None
        """
        if phrase in normalized_text:
            return phrase, True

        words = phrase.split()
        if len(words) > 1 and all(word in normalized_text for word in words):
            return words[0], False

        singular = self.naive_singular(phrase)
        if singular != phrase and len(singular) >= self.min_singular_length:
            if singular in normalized_text:
                return singular, False

        return None

    @staticmethod
    def naive_singular(phrase: str) -> str:
        """Strip one trailing "s" ("ataques" -> "ataque")."""
        return phrase[:-1] if phrase.endswith("s") else phrase

    def extract_context(
        self,
        normalized_text: str,
        tokens: List[str],
        needle: str,
    ) -> Tuple[str, ...]:
        """Words around the first occurrence of needle.

        Word-tokenized, not character based. Tokens keep the original
        casing of the message.
        """
        position = normalized_text.find(needle)
        if position < 0 or not tokens:
            return ()

        index = len(normalized_text[:position].split())
        # The needle started inside a word: that word is the anchor
        if position > 0 and normalized_text[position - 1] != " ":
            index -= 1
        index = max(0, min(index, len(tokens) - 1))

        start = max(0, index - self.context_window_words)
        end = min(len(tokens), index + self.context_window_words + 1)
        return tuple(tokens[start:end])

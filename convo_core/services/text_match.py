"""Text normalization and token-set similarity shared by every matcher."""

import re
import unicodedata
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

STOPWORDS = frozenset(
    {
        # es
        "el", "la", "los", "las", "un", "una", "unos", "unas", "de", "del", "al", "a", "que", "y", "o",
        "es", "son", "soy", "eres", "esta", "estan", "como", "cual", "cuales", "donde", "quien",
        "cuando", "por", "para", "con", "mi", "tu", "su", "sus", "lo", "en", "cuanto",
        # en
        "the", "an", "of", "to", "in", "on", "for", "and", "or", "is", "are", "am", "be", "i", "you",
        "we", "they", "how", "much",
    }
)

_NON_WORD = re.compile(r"[\W_]+")
_REPEATS = re.compile(r"([^\W\d_])\1+")


def _strip_marks(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize(text: Optional[str]) -> str:
    """Lowercase, drop diacritics, turn punctuation into spaces, collapse whitespace."""
    if not text:
        return ""
    folded = _strip_marks(_strip_marks(text).casefold())
    return " ".join(_NON_WORD.sub(" ", folded).split())


def squash_repeats(text: str) -> str:
    """Collapse repeated letters: "preciiios" -> "precios"."""
    return _REPEATS.sub(r"\1", text or "")


def tokens(text: Optional[str]) -> set[str]:
    normalized = normalize(text)
    return set(normalized.split()) if normalized else set()


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """Token-set Jaccard over normalized text, in [0, 1]."""
    left = tokens(a)
    right = tokens(b)
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)


def phrase_coverage(text: Optional[str], pattern: Optional[str]) -> float:
    """Share of the pattern's content tokens found in text.

    Stopwords are ignored unless the pattern is made only of stopwords. Never lower
    than similarity(text, pattern).
    """
    text_tokens = tokens(text)
    pattern_tokens = tokens(pattern)
    if not pattern_tokens or not text_tokens:
        return 0.0
    content = pattern_tokens - STOPWORDS or pattern_tokens
    hits = len(content & text_tokens)
    return max(hits / len(content), similarity(text, pattern))


@dataclass(frozen=True)
class Match:
    candidate: str
    score: float
    index: int


def best_match(
    text: Optional[str],
    candidates: Sequence[str],
    threshold: float,
    scorer: Callable[[Optional[str], Optional[str]], float] = similarity,
) -> Optional[Match]:
    """Highest-scoring candidate strictly above threshold; ties keep the earliest one."""
    best: Optional[Match] = None
    for index, candidate in enumerate(candidates or []):
        score = scorer(text, candidate)
        if score <= threshold:
            continue
        if best is None or score > best.score:
            best = Match(candidate=candidate, score=score, index=index)
    return best

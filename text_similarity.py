"""Lightweight lexical similarity helpers shared by the lookup and linking stages."""

from __future__ import annotations

import re

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_SUFFIX_RE = re.compile(r"(?:ing|ed|s|ly|tion|ment|ness)$")
_IES_RE = re.compile(r"ies$")

STOP_WORDS: frozenset[str] = frozenset({
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "into", "through", "during", "before",
    "after", "above", "below", "between", "under", "is", "are", "was", "were",
    "be", "been", "being", "have", "has", "had", "do", "does", "did", "will",
    "would", "could", "should", "may", "might", "must", "shall", "can", "need",
    "this", "that", "these", "those", "it", "its", "their", "our", "your",
    "vs", "using", "based",
})


def normalize_text(text: str | None) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    if not text:
        return ""
    lowered = _NON_ALNUM_RE.sub("", text.lower())
    return _WHITESPACE_RE.sub(" ", lowered).strip()


def stem(word: str) -> str:
    """Strip one common English suffix; ``studies`` -> ``study``."""
    if _IES_RE.search(word):
        return _IES_RE.sub("y", word)
    return _SUFFIX_RE.sub("", word)


def extract_keywords(text: str | None) -> list[str]:
    """Stop-word filtered, stemmed words longer than two characters, in order."""
    return [
        stem(word)
        for word in normalize_text(text).split(" ")
        if len(word) > 2 and word not in STOP_WORDS
    ]


def keyword_overlap(query: str | None, text: str | None) -> tuple[int, float]:
    """Return (matches, fraction) of the query's keywords found in ``text``."""
    query_keywords = extract_keywords(query)
    if not query_keywords:
        return 0, 0.0
    available = set(extract_keywords(text))
    matches = sum(1 for keyword in query_keywords if keyword in available)
    return matches, matches / len(query_keywords)


def jaccard_similarity(a: str | None, b: str | None) -> float:
    words_a = set(extract_keywords(a))
    words_b = set(extract_keywords(b))
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


def title_overlap(a: str | None, b: str | None) -> float:
    """Shared 4+ character words over the smaller word set.

    Used to reject external lookup hits whose title has little to do with the
    query title.
    """
    if not a or not b:
        return 0.0

    def words(text: str) -> set[str]:
        return {stem(w) for w in normalize_text(text).split(" ") if len(w) > 3}

    words_a = words(a)
    words_b = words(b)
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / min(len(words_a), len(words_b))


def author_surname(author: str | None) -> str:
    """Normalised first surname token of an author string such as ``Rowe, J``."""
    if not author:
        return ""
    head = author.strip().split(" ")[0].split(",")[0]
    return normalize_text(head)

"""Canonical ``Year_Author_Journal_Title`` filenames from merged metadata."""

from __future__ import annotations

import re

from journals import FILENAME_REPLACEMENTS
from models import BibMetadata

MAX_TITLE_LENGTH = 50
MIN_WORD_BOUNDARY = 30
UNKNOWN_FIELD = "Unknown"
UNTITLED = "Untitled"

MINOR_WORDS: frozenset[str] = frozenset({
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "into", "through", "during", "before",
    "after", "above", "below", "between", "under", "vs", "vs.",
})

_NEEDS_SPLIT_RE = re.compile(r"[a-z][A-Z]|[A-Z][A-Z][a-z]")
_LOWER_UPPER_RE = re.compile(r"([a-z])([A-Z])")
_ACRONYM_WORD_RE = re.compile(r"([A-Z]+)([A-Z][a-z])")

# Prepositions that come out glued to the preceding word after a camel split,
# e.g. "AdvancesinManagement" -> "Advancesin Management".
_STUCK_PREPOSITIONS: tuple[str, ...] = ("in", "of", "and", "the", "for", "with")


def _split_token(token: str) -> str:
    split = _ACRONYM_WORD_RE.sub(r"\1 \2", _LOWER_UPPER_RE.sub(r"\1 \2", token))
    for prep in _STUCK_PREPOSITIONS:
        split = re.sub(rf"(\w+){prep} (?=[A-Z])", rf"\1 {prep} ", split)
    return split


def split_camel_case(text: str) -> str:
    """Split camel-cased tokens into words.

    Only tokens that actually contain a case transition are touched, so text
    that is already space separated passes through unchanged.
    """
    return " ".join(
        _split_token(token) if _NEEDS_SPLIT_RE.search(token) else token
        for token in text.split(" ")
    )


def replace_unsafe_characters(text: str) -> str:
    for char, replacement in FILENAME_REPLACEMENTS.items():
        text = text.replace(char, replacement)
    return text


def to_title_case(text: str) -> str:
    words = text.split(" ")
    titled: list[str] = []
    for index, word in enumerate(words):
        if not word:
            titled.append(word)
            continue
        lower = word.lower()
        if index == 0 or lower not in MINOR_WORDS:
            titled.append(word[0].upper() + word[1:].lower())
        else:
            titled.append(lower)
    return " ".join(titled)


def truncate_title(title: str, max_length: int = MAX_TITLE_LENGTH) -> str:
    """Cut at the last space before ``max_length`` when that space is past 30."""
    if len(title) <= max_length:
        return title
    cut = title[:max_length]
    last_space = cut.rfind(" ")
    if last_space > MIN_WORD_BOUNDARY:
        cut = cut[:last_space]
    return cut.rstrip()


def _clean_field(value: str | None) -> str:
    if not value:
        return ""
    cleaned = replace_unsafe_characters(value)
    return re.sub(r"\s+", " ", cleaned).strip()


def generate_filename(
    author: str | None,
    year: int | None,
    journal: str | None,
    title: str | None,
) -> str:
    """Build the canonical name, without extension; callers append it."""
    year_part = str(year) if year else UNKNOWN_FIELD
    author_part = _clean_field(author) or UNKNOWN_FIELD
    journal_part = _clean_field(journal) or UNKNOWN_FIELD

    title_part = split_camel_case(title or UNTITLED)
    title_part = _clean_field(title_part) or UNTITLED
    title_part = truncate_title(to_title_case(title_part))

    return f"{year_part}_{author_part}_{journal_part}_{title_part}"


def generate_from_metadata(metadata: BibMetadata) -> str:
    return generate_filename(metadata.author, metadata.year, metadata.journal, metadata.title)

"""Source-priority merge of metadata records and completeness scoring."""

from __future__ import annotations

import re

from models import BibMetadata, ConfidenceLevel, ConfidenceScore

FIELD_WEIGHT = 0.25
MIN_SCORED_TITLE_LENGTH = 10
HIGH_CONFIDENCE_ABOVE = 0.7
MEDIUM_CONFIDENCE_FROM = 0.4

_PLAIN_NAME_RE = re.compile(r"^[A-Z][a-z]+$")
_NUMERIC_RE = re.compile(r"^\d+$")


def is_valid_author(author: str | None) -> bool:
    return bool(author) and bool(_PLAIN_NAME_RE.match(author))


def is_valid_title(title: str | None) -> bool:
    return bool(title) and len(title) > 5 and not _NUMERIC_RE.match(title)


def _first(*values):
    for value in values:
        if value:
            return value
    return None


def merge_metadata(
    filename_md: BibMetadata,
    content_md: BibMetadata,
    lookup_md: BibMetadata | None = None,
) -> BibMetadata:
    """Merge per field in the order lookup, valid filename, content, filename.

    Filename years and journals were already validated by the parser, so for
    those two fields the filename simply outranks content. The result depends
    only on the inputs; nothing is carried over between documents.
    """
    lookup = lookup_md or BibMetadata(source="lookup")

    author = _first(
        lookup.author,
        filename_md.author if is_valid_author(filename_md.author) else None,
        content_md.author,
        filename_md.author,
    )
    title = _first(
        lookup.title,
        filename_md.title if is_valid_title(filename_md.title) else None,
        content_md.title,
        filename_md.title,
    )
    year = _first(lookup.year, filename_md.year, content_md.year)
    journal = _first(lookup.journal, filename_md.journal, content_md.journal)

    return BibMetadata(author=author, year=year, journal=journal, title=title, source="merged")


def fill_missing(metadata: BibMetadata, extra: BibMetadata) -> BibMetadata:
    """Fill only the fields ``metadata`` lacks from a lower-priority record."""
    return BibMetadata(
        author=metadata.author or extra.author,
        year=metadata.year or extra.year,
        journal=metadata.journal or extra.journal,
        title=metadata.title or extra.title,
        source=metadata.source,
    )


def confidence_level(score: float) -> ConfidenceLevel:
    if score > HIGH_CONFIDENCE_ABOVE:
        return ConfidenceLevel.HIGH
    if score >= MEDIUM_CONFIDENCE_FROM:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def score_confidence(metadata: BibMetadata) -> ConfidenceScore:
    """Score extraction completeness, not correctness.

    Each of author, year and journal adds 0.25 when present; the title adds
    0.25 when it is longer than ten characters.
    """
    score = 0.0
    if metadata.author:
        score += FIELD_WEIGHT
    if metadata.year:
        score += FIELD_WEIGHT
    if metadata.journal:
        score += FIELD_WEIGHT
    if metadata.title and len(metadata.title) > MIN_SCORED_TITLE_LENGTH:
        score += FIELD_WEIGHT
    return ConfidenceScore(score=score, level=confidence_level(score))

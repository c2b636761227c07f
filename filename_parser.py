"""Decode (author, year, journal, title) from a library filename alone."""

from __future__ import annotations

import re

from journals import canonical_filename_journal, find_journal_token
from models import BibMetadata

MIN_FILENAME_YEAR = 1900
MAX_FILENAME_YEAR = 2100

_EXTENSION_RE = re.compile(r"\.(?:pdf|docx?|pptx?|txt)$", re.IGNORECASE)
_DOWNLOAD_NUMBER_RE = re.compile(r"\.\d+$")
_DOWNLOAD_COPY_RE = re.compile(r"\s*\(\d+\)$")
_AUTHOR_SHAPE_RE = re.compile(r"^[A-Z][a-z]+$")
_YEAR_TOKEN_RE = re.compile(r"^\d{4}$")

# "2001 - Rowe et al - JAAOS - DISH"
_DASH_FORM_RE = re.compile(
    r"^(\d{4})\s*-\s*([^-]+?)\s*(?:et\s*al\.?)?\s*-\s*([A-Za-z]+)\s*-\s*(.+)$",
    re.IGNORECASE,
)

# Capitalised words that open titles often enough to be mistaken for surnames.
INVALID_AUTHOR_WORDS: frozenset[str] = frozenset({
    # anatomy
    "valgus", "varus", "femoral", "tibial", "humeral", "radial", "ulnar",
    "distal", "proximal", "anterior", "posterior", "medial", "lateral",
    "periprosthetic", "intertrochanteric", "supracondylar", "subtrochanteric",
    # clinical descriptors
    "acute", "chronic", "surgical", "clinical", "primary", "revision",
    "total", "partial", "open", "closed", "stable", "unstable",
    # common title openers
    "the", "a", "an", "new", "novel", "modern", "current", "recent",
    "very", "early", "late", "long", "short", "high", "low",
    # procedures / conditions
    "fracture", "fractures", "osteotomy", "arthroplasty", "arthroscopy",
    "reconstruction", "repair", "fixation", "replacement", "fusion",
    # comparison words
    "comparison", "versus", "evaluation", "analysis", "review", "outcomes",
})


def strip_extension(filename: str) -> str:
    return _EXTENSION_RE.sub("", filename)


def strip_download_suffix(name: str) -> str:
    """Drop browser download artefacts such as ``.98043`` or `` (1)``."""
    return _DOWNLOAD_COPY_RE.sub("", _DOWNLOAD_NUMBER_RE.sub("", name))


def is_valid_author_name(name: str | None) -> bool:
    if not name or len(name) < 2:
        return False
    if not _AUTHOR_SHAPE_RE.match(name):
        return False
    return name.lower() not in INVALID_AUTHOR_WORDS


def _parse_year(token: str) -> int | None:
    token = token.strip()
    if not _YEAR_TOKEN_RE.match(token):
        return None
    year = int(token)
    if MIN_FILENAME_YEAR <= year <= MAX_FILENAME_YEAR:
        return year
    return None


def _as_title(name: str) -> str:
    return re.sub(r"\s+", " ", name.replace("_", " ")).strip()


def _split_author_year(first: str, second: str) -> tuple[str, int] | None:
    """Accept ``Year_Author`` or ``Author_Year`` ordering of two segments."""
    year = _parse_year(first)
    author = second.strip()
    if year is None:
        year = _parse_year(second)
        author = first.strip()
    if year is None or not is_valid_author_name(author):
        return None
    return author, year


def parse_filename(filename: str) -> BibMetadata:
    """Parse a filename into filename-provenance metadata.

    Strategies run in order and the first structural match wins: the dash
    form, the underscore form with four or more segments, the short
    underscore form, and a bare title. A known journal token anywhere in the
    name is used when no strategy produced one, except for long underscore
    names that failed validation, which stay title-only.
    """
    name = strip_download_suffix(strip_extension(filename.strip()))

    dash = _DASH_FORM_RE.match(name)
    if dash:
        year = _parse_year(dash.group(1))
        author_head = re.match(r"^([A-Z][a-z]+)", dash.group(2).strip())
        author = author_head.group(1) if author_head and is_valid_author_name(author_head.group(1)) else None
        journal = canonical_filename_journal(dash.group(3))
        return BibMetadata(
            author=author,
            year=year,
            journal=journal,
            title=dash.group(4).strip(),
        )

    author: str | None = None
    year: int | None = None
    journal: str | None = None
    title: str | None

    parts = name.split("_")
    if len(parts) >= 4:
        pair = _split_author_year(parts[0], parts[1])
        journal = canonical_filename_journal(parts[2])
        if pair is not None and journal is not None:
            author, year = pair
            title = _as_title(" ".join(parts[3:])) or None
            return BibMetadata(author=author, year=year, journal=journal, title=title)
        return BibMetadata(title=_as_title(name) or None)

    if len(parts) >= 2:
        pair = _split_author_year(parts[0], parts[1])
        if pair is not None:
            author, year = pair
            title = _as_title(" ".join(parts[2:]).replace("-", " ")) or None
        else:
            title = _as_title(name) or None
    else:
        title = re.sub(r"\s+", " ", name.replace("-", " ")).strip() or None

    journal = find_journal_token(name)
    return BibMetadata(author=author, year=year, journal=journal, title=title)

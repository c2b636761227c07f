"""Heuristic author / year / journal / title extraction from article text.

Each extractor returns None when it finds nothing; none of them raise on odd
input. Only ``extract_pdf_text`` touches the filesystem, and it converts read
failures into an error preview so a batch never stops on one bad file.
"""

from __future__ import annotations

import logging
import os
import re
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import pypdf

from journals import AUTHOR_SUFFIXES, find_journal_in_text
from models import BibMetadata

LOGGER = logging.getLogger(__name__)
logging.getLogger("pypdf").setLevel(logging.ERROR)

EXTRACTION_WORKERS = int(os.getenv("EXTRACTION_WORKERS", "4"))
MAX_PAGES = 2
PREVIEW_LENGTH = 500
AUTHOR_SCAN_LINES = 80
TITLE_SCAN_LINES = 40
YEAR_SCAN_CHARS = 2000
JOURNAL_HEAD_CHARS = 6000
JOURNAL_TAIL_CHARS = 2500
MIN_CONTENT_YEAR = 1950

# Words that look like names on a title page but are headings, anatomy,
# institutions or places.
AUTHOR_SKIP_WORDS: frozenset[str] = frozenset({
    "abstract", "introduction", "background", "methods", "results", "discussion",
    "conclusion", "review", "article", "etiology", "overview", "summary",
    "clinical", "surgical", "management", "treatment", "diagnosis", "outcome",
    "evaluation", "comparison", "analysis", "reconstruction", "arthroplasty",
    "fracture", "injury", "technique", "posttraumatic", "combined",
    "shoulder", "elbow", "knee", "hip", "spine", "femoral", "valgus", "varus",
    "latissimus", "dorsi", "tendon", "ligament", "muscle", "bone", "joint",
    "distal", "proximal", "anterior", "posterior", "medial", "lateral",
    "orthopaedics", "orthopedics", "orthopaedic", "orthopedic",
    "university", "hospital", "center", "centre", "institute", "department",
    "permanente", "midlands", "association", "academy", "society", "college",
    "unit", "care", "health", "medical", "medicine", "surgery", "sciences",
    "ontario", "california", "boston", "london", "chicago", "mayo", "cleveland",
    "structure", "composition", "function", "basic", "science", "current",
    "update", "advances", "modern", "contemporary", "comprehensive", "guide",
})

_INSTITUTION_HINTS: tuple[str, ...] = ("department", "university", "hospital", "school of medicine")

_CREDENTIAL_NAME_RE = re.compile(
    r"([A-Z][a-z]+\s+(?:[A-Z]\.?\s+)?[A-Z][a-z]{2,})"
    r"(?:,?\s*(?:MD|M\.D\.|PhD|Ph\.D\.|DO|D\.O\.|FRCS|FACS))"
)
_LAST_FIRST_RE = re.compile(r"^([A-Z][a-z]{2,}),\s+[A-Z][a-z]+")
_NAME_LINE_RE = re.compile(r"^([A-Z][a-z]+\s+(?:[A-Z]\.?\s+)?[A-Z][a-z]{2,})\s*\*?\s*$")
_ET_AL_RE = re.compile(r"\s*et\s*al\.?\s*$", re.IGNORECASE)

_YEAR_MARKER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:©|copyright|\(c\))\s*(\d{4})", re.IGNORECASE),
    re.compile(r"(?:published|received|accepted)\s*:?\s*(?:\w+\s+)?(\d{4})", re.IGNORECASE),
    re.compile(
        r"(?:volume|vol\.?)\s*\d+[A-Za-z-]*\s*,?\s*(?:no\.?|issue)\s*\d+\s*,?\s*\w*\s*(\d{4})",
        re.IGNORECASE,
    ),
)
_YEAR_TOKEN_RE = re.compile(r"\b(19[5-9]\d|20\d\d)\b")

_TITLE_SKIP_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^(?:abstract|introduction|background|methods|results|conclusion)", re.IGNORECASE),
    re.compile(r"^(?:copyright|volume|issue|received|accepted|published|doi)", re.IGNORECASE),
    re.compile(r"^(?:see discussions|researchgate|downloaded from|available at)", re.IGNORECASE),
    re.compile(r"^(?:https?://|www\.)", re.IGNORECASE),
    re.compile(r"^(?:review article|original article|case report|editorial)", re.IGNORECASE),
    re.compile(r"^\d+\s*$"),
    re.compile(r"^page\s+\d+", re.IGNORECASE),
    re.compile(r"citation", re.IGNORECASE),
    re.compile(r"author\s+profiles?", re.IGNORECASE),
)
_AUTHOR_LINE_RE = re.compile(r"(?:MD|PhD|DO|FRCS|,\s*[A-Z]{2,3}$)")


@dataclass(frozen=True, slots=True)
class TextExtraction:
    text: str
    preview: str

    @property
    def failed(self) -> bool:
        return self.preview.startswith("Error extracting PDF:")


def extract_pdf_text(path: Path | str, max_pages: int = MAX_PAGES) -> TextExtraction:
    """Read the first ``max_pages`` pages of a PDF.

    Any failure (missing file, encrypted or corrupt PDF) yields empty text and
    an ``Error extracting PDF: ...`` preview instead of an exception.
    """
    try:
        reader = pypdf.PdfReader(str(path))
        pages = [page.extract_text() or "" for page in reader.pages[:max_pages]]
    except Exception as exc:  # pypdf raises a wide range of errors on damaged files
        LOGGER.warning("Text extraction failed for %s: %s", path, exc)
        return TextExtraction(text="", preview=f"Error extracting PDF: {exc}")

    text = "\n".join(pages)
    preview = re.sub(r"\n+", " ", text[:PREVIEW_LENGTH]).strip()
    return TextExtraction(text=text, preview=preview)


def extract_many(paths: list[Path], workers: int = EXTRACTION_WORKERS) -> list[TextExtraction]:
    """Extract text from many files on a bounded pool; output keeps input order."""
    if not paths:
        return []
    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        return list(executor.map(extract_pdf_text, paths))


def clean_author_name(name: str) -> str:
    """Strip "et al" and credential suffixes, then keep the surname."""
    cleaned = _ET_AL_RE.sub("", name.strip()).strip()
    for suffix in AUTHOR_SUFFIXES:
        if cleaned.endswith(suffix):
            cleaned = cleaned[: -len(suffix)]
    parts = cleaned.split()
    if len(parts) > 1:
        return parts[-1]
    return cleaned


def _accept_author(name: str) -> bool:
    return len(name) >= 3 and name.lower() not in AUTHOR_SKIP_WORDS


def extract_author(text: str) -> str | None:
    lines = text.split("\n")[:AUTHOR_SCAN_LINES]

    for index, raw in enumerate(lines):
        line = raw.strip()
        if len(line) < 5 or len(line) > 200:
            continue
        if len(line) > 80 and "," not in line:
            continue

        credential = _CREDENTIAL_NAME_RE.search(line)
        if credential:
            name = clean_author_name(credential.group(1))
            if _accept_author(name):
                return name

        last_first = _LAST_FIRST_RE.match(line)
        if last_first:
            name = last_first.group(1)
            if _accept_author(name):
                return name

        if index + 1 < len(lines):
            next_line = lines[index + 1].lower()
            if any(hint in next_line for hint in _INSTITUTION_HINTS):
                name_line = _NAME_LINE_RE.match(line)
                if name_line:
                    name = clean_author_name(name_line.group(1))
                    if _accept_author(name):
                        return name

    return None


def extract_year(text: str, current_year: int | None = None) -> int | None:
    """Explicit publication markers first, then the most frequent year token."""
    latest = current_year or datetime.now(UTC).year

    for pattern in _YEAR_MARKER_PATTERNS:
        match = pattern.search(text)
        if match:
            year = int(match.group(1))
            if MIN_CONTENT_YEAR <= year <= latest:
                return year

    candidates = [
        int(token)
        for token in _YEAR_TOKEN_RE.findall(text[:YEAR_SCAN_CHARS])
        if int(token) <= latest
    ]
    if not candidates:
        return None
    # most_common keeps first-seen order among equal counts
    return Counter(candidates).most_common(1)[0][0]


def extract_journal(text: str) -> str | None:
    if not text:
        return None
    search_text = f"{text[:JOURNAL_HEAD_CHARS]} {text[-JOURNAL_TAIL_CHARS:]}".lower()
    return find_journal_in_text(search_text)


def _is_metadata_line(line: str) -> bool:
    return any(pattern.search(line) for pattern in _TITLE_SKIP_PATTERNS)


def extract_title(text: str) -> str | None:
    for raw in text.split("\n")[:TITLE_SCAN_LINES]:
        line = raw.strip()
        if len(line) < 15 or len(line) > 200:
            continue
        if line == line.upper():
            continue
        if _AUTHOR_LINE_RE.search(line):
            continue
        if _is_metadata_line(line):
            continue
        if len(re.findall(r"[/:@]", line)) > 2:
            continue
        if re.match(r"[A-Z]", line):
            return line
    return None


def extract_content_metadata(text: str, current_year: int | None = None) -> BibMetadata:
    return BibMetadata(
        author=extract_author(text),
        year=extract_year(text, current_year=current_year),
        journal=extract_journal(text),
        title=extract_title(text),
        source="content",
    )

"""Link curated timeline entries to catalog documents.

Two scorers live here. ``find_best_match`` runs the two-pass search against a
``FuzzyIndex``: a broad title search first, then an author-anchored sweep of
the whole catalog when the first pass found nothing convincing.
``simple_match_confidence`` is the index-free weighted scorer used for bulk
linking of still-unmatched entries.
"""

from __future__ import annotations

import logging
import re

from fuzzy_index import FuzzyIndex
from journals import JOURNAL_ALIASES
from models import DocumentRecord, MatchResult, TimelineEntry
from text_similarity import (
    author_surname,
    extract_keywords,
    jaccard_similarity,
    keyword_overlap,
    normalize_text,
)

LOGGER = logging.getLogger(__name__)

# Pass 1: fuzzy title candidates
YEAR_EXACT_BONUS = 0.3
YEAR_NEAR_BONUS = 0.1
YEAR_NEAR_WINDOW = 2
AUTHOR_BONUS = 0.25
JOURNAL_BONUS = 0.2
KEYWORD_WEIGHT = 0.25
INDEX_WEIGHT = 0.2
PASS1_ACCEPT_ABOVE = 0.35

# Pass 2: author-anchored sweep
STRONG_MATCH = 0.6
PASS2_BASE = 0.25
PASS2_YEAR_NEAR_BONUS = 0.15
PASS2_MANY_KEYWORDS_BONUS = 0.25
PASS2_ONE_KEYWORD_BONUS = 0.1
PASS2_ACCEPT_ABOVE = 0.5

# Simple scorer weights
SIMPLE_TITLE_WEIGHT = 0.5
SIMPLE_AUTHOR_WEIGHT = 0.25
SIMPLE_YEAR_WEIGHT = 0.15
SIMPLE_YEAR_NEAR = 0.1
SIMPLE_JOURNAL_WEIGHT = 0.1
DEFAULT_MIN_CONFIDENCE = 0.4

MIN_SURNAME_LENGTH = 3
_CANONICAL_NAME_RE = re.compile(r"^(\d{4})_([^_]+)_")


def journal_matches(entry_journal: str | None, doc_text: str) -> bool:
    """True when the entry's journal, or any of its aliases, appears in ``doc_text``."""
    journal = normalize_text(entry_journal)
    if not journal:
        return False
    text = normalize_text(doc_text)
    if journal in text:
        return True

    for alias in JOURNAL_ALIASES.get(entry_journal.strip(), []):
        if alias in text:
            return True

    for abbrev, aliases in JOURNAL_ALIASES.items():
        if any(journal in alias or alias in journal for alias in aliases):
            if normalize_text(abbrev) in text or any(alias in text for alias in aliases):
                return True
    return False


def author_matches(entry_author: str | None, doc_author: str | None, doc_filename: str) -> bool:
    surname = author_surname(entry_author)
    if len(surname) < MIN_SURNAME_LENGTH:
        return False
    if doc_author and surname in normalize_text(doc_author):
        return True
    return surname in normalize_text(doc_filename)


def _year_bonus(entry_year: int | None, doc_year: int | None, near_bonus: float) -> float:
    if entry_year is None or doc_year is None:
        return 0.0
    if entry_year == doc_year:
        return YEAR_EXACT_BONUS
    if abs(entry_year - doc_year) <= YEAR_NEAR_WINDOW:
        return near_bonus
    return 0.0


def _score_candidate(entry: TimelineEntry, doc: DocumentRecord, doc_text: str, distance: float) -> float:
    score = _year_bonus(entry.year, doc.year, YEAR_NEAR_BONUS)
    if author_matches(entry.author, doc.author, doc.filename):
        score += AUTHOR_BONUS
    if journal_matches(entry.journal, doc_text):
        score += JOURNAL_BONUS
    _, overlap = keyword_overlap(entry.title, doc_text)
    score += overlap * KEYWORD_WEIGHT
    score += (1.0 - distance) * INDEX_WEIGHT
    return score


def _score_author_anchored(entry: TimelineEntry, doc: DocumentRecord, doc_text: str) -> float | None:
    if not author_matches(entry.author, doc.author, doc.filename):
        return None
    score = PASS2_BASE + _year_bonus(entry.year, doc.year, PASS2_YEAR_NEAR_BONUS)
    if journal_matches(entry.journal, doc_text):
        score += JOURNAL_BONUS
    matches, _ = keyword_overlap(entry.title, doc_text)
    if matches >= 2:
        score += PASS2_MANY_KEYWORDS_BONUS
    elif matches >= 1:
        score += PASS2_ONE_KEYWORD_BONUS
    return score


def find_best_match(entry: TimelineEntry, index: FuzzyIndex) -> MatchResult | None:
    """Return the highest-scoring document across both passes, or None.

    Ranking uses the raw composite score; the reported confidence is capped
    at 1.0.
    """
    best_id: str | None = None
    best_score = 0.0

    for doc, distance in index.search(entry.title):
        score = _score_candidate(entry, doc, index.search_text(doc.document_id), distance)
        if score > PASS1_ACCEPT_ABOVE and score > best_score:
            best_id, best_score = doc.document_id, score

    if best_score < STRONG_MATCH and author_surname(entry.author):
        for doc in index.documents:
            score = _score_author_anchored(entry, doc, index.search_text(doc.document_id))
            if score is not None and score > PASS2_ACCEPT_ABOVE and score > best_score:
                best_id, best_score = doc.document_id, score

    if best_id is None:
        return None
    LOGGER.debug("Matched entry=%s document=%s score=%.3f", entry.entry_id, best_id, best_score)
    return MatchResult(
        source_entry_id=entry.entry_id,
        matched_document_id=best_id,
        confidence=min(best_score, 1.0),
    )


def simple_match_confidence(entry: TimelineEntry, doc: DocumentRecord) -> float:
    """Weighted similarity normalised by the weights that actually apply.

    The title weight always counts. Author, year and journal weights only
    enter the denominator when both sides carry that field, so a missing
    field neither helps nor hurts.
    """
    score = jaccard_similarity(entry.title, doc.title or doc.filename) * SIMPLE_TITLE_WEIGHT
    weights = SIMPLE_TITLE_WEIGHT

    if entry.author and doc.author:
        weights += SIMPLE_AUTHOR_WEIGHT
        entry_surname = normalize_text(entry.author).split(" ")[0]
        doc_author = normalize_text(doc.author)
        if entry_surname and doc_author and (entry_surname in doc_author or doc_author in entry_surname):
            score += SIMPLE_AUTHOR_WEIGHT
        else:
            score += jaccard_similarity(entry.author, doc.author) * SIMPLE_AUTHOR_WEIGHT

    if entry.year and doc.year:
        weights += SIMPLE_YEAR_WEIGHT
        if entry.year == doc.year:
            score += SIMPLE_YEAR_WEIGHT
        elif abs(entry.year - doc.year) <= 1:
            score += SIMPLE_YEAR_NEAR

    if entry.journal and doc.journal:
        weights += SIMPLE_JOURNAL_WEIGHT
        entry_journal = normalize_text(entry.journal)
        doc_journal = normalize_text(doc.journal)
        if entry_journal and doc_journal and (entry_journal in doc_journal or doc_journal in entry_journal):
            score += SIMPLE_JOURNAL_WEIGHT

    return score / weights


def link_unmatched(
    entries: list[TimelineEntry],
    documents: list[DocumentRecord],
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> list[MatchResult]:
    """Best simple-scorer match per entry, kept when at or above ``min_confidence``."""
    results: list[MatchResult] = []
    for entry in entries:
        best: DocumentRecord | None = None
        best_score = 0.0
        for doc in documents:
            score = simple_match_confidence(entry, doc)
            if score > best_score:
                best, best_score = doc, score
        if best is not None and best_score >= min_confidence:
            results.append(MatchResult(entry.entry_id, best.document_id, round(best_score, 4)))
    LOGGER.info("Linked unmatched entries=%s matched=%s", len(entries), len(results))
    return results


def strict_filename_match(entry: TimelineEntry, filenames: list[str]) -> str | None:
    """Find a canonical ``YEAR_Author_...`` filename for an entry.

    Requires the exact year and an author prefix match, trying five
    characters first and then four.
    """
    surname = author_surname(entry.author)
    if entry.year is None or len(surname) < 4:
        return None

    candidates: list[tuple[str, str]] = []
    for filename in filenames:
        match = _CANONICAL_NAME_RE.match(filename)
        if match and int(match.group(1)) == entry.year:
            candidates.append((filename, normalize_text(match.group(2))))

    for prefix_length in (5, 4):
        prefix = surname[:prefix_length]
        for filename, file_author in candidates:
            if file_author.startswith(prefix):
                return filename
    return None

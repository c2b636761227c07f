"""Run summaries and post-run report files.

Summaries are plain count dictionaries that the CLI logs after each command.
Two report files can be written from the reference store:

  curriculum-matched-only.csv - timeline entries that are linked to a catalog
                                document, in curriculum CSV shape.
  match-review.csv            - every linked entry with its confidence bucket
                                and any year/author disagreement between the
                                entry and the linked filename.
"""

from __future__ import annotations

import csv
import logging
import os
import re
from collections import Counter
from pathlib import Path

from apply_renames import ApplyResult
from catalog_store import CatalogStore, ReferenceStore
from csv_sink import CURRICULUM_COLUMNS
from models import DuplicateGroup, RenameProposal, TimelineEntry
from text_similarity import author_surname

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configurable paths / limits
# ---------------------------------------------------------------------------

MATCHED_ONLY_REPORT_PATH = os.getenv("MATCHED_ONLY_REPORT_PATH", "curriculum-matched-only.csv")
MATCH_REVIEW_REPORT_PATH = os.getenv("MATCH_REVIEW_REPORT_PATH", "match-review.csv")
SUSPICIOUS_YEAR_GAP = 2
SUSPICIOUS_AUTHOR_PREFIX = 4

HIGH_MATCH_FROM = 0.7
MEDIUM_MATCH_FROM = 0.5

# ---------------------------------------------------------------------------
# Output schemas
# ---------------------------------------------------------------------------

MATCH_REVIEW_COLUMNS = [
    "entry_id",
    "subspecialty",
    "year",
    "author",
    "title",
    "document_filename",
    "confidence",
    "bucket",
    "issue",
]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# Residue left in paragraph text by embedded images and drawing objects.
_EXPORT_NOISE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"0{10,}"),
    re.compile(r"\d{10,}"),
    re.compile(r"image\d+\.png"),
    re.compile(r"http://schemas\S*"),
    re.compile(r"rId\d+"),
)
_CANONICAL_YEAR_RE = re.compile(r"^(\d{4})")


def _clean_export_text(text: str | None) -> str:
    cleaned = text or ""
    for pattern in _EXPORT_NOISE_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()


def _write_csv(path: Path | str, columns: list[str], rows: list[dict]) -> None:
    with open(path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)


def match_bucket(confidence: float) -> str:
    if confidence >= HIGH_MATCH_FROM:
        return "high"
    if confidence >= MEDIUM_MATCH_FROM:
        return "medium"
    return "low"


def suspicious_match_issue(entry: TimelineEntry, filename: str) -> str | None:
    """Describe a year or author disagreement between an entry and a linked filename.

    The year is read from a leading ``YYYY`` and the author from the second
    underscore segment, as in canonical ``Year_Author_Journal_Title`` names.
    """
    year_match = _CANONICAL_YEAR_RE.match(filename)
    if year_match and entry.year is not None:
        file_year = int(year_match.group(1))
        if abs(file_year - entry.year) > SUSPICIOUS_YEAR_GAP:
            return f"Year mismatch: entry={entry.year}, file={file_year}"

    parts = filename.split("_")
    file_author = parts[1].lower() if len(parts) > 1 else ""
    surname = author_surname(entry.author)
    if (
        file_author
        and file_author != "unknown"
        and len(surname) >= SUSPICIOUS_AUTHOR_PREFIX
        and surname[:SUSPICIOUS_AUTHOR_PREFIX] not in file_author
    ):
        return f"Author mismatch: entry={surname}, file={file_author}"
    return None


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


def summarize_proposals(proposals: list[RenameProposal]) -> dict[str, dict[str, int]]:
    return {
        "confidence": dict(Counter(p.confidence.level.value for p in proposals)),
        "subspecialty": dict(sorted(Counter(p.subspecialty.value for p in proposals).items())),
    }


def summarize_apply(result: ApplyResult) -> dict[str, int]:
    return {
        "applied": result.applied,
        "errors": result.errors,
        "skipped": result.skipped,
        "rollback_entries": len(result.rollback),
    }


def summarize_duplicates(groups: list[DuplicateGroup]) -> dict[str, int]:
    counts = Counter(g.group_type.value for g in groups)
    counts["files_to_remove"] = sum(len(g.removals) for g in groups)
    return dict(counts)


def summarize_match_confidence(confidences: list[float]) -> dict[str, int]:
    """Bucket link confidences: >=0.7, 0.5-0.7 and below 0.5."""
    buckets = Counter(match_bucket(c) for c in confidences)
    return {name: buckets.get(name, 0) for name in ("high", "medium", "low")}


def log_summary(title: str, summary: dict) -> None:
    LOGGER.info("%s: %s", title, summary)


# ---------------------------------------------------------------------------
# Report builders
# ---------------------------------------------------------------------------


def export_matched_only(
    ref_store: ReferenceStore,
    store: CatalogStore,
    path: Path | str | None = None,
) -> int:
    """Write linked entries only, in curriculum CSV shape. Returns the row count."""
    target = path or MATCHED_ONLY_REPORT_PATH
    rows: list[dict] = []
    for entry in ref_store.list_entries():
        document_id, _ = ref_store.get_link(entry.entry_id)
        doc = store.get_document(document_id) if document_id else None
        if doc is None:
            continue
        rows.append({
            "Subspecialty": entry.subspecialty.value,
            "Year": entry.year or "",
            "Journal": _clean_export_text(entry.journal),
            "Author": _clean_export_text(entry.author),
            "Title": _clean_export_text(entry.title),
            "Description": _clean_export_text(entry.description),
            "PDF_Filename": doc.filename,
        })

    _write_csv(target, CURRICULUM_COLUMNS, rows)
    LOGGER.info("report: %d matched entries → %s", len(rows), target)
    return len(rows)


def write_match_review(
    ref_store: ReferenceStore,
    store: CatalogStore,
    path: Path | str | None = None,
) -> list[dict]:
    """Write every linked entry with its bucket and suspicion note; return the rows."""
    target = path or MATCH_REVIEW_REPORT_PATH
    rows: list[dict] = []
    for entry in ref_store.list_entries():
        document_id, confidence = ref_store.get_link(entry.entry_id)
        doc = store.get_document(document_id) if document_id else None
        if doc is None:
            continue
        score = confidence or 0.0
        rows.append({
            "entry_id": entry.entry_id,
            "subspecialty": entry.subspecialty.value,
            "year": entry.year or "",
            "author": entry.author or "",
            "title": entry.title,
            "document_filename": doc.filename,
            "confidence": f"{score:.2f}",
            "bucket": match_bucket(score),
            "issue": suspicious_match_issue(entry, doc.filename) or "",
        })

    _write_csv(target, MATCH_REVIEW_COLUMNS, rows)
    suspicious = sum(1 for r in rows if r["issue"])
    LOGGER.info("report: %d linked entries (%d suspicious) → %s", len(rows), suspicious, target)
    return rows

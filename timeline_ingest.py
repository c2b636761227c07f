"""Timeline ingestion, reference linking and curriculum export."""

from __future__ import annotations

import logging
from pathlib import Path

from catalog_store import CatalogStore, ReferenceStore
from csv_sink import write_timeline_csv
from fuzzy_index import FuzzyIndex
from matcher import DEFAULT_MIN_CONFIDENCE, find_best_match, link_unmatched, strict_filename_match
from models import MatchResult, TimelineEntry
from timeline_parser import load_timeline_folder

LOGGER = logging.getLogger(__name__)


def ingest_timeline(
    folder: Path | str,
    store: CatalogStore,
    ref_store: ReferenceStore,
    index: FuzzyIndex | None = None,
) -> tuple[list[TimelineEntry], list[MatchResult]]:
    """Replace every stored reference entry with a fresh parse of ``folder``.

    Each entry is matched against the catalog through the fuzzy index; an
    index passed in is rebuilt first when it has gone stale.
    """
    entries = load_timeline_folder(folder)
    if index is None:
        index = FuzzyIndex.from_store(store)
    elif index.is_stale():
        index.rebuild(store.list_documents())

    matches: list[MatchResult] = []
    for entry in entries:
        match = find_best_match(entry, index)
        if match is not None:
            matches.append(match)

    ref_store.replace_entries(entries, matches)
    LOGGER.info(
        "Timeline ingest complete. entries=%s matched=%s unmatched=%s",
        len(entries),
        len(matches),
        len(entries) - len(matches),
    )
    return entries, matches


def link_references(
    ref_store: ReferenceStore,
    store: CatalogStore,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    apply: bool = False,
) -> list[MatchResult]:
    """Link still-unmatched entries with the simple scorer; persist only with ``apply``."""
    unmatched = ref_store.list_entries(unmatched_only=True)
    matches = link_unmatched(unmatched, store.list_documents(), min_confidence=min_confidence)

    if not apply:
        LOGGER.info("[dry-run] Would link entries=%s of unmatched=%s", len(matches), len(unmatched))
        return matches

    for match in matches:
        ref_store.update_match(match.source_entry_id, match.matched_document_id, match.confidence)
    LOGGER.info("Linked entries=%s of unmatched=%s", len(matches), len(unmatched))
    return matches


def collect_pdf_filenames(root: Path | str) -> list[str]:
    return sorted(p.name for p in Path(root).rglob("*") if p.is_file() and p.suffix.lower() == ".pdf")


def export_curriculum(
    folder: Path | str,
    articles_root: Path | str,
    out: Path | str,
) -> list[tuple[TimelineEntry, str | None]]:
    """Write the curriculum CSV, linking entries to canonical filenames strictly."""
    entries = load_timeline_folder(folder)
    filenames = collect_pdf_filenames(articles_root)
    rows = [(entry, strict_filename_match(entry, filenames)) for entry in entries]
    write_timeline_csv(rows, out)

    matched = sum(1 for _, filename in rows if filename)
    LOGGER.info(
        "Curriculum export complete. entries=%s matched=%s pdfs=%s",
        len(rows),
        matched,
        len(filenames),
    )
    return rows

"""CSV-backed catalog of documents and curated reference entries.

Both stores keep their rows in memory and rewrite the whole file on every
mutation (temp file + ``os.replace``), so a crash never leaves a half-written
catalog behind. They assume a single writer.
"""

from __future__ import annotations

import csv
import dataclasses
import logging
import os
import tempfile
from pathlib import Path

from models import DocumentRecord, MatchResult, TimelineEntry
from taxonomy import Subspecialty, parse_subspecialty

CATALOG_DOCUMENTS_PATH = os.getenv("CATALOG_DOCUMENTS_PATH", "catalog_documents.csv")
CATALOG_REFERENCES_PATH = os.getenv("CATALOG_REFERENCES_PATH", "catalog_references.csv")

LOGGER = logging.getLogger(__name__)

DOCUMENT_COLUMNS = [
    "document_id",
    "filename",
    "path",
    "size",
    "subspecialty",
    "doc_type",
    "title",
    "author",
    "year",
    "journal",
]

REFERENCE_COLUMNS = [
    "entry_id",
    "subspecialty",
    "display_order",
    "year",
    "author",
    "journal",
    "title",
    "description",
    "document_id",
    "match_confidence",
]

_UPDATABLE_DOCUMENT_FIELDS = frozenset(DOCUMENT_COLUMNS) - {"document_id"}


class CatalogError(RuntimeError):
    """A catalog read or write could not be carried out."""


def _atomic_write(path: Path, columns: list[str], rows: list[dict[str, object]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", newline="", encoding="utf-8") as fh:
            writer = csv.DictWriter(fh, fieldnames=columns)
            writer.writeheader()
            writer.writerows(rows)
        os.replace(tmp_name, path)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise CatalogError(f"Failed to write {path}: {exc}") from exc


def _read_rows(path: Path) -> list[dict[str, str]]:
    if not path.exists():
        return []
    try:
        with path.open(newline="", encoding="utf-8") as fh:
            return list(csv.DictReader(fh))
    except OSError as exc:
        raise CatalogError(f"Failed to read {path}: {exc}") from exc


def _optional_int(raw: str | None) -> int | None:
    raw = (raw or "").strip()
    return int(raw) if raw else None


def _optional_text(raw: str | None) -> str | None:
    raw = (raw or "").strip()
    return raw or None


def _text(value: object) -> str:
    return "" if value is None else str(value)


def _document_from_row(row: dict[str, str]) -> DocumentRecord:
    return DocumentRecord(
        document_id=row["document_id"],
        filename=row["filename"],
        path=row["path"],
        size=int(row.get("size") or 0),
        subspecialty=parse_subspecialty(row.get("subspecialty") or Subspecialty.GENERAL.value),
        doc_type=row.get("doc_type") or "ARTICLE",
        title=_optional_text(row.get("title")),
        author=_optional_text(row.get("author")),
        year=_optional_int(row.get("year")),
        journal=_optional_text(row.get("journal")),
    )


def _document_to_row(doc: DocumentRecord) -> dict[str, object]:
    return {
        "document_id": doc.document_id,
        "filename": doc.filename,
        "path": doc.path,
        "size": doc.size,
        "subspecialty": doc.subspecialty.value,
        "doc_type": doc.doc_type,
        "title": _text(doc.title),
        "author": _text(doc.author),
        "year": _text(doc.year),
        "journal": _text(doc.journal),
    }


class CatalogStore:
    """Documents keyed by ``document_id``, in insertion order."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path or CATALOG_DOCUMENTS_PATH)
        self._documents: dict[str, DocumentRecord] = {}
        for row in _read_rows(self.path):
            doc = _document_from_row(row)
            self._documents[doc.document_id] = doc
        LOGGER.debug("Loaded catalog documents=%s from %s", len(self._documents), self.path)

    def _save(self) -> None:
        _atomic_write(self.path, DOCUMENT_COLUMNS, [_document_to_row(d) for d in self._documents.values()])

    def list_documents(self, subspecialty: Subspecialty | None = None) -> list[DocumentRecord]:
        if subspecialty is None:
            return list(self._documents.values())
        return [d for d in self._documents.values() if d.subspecialty is subspecialty]

    def get_document(self, document_id: str) -> DocumentRecord | None:
        return self._documents.get(document_id)

    def find_by_filename(self, filename: str) -> DocumentRecord | None:
        for doc in self._documents.values():
            if doc.filename == filename:
                return doc
        return None

    def find_by_path(self, path: str) -> DocumentRecord | None:
        normalized = path.replace("\\", "/")
        for doc in self._documents.values():
            if doc.path.replace("\\", "/") == normalized:
                return doc
        return None

    def upsert_document(self, record: DocumentRecord) -> DocumentRecord:
        self._documents[record.document_id] = record
        self._save()
        return record

    def upsert_documents(self, records: list[DocumentRecord]) -> None:
        """Insert or replace many records with a single file rewrite."""
        for record in records:
            self._documents[record.document_id] = record
        self._save()

    def update_document(self, document_id: str, **fields: object) -> DocumentRecord:
        current = self._documents.get(document_id)
        if current is None:
            raise CatalogError(f"Unknown document_id={document_id}")
        unknown = set(fields) - _UPDATABLE_DOCUMENT_FIELDS
        if unknown:
            raise CatalogError(f"Cannot update fields {sorted(unknown)} on document_id={document_id}")

        updated = dataclasses.replace(current, **fields)
        self._documents[document_id] = updated
        try:
            self._save()
        except CatalogError:
            self._documents[document_id] = current
            raise
        return updated


def _entry_from_row(row: dict[str, str]) -> tuple[TimelineEntry, str | None, float | None]:
    entry = TimelineEntry(
        year=_optional_int(row.get("year")),
        author=_optional_text(row.get("author")),
        journal=_optional_text(row.get("journal")),
        title=row.get("title") or "",
        description=_optional_text(row.get("description")),
        subspecialty=parse_subspecialty(row.get("subspecialty") or Subspecialty.GENERAL.value),
        display_order=int(row.get("display_order") or 0),
        entry_id=row["entry_id"],
    )
    confidence_raw = (row.get("match_confidence") or "").strip()
    confidence = float(confidence_raw) if confidence_raw else None
    return entry, _optional_text(row.get("document_id")), confidence


class ReferenceStore:
    """Curated timeline entries plus at most one document link each."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path or CATALOG_REFERENCES_PATH)
        self._entries: dict[str, TimelineEntry] = {}
        self._links: dict[str, tuple[str | None, float | None]] = {}
        for row in _read_rows(self.path):
            entry, document_id, confidence = _entry_from_row(row)
            self._entries[entry.entry_id] = entry
            self._links[entry.entry_id] = (document_id, confidence)

    def _save(self) -> None:
        rows: list[dict[str, object]] = []
        for entry_id, entry in self._entries.items():
            document_id, confidence = self._links.get(entry_id, (None, None))
            rows.append({
                "entry_id": entry_id,
                "subspecialty": entry.subspecialty.value,
                "display_order": entry.display_order,
                "year": _text(entry.year),
                "author": _text(entry.author),
                "journal": _text(entry.journal),
                "title": entry.title,
                "description": _text(entry.description),
                "document_id": _text(document_id),
                "match_confidence": "" if confidence is None else f"{confidence:.4f}",
            })
        _atomic_write(self.path, REFERENCE_COLUMNS, rows)

    def replace_entries(
        self,
        entries: list[TimelineEntry],
        matches: list[MatchResult] | None = None,
    ) -> None:
        """Drop every stored entry and link, then store ``entries`` (and their matches)."""
        by_entry = {m.source_entry_id: m for m in matches or []}
        self._entries = {e.entry_id: e for e in entries}
        self._links = {}
        for entry_id in self._entries:
            match = by_entry.get(entry_id)
            self._links[entry_id] = (match.matched_document_id, match.confidence) if match else (None, None)
        self._save()
        LOGGER.info("Replaced reference entries=%s matched=%s", len(entries), len(by_entry))

    def list_entries(self, unmatched_only: bool = False) -> list[TimelineEntry]:
        if not unmatched_only:
            return list(self._entries.values())
        return [e for e in self._entries.values() if self._links.get(e.entry_id, (None, None))[0] is None]

    def get_link(self, entry_id: str) -> tuple[str | None, float | None]:
        return self._links.get(entry_id, (None, None))

    def update_match(self, entry_id: str, document_id: str | None, confidence: float | None) -> None:
        if entry_id not in self._entries:
            raise CatalogError(f"Unknown reference entry_id={entry_id}")
        self._links[entry_id] = (document_id, confidence)
        self._save()

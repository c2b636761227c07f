"""Review artefacts: proposal CSV/JSON, rollback manifests, duplicate and curriculum reports.

The proposal CSV is the only hand-off between automated inference and any
destructive step. Humans edit its ``status`` (and, if they like,
``suggested_filename``) column; ``read_proposals`` takes it back verbatim.
"""

from __future__ import annotations

import csv
import json
import logging
import os
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from models import (
    BibMetadata,
    ConfidenceScore,
    DuplicateGroup,
    RenameProposal,
    RollbackEntry,
    TimelineEntry,
    parse_confidence_level,
    parse_proposal_status,
)
from taxonomy import parse_subspecialty

REVIEW_OUTPUT_DIR = os.getenv("REVIEW_OUTPUT_DIR", ".")

LOGGER = logging.getLogger(__name__)

PROPOSAL_COLUMNS = [
    "current_filename",
    "current_path",
    "subspecialty",
    "extracted_author",
    "extracted_year",
    "extracted_journal",
    "extracted_title",
    "suggested_filename",
    "confidence",
    "confidence_level",
    "status",
]

DUPLICATE_COLUMNS = ["group_type", "key", "path", "subspecialty", "size", "keep", "reason"]

CURRICULUM_COLUMNS = ["Subspecialty", "Year", "Journal", "Author", "Title", "Description", "PDF_Filename"]


def _output_dir(output_dir: Path | str | None) -> Path:
    path = Path(output_dir or REVIEW_OUTPUT_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional(raw: str | None) -> str | None:
    value = (raw or "").strip()
    return value or None


def _metadata_dict(md: BibMetadata) -> dict[str, Any]:
    return {"author": md.author, "year": md.year, "journal": md.journal, "title": md.title, "source": md.source}


def _proposal_row(proposal: RenameProposal) -> dict[str, str]:
    md = proposal.metadata
    return {
        "current_filename": proposal.current_filename,
        "current_path": proposal.current_path,
        "subspecialty": proposal.subspecialty.value,
        "extracted_author": _as_text(md.author),
        "extracted_year": _as_text(md.year),
        "extracted_journal": _as_text(md.journal),
        "extracted_title": _as_text(md.title),
        "suggested_filename": proposal.suggested_filename,
        "confidence": f"{proposal.confidence.score:.2f}",
        "confidence_level": proposal.confidence.level.value,
        "status": proposal.status.value,
    }


def write_proposals_csv(path: Path | str, proposals: Iterable[RenameProposal]) -> Path:
    target = Path(path)
    with target.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=PROPOSAL_COLUMNS)
        writer.writeheader()
        for proposal in proposals:
            writer.writerow(_proposal_row(proposal))
    return target


def write_proposals_json(path: Path | str, proposals: Iterable[RenameProposal]) -> Path:
    target = Path(path)
    payload = []
    for proposal in proposals:
        row: dict[str, Any] = _proposal_row(proposal)
        row["extracted_year"] = proposal.metadata.year
        row["confidence"] = proposal.confidence.score
        row["text_preview"] = proposal.text_preview
        row["filename_metadata"] = _metadata_dict(proposal.filename_metadata)
        payload.append(row)
    target.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return target


def write_proposals(
    proposals: list[RenameProposal],
    output_dir: Path | str | None = None,
    stamp: str | None = None,
) -> tuple[Path, Path]:
    """Write ``rename-review-<date>.csv`` plus its detailed JSON companion."""
    directory = _output_dir(output_dir)
    stamp = stamp or datetime.now(UTC).date().isoformat()
    csv_path = write_proposals_csv(directory / f"rename-review-{stamp}.csv", proposals)
    json_path = write_proposals_json(directory / f"rename-review-{stamp}.json", proposals)
    LOGGER.info("Wrote proposals=%s to %s and %s", len(proposals), csv_path, json_path)
    return csv_path, json_path


def _proposal_from_row(row: dict[str, Any]) -> RenameProposal:
    year_raw = _as_text(row.get("extracted_year"))
    metadata = BibMetadata(
        author=_optional(row.get("extracted_author")),
        year=int(year_raw) if year_raw else None,
        journal=_optional(row.get("extracted_journal")),
        title=_optional(row.get("extracted_title")),
        source="merged",
    )
    filename_md = row.get("filename_metadata") or {}
    return RenameProposal(
        current_path=_as_text(row.get("current_path")),
        current_filename=_as_text(row.get("current_filename")),
        subspecialty=parse_subspecialty(_as_text(row.get("subspecialty")) or "GENERAL"),
        metadata=metadata,
        suggested_filename=_as_text(row.get("suggested_filename")),
        confidence=ConfidenceScore(
            score=float(_as_text(row.get("confidence")) or 0),
            level=parse_confidence_level(_as_text(row.get("confidence_level")) or "low"),
        ),
        status=parse_proposal_status(_as_text(row.get("status"))),
        text_preview=_as_text(row.get("text_preview")),
        filename_metadata=BibMetadata(
            author=filename_md.get("author"),
            year=filename_md.get("year"),
            journal=filename_md.get("journal"),
            title=filename_md.get("title"),
        ),
    )


def read_proposals(path: Path | str) -> list[RenameProposal]:
    """Load a reviewed proposal file (CSV, or the JSON companion).

    Enumerated columns are parsed strictly; an unknown status or subspecialty
    raises ValueError naming the offending row.
    """
    source = Path(path)
    if source.suffix.lower() == ".json":
        rows = json.loads(source.read_text(encoding="utf-8"))
    else:
        with source.open(newline="", encoding="utf-8-sig") as fh:
            rows = list(csv.DictReader(fh))

    proposals: list[RenameProposal] = []
    for line_number, row in enumerate(rows, start=2):
        try:
            proposals.append(_proposal_from_row(row))
        except ValueError as exc:
            raise ValueError(f"{source} row {line_number}: {exc}") from exc
    LOGGER.info("Read proposals=%s from %s", len(proposals), source)
    return proposals


def write_rollback_manifest(entries: list[RollbackEntry], output_dir: Path | str | None = None) -> Path | None:
    """Persist what was renamed so a human can undo it; None when nothing was."""
    if not entries:
        return None
    directory = _output_dir(output_dir)
    timestamp = datetime.now(UTC).isoformat().replace(":", "-").replace(".", "-")
    path = directory / f"rollback-{timestamp}.json"
    payload = [
        {
            "old_path": e.old_path,
            "new_path": e.new_path,
            "old_filename": e.old_filename,
            "new_filename": e.new_filename,
            "document_id": e.document_id,
            "catalog_updated": e.catalog_updated,
        }
        for e in entries
    ]
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    LOGGER.info("Rollback manifest saved entries=%s path=%s", len(entries), path)
    return path


def write_duplicate_report(groups: list[DuplicateGroup], output_dir: Path | str | None = None) -> tuple[Path, Path]:
    """Write ``duplicate-report.json`` and a flat CSV with one row per file."""
    directory = _output_dir(output_dir)
    json_path = directory / "duplicate-report.json"
    csv_path = directory / "duplicate-report.csv"

    payload = [
        {
            "key": g.key,
            "type": g.group_type.value,
            "files": [
                {
                    "path": f.path,
                    "subspecialty": f.subspecialty.value,
                    "size": f.size,
                    "keep": f.keep,
                    "reason": f.reason,
                }
                for f in g.files
            ],
        }
        for g in groups
    ]
    json_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    with csv_path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=DUPLICATE_COLUMNS)
        writer.writeheader()
        for group in groups:
            for f in group.files:
                writer.writerow({
                    "group_type": group.group_type.value,
                    "key": group.key,
                    "path": f.path,
                    "subspecialty": f.subspecialty.value,
                    "size": f.size,
                    "keep": f.keep,
                    "reason": f.reason,
                })

    LOGGER.info("Duplicate report written groups=%s to %s", len(groups), json_path)
    return json_path, csv_path


def write_timeline_csv(rows: list[tuple[TimelineEntry, str | None]], path: Path | str) -> Path:
    """Curriculum export: one row per entry with its strictly linked PDF, if any."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=CURRICULUM_COLUMNS)
        writer.writeheader()
        for entry, pdf_filename in rows:
            writer.writerow({
                "Subspecialty": entry.subspecialty.value,
                "Year": _as_text(entry.year),
                "Journal": _as_text(entry.journal),
                "Author": _as_text(entry.author),
                "Title": entry.title,
                "Description": _as_text(entry.description),
                "PDF_Filename": pdf_filename or "",
            })
    LOGGER.info("Curriculum CSV written rows=%s to %s", len(rows), target)
    return target

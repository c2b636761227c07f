"""Apply human-approved rename proposals to the library and the catalog.

Only ``approved`` proposals are touched, one at a time. Each processed
proposal ends in exactly one terminal status (applied, error or skipped), so
feeding the written-back review file in again is a no-op.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from catalog_store import CatalogError, CatalogStore
from models import DocumentRecord, ProposalStatus, RenameProposal, RollbackEntry

LOGGER = logging.getLogger(__name__)

RENAMED_SUFFIX = ".pdf"


@dataclass(slots=True)
class ApplyResult:
    applied: int = 0
    errors: int = 0
    skipped: int = 0
    dry_run: bool = False
    rollback: list[RollbackEntry] = field(default_factory=list)


def unique_target(directory: Path, filename: str) -> Path:
    """``directory/filename``, or the first free ``name_1``, ``name_2``... variant."""
    candidate = directory / filename
    stem, suffix = candidate.stem, candidate.suffix
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem}_{counter}{suffix}"
        counter += 1
    return candidate


def _target_filename(suggested: str) -> str:
    if suggested.lower().endswith(RENAMED_SUFFIX):
        return suggested
    return suggested + RENAMED_SUFFIX


def _resolve_source(proposal: RenameProposal, root: Path, store: CatalogStore) -> Path | None:
    rel = proposal.current_path.replace("\\", "/")
    if "/" in rel or rel == proposal.current_filename:
        return Path(os.path.abspath(root / rel))
    doc = store.find_by_filename(proposal.current_filename)
    return Path(os.path.abspath(root / doc.path)) if doc else None


def _catalog_document(proposal: RenameProposal, rel_path: str, store: CatalogStore) -> DocumentRecord | None:
    return store.find_by_path(rel_path) or store.find_by_filename(proposal.current_filename)


def _catalog_fields(proposal: RenameProposal, doc: DocumentRecord, new_rel: str, new_name: str) -> dict[str, object]:
    md = proposal.metadata
    return {
        "filename": new_name,
        "path": new_rel,
        "author": md.author or doc.author,
        "year": md.year or doc.year,
        "journal": md.journal or doc.journal,
        "title": md.title or doc.title,
    }


def apply_proposals(
    proposals: list[RenameProposal],
    root: Path | str,
    store: CatalogStore,
    dry_run: bool = False,
    result: ApplyResult | None = None,
) -> ApplyResult:
    """Rename every approved proposal and record the outcome on it.

    ``result`` is filled in as the batch runs, so a caller that passes its own
    can still persist the renames already made if the batch is interrupted.
    """
    base = Path(os.path.abspath(root))
    approved = [p for p in proposals if p.status is ProposalStatus.APPROVED]
    if result is None:
        result = ApplyResult()
    result.dry_run = dry_run
    LOGGER.info(
        "Apply starting. total=%s approved=%s already_done=%s dry_run=%s",
        len(proposals),
        len(approved),
        sum(1 for p in proposals if p.status.is_terminal),
        dry_run,
    )

    def skip(proposal: RenameProposal, reason: str) -> None:
        LOGGER.warning("Skipping %s: %s", proposal.current_filename, reason)
        result.skipped += 1
        if not dry_run:
            proposal.status = ProposalStatus.SKIPPED

    for proposal in approved:
        source = _resolve_source(proposal, base, store)
        if source is not None and not source.is_relative_to(base):
            skip(proposal, f"{source} is outside the library root")
            continue
        if source is None or not source.is_file():
            skip(proposal, "file not found")
            continue

        wanted = _target_filename(proposal.suggested_filename)
        if source.name == wanted:
            skip(proposal, "already has its canonical name")
            continue

        try:
            target = unique_target(source.parent, wanted)
            old_rel = source.relative_to(base).as_posix()
            new_rel = target.relative_to(base).as_posix()
        except (OSError, ValueError):
            LOGGER.exception("Cannot resolve a rename target for %s", proposal.current_filename)
            result.errors += 1
            if not dry_run:
                proposal.status = ProposalStatus.ERROR
            continue
        doc = _catalog_document(proposal, old_rel, store)

        if dry_run:
            LOGGER.info(
                "[dry-run] Would rename %s -> %s (document_id=%s)",
                old_rel,
                target.name,
                doc.document_id if doc else None,
            )
            result.applied += 1
            continue

        try:
            source.rename(target)
        except OSError:
            LOGGER.exception("Failed to rename %s", old_rel)
            proposal.status = ProposalStatus.ERROR
            result.errors += 1
            continue

        catalog_updated = True
        if doc is not None:
            try:
                store.update_document(doc.document_id, **_catalog_fields(proposal, doc, new_rel, target.name))
            except CatalogError:
                LOGGER.exception("Renamed %s but the catalog update failed", old_rel)
                catalog_updated = False

        result.rollback.append(RollbackEntry(
            old_path=str(source),
            new_path=str(target),
            old_filename=proposal.current_filename,
            new_filename=target.name,
            document_id=doc.document_id if doc else None,
            catalog_updated=catalog_updated,
        ))

        if catalog_updated:
            proposal.status = ProposalStatus.APPLIED
            result.applied += 1
            LOGGER.info("Renamed %s -> %s", proposal.current_filename, target.name)
        else:
            proposal.status = ProposalStatus.ERROR
            result.errors += 1

    LOGGER.info(
        "Apply complete. applied=%s errors=%s skipped=%s dry_run=%s",
        result.applied,
        result.errors,
        result.skipped,
        dry_run,
    )
    return result

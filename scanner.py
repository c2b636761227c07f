"""Library traversal, rename-proposal generation and catalog indexing."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from bib_lookup import TitleSearchClient, lookup_metadata
from catalog_store import CatalogStore
from content_extractor import EXTRACTION_WORKERS, extract_content_metadata, extract_many
from filename_generator import generate_from_metadata
from filename_parser import parse_filename
from llm_client import extract_metadata_with_llm
from metadata_merge import fill_missing, merge_metadata, score_confidence
from models import ConfidenceLevel, DocumentRecord, RawDocument, RenameProposal
from taxonomy import (
    Subspecialty,
    document_type,
    folder_subspecialty,
    is_non_article_folder,
    subspecialty_from_path,
)

LOGGER = logging.getLogger(__name__)

PROGRESS_EVERY = 50
ARTICLE_SUFFIXES: frozenset[str] = frozenset({".pdf"})
INDEXED_SUFFIXES: frozenset[str] = frozenset({".pdf", ".ppt", ".pptx"})


def relative_path(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix()


def scan_articles(root: Path | str, subspecialty: Subspecialty | None = None) -> list[Path]:
    """Collect article PDFs under ``root``.

    Folders holding textbooks, OITE material, presentations or timelines are
    never entered. With a subspecialty filter, folders mapped to a different
    subspecialty are pruned and each file is checked against its own path.
    """
    base = Path(root)
    found: list[Path] = []
    stack = [base]

    while stack:
        directory = stack.pop()
        try:
            children = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as exc:
            LOGGER.warning("Could not list %s: %s", directory, exc)
            continue

        # Reversed so the stack pops subfolders in name order.
        for child in reversed(children):
            if child.is_dir():
                if is_non_article_folder(child.name):
                    continue
                if subspecialty is not None:
                    mapped = folder_subspecialty(child.name)
                    if mapped is not None and mapped is not subspecialty:
                        continue
                stack.append(child)

        for child in children:
            if not child.is_file() or child.suffix.lower() not in ARTICLE_SUFFIXES:
                continue
            if subspecialty is not None and subspecialty_from_path(relative_path(child, base)) is not subspecialty:
                continue
            found.append(child)

    LOGGER.info("Found article files=%s under %s", len(found), base)
    return found


def build_proposals(
    root: Path | str,
    files: list[Path],
    lookup_client: TitleSearchClient | None = None,
    llm_fallback: bool = False,
    workers: int = EXTRACTION_WORKERS,
    current_year: int | None = None,
) -> list[RenameProposal]:
    """Produce one pending ``RenameProposal`` per file.

    Text extraction runs on a bounded pool in chunks; merging, lookups and the
    optional LLM fallback run sequentially in input order.
    """
    base = Path(root)
    proposals: list[RenameProposal] = []
    lookup_hits = 0
    llm_fills = 0
    failed = 0

    for start in range(0, len(files), PROGRESS_EVERY):
        chunk = files[start:start + PROGRESS_EVERY]
        extractions = extract_many(chunk, workers=workers)

        for path, extraction in zip(chunk, extractions):
            try:
                rel = relative_path(path, base)
                filename_md = parse_filename(path.name)
                content_md = extract_content_metadata(extraction.text, current_year=current_year)

                lookup_md = None
                if lookup_client is not None:
                    lookup_md = lookup_metadata(content_md.title or filename_md.title, lookup_client)
                    if lookup_md is not None:
                        lookup_hits += 1

                merged = merge_metadata(filename_md, content_md, lookup_md)
                confidence = score_confidence(merged)

                if llm_fallback and confidence.level is ConfidenceLevel.LOW and not extraction.failed:
                    llm_md = extract_metadata_with_llm(extraction.text)
                    if llm_md is not None:
                        merged = fill_missing(merged, llm_md)
                        confidence = score_confidence(merged)
                        llm_fills += 1

                proposals.append(RenameProposal(
                    current_path=rel,
                    current_filename=path.name,
                    subspecialty=subspecialty_from_path(rel),
                    metadata=merged,
                    suggested_filename=generate_from_metadata(merged),
                    confidence=confidence,
                    text_preview=extraction.preview,
                    filename_metadata=filename_md,
                ))
            except Exception:
                failed += 1
                LOGGER.exception("Failed building proposal for %s", path)

        LOGGER.info(
            "Processed %s/%s files (lookup_hits=%s llm_fills=%s)",
            min(start + PROGRESS_EVERY, len(files)),
            len(files),
            lookup_hits,
            llm_fills,
        )

    LOGGER.info(
        "Scan complete. total=%s high=%s medium=%s low=%s failed=%s",
        len(proposals),
        sum(1 for p in proposals if p.confidence.level is ConfidenceLevel.HIGH),
        sum(1 for p in proposals if p.confidence.level is ConfidenceLevel.MEDIUM),
        sum(1 for p in proposals if p.confidence.level is ConfidenceLevel.LOW),
        failed,
    )
    return proposals


def document_id_for(rel_path: str) -> str:
    """Stable id derived from the library-relative path at first indexing."""
    return hashlib.sha1(rel_path.encode("utf-8")).hexdigest()[:16]


def library_files(root: Path) -> list[RawDocument]:
    """Every indexable file under ``root``, in path order."""
    return [
        RawDocument(path=p, size=p.stat().st_size)
        for p in sorted(root.rglob("*"))
        if p.is_file() and p.suffix.lower() in INDEXED_SUFFIXES
    ]


def index_library(root: Path | str, store: CatalogStore) -> tuple[int, int]:
    """Register every PDF and slide deck under ``root`` in the catalog.

    Files already catalogued under the same path keep their id and any
    metadata; new files get filename-derived metadata. Returns
    (added, unchanged).
    """
    base = Path(root)
    new_records: list[DocumentRecord] = []
    unchanged = 0

    for raw in library_files(base):
        path = raw.path
        rel = relative_path(path, base)
        if store.find_by_path(rel) is not None:
            unchanged += 1
            continue

        parsed = parse_filename(path.name)
        new_records.append(DocumentRecord(
            document_id=document_id_for(rel),
            filename=path.name,
            path=rel,
            size=raw.size,
            subspecialty=subspecialty_from_path(rel),
            doc_type=document_type(path.name, rel),
            title=parsed.title,
            author=parsed.author,
            year=parsed.year,
            journal=parsed.journal,
        ))

    if new_records:
        store.upsert_documents(new_records)
    LOGGER.info("Indexed library root=%s added=%s unchanged=%s", base, len(new_records), unchanged)
    return len(new_records), unchanged

"""CLI entrypoint for the literature catalog pipeline."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from apply_renames import ApplyResult, apply_proposals
from bib_lookup import build_lookup_client
from catalog_store import CatalogStore, ReferenceStore
from csv_sink import (
    read_proposals,
    write_duplicate_report,
    write_proposals,
    write_proposals_csv,
    write_proposals_json,
    write_rollback_manifest,
)
from duplicates import DuplicateCandidate, delete_duplicates, file_md5, find_duplicates
from filename_generator import generate_filename
from llm_client import require_api_key
from matcher import DEFAULT_MIN_CONFIDENCE
from models import ConfigurationError
from report import (
    export_matched_only,
    log_summary,
    summarize_apply,
    summarize_duplicates,
    summarize_match_confidence,
    summarize_proposals,
    write_match_review,
)
from scanner import build_proposals, index_library, scan_articles
from taxonomy import parse_subspecialty
from timeline_ingest import export_curriculum, ingest_timeline, link_references

DEFAULT_CURRICULUM_OUTPUT = "curriculum-import-strict.csv"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Catalog, rename and link a clinical article library")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    index = sub.add_parser("index", help="Register library files in the catalog")
    index.add_argument("--articles-path", default=None, help="Library root (default: ARTICLES_PATH)")

    scan = sub.add_parser("scan", help="Propose canonical filenames for review")
    scan.add_argument("--articles-path", default=None, help="Library root (default: ARTICLES_PATH)")
    scan.add_argument("--subspecialty", type=parse_subspecialty, default=None, help="Only scan one subspecialty")
    scan.add_argument("--limit", type=int, default=None, help="Maximum number of files to analyze")
    scan.add_argument("--lookup", choices=["scopus", "crossref"], default=None, help="Bibliographic lookup provider")
    scan.add_argument(
        "--llm-fallback",
        action="store_true",
        help="Ask OpenAI to fill missing fields on low-confidence records",
    )
    scan.add_argument("--workers", type=int, default=None, help="Text extraction worker count")
    scan.add_argument("--output-dir", default=None, help="Where to write the review files")

    apply = sub.add_parser("apply", help="Apply approved renames from a review file")
    apply.add_argument("--input", required=True, help="Reviewed proposal CSV or JSON")
    apply.add_argument("--articles-path", default=None, help="Library root (default: ARTICLES_PATH)")
    apply.add_argument("--dry-run", action="store_true", help="Only log what would be renamed")
    apply.add_argument("--output-dir", default=None, help="Where to write the rollback manifest")

    dups = sub.add_parser("duplicates", help="Find duplicate files and optionally delete extra copies")
    dups.add_argument("--input", default=None, help="Proposal file to group (default: the catalog)")
    dups.add_argument("--articles-path", default=None, help="Library root (default: ARTICLES_PATH)")
    dups.add_argument("--check-content", action="store_true", help="Also compare MD5 of remaining files")
    dups.add_argument("--delete", action="store_true", help="Delete non-kept copies (default is a dry run)")
    dups.add_argument("--output-dir", default=None, help="Where to write the duplicate report")

    ingest = sub.add_parser("ingest-timeline", help="Rebuild reference entries from timeline documents")
    ingest.add_argument("--timeline-path", default=None, help="Timeline folder (default: TIMELINE_PATH)")

    link = sub.add_parser("link", help="Link unmatched reference entries with the simple scorer")
    link.add_argument("--min-confidence", type=float, default=DEFAULT_MIN_CONFIDENCE)
    link.add_argument("--apply", action="store_true", help="Persist links (default is a dry run)")

    export = sub.add_parser("export-curriculum", help="Write the curriculum CSV with strict PDF links")
    export.add_argument("--timeline-path", default=None, help="Timeline folder (default: TIMELINE_PATH)")
    export.add_argument("--articles-path", default=None, help="Library root (default: ARTICLES_PATH)")
    export.add_argument("--output", default=DEFAULT_CURRICULUM_OUTPUT)

    matched = sub.add_parser("export-matched", help="Write only linked reference entries")
    matched.add_argument("--output", default=None)

    return parser


def _require_dir(value: str | None, env_name: str) -> Path:
    raw = value or os.getenv(env_name)
    if not raw:
        raise ConfigurationError(f"{env_name} environment variable (or its CLI flag) is required")
    path = Path(raw)
    if not path.is_dir():
        raise ConfigurationError(f"{env_name} does not point to a directory: {raw}")
    return path


def run_index(args: argparse.Namespace) -> None:
    root = _require_dir(args.articles_path, "ARTICLES_PATH")
    index_library(root, CatalogStore())


def run_scan(args: argparse.Namespace) -> None:
    root = _require_dir(args.articles_path, "ARTICLES_PATH")
    lookup_client = build_lookup_client(args.lookup) if args.lookup else None
    if args.llm_fallback:
        require_api_key()

    files = scan_articles(root, subspecialty=args.subspecialty)
    if args.limit:
        files = files[: args.limit]
    logging.info("Found %s PDF files to analyze", len(files))

    kwargs = {"workers": args.workers} if args.workers else {}
    proposals = build_proposals(root, files, lookup_client=lookup_client, llm_fallback=args.llm_fallback, **kwargs)
    write_proposals(proposals, output_dir=args.output_dir)
    log_summary("Proposal summary", summarize_proposals(proposals))


def run_apply(args: argparse.Namespace) -> None:
    root = _require_dir(args.articles_path, "ARTICLES_PATH")
    input_path = Path(args.input)
    if not input_path.is_file():
        raise ConfigurationError(f"Review file not found: {input_path}")

    proposals = read_proposals(input_path)
    result = ApplyResult(dry_run=args.dry_run)
    try:
        apply_proposals(proposals, root, CatalogStore(), dry_run=args.dry_run, result=result)
    finally:
        if not args.dry_run:
            if input_path.suffix.lower() == ".json":
                write_proposals_json(input_path, proposals)
            else:
                write_proposals_csv(input_path, proposals)
            write_rollback_manifest(result.rollback, output_dir=args.output_dir)
    log_summary("Apply summary", summarize_apply(result))


def _catalog_candidates(store: CatalogStore) -> list[DuplicateCandidate]:
    return [
        DuplicateCandidate(
            current_path=doc.path,
            current_filename=doc.filename,
            suggested_filename=generate_filename(doc.author, doc.year, doc.journal, doc.title),
            subspecialty=doc.subspecialty,
        )
        for doc in store.list_documents()
    ]


def run_duplicates(args: argparse.Namespace) -> None:
    root = _require_dir(args.articles_path, "ARTICLES_PATH")
    if args.input:
        candidates = [
            DuplicateCandidate(p.current_path, p.current_filename, p.suggested_filename, p.subspecialty)
            for p in read_proposals(args.input)
        ]
    else:
        candidates = _catalog_candidates(CatalogStore())

    def size_of(rel: str) -> int:
        try:
            return (root / rel).stat().st_size
        except OSError:
            return 0

    groups = find_duplicates(
        candidates,
        size_of=size_of,
        hash_of=lambda rel: file_md5(root / rel),
        check_content=args.check_content,
    )
    write_duplicate_report(groups, output_dir=args.output_dir)
    deleted, errors = delete_duplicates(groups, root, dry_run=not args.delete)
    summary = summarize_duplicates(groups)
    summary.update(deleted=deleted, delete_errors=errors)
    log_summary("Duplicate summary", summary)


def run_ingest(args: argparse.Namespace) -> None:
    folder = _require_dir(args.timeline_path, "TIMELINE_PATH")
    _, matches = ingest_timeline(folder, CatalogStore(), ReferenceStore())
    log_summary("Match confidence", summarize_match_confidence([m.confidence for m in matches]))


def run_link(args: argparse.Namespace) -> None:
    store = CatalogStore()
    ref_store = ReferenceStore()
    matches = link_references(ref_store, store, min_confidence=args.min_confidence, apply=args.apply)
    log_summary("Match confidence", summarize_match_confidence([m.confidence for m in matches]))
    if args.apply:
        write_match_review(ref_store, store)


def run_export_curriculum(args: argparse.Namespace) -> None:
    folder = _require_dir(args.timeline_path, "TIMELINE_PATH")
    root = _require_dir(args.articles_path, "ARTICLES_PATH")
    export_curriculum(folder, root, args.output)


def run_export_matched(args: argparse.Namespace) -> None:
    export_matched_only(ReferenceStore(), CatalogStore(), args.output)


COMMANDS = {
    "index": run_index,
    "scan": run_scan,
    "apply": run_apply,
    "duplicates": run_duplicates,
    "ingest-timeline": run_ingest,
    "link": run_link,
    "export-curriculum": run_export_curriculum,
    "export-matched": run_export_matched,
}


def main(argv: list[str] | None = None) -> None:
    """Initialize config and run one command."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        COMMANDS[args.command](args)
    except ConfigurationError as exc:
        parser.error(str(exc))


if __name__ == "__main__":
    main()

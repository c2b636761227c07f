"""Parse curated landmark-article timelines into ``TimelineEntry`` records.

A timeline document is a flat run of paragraphs::

    1954 - Verbiest, JBJS ⭐
    A radicular syndrome from developmental narrowing of the lumbar canal
    Optional description longer than twenty characters.

The parser is a three-state machine. The header test runs first in every
state, so a header is never swallowed as a title or description.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import Path

from docx import Document

from models import TimelineEntry
from taxonomy import TIMELINE_FILE_SUBSPECIALTY_MAP, TIMELINE_SKIP_FILES, Subspecialty

LOGGER = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 20

HEADER_RE = re.compile(r"^(\d{4})\s*[-–—]\s*([^,]+),\s*([A-Za-z0-9\s&]+)")
_HEADER_PREFIX_RE = re.compile(r"^\d{4}\s*[-–—]")
_NUMERIC_RE = re.compile(r"^\d+$")
_DECORATION_RE = re.compile(r"[⭐★*\s]+$")


class ParserState(Enum):
    AWAIT_HEADER = "await_header"
    HAVE_HEADER = "have_header"
    HAVE_TITLE = "have_title"


def read_docx_paragraphs(path: Path | str) -> list[str]:
    """Return the stripped, non-empty paragraphs of a .docx file."""
    document = Document(str(path))
    paragraphs: list[str] = []
    for paragraph in document.paragraphs:
        text = paragraph.text.strip()
        if text:
            paragraphs.append(text)
    return paragraphs


def parse_header(line: str) -> tuple[int, str, str] | None:
    match = HEADER_RE.match(line)
    if not match:
        return None
    journal = _DECORATION_RE.sub("", match.group(3).strip())
    return int(match.group(1)), match.group(2).strip(), journal


def parse_timeline(
    paragraphs: list[str],
    subspecialty: Subspecialty,
    source: str = "timeline",
) -> list[TimelineEntry]:
    entries: list[TimelineEntry] = []
    state = ParserState.AWAIT_HEADER
    header: tuple[int, str, str] | None = None
    title = ""

    def emit(description: str | None) -> None:
        year, author, journal = header
        order = len(entries)
        entries.append(TimelineEntry(
            year=year,
            author=author,
            journal=journal or None,
            title=title,
            description=description,
            subspecialty=subspecialty,
            display_order=order,
            entry_id=f"{source}#{order}",
        ))

    for raw in paragraphs:
        line = raw.strip()
        if not line:
            continue

        parsed = parse_header(line)
        if parsed is not None:
            if state is ParserState.HAVE_TITLE:
                emit(None)
            elif state is ParserState.HAVE_HEADER:
                LOGGER.debug("Discarding header without title: %s", header)
            header = parsed
            state = ParserState.HAVE_HEADER
            continue

        if _HEADER_PREFIX_RE.match(line):
            # Malformed header: closes whatever was pending.
            if state is ParserState.HAVE_TITLE:
                emit(None)
            state = ParserState.AWAIT_HEADER
            continue

        if state is ParserState.HAVE_HEADER:
            if not _NUMERIC_RE.match(line):
                title = line
                state = ParserState.HAVE_TITLE
        elif state is ParserState.HAVE_TITLE:
            is_description = len(line) > MIN_DESCRIPTION_LENGTH and not _NUMERIC_RE.match(line)
            emit(line if is_description else None)
            state = ParserState.AWAIT_HEADER

    if state is ParserState.HAVE_TITLE:
        emit(None)

    return entries


def load_timeline_folder(folder: Path | str) -> list[TimelineEntry]:
    """Parse every mapped timeline document in ``folder``.

    ``display_order`` restarts at zero for each document.
    """
    root = Path(folder)
    entries: list[TimelineEntry] = []

    for path in sorted(root.glob("*.docx")):
        if path.name in TIMELINE_SKIP_FILES:
            continue
        subspecialty = TIMELINE_FILE_SUBSPECIALTY_MAP.get(path.name)
        if subspecialty is None:
            LOGGER.warning("Skipping %s: no subspecialty mapping", path.name)
            continue

        try:
            paragraphs = read_docx_paragraphs(path)
        except Exception:
            LOGGER.exception("Failed to read timeline document %s", path)
            continue

        parsed = parse_timeline(paragraphs, subspecialty, source=path.stem)
        LOGGER.info("Parsed timeline file=%s subspecialty=%s entries=%s", path.name, subspecialty.value, len(parsed))
        entries.extend(parsed)

    return entries

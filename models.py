"""Shared typed models for the literature metadata pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from taxonomy import Subspecialty


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ProposalStatus(str, Enum):
    """Review states (pending/approved/skip) and terminal apply states."""

    PENDING = "pending"
    APPROVED = "approved"
    SKIP = "skip"
    APPLIED = "applied"
    ERROR = "error"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (ProposalStatus.APPLIED, ProposalStatus.ERROR, ProposalStatus.SKIPPED)


class GroupType(str, Enum):
    EXACT_FILENAME = "exact_filename"
    SUGGESTED_FILENAME = "suggested_filename"
    CONTENT_HASH = "content_hash"


def parse_confidence_level(raw: str) -> ConfidenceLevel:
    """Parse a confidence level from review-file text; raises ValueError."""
    return ConfidenceLevel(raw.strip().lower())


def parse_proposal_status(raw: str) -> ProposalStatus:
    """Parse a human-edited status cell; blank means pending."""
    value = raw.strip().lower()
    if not value:
        return ProposalStatus.PENDING
    return ProposalStatus(value)


@dataclass(frozen=True, slots=True)
class DocumentRecord:
    """One catalog row. ``path`` is relative to the library root."""

    document_id: str
    filename: str
    path: str
    size: int
    subspecialty: Subspecialty = Subspecialty.GENERAL
    doc_type: str = "ARTICLE"
    title: str | None = None
    author: str | None = None
    year: int | None = None
    journal: str | None = None


@dataclass(frozen=True, slots=True)
class RawDocument:
    """A source file as handed over by the storage layer. Read-only."""

    path: Path
    size: int


@dataclass(frozen=True, slots=True)
class BibMetadata:
    """Bibliographic fields inferred for one document.

    The same shape carries filename-, content-, lookup- and merged-provenance
    records; ``source`` names which one it is.
    """

    author: str | None = None
    year: int | None = None
    journal: str | None = None
    title: str | None = None
    source: str = "filename"

    def has_any(self) -> bool:
        return any(v is not None for v in (self.author, self.year, self.journal, self.title))


@dataclass(frozen=True, slots=True)
class ConfidenceScore:
    score: float
    level: ConfidenceLevel


@dataclass(slots=True)
class RenameProposal:
    """One reviewable rename suggestion produced by a scan pass.

    ``status`` is the only field meant to change after creation: humans move it
    between review states, the apply stage moves it to a terminal state.
    """

    current_path: str
    current_filename: str
    subspecialty: Subspecialty
    metadata: BibMetadata
    suggested_filename: str
    confidence: ConfidenceScore
    status: ProposalStatus = ProposalStatus.PENDING
    text_preview: str = ""
    filename_metadata: BibMetadata = field(default_factory=BibMetadata)


@dataclass(frozen=True, slots=True)
class TimelineEntry:
    """A curated landmark-article record parsed from a timeline document."""

    year: int | None
    author: str | None
    journal: str | None
    title: str
    description: str | None = None
    subspecialty: Subspecialty = Subspecialty.GENERAL
    display_order: int = 0
    entry_id: str = ""


@dataclass(frozen=True, slots=True)
class MatchResult:
    source_entry_id: str
    matched_document_id: str
    confidence: float


@dataclass(slots=True)
class DuplicateFile:
    path: str
    size: int
    subspecialty: Subspecialty
    keep: bool = False
    reason: str = ""


@dataclass(slots=True)
class DuplicateGroup:
    key: str
    group_type: GroupType
    files: list[DuplicateFile]

    @property
    def kept(self) -> DuplicateFile:
        return next(f for f in self.files if f.keep)

    @property
    def removals(self) -> list[DuplicateFile]:
        return [f for f in self.files if not f.keep]


@dataclass(frozen=True, slots=True)
class RollbackEntry:
    old_path: str
    new_path: str
    old_filename: str
    new_filename: str
    document_id: str | None
    catalog_updated: bool = True


class ConfigurationError(RuntimeError):
    """A required path, credential or setting is missing; raised before any work starts."""

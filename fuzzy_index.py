"""In-memory fuzzy text index over catalog documents.

The index is built explicitly by whoever runs the matcher and handed to it.
It never refreshes itself: callers check ``is_stale()`` (age past the TTL, or
``invalidate()`` was called) and call ``rebuild()`` with fresh documents.
"""

from __future__ import annotations

import logging
import os
import time
from typing import TYPE_CHECKING

from rapidfuzz import fuzz, process, utils

from models import DocumentRecord

if TYPE_CHECKING:
    from catalog_store import CatalogStore

LOGGER = logging.getLogger(__name__)

FUZZY_INDEX_TTL_SECONDS = float(os.getenv("FUZZY_INDEX_TTL_SECONDS", "600"))
DEFAULT_SEARCH_LIMIT = 20
DEFAULT_THRESHOLD = 0.4
SEARCH_FIELDS: tuple[str, ...] = ("filename", "title", "author")


class FuzzyIndex:
    def __init__(self, documents: list[DocumentRecord], ttl_seconds: float = FUZZY_INDEX_TTL_SECONDS) -> None:
        self.ttl_seconds = ttl_seconds
        self._documents: dict[str, DocumentRecord] = {}
        self._fields: dict[str, dict[str, str]] = {}
        self._search_text: dict[str, str] = {}
        self._built_at = 0.0
        self._invalidated = False
        self.rebuild(documents)

    @classmethod
    def from_store(cls, store: CatalogStore, ttl_seconds: float = FUZZY_INDEX_TTL_SECONDS) -> FuzzyIndex:
        return cls(store.list_documents(), ttl_seconds=ttl_seconds)

    @property
    def documents(self) -> list[DocumentRecord]:
        return list(self._documents.values())

    def __len__(self) -> int:
        return len(self._documents)

    def rebuild(self, documents: list[DocumentRecord]) -> None:
        self._documents = {doc.document_id: doc for doc in documents}
        self._fields = {name: {} for name in SEARCH_FIELDS}
        self._search_text = {}
        for doc in documents:
            for name in SEARCH_FIELDS:
                value = getattr(doc, name)
                if value:
                    self._fields[name][doc.document_id] = value
            self._search_text[doc.document_id] = " ".join(
                part for part in (doc.filename, doc.title, doc.author, doc.journal) if part
            ).lower()
        self._built_at = time.monotonic()
        self._invalidated = False
        LOGGER.info("Built fuzzy index documents=%s", len(self._documents))

    def invalidate(self) -> None:
        self._invalidated = True

    def is_stale(self) -> bool:
        if self._invalidated:
            return True
        return time.monotonic() - self._built_at > self.ttl_seconds

    def search_text(self, document_id: str) -> str:
        """Lowercase blob of filename, title, author and journal."""
        return self._search_text.get(document_id, "")

    def search(
        self,
        query: str,
        limit: int = DEFAULT_SEARCH_LIMIT,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[tuple[DocumentRecord, float]]:
        """Return up to ``limit`` (document, distance) pairs, closest first.

        Distance is ``1 - WRatio/100`` for the best-matching field, so 0.0 is an
        exact match. Results farther than ``threshold`` are dropped.
        """
        if not query or not query.strip():
            return []

        cutoff = (1.0 - threshold) * 100.0
        best: dict[str, float] = {}
        for name in SEARCH_FIELDS:
            choices = self._fields[name]
            if not choices:
                continue
            for _, score, document_id in process.extract(
                query,
                choices,
                scorer=fuzz.WRatio,
                processor=utils.default_process,
                limit=None,
                score_cutoff=cutoff,
            ):
                if score > best.get(document_id, -1.0):
                    best[document_id] = score

        ranked = sorted(best.items(), key=lambda item: (-item[1], item[0]))[:limit]
        return [(self._documents[doc_id], round(1.0 - score / 100.0, 4)) for doc_id, score in ranked]

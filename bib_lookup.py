"""Best-effort bibliographic lookups by title (Scopus, Crossref).

Lookups are advisory. Network and API errors are retried with exponential
backoff, and whatever still fails comes back as ``None`` so the scan carries
on with filename and content metadata only.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from journals import is_non_medical_journal, map_journal_to_abbrev
from models import BibMetadata, ConfigurationError
from text_similarity import title_overlap

LOGGER = logging.getLogger(__name__)

SCOPUS_SEARCH_URL = "https://api.elsevier.com/content/search/scopus"
CROSSREF_WORKS_URL = "https://api.crossref.org/works"
REQUEST_TIMEOUT_SECONDS = 20
LOOKUP_MIN_INTERVAL_SECONDS = float(os.getenv("LOOKUP_MIN_INTERVAL_SECONDS", "0.1"))
LOOKUP_MAX_ATTEMPTS = int(os.getenv("LOOKUP_MAX_ATTEMPTS", "3"))
LOOKUP_BACKOFF_SECONDS = float(os.getenv("LOOKUP_BACKOFF_SECONDS", "1.0"))

MIN_LOOKUP_TITLE_LENGTH = 15
MIN_TITLE_OVERLAP = 0.4
_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True, slots=True)
class LookupHit:
    title: str
    first_author: str | None
    year: int | None
    journal: str
    doi: str | None = None


class TitleSearchClient(Protocol):
    name: str

    def search_by_title(self, title: str) -> LookupHit | None: ...


class RateLimiter:
    """Enforce a fixed minimum interval between consecutive requests."""

    def __init__(
        self,
        min_interval: float = LOOKUP_MIN_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            now = self._clock()
            if self._last is not None:
                remaining = self.min_interval - (now - self._last)
                if remaining > 0:
                    self._sleep(remaining)
                    now = self._clock()
            self._last = now


def request_with_retry(
    url: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    max_attempts: int = LOOKUP_MAX_ATTEMPTS,
    backoff_seconds: float = LOOKUP_BACKOFF_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> requests.Response:
    """GET with exponential backoff on timeouts, connection errors, 429 and 5xx.

    Raises the last ``requests.RequestException`` once attempts run out;
    other 4xx statuses raise immediately.
    """
    last_error: requests.RequestException | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            response = requests.get(url, params=params, headers=headers, timeout=REQUEST_TIMEOUT_SECONDS)
            if response.status_code in _RETRYABLE_STATUS:
                raise requests.HTTPError(f"Retryable status {response.status_code}", response=response)
            response.raise_for_status()
            return response
        except (requests.Timeout, requests.ConnectionError, requests.HTTPError) as exc:
            status = exc.response.status_code if exc.response is not None else None
            if isinstance(exc, requests.HTTPError) and status not in _RETRYABLE_STATUS:
                raise
            last_error = exc
            if attempt < max_attempts:
                delay = backoff_seconds * (2 ** (attempt - 1))
                LOGGER.warning(
                    "Lookup request failed on attempt %s/%s, retrying in %.1fs: %s",
                    attempt,
                    max_attempts,
                    delay,
                    exc,
                )
                sleep(delay)

    if last_error is None:
        raise ValueError("max_attempts must be at least 1")
    raise last_error


class ScopusClient:
    name = "scopus"

    def __init__(self, api_key: str | None = None, rate_limiter: RateLimiter | None = None) -> None:
        self.api_key = api_key or os.getenv("SCOPUS_API_KEY")
        if not self.api_key:
            raise ConfigurationError("SCOPUS_API_KEY environment variable is required for Scopus lookups")
        self.rate_limiter = rate_limiter or RateLimiter()

    def search_by_title(self, title: str) -> LookupHit | None:
        self.rate_limiter.wait()
        response = request_with_retry(
            SCOPUS_SEARCH_URL,
            params={"query": f'TITLE("{title}")', "count": 1},
            headers={"X-ELS-APIKey": self.api_key, "Accept": "application/json"},
        )
        entries = (response.json().get("search-results") or {}).get("entry") or []
        if not entries or "error" in entries[0]:
            return None

        entry = entries[0]
        creator = (entry.get("dc:creator") or "").strip()
        cover_date = entry.get("prism:coverDate") or ""
        year_text = cover_date.split("-")[0]
        return LookupHit(
            title=entry.get("dc:title") or "",
            first_author=creator.split(",")[0].strip() or None,
            year=int(year_text) if year_text.isdigit() else None,
            journal=entry.get("prism:publicationName") or "",
            doi=entry.get("prism:doi") or None,
        )


class CrossrefClient:
    name = "crossref"

    def __init__(self, mailto: str | None = None, rate_limiter: RateLimiter | None = None) -> None:
        self.mailto = mailto or os.getenv("CROSSREF_MAILTO", "")
        self.rate_limiter = rate_limiter or RateLimiter()

    def search_by_title(self, title: str) -> LookupHit | None:
        self.rate_limiter.wait()
        user_agent = "litcatalog/0.1"
        if self.mailto:
            user_agent += f" (mailto:{self.mailto})"
        response = request_with_retry(
            CROSSREF_WORKS_URL,
            params={"query.title": title, "rows": 1},
            headers={"User-Agent": user_agent},
        )
        items = (response.json().get("message") or {}).get("items") or []
        if not items:
            return None

        item = items[0]
        authors = item.get("author") or []
        containers = item.get("container-title") or []
        titles = item.get("title") or []
        return LookupHit(
            title=titles[0] if titles else "",
            first_author=(authors[0].get("family") or None) if authors else None,
            year=_crossref_year(item),
            journal=containers[0] if containers else "",
            doi=item.get("DOI"),
        )


def _crossref_year(item: dict[str, Any]) -> int | None:
    for field in ("published-print", "published-online", "issued", "created"):
        parts = (item.get(field) or {}).get("date-parts") or []
        if parts and parts[0] and parts[0][0]:
            return int(parts[0][0])
    return None


def lookup_metadata(title: str | None, client: TitleSearchClient) -> BibMetadata | None:
    """Look a title up and sanity-check the hit; None on miss or failure."""
    if not title or len(title) < MIN_LOOKUP_TITLE_LENGTH:
        return None

    try:
        hit = client.search_by_title(title)
    except (requests.RequestException, ValueError) as exc:
        LOGGER.warning("Lookup via %s failed for title=%r: %s", client.name, title[:60], exc)
        return None

    if hit is None:
        return None
    if title_overlap(title, hit.title) < MIN_TITLE_OVERLAP:
        LOGGER.debug("Rejected %s hit with low title overlap: %r", client.name, hit.title[:60])
        return None
    if is_non_medical_journal(hit.journal):
        LOGGER.debug("Rejected %s hit from non-clinical journal: %s", client.name, hit.journal)
        return None

    return BibMetadata(
        author=hit.first_author or None,
        year=hit.year or None,
        journal=map_journal_to_abbrev(hit.journal) or None,
        title=hit.title or None,
        source="lookup",
    )


def build_lookup_client(provider: str) -> TitleSearchClient:
    """Construct the named lookup client; raises ConfigurationError when unusable."""
    if provider == "scopus":
        return ScopusClient()
    if provider == "crossref":
        return CrossrefClient()
    raise ConfigurationError(f"Unknown lookup provider: {provider}")

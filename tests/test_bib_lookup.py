from unittest.mock import MagicMock, patch

import pytest
import requests

from bib_lookup import (
    CrossrefClient,
    LookupHit,
    RateLimiter,
    ScopusClient,
    build_lookup_client,
    lookup_metadata,
    request_with_retry,
)
from models import ConfigurationError

TITLE = "Management of chronic Achilles tendon rupture"


class StubClient:
    name = "stub"

    def __init__(self, hit: LookupHit | None = None, error: Exception | None = None) -> None:
        self.hit = hit
        self.error = error
        self.calls: list[str] = []

    def search_by_title(self, title: str) -> LookupHit | None:
        self.calls.append(title)
        if self.error is not None:
            raise self.error
        return self.hit


def _response(status_code: int, payload: dict | None = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code}", response=response)
    return response


# ---------------------------------------------------------------------------
# request_with_retry
# ---------------------------------------------------------------------------

def test_request_with_retry_recovers_after_timeout() -> None:
    ok = _response(200)
    sleeps: list[float] = []

    with patch("bib_lookup.requests.get", side_effect=[requests.Timeout("slow"), ok]) as mock_get:
        result = request_with_retry("https://example.org", backoff_seconds=0.5, sleep=sleeps.append)

    assert result is ok
    assert mock_get.call_count == 2
    assert sleeps == [0.5]


def test_request_with_retry_does_not_retry_client_errors() -> None:
    with patch("bib_lookup.requests.get", return_value=_response(404)) as mock_get:
        with pytest.raises(requests.HTTPError):
            request_with_retry("https://example.org", sleep=lambda _s: None)

    assert mock_get.call_count == 1


def test_request_with_retry_gives_up_on_persistent_server_errors() -> None:
    sleeps: list[float] = []

    with patch("bib_lookup.requests.get", return_value=_response(503)) as mock_get:
        with pytest.raises(requests.HTTPError):
            request_with_retry("https://example.org", max_attempts=3, backoff_seconds=1.0, sleep=sleeps.append)

    assert mock_get.call_count == 3
    assert sleeps == [1.0, 2.0]


# ---------------------------------------------------------------------------
# lookup_metadata
# ---------------------------------------------------------------------------

def test_lookup_skips_short_titles() -> None:
    client = StubClient()

    assert lookup_metadata("Short title", client) is None
    assert lookup_metadata(None, client) is None
    assert client.calls == []


def test_lookup_failure_is_swallowed() -> None:
    client = StubClient(error=requests.ConnectionError("down"))

    assert lookup_metadata(TITLE, client) is None


def test_lookup_rejects_low_title_overlap() -> None:
    hit = LookupHit(title="Economic burden of hospital billing", first_author="Jones", year=2019, journal="Injury")

    assert lookup_metadata(TITLE, StubClient(hit)) is None


def test_lookup_rejects_non_medical_journal() -> None:
    hit = LookupHit(title=TITLE, first_author="Jones", year=2019, journal="Journal of Business Research")

    assert lookup_metadata(TITLE, StubClient(hit)) is None


def test_lookup_success_maps_journal() -> None:
    hit = LookupHit(
        title="Management of chronic Achilles tendon ruptures",
        first_author="Maffulli",
        year=2015,
        journal="The American Journal of Sports Medicine",
    )

    md = lookup_metadata(TITLE, StubClient(hit))

    assert md is not None
    assert md.author == "Maffulli"
    assert md.year == 2015
    assert md.journal == "AJSM"
    assert md.source == "lookup"


# ---------------------------------------------------------------------------
# Provider clients
# ---------------------------------------------------------------------------

def test_scopus_client_requires_api_key() -> None:
    with patch.dict("os.environ", {}, clear=True):
        with pytest.raises(ConfigurationError, match="SCOPUS_API_KEY"):
            ScopusClient()


def test_build_lookup_client_rejects_unknown_provider() -> None:
    with pytest.raises(ConfigurationError):
        build_lookup_client("pubmed")


def test_scopus_client_parses_first_entry() -> None:
    payload = {
        "search-results": {
            "entry": [{
                "dc:title": TITLE,
                "dc:creator": "Maffulli, N.",
                "prism:coverDate": "2015-03-01",
                "prism:publicationName": "American Journal of Sports Medicine",
                "prism:doi": "10.1177/example",
            }]
        }
    }
    client = ScopusClient(api_key="test-key", rate_limiter=RateLimiter(min_interval=0))

    with patch("bib_lookup.requests.get", return_value=_response(200, payload)) as mock_get:
        hit = client.search_by_title(TITLE)

    assert hit == LookupHit(
        title=TITLE,
        first_author="Maffulli",
        year=2015,
        journal="American Journal of Sports Medicine",
        doi="10.1177/example",
    )
    assert mock_get.call_args.kwargs["headers"]["X-ELS-APIKey"] == "test-key"


def test_scopus_client_empty_result_is_none() -> None:
    payload = {"search-results": {"entry": [{"error": "Result set was empty"}]}}
    client = ScopusClient(api_key="test-key", rate_limiter=RateLimiter(min_interval=0))

    with patch("bib_lookup.requests.get", return_value=_response(200, payload)):
        assert client.search_by_title(TITLE) is None


def test_crossref_client_parses_first_item() -> None:
    payload = {
        "message": {
            "items": [{
                "title": [TITLE],
                "author": [{"family": "Maffulli", "given": "Nicola"}],
                "container-title": ["The American Journal of Sports Medicine"],
                "published-online": {"date-parts": [[2015, 3]]},
                "DOI": "10.1177/example",
            }]
        }
    }
    client = CrossrefClient(mailto="library@example.org", rate_limiter=RateLimiter(min_interval=0))

    with patch("bib_lookup.requests.get", return_value=_response(200, payload)) as mock_get:
        hit = client.search_by_title(TITLE)

    assert hit is not None
    assert hit.first_author == "Maffulli"
    assert hit.year == 2015
    assert hit.journal == "The American Journal of Sports Medicine"
    assert mock_get.call_args.kwargs["params"]["query.title"] == TITLE
    assert "mailto:library@example.org" in mock_get.call_args.kwargs["headers"]["User-Agent"]


def test_crossref_client_no_items() -> None:
    client = CrossrefClient(rate_limiter=RateLimiter(min_interval=0))

    with patch("bib_lookup.requests.get", return_value=_response(200, {"message": {"items": []}})):
        assert client.search_by_title(TITLE) is None


def test_rate_limiter_waits_out_the_interval() -> None:
    now = [0.0]
    sleeps: list[float] = []

    def sleep(seconds: float) -> None:
        sleeps.append(seconds)
        now[0] += seconds

    limiter = RateLimiter(min_interval=1.0, clock=lambda: now[0], sleep=sleep)

    limiter.wait()
    now[0] += 0.25
    limiter.wait()
    now[0] += 5.0
    limiter.wait()

    assert sleeps == [pytest.approx(0.75)]

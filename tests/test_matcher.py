import pytest

from fuzzy_index import FuzzyIndex
from matcher import (
    author_matches,
    find_best_match,
    journal_matches,
    link_unmatched,
    simple_match_confidence,
    strict_filename_match,
)
from models import DocumentRecord, TimelineEntry

NEER = DocumentRecord(
    document_id="neer",
    filename="1972_Neer_JBJS_Anterior Acromioplasty.pdf",
    path="Shoulder/1972_Neer_JBJS_Anterior Acromioplasty.pdf",
    size=1000,
    title="Anterior acromioplasty for chronic impingement",
    author="Neer",
    year=1972,
    journal="JBJS",
)
MAFFULLI = DocumentRecord(
    document_id="maffulli",
    filename="2015_Maffulli_AJSM_Chronic Achilles.pdf",
    path="Foot and Ankle/2015_Maffulli_AJSM_Chronic Achilles.pdf",
    size=2000,
    author="Maffulli",
    year=2015,
    journal="AJSM",
)


@pytest.fixture
def index() -> FuzzyIndex:
    return FuzzyIndex([NEER, MAFFULLI])


def test_exact_title_author_year_is_strong_match(index: FuzzyIndex) -> None:
    entry = TimelineEntry(1972, "Neer", "JBJS", "Anterior acromioplasty for the chronic impingement syndrome", entry_id="e0")

    result = find_best_match(entry, index)

    assert result is not None
    assert result.matched_document_id == "neer"
    assert result.source_entry_id == "e0"
    assert 0.6 <= result.confidence <= 1.0


def test_author_anchored_pass_finds_untitled_document(index: FuzzyIndex) -> None:
    entry = TimelineEntry(2015, "Maffulli", "AJSM", "Management of chronic Achilles tendon rupture", entry_id="e1")

    result = find_best_match(entry, index)

    assert result is not None
    assert result.matched_document_id == "maffulli"
    assert result.confidence > 0.5


def test_reworded_title_matches_catalogued_title() -> None:
    titled = DocumentRecord(
        document_id="maffulli-titled",
        filename="2015_Maffulli_AJSM_Management Of Chronic Achilles Tendon Rupture.pdf",
        path="Foot and Ankle/2015_Maffulli_AJSM_Management Of Chronic Achilles Tendon Rupture.pdf",
        size=2000,
        title="Management Of Chronic Achilles Tendon Rupture",
        author="Maffulli",
        year=2015,
        journal="AJSM",
    )
    entry = TimelineEntry(2015, "Maffulli", "AJSM", "Chronic Achilles Rupture Management", entry_id="e2")

    result = find_best_match(entry, FuzzyIndex([NEER, titled]))

    assert result is not None
    assert result.matched_document_id == "maffulli-titled"
    assert result.confidence > 0.5


def test_missing_author_and_journal_still_matches_on_title(index: FuzzyIndex) -> None:
    entry = TimelineEntry(1972, None, None, "Anterior acromioplasty for chronic impingement")

    result = find_best_match(entry, index)

    assert result is not None
    assert result.matched_document_id == "neer"


def test_unrelated_entry_has_no_match(index: FuzzyIndex) -> None:
    entry = TimelineEntry(2020, "Xu", None, "Zebrafish genome sequencing")

    assert find_best_match(entry, index) is None


def test_journal_matches_uses_aliases() -> None:
    assert journal_matches("JBJS", "Journal of Bone and Joint Surgery 1972")
    assert journal_matches("AJSM", "maffulli ajsm chronic")
    assert not journal_matches("Spine", "lumbar fusion outcomes")
    assert not journal_matches(None, "anything")


def test_author_matches() -> None:
    assert author_matches("Neer, C", None, "1972_Neer_JBJS_Anterior.pdf")
    assert author_matches("Neer", "Charles Neer", "other.pdf")
    assert not author_matches("Li", "Li", "2001_Li_JBJS.pdf")
    assert not author_matches("Rowe", "Smith", "2001_Smith.pdf")


def test_simple_match_confidence_identical_records() -> None:
    entry = TimelineEntry(1972, "Neer", "JBJS", "Anterior acromioplasty for chronic impingement")

    assert simple_match_confidence(entry, NEER) == pytest.approx(1.0)


def test_simple_match_confidence_ignores_missing_fields() -> None:
    entry = TimelineEntry(None, None, None, "Anterior acromioplasty for chronic impingement")
    doc = DocumentRecord("x", "x.pdf", "x.pdf", 1, title="Anterior acromioplasty for chronic impingement")

    assert simple_match_confidence(entry, doc) == pytest.approx(1.0)


def test_link_unmatched_applies_threshold() -> None:
    entries = [
        TimelineEntry(1972, "Neer", "JBJS", "Anterior acromioplasty for chronic impingement", entry_id="hit"),
        TimelineEntry(2020, "Xu", None, "Zebrafish genome sequencing", entry_id="miss"),
    ]

    results = link_unmatched(entries, [NEER, MAFFULLI])

    assert [r.source_entry_id for r in results] == ["hit"]
    assert results[0].matched_document_id == "neer"
    assert results[0].confidence == pytest.approx(1.0)


FILENAMES = ["1972_Neer_JBJS_Anterior.pdf", "1954_Verbiest_JBJS_Lumbar.pdf", "1955_Verbiest_JBJS_Other.pdf"]


@pytest.mark.parametrize(
    ("entry", "expected"),
    [
        (TimelineEntry(1954, "Verbiest", "JBJS", "Lumbar"), "1954_Verbiest_JBJS_Lumbar.pdf"),
        (TimelineEntry(1954, "Verbeist", "JBJS", "Lumbar"), "1954_Verbiest_JBJS_Lumbar.pdf"),
        (TimelineEntry(1972, "Neer", "JBJS", "Anterior"), "1972_Neer_JBJS_Anterior.pdf"),
        (TimelineEntry(1973, "Neer", "JBJS", "Anterior"), None),
        (TimelineEntry(1954, "Xu", "JBJS", "Lumbar"), None),
        (TimelineEntry(None, "Verbiest", "JBJS", "Lumbar"), None),
    ],
)
def test_strict_filename_match(entry: TimelineEntry, expected: str | None) -> None:
    assert strict_filename_match(entry, FILENAMES) == expected

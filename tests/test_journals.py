import pytest

from filename_generator import generate_filename
from filename_parser import parse_filename
from journals import (
    FILENAME_JOURNALS,
    canonical_filename_journal,
    find_journal_token,
    is_non_medical_journal,
    map_journal_to_abbrev,
)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("American Journal of Sports Medicine", "AJSM"),
        ("am j sports med", "AJSM"),
        ("The American Journal of Sports Medicine", "AJSM"),
        ("Journal of Pain Research", "JPain"),
        ("Injury", "Injury"),
        ("Current Opinion in Anaesthesiology", "CurrOpinAnesth"),
        ("Zeitschrift fur Orthopadie", None),
        ("Acta", None),
        ("", None),
    ],
)
def test_map_journal_to_abbrev(name: str, expected: str | None) -> None:
    assert map_journal_to_abbrev(name) == expected


def test_filename_journals_longest_first() -> None:
    lengths = [len(j) for j in FILENAME_JOURNALS]
    assert lengths == sorted(lengths, reverse=True)
    # Abbreviations the pipeline can emit are all readable back from filenames.
    assert "JArthroplasty" in FILENAME_JOURNALS
    assert "SpineJ" in FILENAME_JOURNALS


def test_canonical_filename_journal() -> None:
    assert canonical_filename_journal("spine") == "Spine"
    assert canonical_filename_journal(" jbjs ") == "JBJS"
    assert canonical_filename_journal("Foo") is None


@pytest.mark.parametrize(
    "journal_name",
    [
        "Injury",
        "The Knee",
        "Journal of Pain Research",
        "Pain Medicine",
        "Current Opinion in Anaesthesiology",
        "Journal of Hand Surgery",
        "Hand",
        "The Spine Journal",
        "Journal of Orthopaedics",
        "Bone and Joint Journal",
    ],
)
def test_mapped_journal_survives_filename_round_trip(journal_name: str) -> None:
    journal = map_journal_to_abbrev(journal_name)
    generated = generate_filename("Smith", 2010, journal, "Outcomes of operative treatment")

    reparsed = parse_filename(generated + ".pdf")

    assert reparsed.journal == journal
    assert generate_filename(reparsed.author, reparsed.year, reparsed.journal, reparsed.title) == generated


def test_extra_tokens_are_not_scanned_in_titles() -> None:
    assert canonical_filename_journal("injury") == "Injury"
    assert find_journal_token("knee pain outcomes") is None


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Outcomes-JBJS-2010", "JBJS"),
        ("rotator cuff AJSM.review", "AJSM"),
        ("JBJSX outcomes", None),
        ("notes on corrosion", None),
    ],
)
def test_find_journal_token_requires_delimiters(name: str, expected: str | None) -> None:
    assert find_journal_token(name) == expected


def test_is_non_medical_journal() -> None:
    assert is_non_medical_journal("Journal of Business Research")
    assert not is_non_medical_journal("Journal of Bone and Joint Surgery")

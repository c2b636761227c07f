import pytest

from filename_generator import (
    generate_filename,
    generate_from_metadata,
    replace_unsafe_characters,
    split_camel_case,
    to_title_case,
    truncate_title,
)
from filename_parser import parse_filename
from models import BibMetadata


def test_generate_filename_basic() -> None:
    assert generate_filename("Rowe", 2001, "JAAOS", "DISH") == "2001_Rowe_JAAOS_Dish"


def test_generate_filename_missing_fields_use_placeholders() -> None:
    assert generate_filename(None, None, None, None) == "Unknown_Unknown_Unknown_Untitled"
    assert generate_filename("Rowe", None, "", "  ") == "Unknown_Rowe_Unknown_Untitled"


def test_generate_from_metadata_matches_positional_form() -> None:
    md = BibMetadata(author="Neer", year=1972, journal="JBJS", title="Anterior acromioplasty", source="merged")
    assert generate_from_metadata(md) == generate_filename("Neer", 1972, "JBJS", "Anterior acromioplasty")


def test_replace_unsafe_characters() -> None:
    assert replace_unsafe_characters('a:b/c?"d') == "a-b-cd"
    assert replace_unsafe_characters("Bone & Joint") == "Bone and Joint"
    assert replace_unsafe_characters("one_two") == "one two"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("AdvancesinManagement", "Advances in Management"),
        ("ACLReconstruction", "ACL Reconstruction"),
        ("already spaced words", "already spaced words"),
        ("DISH", "DISH"),
    ],
)
def test_split_camel_case(text: str, expected: str) -> None:
    assert split_camel_case(text) == expected


def test_to_title_case_keeps_minor_words_lower_except_first() -> None:
    assert to_title_case("the role of the ACL in sport") == "The Role of the Acl in Sport"


def test_truncate_title_cuts_at_word_boundary() -> None:
    title = "Anterior Acromioplasty for the Chronic Impingement Syndrome in the Shoulder"
    truncated = truncate_title(title)

    assert truncated == "Anterior Acromioplasty for the Chronic"
    assert len(truncated) <= 50


def test_truncate_title_hard_cut_without_late_space() -> None:
    title = "Short " + "x" * 60
    truncated = truncate_title(title)

    assert len(truncated) == 50
    assert truncated.startswith("Short x")


def test_truncate_title_leaves_short_titles_alone() -> None:
    assert truncate_title("Brief title") == "Brief title"


@pytest.mark.parametrize(
    "metadata",
    [
        BibMetadata(author="Rowe", year=2001, journal="JAAOS", title="DISH"),
        BibMetadata(author="Maffulli", year=2015, journal="AJSM", title="Management of chronic Achilles tendon rupture"),
        BibMetadata(
            author="Neer",
            year=1972,
            journal="JBJS",
            title="Anterior acromioplasty for the chronic impingement syndrome in the shoulder",
        ),
        BibMetadata(author="Hawkins", year=1980, journal="JBJS-A", title="Impingement: a clinical sign?"),
        BibMetadata(author="Smith", year=2019, journal="Spine", title="LumbarFusion outcomes in elderly patients"),
    ],
)
def test_generate_parse_generate_is_stable(metadata: BibMetadata) -> None:
    generated = generate_from_metadata(metadata)
    reparsed = parse_filename(generated + ".pdf")

    assert generate_from_metadata(reparsed) == generated

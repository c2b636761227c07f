from pathlib import Path

import pytest

from content_extractor import (
    clean_author_name,
    extract_author,
    extract_content_metadata,
    extract_journal,
    extract_many,
    extract_pdf_text,
    extract_title,
    extract_year,
)

FIRST_PAGE = """Management of chronic Achilles tendon rupture
Nicola Maffulli, MD
Department of Trauma and Orthopaedic Surgery
The American Journal of Sports Medicine
Copyright © 2015 by the authors
Abstract
Background: chronic ruptures are uncommon."""


def test_extract_content_metadata_from_first_page() -> None:
    md = extract_content_metadata(FIRST_PAGE, current_year=2024)

    assert md.author == "Maffulli"
    assert md.year == 2015
    assert md.journal == "AJSM"
    assert md.title == "Management of chronic Achilles tendon rupture"
    assert md.source == "content"


def test_extract_author_last_first_form() -> None:
    assert extract_author("Some header\nSmith, John and Doe, Jane\n") == "Smith"


def test_extract_author_name_line_before_institution() -> None:
    text = "Study of outcomes\nJohn A. Matsen\nUniversity of Washington\n"
    assert extract_author(text) == "Matsen"


def test_extract_author_skips_denylisted_words() -> None:
    text = "Shoulder Arthroplasty, MD\nKnee, Hip and Elbow\n"
    assert extract_author(text) is None


def test_clean_author_name() -> None:
    assert clean_author_name("Frederick A. Matsen et al.") == "Matsen"
    assert clean_author_name("John Smith, MD") == "Smith"
    assert clean_author_name("Smith") == "Smith"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Received: March 2012; accepted 2013", 2012),
        ("Volume 12, No. 3, March 2009", 2009),
        ("Data from 2003 and 2003 compared with 1998", 2003),
        ("Cohorts from 2001 and 2005", 2001),
        ("Projections for 2030 2030 based on 2010", 2010),
        ("No years in here", None),
    ],
)
def test_extract_year(text: str, expected: int | None) -> None:
    assert extract_year(text, current_year=2024) == expected


def test_extract_year_ignores_marker_outside_range() -> None:
    assert extract_year("Copyright 1890. Later cited in 1999 and 1999", current_year=2024) == 1999


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Published in the Journal of Bone and Joint Surgery", "JBJS"),
        ("HAND CLINICS 2010; see also Clin Orthop Relat Res", "HandClin"),
        ("j orthop trauma 2011", "JOT"),
        ("We jotted down notes", None),
        ("", None),
    ],
)
def test_extract_journal(text: str, expected: str | None) -> None:
    assert extract_journal(text) == expected


def test_extract_journal_reads_tail_of_long_text() -> None:
    text = "x" * 10000 + " Foot Ankle Int"
    assert extract_journal(text) == "FAI"


def test_extract_title_skips_boilerplate() -> None:
    text = "\n".join([
        "See discussions, stats, and author profiles for this publication",
        "ORIGINAL RESEARCH ARTICLE IN CAPS",
        "doi: 10.1000/xyz123",
        "Outcomes of arthroscopic rotator cuff repair",
    ])
    assert extract_title(text) == "Outcomes of arthroscopic rotator cuff repair"


def test_extract_title_none_when_nothing_qualifies() -> None:
    assert extract_title("short\n12345678901234567\n") is None


def test_extract_pdf_text_failure_is_reported_not_raised(tmp_path: Path) -> None:
    result = extract_pdf_text(tmp_path / "missing.pdf")

    assert result.text == ""
    assert result.failed
    assert result.preview.startswith("Error extracting PDF:")


def test_extract_many_keeps_input_order(tmp_path: Path) -> None:
    paths = [tmp_path / f"missing-{i}.pdf" for i in range(5)]
    results = extract_many(paths, workers=3)

    assert len(results) == 5
    assert all(r.failed for r in results)
    assert all(f"missing-{i}.pdf" in r.preview for i, r in enumerate(results))


def test_extract_many_empty() -> None:
    assert extract_many([]) == []

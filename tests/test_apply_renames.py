from dataclasses import replace
from pathlib import Path

import pytest

from apply_renames import ApplyResult, apply_proposals, unique_target
from catalog_store import CatalogError, CatalogStore
from models import (
    BibMetadata,
    ConfidenceLevel,
    ConfidenceScore,
    DocumentRecord,
    ProposalStatus,
    RenameProposal,
)
from taxonomy import Subspecialty

CURRENT = "Rowe et al DISH.pdf"


def _proposal(status: ProposalStatus = ProposalStatus.APPROVED, current_path: str = f"Trauma/{CURRENT}") -> RenameProposal:
    return RenameProposal(
        current_path=current_path,
        current_filename=current_path.rsplit("/", 1)[-1],
        subspecialty=Subspecialty.TRAUMA,
        metadata=BibMetadata(author="Rowe", year=2001, journal="JAAOS", title="DISH", source="merged"),
        suggested_filename="2001_Rowe_JAAOS_Dish",
        confidence=ConfidenceScore(0.75, ConfidenceLevel.HIGH),
        status=status,
    )


@pytest.fixture
def library(tmp_path: Path) -> Path:
    root = tmp_path / "library"
    (root / "Trauma").mkdir(parents=True)
    (root / "Trauma" / CURRENT).write_bytes(b"%PDF-1.4 rowe")
    return root


@pytest.fixture
def store(tmp_path: Path) -> CatalogStore:
    catalog = CatalogStore(tmp_path / "documents.csv")
    catalog.upsert_document(DocumentRecord(
        document_id="doc-1",
        filename=CURRENT,
        path=f"Trauma/{CURRENT}",
        size=13,
        subspecialty=Subspecialty.TRAUMA,
        title="Rowe et al DISH",
    ))
    return catalog


def test_apply_renames_file_and_updates_catalog(library: Path, store: CatalogStore) -> None:
    proposal = _proposal()

    result = apply_proposals([proposal], library, store)

    assert result.applied == 1
    assert proposal.status is ProposalStatus.APPLIED
    assert (library / "Trauma" / "2001_Rowe_JAAOS_Dish.pdf").exists()
    assert not (library / "Trauma" / CURRENT).exists()

    doc = store.get_document("doc-1")
    assert doc.filename == "2001_Rowe_JAAOS_Dish.pdf"
    assert doc.path == "Trauma/2001_Rowe_JAAOS_Dish.pdf"
    assert doc.title == "DISH"
    assert doc.journal == "JAAOS"

    assert len(result.rollback) == 1
    assert result.rollback[0].document_id == "doc-1"
    assert result.rollback[0].catalog_updated is True


def test_second_apply_is_a_no_op(library: Path, store: CatalogStore) -> None:
    proposals = [_proposal()]
    apply_proposals(proposals, library, store)

    again = apply_proposals(proposals, library, store)

    assert (again.applied, again.errors, again.skipped) == (0, 0, 0)
    assert proposals[0].status.is_terminal
    assert list((library / "Trauma").iterdir()) == [library / "Trauma" / "2001_Rowe_JAAOS_Dish.pdf"]


def test_only_approved_proposals_are_touched(library: Path, store: CatalogStore) -> None:
    for status in (ProposalStatus.PENDING, ProposalStatus.SKIP):
        proposal = _proposal(status)
        result = apply_proposals([proposal], library, store)

        assert result.applied == 0
        assert proposal.status is status
    assert (library / "Trauma" / CURRENT).exists()


def test_catalog_failure_is_recorded_for_rollback(
    library: Path, store: CatalogStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    def fail(*_args, **_kwargs):
        raise CatalogError("disk full")

    monkeypatch.setattr(store, "update_document", fail)
    proposal = _proposal()

    result = apply_proposals([proposal], library, store)

    assert result.errors == 1
    assert result.applied == 0
    assert proposal.status is ProposalStatus.ERROR
    assert result.rollback[0].catalog_updated is False
    assert (library / "Trauma" / "2001_Rowe_JAAOS_Dish.pdf").exists()


def test_name_collision_gets_numeric_suffix(library: Path, store: CatalogStore) -> None:
    (library / "Trauma" / "2001_Rowe_JAAOS_Dish.pdf").write_bytes(b"other")

    result = apply_proposals([_proposal()], library, store)

    assert result.rollback[0].new_filename == "2001_Rowe_JAAOS_Dish_1.pdf"
    assert (library / "Trauma" / "2001_Rowe_JAAOS_Dish.pdf").read_bytes() == b"other"


def test_dry_run_changes_nothing(library: Path, store: CatalogStore) -> None:
    proposal = _proposal()

    result = apply_proposals([proposal], library, store, dry_run=True)

    assert result.dry_run
    assert result.applied == 1
    assert result.rollback == []
    assert proposal.status is ProposalStatus.APPROVED
    assert (library / "Trauma" / CURRENT).exists()
    assert store.get_document("doc-1").filename == CURRENT


def test_missing_file_is_skipped(library: Path, store: CatalogStore) -> None:
    proposal = _proposal(current_path="Trauma/Gone.pdf")

    result = apply_proposals([proposal], library, store)

    assert result.skipped == 1
    assert proposal.status is ProposalStatus.SKIPPED


def test_paths_outside_library_are_skipped_and_batch_continues(
    library: Path, store: CatalogStore, tmp_path: Path
) -> None:
    outside = tmp_path / "outside.pdf"
    outside.write_bytes(b"%PDF-1.4 elsewhere")
    first = _proposal()
    absolute = _proposal(current_path=str(outside))
    escaping = _proposal(current_path="../outside.pdf")

    result = apply_proposals([first, absolute, escaping], library, store)

    assert first.status is ProposalStatus.APPLIED
    assert absolute.status is ProposalStatus.SKIPPED
    assert escaping.status is ProposalStatus.SKIPPED
    assert (result.applied, result.skipped, result.errors) == (1, 2, 0)
    assert [entry.new_filename for entry in result.rollback] == ["2001_Rowe_JAAOS_Dish.pdf"]
    assert outside.exists()


def test_file_already_named_canonically_is_left_alone(library: Path, store: CatalogStore) -> None:
    (library / "Trauma" / CURRENT).rename(library / "Trauma" / "2001_Rowe_JAAOS_Dish.pdf")
    proposal = _proposal(current_path="Trauma/2001_Rowe_JAAOS_Dish.pdf")

    result = apply_proposals([proposal], library, store)

    assert result.skipped == 1
    assert proposal.status is ProposalStatus.SKIPPED
    assert sorted(p.name for p in (library / "Trauma").iterdir()) == ["2001_Rowe_JAAOS_Dish.pdf"]


def test_caller_result_collects_progress(library: Path, store: CatalogStore) -> None:
    result = ApplyResult()

    returned = apply_proposals([_proposal()], library, store, result=result)

    assert returned is result
    assert result.applied == 1
    assert len(result.rollback) == 1


def test_bare_filename_resolves_through_catalog(library: Path, store: CatalogStore) -> None:
    proposal = replace(_proposal(), current_path="Rowe-DISH")

    result = apply_proposals([proposal], library, store)

    assert result.applied == 1
    assert (library / "Trauma" / "2001_Rowe_JAAOS_Dish.pdf").exists()


def test_uncatalogued_file_is_still_renamed(library: Path, tmp_path: Path) -> None:
    empty = CatalogStore(tmp_path / "empty.csv")

    result = apply_proposals([_proposal()], library, empty)

    assert result.applied == 1
    assert result.rollback[0].document_id is None


def test_unique_target(tmp_path: Path) -> None:
    (tmp_path / "a.pdf").write_bytes(b"")
    (tmp_path / "a_1.pdf").write_bytes(b"")

    assert unique_target(tmp_path, "a.pdf") == tmp_path / "a_2.pdf"
    assert unique_target(tmp_path, "b.pdf") == tmp_path / "b.pdf"

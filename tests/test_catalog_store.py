from pathlib import Path

import pytest

import catalog_store
from catalog_store import CatalogError, CatalogStore, ReferenceStore
from models import DocumentRecord, MatchResult, TimelineEntry
from taxonomy import Subspecialty

DOC = DocumentRecord(
    document_id="doc-1",
    filename="Rowe DISH.pdf",
    path="Trauma/Rowe DISH.pdf",
    size=1234,
    subspecialty=Subspecialty.TRAUMA,
    author="Rowe",
    year=2001,
)


def test_upsert_and_reload(tmp_path: Path) -> None:
    path = tmp_path / "documents.csv"
    store = CatalogStore(path)
    store.upsert_document(DOC)

    reloaded = CatalogStore(path)

    assert reloaded.get_document("doc-1") == DOC
    assert reloaded.find_by_filename("Rowe DISH.pdf") == DOC
    assert reloaded.find_by_path("Trauma\\Rowe DISH.pdf") == DOC
    assert reloaded.list_documents(Subspecialty.SPINE) == []


def test_default_path_comes_from_module_setting(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(catalog_store, "CATALOG_DOCUMENTS_PATH", str(tmp_path / "env.csv"))

    store = CatalogStore()
    store.upsert_documents([DOC])

    assert (tmp_path / "env.csv").exists()


def test_update_document_changes_fields(tmp_path: Path) -> None:
    store = CatalogStore(tmp_path / "documents.csv")
    store.upsert_document(DOC)

    updated = store.update_document("doc-1", filename="2001_Rowe_JAAOS_Dish.pdf", journal="JAAOS")

    assert updated.filename == "2001_Rowe_JAAOS_Dish.pdf"
    assert CatalogStore(tmp_path / "documents.csv").get_document("doc-1").journal == "JAAOS"


def test_update_document_rejects_unknown_id_and_field(tmp_path: Path) -> None:
    store = CatalogStore(tmp_path / "documents.csv")
    store.upsert_document(DOC)

    with pytest.raises(CatalogError):
        store.update_document("missing", title="x")
    with pytest.raises(CatalogError):
        store.update_document("doc-1", document_id="other")


def test_failed_save_keeps_previous_record(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = CatalogStore(tmp_path / "documents.csv")
    store.upsert_document(DOC)

    def failing_write(*_args, **_kwargs) -> None:
        raise CatalogError("disk full")

    monkeypatch.setattr(catalog_store, "_atomic_write", failing_write)

    with pytest.raises(CatalogError):
        store.update_document("doc-1", title="New title")

    assert store.get_document("doc-1") == DOC


def test_reference_store_links(tmp_path: Path) -> None:
    path = tmp_path / "references.csv"
    entries = [
        TimelineEntry(1954, "Verbiest", "JBJS", "Lumbar canal", subspecialty=Subspecialty.SPINE, entry_id="SPINE#0"),
        TimelineEntry(1972, "Neer", "JBJS", "Acromioplasty", display_order=1, entry_id="SPINE#1"),
    ]
    store = ReferenceStore(path)
    store.replace_entries(entries, [MatchResult("SPINE#0", "doc-1", 0.8123)])

    assert [e.entry_id for e in store.list_entries(unmatched_only=True)] == ["SPINE#1"]

    store.update_match("SPINE#1", "doc-2", 0.5)
    reloaded = ReferenceStore(path)

    assert reloaded.list_entries() == entries
    assert reloaded.get_link("SPINE#0") == ("doc-1", pytest.approx(0.8123))
    assert reloaded.get_link("SPINE#1") == ("doc-2", 0.5)
    assert reloaded.list_entries(unmatched_only=True) == []


def test_reference_store_unknown_entry(tmp_path: Path) -> None:
    store = ReferenceStore(tmp_path / "references.csv")

    with pytest.raises(CatalogError):
        store.update_match("nope", None, None)

from hallguard.config import STORAGE_QUOTA_MB
from hallguard.models import Chunk, Document
from hallguard.storage import JsonFileStore


def _doc(doc_id: str, created_at: int) -> Document:
    return Document(id=doc_id, title=doc_id.upper(), created_at=created_at, bytes=10)


def test_documents_are_listed_newest_first(tmp_path) -> None:
    store = JsonFileStore(tmp_path)
    store.save_document(_doc("doc_old", 1))
    store.save_document(_doc("doc_new", 2))
    assert [d.id for d in store.list_documents()] == ["doc_new", "doc_old"]
    assert store.get_document("doc_old").title == "DOC_OLD"
    assert store.get_document("doc_missing") is None


def test_chunks_come_back_in_index_order(tmp_path) -> None:
    store = JsonFileStore(tmp_path)
    store.save_chunks(
        "doc_a",
        [
            Chunk(idx=1, start=5, end=10, text="world"),
            Chunk(idx=0, start=0, end=5, text="hello"),
        ],
    )
    assert [c.text for c in store.get_chunks("doc_a")] == ["hello", "world"]
    assert store.get_chunks("doc_b") == []


def test_delete_document_removes_all_collections(tmp_path) -> None:
    store = JsonFileStore(tmp_path)
    store.save_document(_doc("doc_a", 1))
    store.save_chunks("doc_a", [Chunk(idx=0, start=0, end=1, text="x")])
    store.delete_document("doc_a")
    assert store.get_document("doc_a") is None
    assert store.get_chunks("doc_a") == []
    assert store.get_vectors("doc_a") == []
    # Deleting twice is harmless.
    store.delete_document("doc_a")


def test_clear_all_wipes_everything(tmp_path) -> None:
    store = JsonFileStore(tmp_path)
    store.save_document(_doc("doc_a", 1))
    store.save_document(_doc("doc_b", 2))
    store.clear_all()
    assert store.list_documents() == []


def test_storage_estimate_reports_usage_and_quota(tmp_path) -> None:
    store = JsonFileStore(tmp_path)
    assert store.storage_estimate().used == 0
    store.save_document(_doc("doc_a", 1))
    est = store.storage_estimate()
    assert est.used > 0
    assert est.quota == STORAGE_QUOTA_MB * 1024 * 1024


def test_rejects_path_like_ids(tmp_path) -> None:
    store = JsonFileStore(tmp_path)
    try:
        store.get_document("../escape")
        raise AssertionError("Expected ValueError for path-like id.")
    except ValueError as exc:
        assert "Invalid document id" in str(exc)

"""Local persistence for documents, chunks and vectors."""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Protocol

from hallguard.config import STORAGE_QUOTA_MB
from hallguard.models import Chunk, Document, StorageEstimate, VectorRecord

log = logging.getLogger(__name__)


class DocumentStore(Protocol):
    def save_document(self, doc: Document) -> None: ...

    def get_document(self, doc_id: str) -> Document | None: ...

    def list_documents(self) -> list[Document]: ...

    def delete_document(self, doc_id: str) -> None: ...

    def clear_all(self) -> None: ...

    def save_chunks(self, doc_id: str, chunks: list[Chunk]) -> None: ...

    def get_chunks(self, doc_id: str) -> list[Chunk]: ...

    def save_vectors(self, doc_id: str, records: list[VectorRecord]) -> None: ...

    def get_vectors(self, doc_id: str) -> list[VectorRecord]: ...

    def delete_vectors(self, doc_id: str) -> None: ...

    def storage_estimate(self) -> StorageEstimate: ...


def _safe_name(doc_id: str) -> str:
    if not doc_id or any(sep in doc_id for sep in ("/", "\\", "..")):
        raise ValueError(f"Invalid document id: {doc_id!r}")
    return f"{doc_id}.json"


class JsonFileStore:
    """One JSON file per document and collection under ``root``."""

    COLLECTIONS = ("docs", "chunks", "vectors")

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser().resolve()
        for name in self.COLLECTIONS:
            (self.root / name).mkdir(parents=True, exist_ok=True)

    def _path(self, collection: str, doc_id: str) -> Path:
        return self.root / collection / _safe_name(doc_id)

    def _write(self, path: Path, payload) -> None:
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=True)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _read(self, path: Path):
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    # Documents

    def save_document(self, doc: Document) -> None:
        self._write(self._path("docs", doc.id), doc.model_dump())

    def get_document(self, doc_id: str) -> Document | None:
        payload = self._read(self._path("docs", doc_id))
        return Document.model_validate(payload) if payload is not None else None

    def list_documents(self) -> list[Document]:
        docs = [
            Document.model_validate(json.loads(path.read_text(encoding="utf-8")))
            for path in (self.root / "docs").glob("*.json")
        ]
        docs.sort(key=lambda d: (d.created_at, d.id), reverse=True)
        return docs

    def delete_document(self, doc_id: str) -> None:
        for name in self.COLLECTIONS:
            self._path(name, doc_id).unlink(missing_ok=True)

    def clear_all(self) -> None:
        for name in self.COLLECTIONS:
            shutil.rmtree(self.root / name, ignore_errors=True)
            (self.root / name).mkdir(parents=True, exist_ok=True)

    # Chunks

    def save_chunks(self, doc_id: str, chunks: list[Chunk]) -> None:
        self._write(self._path("chunks", doc_id), [c.model_dump() for c in chunks])

    def get_chunks(self, doc_id: str) -> list[Chunk]:
        rows = self._read(self._path("chunks", doc_id)) or []
        chunks = [Chunk.model_validate(row) for row in rows]
        chunks.sort(key=lambda c: c.idx)
        return chunks

    # Vectors

    def save_vectors(self, doc_id: str, records: list[VectorRecord]) -> None:
        self._write(self._path("vectors", doc_id), [r.model_dump() for r in records])

    def get_vectors(self, doc_id: str) -> list[VectorRecord]:
        rows = self._read(self._path("vectors", doc_id)) or []
        return [VectorRecord.model_validate(row) for row in rows]

    def delete_vectors(self, doc_id: str) -> None:
        self._path("vectors", doc_id).unlink(missing_ok=True)

    def storage_estimate(self) -> StorageEstimate:
        """Best-effort byte usage; zeros when the directory cannot be scanned."""
        try:
            used = sum(p.stat().st_size for p in self.root.rglob("*.json") if p.is_file())
        except OSError as exc:
            log.warning("Storage estimate unavailable: %s", exc)
            return StorageEstimate()
        return StorageEstimate(used=used, quota=STORAGE_QUOTA_MB * 1024 * 1024)

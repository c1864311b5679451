"""Per-document vector index with exact cosine ranking."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

import numpy as np

from hallguard.errors import EmbedderMismatch, NoEmbeddingsForDocument
from hallguard.models import VectorRecord
from hallguard.storage import DocumentStore

log = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Dot product over norms on the shared length; 0.0 for empty or zero vectors."""
    av = np.asarray(a, dtype=np.float64).ravel()
    bv = np.asarray(b, dtype=np.float64).ravel()
    n = min(av.size, bv.size)
    if n == 0:
        return 0.0
    av, bv = av[:n], bv[:n]
    na = float(np.dot(av, av))
    nb = float(np.dot(bv, bv))
    if na == 0.0 or nb == 0.0:
        return 0.0
    sim = float(np.dot(av, bv)) / ((na**0.5) * (nb**0.5))
    return max(-1.0, min(1.0, sim))


def _to_record(doc_id: str, position: int, row: Any) -> VectorRecord:
    data = row.model_dump() if isinstance(row, VectorRecord) else dict(row)
    data.pop("docId", None)
    idx = data.get("idx")
    idx = position if idx is None else int(idx)
    data["idx"] = idx
    data["doc_id"] = doc_id
    data["id"] = str(data.get("id") or f"{doc_id}:{idx}")
    data["text"] = str(data.get("text", ""))
    data.setdefault("vector", [])
    return VectorRecord.model_validate(data)


class VectorIndex:
    """Vectors keyed by ``(doc_id, idx)``, persisted through a ``DocumentStore``.

    Ranking is a full sort: per-document chunk counts are in the hundreds.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def save(self, doc_id: str, rows: Iterable[Any]) -> list[VectorRecord]:
        records = [_to_record(doc_id, i, row) for i, row in enumerate(rows)]
        self._store.save_vectors(doc_id, records)
        log.info("Saved %d vectors for %s", len(records), doc_id)
        return records

    def query(self, doc_id: str) -> list[VectorRecord]:
        return self._store.get_vectors(doc_id)

    def query_for(self, doc_id: str, signature: str) -> list[VectorRecord]:
        """Rows for ``doc_id`` that can be ranked against vectors from ``signature``.

        Raises ``NoEmbeddingsForDocument`` when nothing is stored and
        ``EmbedderMismatch`` when a row was tagged by a different embedder.
        Untagged rows are accepted as is.
        """
        rows = self.query(doc_id)
        if not rows:
            raise NoEmbeddingsForDocument(doc_id)
        for row in rows:
            if row.embedder is not None and row.embedder != signature:
                raise EmbedderMismatch(doc_id, row.embedder, signature)
        return rows

    def exists(self, doc_id: str) -> bool:
        return len(self._store.get_vectors(doc_id)) > 0

    def delete(self, doc_id: str) -> None:
        self._store.delete_vectors(doc_id)

    @staticmethod
    def rank(
        query_vector: Sequence[float],
        records: Sequence[VectorRecord],
        k: int,
    ) -> list[tuple[VectorRecord, float]]:
        if not records:
            return []
        kk = max(1, min(k, len(records)))
        scored = [(record, cosine_similarity(query_vector, record.vector)) for record in records]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:kk]

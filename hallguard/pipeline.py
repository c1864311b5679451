"""Source library: ingestion, embedding computation and semantic search."""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from hallguard.config import (
    CHUNK_OVERLAP_CHARS,
    CHUNK_WINDOW_CHARS,
    MAX_EMBED_CHUNKS,
    TOP_K_PER_CLAIM,
)
from hallguard.embeddings import Embedder, ProgressCallback, StepCallback
from hallguard.errors import EmbeddingInProgress, UnknownDocument
from hallguard.ingest import UploadedDoc, chunk_text, read_source_file, read_uploaded_file
from hallguard.models import Chunk, Document, SourceType, StorageEstimate, VectorRecord
from hallguard.retrieval import RetrievalOrchestrator
from hallguard.storage import DocumentStore
from hallguard.vector_index import VectorIndex

log = logging.getLogger(__name__)


def new_document_id() -> str:
    return f"doc_{uuid.uuid4().hex[:12]}"


class SourceLibrary:
    """Documents, their chunks and vectors, plus the retriever built on them."""

    def __init__(
        self,
        store: DocumentStore,
        embedder: Embedder,
        *,
        window_size: int = CHUNK_WINDOW_CHARS,
        overlap: int = CHUNK_OVERLAP_CHARS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.index = VectorIndex(store)
        self.retriever = RetrievalOrchestrator(embedder, self.index)
        self.window_size = window_size
        self.overlap = overlap
        self._clock = clock
        self._embedding_docs: set[str] = set()

    # Ingestion

    def ingest_text(
        self,
        text: str,
        source_type: SourceType = "pasted",
        title: str | None = None,
    ) -> tuple[Document, list[Chunk]]:
        chunks = chunk_text(text, self.window_size, self.overlap)
        if not chunks:
            raise ValueError("Nothing to ingest: the source text is empty.")
        now = self._clock()
        if title is None:
            stamp = datetime.fromtimestamp(now).strftime("%H:%M:%S")
            title = f"Pasted source {stamp}" if source_type == "pasted" else "Source"
        doc = Document(
            id=new_document_id(),
            title=title,
            source_type=source_type,
            created_at=int(now * 1000),
            bytes=len(text.encode("utf-8")),
        )
        self.store.save_document(doc)
        self.store.save_chunks(doc.id, chunks)
        log.info("Ingested %s (%s): %d chunks", doc.id, doc.title, len(chunks))
        return doc, chunks

    def ingest_file(self, path: str | Path) -> tuple[Document, list[Chunk]]:
        text, source_type = read_source_file(path)
        return self.ingest_text(text, source_type=source_type, title=Path(path).name)

    def ingest_upload(self, uploaded: UploadedDoc) -> tuple[Document, list[Chunk]]:
        text, source_type = read_uploaded_file(uploaded)
        return self.ingest_text(text, source_type=source_type, title=uploaded.name)

    # Catalogue

    def list_documents(self) -> list[Document]:
        return self.store.list_documents()

    def get_chunks(self, doc_id: str) -> list[Chunk]:
        return self.store.get_chunks(doc_id)

    def delete_document(self, doc_id: str) -> None:
        self.store.delete_document(doc_id)
        self.index.delete(doc_id)
        log.info("Deleted %s", doc_id)

    def clear_all(self) -> None:
        self.store.clear_all()
        log.info("Cleared all local data")

    def has_vectors(self, doc_id: str) -> bool:
        return self.index.exists(doc_id)

    def storage_estimate(self) -> StorageEstimate:
        return self.store.storage_estimate()

    # Embeddings

    def is_embedding(self, doc_id: str) -> bool:
        return doc_id in self._embedding_docs

    async def compute_embeddings(
        self,
        doc_id: str,
        *,
        on_progress: ProgressCallback | None = None,
        on_step: StepCallback | None = None,
        limit: int = MAX_EMBED_CHUNKS,
    ) -> list[VectorRecord]:
        """Embed the document's chunks (first ``limit``) and replace its vectors.

        Only one run per document may be in flight; a second call raises
        ``EmbeddingInProgress`` instead of interleaving writes.
        """
        if doc_id in self._embedding_docs:
            raise EmbeddingInProgress(doc_id)
        if self.store.get_document(doc_id) is None:
            raise UnknownDocument(doc_id)
        chunks = self.store.get_chunks(doc_id)
        if not chunks:
            raise ValueError(f"Document {doc_id!r} has no chunks to embed.")

        self._embedding_docs.add(doc_id)
        try:
            await self.embedder.load(on_progress)
            batch = chunks[: max(1, limit)]
            if len(batch) < len(chunks):
                log.warning("Embedding %d of %d chunks for %s", len(batch), len(chunks), doc_id)
            vectors = await self.embedder.embed_many([c.text for c in batch], on_step)
            rows = [
                {
                    "id": f"{doc_id}:{c.idx}",
                    "idx": c.idx,
                    "text": c.text,
                    "start": c.start,
                    "end": c.end,
                    "vector": vector,
                    "embedder": self.embedder.signature,
                }
                for c, vector in zip(batch, vectors, strict=True)
            ]
            return self.index.save(doc_id, rows)
        finally:
            self._embedding_docs.discard(doc_id)

    async def semantic_search(
        self,
        doc_id: str,
        query: str,
        k: int = TOP_K_PER_CLAIM,
    ) -> list[tuple[VectorRecord, float]]:
        if not query.strip():
            return []
        rows = self.index.query_for(doc_id, self.embedder.signature)
        query_vector = await self.embedder.embed_one(query)
        return self.index.rank(query_vector, rows, k)

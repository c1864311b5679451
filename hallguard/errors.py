"""Failure taxonomy shared across the review pipeline."""

from __future__ import annotations


class HallGuardError(RuntimeError):
    """Base class for failures surfaced to the caller of a review action."""


class NoEmbeddingsForDocument(HallGuardError):
    def __init__(self, doc_id: str) -> None:
        super().__init__(
            f"No embeddings stored for document {doc_id!r}. Compute embeddings first."
        )
        self.doc_id = doc_id


class EmbedderUnavailable(HallGuardError):
    """Raised when the embedding backend fails to load or to embed."""


class EmbeddingInProgress(HallGuardError):
    def __init__(self, doc_id: str) -> None:
        super().__init__(f"Embeddings for document {doc_id!r} are already being computed.")
        self.doc_id = doc_id


class UnknownDocument(HallGuardError):
    def __init__(self, doc_id: str) -> None:
        super().__init__(f"Unknown document {doc_id!r}.")
        self.doc_id = doc_id


class DraftGenerationFailure(HallGuardError):
    """Raised by the LLM draft path; always converted into the template fallback."""


class EmbedderMismatch(HallGuardError):
    def __init__(self, doc_id: str, stored: str, active: str) -> None:
        super().__init__(
            f"Document {doc_id!r} was embedded with {stored!r} but the active embedder is "
            f"{active!r}. Recompute embeddings or switch back."
        )
        self.doc_id = doc_id
        self.stored = stored
        self.active = active

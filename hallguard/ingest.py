"""Source text loading and character-window chunking."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import fitz

from hallguard.config import CHUNK_OVERLAP_CHARS, CHUNK_WINDOW_CHARS, MAX_UPLOAD_FILE_MB
from hallguard.models import Chunk, SourceType

TEXT_EXTENSIONS = {".txt", ".md", ".rst", ".json", ".csv"}
ALLOWED_EXTENSIONS = TEXT_EXTENSIONS | {".pdf"}


class UploadedDoc(Protocol):
    name: str

    def getvalue(self) -> bytes: ...


def validate_extension(filename: str) -> str:
    ext = Path(filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        allowed = ", ".join(sorted(ALLOWED_EXTENSIONS))
        raise ValueError(f"Unsupported file extension '{ext}'. Allowed: {allowed}.")
    return ext


def validate_upload_size(size_bytes: int) -> None:
    max_bytes = MAX_UPLOAD_FILE_MB * 1024 * 1024
    if size_bytes > max_bytes:
        raise ValueError(f"File exceeds size limit ({MAX_UPLOAD_FILE_MB} MB).")


def _pdf_pages_to_text(pdf: fitz.Document) -> str:
    parts: list[str] = []
    for number, page in enumerate(pdf, start=1):
        page_text = " ".join(page.get_text("text").split())
        parts.append(f"--- Page {number} ---\n{page_text}")
    return "\n\n".join(parts)


def _read_pdf(path: Path) -> str:
    with fitz.open(path) as pdf:
        return _pdf_pages_to_text(pdf)


def _read_pdf_bytes(raw: bytes) -> str:
    with fitz.open(stream=raw, filetype="pdf") as pdf:
        return _pdf_pages_to_text(pdf)


def _source_type_for(ext: str) -> SourceType:
    return "pdf" if ext == ".pdf" else "file"


def read_source_file(path: str | Path) -> tuple[str, SourceType]:
    """Return the text of a local source file and its source type."""
    resolved = Path(path).expanduser().resolve()
    if not resolved.exists() or not resolved.is_file():
        raise FileNotFoundError(f"File not found: {resolved}")
    ext = validate_extension(resolved.name)
    validate_upload_size(resolved.stat().st_size)
    if ext == ".pdf":
        return _read_pdf(resolved), "pdf"
    return resolved.read_text(encoding="utf-8", errors="ignore"), _source_type_for(ext)


def read_uploaded_file(uploaded: UploadedDoc) -> tuple[str, SourceType]:
    ext = validate_extension(uploaded.name)
    raw = uploaded.getvalue()
    validate_upload_size(len(raw))
    if ext == ".pdf":
        return _read_pdf_bytes(raw), "pdf"
    return raw.decode("utf-8", errors="ignore"), _source_type_for(ext)


def normalize_source_text(text: str) -> str:
    return text.replace("\r\n", "\n").strip()


def chunk_text(
    text: str,
    window_size: int = CHUNK_WINDOW_CHARS,
    overlap: int = CHUNK_OVERLAP_CHARS,
) -> list[Chunk]:
    """Split text into overlapping fixed-size character windows.

    Offsets refer to ``normalize_source_text(text)``; the final chunk always
    ends at its length.
    """
    if window_size <= 0:
        raise ValueError("window_size must be positive.")
    if overlap < 0 or overlap >= window_size:
        raise ValueError("overlap must be in [0, window_size).")

    normalized = normalize_source_text(text)
    chunks: list[Chunk] = []
    if not normalized:
        return chunks

    start = 0
    idx = 0
    while start < len(normalized):
        end = min(start + window_size, len(normalized))
        chunks.append(
            Chunk(idx=idx, start=start, end=end, text=normalized[start:end].strip())
        )
        if end == len(normalized):
            break
        start = end - overlap
        idx += 1
    return chunks

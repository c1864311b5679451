"""Shared data models for Hallucination Guard."""

from __future__ import annotations

from typing import Literal

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

SourceType = Literal["pasted", "file", "pdf"]
ClaimKind = Literal["number", "date", "quoted", "entity", "sentence"]
EvidenceLabel = Literal["supported", "contradiction", "unknown"]
ClaimStatus = Literal["supported", "unknown", "pending"]
ResolvedStatus = Literal["supported", "unknown"]


class Document(BaseModel):
    id: str
    title: str
    source_type: SourceType = "pasted"
    created_at: int = Field(..., description="Creation time in epoch milliseconds.")
    bytes: int = 0


class Chunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    idx: int
    start: int
    end: int = Field(..., description="Exclusive character offset into the source text.")
    text: str


class Claim(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    start: int
    end: int = Field(..., description="Exclusive character offset into the answer.")
    kind: ClaimKind


class VectorRecord(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    doc_id: str
    idx: int
    text: str
    vector: np.ndarray
    start: int | None = None
    end: int | None = None
    page: int | None = None
    embedder: str | None = Field(None, description="Signature of the embedder that produced the vector.")

    @field_validator("vector", mode="before")
    @classmethod
    def _as_float32(cls, value) -> np.ndarray:
        return np.asarray(value, dtype=np.float32).ravel()

    @field_serializer("vector")
    def _as_list(self, value: np.ndarray) -> list[float]:
        return [float(x) for x in value]


class EvidenceItem(BaseModel):
    idx: int
    text: str
    score: float = Field(..., description="Cosine similarity between claim and chunk.")
    overlap: float = Field(..., description="Share of claim tokens found in the chunk.")
    label: EvidenceLabel


class RetrievalResult(BaseModel):
    status: ResolvedStatus
    items: list[EvidenceItem]


class StorageEstimate(BaseModel):
    used: int = 0
    quota: int = 0


class FixResult(BaseModel):
    draft: str
    used: Literal["llm", "template"]


class ReportSummary(BaseModel):
    total: int
    supported: int
    unknown: int


class ReportClaim(BaseModel):
    id: str
    text: str
    status: ClaimStatus
    citations: list[int]
    top_snippet: str | None = None


class ReportReference(BaseModel):
    cid: int
    snippet: str


class Report(BaseModel):
    generated_at: str
    summary: ReportSummary
    answer: str
    draft: str | None = None
    claims: list[ReportClaim]
    references: list[ReportReference]
    diff: str | None = None

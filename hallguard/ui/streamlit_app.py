"""Streamlit portal for local answer review."""

from __future__ import annotations

import asyncio
import json
import logging
import os

import streamlit as st

from hallguard.config import (
    DATA_DIR,
    OFFLINE_MODE,
    TOP_K_PER_CLAIM,
    bootstrap_runtime_dirs,
    configure_logging,
)
from hallguard.embeddings import Embedder
from hallguard.errors import HallGuardError
from hallguard.pipeline import SourceLibrary
from hallguard.report import build_report_markdown
from hallguard.session import ReviewSession
from hallguard.storage import JsonFileStore

st.set_page_config(page_title="Hallucination Guard", layout="wide")
configure_logging()
log = logging.getLogger("hallguard.portal")

STATUS_COLORS = {"supported": "#1f9d55", "unknown": "#d97706", "pending": "#6b7280"}


@st.cache_resource
def _library(provider: str, data_dir: str) -> SourceLibrary:
    """One library (store, embedder, in-flight embedding set) per provider and data dir."""
    return SourceLibrary(JsonFileStore(data_dir), Embedder(provider=provider))


def _init_state(library: SourceLibrary) -> None:
    st.session_state.setdefault("selected_doc_id", None)
    st.session_state.setdefault("search", None)
    st.session_state.setdefault("embed_status", "")
    if "review" not in st.session_state:
        st.session_state.review = ReviewSession(library.retriever)
    # Switching embedder keeps the extracted claims; later lookups use the new retriever.
    st.session_state.review.retriever = library.retriever


def _render_sidebar(library: SourceLibrary) -> None:
    st.sidebar.title("Hallucination Guard")
    est = library.storage_estimate()
    if est.quota:
        st.sidebar.progress(min(1.0, est.used / est.quota))
        st.sidebar.caption(f"Storage: {est.used / 1024:.1f} KB of {est.quota / 1024 / 1024:.0f} MB")
    else:
        st.sidebar.caption("Storage usage unknown.")
    if st.sidebar.button("Clear all local data"):
        library.clear_all()
        st.session_state.selected_doc_id = None
        st.session_state.search = None
        st.sidebar.success("All local data wiped.")


def _render_sources_tab(library: SourceLibrary) -> None:
    st.subheader("Sources")
    raw = st.text_area("Paste source text", height=160, key="source_text")
    upload = st.file_uploader("...or upload a file", type=["pdf", "txt", "md", "rst", "json", "csv"])
    if st.button("Ingest", key="ingest"):
        try:
            if upload is not None:
                doc, chunks = library.ingest_upload(upload)
            else:
                doc, chunks = library.ingest_text(raw)
            st.session_state.selected_doc_id = doc.id
            st.success(f"Saved {doc.title}: {len(chunks)} chunk(s).")
        except ValueError as exc:
            log.warning("Ingest rejected: %s", exc)
            st.error(str(exc))

    docs = library.list_documents()
    if not docs:
        st.info("No documents yet.")
        return
    ids = [d.id for d in docs]
    current = st.session_state.selected_doc_id
    selected = st.selectbox(
        "Document",
        options=ids,
        index=ids.index(current) if current in ids else 0,
        format_func=lambda i: next(d.title for d in docs if d.id == i),
    )
    st.session_state.selected_doc_id = selected

    col1, col2 = st.columns(2)
    with col1:
        busy = library.is_embedding(selected)
        if st.button("Compute embeddings", key="compute_embeddings", disabled=busy):
            bar = st.progress(0.0)

            def on_step(i: int, total: int) -> None:
                bar.progress(i / total)

            try:
                rows = asyncio.run(library.compute_embeddings(selected, on_step=on_step))
                st.session_state.embed_status = f"Done. {len(rows)} vectors saved."
            except HallGuardError as exc:
                st.session_state.embed_status = str(exc)
        ready = "Vectors ready." if library.has_vectors(selected) else "No vectors yet."
        st.caption(st.session_state.embed_status or ready)
    with col2:
        if st.button("Delete document"):
            library.delete_document(selected)
            st.session_state.selected_doc_id = None
            st.rerun()

    with st.form("semantic_search"):
        query = st.text_input("Semantic search", key="search_query")
        submitted = st.form_submit_button("Search")
    if submitted:
        try:
            hits = asyncio.run(library.semantic_search(selected, query))
            st.session_state.search = {"doc_id": selected, "query": query, "hits": hits}
        except HallGuardError as exc:
            st.session_state.search = None
            st.warning(str(exc))
    search = st.session_state.search
    if search and search["doc_id"] == selected:
        for record, score in search["hits"]:
            st.markdown(f"**C{record.idx}** (score {score:.3f}): {record.text[:400]}")

    with st.expander("Chunks", expanded=False):
        for chunk in library.get_chunks(selected):
            st.markdown(f"**C{chunk.idx}** [{chunk.start}:{chunk.end}] {chunk.text[:300]}")


def _highlighted_answer(review: ReviewSession) -> str:
    answer = review.answer
    parts: list[str] = []
    cursor = 0
    for claim in sorted(review.claims, key=lambda c: c.start):
        if claim.start < cursor:
            continue
        color = STATUS_COLORS[review.statuses.get(claim.id, "pending")]
        parts.append(answer[cursor : claim.start])
        parts.append(f"<span style='border-bottom: 2px solid {color}'>{answer[claim.start : claim.end]}</span>")
        cursor = claim.end
    parts.append(answer[cursor:])
    return "".join(parts)


def _render_review_tab(library: SourceLibrary) -> None:
    review: ReviewSession = st.session_state.review
    st.subheader("Review")
    answer = st.text_area("Answer to check", height=160, key="answer_input")
    if st.button("Extract claims", key="extract_claims"):
        claims = review.extract(answer)
        st.success(f"Found {len(claims)} claim(s).")

    if not review.claims:
        return
    st.markdown(_highlighted_answer(review), unsafe_allow_html=True)
    counts = review.counts()
    st.caption(
        f"{counts['supported']} supported, {counts['unknown']} unknown, {counts['pending']} pending"
    )
    doc_id = st.session_state.selected_doc_id
    if st.button("Check all claims", key="check_all", disabled=doc_id is None):
        try:
            asyncio.run(review.review_all(doc_id, TOP_K_PER_CLAIM))
        except HallGuardError as exc:
            st.error(str(exc))

    for claim in review.claims:
        status = review.statuses.get(claim.id, "pending")
        with st.expander(f"[{status}] {claim.kind}: {claim.text[:120]}"):
            if st.button("View evidence", key=f"ev-{claim.id}", disabled=doc_id is None):
                try:
                    asyncio.run(review.view_evidence(claim.id, doc_id, TOP_K_PER_CLAIM))
                except HallGuardError as exc:
                    st.error(str(exc))
            for item in review.evidence_by_claim.get(claim.id, []):
                st.markdown(
                    f"**C{item.idx}** {item.label} (sim {item.score:.3f}, overlap {item.overlap:.2f}): "
                    f"{item.text[:300]}"
                )


def _render_draft_tab() -> None:
    review: ReviewSession = st.session_state.review
    st.subheader("Fix draft")
    use_llm = st.toggle("Try the LLM rewriter", value=os.getenv("OFFLINE_MODE", "0") != "1")
    if st.button("Generate draft", disabled=not review.claims):
        asyncio.run(review.generate_draft(use_llm=use_llm))
    if review.fix:
        st.caption(f"Generated with: {review.fix.used}")
        st.code(review.fix.draft, language="markdown")


def _render_report_tab() -> None:
    review: ReviewSession = st.session_state.review
    st.subheader("Report")
    if not review.claims:
        st.info("Extract claims first.")
        return
    report = review.build_report()
    markdown = build_report_markdown(report)
    st.markdown(markdown)
    st.download_button("Download Markdown", markdown, file_name="review_report.md")
    st.download_button(
        "Download JSON",
        json.dumps(report.model_dump(), indent=2, ensure_ascii=True),
        file_name="review_report.json",
    )


def main() -> None:
    bootstrap_runtime_dirs()
    offline = st.sidebar.toggle("Offline mode (hash embeddings)", value=OFFLINE_MODE)
    if offline:
        os.environ["OFFLINE_MODE"] = "1"
    else:
        os.environ.pop("OFFLINE_MODE", None)
    provider = "hash" if offline else os.getenv("EMBED_PROVIDER", "sentence_transformer")
    library = _library(provider, str(DATA_DIR))
    _init_state(library)
    _render_sidebar(library)

    sources, review, draft, report = st.tabs(["Sources", "Review", "Draft", "Report"])
    with sources:
        _render_sources_tab(library)
    with review:
        _render_review_tab(library)
    with draft:
        _render_draft_tab()
    with report:
        _render_report_tab()


main()

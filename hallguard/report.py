"""Shareable review report: structured data, Markdown and file export."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from hallguard.drafting import collapse_whitespace
from hallguard.models import (
    Claim,
    ClaimStatus,
    EvidenceItem,
    Report,
    ReportClaim,
    ReportReference,
    ReportSummary,
)

log = logging.getLogger(__name__)

MAX_CITATIONS = 3
TOP_SNIPPET_CHARS = 280
REFERENCE_SNIPPET_CHARS = 320

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


def rough_sentence_diff(before: str, after: str) -> str:
    """Sentence-level removed/added lists, for display only."""

    def split(text: str) -> list[str]:
        return list(dict.fromkeys(s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()))

    a = split(before)
    b = split(after)
    removed = [s for s in a if s not in set(b)]
    added = [s for s in b if s not in set(a)]

    lines: list[str] = []
    if removed:
        lines.append("**Removed:**")
        lines.extend(f"- {s}" for s in removed)
    if added:
        if removed:
            lines.append("")
        lines.append("**Added:**")
        lines.extend(f"+ {s}" for s in added)
    return "\n".join(lines)


def build_report(
    answer: str,
    draft: str | None,
    claims: list[Claim],
    statuses: dict[str, ClaimStatus],
    evidence_by_claim: dict[str, list[EvidenceItem]],
    generated_at: str | None = None,
) -> Report:
    rows: list[ReportClaim] = []
    for claim in claims:
        items = evidence_by_claim.get(claim.id) or []
        rows.append(
            ReportClaim(
                id=claim.id,
                text=claim.text,
                status=statuses.get(claim.id, "pending"),
                citations=[item.idx for item in items[:MAX_CITATIONS]],
                top_snippet=collapse_whitespace(items[0].text, TOP_SNIPPET_CHARS) if items else None,
            )
        )

    supported = sum(1 for row in rows if row.status == "supported")

    cited = list(dict.fromkeys(cid for row in rows for cid in row.citations))
    references: list[ReportReference] = []
    for cid in cited:
        snippet = ""
        for claim in claims:
            match = next((it for it in evidence_by_claim.get(claim.id) or [] if it.idx == cid), None)
            if match is not None:
                snippet = collapse_whitespace(match.text, REFERENCE_SNIPPET_CHARS)
                break
        references.append(ReportReference(cid=cid, snippet=snippet))

    return Report(
        generated_at=generated_at or datetime.now(timezone.utc).isoformat(),
        summary=ReportSummary(total=len(rows), supported=supported, unknown=len(rows) - supported),
        answer=answer,
        draft=draft,
        claims=rows,
        references=references,
        diff=rough_sentence_diff(answer, draft) if draft else None,
    )


def build_report_markdown(report: Report) -> str:
    s = report.summary
    lines: list[str] = [
        "# Hallucination Guard: Review Report",
        f"_Generated: {report.generated_at}_",
        "",
        f"**Summary**: total: {s.total}, supported: {s.supported}, unknown: {s.unknown}",
        "",
        "| # | Status | Claim | Citations |",
        "|:-:|:------:|-------|:---------:|",
    ]
    for i, row in enumerate(report.claims, start=1):
        cites = " ".join(f"[C{c}]" for c in row.citations) or "-"
        text = row.text.replace("|", "\\|").replace("\n", " ")
        lines.append(f"| {i} | {row.status} | {text} | {cites} |")
    lines.append("")

    if report.draft:
        lines.extend(
            [
                "## Before / After",
                "**Before (answer):**",
                "",
                "```",
                report.answer,
                "```",
                "",
                "**After (fix draft):**",
                "",
                "```",
                report.draft.rstrip("\n"),
                "```",
            ]
        )

    if report.diff:
        lines.extend(["", "## Rough Diff", report.diff])

    if report.references:
        lines.extend(["", "## References"])
        lines.extend(f"- C{ref.cid}: {ref.snippet}" for ref in report.references)

    lines.extend(
        [
            "",
            '_Note: Status "unknown" means not confidently supported by top-k evidence; '
            "it is not a contradiction signal._",
        ]
    )
    return "\n".join(lines)


def export_report(report: Report, out_dir: str | Path) -> tuple[Path, Path]:
    """Write ``review_report_<ts>.json`` and ``.md`` and return both paths."""
    out = Path(out_dir).expanduser().resolve()
    out.mkdir(parents=True, exist_ok=True)
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    json_path = out / f"review_report_{ts}.json"
    md_path = out / f"review_report_{ts}.md"
    json_path.write_text(
        json.dumps(report.model_dump(), indent=2, ensure_ascii=True),
        encoding="utf-8",
    )
    md_path.write_text(build_report_markdown(report), encoding="utf-8")
    log.info("Report written to %s", json_path)
    return json_path, md_path

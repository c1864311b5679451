import json

from hallguard.claims import extract_claims
from hallguard.models import EvidenceItem
from hallguard.report import build_report, build_report_markdown, export_report, rough_sentence_diff


def _item(idx: int, text: str) -> EvidenceItem:
    return EvidenceItem(idx=idx, text=text, score=0.5, overlap=0.5, label="supported")


def _report(draft: str | None = "Revenue grew 20% [C0]. Hiring slowed."):
    answer = "Revenue grew 20% in 2022."
    percent, year = extract_claims(answer)
    return build_report(
        answer,
        draft,
        [percent, year],
        {percent.id: "supported", year.id: "unknown"},
        {
            percent.id: [_item(i, f"chunk {i}  text") for i in range(5)],
            year.id: [_item(1, "chunk 1 text"), _item(7, "x" * 400)],
        },
        generated_at="2026-01-01T00:00:00+00:00",
    )


def test_summary_citations_and_references() -> None:
    report = _report()
    assert report.summary.model_dump() == {"total": 2, "supported": 1, "unknown": 1}
    assert report.claims[0].citations == [0, 1, 2]
    assert report.claims[0].top_snippet == "chunk 0 text"
    assert report.claims[1].citations == [1, 7]
    assert [ref.cid for ref in report.references] == [0, 1, 2, 7]
    assert len(report.references[-1].snippet) == 320


def test_markdown_has_table_and_sections() -> None:
    md = build_report_markdown(_report())
    assert md.startswith("# Hallucination Guard: Review Report\n")
    assert "| 1 | supported | 20% | [C0] [C1] [C2] |" in md
    assert "## Before / After" in md
    assert "## Rough Diff" in md
    assert "- C7: " in md
    assert 'Status "unknown" means not confidently supported' in md


def test_markdown_without_draft_skips_before_after() -> None:
    md = build_report_markdown(_report(draft=None))
    assert "## Before / After" not in md
    assert "## Rough Diff" not in md


def test_markdown_escapes_pipes_in_claims() -> None:
    answer = 'He wrote "a | b | c" twice.'
    claims = extract_claims(answer)
    report = build_report(answer, None, claims, {}, {}, generated_at="t")
    md = build_report_markdown(report)
    assert "a \\| b \\| c" in md
    assert report.claims[0].status == "pending"


def test_rough_sentence_diff() -> None:
    diff = rough_sentence_diff("A one. B two.", "A one. C three.")
    assert diff == "**Removed:**\n- B two.\n\n**Added:**\n+ C three."
    assert rough_sentence_diff("Same.", "Same.") == ""


def test_export_writes_json_and_markdown(tmp_path) -> None:
    json_path, md_path = export_report(_report(), tmp_path / "out")
    assert json_path.name.startswith("review_report_")
    payload = json.loads(json_path.read_text(encoding="utf-8"))
    assert payload["summary"]["total"] == 2
    assert payload["claims"][0]["citations"] == [0, 1, 2]
    assert md_path.read_text(encoding="utf-8").startswith("# Hallucination Guard")

"""CLI entrypoint: review one answer against one source document."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from hallguard.config import configure_logging

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract claims from an answer and check them against a source document."
    )
    parser.add_argument(
        "--source",
        required=True,
        help="Source document path (pdf/txt/md/rst/json/csv).",
    )
    answer = parser.add_mutually_exclusive_group(required=True)
    answer.add_argument("--answer", help="Answer text to review.")
    answer.add_argument("--answer-file", help="File containing the answer to review.")
    parser.add_argument(
        "--k",
        type=int,
        default=None,
        help="Evidence chunks retrieved per claim.",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for the JSON and Markdown report.",
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Directory holding the local document store.",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Hash embeddings and template drafts only (no downloads, no API keys).",
    )
    return parser


async def run_review(
    *,
    source: str,
    answer: str,
    data_dir: str | Path,
    output_dir: str | Path,
    k: int,
):
    from hallguard.embeddings import Embedder
    from hallguard.pipeline import SourceLibrary
    from hallguard.report import build_report_markdown, export_report
    from hallguard.session import ReviewSession
    from hallguard.storage import JsonFileStore

    embedder = Embedder()
    try:
        library = SourceLibrary(JsonFileStore(data_dir), embedder)
        doc, _ = library.ingest_file(source)
        await library.compute_embeddings(doc.id)

        session = ReviewSession(library.retriever)
        session.extract(answer)
        await session.review_all(doc.id, k)
        fix = await session.generate_draft()
        log.info("Draft generated with %s", fix.used if fix else "nothing")

        report = session.build_report()
        json_path, md_path = export_report(report, output_dir)
        return report, build_report_markdown(report), json_path, md_path
    finally:
        embedder.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.offline:
        os.environ["OFFLINE_MODE"] = "1"
        os.environ["EMBED_PROVIDER"] = "hash"
        os.environ["LLM_PROVIDER"] = "none"

    from hallguard import config
    from hallguard.errors import HallGuardError

    configure_logging()
    config.bootstrap_runtime_dirs()

    answer = args.answer
    if args.answer_file:
        answer = Path(args.answer_file).read_text(encoding="utf-8")

    try:
        _, markdown, json_path, _ = asyncio.run(
            run_review(
                source=args.source,
                answer=answer or "",
                data_dir=args.data_dir or config.DATA_DIR,
                output_dir=args.output_dir or config.OUTPUTS_DIR,
                k=args.k or config.TOP_K_PER_CLAIM,
            )
        )
    except (HallGuardError, FileNotFoundError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(markdown)
    print(f"\nReport saved to {json_path}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())

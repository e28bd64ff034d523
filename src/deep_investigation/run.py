#!/usr/bin/env python3
"""
Deep Investigation Runner
=========================
Runs a recursive investigation on a query and writes the markdown report.

Usage:
    python -m deep_investigation.run "Your research topic"
    python -m deep_investigation.run "Your research topic" --width 4 --depth 2 --out-dir reports
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from deep_investigation.config import Settings, load_dotenv_files
from deep_investigation.feedback import process_feedback
from deep_investigation.investigation import InvestigationEngine, generate_analysis_report
from deep_investigation.langfuse_integration import create_trace, setup_langfuse
from deep_investigation.progress import OutputManager, ProgressReporter
from deep_investigation.providers import configure_openai_client
from deep_investigation.search_clients import create_search_client

logger = logging.getLogger(__name__)


def report_path(out_dir: Path, now: Optional[datetime] = None) -> Path:
    now = now or datetime.now(timezone.utc)
    return out_dir / f"report-{now.strftime('%Y-%m-%dT%H-%M-%S-%f')}.md"


async def run_investigation_async(
    query: str,
    settings: Settings,
    width: int = 3,
    depth: int = 3,
    out_dir: Optional[Path] = None,
    search_backend: Optional[str] = None,
    feedback: Optional[str] = None,
    reporter: Optional[ProgressReporter] = None,
) -> Path:
    """
    Investigate ``query``, synthesize the report and write it to ``out_dir``.

    Returns:
        Path of the written report.
    """
    out_dir = Path(out_dir or settings.reports_dir or ".")
    reporter = reporter or ProgressReporter()
    engine = InvestigationEngine(
        search_client=create_search_client(settings, backend=search_backend),
        output=OutputManager(logger),
        model=settings.model,
    )

    with create_trace(
        name="Deep-Investigation",
        session_id=f"investigation_{hash(query) % 10_000}",
        tags=["deep_investigation"],
        environment=os.environ.get("ENVIRONMENT", "development"),
    ) as span:
        if span is not None:
            span.set_attribute("input.value", query)

        try:
            outcome = await engine.conduct_investigation(
                query,
                width,
                depth,
                on_progress=reporter.update_progress,
            )
        finally:
            reporter.finish()

        logger.info(
            f"Investigation finished with {len(outcome.insights)} insights "
            f"from {len(outcome.explored_sources)} sources"
        )
        report = await generate_analysis_report(
            query, outcome.insights, outcome.explored_sources, model=settings.model
        )

        if span is not None:
            span.set_attribute("output.insights_count", len(outcome.insights))

    out_dir.mkdir(parents=True, exist_ok=True)
    path = report_path(out_dir)
    path.write_text(report, encoding="utf-8")

    if feedback:
        analysis = await process_feedback(feedback, report, model=settings.model)
        path.with_suffix(".feedback.md").write_text(analysis, encoding="utf-8")

    return path


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a recursive deep investigation and write a markdown report")
    parser.add_argument("query", nargs="*", help="Research query")
    parser.add_argument("--width", "-w", type=int, default=3, help="Searches planned at the first level (default: 3)")
    parser.add_argument("--depth", "-d", type=int, default=3, help="Levels of recursion (default: 3)")
    parser.add_argument("--model", "-m", default=None, help="Model name (default: OPENAI_MODEL or o3-mini)")
    parser.add_argument("--search-backend", choices=["firecrawl", "agent"], default=None,
                        help="Search provider (default: firecrawl when FIRECRAWL_KEY is set)")
    parser.add_argument("--out-dir", "-o", default=None, help="Directory for the report (default: REPORTS_DIR or .)")
    parser.add_argument("--feedback", default=None, help="Reader feedback to analyse against the finished report")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--langfuse", action="store_true", help="Enable Langfuse tracing")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    query = " ".join(args.query).strip()
    if not query:
        print("Please provide a research query", file=sys.stderr)
        return 1
    if args.width < 0 or args.depth < 0:
        print("--width and --depth must be non-negative", file=sys.stderr)
        return 1

    load_dotenv_files()
    settings = Settings.from_env()
    if args.model:
        settings.model = args.model
    configure_openai_client(settings)

    if args.langfuse and not setup_langfuse():
        logger.warning("Continuing without tracing")

    try:
        path = asyncio.run(run_investigation_async(
            query,
            settings,
            width=args.width,
            depth=args.depth,
            out_dir=args.out_dir,
            search_backend=args.search_backend,
            feedback=args.feedback,
        ))
    except Exception:
        logger.exception("Research failed")
        return 1

    print(f"\nResearch completed. Report saved to {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

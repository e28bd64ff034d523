"""
Recursive investigation
=======================
Expands a research query into a tree of web searches, then folds every
branch's findings back into a single set of insights and sources.

At each level the engine plans up to ``expansion_width`` searches, runs them
with at most ``concurrency`` in flight, digests each result into insights
plus follow-up questions, and either recurses on a composite follow-up
query (halving width, decrementing depth) or stops when depth runs out.

Failure handling
~~~~~~~~~~~~~~~~
* A failed search or digestion empties that branch only. Siblings and the
  parent carry on.
* Planning at the top level and report synthesis are not caught: they fail
  the whole call.
"""
from __future__ import annotations

import asyncio
import math
from typing import Awaitable, Callable, List, Optional, Sequence

from pydantic import BaseModel, Field

from deep_investigation.models import (
    InvestigationOutcome,
    InvestigationProgress,
    ProcessedInsight,
    SearchQueryMetadata,
    SearchResult,
)
from deep_investigation.progress import OutputManager
from deep_investigation.providers import generate_object
from deep_investigation.search import generate_search_queries, process_search_results
from deep_investigation.search_clients import SearchProvider

ProgressCallback = Callable[[InvestigationProgress], None]
QueryPlanner = Callable[..., Awaitable[List[SearchQueryMetadata]]]
ResultDigester = Callable[..., Awaitable[ProcessedInsight]]

PARALLEL_EXECUTION_LIMIT = 2
SEARCH_TIMEOUT = 15.0
SEARCH_LIMIT = 5


def build_follow_up_query(investigation_intent: str, follow_up_inquiries: Sequence[str]) -> str:
    """Compose the next-level query from a search's intent and its follow-up questions."""
    directions = "".join(f"\n{q}" for q in follow_up_inquiries)
    return (
        f"Previous investigation goal: {investigation_intent}\n"
        f"Additional research directions: {directions}"
    ).strip()

# -----------------------------
# Engine
# -----------------------------

class InvestigationEngine:
    """
    Runs the recursive search-expansion loop.

    Args:
        search_client: Provider used for every web search.
        query_planner: Coroutine planning searches, see :func:`generate_search_queries`.
        result_digester: Coroutine digesting results, see :func:`process_search_results`.
        concurrency: Searches in flight per level of one call.
        output: Log collector. A fresh one is created when omitted.
        model: Model override passed to planner and digester.
    """

    def __init__(
        self,
        search_client: SearchProvider,
        query_planner: QueryPlanner = generate_search_queries,
        result_digester: ResultDigester = process_search_results,
        concurrency: int = PARALLEL_EXECUTION_LIMIT,
        output: Optional[OutputManager] = None,
        model: Optional[str] = None,
    ):
        self.search_client = search_client
        self.query_planner = query_planner
        self.result_digester = result_digester
        self.concurrency = concurrency
        self.output = output or OutputManager()
        self.model = model

    async def conduct_investigation(
        self,
        query: str,
        expansion_width: int,
        exploration_depth: int,
        insights: Optional[Sequence[str]] = None,
        explored_sources: Optional[Sequence[str]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> InvestigationOutcome:
        """
        Investigate ``query`` and return every insight and source found.

        Args:
            query: Research topic, or a composite follow-up query when recursing.
            expansion_width: Number of searches to plan at this level.
            exploration_depth: Levels left, including this one.
            insights: Findings inherited from the caller.
            explored_sources: Sources inherited from the caller.
            on_progress: Called with the shared progress record as work completes.

        Returns:
            Deduplicated union of all branch outcomes.
        """
        if expansion_width < 0 or exploration_depth < 0:
            raise ValueError("expansion_width and exploration_depth must be non-negative")

        insights = list(insights or [])
        explored_sources = list(explored_sources or [])

        progress = InvestigationProgress(
            current_level=exploration_depth,
            total_levels=exploration_depth,
            current_scope=expansion_width,
            total_scope=expansion_width,
        )

        def report(**changes) -> None:
            progress.update(**changes)
            if on_progress is not None:
                on_progress(progress)

        search_queries = await self.query_planner(
            inquiry=query,
            query_count=expansion_width,
            previous_insights=insights,
            model=self.model,
        )
        report(
            total_inquiries=len(search_queries),
            current_inquiry=search_queries[0].inquiry if search_queries else None,
        )

        semaphore = asyncio.Semaphore(self.concurrency)

        async def _branch(search_query: SearchQueryMetadata) -> InvestigationOutcome:
            async with semaphore:
                try:
                    return await self._explore(
                        search_query,
                        expansion_width,
                        exploration_depth,
                        insights,
                        explored_sources,
                        progress,
                        report,
                        on_progress,
                    )
                except asyncio.TimeoutError as e:
                    self.output.log(f"Timeout encountered for query: {search_query.inquiry}:", e)
                except Exception as e:
                    self.output.log(f"Error processing query: {search_query.inquiry}:", e)
                return InvestigationOutcome()

        results = await asyncio.gather(*(_branch(sq) for sq in search_queries))
        return InvestigationOutcome.merge(results)

    async def _explore(
        self,
        search_query: SearchQueryMetadata,
        expansion_width: int,
        exploration_depth: int,
        insights: List[str],
        explored_sources: List[str],
        progress: InvestigationProgress,
        report: Callable[..., None],
        on_progress: Optional[ProgressCallback],
    ) -> InvestigationOutcome:
        search_result: SearchResult = await self.search_client.search(
            search_query.inquiry,
            timeout=SEARCH_TIMEOUT,
            limit=SEARCH_LIMIT,
            formats=("markdown",),
        )
        discovered_sources = search_result.urls()

        new_width = math.ceil(expansion_width / 2)
        new_depth = exploration_depth - 1

        processed = await self.result_digester(
            inquiry=search_query.inquiry,
            search_data=search_result,
            follow_up_limit=new_width,
            model=self.model,
        )

        aggregated_insights = insights + processed.insights
        aggregated_sources = explored_sources + discovered_sources

        if new_depth > 0:
            self.output.log(f"Deepening investigation, width: {new_width}, depth: {new_depth}")
            report(
                current_level=new_depth,
                current_scope=new_width,
                completed_inquiries=progress.completed_inquiries + 1,
                current_inquiry=search_query.inquiry,
            )
            next_query = build_follow_up_query(
                search_query.investigation_intent, processed.follow_up_inquiries
            )
            return await self.conduct_investigation(
                next_query,
                new_width,
                new_depth,
                insights=aggregated_insights,
                explored_sources=aggregated_sources,
                on_progress=on_progress,
            )

        report(
            current_level=0,
            completed_inquiries=progress.completed_inquiries + 1,
            current_inquiry=search_query.inquiry,
        )
        return InvestigationOutcome(insights=aggregated_insights, explored_sources=aggregated_sources)

# -----------------------------
# Report synthesis
# -----------------------------

class AnalysisReport(BaseModel):
    report_markdown: str = Field(..., description="Comprehensive analysis report in Markdown format")


def format_reference_sources(explored_sources: Sequence[str]) -> str:
    listing = "\n".join(f"- {source}" for source in explored_sources)
    return f"\n\n## Reference Sources\n\n{listing}"


async def generate_analysis_report(
    initial_query: str,
    insights: Sequence[str],
    explored_sources: Sequence[str],
    model: Optional[str] = None,
) -> str:
    """
    Write the final markdown report.

    Every explored source is listed under "Reference Sources", cited or not.
    """
    insights_block = "\n".join(f"<insight>\n{insight}\n</insight>" for insight in insights)
    prompt = (
        "Synthesize a comprehensive analysis report based on the following research prompt "
        "and gathered insights. Aim for extensive detail spanning 3+ pages, incorporating ALL "
        f"research findings:\n\n<prompt>{initial_query}</prompt>\n\n"
        f"Collated Research Insights:\n\n<insights>\n{insights_block}\n</insights>"
    )

    report = await generate_object(
        AnalysisReport,
        prompt=prompt,
        model=model,
        workflow_name="Report Synthesis",
    )
    return report.report_markdown + format_reference_sources(explored_sources)

# -----------------------------
# Public API
# -----------------------------

async def conduct_investigation(
    query: str,
    expansion_width: int,
    exploration_depth: int,
    search_client: SearchProvider,
    insights: Optional[Sequence[str]] = None,
    explored_sources: Optional[Sequence[str]] = None,
    on_progress: Optional[ProgressCallback] = None,
    output: Optional[OutputManager] = None,
    model: Optional[str] = None,
) -> InvestigationOutcome:
    """
    Async function to run one investigation with the default planner and digester.
    """
    engine = InvestigationEngine(search_client=search_client, output=output, model=model)
    return await engine.conduct_investigation(
        query,
        expansion_width,
        exploration_depth,
        insights=insights,
        explored_sources=explored_sources,
        on_progress=on_progress,
    )

"""
Query planning and result digestion.

Both steps are single structured-generation calls. The planner turns an
inquiry into a short list of web searches, each with a stated intent. The
digester reads the scraped pages for one search and extracts insights plus
follow-up questions. Neither step retries, and errors go straight to the caller.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from deep_investigation.models import ProcessedInsight, SearchQueryMetadata, SearchResult
from deep_investigation.providers import generate_object, optimize_prompt_length

logger = logging.getLogger(__name__)

SEGMENT_TOKEN_LIMIT = 25_000
DIGEST_TIMEOUT = 60.0

# -----------------------------
# Schema objects
# -----------------------------

class PlannedQuery(BaseModel):
    inquiry: str = Field(..., description="The search inquiry")
    investigation_intent: str = Field(
        ...,
        description=(
            "Elaborate on the investigation purpose and potential research directions. "
            "Detail specific aspects to explore and potential connections to uncover."
        ),
    )


class QueryPlan(BaseModel):
    queries: List[PlannedQuery] = Field(..., description="Collection of search queries")


class DigestedResults(BaseModel):
    insights: List[str] = Field(..., description="Key insights extracted from the search results")
    follow_up_inquiries: List[str] = Field(
        ..., description="Strategic follow-up questions for deeper investigation"
    )

# -----------------------------
# Query planner
# -----------------------------

async def generate_search_queries(
    inquiry: str,
    query_count: int = 3,
    previous_insights: Optional[Sequence[str]] = None,
    model: Optional[str] = None,
) -> List[SearchQueryMetadata]:
    """
    Plan up to ``query_count`` searches for ``inquiry``.

    Args:
        inquiry: Topic or composite follow-up query to investigate.
        query_count: Maximum number of queries to return.
        previous_insights: Findings so far, used to steer away from repeats.
        model: Model override.

    Returns:
        At most ``query_count`` planned queries, even if the model returns more.
    """
    prompt = (
        "Given the following inquiry, generate strategic search queries to investigate the topic. "
        f"Return up to {query_count} queries, optimizing for unique perspectives: "
        f"<prompt>{inquiry}</prompt>"
    )
    if previous_insights:
        joined = "\n".join(previous_insights)
        prompt += f"\n\nConsider these previous insights for more targeted queries: {joined}"

    plan = await generate_object(
        QueryPlan,
        prompt=prompt,
        model=model,
        workflow_name="Query Planning",
    )

    queries = [
        SearchQueryMetadata(inquiry=q.inquiry, investigation_intent=q.investigation_intent)
        for q in plan.queries[:query_count]
    ]
    logger.debug(f"Planned {len(queries)} queries for: {inquiry[:80]}")
    return queries

# -----------------------------
# Result digester
# -----------------------------

async def process_search_results(
    inquiry: str,
    search_data: SearchResult,
    insight_limit: int = 3,
    follow_up_limit: int = 3,
    model: Optional[str] = None,
) -> ProcessedInsight:
    """
    Extract insights and follow-up questions from one query's search results.

    Items without page content are skipped. Each page is trimmed to
    ``SEGMENT_TOKEN_LIMIT`` tokens before it is sent to the model.

    Raises:
        asyncio.TimeoutError: If the model does not answer within ``DIGEST_TIMEOUT``.
    """
    segments = [
        optimize_prompt_length(item.markdown, SEGMENT_TOKEN_LIMIT)
        for item in search_data.data
        if item.markdown
    ]
    content = "\n".join(f"<segment>\n{segment}\n</segment>" for segment in segments)

    prompt = (
        f"Analyze these search results for the inquiry <inquiry>{inquiry}</inquiry>. "
        f"Extract up to {insight_limit} key insights and up to {follow_up_limit} follow-up questions. "
        "Focus on unique, information-dense findings. Include specific entities, metrics, "
        f"and dates when available.\n\n<content>{content}</content>"
    )

    digest = await generate_object(
        DigestedResults,
        prompt=prompt,
        model=model,
        timeout=DIGEST_TIMEOUT,
        workflow_name="Result Digestion",
    )

    return ProcessedInsight(
        insights=digest.insights[:insight_limit],
        follow_up_inquiries=digest.follow_up_inquiries[:follow_up_limit],
    )

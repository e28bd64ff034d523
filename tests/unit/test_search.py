"""
Tests for the deep_investigation.search module (query planning and result digestion).
"""
import asyncio
from unittest.mock import patch, AsyncMock

import pytest

from deep_investigation.models import ProcessedInsight, SearchItem, SearchQueryMetadata, SearchResult
from deep_investigation.search import (
    DIGEST_TIMEOUT,
    SEGMENT_TOKEN_LIMIT,
    DigestedResults,
    PlannedQuery,
    QueryPlan,
    generate_search_queries,
    process_search_results,
)

# -----------------------------
# Query planner
# -----------------------------

def _plan(n):
    return QueryPlan(queries=[
        PlannedQuery(inquiry=f"search {i}", investigation_intent=f"why {i}") for i in range(n)
    ])


@pytest.mark.asyncio
async def test_planner_caps_query_count():
    with patch("deep_investigation.search.generate_object", new=AsyncMock(return_value=_plan(5))):
        queries = await generate_search_queries("solid state batteries", query_count=2)

    assert queries == [
        SearchQueryMetadata(inquiry="search 0", investigation_intent="why 0"),
        SearchQueryMetadata(inquiry="search 1", investigation_intent="why 1"),
    ]


@pytest.mark.asyncio
async def test_planner_defaults_to_three_queries():
    with patch("deep_investigation.search.generate_object", new=AsyncMock(return_value=_plan(4))):
        queries = await generate_search_queries("solid state batteries")

    assert len(queries) == 3


@pytest.mark.asyncio
async def test_planner_includes_previous_insights_in_prompt():
    mock_generate = AsyncMock(return_value=_plan(1))
    with patch("deep_investigation.search.generate_object", new=mock_generate):
        await generate_search_queries(
            "solid state batteries",
            query_count=1,
            previous_insights=["Toyota targets 2027", "Sulfide electrolytes dominate"],
        )

    args, kwargs = mock_generate.call_args
    assert args[0] is QueryPlan
    assert "<prompt>solid state batteries</prompt>" in kwargs["prompt"]
    assert "Toyota targets 2027\nSulfide electrolytes dominate" in kwargs["prompt"]


@pytest.mark.asyncio
async def test_planner_omits_insight_context_when_empty():
    mock_generate = AsyncMock(return_value=_plan(1))
    with patch("deep_investigation.search.generate_object", new=mock_generate):
        await generate_search_queries("solid state batteries", previous_insights=[])

    assert "previous insights" not in mock_generate.call_args[1]["prompt"]


@pytest.mark.asyncio
async def test_planner_propagates_errors():
    with patch("deep_investigation.search.generate_object", new=AsyncMock(side_effect=RuntimeError("api down"))):
        with pytest.raises(RuntimeError, match="api down"):
            await generate_search_queries("solid state batteries")

# -----------------------------
# Result digester
# -----------------------------

@pytest.fixture
def search_data():
    return SearchResult(data=[
        SearchItem(url="https://a.example", markdown="Alpha content."),
        SearchItem(url="https://b.example", markdown=None),
        SearchItem(url="https://c.example", markdown="Gamma content."),
    ])


@pytest.mark.asyncio
async def test_digester_trims_segments_and_skips_empty_items(search_data):
    digest = DigestedResults(insights=["one"], follow_up_inquiries=["next?"])
    mock_generate = AsyncMock(return_value=digest)

    with patch("deep_investigation.search.optimize_prompt_length", side_effect=lambda text, limit: text) as trim, \
            patch("deep_investigation.search.generate_object", new=mock_generate):
        result = await process_search_results("batteries", search_data)

    assert result == ProcessedInsight(insights=["one"], follow_up_inquiries=["next?"])
    assert [c.args for c in trim.call_args_list] == [
        ("Alpha content.", SEGMENT_TOKEN_LIMIT),
        ("Gamma content.", SEGMENT_TOKEN_LIMIT),
    ]
    kwargs = mock_generate.call_args[1]
    assert kwargs["timeout"] == DIGEST_TIMEOUT
    assert "<segment>\nAlpha content.\n</segment>\n<segment>\nGamma content.\n</segment>" in kwargs["prompt"]
    assert "<inquiry>batteries</inquiry>" in kwargs["prompt"]


@pytest.mark.asyncio
async def test_digester_caps_results(search_data):
    digest = DigestedResults(
        insights=["i1", "i2", "i3", "i4"],
        follow_up_inquiries=["q1", "q2", "q3"],
    )

    with patch("deep_investigation.search.optimize_prompt_length", side_effect=lambda text, limit: text), \
            patch("deep_investigation.search.generate_object", new=AsyncMock(return_value=digest)):
        result = await process_search_results("batteries", search_data, insight_limit=2, follow_up_limit=1)

    assert result.insights == ["i1", "i2"]
    assert result.follow_up_inquiries == ["q1"]


@pytest.mark.asyncio
async def test_digester_propagates_timeout(search_data):
    with patch("deep_investigation.search.optimize_prompt_length", side_effect=lambda text, limit: text), \
            patch("deep_investigation.search.generate_object", new=AsyncMock(side_effect=asyncio.TimeoutError())):
        with pytest.raises(asyncio.TimeoutError):
            await process_search_results("batteries", search_data)

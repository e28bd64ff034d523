"""
Common fixtures and setup for all tests.
"""
import os
import pytest

from deep_investigation.models import (
    InvestigationProgress,
    ProcessedInsight,
    SearchItem,
    SearchQueryMetadata,
    SearchResult,
)

# -----------------------------
# Environment setup
# -----------------------------

@pytest.fixture(autouse=True)
def setup_test_env():
    """
    Point the OpenAI key at a dummy value so no test can reach the real API.
    """
    original_api_key = os.environ.get("OPENAI_API_KEY")
    os.environ["OPENAI_API_KEY"] = "sk-test-dummy-api-key"

    yield

    if original_api_key is not None:
        os.environ["OPENAI_API_KEY"] = original_api_key
    else:
        del os.environ["OPENAI_API_KEY"]

# -----------------------------
# Fakes
# -----------------------------

class CharEncoder:
    """Token encoder that counts one token per character."""

    def encode(self, text):
        return list(range(len(text)))


class WordEncoder:
    """Token encoder that counts one token per whitespace-separated word."""

    def encode(self, text):
        return text.split()


@pytest.fixture
def char_encoder():
    return CharEncoder()


@pytest.fixture
def word_encoder():
    return WordEncoder()


class FakeSearchClient:
    """SearchProvider that serves canned results and records every query."""

    def __init__(self, results=None, failures=None):
        self.results = results or {}
        self.failures = failures or {}
        self.calls = []

    async def search(self, query, *, timeout=15.0, limit=5, formats=("markdown",)):
        self.calls.append({"query": query, "timeout": timeout, "limit": limit, "formats": tuple(formats)})
        if query in self.failures:
            raise self.failures[query]
        if query in self.results:
            return self.results[query]
        return SearchResult(data=[
            SearchItem(url=f"https://example.com/{query.replace(' ', '-')}", markdown=f"Content about {query}."),
        ])


@pytest.fixture
def fake_search_client():
    return FakeSearchClient()


@pytest.fixture
def create_search_client():
    """Factory fixture for FakeSearchClient with canned results and failures."""
    return FakeSearchClient

# -----------------------------
# Factories
# -----------------------------

@pytest.fixture
def create_progress():
    """
    Factory fixture to create InvestigationProgress records.

    Example:
        def test_something(create_progress):
            progress = create_progress(current_inquiry="quantum batteries")
    """
    def _create_progress(current_level=2, total_levels=3, current_scope=2, total_scope=3,
                         total_inquiries=3, completed_inquiries=1, current_inquiry=None):
        return InvestigationProgress(
            current_level=current_level,
            total_levels=total_levels,
            current_scope=current_scope,
            total_scope=total_scope,
            total_inquiries=total_inquiries,
            completed_inquiries=completed_inquiries,
            current_inquiry=current_inquiry,
        )

    return _create_progress


@pytest.fixture
def create_queries():
    """Factory fixture returning ``n`` planned queries named ``{prefix} 1`` .. ``{prefix} n``."""
    def _create_queries(n, prefix="query"):
        return [
            SearchQueryMetadata(inquiry=f"{prefix} {i}", investigation_intent=f"intent of {prefix} {i}")
            for i in range(1, n + 1)
        ]

    return _create_queries


@pytest.fixture
def create_insight():
    def _create_insight(insights=None, follow_ups=None):
        return ProcessedInsight(
            insights=list(insights or []),
            follow_up_inquiries=list(follow_ups or []),
        )

    return _create_insight

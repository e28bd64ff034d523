"""
Search providers
================
A search provider turns one query into a :class:`SearchResult`: a handful of
hits, each with its URL and the page content rendered as text.

* :class:`FirecrawlSearchClient` uses the Firecrawl SDK, which searches and
  scrapes to markdown in one request.
* :class:`AgentSearchClient` asks an Agents SDK agent with ``WebSearchTool``
  for result URLs and scrapes them with :class:`Scraper` (aiohttp +
  BeautifulSoup). Use it when no Firecrawl key is available.

Both are plain classes so a fake client can be injected in tests.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import List, Optional, Protocol, Sequence

import aiohttp
from bs4 import BeautifulSoup
from firecrawl import FirecrawlApp
from agents import Agent, Runner, WebSearchTool, RunConfig

from deep_investigation.config import Settings
from deep_investigation.models import SearchItem, SearchResult
from deep_investigation.providers import get_model_settings

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_TIMEOUT = 15.0
DEFAULT_SEARCH_LIMIT = 5


class SearchProviderError(RuntimeError):
    """Raised when a search provider reports a failure."""


# -----------------------------
# Protocol for search clients
# -----------------------------

class SearchProvider(Protocol):
    """Protocol for search clients to allow dependency injection and easier testing."""

    async def search(
        self,
        query: str,
        *,
        timeout: float = DEFAULT_SEARCH_TIMEOUT,
        limit: int = DEFAULT_SEARCH_LIMIT,
        formats: Sequence[str] = ("markdown",),
    ) -> SearchResult:
        ...

# -----------------------------
# Firecrawl
# -----------------------------

def _hit_field(hit, name: str) -> Optional[str]:
    # The SDK returns plain dicts or response objects depending on its version.
    if isinstance(hit, dict):
        return hit.get(name)
    return getattr(hit, name, None)


class FirecrawlSearchClient:
    """
    Search and scrape through the Firecrawl SDK.

    ``FirecrawlApp.search`` is blocking, so each call runs in a worker thread
    and is abandoned after ``timeout`` seconds.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: str = "https://api.firecrawl.dev",
        app: Optional[FirecrawlApp] = None,
    ):
        self.app = app or FirecrawlApp(api_key=api_key, api_url=api_url)

    async def search(
        self,
        query: str,
        *,
        timeout: float = DEFAULT_SEARCH_TIMEOUT,
        limit: int = DEFAULT_SEARCH_LIMIT,
        formats: Sequence[str] = ("markdown",),
    ) -> SearchResult:
        """
        Run one search.

        Raises:
            asyncio.TimeoutError: If the search takes longer than ``timeout`` seconds.
            SearchProviderError: If Firecrawl answers with an error.
        """
        params = {
            "timeout": int(timeout * 1000),
            "limit": limit,
            "scrapeOptions": {"formats": list(formats)},
        }

        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self.app.search, query, params=params),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise
        except Exception as e:
            raise SearchProviderError(f"Firecrawl search failed: {e}") from e

        if isinstance(response, dict):
            if response.get("success") is False:
                raise SearchProviderError(f"Firecrawl search failed: {response.get('error')}")
            hits = response.get("data")
        else:
            hits = getattr(response, "data", None)

        items = [
            SearchItem(
                url=_hit_field(hit, "url"),
                markdown=_hit_field(hit, "markdown"),
                title=_hit_field(hit, "title"),
            )
            for hit in hits or []
            if hit is not None
        ]
        logger.debug(f"Firecrawl returned {len(items)} results for: {query}")
        return SearchResult(data=items)

# -----------------------------
# Scraper implementation
# -----------------------------

class Scraper:
    """HTML scraper that extracts plaintext content from web pages."""

    def __init__(self, timeout: float = 10.0, max_chars: int = 20_000):
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.max_chars = max_chars

    async def fetch_html(self, session: aiohttp.ClientSession, url: str) -> str:
        """
        Fetch HTML content from a URL.

        Returns:
            HTML content as string or empty string if the page could not be fetched.
        """
        try:
            async with session.get(url, timeout=self.timeout) as resp:
                resp.raise_for_status()
                return await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Failed to fetch {url}: {e}")
            return ""

    def html_to_text(self, html: str) -> str:
        """
        Convert HTML to plaintext, keeping headings and paragraphs on their own lines.
        """
        soup = BeautifulSoup(html, "html.parser")

        title = soup.find("title")
        title_text = title.get_text().strip() if title else ""

        for tag in soup(["script", "style", "noscript", "header", "footer", "nav"]):
            tag.decompose()

        blocks = [
            el.get_text(" ", strip=True)
            for el in soup.find_all(["h1", "h2", "h3", "p", "li"])
        ]
        blocks = [b for b in blocks if len(b) > 20]

        if not blocks:
            text = soup.get_text(" ", strip=True)
            return " ".join(text.split())

        parts = [f"# {title_text}"] if title_text else []
        parts.extend(blocks)
        return "\n\n".join(parts)

    async def scrape_urls(self, urls: Sequence[str]) -> List[SearchItem]:
        """Scrape each URL into a :class:`SearchItem`. Pages that fail to load keep an empty body."""
        items: List[SearchItem] = []
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            for url in urls:
                html = await self.fetch_html(session, url)
                text = self.html_to_text(html)[: self.max_chars] if html else None
                items.append(SearchItem(url=url, markdown=text or None, title=url.split("/")[-1][:120]))
        return items

# -----------------------------
# Agents SDK web search
# -----------------------------

class AgentSearchClient:
    """Implementation of SearchProvider using the OpenAI Agents WebSearchTool."""

    def __init__(self, model: str = "gpt-4.1", scraper: Optional[Scraper] = None):
        self.model = model
        self.scraper = scraper or Scraper()
        self.agent = Agent(
            name="Searcher",
            instructions="""
            You are *SearchExecutor*, an agent that performs a single web search query
            and returns high-quality result URLs as a JSON array. Prioritise
            scholarly, governmental, or reputable industry sources, avoid ads. Respond
            with **ONLY** the JSON list, e.g. ["https://example.com", ...].
            """,
            tools=[WebSearchTool()],
        )

    async def find_urls(self, query: str, limit: int) -> List[str]:
        run_config = RunConfig(
            model=self.model,
            model_settings=get_model_settings(self.model, temperature=0.0),
            tracing_disabled=True,
            workflow_name="Web Search",
        )
        result = await Runner.run(
            self.agent,
            f"Return up to {limit} URLs for: {query}",
            run_config=run_config,
            max_turns=3,
        )

        try:
            urls = json.loads(result.final_output)
        except (json.JSONDecodeError, TypeError) as e:
            raise SearchProviderError(f"Search agent returned malformed URL list: {e}") from e
        if not isinstance(urls, list):
            raise SearchProviderError("Search agent did not return a JSON array")

        return [url for url in urls if isinstance(url, str)][:limit]

    async def _search(self, query: str, limit: int, formats: Sequence[str]) -> SearchResult:
        urls = await self.find_urls(query, limit)
        logger.debug(f"Found {len(urls)} URLs for query: {query}")
        if "markdown" not in formats:
            return SearchResult(data=[SearchItem(url=url) for url in urls])
        return SearchResult(data=await self.scraper.scrape_urls(urls))

    async def search(
        self,
        query: str,
        *,
        timeout: float = DEFAULT_SEARCH_TIMEOUT,
        limit: int = DEFAULT_SEARCH_LIMIT,
        formats: Sequence[str] = ("markdown",),
    ) -> SearchResult:
        return await asyncio.wait_for(self._search(query, limit, formats), timeout=timeout)

# -----------------------------
# Factory
# -----------------------------

def create_search_client(settings: Settings, backend: Optional[str] = None) -> SearchProvider:
    """
    Pick a search provider.

    Args:
        settings: Loaded settings.
        backend: ``"firecrawl"`` or ``"agent"``. When omitted, Firecrawl is used
            if a key is configured.
    """
    if backend is None:
        backend = "firecrawl" if settings.firecrawl_key else "agent"

    if backend == "firecrawl":
        return FirecrawlSearchClient(api_key=settings.firecrawl_key, api_url=settings.firecrawl_base_url)
    if backend == "agent":
        # o-series reasoning models do not support the hosted web search tool.
        model = "gpt-4.1" if settings.model.startswith("o") else settings.model
        return AgentSearchClient(model=model)
    raise ValueError(f"Unknown search backend: {backend}")

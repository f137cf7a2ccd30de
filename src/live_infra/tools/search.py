"""Tavily web search tool.

A stateless request/response wrapper over the Tavily search API. The API key
is read from the local ``KeyStore`` on every call so it can be configured
while the program runs.

Example:
    ```python
    from live_infra.tools import TavilySearchTool

    tool = TavilySearchTool()
    tool.set_api_key("tvly-...")
    result = await tool.search("latest python release", max_results=3)
    print(result["answer"])
    ```
"""

from __future__ import annotations

from typing import Any, Literal

import httpx

from live_infra.errors import SearchError
from live_infra.logging import get_logger
from live_infra.tools.keystore import KeyStore

__all__ = ["API_KEY_NAME", "TAVILY_SEARCH_URL", "TavilySearchTool"]

logger = get_logger("tools.search")

TAVILY_SEARCH_URL = "https://api.tavily.com/search"
API_KEY_NAME = "tavily_api_key"

SearchDepth = Literal["basic", "advanced"]


class TavilySearchTool:
    """Search the web through Tavily.

    Args:
        key_store: Where the API key is stored.
        client: Optional shared ``httpx.AsyncClient``.
        timeout: Request timeout in seconds.
    """

    name = "tavily_search"

    def __init__(
        self,
        key_store: KeyStore | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self._store = key_store or KeyStore()
        self._client = client
        self._timeout = timeout

    def get_api_key(self) -> str:
        """Return the stored key, or ``""`` when none is configured."""
        key = self._store.get(API_KEY_NAME)
        return key.strip() if key and key.strip() else ""

    def set_api_key(self, api_key: str | None) -> None:
        """Store the key; an empty value removes it."""
        if api_key and api_key.strip():
            self._store.set(API_KEY_NAME, api_key.strip())
        else:
            self._store.delete(API_KEY_NAME)

    @classmethod
    def declaration(cls) -> list[dict[str, Any]]:
        """Function declaration describing this tool to a model."""
        return [
            {
                "name": cls.name,
                "description": (
                    "Search the web for current information on any topic "
                    "using Tavily search engine"
                ),
                "parameters": {
                    "type": "object",
                    "properties": {
                        "query": {
                            "type": "string",
                            "description": "The search query to look up",
                        },
                        "search_depth": {
                            "type": "string",
                            "description": (
                                "Search depth: 'basic' for quick results, "
                                "'advanced' for more thorough search"
                            ),
                            "enum": ["basic", "advanced"],
                        },
                        "max_results": {
                            "type": "number",
                            "description": "Maximum number of results to return (1-10, default 5)",
                        },
                    },
                    "required": ["query"],
                },
            }
        ]

    async def search(
        self,
        query: str,
        search_depth: SearchDepth = "basic",
        max_results: int = 5,
    ) -> dict[str, Any]:
        """Run a search.

        Args:
            query: The search query.
            search_depth: ``basic`` or ``advanced``.
            max_results: Clamped to 1..10.

        Returns:
            ``{query, answer, results: [{title, url, content, score}], response_time}``

        Raises:
            SearchError: If no API key is configured or the API call fails.
        """
        logger.info("Executing search", query=query, search_depth=search_depth)

        api_key = self.get_api_key()
        if not api_key:
            raise SearchError(
                "Tavily API key not found.",
                hint="Store one with: live-infra search-key <KEY>",
            )

        body = {
            "api_key": api_key,
            "query": query,
            "search_depth": search_depth,
            "max_results": min(max(1, int(max_results)), 10),
            "include_answer": True,
            "include_raw_content": False,
        }

        try:
            if self._client is not None:
                response = await self._client.post(TAVILY_SEARCH_URL, json=body, timeout=self._timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(TAVILY_SEARCH_URL, json=body, timeout=self._timeout)
        except httpx.HTTPError as e:
            logger.error("Search request failed", error=str(e))
            raise SearchError(f"Tavily request failed: {e}") from e

        if not response.is_success:
            logger.error("Search API error", status=response.status_code)
            raise SearchError(
                f"Tavily API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error("Search API returned invalid JSON", status=response.status_code)
            raise SearchError(
                "Tavily returned an invalid response (not JSON)",
                status_code=response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise SearchError(
                "Tavily returned an invalid response (not an object)",
                status_code=response.status_code,
            )
        return {
            "query": query,
            "answer": data.get("answer") or None,
            "results": [
                {
                    "title": r.get("title"),
                    "url": r.get("url"),
                    "content": r.get("content"),
                    "score": r.get("score"),
                }
                for r in data.get("results") or []
            ],
            "response_time": data.get("response_time"),
        }

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

WEB_SEARCH_UNAVAILABLE = "Web search is not available, api key not configured"
_DEFAULT_SEARCH_URL = "https://api.tavily.com/search"


class TavilyWebSearch:
    """Tavily-backed web search returning serialized JSON for assistant tool outputs."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        url: str = _DEFAULT_SEARCH_URL,
        max_results: int = 5,
        search_depth: str = "advanced",
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._url = url
        self._max_results = max_results
        self._search_depth = search_depth
        self._timeout_seconds = timeout_seconds
        self._client = client

    def _payload(self, query: str) -> dict[str, Any]:
        return {
            "query": query,
            "search_depth": self._search_depth,
            "max_results": self._max_results,
            "include_answer": True,
            "include_raw_content": False,
        }

    async def _post(self, query: str) -> httpx.Response:
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self._api_key}"}
        if self._client is not None:
            return await self._client.post(self._url, json=self._payload(query), headers=headers)
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            return await client.post(self._url, json=self._payload(query), headers=headers)

    async def search(self, query: str) -> str:
        if not self._api_key:
            return json.dumps({"error": WEB_SEARCH_UNAVAILABLE})

        logger.info("performing web search", extra={"query": query})
        try:
            response = await self._post(query)
            if not response.is_success:
                logger.warning(
                    "web search failed",
                    extra={"query": query, "status_code": response.status_code, "details": response.text},
                )
                return json.dumps(
                    {
                        "error": f"Web search failed with status: {response.status_code}",
                        "details": response.text,
                    }
                )
            data = response.json()
        except Exception as exc:
            logger.exception("web search failed", extra={"query": query})
            return json.dumps({"error": "Web search failed", "details": str(exc)})

        logger.info("web search succeeded", extra={"query": query})
        return json.dumps(data)

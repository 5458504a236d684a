"""SerpAPI web search client"""

from typing import List, Optional
import httpx
import structlog

from chatrouter.domain.interfaces.collaborators import WebSearchClient, WebSearchResult
from chatrouter.infrastructure.errors.exceptions import ConfigurationError, WebSearchError

logger = structlog.get_logger(__name__)

SERPAPI_URL = "https://serpapi.com/search.json"


class SerpApiSearchClient(WebSearchClient):
    """Google results through SerpAPI"""

    def __init__(
        self,
        api_key: str,
        engine: str = "google",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        if not api_key:
            raise ConfigurationError("SerpAPI client requires an api key")

        self.api_key = api_key
        self.engine = engine
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def search(self, query: str, limit: int = 3) -> List[WebSearchResult]:
        params = {"api_key": self.api_key, "q": query, "engine": self.engine}

        try:
            response = await self._client.get(SERPAPI_URL, params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Web search failed", error=str(e))
            raise WebSearchError(f"Web search failed: {e}") from e

        results = []
        for item in (data.get("organic_results") or [])[:limit]:
            if not item.get("link"):
                continue
            results.append(WebSearchResult(
                title=item.get("title", ""),
                snippet=item.get("snippet", ""),
                link=item["link"]
            ))

        logger.debug("Web search completed", query=query[:50], results=len(results))
        return results

    async def close(self) -> None:
        await self._client.aclose()

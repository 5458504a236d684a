"""JSON-over-HTTP market-data client"""

from typing import Any, Dict, Optional
import httpx
import structlog

from chatrouter.domain.interfaces.collaborators import MarketDataClient
from chatrouter.infrastructure.errors.exceptions import MarketDataError

logger = structlog.get_logger(__name__)


class HttpJsonClient(MarketDataClient):
    """POSTs a JSON body (or GETs when there is none) and decodes the JSON reply"""

    def __init__(self, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def fetch_json(self, url: str, body: Optional[Dict[str, Any]] = None) -> Any:
        try:
            if body is None:
                response = await self._client.get(url)
            else:
                response = await self._client.post(
                    url,
                    json=body,
                    headers={"Content-Type": "application/json"}
                )
        except httpx.HTTPError as e:
            logger.error("Market data request failed", url=url, error=str(e))
            raise MarketDataError(f"Request to {url} failed: {e}") from e

        if response.status_code != 200:
            logger.error("Market data request rejected", url=url, status_code=response.status_code)
            raise MarketDataError(f"HTTP {response.status_code} from {url}")

        try:
            return response.json()
        except ValueError as e:
            raise MarketDataError(f"Invalid JSON from {url}") from e

    async def close(self) -> None:
        await self._client.aclose()

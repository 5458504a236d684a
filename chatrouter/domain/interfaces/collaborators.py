"""External collaborator interfaces consumed by capability modules"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence
from pydantic import BaseModel

from chatrouter.domain.models.conversation import ConversationMessage


class WebSearchResult(BaseModel):
    """One organic web search hit"""
    title: str
    snippet: str = ""
    link: str


class CompletionClient(ABC):
    """AI completion: system prompt plus conversation in, reply text out"""

    @abstractmethod
    async def complete(self, system_prompt: str, messages: Sequence[ConversationMessage]) -> str:
        pass

    async def close(self) -> None:
        pass


class MarketDataClient(ABC):
    """Plain JSON-over-HTTP lookups; the core never retries on its behalf"""

    @abstractmethod
    async def fetch_json(self, url: str, body: Optional[Dict[str, Any]] = None) -> Any:
        pass

    async def close(self) -> None:
        pass


class WebSearchClient(ABC):
    """Web search returning a bounded list of results"""

    @abstractmethod
    async def search(self, query: str, limit: int = 3) -> List[WebSearchResult]:
        pass

    async def close(self) -> None:
        pass

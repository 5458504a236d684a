"""Wires settings, collaborators and the static module list into a router"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
import structlog

from chatrouter.domain.context.context_store import ConversationContextStore
from chatrouter.domain.interfaces.collaborators import CompletionClient, MarketDataClient, WebSearchClient
from chatrouter.domain.modules.ai_module import AIModule
from chatrouter.domain.modules.base_module import BaseModule
from chatrouter.domain.modules.help_module import HelpModule
from chatrouter.domain.modules.trading_module import TradingModule
from chatrouter.domain.orchestration.router import MessageRouter
from chatrouter.domain.trading.position_service import PositionService
from chatrouter.domain.trading.wallet_directory import WalletDirectory
from chatrouter.infrastructure.clients.anthropic_client import AnthropicCompletionClient
from chatrouter.infrastructure.clients.http_json_client import HttpJsonClient
from chatrouter.infrastructure.clients.serpapi_client import SerpApiSearchClient
from chatrouter.infrastructure.config.settings import Settings

logger = structlog.get_logger(__name__)


class Collaborators(BaseModel):
    """External clients the modules depend on"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    market_data: MarketDataClient
    completion: Optional[CompletionClient] = None
    search: Optional[WebSearchClient] = None
    wallets: WalletDirectory = Field(default_factory=WalletDirectory)


def build_collaborators(settings: Settings) -> Collaborators:
    completion = None
    if settings.features.ai:
        completion = AnthropicCompletionClient(
            api_key=settings.ANTHROPIC_API_KEY,
            model=settings.ANTHROPIC_MODEL,
            max_tokens=settings.AI_MAX_TOKENS,
            temperature=settings.AI_TEMPERATURE,
            timeout=settings.AI_TIMEOUT_SECONDS
        )

    search = SerpApiSearchClient(settings.SERPAPI_KEY) if settings.features.web_search else None

    return Collaborators(
        market_data=HttpJsonClient(),
        completion=completion,
        search=search,
        wallets=WalletDirectory(environment=settings.ENVIRONMENT)
    )


def build_modules(settings: Settings, collaborators: Collaborators) -> List[BaseModule]:
    """The explicit module list, in registration order"""

    position_service = PositionService(
        market_data=collaborators.market_data,
        wallets=collaborators.wallets,
        api_url=settings.HYPERLIQUID_API_URL
    )

    modules: List[BaseModule] = [
        TradingModule(position_service),
        HelpModule(),
    ]

    if collaborators.completion is not None:
        modules.append(AIModule(
            completion_client=collaborators.completion,
            search_client=collaborators.search,
            system_prompt=settings.SYSTEM_PROMPT,
            services_file=settings.SERVICES_FILE
        ))
    else:
        logger.warning("AI module disabled: ANTHROPIC_API_KEY is not set")

    return modules


def build_router(settings: Settings, collaborators: Optional[Collaborators] = None) -> MessageRouter:
    collaborators = collaborators or build_collaborators(settings)

    return MessageRouter(
        build_modules(settings, collaborators),
        max_history=settings.MAX_HISTORY,
        module_timeout=settings.MODULE_TIMEOUT_SECONDS
    )


def build_context_store(settings: Settings) -> ConversationContextStore:
    return ConversationContextStore(
        max_size=settings.CONTEXT_STORE_MAX_SIZE,
        ttl_seconds=settings.CONTEXT_TTL_SECONDS
    )

from typing import List, Optional, Sequence
from pathlib import Path
import json
import re
import structlog

from chatrouter.domain.interfaces.collaborators import CompletionClient, WebSearchClient, WebSearchResult
from chatrouter.domain.models.conversation import ConversationContext, ConversationMessage, MessageRole
from chatrouter.domain.modules.base_module import BaseModule
from chatrouter.infrastructure.errors.exceptions import ConfigurationError, WebSearchError

logger = structlog.get_logger(__name__)

WEB_SEARCH_KEYWORDS = ("current", "price", "latest", "news", "weather", "today", "now")
SERVICE_KEYWORDS = ("service", "consulting", "advisory")
TRADING_KEYWORDS = ("trading", "position", "hyperliquid", "leverage", "wallet")

DEFAULT_PROMPT = (
    "You are a helpful AI assistant. "
    "Provide accurate and helpful information. "
    "Be concise but thorough. "
    "If you're not sure about something, say so rather than making assumptions."
)

TRADING_HINT = (
    "The user can access trading features through these commands:\n"
    "• /position - Check current positions\n"
    "• /position_detail COIN - Get detailed position info\n"
    "• /trading_help - Get list of trading commands\n"
    "Mention these commands when relevant to the user's query."
)


class AIModule(BaseModule):
    """General chat through the AI completion collaborator

    Claims every message that is not an explicit command, including empty text.
    """

    EXCLUDE_PATTERNS = [
        re.compile(r"^/\w+"),
        re.compile(r"^!"),
    ]

    def __init__(
        self,
        completion_client: CompletionClient,
        search_client: Optional[WebSearchClient] = None,
        system_prompt: Optional[str] = None,
        services_file: Optional[Path] = None,
        priority: int = 50
    ):
        if completion_client is None:
            raise ConfigurationError("AI module requires a completion client")

        super().__init__(
            name="AI",
            description="AI-powered chat using Claude for general queries and assistance",
            priority=priority
        )
        self.completion_client = completion_client
        self.search_client = search_client
        self.system_prompt = system_prompt
        self.services_file = Path(services_file) if services_file else None

    async def can_handle(self, text: str, context: ConversationContext) -> bool:
        return not any(pattern.search(text) for pattern in self.EXCLUDE_PATTERNS)

    async def handle(self, text: str, context: ConversationContext) -> str:
        web_results = await self.search_if_needed(text)
        system_prompt = self.build_system_prompt(text, web_results, context)
        messages = self.prepare_messages(context.history_snapshot(), text)

        return await self.completion_client.complete(system_prompt, messages)

    async def cleanup(self) -> None:
        await self.completion_client.close()
        if self.search_client:
            await self.search_client.close()

    async def search_if_needed(self, text: str) -> Optional[List[WebSearchResult]]:
        """Web results for time-sensitive questions; None when not needed or unavailable"""

        lowered = text.lower()
        if not self.search_client or not any(word in lowered for word in WEB_SEARCH_KEYWORDS):
            return None

        try:
            results = await self.search_client.search(text, limit=3)
        except WebSearchError as e:
            logger.warning("Web search unavailable", error=str(e))
            return None

        return results or None

    def build_system_prompt(
        self,
        text: str,
        web_results: Optional[List[WebSearchResult]],
        context: ConversationContext
    ) -> str:
        lowered = text.lower()

        prompt = DEFAULT_PROMPT
        if any(word in lowered for word in SERVICE_KEYWORDS):
            services = self._read_services()
            if services:
                prompt = f"{self.system_prompt or ''}\n\n{services}".strip()
        elif self.system_prompt:
            prompt = f"{self.system_prompt}\n\n{DEFAULT_PROMPT}"

        if any(word in lowered for word in TRADING_KEYWORDS):
            prompt += "\n\n" + TRADING_HINT

        if web_results:
            prompt += (
                "\n\nHere is current information from the web that may be relevant:\n"
                + json.dumps([r.model_dump() for r in web_results], indent=2)
                + "\n\nUse this information to provide current and accurate answers."
            )

        router = context.router
        module_info = router.get_module_info() if router else []
        if module_info:
            prompt += "\n\nAvailable bot features:\n" + "\n".join(
                f"• {info.name}: {info.description}" for info in module_info
            )

        return prompt

    def prepare_messages(
        self,
        history: Sequence[ConversationMessage],
        current_text: str
    ) -> List[ConversationMessage]:
        """History with the current user message last and not duplicated"""

        messages = list(history)
        if (
            messages
            and messages[-1].role == MessageRole.USER
            and messages[-1].content == current_text
        ):
            return messages

        messages.append(ConversationMessage(role=MessageRole.USER, content=current_text))
        return messages

    def _read_services(self) -> Optional[str]:
        if not self.services_file:
            return None
        try:
            return self.services_file.read_text(encoding="utf-8").strip() or None
        except OSError as e:
            logger.error("Could not read services file", path=str(self.services_file), error=str(e))
            return None

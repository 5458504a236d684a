"""Claude completion client built on langchain-anthropic"""

from typing import Any, List, Optional, Sequence
import asyncio
import structlog
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from chatrouter.domain.interfaces.collaborators import CompletionClient
from chatrouter.domain.models.conversation import ConversationMessage, MessageRole
from chatrouter.infrastructure.errors.exceptions import CompletionError, ConfigurationError

logger = structlog.get_logger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
NO_RESPONSE = "No response generated"


class AnthropicCompletionClient(CompletionClient):
    """Request/response completion with a hard deadline"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        timeout: float = 25.0,
        chat_model: Optional[BaseChatModel] = None
    ):
        self.model = model
        self.timeout = timeout

        if chat_model is not None:
            self.chat_model = chat_model
        else:
            if not api_key:
                raise ConfigurationError("ANTHROPIC_API_KEY is not set")
            self.chat_model = ChatAnthropic(
                model=model,
                api_key=api_key,
                max_tokens=max_tokens,
                temperature=temperature,
                timeout=timeout
            )

    async def complete(self, system_prompt: str, messages: Sequence[ConversationMessage]) -> str:
        prompt = to_langchain_messages(system_prompt, messages)

        try:
            result = await asyncio.wait_for(self.chat_model.ainvoke(prompt), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error("Completion timed out", model=self.model, timeout=self.timeout)
            raise CompletionError(f"Completion timed out after {self.timeout}s") from e
        except Exception as e:
            logger.error("Completion failed", model=self.model, error=str(e))
            raise CompletionError(str(e)) from e

        return extract_text(result.content) or NO_RESPONSE


def to_langchain_messages(system_prompt: str, messages: Sequence[ConversationMessage]) -> List[BaseMessage]:
    """Convert conversation turns; the conversation must open with a user turn"""

    converted: List[BaseMessage] = [SystemMessage(content=system_prompt)]
    started = False

    for message in messages:
        if message.role == MessageRole.USER:
            converted.append(HumanMessage(content=message.content))
            started = True
        elif started:
            converted.append(AIMessage(content=message.content))

    return converted


def extract_text(content: Any) -> str:
    """Text of a chat model reply, which may be a string or content blocks"""

    if isinstance(content, str):
        return content

    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)

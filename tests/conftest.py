import asyncio
import re
from typing import List, Optional

import pytest

from chatrouter.domain.context.context_store import ConversationContextStore
from chatrouter.domain.models.conversation import ConversationContext
from chatrouter.domain.modules.base_module import BaseModule


class PatternModule(BaseModule):
    """Claims messages matching a regex and answers with a fixed reply"""

    def __init__(self, name: str, priority: int, pattern: str, reply: Optional[str] = None):
        super().__init__(name=name, description=f"{name} test module", priority=priority)
        self.pattern = re.compile(pattern)
        self.reply = reply if reply is not None else f"{name} handled"
        self.handled: List[str] = []
        self.initialized = False
        self.cleaned_up = False

    async def can_handle(self, text: str, context: ConversationContext) -> bool:
        return self.pattern.search(text) is not None

    async def handle(self, text: str, context: ConversationContext) -> str:
        self.handled.append(text)
        return self.reply

    async def initialize(self) -> None:
        self.initialized = True

    async def cleanup(self) -> None:
        self.cleaned_up = True


class FailingModule(PatternModule):
    """Claims everything, then blows up in handle"""

    def __init__(self, name: str = "Broken", priority: int = 10, error: Optional[Exception] = None):
        super().__init__(name=name, priority=priority, pattern=r".*")
        self.error = error or RuntimeError("database password is hunter2")

    async def handle(self, text: str, context: ConversationContext) -> str:
        self.handled.append(text)
        raise self.error


class SlowModule(PatternModule):
    """Claims everything and never answers in time"""

    def __init__(self, name: str = "Slow", priority: int = 10, delay: float = 5.0):
        super().__init__(name=name, priority=priority, pattern=r".*")
        self.delay = delay

    async def handle(self, text: str, context: ConversationContext) -> str:
        self.handled.append(text)
        await asyncio.sleep(self.delay)
        return "too late"


class EchoModule(PatternModule):
    """Claims everything, including empty text, and echoes it back"""

    def __init__(self, name: str = "Echo", priority: int = 50):
        super().__init__(name=name, priority=priority, pattern=r"")

    async def handle(self, text: str, context: ConversationContext) -> str:
        self.handled.append(text)
        return f"echo: {text}" if text else "echo: (empty)"


@pytest.fixture
def context() -> ConversationContext:
    return ConversationContext(conversation_id="chat-1", user_id="user-1")


@pytest.fixture
def store() -> ConversationContextStore:
    return ConversationContextStore(max_size=3, ttl_seconds=60)

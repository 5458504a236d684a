from abc import ABC, abstractmethod
from typing import List, NamedTuple

from chatrouter.domain.models.conversation import ConversationContext, ModuleDescriptor, ModuleInfo


class ParsedCommand(NamedTuple):
    command: str
    args: List[str]
    full_text: str


class BaseModule(ABC):
    """Base class for capability modules

    A module answers the messages it claims with ``can_handle``. The predicate
    must not touch ``context`` and should return quickly; ``handle`` may do I/O
    and may raise, in which case the router moves on to the next candidate.

    History belongs to the router. Read it through
    ``context.history_snapshot()``; edits made to ``context.history`` inside a
    module are rolled back before the reply is recorded.
    """

    def __init__(self, name: str, description: str, priority: int = 100):
        self._descriptor = ModuleDescriptor(
            name=name,
            description=description,
            priority=priority
        )

    @property
    def descriptor(self) -> ModuleDescriptor:
        return self._descriptor

    @property
    def name(self) -> str:
        return self._descriptor.name

    @property
    def description(self) -> str:
        return self._descriptor.description

    @property
    def priority(self) -> int:
        return self._descriptor.priority

    @abstractmethod
    async def can_handle(self, text: str, context: ConversationContext) -> bool:
        """Return True if this module wants to answer the message"""
        pass

    @abstractmethod
    async def handle(self, text: str, context: ConversationContext) -> str:
        """Answer the message"""
        pass

    async def initialize(self) -> None:
        """Called once before the module receives traffic"""
        pass

    async def cleanup(self) -> None:
        """Called once at shutdown"""
        pass

    def parse_command(self, text: str) -> ParsedCommand:
        """Split a message into command and whitespace-separated arguments"""
        parts = text.split()
        return ParsedCommand(
            command=parts[0] if parts else "",
            args=parts[1:],
            full_text=text
        )

    def get_info(self) -> ModuleInfo:
        return ModuleInfo(name=self.name, description=self.description)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={self.priority})"
